"""Control bytes of the open-addressing hash map, eight slots per group.

Each slot of a group has one control byte:

- ``0xff``: fresh, never used since the last clear or resize.
- ``0x80``: tombstone, used once and since removed.
- ``0x00``..``0x7f``: used, holding the low seven bits of the key's hash.
"""

from __future__ import annotations

from dataclasses import dataclass

from sti.byte_mask import ByteMask8, splat_8

_M32 = (1 << 32) - 1
_M64 = (1 << 64) - 1

WIDTH = 8
"""Slots per group."""

EMPTY_PER_GROUP = WIDTH * 7 // 8
"""Slots of a group that may be filled before the map grows (load 7/8)."""

MAX_CAP = (_M32 - (WIDTH - 1)) * 7 // 8
"""Largest capacity a map can be sized for."""


@dataclass(frozen=True, order=True)
class SlotIdx:
    """Index of a slot across all groups of a map."""

    index: int

    def __post_init__(self) -> None:
        if not 0 <= self.index <= _M32:
            raise ValueError(f"slot index {self.index} does not fit in 32 bits")


@dataclass(frozen=True)
class Hash32:
    """A 32-bit key hash."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _M32:
            raise ValueError(f"hash {self.value} does not fit in 32 bits")


def num_groups_for_cap(cap: int) -> int:
    """Number of groups needed to hold ``cap`` entries at a load of 7/8."""
    if cap < 0:
        raise ValueError(f"negative capacity {cap}")
    if cap > MAX_CAP:
        raise ValueError(f"capacity {cap} exceeds the maximum of {MAX_CAP}")
    return (cap + cap // 7 + (WIDTH - 1)) // WIDTH


@dataclass
class Group:
    """The eight control bytes of one group, packed little-endian."""

    bits: int

    WIDTH = WIDTH
    FRESH = 0xFF
    TOMBSTONE = 0x80
    HASH_MASK = 0x7F

    def __post_init__(self) -> None:
        if not 0 <= self.bits <= _M64:
            raise ValueError(f"group bits {self.bits:#x} do not fit in 64 bits")

    @classmethod
    def fresh(cls) -> Group:
        """A group whose slots are all fresh."""
        return cls(splat_8(cls.FRESH))

    @staticmethod
    def first_idx(hash_: int, groups_num: int) -> int:
        """Group at which probing for ``hash_`` starts, scaled into ``groups_num``."""
        return (hash_ * groups_num) >> 32

    @staticmethod
    def mask_hash(hash_: Hash32) -> int:
        """Control byte stored for a used slot with this hash."""
        return hash_.value & Group.HASH_MASK

    def match_hash(self, hash_: Hash32) -> ByteMask8:
        """Slots whose control byte matches the hash (may over-report)."""
        return ByteMask8.find_equal_bytes(self.bits, self.mask_hash(hash_))

    def match_tomb(self) -> ByteMask8:
        """Slots holding tombstones."""
        # high bit: not used; second highest bit: fresh.
        return ByteMask8.find_high_bit_bytes(self.bits & ~(self.bits << 1) & _M64)

    def match_fresh(self) -> ByteMask8:
        """Slots that are fresh."""
        return ByteMask8.find_high_bit_bytes(self.bits & (self.bits << 1) & _M64)

    def match_used(self) -> ByteMask8:
        """Slots that are in use."""
        return ~ByteMask8.find_high_bit_bytes(self.bits)

    def get(self, idx: SlotIdx) -> int:
        """Control byte of the slot."""
        shift = 8 * (idx.index % WIDTH)
        return (self.bits >> shift) & 0xFF

    def set(self, idx: SlotIdx, value: int) -> None:
        """Overwrite the control byte of the slot."""
        if not 0 <= value <= 0xFF:
            raise ValueError(f"control byte {value} out of range")
        shift = 8 * (idx.index % WIDTH)
        self.bits = (self.bits & ~(0xFF << shift)) | (value << shift)

    def is_used(self, idx: SlotIdx) -> bool:
        """True if the slot holds an entry."""
        return self.get(idx) & 0x80 == 0

    def is_fresh(self, idx: SlotIdx) -> bool:
        """True if the slot is fresh."""
        return self.get(idx) == self.FRESH

    def use_entry(self, idx: SlotIdx, hash_: Hash32) -> None:
        """Mark the slot used by an entry with this hash."""
        self.set(idx, self.mask_hash(hash_))

    def free_entry(self, idx: SlotIdx) -> int:
        """Release the slot; return 1 if it became fresh, 0 if a tombstone.

        A slot may return to fresh only while the group still has a fresh
        slot, since probing stops at the first group with one.
        """
        if self.match_fresh().any():
            self.set(idx, self.FRESH)
            return 1
        self.set(idx, self.TOMBSTONE)
        return 0