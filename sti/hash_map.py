"""An open-addressing hash map with grouped control bytes.

Slots are organised in groups of eight. Each group keeps one control byte
per slot (see :mod:`sti.group`). A key's hash selects the group where
probing starts, and probing moves linearly through the groups until it
reaches one that still has a fresh slot. The map grows by doubling once
7/8 of its slots have been used.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator

from sti.fxhash import FxHashFn
from sti.group import (
    EMPTY_PER_GROUP,
    WIDTH,
    Group,
    Hash32,
    SlotIdx,
    num_groups_for_cap,
)

_M32 = (1 << 32) - 1


class HashMap:
    """Hash map from keys to values with a pluggable hash function.

    ``hash_fn`` maps a key to a 32-bit hash and defaults to the Fx hash.
    ``cap`` reserves room for that many entries up front.
    """

    def __init__(self, hash_fn: Callable[[Any], int] | None = None, cap: int = 0) -> None:
        self._h: Callable[[Any], int] = hash_fn if hash_fn is not None else FxHashFn()
        self._groups: list[Group] = []
        self._slots: list[tuple[Any, Any] | None] = []
        self._empty = 0
        self._used = 0
        groups_num = num_groups_for_cap(cap)
        if groups_num > 0:
            self._resize(groups_num)

    # sizes

    def hash_fn(self) -> Callable[[Any], int]:
        """The hash function in use."""
        return self._h

    def size(self) -> int:
        """Total number of slots."""
        return len(self._groups) * WIDTH

    def cap(self) -> int:
        """Number of entries the map holds before it grows."""
        return len(self._groups) * EMPTY_PER_GROUP

    def resident(self) -> int:
        """Number of slots that are used or tombstones."""
        return self.cap() - self._empty

    def __len__(self) -> int:
        return self._used

    def reserve(self, min_cap: int) -> None:
        """Grow so that at least ``min_cap`` entries fit."""
        min_groups = num_groups_for_cap(min_cap)
        if min_groups > len(self._groups):
            self._resize(min_groups)

    def reserve_for_insert(self) -> None:
        """Grow if no fresh slot may be taken by another insert."""
        if self._empty == 0:
            self._resize(None)

    # lookup

    def hash(self, key: Any) -> Hash32:
        """Hash of ``key`` under the map's hash function."""
        return Hash32(self._h(key))

    def lookup(self, key: Any, hash_: Hash32) -> tuple[bool, SlotIdx]:
        """Find ``key``; return whether it is present and its slot.

        If absent, the slot is where the key would be inserted.
        """
        return self.lookup_cmp(hash_, lambda k: k == key)

    def lookup_cmp(self, hash_: Hash32, cmp: Callable[[Any], bool]) -> tuple[bool, SlotIdx]:
        """Find the first key with this hash for which ``cmp`` is true."""
        groups_num = len(self._groups)
        if groups_num == 0:
            return False, SlotIdx(0)

        tomb: SlotIdx | None = None
        group_idx = Group.first_idx(hash_.value, groups_num)
        while True:
            group = self._groups[group_idx]
            base = WIDTH * group_idx

            for i in group.match_hash(hash_):
                entry = self._slots[base + i]
                if entry is not None and cmp(entry[0]):
                    return True, SlotIdx(base + i)

            if tomb is None:
                first_tomb = next(iter(group.match_tomb()), None)
                if first_tomb is not None:
                    tomb = SlotIdx(base + first_tomb)

            first_fresh = next(iter(group.match_fresh()), None)
            if first_fresh is not None:
                return False, tomb if tomb is not None else SlotIdx(base + first_fresh)

            group_idx += 1
            if group_idx == groups_num:
                group_idx = 0

    def lookup_for_insert(self, key: Any, hash_: Hash32) -> tuple[bool, SlotIdx]:
        """Like :meth:`lookup`, growing first if an insert would need room."""
        self.reserve_for_insert()
        return self.lookup(key, hash_)

    def entry(self, key: Any) -> tuple[bool, SlotIdx]:
        """Like :meth:`lookup`, hashing ``key`` itself."""
        return self.lookup(key, self.hash(key))

    def entry_for_insert(self, key: Any) -> tuple[bool, SlotIdx]:
        """Like :meth:`lookup_for_insert`, hashing ``key`` itself."""
        return self.lookup_for_insert(key, self.hash(key))

    # slots

    def _group_of(self, idx: SlotIdx) -> Group:
        return self._groups[idx.index // WIDTH]

    def slot_present(self, idx: SlotIdx) -> bool:
        """True if the slot exists and holds an entry."""
        return idx.index < self.size() and self._group_of(idx).is_used(idx)

    def _require_present(self, idx: SlotIdx) -> tuple[Any, Any]:
        if not self.slot_present(idx):
            raise IndexError(f"slot {idx.index} holds no entry")
        entry = self._slots[idx.index]
        assert entry is not None
        return entry

    def slot(self, idx: SlotIdx) -> tuple[Any, Any]:
        """The key and value held in a slot; IndexError if it is empty."""
        return self._require_present(idx)

    def set_slot_value(self, idx: SlotIdx, value: Any) -> None:
        """Replace the value held in a slot; IndexError if it is empty."""
        key, _ = self._require_present(idx)
        self._slots[idx.index] = (key, value)

    # mapping access

    def get(self, key: Any, default: Any = None) -> Any:
        """Value for ``key``, or ``default`` if absent."""
        present, idx = self.entry(key)
        if present:
            entry = self._slots[idx.index]
            assert entry is not None
            return entry[1]
        return default

    def __getitem__(self, key: Any) -> Any:
        present, idx = self.entry(key)
        if not present:
            raise KeyError(key)
        entry = self._slots[idx.index]
        assert entry is not None
        return entry[1]

    def __setitem__(self, key: Any, value: Any) -> None:
        """Replace the value of an existing key; KeyError if it is absent."""
        present, idx = self.entry(key)
        if not present:
            raise KeyError(key)
        self.set_slot_value(idx, value)

    def __contains__(self, key: Any) -> bool:
        return self.entry(key)[0]

    # insertion

    def insert(self, key: Any, value: Any) -> tuple[Any, Any] | None:
        """Insert or replace; return the old key and value if there were any."""
        hash_ = self.hash(key)
        present, idx = self.lookup_for_insert(key, hash_)
        result = self._insert_at(idx, hash_, key, value)
        assert present == (result is not None)
        return result

    def insert_new(self, key: Any, value: Any) -> None:
        """Insert a key that must not be present yet; KeyError if it is."""
        hash_ = self.hash(key)
        present, idx = self.lookup_for_insert(key, hash_)
        if present:
            raise KeyError(f"key {key!r} is already present")
        self._insert_at(idx, hash_, key, value)

    def insert_at(self, idx: SlotIdx, hash_: Hash32, key: Any, value: Any) -> tuple[Any, Any] | None:
        """Write an entry into a slot found by a lookup for insert.

        Returns the entry the slot held before, if any.
        """
        if not (idx.index < self.size() and self._empty > 0):
            raise IndexError(f"slot {idx.index} cannot take an insert")
        return self._insert_at(idx, hash_, key, value)

    def _insert_at(self, idx: SlotIdx, hash_: Hash32, key: Any, value: Any) -> tuple[Any, Any] | None:
        group = self._group_of(idx)
        was_used = group.is_used(idx)
        result = self._slots[idx.index] if was_used else None

        if group.is_fresh(idx):
            self._empty -= 1
        group.use_entry(idx, hash_)
        self._slots[idx.index] = (key, value)
        if not was_used:
            self._used += 1
        return result

    # removal

    def remove(self, key: Any) -> tuple[Any, Any] | None:
        """Remove ``key``; return its key and value, or None if absent."""
        present, idx = self.entry(key)
        if present:
            return self._remove_at(idx)
        return None

    def remove_at(self, idx: SlotIdx) -> tuple[Any, Any]:
        """Remove the entry in a slot; IndexError if it is empty."""
        self._require_present(idx)
        return self._remove_at(idx)

    def _remove_at(self, idx: SlotIdx) -> tuple[Any, Any]:
        result = self._slots[idx.index]
        assert result is not None
        self._slots[idx.index] = None
        self._empty += self._group_of(idx).free_entry(idx)
        self._used -= 1
        return result

    def clear(self) -> None:
        """Remove every entry, keeping the capacity."""
        if self._used == 0:
            return
        self._groups = [Group.fresh() for _ in self._groups]
        self._slots = [None] * len(self._slots)
        self._empty = EMPTY_PER_GROUP * len(self._groups)
        self._used = 0

    # whole-map operations

    def copy(self) -> HashMap:
        """A shallow copy with the same layout and hash function."""
        result = HashMap(self._h)
        result._groups = [Group(group.bits) for group in self._groups]
        result._slots = list(self._slots)
        result._empty = self._empty
        result._used = self._used
        return result

    def __iter__(self) -> Iterator[Any]:
        return (key for key, _ in self.items())

    def items(self) -> Iterator[tuple[Any, Any]]:
        """Entries in slot order."""
        return (entry for entry in self._slots if entry is not None)

    def update_values(self, func: Callable[[Any, Any], Any]) -> None:
        """Replace every value ``v`` of key ``k`` with ``func(k, v)``."""
        for index, entry in enumerate(self._slots):
            if entry is not None:
                key, value = entry
                self._slots[index] = (key, func(key, value))

    def __repr__(self) -> str:
        body = ", ".join(f"{key!r}: {value!r}" for key, value in self.items())
        return "{" + body + "}"

    # growth

    def _resize(self, new_groups_num: int | None) -> None:
        if new_groups_num is None:
            doubled = len(self._groups) * 2
            if doubled > _M32:
                raise OverflowError("hash map cannot grow any further")
            new_groups_num = max(doubled, 1)

        old_slots = self._slots
        self._groups = [Group.fresh() for _ in range(new_groups_num)]
        self._slots = [None] * (new_groups_num * WIDTH)
        self._empty = EMPTY_PER_GROUP * new_groups_num
        self._used = 0

        for entry in old_slots:
            if entry is None:
                continue
            if self._empty <= 0:
                raise RuntimeError("resized map has no room for its entries")
            hash_ = self.hash(entry[0])

            group_idx = Group.first_idx(hash_.value, new_groups_num)
            while True:
                first_fresh = next(iter(self._groups[group_idx].match_fresh()), None)
                if first_fresh is not None:
                    idx = SlotIdx(WIDTH * group_idx + first_fresh)
                    break
                group_idx += 1
                if group_idx == new_groups_num:
                    group_idx = 0

            self._slots[idx.index] = entry
            self._group_of(idx).use_entry(idx, hash_)
            self._empty -= 1
            self._used += 1