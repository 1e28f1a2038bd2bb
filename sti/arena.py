"""A bump allocator that carves allocations out of large blocks.

Blocks come from a backing allocator and grow geometrically. Individual
frees are no-ops; memory is reclaimed in bulk with :meth:`Arena.reset`
or :meth:`Arena.reset_all`.
"""

from __future__ import annotations

from dataclasses import dataclass

from sti.alloc import Alloc, AllocError, GlobalAlloc, Layout, alloc_array, ceil_to_multiple_pow2

ALIGN_MAX = 512
"""Largest supported alignment; allocations asking for more fail."""

BLOCK_SIZE_MIN = 1024
"""The arena never allocates blocks smaller than this."""

BLOCK_SIZE_MAX = (1 << 62)
"""Largest block the arena will allocate."""

BLOCK_SIZE_DEFAULT = 512 * 1024

HEADER_SIZE = 16
"""Bytes at the start of every block reserved for its header."""

ALLOC_SIZE_MAX = BLOCK_SIZE_MAX - HEADER_SIZE


@dataclass(frozen=True)
class ArenaStats:
    """Block count, bytes allocated from the backing allocator, bytes used."""

    blocks: int
    allocated: int
    used: int

    def __sub__(self, other: ArenaStats) -> ArenaStats:
        if not isinstance(other, ArenaStats):
            return NotImplemented
        return ArenaStats(
            blocks=self.blocks - other.blocks,
            allocated=self.allocated - other.allocated,
            used=self.used - other.used,
        )


@dataclass(frozen=True)
class _Block:
    base: int
    cap: int


class Arena(Alloc):
    """Bump allocator over a chain of blocks.

    ``block_size_min`` and ``block_size_max`` are hints bounding the size
    of newly allocated blocks.
    """

    def __init__(self, backing: Alloc | None = None) -> None:
        self._backing: Alloc = backing if backing is not None else GlobalAlloc()
        self._blocks: list[_Block] = []
        self._used = 0
        self.block_size_min = BLOCK_SIZE_MIN
        self.block_size_max = BLOCK_SIZE_MAX

    def __enter__(self) -> Arena:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.reset_all()

    def __repr__(self) -> str:
        stats = self.stats()
        return (
            f"Arena(blocks={stats.blocks}, allocated={stats.allocated}, used={stats.used})"
        )

    @property
    def _cap(self) -> int:
        return self._blocks[-1].cap if self._blocks else 0

    def base(self) -> int | None:
        """Address of the current block, or None if no block is held."""
        return self._blocks[-1].base if self._blocks else None

    def alloc_ptr(self, size: int, align: int = 1) -> int:
        """Allocate ``size`` bytes with the given alignment and return the address."""
        return self.alloc(Layout.from_size_align(size, align))

    def alloc_str(self, value: str) -> int:
        """Place the UTF-8 bytes of ``value`` in the arena and return their address."""
        data = value.encode("utf-8")
        return alloc_array(self, Layout(1, 1), len(data))

    def alloc_nonzero(self, layout: Layout) -> int:
        if layout.size == 0:
            raise ValueError("alloc_nonzero requires a non-zero size")
        if layout.align > ALIGN_MAX:
            raise AllocError(f"alignment {layout.align} exceeds the maximum of {ALIGN_MAX}")

        aligned_used = ceil_to_multiple_pow2(self._used, layout.align)
        if self._blocks and aligned_used + layout.size <= self._cap:
            self._used = aligned_used + layout.size
            return self._blocks[-1].base + aligned_used
        return self._alloc_slow_path(layout)

    def _alloc_slow_path(self, layout: Layout) -> int:
        if layout.size > ALLOC_SIZE_MAX:
            raise AllocError(f"allocation of {layout.size} bytes exceeds the arena limit")

        new_cap = 2 * self._cap
        new_cap = max(new_cap, self.block_size_min)
        new_cap = min(new_cap, self.block_size_max)
        new_cap = max(new_cap, BLOCK_SIZE_MIN)
        new_cap = min(new_cap, BLOCK_SIZE_MAX)
        new_cap = max(new_cap, HEADER_SIZE + layout.size + layout.align - 1)

        base = self._backing.alloc(Layout(new_cap, ALIGN_MAX))

        aligned_used = ceil_to_multiple_pow2(HEADER_SIZE, layout.align)
        new_used = aligned_used + layout.size
        assert new_used <= new_cap

        self._blocks.append(_Block(base, new_cap))
        self._used = new_used
        return base + aligned_used

    def free_nonzero(self, ptr: int, layout: Layout) -> None:
        """Individual frees do nothing; memory returns on reset."""
        if layout.size == 0:
            raise ValueError("free_nonzero requires a non-zero size")

    def try_realloc_nonzero(self, ptr: int, old_layout: Layout, new_layout: Layout) -> bool:
        """Resize in place if the block is the most recent allocation and fits."""
        if old_layout.align != new_layout.align:
            raise ValueError(
                f"alignment cannot change on resize ({old_layout.align} -> {new_layout.align})"
            )
        if not self._blocks:
            return False
        block = self._blocks[-1]

        if ptr + old_layout.size != block.base + self._used:
            return False
        if new_layout.size > block.base + block.cap - ptr:
            return False

        self._used = self._used - old_layout.size + new_layout.size
        assert self._used <= block.cap
        return True

    def reset(self) -> None:
        """Free all allocations, keeping the first block."""
        self.reset_core(False)

    def reset_all(self) -> None:
        """Free all allocations and return every block to the backing allocator."""
        self.reset_core(True)

    def reset_core(self, full: bool) -> None:
        """Release blocks newest first; keep the oldest one unless ``full``."""
        if not self._blocks:
            return
        while self._blocks:
            if len(self._blocks) == 1 and not full:
                break
            block = self._blocks.pop()
            self._backing.free(block.base, Layout(block.cap, ALIGN_MAX))
        self._used = HEADER_SIZE if self._blocks else 0

    def stats(self) -> ArenaStats:
        """Current block count, total block bytes and bytes in use."""
        older = self._blocks[:-1]
        return ArenaStats(
            blocks=len(self._blocks),
            allocated=sum(block.cap for block in self._blocks),
            used=self._used + sum(block.cap for block in older),
        )