"""Memory layouts and allocators over a simulated address space.

Allocators hand out integer addresses and track which ranges are live;
they hold no contents. A failed allocation raises :class:`AllocError`.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

ISIZE_MAX = (1 << 63) - 1
ADDRESS_SPACE = 1 << 64

_HEAP_BASE = 0x10000


class AllocError(MemoryError):
    """An allocator could not satisfy a request."""


def _is_pow2(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


def ceil_to_multiple_pow2(value: int, pow2: int) -> int:
    """Round ``value`` up to a multiple of the power of two ``pow2``."""
    if not _is_pow2(pow2):
        raise ValueError(f"{pow2} is not a power of two")
    return (value + pow2 - 1) & ~(pow2 - 1)


@dataclass(frozen=True)
class Layout:
    """Size and alignment of a memory block."""

    size: int
    align: int = 1

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError(f"negative size {self.size}")
        if not _is_pow2(self.align):
            raise ValueError(f"alignment {self.align} is not a power of two")
        if self.size > ISIZE_MAX - (self.align - 1):
            raise ValueError(f"size {self.size} is too large for alignment {self.align}")

    @classmethod
    def from_size_align(cls, size: int, align: int) -> Layout:
        """Build a layout, raising ValueError if it is invalid."""
        return cls(size, align)

    @classmethod
    def array(cls, elem: Layout, n: int) -> Layout:
        """Layout of ``n`` consecutive elements of layout ``elem``."""
        if n < 0:
            raise ValueError(f"negative element count {n}")
        stride = ceil_to_multiple_pow2(elem.size, elem.align)
        return cls(stride * n, elem.align)


def cat_join(a: Layout, b: Layout) -> Layout:
    """Layout of ``a`` followed by ``b``, with ``b`` suitably aligned."""
    b_begin = ceil_to_multiple_pow2(a.size, b.align)
    return Layout.from_size_align(b_begin + b.size, max(a.align, b.align))


def cat_next_bytes(base: int, base_size: int, next_align: int) -> int:
    """Address of the next item after ``base_size`` bytes at ``base``."""
    return ceil_to_multiple_pow2(base + base_size, next_align)


def dangling(layout: Layout) -> int:
    """A non-zero, well-aligned address for zero-sized blocks."""
    return layout.align


def _check_same_align(old_layout: Layout, new_layout: Layout) -> None:
    if old_layout.align != new_layout.align:
        raise ValueError(
            f"alignment cannot change on resize ({old_layout.align} -> {new_layout.align})"
        )


class Alloc(ABC):
    """An allocator of memory blocks."""

    def alloc(self, layout: Layout) -> int:
        """Allocate a block; zero-sized requests get a dangling address."""
        if layout.size == 0:
            return dangling(layout)
        return self.alloc_nonzero(layout)

    @abstractmethod
    def alloc_nonzero(self, layout: Layout) -> int:
        """Allocate a block of non-zero size."""

    def free(self, ptr: int, layout: Layout) -> None:
        """Free a block; zero-sized blocks are ignored."""
        if layout.size != 0:
            self.free_nonzero(ptr, layout)

    @abstractmethod
    def free_nonzero(self, ptr: int, layout: Layout) -> None:
        """Free a live block of non-zero size."""

    def try_realloc(self, ptr: int, old_layout: Layout, new_layout: Layout) -> bool:
        """Try to resize a block in place; return whether it worked."""
        _check_same_align(old_layout, new_layout)
        if old_layout.size == 0 or new_layout.size == 0:
            return False
        return self.try_realloc_nonzero(ptr, old_layout, new_layout)

    def try_realloc_nonzero(self, ptr: int, old_layout: Layout, new_layout: Layout) -> bool:
        """Try to resize a non-empty block in place. Never succeeds by default."""
        _check_same_align(old_layout, new_layout)
        return False

    def realloc(self, ptr: int, old_layout: Layout, new_layout: Layout) -> int:
        """Resize a block, moving it if needed; return its address."""
        return default_realloc(self, ptr, old_layout, new_layout)


def default_realloc(alloc: Alloc, ptr: int, old_layout: Layout, new_layout: Layout) -> int:
    """Resize in place if possible, else allocate anew and free the old block.

    If the new allocation fails, the old block stays live.
    """
    _check_same_align(old_layout, new_layout)
    if alloc.try_realloc(ptr, old_layout, new_layout):
        return ptr
    new_ptr = alloc.alloc(new_layout)
    alloc.free(ptr, old_layout)
    return new_ptr


class _Heap:
    """The process-wide address space behind :class:`GlobalAlloc`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._next = _HEAP_BASE
        self._live: dict[int, Layout] = {}

    def alloc(self, layout: Layout) -> int:
        with self._lock:
            addr = ceil_to_multiple_pow2(self._next, layout.align)
            end = addr + layout.size
            if end > ADDRESS_SPACE:
                raise AllocError(f"out of address space for {layout.size} bytes")
            self._next = end
            self._live[addr] = layout
            return addr

    def free(self, ptr: int, layout: Layout) -> None:
        with self._lock:
            live = self._live.get(ptr)
            if live is None:
                raise ValueError(f"{ptr:#x} is not a live allocation")
            if live != layout:
                raise ValueError(f"layout {layout} does not match active layout {live}")
            del self._live[ptr]
            if ptr + layout.size == self._next:
                top = max((a + l.size for a, l in self._live.items()), default=_HEAP_BASE)
                self._next = max(top, _HEAP_BASE)

    def live(self) -> int:
        with self._lock:
            return len(self._live)


_HEAP = _Heap()


@dataclass(frozen=True)
class GlobalAlloc(Alloc):
    """The global allocator; all instances share one address space."""

    def alloc_nonzero(self, layout: Layout) -> int:
        if layout.size == 0:
            raise ValueError("alloc_nonzero requires a non-zero size")
        return _HEAP.alloc(layout)

    def free_nonzero(self, ptr: int, layout: Layout) -> None:
        if layout.size == 0:
            raise ValueError("free_nonzero requires a non-zero size")
        _HEAP.free(ptr, layout)

    def live(self) -> int:
        """Number of live allocations in the global address space."""
        return _HEAP.live()


def alloc_array(alloc: Alloc, elem: Layout, n: int) -> int:
    """Allocate room for ``n`` elements of layout ``elem``."""
    try:
        layout = Layout.array(elem, n)
    except ValueError as exc:
        raise AllocError(f"cannot allocate {n} elements of {elem}") from exc
    return alloc.alloc(layout)