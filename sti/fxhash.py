"""The Fx hash function in 32- and 64-bit variants."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol

ROL = 5
# golden ratio in fixed point.
MUL32 = 0x9E3779B9
MUL64 = 0x9E3779B97F4A7C15
# pi in fixed point.
INI32 = 0x517CC1B7
INI64 = 0x517CC1B727220A95

_M32 = (1 << 32) - 1
_M64 = (1 << 64) - 1
_M128 = (1 << 128) - 1


def _check(i: int, bits: int) -> int:
    if not 0 <= i < (1 << bits):
        raise ValueError(f"{i} does not fit in an unsigned {bits}-bit integer")
    return i


def _add_to_hash_u32(hash_: int, value: int) -> int:
    rotated = ((hash_ << ROL) | (hash_ >> (32 - ROL))) & _M32
    return ((rotated ^ value) * MUL32) & _M32


def _add_to_hash_u64(hash_: int, value: int) -> int:
    rotated = ((hash_ << ROL) | (hash_ >> (64 - ROL))) & _M64
    return ((rotated ^ value) * MUL64) & _M64


class _Writer(Protocol):
    def write_bytes(self, data: bytes) -> None: ...

    def write_u8(self, i: int) -> None: ...

    def write_u64(self, i: int) -> None: ...

    def write_u128(self, i: int) -> None: ...

    def write_usize(self, i: int) -> None: ...

    def write_value(self, value: Any) -> None: ...


def _write_value(hasher: _Writer, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool):
        hasher.write_u8(int(value))
    elif isinstance(value, int):
        if -(1 << 63) <= value < (1 << 64):
            hasher.write_u64(value & _M64)
        elif -(1 << 127) <= value < (1 << 128):
            hasher.write_u128(value & _M128)
        else:
            raise OverflowError(f"integer {value} is too large to hash")
    elif isinstance(value, str):
        hasher.write_bytes(value.encode("utf-8"))
        hasher.write_u8(0xFF)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        data = bytes(value)
        hasher.write_usize(len(data))
        hasher.write_bytes(data)
    elif isinstance(value, tuple):
        for item in value:
            hasher.write_value(item)
    elif isinstance(value, list):
        hasher.write_usize(len(value))
        for item in value:
            hasher.write_value(item)
    else:
        hasher.write_u64(hash(value) & _M64)


class HashFn(ABC):
    """A function from keys to hash values."""

    @abstractmethod
    def __call__(self, value: Any) -> int:
        """Return the hash of ``value``."""


class FxHasher32:
    """Incremental 32-bit Fx hasher."""

    DEFAULT_SEED = INI32

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self.hash = _check(seed, 32)

    def __repr__(self) -> str:
        return f"FxHasher32(hash={self.hash:#010x})"

    def finish_u32(self) -> int:
        """Return the 32-bit hash."""
        return self.hash

    def finish_u64(self) -> int:
        """Return the hash spread to 64 bits."""
        wide = FxHasher64()
        wide.write_u32(self.hash)
        return wide.hash

    def finish(self) -> int:
        """Return a 64-bit hash, as expected by generic hashing code."""
        return self.finish_u64()

    def write_bytes(self, data: bytes) -> None:
        """Add raw bytes, four at a time, little-endian."""
        data = bytes(data)
        hash_ = self.hash
        full = len(data) - len(data) % 4
        for start in range(0, full, 4):
            hash_ = _add_to_hash_u32(hash_, int.from_bytes(data[start:start + 4], "little"))
        if rest := data[full:]:
            hash_ = _add_to_hash_u32(hash_, int.from_bytes(rest, "little"))
        self.hash = hash_

    def write_u8(self, i: int) -> None:
        """Add an unsigned 8-bit integer."""
        self.hash = _add_to_hash_u32(self.hash, _check(i, 8))

    def write_u16(self, i: int) -> None:
        """Add an unsigned 16-bit integer."""
        self.hash = _add_to_hash_u32(self.hash, _check(i, 16))

    def write_u32(self, i: int) -> None:
        """Add an unsigned 32-bit integer."""
        self.hash = _add_to_hash_u32(self.hash, _check(i, 32))

    def write_u64(self, i: int) -> None:
        """Add an unsigned 64-bit integer as two 32-bit halves, low first."""
        _check(i, 64)
        hash_ = _add_to_hash_u32(self.hash, i & _M32)
        self.hash = _add_to_hash_u32(hash_, i >> 32)

    def write_u128(self, i: int) -> None:
        """Add an unsigned 128-bit integer as four 32-bit parts, low first."""
        _check(i, 128)
        hash_ = self.hash
        for shift in (0, 32, 64, 96):
            hash_ = _add_to_hash_u32(hash_, (i >> shift) & _M32)
        self.hash = hash_

    def write_usize(self, i: int) -> None:
        """Add a pointer-sized (64-bit) unsigned integer."""
        self.write_u64(i)

    def write_value(self, value: Any) -> None:
        """Add a Python value.

        Booleans count as one byte, integers as 64 bits (128 bits when they
        need more), strings as their UTF-8 bytes followed by 0xff, bytes and
        lists with a length prefix, tuples element by element and ``None`` as
        nothing. Other hashable objects contribute their built-in hash.
        """
        _write_value(self, value)


class FxHasher64:
    """Incremental 64-bit Fx hasher."""

    DEFAULT_SEED = INI64

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self.hash = _check(seed, 64)

    def __repr__(self) -> str:
        return f"FxHasher64(hash={self.hash:#018x})"

    def finish(self) -> int:
        """Return the 64-bit hash."""
        return self.hash

    def write_bytes(self, data: bytes) -> None:
        """Add raw bytes, eight at a time, then four, little-endian."""
        data = bytes(data)
        hash_ = self.hash
        full = len(data) - len(data) % 8
        for start in range(0, full, 8):
            hash_ = _add_to_hash_u64(hash_, int.from_bytes(data[start:start + 8], "little"))
        tail = data[full:]
        if len(tail) >= 4:
            hash_ = _add_to_hash_u64(hash_, int.from_bytes(tail[:4], "little"))
            tail = tail[4:]
        if tail:
            hash_ = _add_to_hash_u64(hash_, int.from_bytes(tail, "little"))
        self.hash = hash_

    def write_u8(self, i: int) -> None:
        """Add an unsigned 8-bit integer."""
        self.hash = _add_to_hash_u64(self.hash, _check(i, 8))

    def write_u16(self, i: int) -> None:
        """Add an unsigned 16-bit integer."""
        self.hash = _add_to_hash_u64(self.hash, _check(i, 16))

    def write_u32(self, i: int) -> None:
        """Add an unsigned 32-bit integer."""
        self.hash = _add_to_hash_u64(self.hash, _check(i, 32))

    def write_u64(self, i: int) -> None:
        """Add an unsigned 64-bit integer."""
        self.hash = _add_to_hash_u64(self.hash, _check(i, 64))

    def write_u128(self, i: int) -> None:
        """Add an unsigned 128-bit integer as two 64-bit halves, low first."""
        _check(i, 128)
        hash_ = _add_to_hash_u64(self.hash, i & _M64)
        self.hash = _add_to_hash_u64(hash_, i >> 64)

    def write_usize(self, i: int) -> None:
        """Add a pointer-sized (64-bit) unsigned integer."""
        self.write_u64(i)

    def write_value(self, value: Any) -> None:
        """Add a Python value, encoded as by ``FxHasher32.write_value``."""
        _write_value(self, value)


def fxhash32(value: Any) -> int:
    """Return the 32-bit Fx hash of ``value``."""
    hasher = FxHasher32()
    hasher.write_value(value)
    return hasher.hash


def fxhash64(value: Any) -> int:
    """Return the 64-bit Fx hash of ``value``."""
    hasher = FxHasher64()
    hasher.write_value(value)
    return hasher.hash


@dataclass(frozen=True)
class FxHashFn(HashFn):
    """Hash function producing 32-bit Fx hashes."""

    def __call__(self, value: Any) -> int:
        return fxhash32(value)