"""Byte-wise masks over 32- and 64-bit words.

A mask marks selected bytes of a word by setting their high bit (0x80).
Iterating a mask yields the indices of the marked bytes, lowest first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterator


def splat_4(b: int) -> int:
    """Repeat the byte ``b`` into all four bytes of a 32-bit word."""
    return int.from_bytes(bytes([b]) * 4, "little")


def splat_8(b: int) -> int:
    """Repeat the byte ``b`` into all eight bytes of a 64-bit word."""
    return int.from_bytes(bytes([b]) * 8, "little")


@dataclass(frozen=True)
class ByteMask4:
    """A byte mask over a 32-bit word."""

    bits: int

    WIDTH: ClassVar[int] = 4
    NONE: ClassVar[ByteMask4]
    ALL: ClassVar[ByteMask4]

    def __post_init__(self) -> None:
        if not 0 <= self.bits <= self._word_mask():
            raise ValueError(f"mask bits {self.bits:#x} do not fit in {self.WIDTH} bytes")

    @classmethod
    def _splat(cls, b: int) -> int:
        return int.from_bytes(bytes([b]) * cls.WIDTH, "little")

    @classmethod
    def _word_mask(cls) -> int:
        return (1 << (8 * cls.WIDTH)) - 1

    @classmethod
    def _check_word(cls, value: int) -> int:
        if not 0 <= value <= cls._word_mask():
            raise ValueError(f"value {value:#x} does not fit in {cls.WIDTH} bytes")
        return value

    @classmethod
    def from_bytes(cls, bytes_: int) -> ByteMask4:
        """Wrap a raw word as a mask."""
        return cls(bytes_)

    def none(self) -> bool:
        """True if no byte is marked."""
        return self.bits == 0

    def any(self) -> bool:
        """True if at least one byte is marked."""
        return self.bits != 0

    def all(self) -> bool:
        """True if every byte is marked."""
        return self.bits == self._splat(0x80)

    @classmethod
    def find_zero_bytes(cls, value: int) -> ByteMask4:
        """Mark the zero bytes of ``value``.

        The lowest marked byte is always a zero byte; a byte 0x01 directly
        above a zero byte may be marked as well.
        """
        cls._check_word(value)
        zero_or_high = (value - cls._splat(1)) & cls._word_mask()
        not_high = ~value & cls._splat(0x80)
        return cls(zero_or_high & not_high)

    @classmethod
    def find_equal_bytes(cls, value: int, byte: int) -> ByteMask4:
        """Mark the bytes of ``value`` equal to ``byte``."""
        cls._check_word(value)
        return cls.find_zero_bytes(value ^ cls._splat(byte))

    @classmethod
    def find_high_bit_bytes(cls, value: int) -> ByteMask4:
        """Mark the bytes of ``value`` whose high bit is set."""
        cls._check_word(value)
        return cls(value & cls._splat(0x80))

    def __iter__(self) -> Iterator[int]:
        bits = self.bits
        while bits:
            lowest = bits & -bits
            yield (lowest.bit_length() - 1) // 8
            bits &= bits - 1

    def __and__(self, other: object) -> ByteMask4:
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(self.bits & other.bits)

    def __or__(self, other: object) -> ByteMask4:
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(self.bits | other.bits)

    def __invert__(self) -> ByteMask4:
        return type(self)(self.bits ^ self._splat(0x80))


class ByteMask8(ByteMask4):
    """A byte mask over a 64-bit word."""

    WIDTH = 8


ByteMask4.NONE = ByteMask4(0)
ByteMask4.ALL = ByteMask4(splat_4(0x80))
ByteMask8.NONE = ByteMask8(0)
ByteMask8.ALL = ByteMask8(splat_8(0x80))