"""Minimal cell model used as the executable code handle.

A cell carries up to 1023 data bits and up to four references to child
cells. The harness never interprets cell contents; it only builds cells from
program text and hands them to the execution engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


def pack_bits(value: int, bit_length: int) -> bytes:
    """Pack the ``bit_length`` low bits of ``value`` MSB-first, zero padded."""
    if bit_length == 0:
        return b""
    nbytes = (bit_length + 7) // 8
    return (value << (nbytes * 8 - bit_length)).to_bytes(nbytes, "big")


def unpack_bits(data: bytes, bit_length: int) -> int:
    """Inverse of :func:`pack_bits`."""
    if bit_length == 0:
        return 0
    nbytes = (bit_length + 7) // 8
    return int.from_bytes(data[:nbytes], "big") >> (nbytes * 8 - bit_length)


@dataclass(frozen=True)
class Cell:
    """Immutable tree-of-cells node."""

    MAX_BITS: ClassVar[int] = 1023
    MAX_REFS: ClassVar[int] = 4

    data: bytes = b""
    bit_length: int = 0
    refs: tuple[Cell, ...] = ()
    exotic: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.bit_length <= self.MAX_BITS:
            raise ValueError(f"cell holds at most {self.MAX_BITS} bits, got {self.bit_length}")
        if len(self.refs) > self.MAX_REFS:
            raise ValueError(f"cell holds at most {self.MAX_REFS} refs, got {len(self.refs)}")
        if len(self.data) != (self.bit_length + 7) // 8:
            raise ValueError("data length does not match bit length")

    @classmethod
    def empty(cls) -> Cell:
        return cls()

    @classmethod
    def from_bits(cls, value: int, bit_length: int, refs: tuple[Cell, ...] = ()) -> Cell:
        return cls(data=pack_bits(value, bit_length), bit_length=bit_length, refs=refs)

    def bits_hex(self) -> str:
        """Render the data bits as a hex literal.

        Bit strings that are not a whole number of nibbles get a completion
        tag: a single ``1`` bit, zero padding, and a trailing ``_``.
        """
        value = unpack_bits(self.data, self.bit_length)
        bits = self.bit_length
        suffix = ""
        if bits % 4:
            pad = 4 - bits % 4
            value = (value << pad) | (1 << (pad - 1))
            bits += pad
            suffix = "_"
        if bits == 0:
            return suffix
        return f"{value:0{bits // 4}X}{suffix}"

    def __repr__(self) -> str:
        return f"Cell(bits={self.bit_length}, data={self.bits_hex()!r}, refs={len(self.refs)})"
