"""Program decoder: turns command-line program text into a code cell.

Two encodings are accepted:
  1. ``boc:<base64>``, a base64-wrapped bag of cells; the first root is used
  2. a hex bitstring literal, e.g. ``A90E`` or ``A9_`` with a completion tag

Anything else raises :class:`DecodeError`. Decoding failures are fatal to the
run and are never recovered here.
"""

from __future__ import annotations

import base64
import binascii
import logging

from gastiming.codec.boc import deserialize_boc
from gastiming.codec.cell import Cell
from gastiming.core.errors import DecodeError

logger = logging.getLogger(__name__)

BOC_PREFIX = "boc:"

# Size of the literal buffer: 128 bytes.
MAX_LITERAL_BYTES = 128

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def parse_hex_literal(text: str) -> tuple[int, int]:
    """Parse a hex bitstring literal into ``(value, bit_length)``.

    A trailing ``_`` strips the trailing zero bits and the final ``1`` bit
    (the completion tag) from the decoded bits.
    """
    completion = text.endswith("_")
    digits = text[:-1] if completion else text

    bad = [ch for ch in digits if ch not in _HEX_DIGITS]
    if bad:
        raise DecodeError(f"invalid character {bad[0]!r} in hex literal {text!r}")
    if len(digits) > MAX_LITERAL_BYTES * 2:
        raise DecodeError(f"hex literal longer than {MAX_LITERAL_BYTES} bytes")

    bit_length = len(digits) * 4
    value = int(digits, 16) if digits else 0

    if completion and bit_length:
        while bit_length and not value & 1:
            value >>= 1
            bit_length -= 1
        if bit_length:
            value >>= 1
            bit_length -= 1

    if bit_length > Cell.MAX_BITS:
        raise DecodeError(f"hex literal has {bit_length} bits, a cell holds {Cell.MAX_BITS}")
    return value, bit_length


def decode_boc(payload: str) -> Cell:
    """Decode the base64 part of a ``boc:`` program."""
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"invalid base64 in BOC program: {exc}") from exc
    roots = deserialize_boc(raw)
    return roots[0]


def decode_program(text: str) -> Cell:
    """Decode program text into the code cell handed to the engine."""
    if text.startswith(BOC_PREFIX):
        cell = decode_boc(text[len(BOC_PREFIX):])
    else:
        value, bit_length = parse_hex_literal(text)
        cell = Cell.from_bits(value, bit_length)
    logger.debug("Decoded program %r into %r", text, cell)
    return cell


EMPTY_PROGRAM = Cell.empty()
