"""Tests for gastiming.codec — cells, hex literals and bag-of-cells decoding."""

from __future__ import annotations

import base64

import pytest

from gastiming.codec.boc import crc32c, deserialize_boc, parse_header
from gastiming.codec.cell import Cell, pack_bits, unpack_bits
from gastiming.codec.decoder import EMPTY_PROGRAM, decode_program, parse_hex_literal
from gastiming.core.errors import DecodeError

# Root cell 0x88 with one reference to a cell holding 0x7B
SAMPLE_BOC = "te6ccgEBAgEABwABAogBAAJ7"

# One cell, four data bits 0xA followed by a completion tag
TAGGED_BOC = bytes.fromhex("b5ee9c72" "01" "01" "01" "01" "00" "03" "00" "0001a8")


def _with_crc(body: bytes) -> bytes:
    return body + crc32c(body).to_bytes(4, "little")


# ── Cell ─────────────────────────────────────────────────────────────────────


class TestCell:
    def test_empty(self):
        cell = Cell.empty()
        assert cell.bit_length == 0
        assert cell.refs == ()
        assert cell.bits_hex() == ""

    def test_from_bits_byte_aligned(self):
        cell = Cell.from_bits(0xA90E, 16)
        assert cell.data == b"\xa9\x0e"
        assert cell.bits_hex() == "A90E"

    def test_bits_hex_with_completion_tag(self):
        cell = Cell.from_bits(0b1010100, 7)
        assert cell.bits_hex() == "A9_"

    def test_nibble_aligned_not_tagged(self):
        assert Cell.from_bits(0xA, 4).bits_hex() == "A"

    def test_too_many_bits(self):
        with pytest.raises(ValueError):
            Cell.from_bits(0, 1024)

    def test_too_many_refs(self):
        with pytest.raises(ValueError):
            Cell(refs=(Cell(),) * 5)

    def test_data_length_checked(self):
        with pytest.raises(ValueError):
            Cell(data=b"\x00\x00", bit_length=8)

    def test_pack_unpack(self):
        assert pack_bits(0b101, 3) == b"\xa0"
        assert unpack_bits(b"\xa0", 3) == 0b101
        assert pack_bits(0, 0) == b""


# ── Hex literals ─────────────────────────────────────────────────────────────


class TestHexLiteral:
    def test_plain(self):
        assert parse_hex_literal("A90E") == (0xA90E, 16)

    def test_lowercase(self):
        assert parse_hex_literal("a90e") == (0xA90E, 16)

    def test_empty(self):
        assert parse_hex_literal("") == (0, 0)

    def test_completion_tag_strips_last_one_bit(self):
        assert parse_hex_literal("A9_") == (0b1010100, 7)

    def test_completion_tag_strips_trailing_zeros(self):
        # 0xA8 = 1010 1000 -> 1010
        assert parse_hex_literal("A8_") == (0b1010, 4)

    def test_completion_tag_all_zero(self):
        assert parse_hex_literal("00_") == (0, 0)

    def test_completion_tag_only_marker(self):
        assert parse_hex_literal("8_") == (0, 0)

    @pytest.mark.parametrize("text", ["GG", "A_9", "0x12", " A9", "A9 "])
    def test_invalid_characters(self, text):
        with pytest.raises(DecodeError):
            parse_hex_literal(text)

    def test_literal_buffer_limit(self):
        with pytest.raises(DecodeError):
            parse_hex_literal("00" * 129)

    def test_cell_bit_limit(self):
        with pytest.raises(DecodeError):
            parse_hex_literal("0" * 256)
        assert parse_hex_literal("0" * 255)[1] == 1020


# ── Bag of cells ─────────────────────────────────────────────────────────────


class TestCrc32c:
    def test_check_value(self):
        assert crc32c(b"123456789") == 0xE3069283

    def test_empty(self):
        assert crc32c(b"") == 0


class TestDeserializeBoc:
    def test_sample_tree(self):
        roots = deserialize_boc(base64.b64decode(SAMPLE_BOC))
        assert len(roots) == 1
        root = roots[0]
        assert root.bits_hex() == "88"
        assert len(root.refs) == 1
        assert root.refs[0].bits_hex() == "7B"

    def test_header_fields(self):
        header = parse_header(base64.b64decode(SAMPLE_BOC))
        assert header.cells == 2
        assert header.roots == 1
        assert header.ref_size == 1
        assert header.tot_cells_size == 7
        assert header.has_crc32c is False

    def test_completion_tag_in_cell(self):
        root = deserialize_boc(TAGGED_BOC)[0]
        assert root.bit_length == 4
        assert root.bits_hex() == "A"

    def test_crc32c_verified(self):
        body = bytearray(TAGGED_BOC)
        body[4] |= 0x40
        root = deserialize_boc(_with_crc(bytes(body)))[0]
        assert root.bits_hex() == "A"

    def test_crc32c_mismatch(self):
        body = bytearray(TAGGED_BOC)
        body[4] |= 0x40
        data = bytearray(_with_crc(bytes(body)))
        data[-1] ^= 0xFF
        with pytest.raises(DecodeError, match="crc32c"):
            deserialize_boc(bytes(data))

    def test_indexed_layout(self):
        # legacy indexed: size, off_bytes, cells, roots, absent, tot, index, data
        data = bytes.fromhex("68ff65f3" "01" "01" "01" "01" "00" "03" "03" "0001a8")
        assert deserialize_boc(data)[0].bits_hex() == "A"

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            bytes.fromhex("deadbeef01010101000300"),
            TAGGED_BOC[:-1],
            TAGGED_BOC + b"\x00",
            # cell 0 referencing itself
            bytes.fromhex("b5ee9c72" "01" "01" "01" "01" "00" "03" "00" "010000"),
            # absent cells
            bytes.fromhex("b5ee9c72" "01" "01" "01" "01" "01" "03" "00" "0001a8"),
            # completion tag byte without any set bit
            bytes.fromhex("b5ee9c72" "01" "01" "01" "01" "00" "03" "00" "000100"),
        ],
    )
    def test_malformed(self, data):
        with pytest.raises(DecodeError):
            deserialize_boc(data)


# ── decode_program ───────────────────────────────────────────────────────────


class TestDecodeProgram:
    def test_hex(self):
        assert decode_program("A90E") == Cell.from_bits(0xA90E, 16)

    def test_boc(self):
        cell = decode_program(f"boc:{SAMPLE_BOC}")
        assert cell.bits_hex() == "88"
        assert cell.refs[0].bits_hex() == "7B"

    def test_empty_is_noop_program(self):
        assert decode_program("") == EMPTY_PROGRAM

    @pytest.mark.parametrize("text", ["boc:", "boc:not*base64", "boc:AAAA", "xyz"])
    def test_invalid(self, text):
        with pytest.raises(DecodeError):
            decode_program(text)
