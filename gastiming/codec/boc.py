"""Bag-of-cells (BOC) deserialization.

Supports the generic serialization (magic ``b5ee9c72``) and the two legacy
indexed layouts (``68ff65f3`` and ``acc3a728``, the latter with a CRC32-C
trailer). Only ordinary trees are accepted: every reference must point to a
cell that comes later in the stream, and absent cells are rejected.

Layout of the generic header::

    magic        4 bytes
    flags/size   1 byte   has_idx | has_crc32c | has_cache_bits | 2 reserved | size:3
    off_bytes    1 byte
    cells        size bytes
    roots        size bytes
    absent       size bytes
    tot_cells    off_bytes bytes
    root_list    roots * size bytes
    index        cells * off_bytes bytes (if has_idx)
    cell_data    tot_cells bytes
    crc32c       4 bytes, little endian (if has_crc32c)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gastiming.codec.cell import Cell
from gastiming.core.errors import DecodeError

logger = logging.getLogger(__name__)


# ── Constants ────────────────────────────────────────────────────────────────

BOC_GENERIC_MAGIC = bytes.fromhex("b5ee9c72")
BOC_INDEXED_MAGIC = bytes.fromhex("68ff65f3")
BOC_INDEXED_CRC32C_MAGIC = bytes.fromhex("acc3a728")

_CRC32C_POLY = 0x82F63B78


def _build_crc32c_table() -> list[int]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ _CRC32C_POLY if crc & 1 else crc >> 1
        table.append(crc)
    return table


_CRC32C_TABLE = _build_crc32c_table()


def crc32c(data: bytes) -> int:
    """CRC32-C (Castagnoli) checksum."""
    crc = 0xFFFFFFFF
    for byte in data:
        crc = _CRC32C_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


# ── Header ───────────────────────────────────────────────────────────────────


@dataclass
class BocHeader:
    """Parsed BOC header fields."""
    ref_size: int
    off_bytes: int
    cells: int
    roots: int
    absent: int
    tot_cells_size: int
    root_indexes: list[int]
    has_index: bool
    has_crc32c: bool
    has_cache_bits: bool
    data_offset: int


class _Reader:
    """Bounds-checked cursor over the raw BOC bytes."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        if n < 0 or self.pos + n > len(self.data):
            raise DecodeError(f"truncated BOC: need {n} bytes at offset {self.pos}")
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def uint(self, n: int) -> int:
        return int.from_bytes(self.take(n), "big")


def parse_header(data: bytes) -> BocHeader:
    """Parse the header of a serialized bag of cells."""
    reader = _Reader(data)
    magic = reader.take(4)

    if magic == BOC_GENERIC_MAGIC:
        flags = reader.uint(1)
        has_index = bool(flags & 0x80)
        has_crc = bool(flags & 0x40)
        has_cache_bits = bool(flags & 0x20)
        if flags & 0x18:
            raise DecodeError("reserved BOC flags are set")
        ref_size = flags & 0x07
    elif magic in (BOC_INDEXED_MAGIC, BOC_INDEXED_CRC32C_MAGIC):
        has_index = True
        has_crc = magic == BOC_INDEXED_CRC32C_MAGIC
        has_cache_bits = False
        ref_size = reader.uint(1)
    else:
        raise DecodeError(f"unknown BOC magic {magic.hex()}")

    if not 1 <= ref_size <= 4:
        raise DecodeError(f"invalid BOC reference size {ref_size}")
    off_bytes = reader.uint(1)
    if not 1 <= off_bytes <= 8:
        raise DecodeError(f"invalid BOC offset size {off_bytes}")

    cells = reader.uint(ref_size)
    roots = reader.uint(ref_size)
    absent = reader.uint(ref_size)
    tot_cells_size = reader.uint(off_bytes)

    if cells < 1 or roots < 1 or roots > cells:
        raise DecodeError(f"inconsistent BOC counts: {cells} cells, {roots} roots")
    if absent:
        raise DecodeError("BOC with absent cells is not supported")

    if magic == BOC_GENERIC_MAGIC:
        root_indexes = [reader.uint(ref_size) for _ in range(roots)]
    else:
        if roots != 1:
            raise DecodeError("indexed BOC must have exactly one root")
        root_indexes = [0]
    for idx in root_indexes:
        if idx >= cells:
            raise DecodeError(f"root index {idx} out of range")

    if has_index:
        reader.take(cells * off_bytes)

    return BocHeader(
        ref_size=ref_size,
        off_bytes=off_bytes,
        cells=cells,
        roots=roots,
        absent=absent,
        tot_cells_size=tot_cells_size,
        root_indexes=root_indexes,
        has_index=has_index,
        has_crc32c=has_crc,
        has_cache_bits=has_cache_bits,
        data_offset=reader.pos,
    )


# ── Cells ────────────────────────────────────────────────────────────────────


@dataclass
class _RawCell:
    data: bytes
    bit_length: int
    refs: list[int]
    exotic: bool


def _read_cell(reader: _Reader, index: int, header: BocHeader) -> _RawCell:
    d1 = reader.uint(1)
    d2 = reader.uint(1)
    ref_count = d1 & 0x07
    exotic = bool(d1 & 0x08)
    with_hashes = bool(d1 & 0x10)
    level_mask = d1 >> 5
    if ref_count > Cell.MAX_REFS:
        raise DecodeError(f"cell {index} has {ref_count} refs")

    if with_hashes:
        hash_count = bin(level_mask).count("1") + 1
        reader.take(hash_count * (32 + 2))

    payload = reader.take((d2 + 1) // 2)
    bit_length = len(payload) * 8
    if d2 & 1:
        last = payload[-1]
        if last == 0:
            raise DecodeError(f"cell {index} has a malformed completion tag")
        trailing = (last & -last).bit_length()
        bit_length -= trailing
        payload = payload[:-1] + bytes([last & ~(1 << (trailing - 1)) & 0xFF])
        payload = payload[:(bit_length + 7) // 8]
    if bit_length > Cell.MAX_BITS:
        raise DecodeError(f"cell {index} holds {bit_length} bits")

    refs = []
    for _ in range(ref_count):
        ref = reader.uint(header.ref_size)
        if ref <= index or ref >= header.cells:
            raise DecodeError(f"cell {index} has invalid reference {ref}")
        refs.append(ref)

    return _RawCell(data=payload, bit_length=bit_length, refs=refs, exotic=exotic)


def deserialize_boc(data: bytes) -> list[Cell]:
    """Deserialize a bag of cells and return its root cells."""
    header = parse_header(data)

    end = header.data_offset + header.tot_cells_size
    expected_len = end + (4 if header.has_crc32c else 0)
    if len(data) < expected_len:
        raise DecodeError("truncated BOC cell data")
    if len(data) > expected_len:
        raise DecodeError(f"{len(data) - expected_len} trailing bytes after BOC")
    if header.has_crc32c:
        stored = int.from_bytes(data[end:end + 4], "little")
        if crc32c(data[:end]) != stored:
            raise DecodeError("BOC crc32c mismatch")

    reader = _Reader(data[:end])
    reader.pos = header.data_offset
    raw = [_read_cell(reader, i, header) for i in range(header.cells)]
    if reader.pos != end:
        raise DecodeError("BOC cell data size does not match header")

    built: list[Cell | None] = [None] * header.cells
    for i in range(header.cells - 1, -1, -1):
        cell = raw[i]
        built[i] = Cell(
            data=cell.data,
            bit_length=cell.bit_length,
            refs=tuple(built[r] for r in cell.refs),  # type: ignore[misc]
            exotic=cell.exotic,
        )

    logger.debug("Deserialized BOC: %d cells, %d roots", header.cells, header.roots)
    return [built[i] for i in header.root_indexes]  # type: ignore[misc]
