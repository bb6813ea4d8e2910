"""Parsing of complete JPEG files into :class:`JpegData`."""

from __future__ import annotations

import logging

from .jpeg_data import (
    DCT_BLOCK_SIZE,
    MAX_COMPONENTS,
    MAX_DHT_MARKERS,
    MAX_HUFFMAN_TABLES,
    ErrorCode,
    JpegData,
    JpegFormatError,
    ReadMode,
)
from .jpeg_huffman_decode import new_lut
from .jpeg_markers import (
    process_app,
    process_com,
    process_dht,
    process_dqt,
    process_dri,
    process_sof,
)
from .jpeg_scan import process_scan

_log = logging.getLogger(__name__)

# _VALID_MARKERS[i] is true when 0xC0 + i is a marker the reader stops at.
_VALID_MARKERS = (
    1, 1, 1, 0, 1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 1, 1,
    1, 1, 0, 1, 1, 1, 0, 1, 0, 0, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1,
    1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1, 0,
)

_SOI = 0xD8
_EOI = 0xD9
_FAKE_MARKER = 0xFF


def _fail(jpg: JpegData, code: ErrorCode, message: str) -> JpegFormatError:
    jpg.error = code
    _log.info(message)
    return JpegFormatError(code, message)


def _is_marker_at(data: bytes, pos: int) -> bool:
    second = data[pos + 1]
    return data[pos] == 0xFF and second >= 0xC0 and bool(
        _VALID_MARKERS[second - 0xC0])


def find_next_marker(data: bytes, pos: int) -> int:
    """Return how many bytes from ``pos`` precede the next known marker."""
    start = pos
    while pos + 1 < len(data) and not _is_marker_at(data, pos):
        pos += 1
    return pos - start


def _expect_marker(data: bytes, pos: int, jpg: JpegData) -> None:
    if pos + 2 > len(data) or data[pos] != 0xFF:
        found = data[pos] if pos < len(data) else 0
        raise _fail(jpg, ErrorCode.MARKER_BYTE_NOT_FOUND,
                    f"Marker byte (0xff) expected, found: {found} pos={pos} "
                    f"len={len(data)}")


def _fixup_indexes(jpg: JpegData) -> None:
    """Point each component's ``quant_idx`` at its entry in ``jpg.quant``."""
    for component in jpg.components:
        for j, table in enumerate(jpg.quant):
            if table.index == component.quant_idx:
                component.quant_idx = j
                break
        else:
            raise _fail(jpg, ErrorCode.QUANT_TABLE_NOT_FOUND,
                        f"Quantization table with index "
                        f"{component.quant_idx} not found.")


def read_jpeg(data: bytes, mode: ReadMode = ReadMode.ALL) -> JpegData:
    """Parse ``data`` as a JPEG file.

    ``mode`` selects how much is read: up to the frame header, all tables,
    or everything including coefficients. Raises ``JpegFormatError``.
    """
    data = bytes(data)
    jpg = JpegData()
    pos = 0
    _expect_marker(data, pos, jpg)
    marker = data[pos + 1]
    pos += 2
    if marker != _SOI:
        raise _fail(jpg, ErrorCode.SOI_NOT_FOUND,
                    f"Did not find expected SOI marker, actual={marker}")

    dc_lut = new_lut(MAX_HUFFMAN_TABLES)
    ac_lut = new_lut(MAX_HUFFMAN_TABLES)
    found_sof = False
    found_dri = False
    scan_progression = [[0] * DCT_BLOCK_SIZE for _ in range(MAX_COMPONENTS)]
    is_progressive = False

    while True:
        skipped = find_next_marker(data, pos)
        if skipped > 0:
            jpg.marker_order.append(_FAKE_MARKER)
            jpg.inter_marker_data.append(data[pos:pos + skipped])
            pos += skipped
        _expect_marker(data, pos, jpg)
        marker = data[pos + 1]
        pos += 2
        if marker in (0xC0, 0xC1, 0xC2):
            is_progressive = marker == 0xC2
            pos = process_sof(data, pos, mode, jpg)
            found_sof = True
        elif marker == 0xC4:
            pos = process_dht(data, pos, mode, dc_lut, ac_lut, jpg)
        elif 0xD0 <= marker <= 0xD7 or marker == _EOI:
            pass  # No payload.
        elif marker == 0xDA:
            if mode is ReadMode.ALL:
                pos = process_scan(data, pos, dc_lut, ac_lut,
                                   scan_progression, is_progressive, jpg)
        elif marker == 0xDB:
            pos = process_dqt(data, pos, jpg)
        elif marker == 0xDD:
            pos = process_dri(data, pos, found_dri, jpg)
            found_dri = True
        elif 0xE0 <= marker <= 0xEF:
            if mode is not ReadMode.TABLES:
                pos = process_app(data, pos, jpg)
        elif marker == 0xFE:
            if mode is not ReadMode.TABLES:
                pos = process_com(data, pos, jpg)
        else:
            raise _fail(jpg, ErrorCode.UNSUPPORTED_MARKER,
                        f"Unsupported marker: {marker} pos={pos} "
                        f"len={len(data)}")
        jpg.marker_order.append(marker)
        if mode is ReadMode.HEADER and found_sof:
            break
        if marker == _EOI:
            break

    if not found_sof:
        raise _fail(jpg, ErrorCode.SOF_NOT_FOUND, "Missing SOF marker.")

    if mode is ReadMode.ALL:
        if pos < len(data):
            jpg.tail_data = data[pos:]
        _fixup_indexes(jpg)
        if not jpg.huffman_code:
            raise _fail(jpg, ErrorCode.HUFFMAN_TABLE_ERROR,
                        "Need at least one Huffman code table.")
        if len(jpg.huffman_code) >= MAX_DHT_MARKERS:
            raise _fail(jpg, ErrorCode.HUFFMAN_TABLE_ERROR,
                        "Too many Huffman tables.")
    return jpg