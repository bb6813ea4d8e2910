"""Parsers for the JPEG marker segments that describe the image."""

from __future__ import annotations

import logging

from .jpeg_data import (
    DC_ALPHABET_SIZE,
    DCT_BLOCK_SIZE,
    HUFFMAN_ALPHABET_SIZE,
    HUFFMAN_MAX_BIT_LENGTH,
    MAX_COMPONENTS,
    MAX_DIM_PIXELS,
    MAX_NUM_BLOCKS,
    MAX_QUANT_TABLES,
    MAX_SAMPLING,
    NATURAL_ORDER,
    ComponentScanInfo,
    ErrorCode,
    HuffmanCode,
    JpegComponent,
    JpegData,
    JpegFormatError,
    QuantTable,
    ReadMode,
    ScanInfo,
)
from .jpeg_huffman_decode import (
    INVALID_VALUE,
    LUT_SIZE,
    HuffmanTableEntry,
    build_jpeg_huffman_table,
)

_log = logging.getLogger(__name__)


def _fail(jpg: JpegData, code: ErrorCode, message: str) -> JpegFormatError:
    jpg.error = code
    return JpegFormatError(code, message)


def _verify_len(data: bytes, pos: int, n: int, jpg: JpegData) -> None:
    if pos + n > len(data):
        raise _fail(jpg, ErrorCode.UNEXPECTED_EOF,
                    f"Unexpected end of input: pos={pos} need={n} "
                    f"len={len(data)}")


def _verify_input(name: str, value: int, low: int, high: int,
                  code: ErrorCode, jpg: JpegData) -> None:
    if value < low or value > high:
        raise _fail(jpg, code, f"Invalid {name}: {value}")


def _verify_marker_end(start: int, marker_len: int, pos: int,
                       jpg: JpegData) -> None:
    if start + marker_len != pos:
        raise _fail(jpg, ErrorCode.WRONG_MARKER_SIZE,
                    f"Invalid marker length: declared={marker_len} "
                    f"actual={pos - start}")


def _u16(data: bytes, pos: int) -> int:
    return (data[pos] << 8) | data[pos + 1]


def _div_ceil(a: int, b: int) -> int:
    return (a + b - 1) // b


def process_sof(data: bytes, pos: int, mode: ReadMode, jpg: JpegData) -> int:
    """Parse a Start-of-Frame segment at ``pos``; return the position after it."""
    if jpg.width != 0:
        raise _fail(jpg, ErrorCode.DUPLICATE_SOF, "Duplicate SOF marker.")
    start = pos
    _verify_len(data, pos, 8, jpg)
    marker_len = _u16(data, pos)
    precision = data[pos + 2]
    height = _u16(data, pos + 3)
    width = _u16(data, pos + 5)
    num_components = data[pos + 7]
    pos += 8
    _verify_input("precision", precision, 8, 8, ErrorCode.INVALID_PRECISION, jpg)
    _verify_input("height", height, 1, MAX_DIM_PIXELS,
                  ErrorCode.INVALID_HEIGHT, jpg)
    _verify_input("width", width, 1, MAX_DIM_PIXELS,
                  ErrorCode.INVALID_WIDTH, jpg)
    _verify_input("num_components", num_components, 1, MAX_COMPONENTS,
                  ErrorCode.INVALID_NUMCOMP, jpg)
    _verify_len(data, pos, 3 * num_components, jpg)
    jpg.height = height
    jpg.width = width
    jpg.components = [JpegComponent() for _ in range(num_components)]

    ids_seen: set[int] = set()
    for component in jpg.components:
        component_id = data[pos]
        if component_id in ids_seen:
            raise _fail(jpg, ErrorCode.DUPLICATE_COMPONENT_ID,
                        f"Duplicate ID {component_id} in SOF.")
        ids_seen.add(component_id)
        component.id = component_id
        factor = data[pos + 1]
        h_samp, v_samp = factor >> 4, factor & 0xF
        _verify_input("h_samp_factor", h_samp, 1, MAX_SAMPLING,
                      ErrorCode.INVALID_SAMP_FACTOR, jpg)
        _verify_input("v_samp_factor", v_samp, 1, MAX_SAMPLING,
                      ErrorCode.INVALID_SAMP_FACTOR, jpg)
        component.h_samp_factor = h_samp
        component.v_samp_factor = v_samp
        component.quant_idx = data[pos + 2]
        pos += 3
        jpg.max_h_samp_factor = max(jpg.max_h_samp_factor, h_samp)
        jpg.max_v_samp_factor = max(jpg.max_v_samp_factor, v_samp)

    jpg.mcu_rows = _div_ceil(jpg.height, jpg.max_v_samp_factor * 8)
    jpg.mcu_cols = _div_ceil(jpg.width, jpg.max_h_samp_factor * 8)
    for component in jpg.components:
        if (jpg.max_h_samp_factor % component.h_samp_factor or
                jpg.max_v_samp_factor % component.v_samp_factor):
            raise _fail(jpg, ErrorCode.INVALID_SAMPLING_FACTORS,
                        "Non-integral subsampling ratios.")
        component.width_in_blocks = jpg.mcu_cols * component.h_samp_factor
        component.height_in_blocks = jpg.mcu_rows * component.v_samp_factor
        num_blocks = component.width_in_blocks * component.height_in_blocks
        if num_blocks > MAX_NUM_BLOCKS:
            raise _fail(jpg, ErrorCode.IMAGE_TOO_LARGE, "Image too large.")
        component.num_blocks = num_blocks
        if mode is ReadMode.ALL:
            component.coeffs = [0] * (num_blocks * DCT_BLOCK_SIZE)
    _verify_marker_end(start, marker_len, pos, jpg)
    return pos


def process_sos(data: bytes, pos: int, jpg: JpegData) -> int:
    """Parse a Start-of-Scan header, appending to ``jpg.scan_info``."""
    start = pos
    _verify_len(data, pos, 3, jpg)
    marker_len = _u16(data, pos)
    comps_in_scan = data[pos + 2]
    pos += 3
    _verify_input("comps_in_scan", comps_in_scan, 1, len(jpg.components),
                  ErrorCode.INVALID_COMPS_IN_SCAN, jpg)

    scan = ScanInfo()
    _verify_len(data, pos, 2 * comps_in_scan, jpg)
    ids_seen: set[int] = set()
    for _ in range(comps_in_scan):
        component_id = data[pos]
        pos += 1
        if component_id in ids_seen:
            raise _fail(jpg, ErrorCode.DUPLICATE_COMPONENT_ID,
                        f"Duplicate ID {component_id} in SOS.")
        ids_seen.add(component_id)
        matches = [j for j, c in enumerate(jpg.components)
                   if c.id == component_id]
        if not matches:
            raise _fail(jpg, ErrorCode.COMPONENT_NOT_FOUND,
                        f"SOS marker: Could not find component with id "
                        f"{component_id}")
        tables = data[pos]
        pos += 1
        dc_tbl_idx, ac_tbl_idx = tables >> 4, tables & 0xF
        _verify_input("dc_tbl_idx", dc_tbl_idx, 0, 3,
                      ErrorCode.INVALID_HUFFMAN_INDEX, jpg)
        _verify_input("ac_tbl_idx", ac_tbl_idx, 0, 3,
                      ErrorCode.INVALID_HUFFMAN_INDEX, jpg)
        scan.components.append(
            ComponentScanInfo(matches[-1], dc_tbl_idx, ac_tbl_idx))

    _verify_len(data, pos, 3, jpg)
    scan.ss = data[pos]
    scan.se = data[pos + 1]
    _verify_input("Ss", scan.ss, 0, 63, ErrorCode.INVALID_START_OF_SCAN, jpg)
    _verify_input("Se", scan.se, scan.ss, 63, ErrorCode.INVALID_END_OF_SCAN,
                  jpg)
    approx = data[pos + 2]
    pos += 3
    scan.ah, scan.al = approx >> 4, approx & 0xF
    if scan.ah != 0 and scan.al != scan.ah - 1:
        _log.warning("Invalid progressive parameters: Al = %d Ah = %d",
                     scan.al, scan.ah)

    slots = [code.slot_id for code in jpg.huffman_code]
    for info in scan.components:
        if scan.ss == 0 and info.dc_tbl_idx not in slots:
            raise _fail(jpg, ErrorCode.HUFFMAN_TABLE_NOT_FOUND,
                        f"SOS marker: Could not find DC Huffman table with "
                        f"index {info.dc_tbl_idx}")
        if scan.se > 0 and info.ac_tbl_idx + 16 not in slots:
            raise _fail(jpg, ErrorCode.HUFFMAN_TABLE_NOT_FOUND,
                        f"SOS marker: Could not find AC Huffman table with "
                        f"index {info.ac_tbl_idx}")
    jpg.scan_info.append(scan)
    _verify_marker_end(start, marker_len, pos, jpg)
    return pos


def process_dht(data: bytes, pos: int, mode: ReadMode,
                dc_lut: list[HuffmanTableEntry],
                ac_lut: list[HuffmanTableEntry], jpg: JpegData) -> int:
    """Parse a Define-Huffman-Table segment, building lookup tables."""
    start = pos
    _verify_len(data, pos, 2, jpg)
    marker_len = _u16(data, pos)
    pos += 2
    if marker_len == 2:
        raise _fail(jpg, ErrorCode.EMPTY_DHT,
                    "DHT marker: no Huffman table found")
    while pos < start + marker_len:
        _verify_len(data, pos, 1 + HUFFMAN_MAX_BIT_LENGTH, jpg)
        huff = HuffmanCode()
        huff.slot_id = data[pos]
        pos += 1
        index = huff.slot_id
        is_ac_table = bool(huff.slot_id & 0x10)
        if is_ac_table:
            index -= 0x10
        _verify_input("huffman_index", index, 0, 3,
                      ErrorCode.INVALID_HUFFMAN_INDEX, jpg)
        lut = ac_lut if is_ac_table else dc_lut
        offset = index * LUT_SIZE

        total_count = 0
        space = 1 << HUFFMAN_MAX_BIT_LENGTH
        max_depth = 1
        for length in range(1, HUFFMAN_MAX_BIT_LENGTH + 1):
            count = data[pos]
            pos += 1
            if count:
                max_depth = length
            huff.counts[length] = count
            total_count += count
            space -= count << (HUFFMAN_MAX_BIT_LENGTH - length)
        limit = HUFFMAN_ALPHABET_SIZE if is_ac_table else DC_ALPHABET_SIZE
        _verify_input("total_count", total_count, 0, limit,
                      ErrorCode.INVALID_HUFFMAN_CODE, jpg)
        _verify_len(data, pos, total_count, jpg)
        values_seen: set[int] = set()
        for i in range(total_count):
            value = data[pos]
            pos += 1
            if not is_ac_table:
                _verify_input("value", value, 0, DC_ALPHABET_SIZE - 1,
                              ErrorCode.INVALID_HUFFMAN_CODE, jpg)
            if value in values_seen:
                raise _fail(jpg, ErrorCode.INVALID_HUFFMAN_CODE,
                            f"Duplicate Huffman code value {value}")
            values_seen.add(value)
            huff.values[i] = value
        # An extra invalid symbol takes the all-ones code.
        huff.counts[max_depth] += 1
        huff.values[total_count] = HUFFMAN_ALPHABET_SIZE
        space -= 1 << (HUFFMAN_MAX_BIT_LENGTH - max_depth)
        if space < 0:
            raise _fail(jpg, ErrorCode.INVALID_HUFFMAN_CODE,
                        "Invalid Huffman code lengths.")
        if space > 0 and lut[offset].value != INVALID_VALUE:
            for cell in range(offset, offset + LUT_SIZE):
                lut[cell] = HuffmanTableEntry()
        huff.is_last = pos == start + marker_len
        if mode is ReadMode.ALL:
            build_jpeg_huffman_table(huff.counts, huff.values, lut, offset)
        jpg.huffman_code.append(huff)
    _verify_marker_end(start, marker_len, pos, jpg)
    return pos


def process_dqt(data: bytes, pos: int, jpg: JpegData) -> int:
    """Parse a Define-Quantisation-Table segment."""
    start = pos
    _verify_len(data, pos, 2, jpg)
    marker_len = _u16(data, pos)
    pos += 2
    if marker_len == 2:
        raise _fail(jpg, ErrorCode.EMPTY_DQT,
                    "DQT marker: no quantization table found")
    while pos < start + marker_len and len(jpg.quant) < MAX_QUANT_TABLES:
        _verify_len(data, pos, 1, jpg)
        header = data[pos]
        pos += 1
        precision = header >> 4
        _verify_input("quant_table_precision", precision, 0, 1,
                      ErrorCode.INVALID_QUANT_TBL_PRECISION, jpg)
        index = header & 0xF
        _verify_input("quant_table_index", index, 0, 3,
                      ErrorCode.INVALID_QUANT_TBL_INDEX, jpg)
        _verify_len(data, pos, (precision + 1) * DCT_BLOCK_SIZE, jpg)
        table = QuantTable(index=index, precision=precision)
        for i in range(DCT_BLOCK_SIZE):
            if precision:
                value = _u16(data, pos)
                pos += 2
            else:
                value = data[pos]
                pos += 1
            _verify_input("quant_val", value, 1, 65535,
                          ErrorCode.INVALID_QUANT_VAL, jpg)
            table.values[NATURAL_ORDER[i]] = value
        table.is_last = pos == start + marker_len
        jpg.quant.append(table)
    _verify_marker_end(start, marker_len, pos, jpg)
    return pos


def process_dri(data: bytes, pos: int, found_dri: bool, jpg: JpegData) -> int:
    """Parse a Define-Restart-Interval segment.

    ``found_dri`` tells whether one was seen already, which is an error.
    """
    if found_dri:
        raise _fail(jpg, ErrorCode.DUPLICATE_DRI, "Duplicate DRI marker.")
    start = pos
    _verify_len(data, pos, 4, jpg)
    marker_len = _u16(data, pos)
    jpg.restart_interval = _u16(data, pos + 2)
    pos += 4
    _verify_marker_end(start, marker_len, pos, jpg)
    return pos


def _read_opaque_segment(data: bytes, pos: int, jpg: JpegData) -> tuple[bytes, int]:
    _verify_len(data, pos, 2, jpg)
    marker_len = _u16(data, pos)
    pos += 2
    _verify_input("marker_len", marker_len, 2, 65535,
                  ErrorCode.INVALID_MARKER_LEN, jpg)
    _verify_len(data, pos, marker_len - 2, jpg)
    # Keep the marker type byte together with the length and payload.
    segment = bytes(data[pos - 3:pos - 3 + marker_len + 1])
    return segment, pos + marker_len - 2


def process_app(data: bytes, pos: int, jpg: JpegData) -> int:
    """Store an APPn segment, marker byte included, in ``jpg.app_data``."""
    segment, pos = _read_opaque_segment(data, pos, jpg)
    jpg.app_data.append(segment)
    return pos


def process_com(data: bytes, pos: int, jpg: JpegData) -> int:
    """Store a COM segment, marker byte included, in ``jpg.com_data``."""
    segment, pos = _read_opaque_segment(data, pos, jpg)
    jpg.com_data.append(segment)
    return pos