"""Decoding of the entropy-coded data of JPEG scans into DCT coefficients."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .jpeg_data import (
    DC_ALPHABET_SIZE,
    DCT_BLOCK_SIZE,
    HUFFMAN_ALPHABET_SIZE,
    NATURAL_ORDER,
    ErrorCode,
    JpegData,
    JpegFormatError,
)
from .jpeg_huffman_decode import LUT_SIZE, HuffmanTableEntry
from .jpeg_markers import process_sos

_log = logging.getLogger(__name__)

_MASK64 = (1 << 64) - 1
_MAX_SUPPORTED_AL = 10


def _fail(jpg: JpegData, code: ErrorCode, message: str) -> JpegFormatError:
    jpg.error = code
    _log.info(message)
    return JpegFormatError(code, message)


def _fits_coeff(value: int) -> bool:
    return -0x8000 <= value <= 0x7FFF


def _div_ceil(a: int, b: int) -> int:
    return (a + b - 1) // b


class ScanBitReader:
    """Reads bits from an entropy-coded segment, undoing 0xFF 0x00 stuffing.

    Past the next marker the reader yields zero bits.
    """

    def __init__(self, data: bytes, pos: int) -> None:
        self.data = data
        self.reset(pos)

    def reset(self, pos: int) -> None:
        """Restart reading at byte ``pos``."""
        self.pos = pos
        self.val = 0
        self.bits_left = 0
        self.next_marker_pos = len(self.data) - 2
        self._fill_bit_window()

    def _next_byte(self) -> int:
        if self.pos >= self.next_marker_pos:
            self.pos += 1
            return 0
        c = self.data[self.pos]
        self.pos += 1
        if c == 0xFF:
            if self.data[self.pos] == 0:
                self.pos += 1
            else:
                # A marker starts here; no more entropy-coded data.
                self.next_marker_pos = self.pos - 1
        return c

    def _fill_bit_window(self) -> None:
        if self.bits_left <= 16:
            while self.bits_left <= 56:
                self.val = ((self.val << 8) | self._next_byte()) & _MASK64
                self.bits_left += 8

    def read_bits(self, nbits: int) -> int:
        """Read ``nbits`` bits, most significant first."""
        self._fill_bit_window()
        value = (self.val >> (self.bits_left - nbits)) & ((1 << nbits) - 1)
        self.bits_left -= nbits
        return value

    def read_symbol(self, lut: Sequence[HuffmanTableEntry], offset: int) -> int:
        """Decode one Huffman symbol with the table at ``lut[offset]``."""
        self._fill_bit_window()
        index = offset + ((self.val >> (self.bits_left - 8)) & 0xFF)
        nbits = lut[index].bits - 8
        if nbits > 0:
            self.bits_left -= 8
            index += lut[index].value
            index += (self.val >> (self.bits_left - nbits)) & ((1 << nbits) - 1)
        entry = lut[index]
        self.bits_left -= entry.bits
        return entry.value

    def is_unhealthy(self) -> bool:
        """True if the stream is certainly broken (read far past its end)."""
        return self.pos > self.next_marker_pos + 32

    def finish_stream(self, jpg: JpegData) -> int:
        """Record padding bits and return where parsing should continue.

        Raises ``JpegFormatError`` if the data ran out before the scan ended.
        """
        npadbits = self.bits_left & 7
        if npadbits > 0:
            padmask = (1 << npadbits) - 1
            padbits = (self.val >> (self.bits_left - npadbits)) & padmask
            if padbits != padmask:
                jpg.has_zero_padding_bit = True
            jpg.padding_bits.extend(
                (padbits >> i) & 1 for i in reversed(range(npadbits)))
        for _ in range(self.bits_left >> 3):
            self.pos -= 1
            # Giving back a stuffed zero means giving back its 0xFF too.
            if (self.pos < self.next_marker_pos and self.data[self.pos] == 0
                    and self.data[self.pos - 1] == 0xFF):
                self.pos -= 1
        if self.pos > self.next_marker_pos:
            raise _fail(jpg, ErrorCode.INVALID_SCAN, "Unexpected end of scan.")
        return self.pos


def huff_extend(x: int, s: int) -> int:
    """Map ``s`` extra bits ``x`` to a signed DC difference or AC value.

    The upper half of the range stands for itself; the lower half stands
    for negative values (T.81, tables F.1 and F.2).
    """
    if s < 1:
        raise ValueError("s must be at least 1")
    if x >= 1 << (s - 1):
        return x
    return x - (1 << s) + 1


@dataclass
class _BlockState:
    eobrun: int = -1
    reset_state: bool = False
    num_zero_runs: int = 0


def _decode_dct_block(dc_lut: Sequence[HuffmanTableEntry], dc_offset: int,
                      ac_lut: Sequence[HuffmanTableEntry], ac_offset: int,
                      ss: int, se: int, al: int, state: _BlockState,
                      br: ScanBitReader, jpg: JpegData,
                      last_dc: list[int], comp_idx: int,
                      coeffs: list[int], base: int) -> None:
    am = 1 << al
    eobrun_allowed = ss > 0
    if ss == 0:
        s = br.read_symbol(dc_lut, dc_offset)
        if s >= DC_ALPHABET_SIZE:
            raise _fail(jpg, ErrorCode.INVALID_SYMBOL,
                        f"Invalid Huffman symbol {s} for DC coefficient.")
        diff = huff_extend(br.read_bits(s), s) if s > 0 else 0
        coeff = diff + last_dc[comp_idx]
        dc_coeff = coeff * am
        if not _fits_coeff(dc_coeff):
            raise _fail(jpg, ErrorCode.NON_REPRESENTABLE_DC_COEFF,
                        f"Invalid DC coefficient {dc_coeff}")
        coeffs[base] = dc_coeff
        last_dc[comp_idx] = coeff
        ss += 1
    if ss > se:
        return
    if state.eobrun > 0:
        state.eobrun -= 1
        return
    state.num_zero_runs = 0
    k = ss
    while k <= se:
        sr = br.read_symbol(ac_lut, ac_offset)
        if sr >= HUFFMAN_ALPHABET_SIZE:
            raise _fail(jpg, ErrorCode.INVALID_SYMBOL,
                        f"Invalid Huffman symbol {sr} for AC coefficient {k}")
        r, s = sr >> 4, sr & 15
        if s > 0:
            k += r
            if k > se:
                raise _fail(jpg, ErrorCode.OUT_OF_BAND_COEFF,
                            f"Out-of-band coefficient {k} band was {ss}-{se}")
            if s + al >= DC_ALPHABET_SIZE:
                raise _fail(jpg, ErrorCode.NON_REPRESENTABLE_AC_COEFF,
                            f"Out of range AC coefficient value: s = {s} "
                            f"Al = {al} k = {k}")
            coeffs[base + NATURAL_ORDER[k]] = huff_extend(br.read_bits(s), s) * am
            state.num_zero_runs = 0
        elif r == 15:
            k += 15
            state.num_zero_runs += 1
        else:
            if eobrun_allowed and k == ss and state.eobrun == 0:
                # Two end-of-block runs in a row: the encoder must reset here.
                state.reset_state = True
            state.eobrun = 1 << r
            if r > 0:
                if not eobrun_allowed:
                    raise _fail(jpg, ErrorCode.EOB_RUN_TOO_LONG,
                                "End-of-block run crossing DC coeff.")
                state.eobrun += br.read_bits(r)
            break
        k += 1
    state.eobrun -= 1


def _refine_coeff(coeffs: list[int], index: int, p1: int, m1: int,
                  br: ScanBitReader) -> None:
    coeff = coeffs[index]
    if br.read_bits(1) and (coeff & p1) == 0:
        coeff += p1 if coeff >= 0 else m1
    coeffs[index] = coeff


def _refine_dct_block(ac_lut: Sequence[HuffmanTableEntry], ac_offset: int,
                      ss: int, se: int, al: int, state: _BlockState,
                      br: ScanBitReader, jpg: JpegData,
                      coeffs: list[int], base: int) -> None:
    am = 1 << al
    eobrun_allowed = ss > 0
    if ss == 0:
        coeffs[base] |= br.read_bits(1) * am
        ss += 1
    if ss > se:
        return
    p1, m1 = am, -am
    k = ss
    in_zero_run = False
    if state.eobrun <= 0:
        while k <= se:
            s = br.read_symbol(ac_lut, ac_offset)
            if s >= HUFFMAN_ALPHABET_SIZE:
                raise _fail(jpg, ErrorCode.INVALID_SYMBOL,
                            f"Invalid Huffman symbol {s} for AC coefficient {k}")
            r, s = s >> 4, s & 15
            if s:
                if s != 1:
                    raise _fail(jpg, ErrorCode.INVALID_SYMBOL,
                                f"Invalid Huffman symbol {s} for AC "
                                f"coefficient {k}")
                s = p1 if br.read_bits(1) else m1
                in_zero_run = False
            else:
                if r != 15:
                    if eobrun_allowed and k == ss and state.eobrun == 0:
                        state.reset_state = True
                    state.eobrun = 1 << r
                    if r > 0:
                        if not eobrun_allowed:
                            raise _fail(jpg, ErrorCode.EOB_RUN_TOO_LONG,
                                        "End-of-block run crossing DC coeff.")
                        state.eobrun += br.read_bits(r)
                    break
                in_zero_run = True
            while True:
                index = base + NATURAL_ORDER[k]
                if coeffs[index] != 0:
                    _refine_coeff(coeffs, index, p1, m1, br)
                else:
                    r -= 1
                    if r < 0:
                        break
                k += 1
                if k > se:
                    break
            if s:
                if k > se:
                    raise _fail(jpg, ErrorCode.OUT_OF_BAND_COEFF,
                                f"Out-of-band coefficient {k} band was "
                                f"{ss}-{se}")
                coeffs[base + NATURAL_ORDER[k]] = s
            k += 1
    if in_zero_run:
        raise _fail(jpg, ErrorCode.EXTRA_ZERO_RUN,
                    "Extra zero run before end-of-block.")
    if state.eobrun > 0:
        for kk in range(k, se + 1):
            index = base + NATURAL_ORDER[kk]
            if coeffs[index] != 0:
                _refine_coeff(coeffs, index, p1, m1, br)
    state.eobrun -= 1


def _process_restart(data: bytes, next_restart_marker: int,
                     br: ScanBitReader, jpg: JpegData) -> int:
    pos = br.finish_stream(jpg)
    expected = 0xD0 + next_restart_marker
    if pos + 2 > len(data) or data[pos] != 0xFF:
        found = data[pos] if pos < len(data) else 0
        raise _fail(jpg, ErrorCode.MARKER_BYTE_NOT_FOUND,
                    f"Marker byte (0xff) expected, found: {found} pos={pos} "
                    f"len={len(data)}")
    marker = data[pos + 1]
    if marker != expected:
        raise _fail(jpg, ErrorCode.WRONG_RESTART_MARKER,
                    f"Did not find expected restart marker {expected} "
                    f"actual={marker}")
    br.reset(pos + 2)
    return (next_restart_marker + 1) & 0x7


def process_scan(data: bytes, pos: int,
                 dc_lut: Sequence[HuffmanTableEntry],
                 ac_lut: Sequence[HuffmanTableEntry],
                 scan_progression: list[list[int]], is_progressive: bool,
                 jpg: JpegData) -> int:
    """Parse an SOS header and its entropy-coded data at ``pos``.

    Coefficients go into the components of ``jpg``; ``scan_progression``
    (per component, per coefficient bit masks) is updated. Returns the
    position after the scan data.
    """
    pos = process_sos(data, pos, jpg)
    scan = jpg.scan_info[-1]
    is_interleaved = scan.num_components > 1
    if is_interleaved:
        mcus_per_row, mcu_rows = jpg.mcu_cols, jpg.mcu_rows
    else:
        c = jpg.components[scan.components[0].comp_idx]
        mcus_per_row = _div_ceil(jpg.width * c.h_samp_factor,
                                 8 * jpg.max_h_samp_factor)
        mcu_rows = _div_ceil(jpg.height * c.v_samp_factor,
                             8 * jpg.max_v_samp_factor)
    last_dc = [0] * len(scan_progression)
    br = ScanBitReader(data, pos)
    restarts_to_go = jpg.restart_interval
    next_restart_marker = 0
    state = _BlockState()
    block_scan_index = 0
    al = scan.al if is_progressive else 0
    ah = scan.ah if is_progressive else 0
    ss = scan.ss if is_progressive else 0
    se = scan.se if is_progressive else 63
    scan_bitmask = ((0xFFFF << al) & 0xFFFF) if ah == 0 else (1 << al)
    refinement_bitmask = ((1 << al) - 1) & 0xFFFF
    for info in scan.components:
        progression = scan_progression[info.comp_idx]
        for k in range(ss, se + 1):
            if progression[k] & scan_bitmask:
                raise _fail(jpg, ErrorCode.OVERLAPPING_SCANS,
                            f"Overlapping scans: component = {info.comp_idx} "
                            f"k = {k}")
            if progression[k] & refinement_bitmask:
                raise _fail(jpg, ErrorCode.INVALID_SCAN_ORDER,
                            f"Invalid scan order, a more refined scan was "
                            f"already done: component = {info.comp_idx} "
                            f"k = {k}")
            progression[k] |= scan_bitmask
    if al > _MAX_SUPPORTED_AL:
        raise _fail(jpg, ErrorCode.NON_REPRESENTABLE_AC_COEFF,
                    f"Scan parameter Al = {al} is not supported.")

    for mcu_y in range(mcu_rows):
        for mcu_x in range(mcus_per_row):
            if jpg.restart_interval > 0:
                if restarts_to_go == 0:
                    next_restart_marker = _process_restart(
                        data, next_restart_marker, br, jpg)
                    restarts_to_go = jpg.restart_interval
                    last_dc = [0] * len(last_dc)
                    if state.eobrun > 0:
                        raise _fail(jpg, ErrorCode.EOB_RUN_TOO_LONG,
                                    "End-of-block run too long.")
                    state.eobrun = -1
                restarts_to_go -= 1
            if br.is_unhealthy():
                raise _fail(jpg, ErrorCode.INVALID_SCAN,
                            "Unexpected end of scan.")
            for info in scan.components:
                c = jpg.components[info.comp_idx]
                dc_offset = info.dc_tbl_idx * LUT_SIZE
                ac_offset = info.ac_tbl_idx * LUT_SIZE
                nblocks_y = c.v_samp_factor if is_interleaved else 1
                nblocks_x = c.h_samp_factor if is_interleaved else 1
                for iy in range(nblocks_y):
                    for ix in range(nblocks_x):
                        block_y = mcu_y * nblocks_y + iy
                        block_x = mcu_x * nblocks_x + ix
                        base = ((block_y * c.width_in_blocks + block_x)
                                * DCT_BLOCK_SIZE)
                        state.reset_state = False
                        state.num_zero_runs = 0
                        if ah == 0:
                            _decode_dct_block(dc_lut, dc_offset, ac_lut,
                                              ac_offset, ss, se, al, state,
                                              br, jpg, last_dc, info.comp_idx,
                                              c.coeffs, base)
                        else:
                            _refine_dct_block(ac_lut, ac_offset, ss, se, al,
                                              state, br, jpg, c.coeffs, base)
                        if state.reset_state:
                            scan.reset_points.append(block_scan_index)
                        if state.num_zero_runs > 0:
                            from .jpeg_data import ExtraZeroRun
                            scan.extra_zero_runs.append(
                                ExtraZeroRun(block_scan_index,
                                             state.num_zero_runs))
                        block_scan_index += 1
    if state.eobrun > 0:
        raise _fail(jpg, ErrorCode.EOB_RUN_TOO_LONG,
                    "End-of-block run too long.")
    pos = br.finish_stream(jpg)
    if pos > len(data):
        raise _fail(jpg, ErrorCode.UNEXPECTED_EOF,
                    f"Unexpected end of file during scan. pos={pos} "
                    f"len={len(data)}")
    return pos