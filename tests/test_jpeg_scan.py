import pytest

from brunsli.jpeg_data import ErrorCode, JpegData, JpegFormatError, ReadMode
from brunsli.jpeg_huffman_decode import (
    INVALID_VALUE,
    build_jpeg_huffman_table,
    new_lut,
)
from brunsli.jpeg_markers import process_dht, process_sof
from brunsli.jpeg_scan import ScanBitReader, huff_extend, process_scan

EOI = b"\xff\xd9"


def _sof(width):
    return bytes([0x00, 0x0B, 0x08, 0x00, 0x08, width >> 8, width & 0xFF,
                  0x01, 0x01, 0x11, 0x00])


# DC table: a single 1-bit code for category 2.
DHT_DC = bytes([0x00, 0x14, 0x00, 0x01] + [0] * 15 + [0x02])
# AC table: a single 1-bit code for end-of-block.
DHT_AC = bytes([0x00, 0x14, 0x10, 0x01] + [0] * 15 + [0x00])
SOS = bytes([0x00, 0x08, 0x01, 0x01, 0x00, 0x00, 0x3F, 0x00])


def _decode(entropy, width=8, restart_interval=0, progression=None):
    header = _sof(width) + DHT_DC + DHT_AC
    data = header + SOS + entropy
    jpg = JpegData()
    dc_lut, ac_lut = new_lut(4), new_lut(4)
    pos = process_sof(data, 0, ReadMode.ALL, jpg)
    pos = process_dht(data, pos, ReadMode.ALL, dc_lut, ac_lut, jpg)
    pos = process_dht(data, pos, ReadMode.ALL, dc_lut, ac_lut, jpg)
    jpg.restart_interval = restart_interval
    if progression is None:
        progression = [[0] * 64 for _ in range(4)]
    end = process_scan(data, pos, dc_lut, ac_lut, progression, False, jpg)
    return data, jpg, end, progression, pos, (dc_lut, ac_lut)


def test_huff_extend_examples():
    assert huff_extend(0, 1) == -1
    assert huff_extend(1, 1) == 1
    assert huff_extend(0, 2) == -3
    assert huff_extend(3, 2) == 3


@pytest.mark.parametrize("s", range(1, 12))
def test_huff_extend_magnitude_category(s):
    values = [huff_extend(x, s) for x in range(1 << s)]
    assert len(set(values)) == 1 << s
    for v in values:
        assert (1 << (s - 1)) <= abs(v) <= (1 << s) - 1


def test_huff_extend_rejects_zero_category():
    with pytest.raises(ValueError):
        huff_extend(0, 0)


def test_read_bits_plain_bytes():
    br = ScanBitReader(b"\xa5\x5a" + EOI, 0)
    assert br.read_bits(8) == 0xA5
    assert br.read_bits(8) == 0x5A
    assert br.read_bits(16) == 0


def test_read_bits_skips_stuffed_zero():
    br = ScanBitReader(b"\xff\x00\x12" + EOI, 0)
    assert br.read_bits(8) == 0xFF
    assert br.read_bits(8) == 0x12


def test_finish_stream_records_padding_and_position():
    br = ScanBitReader(b"\xa5\x5a" + EOI, 0)
    assert br.read_bits(4) == 0xA
    jpg = JpegData()
    assert br.finish_stream(jpg) == 1
    assert jpg.padding_bits == [0, 1, 0, 1]
    assert jpg.has_zero_padding_bit is True


def test_finish_stream_all_ones_padding():
    br = ScanBitReader(b"\xaf" + EOI, 0)
    br.read_bits(4)
    jpg = JpegData()
    assert br.finish_stream(jpg) == 1
    assert jpg.padding_bits == [1, 1, 1, 1]
    assert jpg.has_zero_padding_bit is False


def test_reading_past_end_becomes_unhealthy():
    br = ScanBitReader(EOI, 0)
    assert not br.is_unhealthy()
    for _ in range(20):
        assert br.read_bits(16) == 0
    assert br.is_unhealthy()
    jpg = JpegData()
    with pytest.raises(JpegFormatError) as info:
        br.finish_stream(jpg)
    assert info.value.code is ErrorCode.INVALID_SCAN
    assert jpg.error is ErrorCode.INVALID_SCAN


def test_reset_restarts_reading():
    data = b"\x11\x22" + EOI
    br = ScanBitReader(data, 0)
    br.read_bits(8)
    br.reset(1)
    assert br.read_bits(8) == 0x22


def test_read_symbol_uses_table():
    lut = new_lut(1)
    counts = [0, 2] + [0] * 15
    build_jpeg_huffman_table(counts, [5, 7], lut, 0)
    br = ScanBitReader(b"\x40" + EOI, 0)
    assert [br.read_symbol(lut, 0) for _ in range(3)] == [5, 7, 5]


def test_read_symbol_empty_table_is_invalid():
    br = ScanBitReader(b"\x00" + EOI, 0)
    assert br.read_symbol(new_lut(1), 0) == INVALID_VALUE


def test_baseline_scan_positive_dc():
    data, jpg, end, progression, _, _ = _decode(b"\x6f" + EOI)
    assert data[end:] == EOI
    coeffs = jpg.components[0].coeffs
    assert coeffs[0] == 3
    assert all(c == 0 for c in coeffs[1:])
    assert jpg.padding_bits == [1, 1, 1, 1]
    assert jpg.has_zero_padding_bit is False
    assert progression[0] == [0xFFFF] * 64
    assert len(jpg.scan_info) == 1


def test_baseline_scan_negative_dc():
    _, jpg, _, _, _, _ = _decode(b"\x0f" + EOI)
    assert jpg.components[0].coeffs[0] == -3


def test_overlapping_scans_rejected():
    data, jpg, _, progression, pos, (dc_lut, ac_lut) = _decode(b"\x6f" + EOI)
    with pytest.raises(JpegFormatError) as info:
        process_scan(data, pos, dc_lut, ac_lut, progression, False, jpg)
    assert info.value.code is ErrorCode.OVERLAPPING_SCANS


def test_invalid_dc_symbol():
    with pytest.raises(JpegFormatError) as info:
        _decode(b"\x80" + EOI)
    assert info.value.code is ErrorCode.INVALID_SYMBOL


def test_truncated_scan():
    with pytest.raises(JpegFormatError) as info:
        _decode(EOI)
    assert info.value.code is ErrorCode.INVALID_SCAN


def test_restart_interval_resets_dc_prediction():
    entropy = b"\x6f\xff\xd0\x0f" + EOI
    data, jpg, end, _, _, _ = _decode(entropy, width=16, restart_interval=1)
    coeffs = jpg.components[0].coeffs
    assert coeffs[0] == 3
    assert coeffs[64] == -3
    assert data[end:] == EOI


def test_wrong_restart_marker():
    entropy = b"\x6f\xff\xd1\x0f" + EOI
    with pytest.raises(JpegFormatError) as info:
        _decode(entropy, width=16, restart_interval=1)
    assert info.value.code is ErrorCode.WRONG_RESTART_MARKER