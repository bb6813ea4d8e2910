import pytest

from brunsli.jpeg_data import ErrorCode, JpegFormatError, ReadMode
from brunsli.jpeg_reader import find_next_marker, read_jpeg

SOI = b"\xff\xd8"
EOI = b"\xff\xd9"
DQT = b"\xff\xdb\x00\x43\x00" + b"\x01" * 64


def sof(quant_idx=0):
    return b"\xff\xc0\x00\x0b\x08\x00\x08\x00\x08\x01\x01\x11" + bytes(
        [quant_idx])


# One code of length 1 for symbol 0.
DHT_DC = b"\xff\xc4\x00\x14\x00" + b"\x01" + b"\x00" * 15 + b"\x00"
DHT_AC = b"\xff\xc4\x00\x14\x10" + b"\x01" + b"\x00" * 15 + b"\x00"
# One component, tables 0/0, Ss=0 Se=63, Ah/Al=0; then DC=0, EOB, padding.
SOS = b"\xff\xda\x00\x08\x01\x01\x00\x00\x3f\x00" + b"\x3f"
APP0 = b"\xff\xe0\x00\x04\xab\xcd"


def minimal(extra_head=b"", quant_idx=0):
    return (SOI + extra_head + DQT + sof(quant_idx) + DHT_DC + DHT_AC + SOS
            + EOI)


def test_reads_minimal_baseline_jpeg():
    jpg = read_jpeg(minimal())
    assert (jpg.width, jpg.height) == (8, 8)
    assert len(jpg.components) == 1
    assert jpg.marker_order == [0xDB, 0xC0, 0xC4, 0xC4, 0xDA, 0xD9]
    assert jpg.components[0].coeffs == [0] * 64
    assert jpg.padding_bits == [1] * 6
    assert jpg.has_zero_padding_bit is False
    assert jpg.tail_data == b""
    assert len(jpg.huffman_code) == 2
    assert jpg.error is None


def test_accepts_bytearray():
    jpg = read_jpeg(bytearray(minimal()))
    assert jpg.marker_order[-1] == 0xD9


def test_header_mode_stops_after_sof():
    jpg = read_jpeg(minimal(), ReadMode.HEADER)
    assert jpg.marker_order == [0xDB, 0xC0]
    assert jpg.components[0].coeffs == []
    assert jpg.huffman_code == []


def test_app_segment_kept_in_all_mode():
    jpg = read_jpeg(minimal(APP0))
    assert jpg.app_data == [b"\xe0\x00\x04\xab\xcd"]
    assert jpg.marker_order[0] == 0xE0


def test_tables_mode_skips_app_segment():
    jpg = read_jpeg(minimal(APP0), ReadMode.TABLES)
    assert jpg.app_data == []
    assert b"\x00\x04\xab\xcd" in jpg.inter_marker_data
    assert 0xE0 in jpg.marker_order


def test_tail_data_after_eoi():
    jpg = read_jpeg(minimal() + b"xyz")
    assert jpg.tail_data == b"xyz"


def test_inter_marker_garbage_recorded():
    jpg = read_jpeg(minimal(b"\x01\x02"))
    assert jpg.marker_order[:2] == [0xFF, 0xDB]
    assert jpg.inter_marker_data == [b"\x01\x02"]


def test_find_next_marker_stops_at_end():
    data = b"\x00\x00\x00"
    assert find_next_marker(data, 0) == len(data) - 1


@pytest.mark.parametrize("data, code", [
    (b"", ErrorCode.MARKER_BYTE_NOT_FOUND),
    (b"\xff\xd9", ErrorCode.SOI_NOT_FOUND),
    (SOI + EOI, ErrorCode.SOF_NOT_FOUND),
    (SOI + DQT + sof() + EOI, ErrorCode.HUFFMAN_TABLE_ERROR),
    (minimal(quant_idx=1), ErrorCode.QUANT_TABLE_NOT_FOUND),
    (minimal()[:75], ErrorCode.UNEXPECTED_EOF),
])
def test_errors(data, code):
    with pytest.raises(JpegFormatError) as info:
        read_jpeg(data)
    assert info.value.code is code


def test_duplicate_dri_rejected():
    dri = b"\xff\xdd\x00\x04\x00\x00"
    with pytest.raises(JpegFormatError) as info:
        read_jpeg(minimal(dri + dri))
    assert info.value.code is ErrorCode.DUPLICATE_DRI


def test_duplicate_sof_rejected():
    data = SOI + DQT + sof() + sof() + EOI
    with pytest.raises(JpegFormatError) as info:
        read_jpeg(data)
    assert info.value.code is ErrorCode.DUPLICATE_SOF


def test_parse_is_deterministic():
    first = read_jpeg(minimal(APP0))
    second = read_jpeg(minimal(APP0))
    assert first == second