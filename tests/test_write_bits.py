import pytest

from brunsli.write_bits import BitWriter


def _read_bits(data, fields):
    """Read back LSB-first fields of the given widths."""
    value = int.from_bytes(data, "little")
    out = []
    pos = 0
    for n in fields:
        out.append((value >> pos) & ((1 << n) - 1))
        pos += n
    return out


def test_single_byte_value():
    w = BitWriter(4)
    w.write_bits(8, 0xAB)
    assert w.to_bytes() == b"\xab"
    assert w.pos == 8


def test_round_trip_mixed_widths():
    items = [(3, 5), (5, 17), (1, 1), (12, 0xABC), (56, (1 << 56) - 1), (7, 0), (2, 2)]
    w = BitWriter(32)
    for n, v in items:
        w.write_bits(n, v)
    data = w.to_bytes()
    assert len(data) == w.bytes_used()
    assert _read_bits(data, [n for n, _ in items]) == [v for _, v in items]


def test_bytes_used_rounds_up():
    w = BitWriter(4)
    w.write_bits(9, 0)
    assert w.bytes_used() == 2
    assert w.pos == 9


def test_append_bytes_after_aligned_bits():
    w = BitWriter(8)
    w.write_bits(8, 0x12)
    w.append_bytes(b"\x34\x56")
    assert w.to_bytes() == b"\x12\x34\x56"


def test_append_bytes_unaligned_raises():
    w = BitWriter(8)
    w.write_bits(3, 1)
    with pytest.raises(ValueError):
        w.append_bytes(b"\x00")


def test_value_too_wide_raises():
    w = BitWriter(8)
    with pytest.raises(ValueError):
        w.write_bits(2, 4)


def test_too_many_bits_raises():
    w = BitWriter(16)
    with pytest.raises(ValueError):
        w.write_bits(57, 0)


def test_overflow_raises():
    w = BitWriter(1)
    w.write_bits(8, 0xFF)
    with pytest.raises(OverflowError):
        w.write_bits(1, 1)


def test_append_overflow_raises():
    w = BitWriter(2)
    with pytest.raises(OverflowError):
        w.append_bytes(b"abc")


def test_zero_capacity_raises():
    with pytest.raises(ValueError):
        BitWriter(0)