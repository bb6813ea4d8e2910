"""Least-significant-bit-first bit writer over a fixed-capacity byte buffer."""

from __future__ import annotations

MAX_BITS_PER_WRITE = 56


class BitWriter:
    """Writes bits into bytes at increasing addresses, LSB first within a byte.

    The buffer has a fixed capacity in bytes; writing past it raises
    ``OverflowError``.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._data = bytearray(capacity)
        self.pos = 0  # number of bits written

    def write_bits(self, n_bits: int, bits: int) -> None:
        """Append the ``n_bits`` low bits of ``bits`` (at most 56 at a time)."""
        if not 0 <= n_bits <= MAX_BITS_PER_WRITE:
            raise ValueError(f"cannot write {n_bits} bits at once")
        if bits < 0 or bits >> n_bits:
            raise ValueError(f"value {bits:#x} does not fit in {n_bits} bits")
        end = self.pos + n_bits
        if (end + 7) >> 3 > self.capacity:
            raise OverflowError("bit writer capacity exceeded")
        value = bits << (self.pos & 7)
        index = self.pos >> 3
        while value:
            self._data[index] |= value & 0xFF
            value >>= 8
            index += 1
        self.pos = end

    def append_bytes(self, data: bytes) -> None:
        """Append whole bytes; the writer must be at a byte boundary."""
        if self.pos & 7:
            raise ValueError("append_bytes requires byte alignment")
        start = self.pos >> 3
        if start + len(data) > self.capacity:
            raise OverflowError("bit writer capacity exceeded")
        self._data[start:start + len(data)] = data
        self.pos += 8 * len(data)

    def bytes_used(self) -> int:
        """Number of bytes touched so far, counting a partial last byte."""
        return (self.pos + 7) >> 3

    def to_bytes(self) -> bytes:
        """The bytes written so far."""
        return bytes(self._data[:self.bytes_used()])