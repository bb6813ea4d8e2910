"""Two-level lookup tables for decoding JPEG Huffman codes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

ROOT_TABLE_BITS = 8
MAX_BIT_LENGTH = 16
# Upper bound on the size of one table, root plus second-level tables.
LUT_SIZE = 1024
INVALID_VALUE = 0xFFFF


@dataclass(slots=True)
class HuffmanTableEntry:
    """One cell: bits used by the symbol and the symbol or a table offset."""

    bits: int = 0
    value: int = INVALID_VALUE


def new_lut(num_tables: int) -> list[HuffmanTableEntry]:
    """Return room for ``num_tables`` tables, filled with invalid entries."""
    return [HuffmanTableEntry() for _ in range(num_tables * LUT_SIZE)]


def _next_table_bit_size(counts: Sequence[int], length: int) -> int:
    left = 1 << (length - ROOT_TABLE_BITS)
    while length < MAX_BIT_LENGTH:
        left -= counts[length]
        if left <= 0:
            break
        length += 1
        left <<= 1
    return length - ROOT_TABLE_BITS


def build_jpeg_huffman_table(counts: Sequence[int], symbols: Sequence[int],
                             lut: list[HuffmanTableEntry], offset: int) -> None:
    """Fill the table starting at ``lut[offset]`` from a JPEG code description.

    ``counts[n]`` is the number of codes of length ``n`` (1..16); ``symbols``
    lists the symbols in order of increasing code length.
    """
    remaining = [0] * (MAX_BIT_LENGTH + 1)
    for length in range(1, MAX_BIT_LENGTH + 1):
        remaining[length] = counts[length]
    total_count = sum(remaining)

    table = offset
    table_size = 1 << ROOT_TABLE_BITS

    if total_count == 1:
        for key in range(table_size):
            lut[table + key] = HuffmanTableEntry(0, symbols[0])
        return

    symbol_iter = iter(symbols)

    key = 0
    for length in range(1, ROOT_TABLE_BITS + 1):
        while remaining[length] > 0:
            value = next(symbol_iter)
            reps = 1 << (ROOT_TABLE_BITS - length)
            for cell in range(table + key, table + key + reps):
                lut[cell] = HuffmanTableEntry(length, value)
            key += reps
            remaining[length] -= 1

    table += table_size
    table_size = 0
    table_bits = ROOT_TABLE_BITS
    low = 0
    for length in range(ROOT_TABLE_BITS + 1, MAX_BIT_LENGTH + 1):
        while remaining[length] > 0:
            if low >= table_size:
                table += table_size
                table_bits = _next_table_bit_size(remaining, length)
                table_size = 1 << table_bits
                low = 0
                lut[offset + key] = HuffmanTableEntry(
                    table_bits + ROOT_TABLE_BITS,
                    (table - offset - key) & 0xFFFF)
                key += 1
            bits = length - ROOT_TABLE_BITS
            value = next(symbol_iter)
            reps = 1 << (table_bits - bits)
            for cell in range(table + low, table + low + reps):
                lut[cell] = HuffmanTableEntry(bits, value)
            low += reps
            remaining[length] -= 1