"""Building Huffman codes from histograms and storing them in compact form.

The stored form can be read back by a Brotli-style Huffman code reader.
"""

from __future__ import annotations

from collections.abc import Sequence

from .huffman_tree import (
    convert_bit_depths_to_symbols,
    create_huffman_tree,
    write_huffman_tree,
)
from .write_bits import BitWriter

_CODE_LENGTH_CODES = 18
_STORAGE_ORDER = (1, 2, 3, 4, 0, 5, 17, 6, 16, 7, 8, 9, 10, 11, 12, 13, 14, 15)
# Static code used for the code-length-code lengths (values 0..5).
_LENGTH_CODE_SYMBOLS = (0, 7, 3, 2, 1, 15)
_LENGTH_CODE_BIT_LENGTHS = (2, 4, 3, 2, 2, 4)


def _store_code_length_code(num_codes: int, code_length_depths: Sequence[int],
                            writer: BitWriter) -> None:
    codes_to_store = _CODE_LENGTH_CODES
    if num_codes > 1:
        while (codes_to_store > 0 and
               code_length_depths[_STORAGE_ORDER[codes_to_store - 1]] == 0):
            codes_to_store -= 1
    skip_some = 0
    if (code_length_depths[_STORAGE_ORDER[0]] == 0 and
            code_length_depths[_STORAGE_ORDER[1]] == 0):
        skip_some = 2
        if code_length_depths[_STORAGE_ORDER[2]] == 0:
            skip_some = 3
    writer.write_bits(2, skip_some)
    for symbol in _STORAGE_ORDER[skip_some:codes_to_store]:
        length = code_length_depths[symbol]
        writer.write_bits(_LENGTH_CODE_BIT_LENGTHS[length],
                          _LENGTH_CODE_SYMBOLS[length])


def _store_code_lengths(tree: Sequence[int], extra_bits: Sequence[int],
                        code_length_depths: Sequence[int],
                        code_length_symbols: Sequence[int],
                        writer: BitWriter) -> None:
    for symbol, extra in zip(tree, extra_bits):
        writer.write_bits(code_length_depths[symbol],
                          code_length_symbols[symbol])
        if symbol == 16:
            writer.write_bits(2, extra)
        elif symbol == 17:
            writer.write_bits(3, extra)


def _store_simple_huffman_tree(depths: Sequence[int], symbols: list[int],
                               max_bits: int, writer: BitWriter) -> None:
    num_symbols = len(symbols)
    writer.write_bits(2, 1)
    writer.write_bits(2, num_symbols - 1)
    # Exchange sort, kept as is so that ties are ordered the same way.
    for i in range(num_symbols):
        for j in range(i + 1, num_symbols):
            if depths[symbols[j]] < depths[symbols[i]]:
                symbols[i], symbols[j] = symbols[j], symbols[i]
    for symbol in symbols:
        writer.write_bits(max_bits, symbol)
    if num_symbols == 4:
        writer.write_bits(1, 1 if depths[symbols[0]] == 1 else 0)


def _store_huffman_tree(depths: Sequence[int], writer: BitWriter) -> None:
    tree, extra_bits = write_huffman_tree(depths)

    histogram = [0] * _CODE_LENGTH_CODES
    for symbol in tree:
        histogram[symbol] += 1

    used = [i for i, count in enumerate(histogram) if count]
    num_codes = min(len(used), 2)
    code = used[0] if used else 0

    code_length_depths = create_huffman_tree(histogram, 5)
    code_length_symbols = convert_bit_depths_to_symbols(code_length_depths)

    _store_code_length_code(num_codes, code_length_depths, writer)

    if num_codes == 1:
        code_length_depths[code] = 0

    _store_code_lengths(tree, extra_bits, code_length_depths,
                        code_length_symbols, writer)


def build_and_store_huffman_tree(
        histogram: Sequence[int],
        writer: BitWriter) -> tuple[list[int], list[int]]:
    """Build a Huffman code for ``histogram`` and store it into ``writer``.

    Returns ``(depths, bits)``: the code length and the bit-reversed code of
    each symbol. When at most one symbol is used both are all zeros.
    """
    length = len(histogram)
    used: list[int] = []
    count = 0
    for i, value in enumerate(histogram):
        if value:
            if count < 4:
                used.append(i)
            elif count > 4:
                break
            count += 1

    max_bits = max(length - 1, 0).bit_length()

    if count <= 1:
        writer.write_bits(4, 1)
        writer.write_bits(max_bits, used[0] if used else 0)
        return [0] * length, [0] * length

    depths = create_huffman_tree(histogram, 15)
    bits = convert_bit_depths_to_symbols(depths)

    if count <= 4:
        _store_simple_huffman_tree(depths, used, max_bits, writer)
    else:
        _store_huffman_tree(depths, writer)
    return depths, bits