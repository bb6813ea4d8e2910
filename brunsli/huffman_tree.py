"""Construction of length-limited Huffman codes from population counts."""

from __future__ import annotations

from collections.abc import Sequence

_SENTINEL_COUNT = 0xFFFFFFFF
_MAX_BITS = 16


def _set_depths(tree: list[list[int]], root: int, depths: list[int]) -> None:
    stack = [(root, 0)]
    while stack:
        index, level = stack.pop()
        count, left, right_or_value = tree[index]
        if left >= 0:
            stack.append((left, level + 1))
            stack.append((right_or_value, level + 1))
        else:
            depths[right_or_value] = level


def create_huffman_tree(counts: Sequence[int], tree_limit: int) -> list[int]:
    """Return the code length of each symbol, none exceeding ``tree_limit``.

    Symbols with a zero count get length 0. A single used symbol gets
    length 1. Small counts are raised step by step until the tree fits.
    """
    length = len(counts)
    count_limit = 1
    while True:
        depths = [0] * length
        tree: list[list[int]] = []
        for i in reversed(range(length)):
            if counts[i]:
                tree.append([max(counts[i], count_limit - 1), -1, i])

        n = len(tree)
        if n == 0:
            return depths
        if n == 1:
            depths[tree[0][2]] = 1
            return depths

        tree.sort(key=lambda node: node[0])
        tree.append([_SENTINEL_COUNT, -1, -1])
        tree.append([_SENTINEL_COUNT, -1, -1])

        i = 0
        j = n + 1
        for _ in range(n - 1):
            if tree[i][0] <= tree[j][0]:
                left = i
                i += 1
            else:
                left = j
                j += 1
            if tree[i][0] <= tree[j][0]:
                right = i
                i += 1
            else:
                right = j
                j += 1
            parent = tree[-1]
            parent[0] = tree[left][0] + tree[right][0]
            parent[1] = left
            parent[2] = right
            tree.append([_SENTINEL_COUNT, -1, -1])

        _set_depths(tree, 2 * n - 1, depths)
        if max(depths) <= tree_limit:
            return depths
        count_limit *= 2


def _write_repetitions(previous: int, value: int, repetitions: int,
                       tree: list[int], extra: list[int]) -> None:
    if previous != value:
        tree.append(value)
        extra.append(0)
        repetitions -= 1
    if repetitions == 7:
        tree.append(value)
        extra.append(0)
        repetitions -= 1
    if repetitions < 3:
        tree.extend([value] * repetitions)
        extra.extend([0] * repetitions)
        return
    repetitions -= 3
    codes: list[int] = []
    while True:
        codes.append(repetitions & 0x3)
        repetitions >>= 2
        if repetitions == 0:
            break
        repetitions -= 1
    tree.extend([16] * len(codes))
    extra.extend(reversed(codes))


def _write_zero_repetitions(repetitions: int, tree: list[int],
                            extra: list[int]) -> None:
    if repetitions == 11:
        tree.append(0)
        extra.append(0)
        repetitions -= 1
    if repetitions < 3:
        tree.extend([0] * repetitions)
        extra.extend([0] * repetitions)
        return
    repetitions -= 3
    codes: list[int] = []
    while True:
        codes.append(repetitions & 0x7)
        repetitions >>= 3
        if repetitions == 0:
            break
        repetitions -= 1
    tree.extend([17] * len(codes))
    extra.extend(reversed(codes))


def _runs(depths: Sequence[int]):
    i = 0
    while i < len(depths):
        value = depths[i]
        k = i + 1
        while k < len(depths) and depths[k] == value:
            k += 1
        yield value, k - i
        i = k


def _decide_over_rle_use(depths: Sequence[int]) -> tuple[bool, bool]:
    total_reps_zero = 0
    total_reps_non_zero = 0
    count_reps_zero = 1
    count_reps_non_zero = 1
    for value, reps in _runs(depths):
        if reps >= 3 and value == 0:
            total_reps_zero += reps
            count_reps_zero += 1
        if reps >= 4 and value != 0:
            total_reps_non_zero += reps
            count_reps_non_zero += 1
    return (total_reps_non_zero > count_reps_non_zero * 2,
            total_reps_zero > count_reps_zero * 2)


def write_huffman_tree(depths: Sequence[int]) -> tuple[list[int], list[int]]:
    """Encode code lengths as code-length symbols plus their extra bits.

    Symbol 16 repeats the previous non-zero length, symbol 17 repeats zero.
    Returns ``(tree, extra_bits)`` of equal length.
    """
    new_length = len(depths)
    while new_length and depths[new_length - 1] == 0:
        new_length -= 1
    trimmed = list(depths[:new_length])

    use_rle_non_zero = use_rle_zero = False
    if len(depths) > 50:
        use_rle_non_zero, use_rle_zero = _decide_over_rle_use(trimmed)

    tree: list[int] = []
    extra: list[int] = []
    previous = 8
    i = 0
    while i < new_length:
        value = trimmed[i]
        reps = 1
        if (value != 0 and use_rle_non_zero) or (value == 0 and use_rle_zero):
            k = i + 1
            while k < new_length and trimmed[k] == value:
                k += 1
            reps = k - i
        if value == 0:
            _write_zero_repetitions(reps, tree, extra)
        else:
            _write_repetitions(previous, value, reps, tree, extra)
            previous = value
        i += reps
    return tree, extra


def _reverse_bits(num_bits: int, bits: int) -> int:
    result = 0
    for _ in range(num_bits):
        result = (result << 1) | (bits & 1)
        bits >>= 1
    return result


def convert_bit_depths_to_symbols(depths: Sequence[int]) -> list[int]:
    """Return the canonical, bit-reversed code of each symbol (0 if unused)."""
    bl_count = [0] * _MAX_BITS
    for depth in depths:
        bl_count[depth] += 1
    bl_count[0] = 0
    next_code = [0] * _MAX_BITS
    code = 0
    for i in range(1, _MAX_BITS):
        code = (code + bl_count[i - 1]) << 1
        next_code[i] = code & 0xFFFF
    bits = [0] * len(depths)
    for i, depth in enumerate(depths):
        if depth:
            bits[i] = _reverse_bits(depth, next_code[depth])
            next_code[depth] = (next_code[depth] + 1) & 0xFFFF
    return bits