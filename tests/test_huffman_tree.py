from brunsli.huffman_tree import (
    convert_bit_depths_to_symbols,
    create_huffman_tree,
    write_huffman_tree,
)


def test_simple():
    depth = create_huffman_tree([1, 2, 4, 8, 16, 32], 6)
    assert depth[5] == 1
    assert depth[4] == 2
    assert depth[3] == 3
    assert depth[2] == 4
    assert depth[1] == 5
    assert depth[0] == 5


def test_limited():
    histogram = [1, 2, 4, 8, 16, 32, 64, 128]
    depth = create_huffman_tree(histogram, 16)
    assert depth[1] > 5
    assert depth[0] > 5
    depth = create_huffman_tree(histogram, 5)
    assert depth[1] == 5
    assert depth[0] == 5


def test_simple_literal():
    depth = create_huffman_tree([0, 10, 0, 0], 10)
    assert depth[1] == 1


def test_stable_bit_depth():
    depth = create_huffman_tree([1, 1, 1, 1, 1], 10)
    assert depth == [2, 2, 2, 3, 3]


def test_kraft_equality_holds():
    histogram = [5, 0, 3, 9, 1, 1, 0, 20, 7]
    depth = create_huffman_tree(histogram, 15)
    assert sum(2.0 ** -d for d in depth if d) == 1.0
    assert all((d == 0) == (c == 0) for d, c in zip(depth, histogram))


def test_convert_bit_depths_to_symbols():
    assert convert_bit_depths_to_symbols([1, 0, 2, 2]) == [0, 0, 1, 3]


def test_convert_bit_depths_to_symbols2():
    assert convert_bit_depths_to_symbols([0, 0, 3, 3, 3, 1]) == [0, 0, 1, 5, 3, 0]


def test_write_huffman_tree():
    tree, extra = write_huffman_tree([1, 0, 0, 2])
    assert len(tree) == 4
    assert len(extra) == 4


def test_write_huffman_tree_sparse():
    depth = [0] * (286 + 30)
    depth[0] = 1
    depth[256] = 2
    depth[257] = 3
    depth[265] = 3
    depth[286 + 0] = 1
    depth[286 + 3] = 1

    tree, extra = write_huffman_tree(depth)
    assert len(tree) == 14

    assert tree[0] == 1
    assert tree[1] == 17
    assert tree[2] == 17
    assert tree[3] == 17
    assert extra[1] == 2
    assert extra[2] == 6
    assert extra[3] == 4

    assert tree[4] == 2
    assert tree[5] == 3
    assert tree[6] == 17
    assert extra[6] + 3 == 7
    assert tree[7] == 3
    assert tree[8] == 17
    assert tree[9] == 17
    assert extra[8] == 1
    assert extra[9] == 1
    assert tree[10] == 1
    assert tree[11] == 0
    assert tree[12] == 0
    assert tree[13] == 1

    histogram = [0] * 19
    for symbol in tree:
        histogram[symbol] += 1
    histogram[0] += len(depth) - len(tree)
    code_length_bitdepth = create_huffman_tree(histogram, 7)
    assert all(d < 8 for d in code_length_bitdepth)
    symbols = convert_bit_depths_to_symbols(code_length_bitdepth)
    assert len(symbols) == 19


def test_write_huffman_tree_many_zeros():
    depth = [1] + [0] * 148 + [2]
    tree, _ = write_huffman_tree(depth)
    assert tree[1] == 17
    assert tree[2] == 17
    assert tree[3] == 17
    assert len(tree) == 5


def test_write_huffman_tree_short_stripe_of_non_zeros():
    depth = [9] + [8] * 5 + [10]
    tree, _ = write_huffman_tree(depth)
    assert len(tree) <= 7
    assert tree[:7] == [9, 8, 8, 8, 8, 8, 10]


def test_write_huffman_tree_many_non_zeros():
    depth = [9] + [8] * 200 + [10]
    tree, _ = write_huffman_tree(depth)
    assert len(tree) <= 60
    assert tree[0] == 9
    assert tree[1] == 8
    assert tree[2] == 16
    assert tree[-1] == 10


def test_trailing_zeros_dropped():
    tree, extra = write_huffman_tree([3, 3, 0, 0, 0, 0])
    assert tree == [3, 3]
    assert extra == [0, 0]