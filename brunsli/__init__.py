"""JPEG parsing, Huffman code construction and bit writing for the Brunsli format."""

__version__ = "0.1.0"

__all__ = [
    "huffman_encode",
    "huffman_tree",
    "jpeg_data",
    "jpeg_huffman_decode",
    "jpeg_markers",
    "jpeg_reader",
    "jpeg_scan",
    "write_bits",
]