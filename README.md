# brunsli

Building blocks of the Brunsli compact JPEG format, in pure Python with no
third-party dependencies:

- `brunsli.jpeg_reader` – a JPEG parser (`read_jpeg`) that turns a baseline or
  progressive JPEG file into a `JpegData` structure: marker order, APP and COM
  segments, quantization and Huffman tables, restart interval, scan
  parameters, DCT coefficients, padding bits and any bytes between markers or
  after the end marker;
- `brunsli.jpeg_data` – the data model (`JpegData`, `JpegComponent`,
  `QuantTable`, `HuffmanCode`, `ScanInfo`, `ComponentScanInfo`,
  `ExtraZeroRun`), the `ReadMode` enum, and `JpegFormatError` with its
  `ErrorCode`;
- `brunsli.jpeg_markers` – parsers for single marker segments
  (`process_sof`, `process_sos`, `process_dht`, `process_dqt`, `process_dri`,
  `process_app`, `process_com`);
- `brunsli.jpeg_scan` – entropy-coded scan decoding (`process_scan`,
  `ScanBitReader`, `huff_extend`);
- `brunsli.jpeg_huffman_decode` – two-level JPEG Huffman lookup tables
  (`new_lut`, `build_jpeg_huffman_table`, `HuffmanTableEntry`);
- `brunsli.huffman_tree` – length-limited Huffman code construction
  (`create_huffman_tree`), the run-length code-length representation
  (`write_huffman_tree`) and canonical code words
  (`convert_bit_depths_to_symbols`);
- `brunsli.huffman_encode` – `build_and_store_huffman_tree`, which builds a
  code for a histogram and writes its compact description;
- `brunsli.write_bits` – `BitWriter`, a least-significant-bit-first bit
  writer over a fixed-capacity buffer.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Reading a JPEG

```python
from brunsli.jpeg_data import JpegFormatError, ReadMode
from brunsli.jpeg_reader import read_jpeg

with open("photo.jpg", "rb") as f:
    data = f.read()

try:
    jpg = read_jpeg(data, ReadMode.ALL)
except JpegFormatError as err:
    print("not a usable JPEG:", err.code)
else:
    print(jpg.width, jpg.height, len(jpg.components))
```

`ReadMode.ALL` (the default) reads everything, coefficients included.
`ReadMode.HEADER` stops right after the frame header. `ReadMode.TABLES` reads
the tables but skips APP and COM segments and does not decode scan data.
When the input is rejected, `JpegFormatError` (a `ValueError`) is raised; its
`code` is an `ErrorCode` member naming the reason.

## Huffman codes

```python
from brunsli.huffman_tree import create_huffman_tree, convert_bit_depths_to_symbols
from brunsli.huffman_encode import build_and_store_huffman_tree
from brunsli.write_bits import BitWriter

depths = create_huffman_tree([1, 2, 4, 8, 16, 32], 6)   # [5, 5, 4, 3, 2, 1]
codes = convert_bit_depths_to_symbols(depths)

writer = BitWriter(1024)
depths, bits = build_and_store_huffman_tree([10, 0, 3, 7, 1, 1], writer)
payload = writer.to_bytes()
```

`build_and_store_huffman_tree` returns the code length and the bit-reversed
code word of each symbol and writes the tree description to the writer. With
at most one used symbol it writes a one-symbol description and returns all
zeros. `BitWriter.write_bits` takes at most 56 bits per call and raises
`OverflowError` when the capacity is exceeded.

## What this package does not do

There is no command-line tool, no encoder that produces a complete Brunsli
stream from `JpegData`, no Brunsli decoder, and no writer that turns
`JpegData` back into JPEG bytes. The package parses JPEG files and provides
the Huffman and bit-level pieces on which such tools are built.