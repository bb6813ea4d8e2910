"""In-memory model of a parsed JPEG file and the errors raised while parsing."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

DCT_BLOCK_SIZE = 64
MAX_COMPONENTS = 4
MAX_QUANT_TABLES = 4
MAX_HUFFMAN_TABLES = 4
MAX_DHT_MARKERS = 512
MAX_DIM_PIXELS = 65535
MAX_SAMPLING = 15
MAX_NUM_BLOCKS = 1 << 21
HUFFMAN_MAX_BIT_LENGTH = 16
HUFFMAN_ALPHABET_SIZE = 256
DC_ALPHABET_SIZE = 12

# Zig-zag position to natural (row-major) position; padded so that indices
# slightly past the end of a band still land inside the block.
NATURAL_ORDER = (
    0, 1, 8, 16, 9, 2, 3, 10,
    17, 24, 32, 25, 18, 11, 4, 5,
    12, 19, 26, 33, 40, 48, 41, 34,
    27, 20, 13, 6, 7, 14, 21, 28,
    35, 42, 49, 56, 57, 50, 43, 36,
    29, 22, 15, 23, 30, 37, 44, 51,
    58, 59, 52, 45, 38, 31, 39, 46,
    53, 60, 61, 54, 47, 55, 62, 63,
) + (63,) * 16


class ErrorCode(enum.Enum):
    """Reasons a JPEG stream is rejected."""

    UNEXPECTED_EOF = enum.auto()
    MARKER_BYTE_NOT_FOUND = enum.auto()
    SOI_NOT_FOUND = enum.auto()
    SOF_NOT_FOUND = enum.auto()
    UNSUPPORTED_MARKER = enum.auto()
    WRONG_MARKER_SIZE = enum.auto()
    INVALID_MARKER_LEN = enum.auto()
    DUPLICATE_SOF = enum.auto()
    DUPLICATE_DRI = enum.auto()
    DUPLICATE_COMPONENT_ID = enum.auto()
    COMPONENT_NOT_FOUND = enum.auto()
    INVALID_PRECISION = enum.auto()
    INVALID_HEIGHT = enum.auto()
    INVALID_WIDTH = enum.auto()
    INVALID_NUMCOMP = enum.auto()
    INVALID_SAMP_FACTOR = enum.auto()
    INVALID_SAMPLING_FACTORS = enum.auto()
    IMAGE_TOO_LARGE = enum.auto()
    INVALID_COMPS_IN_SCAN = enum.auto()
    INVALID_HUFFMAN_INDEX = enum.auto()
    INVALID_HUFFMAN_CODE = enum.auto()
    INVALID_START_OF_SCAN = enum.auto()
    INVALID_END_OF_SCAN = enum.auto()
    HUFFMAN_TABLE_NOT_FOUND = enum.auto()
    HUFFMAN_TABLE_ERROR = enum.auto()
    EMPTY_DHT = enum.auto()
    EMPTY_DQT = enum.auto()
    INVALID_QUANT_TBL_PRECISION = enum.auto()
    INVALID_QUANT_TBL_INDEX = enum.auto()
    INVALID_QUANT_VAL = enum.auto()
    QUANT_TABLE_NOT_FOUND = enum.auto()
    INVALID_SYMBOL = enum.auto()
    NON_REPRESENTABLE_DC_COEFF = enum.auto()
    NON_REPRESENTABLE_AC_COEFF = enum.auto()
    OUT_OF_BAND_COEFF = enum.auto()
    EOB_RUN_TOO_LONG = enum.auto()
    EXTRA_ZERO_RUN = enum.auto()
    INVALID_SCAN = enum.auto()
    WRONG_RESTART_MARKER = enum.auto()
    OVERLAPPING_SCANS = enum.auto()
    INVALID_SCAN_ORDER = enum.auto()


class JpegFormatError(ValueError):
    """Raised when JPEG input is malformed or unsupported."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ReadMode(enum.Enum):
    """How much of the JPEG stream to parse."""

    HEADER = enum.auto()
    TABLES = enum.auto()
    ALL = enum.auto()


@dataclass
class JpegComponent:
    """One colour component of the frame."""

    id: int = 0
    h_samp_factor: int = 1
    v_samp_factor: int = 1
    quant_idx: int = 0
    width_in_blocks: int = 0
    height_in_blocks: int = 0
    num_blocks: int = 0
    coeffs: list[int] = field(default_factory=list)


@dataclass
class QuantTable:
    """A quantisation table; values are in natural order."""

    values: list[int] = field(default_factory=lambda: [0] * DCT_BLOCK_SIZE)
    precision: int = 0
    index: int = 0
    is_last: bool = True


@dataclass
class HuffmanCode:
    """A Huffman table as declared in a DHT segment."""

    counts: list[int] = field(
        default_factory=lambda: [0] * (HUFFMAN_MAX_BIT_LENGTH + 1))
    values: list[int] = field(
        default_factory=lambda: [0] * (HUFFMAN_ALPHABET_SIZE + 1))
    slot_id: int = 0
    is_last: bool = True


@dataclass
class ComponentScanInfo:
    """A component's entry in a scan header."""

    comp_idx: int = 0
    dc_tbl_idx: int = 0
    ac_tbl_idx: int = 0


@dataclass
class ExtraZeroRun:
    """Block with redundant zero-run symbols before its end-of-block."""

    block_idx: int = 0
    num_extra_zero_runs: int = 0


@dataclass
class ScanInfo:
    """Parameters of one scan and the quirks met while decoding it."""

    ss: int = 0
    se: int = 63
    ah: int = 0
    al: int = 0
    components: list[ComponentScanInfo] = field(default_factory=list)
    reset_points: list[int] = field(default_factory=list)
    extra_zero_runs: list[ExtraZeroRun] = field(default_factory=list)

    @property
    def num_components(self) -> int:
        return len(self.components)


@dataclass
class JpegData:
    """Everything needed to reproduce a JPEG file byte for byte."""

    width: int = 0
    height: int = 0
    restart_interval: int = 0
    max_h_samp_factor: int = 1
    max_v_samp_factor: int = 1
    mcu_rows: int = 0
    mcu_cols: int = 0
    app_data: list[bytes] = field(default_factory=list)
    com_data: list[bytes] = field(default_factory=list)
    quant: list[QuantTable] = field(default_factory=list)
    huffman_code: list[HuffmanCode] = field(default_factory=list)
    components: list[JpegComponent] = field(default_factory=list)
    scan_info: list[ScanInfo] = field(default_factory=list)
    marker_order: list[int] = field(default_factory=list)
    inter_marker_data: list[bytes] = field(default_factory=list)
    tail_data: bytes = b""
    padding_bits: list[int] = field(default_factory=list)
    has_zero_padding_bit: bool = False
    error: ErrorCode | None = None