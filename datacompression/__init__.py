"""Lossless byte compression in the raw DEFLATE format (RFC 1951)."""

from datacompression.compressor_ABC import Compressor, compression_ratio
from datacompression.deflate import (
    BEST_COMPRESSION,
    BEST_SPEED,
    DEFAULT_COMPRESSION,
    NO_COMPRESSION,
    Deflate,
    compress,
    decompress,
)
from datacompression.errors import (
    CorruptStreamFailure,
    DeflateError,
    EncodingFailure,
    TruncatedStreamFailure,
)

__version__ = "0.1.0"

__all__ = [
    "BEST_COMPRESSION",
    "BEST_SPEED",
    "DEFAULT_COMPRESSION",
    "NO_COMPRESSION",
    "Compressor",
    "CorruptStreamFailure",
    "Deflate",
    "DeflateError",
    "EncodingFailure",
    "TruncatedStreamFailure",
    "compress",
    "compression_ratio",
    "decompress",
]
