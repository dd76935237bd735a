"""Typed errors for the DEFLATE encoder and decoder.

Policy:
- Errors are small and boring.
- The decoder never returns partial output; it raises one of these instead.
"""

from __future__ import annotations


class DeflateError(Exception):
    """Base error for datacompression."""


class EncodingFailure(DeflateError):
    """The output sink refused the compressed bytes."""


class CorruptStreamFailure(DeflateError, ValueError):
    """Malformed header, invalid back-reference or trailing garbage."""


class TruncatedStreamFailure(CorruptStreamFailure):
    """Input ended before the final end-of-block marker."""
