"""Decoder behaviour on malformed, truncated and padded input."""

import random

import pytest

from datacompression import (
    CorruptStreamFailure,
    DeflateError,
    TruncatedStreamFailure,
    compress,
    decompress,
)
from datacompression.deflate import FIXED_DIST_TABLE, FIXED_LIT_LEN_TABLE
from datacompression.deflate_utils.bit_writer import BitWriter


def fixed_block(symbols):
    """
    Build a final fixed-Huffman block from ("lit", symbol), ("dist", code) and
    ("extra", value, bits) entries.
    """
    writer = BitWriter()
    writer.write_bits_lsb(1, 1)
    writer.write_bits_lsb(1, 2)
    for entry in symbols:
        if entry[0] == "lit":
            FIXED_LIT_LEN_TABLE.encode(writer, entry[1])
        elif entry[0] == "dist":
            FIXED_DIST_TABLE.encode(writer, entry[1])
        else:
            writer.write_bits_lsb(entry[1], entry[2])
    return writer.to_bytes()


def dynamic_header(cl_lengths, hlit=257, hdist=1):
    """Final dynamic block header with HCLEN=4 (code lengths for 16, 17, 18, 0)."""
    writer = BitWriter()
    writer.write_bits_lsb(1, 1)
    writer.write_bits_lsb(2, 2)
    writer.write_bits_lsb(hlit - 257, 5)
    writer.write_bits_lsb(hdist - 1, 5)
    writer.write_bits_lsb(0, 4)
    for length in cl_lengths:
        writer.write_bits_lsb(length, 3)
    return writer


class TestExceptionHierarchy:
    def test_truncated_is_corrupt(self):
        assert issubclass(TruncatedStreamFailure, CorruptStreamFailure)
        assert issubclass(CorruptStreamFailure, DeflateError)
        assert issubclass(CorruptStreamFailure, ValueError)


class TestTrailingData:
    def test_trailing_bytes_rejected(self):
        with pytest.raises(CorruptStreamFailure, match="unexpected content"):
            decompress(compress(b"hello") + b"\x00")

    def test_trailing_bytes_after_stored_block(self):
        with pytest.raises(CorruptStreamFailure, match="unexpected content"):
            decompress(compress(b"hello", level=0) + b"junk")


class TestTruncation:
    def test_empty_input(self):
        with pytest.raises(TruncatedStreamFailure):
            decompress(b"")

    @pytest.mark.parametrize("level", [0, 1, 9])
    def test_every_prefix_is_truncated(self, level):
        data = compress(b"hello world, hello deflate " * 10, level=level)
        for i in range(len(data)):
            with pytest.raises(TruncatedStreamFailure):
                decompress(data[:i])

    def test_missing_final_block(self):
        # a non-final empty stored block and nothing after it
        with pytest.raises(TruncatedStreamFailure):
            decompress(b"\x00\x00\x00\xff\xff")


class TestStoredBlocks:
    def test_hand_written_stored_block(self):
        assert decompress(b"\x01\x05\x00\xfa\xff" + b"hello") == b"hello"

    def test_bad_nlen(self):
        with pytest.raises(CorruptStreamFailure, match="stored block lengths"):
            decompress(b"\x01\x05\x00\x00\x00" + b"hello")

    def test_stored_data_shorter_than_len(self):
        with pytest.raises(TruncatedStreamFailure):
            decompress(b"\x01\x05\x00\xfa\xff" + b"hel")


class TestFixedBlocks:
    def test_unknown_block_type(self):
        with pytest.raises(CorruptStreamFailure, match="Unknown block type"):
            decompress(b"\x07")

    def test_overlapping_copy(self):
        # "a" then copy 3 bytes from distance 1
        data = fixed_block([("lit", ord("a")), ("lit", 257), ("dist", 0), ("lit", 256)])
        assert decompress(data) == b"aaaa"

    def test_copy_with_extra_bits(self):
        # "ab" then length 11 (code 265, one extra bit 0) from distance 2
        data = fixed_block(
            [
                ("lit", ord("a")),
                ("lit", ord("b")),
                ("lit", 265),
                ("extra", 0, 1),
                ("dist", 1),
                ("lit", 256),
            ]
        )
        assert decompress(data) == b"ab" * 6 + b"a"

    def test_distance_beyond_output(self):
        # distance code 1 is distance 2, only one byte decoded so far
        data = fixed_block([("lit", ord("a")), ("lit", 257), ("dist", 1), ("lit", 256)])
        with pytest.raises(CorruptStreamFailure, match="exceeds"):
            decompress(data)

    def test_distance_before_any_output(self):
        data = fixed_block([("lit", 257), ("dist", 0), ("lit", 256)])
        with pytest.raises(CorruptStreamFailure, match="exceeds"):
            decompress(data)

    @pytest.mark.parametrize("code", [30, 31])
    def test_invalid_distance_code(self, code):
        data = fixed_block([("lit", ord("a")), ("lit", 257), ("dist", code), ("lit", 256)])
        with pytest.raises(CorruptStreamFailure, match="Invalid distance code"):
            decompress(data)

    @pytest.mark.parametrize("symbol", [286, 287])
    def test_invalid_length_code(self, symbol):
        data = fixed_block([("lit", ord("a")), ("lit", symbol), ("dist", 0), ("lit", 256)])
        with pytest.raises(CorruptStreamFailure, match="Invalid length code"):
            decompress(data)

    def test_missing_end_of_block_is_truncated(self):
        data = fixed_block([("lit", ord("a")), ("lit", ord("b"))])
        with pytest.raises(TruncatedStreamFailure):
            decompress(data)


class TestDynamicBlocks:
    def test_missing_end_of_block_code(self):
        # code-length alphabet holds only symbol 0, every length decodes as 0
        writer = dynamic_header([0, 0, 0, 1])
        for _ in range(257 + 1):
            writer.write_bits_msb(0, 1)
        with pytest.raises(CorruptStreamFailure, match="Missing end-of-block"):
            decompress(writer.to_bytes())

    def test_over_subscribed_code_length_code(self):
        writer = dynamic_header([1, 1, 1, 0])
        with pytest.raises(CorruptStreamFailure, match="Over-subscribed"):
            decompress(writer.to_bytes() + b"\x00")

    def test_incomplete_code_length_code(self):
        writer = dynamic_header([1, 2, 0, 0])
        with pytest.raises(CorruptStreamFailure, match="Incomplete"):
            decompress(writer.to_bytes() + b"\x00")

    def test_too_many_length_codes(self):
        writer = dynamic_header([0, 0, 0, 1], hlit=287)
        with pytest.raises(CorruptStreamFailure, match="Invalid block parameters"):
            decompress(writer.to_bytes() + b"\x00\x00")

    def test_repeat_without_previous_length(self):
        # symbols 0 and 16 get codes "0" and "1"
        writer = dynamic_header([1, 0, 0, 1])
        writer.write_bits_msb(1, 1)
        writer.write_bits_lsb(0, 2)
        with pytest.raises(CorruptStreamFailure, match="no previous length"):
            decompress(writer.to_bytes())

    def test_repeat_overflows_table(self):
        # symbols 0 and 18 get codes "0" and "1"; 2 * 138 zeros > 258 lengths
        writer = dynamic_header([0, 0, 1, 1])
        for _ in range(2):
            writer.write_bits_msb(1, 1)
            writer.write_bits_lsb(127, 7)
        with pytest.raises(CorruptStreamFailure, match="overflows"):
            decompress(writer.to_bytes())


class TestBitFlips:
    def test_flipped_bits_never_escape_the_error_hierarchy(self):
        rng = random.Random(1951)
        original = b"".join(
            rng.choice([b"stream ", b"window ", b"huffman ", b"literal\n"])
            for _ in range(200)
        )
        compressed = bytearray(compress(original))
        for _ in range(300):
            damaged = bytearray(compressed)
            bit = rng.randrange(len(damaged) * 8)
            damaged[bit // 8] ^= 1 << (bit % 8)
            try:
                result = decompress(bytes(damaged))
            except CorruptStreamFailure:
                continue
            assert isinstance(result, bytes)
