"""Tests for the LZ77 tokenizer and the DEFLATE length/distance tables."""

import random

import pytest

from datacompression.deflate_utils.LZ77_deflate import LEVELS, LZ77


def expand(tokens):
    """Rebuild the input from tokens, checking every back-reference."""
    out = bytearray()
    for token in tokens:
        if isinstance(token, int):
            assert 0 <= token <= 255
            out.append(token)
            continue
        distance, length = token
        assert 1 <= distance <= len(out)
        assert LZ77.MIN_MATCH <= length <= LZ77.MAX_MATCH
        for _ in range(length):
            out.append(out[-distance])
    return bytes(out)


class TestTables:
    @pytest.mark.parametrize(
        "length, expected",
        [
            (3, (257, 0, 0)),
            (10, (264, 0, 0)),
            (11, (265, 1, 0)),
            (12, (265, 1, 1)),
            (130, (280, 4, 15)),
            (227, (284, 5, 0)),
            (257, (284, 5, 30)),
            (258, (285, 0, 0)),
        ],
    )
    def test_map_length(self, length, expected):
        assert LZ77.map_length(length) == expected

    @pytest.mark.parametrize(
        "distance, expected",
        [
            (1, (0, 0, 0)),
            (4, (3, 0, 0)),
            (5, (4, 1, 0)),
            (6, (4, 1, 1)),
            (24577, (29, 13, 0)),
            (32768, (29, 13, 8191)),
        ],
    )
    def test_map_distance(self, distance, expected):
        assert LZ77.map_distance(distance) == expected

    @pytest.mark.parametrize("length", [0, 2, 259])
    def test_map_length_out_of_range(self, length):
        with pytest.raises(ValueError):
            LZ77.map_length(length)

    @pytest.mark.parametrize("distance", [0, 32769])
    def test_map_distance_out_of_range(self, distance):
        with pytest.raises(ValueError):
            LZ77.map_distance(distance)

    def test_tables_are_inverse(self):
        for length in range(3, 259):
            code, extra_bits, extra = LZ77.map_length(length)
            base, bits = LZ77.length_base(code)
            assert bits == extra_bits
            assert base + extra == length
        for distance in range(1, 32769):
            code, extra_bits, extra = LZ77.map_distance(distance)
            base, bits = LZ77.distance_base(code)
            assert bits == extra_bits
            assert base + extra == distance

    def test_invalid_codes(self):
        with pytest.raises(ValueError):
            LZ77.length_base(286)
        with pytest.raises(ValueError):
            LZ77.distance_base(30)


class TestTokenize:
    def test_empty(self):
        assert LZ77().tokenize(b"") == []

    def test_overlapping_match(self):
        assert LZ77().tokenize(b"abcabcabc") == [97, 98, 99, (3, 6)]

    def test_run_of_one_byte(self):
        tokens = LZ77().tokenize(b"\xaa" * 1024)
        assert tokens[0] == 0xAA
        assert all(t[0] == 1 for t in tokens[1:])
        assert len(tokens) == 5
        assert expand(tokens) == b"\xaa" * 1024

    def test_short_input_has_no_matches(self):
        assert LZ77().tokenize(b"ab") == [97, 98]

    @pytest.mark.parametrize("level", sorted(LEVELS))
    def test_tokens_rebuild_input(self, level):
        rng = random.Random(level)
        words = [b"deflate", b"window", b"huffman", b"block", b" ", b"\n", b"0123"]
        data = b"".join(rng.choice(words) for _ in range(300))
        tokens = LZ77(level=level).tokenize(data)
        assert expand(tokens) == data
        assert len(tokens) < len(data) // 2

    def test_lazy_matching_prefers_longer_match(self):
        data = b"abcZbcdefghQabcdefgh"
        greedy = LZ77(level=1).tokenize(data)
        lazy = LZ77(level=9).tokenize(data)
        assert expand(greedy) == data
        assert expand(lazy) == data
        assert greedy[-2:] == [(12, 3), (9, 5)]
        assert lazy[-2:] == [ord("a"), (9, 7)]

    def test_window_bounds_distances(self):
        rng = random.Random(7)
        block = bytes(rng.randrange(256) for _ in range(300))
        data = block * 3
        tokens = LZ77(window_size=256).tokenize(data)
        assert expand(tokens) == data
        assert all(t[0] <= 256 for t in tokens if isinstance(t, tuple))

        wide = LZ77().tokenize(data)
        assert any(t[0] == 300 for t in wide if isinstance(t, tuple))

    @pytest.mark.parametrize("window_size", [0, 100, 128, 65536])
    def test_invalid_window_size(self, window_size):
        with pytest.raises(ValueError, match="Window size"):
            LZ77(window_size=window_size)

    @pytest.mark.parametrize("level", [0, 10, -1])
    def test_invalid_level(self, level):
        with pytest.raises(ValueError, match="level"):
            LZ77(level=level)
