"""
Implementation of the LZ77 match finder with DEFLATE-specific optimizations.
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# A token is either a literal byte or a (distance, length) back-reference
Token = Union[int, Tuple[int, int]]


class LevelConfig(NamedTuple):
    good_length: int  # shorten the lazy search above this match length
    max_lazy: int  # no lazy search for matches this long
    nice_length: int  # stop searching once a match this long is found
    max_chain: int  # candidates examined per position
    lazy: bool


LEVELS: Dict[int, LevelConfig] = {
    1: LevelConfig(4, 4, 8, 4, False),
    2: LevelConfig(4, 5, 16, 8, False),
    3: LevelConfig(4, 6, 32, 32, False),
    4: LevelConfig(4, 4, 16, 16, True),
    5: LevelConfig(8, 16, 32, 32, True),
    6: LevelConfig(8, 16, 128, 128, True),
    7: LevelConfig(8, 32, 128, 256, True),
    8: LevelConfig(32, 128, 258, 1024, True),
    9: LevelConfig(32, 258, 258, 4096, True),
}


class LZ77:
    """
    LZ77 tokenizer for DEFLATE.
    Turns a byte buffer into literals and (distance, length) back-references
    found in a sliding window through hash chains keyed on 3-byte prefixes.
    """

    MAX_WINDOW_SIZE = 32768
    MIN_WINDOW_SIZE = 256
    MIN_MATCH = 3
    MAX_MATCH = 258

    _length_table = [
        (257, 3, 0),
        (258, 4, 0),
        (259, 5, 0),
        (260, 6, 0),
        (261, 7, 0),
        (262, 8, 0),
        (263, 9, 0),
        (264, 10, 0),
        (265, 11, 1),
        (266, 13, 1),
        (267, 15, 1),
        (268, 17, 1),
        (269, 19, 2),
        (270, 23, 2),
        (271, 27, 2),
        (272, 31, 2),
        (273, 35, 3),
        (274, 43, 3),
        (275, 51, 3),
        (276, 59, 3),
        (277, 67, 4),
        (278, 83, 4),
        (279, 99, 4),
        (280, 115, 4),
        (281, 131, 5),
        (282, 163, 5),
        (283, 195, 5),
        (284, 227, 5),
        (285, 258, 0),
    ]

    _distance_table = [
        (0, 1, 0),
        (1, 2, 0),
        (2, 3, 0),
        (3, 4, 0),
        (4, 5, 1),
        (5, 7, 1),
        (6, 9, 2),
        (7, 13, 2),
        (8, 17, 3),
        (9, 25, 3),
        (10, 33, 4),
        (11, 49, 4),
        (12, 65, 5),
        (13, 97, 5),
        (14, 129, 6),
        (15, 193, 6),
        (16, 257, 7),
        (17, 385, 7),
        (18, 513, 8),
        (19, 769, 8),
        (20, 1025, 9),
        (21, 1537, 9),
        (22, 2049, 10),
        (23, 3073, 10),
        (24, 4097, 11),
        (25, 6145, 11),
        (26, 8193, 12),
        (27, 12289, 12),
        (28, 16385, 13),
        (29, 24577, 13),
    ]

    def __init__(self, window_size: Optional[int] = None, level: int = 9) -> None:
        """
        Initialize LZ77 tokenizer with specified window size and effort level.

        Args:
            window_size: Optional window size for the sliding window, a power of two
            level: Match finding effort, 1 (fastest) to 9 (best)
        """
        if window_size is None:
            window_size = self.MAX_WINDOW_SIZE
        if window_size & (window_size - 1) != 0 or not (
            self.MIN_WINDOW_SIZE <= window_size <= self.MAX_WINDOW_SIZE
        ):
            raise ValueError(
                f"Window size must be a power of two between "
                f"{self.MIN_WINDOW_SIZE} and {self.MAX_WINDOW_SIZE}, got {window_size}"
            )
        if level not in LEVELS:
            raise ValueError(f"LZ77 level must be 1..9, got {level}")
        self.window_size = window_size
        self.config = LEVELS[level]

    def find_match(
        self,
        data: bytes,
        current_position: int,
        hash_table: Dict[bytes, List[int]],
        max_chain: Optional[int] = None,
    ) -> Optional[Tuple[int, int]]:
        """
        Find the longest match for data[current_position:] among earlier positions.
        Candidates are visited newest first, so among equally long matches the
        nearest one wins.

        Args:
            data: Input data to search in
            current_position: Current position in the data
            hash_table: Positions already seen, keyed on their 3-byte prefix
            max_chain: Optional override of the number of candidates to examine

        Returns:
            Tuple of (distance, length) if a match is found, None otherwise
        """
        if current_position + self.MIN_MATCH > len(data):
            return None

        candidates = hash_table.get(
            data[current_position : current_position + self.MIN_MATCH]
        )
        if not candidates:
            return None

        if max_chain is None:
            max_chain = self.config.max_chain
        limit = min(self.MAX_MATCH, len(data) - current_position)
        min_valid_candidate_pos = current_position - self.window_size

        best_match_distance = 0
        best_match_length = 0

        for candidate_position in reversed(candidates):
            if candidate_position < min_valid_candidate_pos or max_chain <= 0:
                break
            max_chain -= 1

            # a longer match must also differ from the best one at its end
            if (
                best_match_length
                and data[candidate_position + best_match_length]
                != data[current_position + best_match_length]
            ):
                continue

            match_length = 0
            while (
                match_length < limit
                and data[candidate_position + match_length]
                == data[current_position + match_length]
            ):
                match_length += 1

            if match_length > best_match_length:
                best_match_distance = current_position - candidate_position
                best_match_length = match_length
                if (
                    best_match_length >= self.config.nice_length
                    or best_match_length == limit
                ):
                    break

        if best_match_length >= self.MIN_MATCH:
            return (best_match_distance, best_match_length)
        return None

    def tokenize(self, data: bytes) -> List[Token]:
        """
        Split data into literals and back-references.

        Args:
            data: Input bytes

        Returns:
            List of tokens; ints are literal bytes, tuples are (distance, length)
        """
        data = bytes(data)
        n = len(data)
        tokens: List[Token] = []
        hash_table: Dict[bytes, List[int]] = {}
        keep = max(self.config.max_chain, 64)
        inserted = 0

        def insert_until(end: int) -> None:
            nonlocal inserted
            while inserted < end:
                if inserted + self.MIN_MATCH <= n:
                    key = data[inserted : inserted + self.MIN_MATCH]
                    chain = hash_table.setdefault(key, [])
                    chain.append(inserted)
                    if len(chain) > 2 * keep:
                        del chain[:-keep]
                inserted += 1

        i = 0
        while i < n:
            insert_until(i)
            match = self.find_match(data, i, hash_table)

            if (
                match
                and self.config.lazy
                and match[1] < self.config.max_lazy
                and i + 1 < n
            ):
                insert_until(i + 1)
                chain = self.config.max_chain
                if match[1] >= self.config.good_length:
                    chain >>= 2
                next_match = self.find_match(data, i + 1, hash_table, chain)
                if next_match and next_match[1] > match[1]:
                    tokens.append(data[i])
                    i += 1
                    continue

            if match:
                tokens.append(match)
                i += match[1]
            else:
                tokens.append(data[i])
                i += 1

        logger.debug("Tokenized %d bytes into %d tokens", n, len(tokens))
        return tokens

    @staticmethod
    def map_distance(dist: int) -> Tuple[int, int, int]:
        """
        Map a distance value to its DEFLATE code and extra bits.

        Args:
            dist: Distance value to map, 1..32768

        Returns:
            Tuple of (code, extra_bits, extra_value)
        """
        if not 1 <= dist <= LZ77.MAX_WINDOW_SIZE:
            raise ValueError(f"Distance {dist} out of range")
        for code, base_dist, extra_bits in LZ77._distance_table:
            if dist <= base_dist + (1 << extra_bits) - 1:
                return code, extra_bits, dist - base_dist
        raise ValueError(f"Distance {dist} out of range")

    @staticmethod
    def map_length(length: int) -> Tuple[int, int, int]:
        """
        Map a length value to its DEFLATE code and extra bits.

        Args:
            length: Length value to map, 3..258

        Returns:
            Tuple of (code, extra_bits, extra_value)
        """
        if not LZ77.MIN_MATCH <= length <= LZ77.MAX_MATCH:
            raise ValueError(f"Length {length} out of range")
        if length == LZ77.MAX_MATCH:
            return 285, 0, 0
        for code, base_len, extra_bits in LZ77._length_table:
            if length <= base_len + (1 << extra_bits) - 1:
                return code, extra_bits, length - base_len
        raise ValueError(f"Length {length} out of range")

    @staticmethod
    def length_base(length_code: int) -> Tuple[int, int]:
        """Return (base_length, extra_bits) for a length code 257..285."""
        if not 257 <= length_code <= 285:
            raise ValueError(f"Invalid length code {length_code}")
        _, base_len, extra_bits = LZ77._length_table[length_code - 257]
        return base_len, extra_bits

    @staticmethod
    def distance_base(distance_code: int) -> Tuple[int, int]:
        """Return (base_distance, extra_bits) for a distance code 0..29."""
        if not 0 <= distance_code <= 29:
            raise ValueError(f"Invalid distance code {distance_code}")
        _, base_dist, extra_bits = LZ77._distance_table[distance_code]
        return base_dist, extra_bits
