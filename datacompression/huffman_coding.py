"""
Huffman coding for DEFLATE -
code lengths from symbol frequencies, canonical codes
and the decoding tables used by the inflater.
"""

import heapq
import logging
from collections.abc import Mapping

from datacompression.deflate_utils.bit_reader import BitReader
from datacompression.deflate_utils.bit_writer import BitWriter
from datacompression.errors import CorruptStreamFailure

logger = logging.getLogger(__name__)


class Node:
    """
    Class object for Node in Huffman's Tree
    """

    def __init__(self, value, val_freq: int, order: int):
        """
        Function initializes the structure of a node.

        :param value: value held by node
        :param val_freq: int, the frequency in our data for this value
        :param order: int, tie breaker that keeps tree shape deterministic
        """
        self.left = None
        self.right = None
        self.value = value
        self.val_freq = val_freq
        self.order = order

    def __lt__(self, val):
        return (self.val_freq, self.order) < (val.val_freq, val.order)


class HuffmanTree:
    """
    Class object for Huffman Tree - builds prefix codes from
    a frequency dictionary and turns them into code lengths.
    """

    def __init__(self):
        self.res_codes = {}
        self.root = None

    @classmethod
    def build_from_freq(cls, freq_dict: Mapping[int, int]) -> "HuffmanTree":
        """
        Build a Huffman tree from a {symbol: frequency} mapping and
        generate the prefix codes. Symbols with zero frequency are skipped.
        """
        tree = cls()
        nodes = [
            Node(val, freq, order)
            for order, (val, freq) in enumerate(sorted(freq_dict.items()))
            if freq > 0
        ]
        if not nodes:
            return tree

        order = len(nodes)
        heapq.heapify(nodes)
        while len(nodes) > 1:
            l = heapq.heappop(nodes)
            r = heapq.heappop(nodes)
            parent = Node(None, l.val_freq + r.val_freq, order)
            order += 1
            parent.left, parent.right = l, r
            heapq.heappush(nodes, parent)
        tree.root = nodes[0]
        tree.codes_generation()
        return tree

    def codes_generation(self, node=None, curr_code=""):
        """
        Recursive function that generates
        code for each symbol, preorder traversal of Huffman's tree

        :param node: node to start traversal from
        :param curr_code: str, current code of a symbol
        """
        if node is None:
            node = self.root

        # a lone root still needs one bit
        if node.left is None and node.right is None:
            self.res_codes.setdefault(node.value, curr_code or "0")
            return

        self.codes_generation(node.left, curr_code + "0")
        self.codes_generation(node.right, curr_code + "1")

    def code_lengths(self, num_symbols: int) -> list[int]:
        """Code length of every symbol in range(num_symbols), 0 when unused."""
        lengths = [0] * num_symbols
        for sym, code in self.res_codes.items():
            lengths[sym] = len(code)
        return lengths


def build_code_lengths(freqs: list[int], max_length: int) -> list[int]:
    """
    Compute Huffman code lengths no longer than max_length.

    Over-long trees are rebuilt from flattened frequencies until they fit;
    at least two symbols always receive a code so the set is complete.

    :param freqs: frequency for every symbol of the alphabet
    :param max_length: longest permitted code
    :return: list of code lengths, 0 for unused symbols
    """
    used = [sym for sym, f in enumerate(freqs) if f > 0]
    lengths = [0] * len(freqs)
    if not used:
        return lengths
    if len(used) == 1:
        other = 1 if used[0] == 0 else 0
        lengths[used[0]] = 1
        lengths[other] = 1
        return lengths

    weights = {sym: freqs[sym] for sym in used}
    while True:
        tree = HuffmanTree.build_from_freq(weights)
        lengths = tree.code_lengths(len(freqs))
        if max(lengths) <= max_length:
            return lengths
        logger.debug(
            "Huffman code of %d bits exceeds limit %d, flattening weights",
            max(lengths),
            max_length,
        )
        weights = {sym: (w >> 1) | 1 for sym, w in weights.items()}


def canonical_codes(lengths: list[int]) -> dict[int, tuple[int, int]]:
    """
    Assign canonical codes (RFC 1951 section 3.2.2) to a list of code lengths.

    :return: dict {symbol: (code, length)} for every symbol with length > 0
    """
    symbols_with_lengths = sorted(
        (length, symbol) for symbol, length in enumerate(lengths) if length > 0
    )

    codes: dict[int, tuple[int, int]] = {}
    code = 0
    prev_len = symbols_with_lengths[0][0] if symbols_with_lengths else 0
    for length, symbol in symbols_with_lengths:
        code <<= length - prev_len
        codes[symbol] = (code, length)
        code += 1
        prev_len = length
    return codes


class HuffmanTable:
    """
    Canonical Huffman code for one DEFLATE alphabet, usable for both
    writing symbols and reading them back.
    """

    def __init__(self, lengths: list[int]):
        self.lengths = list(lengths)
        self.codes = canonical_codes(self.lengths)
        self.decode_map = {
            (length, code): sym for sym, (code, length) in self.codes.items()
        }
        self.max_length = max(self.lengths, default=0)

    @classmethod
    def from_frequencies(cls, freqs: list[int], max_length: int) -> "HuffmanTable":
        return cls(build_code_lengths(freqs, max_length))

    @classmethod
    def for_decoding(cls, lengths: list[int], name: str) -> "HuffmanTable":
        """
        Build a table from lengths read off the wire, rejecting
        over-subscribed and incomplete code sets.

        A set with no codes at all is accepted (a block without matches
        needs no distance codes), as is a single code of length 1.
        """
        counts = [0] * 16
        for length in lengths:
            if length < 0 or length > 15:
                raise CorruptStreamFailure(f"Invalid {name} code length: {length}")
            counts[length] += 1
        counts[0] = 0

        left = 1
        for length in range(1, 16):
            left = (left << 1) - counts[length]
            if left < 0:
                raise CorruptStreamFailure(f"Over-subscribed {name} code")
        total = sum(counts)
        if left > 0 and total > 0 and not (total == 1 and counts[1] == 1):
            raise CorruptStreamFailure(f"Incomplete {name} code")
        return cls(lengths)

    def __contains__(self, symbol: int) -> bool:
        return symbol in self.codes

    def encode(self, writer: BitWriter, symbol: int) -> None:
        """Write the code of symbol, most significant bit first."""
        if symbol not in self.codes:
            raise ValueError(f"Symbol {symbol} has no Huffman code")
        code, length = self.codes[symbol]
        writer.write_bits_msb(code, length)

    def code_length(self, symbol: int) -> int:
        return self.codes[symbol][1]

    def decode(self, reader: BitReader) -> int:
        """
        Read bits until they form a known code and return its symbol.

        Raises:
            CorruptStreamFailure: If no code matches within max_length bits
            EOFError: If the stream ends in the middle of a code
        """
        code = 0
        for code_len in range(1, self.max_length + 1):
            code = (code << 1) | reader.read_bit()
            symbol = self.decode_map.get((code_len, code))
            if symbol is not None:
                return symbol
        raise CorruptStreamFailure("Invalid Huffman code")
