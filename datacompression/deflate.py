"""
DEFLATE (RFC 1951) compressor and decompressor.

The encoder tokenizes the input with LZ77, splits the tokens into blocks and
writes every block in whichever of the stored, fixed Huffman or dynamic
Huffman forms is shortest. The decoder accepts any conforming raw DEFLATE
stream and rejects truncated input and bytes after the final block.
"""

import logging

from datacompression.compressor_ABC import Compressor
from datacompression.deflate_utils.bit_reader import BitReader
from datacompression.deflate_utils.bit_writer import BitWriter
from datacompression.deflate_utils.LZ77_deflate import LZ77, Token
from datacompression.errors import CorruptStreamFailure, TruncatedStreamFailure
from datacompression.huffman_coding import HuffmanTable

logger = logging.getLogger(__name__)

NO_COMPRESSION = 0
BEST_SPEED = 1
BEST_COMPRESSION = 9
DEFAULT_COMPRESSION = BEST_COMPRESSION

BTYPE_STORED = 0
BTYPE_FIXED = 1
BTYPE_DYNAMIC = 2

END_OF_BLOCK = 256
NUM_LIT_LEN_CODES = 286
NUM_DIST_CODES = 30
NUM_CODE_LENGTH_CODES = 19
MAX_CODE_LENGTH = 15
MAX_CODE_LENGTH_CODE_LENGTH = 7

CODE_LENGTH_ORDER = [16, 17, 18, 0, 8, 7, 9, 6, 10, 5, 11, 4, 12, 3, 13, 2, 14, 1, 15]

FIXED_LIT_LEN_TABLE = HuffmanTable([8] * 144 + [9] * 112 + [7] * 24 + [8] * 8)
# 30 and 31 have codes but never occur in valid data
FIXED_DIST_TABLE = HuffmanTable([5] * 32)


class Deflate(Compressor):
    name = "deflate"

    BLOCK_SIZE = 16384  # symbols per block
    MAX_STORED_BLOCK = 65535

    def __init__(
        self, level: int = DEFAULT_COMPRESSION, window_size: int | None = None
    ) -> None:
        """
        Initialize the DEFLATE compressor.

        Args:
            level: 0 (stored only) to 9 (best compression)
            window_size: Optional LZ77 window size, a power of two up to 32768
        """
        if not isinstance(level, int) or not (
            NO_COMPRESSION <= level <= BEST_COMPRESSION
        ):
            raise ValueError(f"Compression level must be 0..9, got {level!r}")
        self.level = level
        self.lz77 = LZ77(
            window_size=window_size, level=level if level != NO_COMPRESSION else 1
        )

    # ------------------------------------------------------------------
    # compression
    # ------------------------------------------------------------------

    def compress_bytes(self, data: bytes) -> bytes:
        """
        Compress a byte buffer into a raw DEFLATE stream.

        Args:
            data: Input bytes, may be empty

        Returns:
            The compressed stream
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"data must be bytes-like, got {type(data).__name__}")
        data = bytes(data)
        writer = BitWriter()

        if self.level == NO_COMPRESSION:
            self._write_stored_block(writer, data, is_final=True)
        else:
            tokens = self.lz77.tokenize(data)
            blocks = self._split_blocks(tokens)
            for block_index, (block_tokens, start, end) in enumerate(blocks):
                is_final = block_index == len(blocks) - 1
                self._write_block(writer, block_tokens, data[start:end], is_final)

        compressed = writer.to_bytes()
        logger.debug(
            "Compressed %d bytes into %d bytes at level %d",
            len(data),
            len(compressed),
            self.level,
        )
        return compressed

    def _split_blocks(self, tokens: list[Token]) -> list[tuple[list[Token], int, int]]:
        """
        Cut the token list into blocks of at most BLOCK_SIZE symbols.

        Returns:
            List of (tokens, start, end) where data[start:end] is the block's raw input
        """
        blocks = []
        position = 0
        for offset in range(0, len(tokens), self.BLOCK_SIZE):
            block_tokens = tokens[offset : offset + self.BLOCK_SIZE]
            start = position
            for token in block_tokens:
                position += 1 if isinstance(token, int) else token[1]
            blocks.append((block_tokens, start, position))
        if not blocks:
            blocks.append(([], 0, 0))
        return blocks

    @staticmethod
    def _block_symbols(tokens: list[Token]) -> dict:
        """
        Map tokens to DEFLATE symbols with their extra bits.
        The end-of-block symbol is appended.
        """
        block = {"symbols": [], "length_extra": [], "distances": [], "dist_extra": []}
        for token in tokens:
            if isinstance(token, int):
                block["symbols"].append(token)
                block["length_extra"].append((0, 0))
            else:
                dist, length = token
                len_code, len_bits, len_val = LZ77.map_length(length)
                block["symbols"].append(len_code)
                block["length_extra"].append((len_bits, len_val))

                dist_code, dist_bits, dist_val = LZ77.map_distance(dist)
                block["distances"].append(dist_code)
                block["dist_extra"].append((dist_bits, dist_val))

        block["symbols"].append(END_OF_BLOCK)
        block["length_extra"].append((0, 0))
        return block

    def _write_block(
        self, writer: BitWriter, tokens: list[Token], raw: bytes, is_final: bool
    ) -> None:
        block = self._block_symbols(tokens)

        lit_freq = [0] * NUM_LIT_LEN_CODES
        for sym in block["symbols"]:
            lit_freq[sym] += 1
        dist_freq = [0] * NUM_DIST_CODES
        for dcode in block["distances"]:
            dist_freq[dcode] += 1

        tree_lit_len = HuffmanTable.from_frequencies(lit_freq, MAX_CODE_LENGTH)
        tree_dist = HuffmanTable.from_frequencies(dist_freq, MAX_CODE_LENGTH)
        header = self._tree_description(tree_lit_len, tree_dist)

        extra_cost = sum(cnt for cnt, _ in block["length_extra"]) + sum(
            cnt for cnt, _ in block["dist_extra"]
        )
        fixed_cost = (
            3
            + sum(FIXED_LIT_LEN_TABLE.code_length(s) for s in block["symbols"])
            + 5 * len(block["distances"])
            + extra_cost
        )
        dynamic_cost = (
            3
            + header["cost"]
            + sum(tree_lit_len.code_length(s) for s in block["symbols"])
            + sum(tree_dist.code_length(d) for d in block["distances"])
            + extra_cost
        )
        stored_cost = self._stored_cost(len(writer), len(raw))

        if stored_cost < min(fixed_cost, dynamic_cost):
            logger.debug(
                "Block of %d bytes stored (%d bits)", len(raw), stored_cost
            )
            self._write_stored_block(writer, raw, is_final)
            return

        if fixed_cost <= dynamic_cost:
            logger.debug(
                "Block of %d symbols with fixed codes (%d bits)",
                len(block["symbols"]),
                fixed_cost,
            )
            writer.write_bits_lsb(int(is_final), 1)
            writer.write_bits_lsb(BTYPE_FIXED, 2)
            self._write_symbols(writer, block, FIXED_LIT_LEN_TABLE, FIXED_DIST_TABLE)
        else:
            logger.debug(
                "Block of %d symbols with dynamic codes (%d bits)",
                len(block["symbols"]),
                dynamic_cost,
            )
            writer.write_bits_lsb(int(is_final), 1)
            writer.write_bits_lsb(BTYPE_DYNAMIC, 2)
            self._write_tree_description(writer, header)
            self._write_symbols(writer, block, tree_lit_len, tree_dist)

    def _write_symbols(
        self,
        writer: BitWriter,
        block: dict,
        tree_lit_len: HuffmanTable,
        tree_dist: HuffmanTable,
    ) -> None:
        dist_iter = iter(block["distances"])
        dist_eb_iter = iter(block["dist_extra"])

        for sym, (eb_cnt, eb_val) in zip(block["symbols"], block["length_extra"]):
            tree_lit_len.encode(writer, sym)
            if eb_cnt > 0:
                writer.write_bits_lsb(eb_val, eb_cnt)

            if sym > END_OF_BLOCK:
                tree_dist.encode(writer, next(dist_iter))
                eb_cnt_d, eb_val_d = next(dist_eb_iter)
                if eb_cnt_d > 0:
                    writer.write_bits_lsb(eb_val_d, eb_cnt_d)

    @staticmethod
    def _run_length_encode(all_code_lengths: list[int]) -> list[tuple[int, int, int]]:
        """
        Run-length encode code lengths with symbols 16, 17 and 18.

        Returns:
            List of (symbol, extra_bit_count, extra_value)
        """
        rle = []
        i = 0
        while i < len(all_code_lengths):
            length = all_code_lengths[i]
            count = 1
            while (
                i + count < len(all_code_lengths)
                and all_code_lengths[i + count] == length
            ):
                count += 1
            i += count

            if length == 0:
                while count >= 11:
                    num_zeros = min(count, 138)
                    rle.append((18, 7, num_zeros - 11))
                    count -= num_zeros
                while count >= 3:
                    num_zeros = min(count, 10)
                    rle.append((17, 3, num_zeros - 3))
                    count -= num_zeros
                rle.extend([(0, 0, 0)] * count)
            else:
                rle.append((length, 0, 0))
                count -= 1
                while count >= 3:
                    num_repeats = min(count, 6)
                    rle.append((16, 2, num_repeats - 3))
                    count -= num_repeats
                rle.extend([(length, 0, 0)] * count)
        return rle

    def _tree_description(
        self, tree_lit_len: HuffmanTable, tree_dist: HuffmanTable
    ) -> dict:
        """
        Prepare the dynamic Huffman tree description (BTYPE=10) and its bit cost.
        """
        hlit = max(257, max(tree_lit_len.codes) + 1)
        hdist = max(1, max(tree_dist.codes, default=0) + 1)

        all_code_lengths = tree_lit_len.lengths[:hlit] + tree_dist.lengths[:hdist]
        rle = self._run_length_encode(all_code_lengths)

        cl_freq = [0] * NUM_CODE_LENGTH_CODES
        for sym, _, _ in rle:
            cl_freq[sym] += 1
        tree_cl = HuffmanTable.from_frequencies(cl_freq, MAX_CODE_LENGTH_CODE_LENGTH)

        hclen = 4
        for k in range(NUM_CODE_LENGTH_CODES - 1, 3, -1):
            if tree_cl.lengths[CODE_LENGTH_ORDER[k]]:
                hclen = k + 1
                break

        cost = 5 + 5 + 4 + 3 * hclen
        cost += sum(tree_cl.code_length(sym) + cnt for sym, cnt, _ in rle)
        return {
            "hlit": hlit,
            "hdist": hdist,
            "hclen": hclen,
            "tree_cl": tree_cl,
            "rle": rle,
            "cost": cost,
        }

    @staticmethod
    def _write_tree_description(writer: BitWriter, header: dict) -> None:
        writer.write_bits_lsb(header["hlit"] - 257, 5)
        writer.write_bits_lsb(header["hdist"] - 1, 5)
        writer.write_bits_lsb(header["hclen"] - 4, 4)

        tree_cl = header["tree_cl"]
        for k in range(header["hclen"]):
            writer.write_bits_lsb(tree_cl.lengths[CODE_LENGTH_ORDER[k]], 3)

        for sym, extra_cnt, extra_val in header["rle"]:
            tree_cl.encode(writer, sym)
            if extra_cnt > 0:
                writer.write_bits_lsb(extra_val, extra_cnt)

    def _stored_cost(self, bit_position: int, size: int) -> int:
        """Bits needed to write size bytes as stored blocks from bit_position."""
        cost = 0
        chunks = max(1, -(-size // self.MAX_STORED_BLOCK))
        for _ in range(chunks):
            bit_position += 3
            padding = -bit_position % 8
            bit_position += padding + 32
            cost += 3 + padding + 32
        return cost + 8 * size

    def _write_stored_block(self, writer: BitWriter, raw: bytes, is_final: bool) -> None:
        offsets = range(0, len(raw), self.MAX_STORED_BLOCK) if raw else [0]
        for offset in offsets:
            chunk = raw[offset : offset + self.MAX_STORED_BLOCK]
            last_chunk = offset + self.MAX_STORED_BLOCK >= len(raw)
            writer.write_bits_lsb(int(is_final and last_chunk), 1)
            writer.write_bits_lsb(BTYPE_STORED, 2)
            writer.byte_align()
            writer.write_bits_lsb(len(chunk), 16)
            writer.write_bits_lsb(len(chunk) ^ 0xFFFF, 16)
            writer.write_bytes(chunk)

    # ------------------------------------------------------------------
    # decompression
    # ------------------------------------------------------------------

    def decompress_bytes(self, data: bytes) -> bytes:
        """
        Decompress a raw DEFLATE stream.

        Args:
            data: Compressed bytes

        Returns:
            The decompressed bytes

        Raises:
            CorruptStreamFailure: On malformed input or bytes after the final block
            TruncatedStreamFailure: If the input ends before the final block does
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"data must be bytes-like, got {type(data).__name__}")
        reader = BitReader(data)
        decoded_data = bytearray()

        try:
            is_final_block = False
            while not is_final_block:
                is_final_block = reader.read_bit() == 1
                btype = reader.read_bits_lsb(2)

                if btype == BTYPE_STORED:
                    self._inflate_stored_block(reader, decoded_data)
                elif btype == BTYPE_FIXED:
                    self._inflate_huffman_data(
                        reader, FIXED_LIT_LEN_TABLE, FIXED_DIST_TABLE, decoded_data
                    )
                elif btype == BTYPE_DYNAMIC:
                    lit_len_tree, dist_tree = self._read_dynamic_trees(reader)
                    self._inflate_huffman_data(
                        reader, lit_len_tree, dist_tree, decoded_data
                    )
                else:
                    raise CorruptStreamFailure(f"Unknown block type: {btype}")
                logger.debug(
                    "Inflated block BFINAL=%d BTYPE=%d, %d bytes so far",
                    is_final_block,
                    btype,
                    len(decoded_data),
                )
        except EOFError as e:
            raise TruncatedStreamFailure(
                "Unexpected end of compressed data"
            ) from e

        reader.byte_align()
        trailing = reader.bits_left() // 8
        if trailing:
            raise CorruptStreamFailure(
                f"unexpected content after decompression: {trailing} trailing bytes"
            )
        return bytes(decoded_data)

    @staticmethod
    def _inflate_stored_block(reader: BitReader, output_buffer: bytearray) -> None:
        reader.byte_align()
        len_bytes = reader.read_bits_lsb(16)
        nlen_bytes = reader.read_bits_lsb(16)
        if len_bytes != nlen_bytes ^ 0xFFFF:
            raise CorruptStreamFailure(
                f"Invalid stored block lengths: LEN={len_bytes}, NLEN={nlen_bytes}"
            )
        output_buffer += reader.read_bytes(len_bytes)

    @staticmethod
    def _read_dynamic_trees(reader: BitReader) -> tuple[HuffmanTable, HuffmanTable]:
        hlit = reader.read_bits_lsb(5) + 257
        hdist = reader.read_bits_lsb(5) + 1
        hclen = reader.read_bits_lsb(4) + 4
        if hlit > NUM_LIT_LEN_CODES or hdist > NUM_DIST_CODES:
            raise CorruptStreamFailure(
                f"Invalid block parameters: HLIT={hlit}, HDIST={hdist}"
            )

        cl_lengths = [0] * NUM_CODE_LENGTH_CODES
        for i in range(hclen):
            cl_lengths[CODE_LENGTH_ORDER[i]] = reader.read_bits_lsb(3)
        cl_tree = HuffmanTable.for_decoding(cl_lengths, "code length")

        code_lengths: list[int] = []
        while len(code_lengths) < hlit + hdist:
            code = cl_tree.decode(reader)
            if code <= 15:
                code_lengths.append(code)
                continue
            if code == 16:
                if not code_lengths:
                    raise CorruptStreamFailure("Repeat code with no previous length")
                value = code_lengths[-1]
                repeat_count = reader.read_bits_lsb(2) + 3
            elif code == 17:
                value = 0
                repeat_count = reader.read_bits_lsb(3) + 3
            else:
                value = 0
                repeat_count = reader.read_bits_lsb(7) + 11
            if len(code_lengths) + repeat_count > hlit + hdist:
                raise CorruptStreamFailure("Code length repeat overflows the table")
            code_lengths.extend([value] * repeat_count)

        lit_len_lengths = code_lengths[:hlit]
        if lit_len_lengths[END_OF_BLOCK] == 0:
            raise CorruptStreamFailure("Missing end-of-block code")
        lit_len_tree = HuffmanTable.for_decoding(lit_len_lengths, "literal/length")
        dist_tree = HuffmanTable.for_decoding(code_lengths[hlit:], "distance")
        return lit_len_tree, dist_tree

    @staticmethod
    def _inflate_huffman_data(
        reader: BitReader,
        lit_len_tree: HuffmanTable,
        dist_tree: HuffmanTable,
        output_buffer: bytearray,
    ) -> None:
        """
        Decode symbols until the end-of-block marker, appending to output_buffer.
        """
        while True:
            symbol = lit_len_tree.decode(reader)

            if symbol < END_OF_BLOCK:
                output_buffer.append(symbol)
                continue
            if symbol == END_OF_BLOCK:
                return
            if symbol >= NUM_LIT_LEN_CODES:
                raise CorruptStreamFailure(f"Invalid length code {symbol}")

            base_len, extra_bits = LZ77.length_base(symbol)
            length = base_len + reader.read_bits_lsb(extra_bits)

            distance_code = dist_tree.decode(reader)
            if distance_code >= NUM_DIST_CODES:
                raise CorruptStreamFailure(f"Invalid distance code {distance_code}")
            base_dist, extra_bits = LZ77.distance_base(distance_code)
            distance = base_dist + reader.read_bits_lsb(extra_bits)

            if distance > len(output_buffer):
                raise CorruptStreamFailure(
                    f"Invalid distance {distance} exceeds buffer size {len(output_buffer)}"
                )

            start = len(output_buffer) - distance
            if distance >= length:
                output_buffer += output_buffer[start : start + length]
            else:
                for i in range(length):
                    output_buffer.append(output_buffer[start + i])


def compress(data: bytes, level: int = DEFAULT_COMPRESSION) -> bytes:
    """Compress data into a raw DEFLATE stream."""
    return Deflate(level=level).compress_bytes(data)


def decompress(data: bytes) -> bytes:
    """Decompress a raw DEFLATE stream produced by any conforming encoder."""
    return Deflate().decompress_bytes(data)
