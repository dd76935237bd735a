from abc import ABC, abstractmethod
from typing import BinaryIO

from datacompression.errors import EncodingFailure


def compression_ratio(original_size: int, compressed_size: int) -> float:
    """
    Compressed size as a fraction of the original size.

    Returns 0.0 for an empty original.
    """
    if original_size == 0:
        return 0.0
    return compressed_size / original_size


class Compressor(ABC):
    """
    Interface describing compression and decompression of byte buffers,
    with helpers that move the data between streams and files.
    """

    name = "compressor"

    @abstractmethod
    def compress_bytes(self, data: bytes) -> bytes:
        """
        Compress a whole byte buffer.

        Args:
            data: Input bytes

        Returns:
            Newly allocated compressed bytes
        """

    @abstractmethod
    def decompress_bytes(self, data: bytes) -> bytes:
        """
        Decompress a whole byte buffer.

        Args:
            data: Compressed bytes

        Returns:
            Newly allocated original bytes
        """

    def compress(self, input_stream: BinaryIO, output_stream: BinaryIO) -> str:
        """
        Read everything from the input stream, compress it and write the
        result to the output stream.

        Args:
            input_stream: Input stream with the data
            output_stream: Output stream for the compressed data

        Returns:
            Line with size information for logging

        Raises:
            EncodingFailure: If the output stream rejects the compressed bytes
        """
        data = input_stream.read()
        compressed = self.compress_bytes(data)
        try:
            output_stream.write(compressed)
            output_stream.flush()
        except OSError as e:
            raise EncodingFailure(f"Cannot write compressed data: {e}") from e

        ratio = compression_ratio(len(data), len(compressed))
        return (
            f"{self.name}: compressed {len(data)} bytes into {len(compressed)} bytes "
            f"({ratio * 100:.1f}% of original)"
        )

    def decompress(self, input_stream: BinaryIO, output_stream: BinaryIO) -> str:
        """
        Read a compressed stream, decompress it and write the original bytes
        to the output stream.

        Args:
            input_stream: Input stream with the compressed data
            output_stream: Output stream for the decompressed data

        Returns:
            Line with size information for logging
        """
        compressed = input_stream.read()
        data = self.decompress_bytes(compressed)
        output_stream.write(data)
        output_stream.flush()
        return (
            f"{self.name}: decompressed {len(compressed)} bytes into {len(data)} bytes"
        )

    def compress_file(self, input_file: str, output_file: str) -> str:
        """
        Helper for compressing a file.

        Args:
            input_file: Path to the input file
            output_file: Path to the output file

        Returns:
            Compression information
        """
        with open(input_file, "rb") as in_file, open(output_file, "wb") as out_file:
            return self.compress(in_file, out_file)

    def decompress_file(self, input_file: str, output_file: str) -> str:
        """
        Helper for decompressing a file.

        Args:
            input_file: Path to the compressed file
            output_file: Path to the output file

        Returns:
            Decompression information
        """
        with open(input_file, "rb") as in_file, open(output_file, "wb") as out_file:
            return self.decompress(in_file, out_file)
