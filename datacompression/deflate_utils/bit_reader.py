from bitarray import bitarray


class BitReader:
    """
    A class for reading bits from an in-memory buffer according to the DEFLATE format.
    Provides methods for reading individual bits and multi-bit values in both MSB and LSB order.
    """

    def __init__(self, data: bytes) -> None:
        """
        Initialize BitReader over a copy of the given bytes.

        Args:
            data: Packed bit stream, least significant bit first
        """
        self.bits = bitarray(endian="little")
        self.bits.frombytes(bytes(data))
        self.pos = 0

    def __len__(self) -> int:
        return len(self.bits)

    def bits_left(self) -> int:
        return len(self.bits) - self.pos

    def read_bit(self) -> int:
        """
        Read one bit from the stream.

        Returns:
            The bit value (0 or 1)

        Raises:
            EOFError: If the bit stream is exhausted
        """
        if self.pos >= len(self.bits):
            raise EOFError("Bit stream length exceeded")
        val = self.bits[self.pos]
        self.pos += 1
        return val

    def read_bits_lsb(self, n: int) -> int:
        """
        Read n bits in LSB-first order and return as an integer.

        Args:
            n: Number of bits to read

        Returns:
            The value as an integer

        Raises:
            EOFError: If there are not enough bits to read
        """
        if n == 0:
            return 0
        if self.pos + n > len(self.bits):
            raise EOFError("Not enough bits to read (LSB)")
        chunk = self.bits[self.pos : self.pos + n]
        self.pos += n
        return int(chunk.to01()[::-1], 2)

    def read_bits_msb(self, n: int) -> int:
        """
        Read n bits in MSB-first order and return as an integer.

        Args:
            n: Number of bits to read

        Returns:
            The value as an integer

        Raises:
            EOFError: If there are not enough bits to read
        """
        if n == 0:
            return 0
        if self.pos + n > len(self.bits):
            raise EOFError("Not enough bits to read (MSB)")
        chunk = self.bits[self.pos : self.pos + n]
        self.pos += n
        return int(chunk.to01(), 2)

    def read_bytes(self, n: int) -> bytes:
        """
        Read n whole bytes. The reader must be byte aligned.

        Raises:
            EOFError: If there are not enough bytes left
        """
        if self.pos % 8 != 0:
            raise ValueError("read_bytes requires a byte-aligned reader")
        if self.pos + 8 * n > len(self.bits):
            raise EOFError("Not enough bytes to read")
        chunk = self.bits[self.pos : self.pos + 8 * n]
        self.pos += 8 * n
        return chunk.tobytes()

    def byte_align(self) -> None:
        """
        Move the position to the start of the next byte.
        Used for stored blocks (BTYPE=00) and after the final block.
        """
        offset = self.pos % 8
        if offset != 0:
            self.pos += 8 - offset
