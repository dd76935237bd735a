from bitarray import bitarray


class BitWriter:
    """
    A class for writing bits to a bitarray stream with byte alignment support.
    Bits are packed starting at the least significant bit of each byte,
    as required by RFC 1951.
    """

    def __init__(self) -> None:
        """Initialize a new BitWriter instance with an empty bitarray."""
        self.bits = bitarray(endian="little")

    def __len__(self) -> int:
        return len(self.bits)

    def write_bits_msb(self, value: int, length: int) -> None:
        """
        Write bits in MSB-first order (most significant bit first).
        Used for Huffman codes.

        Args:
            value: Integer value to write
            length: Number of bits to write

        Raises:
            ValueError: If length is negative or value does not fit
        """
        if length < 0:
            raise ValueError("Length cannot be negative")
        if length == 0:
            return
        if value >> length:
            raise ValueError(f"Value {value} does not fit in {length} bits")
        self.bits.extend(format(value, f"0{length}b"))

    def write_bits_lsb(self, value: int, length: int) -> None:
        """
        Write bits in LSB-first order (least significant bit first).
        Used for headers, extra bits, and other fields.

        Args:
            value: Integer value to write
            length: Number of bits to write

        Raises:
            ValueError: If length is negative or value does not fit
        """
        if length < 0:
            raise ValueError("Length cannot be negative")
        if length == 0:
            return
        if value >> length:
            raise ValueError(f"Value {value} does not fit in {length} bits")
        self.bits.extend(format(value, f"0{length}b")[::-1])

    def write_bytes(self, data: bytes) -> None:
        """
        Append whole bytes. The writer must be byte aligned.

        Args:
            data: Bytes to append
        """
        if len(self.bits) % 8 != 0:
            raise ValueError("write_bytes requires a byte-aligned writer")
        self.bits.frombytes(bytes(data))

    def byte_align(self) -> None:
        """Add padding bits to achieve byte alignment."""
        while len(self.bits) % 8 != 0:
            self.bits.append(0)

    def to_bytes(self) -> bytes:
        """
        Get the written bits as bytes, zero padded to a byte boundary.

        Returns:
            The packed bytes
        """
        return self.bits.tobytes()
