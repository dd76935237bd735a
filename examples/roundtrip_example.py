"""
Example script demonstrating a DEFLATE round trip with size statistics.
"""

import sys
from pathlib import Path

# Add the parent directory to Python path
sys.path.append(str(Path(__file__).parent.parent))

from datacompression import compress, compression_ratio, decompress


def main():
    original = b"The highest function of ecology is the understanding of consequences." * 100

    compressed = compress(original)
    decompressed = decompress(compressed)

    ratio = compression_ratio(len(original), len(compressed))
    print(f"Original size: {len(original)} bytes")
    print(f"Compressed size: {len(compressed)} bytes ({ratio * 100:.1f}% of original)")
    print("Original:", original.decode())
    print("Decompressed:", decompressed.decode())

    if decompressed != original:
        print("Round trip failed: decompressed data differs from the original")
        return 1

    if len(compressed) >= len(original):
        print("\nCompression didn't reduce size - try with:")
        print("- Larger input data")
        print("- More repetitive content")
    return 0


if __name__ == "__main__":
    sys.exit(main())
