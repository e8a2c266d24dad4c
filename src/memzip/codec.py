"""Checksum and DEFLATE adapters over zlib."""

from __future__ import annotations

import zlib

from .exceptions import CompressionError

# Output is drained from a codec session in chunks of this size
CHUNK_SIZE = 32 * 1024  # 32 KB

# Raw DEFLATE stream, no zlib header or trailer
_RAW_WBITS = -zlib.MAX_WBITS


class ZlibCodec:
    """
    Checksum and compression engine used by archives.

    One instance is created up front and handed to each Archive; it holds
    only settings, so it can be shared freely. Every compress/decompress
    call opens its own zlib session and drops it before returning.

    Example:
        >>> codec = ZlibCodec(compresslevel=9)
        >>> codec.decompress(codec.compress(b"hello"), 5)
        b'hello'

    Attributes:
        compresslevel: DEFLATE compression level 0-9, or -1 for zlib's default.
        chunk_size: Size of each output chunk drained from a session.
    """

    def __init__(self, compresslevel: int = 6, chunk_size: int = CHUNK_SIZE) -> None:
        if not (compresslevel == zlib.Z_DEFAULT_COMPRESSION or 0 <= compresslevel <= 9):
            raise ValueError(f"Invalid compression level: {compresslevel}. Use 0-9 or -1.")
        if chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}")

        self.compresslevel = compresslevel
        self.chunk_size = chunk_size

    @property
    def version(self) -> str:
        """Version of the zlib library in use."""
        return zlib.ZLIB_RUNTIME_VERSION

    def checksum(self, data: bytes, seed: int = 0) -> int:
        """Return the unsigned CRC-32 of *data*, continuing from *seed*."""
        if not data:
            return seed
        return zlib.crc32(data, seed) & 0xFFFFFFFF

    def compress(self, raw: bytes) -> bytes:
        """
        Compress *raw* into a raw DEFLATE stream.

        Raises:
            CompressionError: If zlib rejects the input or settings.
        """
        if not raw:
            return b""

        try:
            compressor = zlib.compressobj(self.compresslevel, zlib.DEFLATED, _RAW_WBITS)
            chunks = []
            view = memoryview(raw)
            for i in range(0, len(view), self.chunk_size):
                chunk = compressor.compress(view[i : i + self.chunk_size])
                if chunk:
                    chunks.append(chunk)
            chunks.append(compressor.flush(zlib.Z_FINISH))
        except zlib.error as e:
            raise CompressionError(f"Compression failed: {e}") from e

        return b"".join(chunks)

    def decompress(self, compressed: bytes, size_hint: int | None = None) -> bytes:
        """
        Decompress a raw DEFLATE stream.

        Args:
            compressed: The stored payload.
            size_hint: Expected uncompressed size, if known. Only used to size
                the output chunks; a wrong hint does not change the result.

        Raises:
            CompressionError: If the stream is corrupt or ends early.
        """
        if not compressed:
            return b""

        if size_hint and size_hint > 0:
            chunk_size = min(size_hint, self.chunk_size)
        else:
            chunk_size = self.chunk_size

        decompressor = zlib.decompressobj(_RAW_WBITS)
        chunks = []
        pending = compressed
        try:
            while not decompressor.eof:
                chunk = decompressor.decompress(pending, chunk_size)
                if chunk:
                    chunks.append(chunk)
                pending = decompressor.unconsumed_tail
                if not pending and not chunk:
                    # Input exhausted; pick up anything zlib still buffers
                    chunk = decompressor.flush()
                    if chunk:
                        chunks.append(chunk)
                    break
        except zlib.error as e:
            raise CompressionError(f"Decompression failed: {e}") from e

        if not decompressor.eof:
            raise CompressionError("Decompression failed: truncated DEFLATE stream")

        return b"".join(chunks)
