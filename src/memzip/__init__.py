"""
memzip - Build and parse ZIP archives in memory.

Archives are held entirely in memory: entries are compressed when they are
added, ``write()`` produces the complete archive as one byte string, and
``read()`` parses one back. Only single-disk ZIP32 archives with STORED or
DEFLATED entries are supported.

Example:
    >>> import memzip
    >>>
    >>> archive = memzip.new("release bundle")
    >>> archive.add_file("hello.txt", "Hello, world!")
    >>> archive.add_file("raw.bin", b"\\x01\\x02\\x03\\x04", compress=False)
    >>> archive.save("bundle.zip")
    >>>
    >>> loaded = memzip.load("bundle.zip")
    >>> loaded.get("hello.txt").raw_data
    b'Hello, world!'
"""

from __future__ import annotations

from .archive import Archive, Entry
from .codec import ZlibCodec
from .exceptions import (
    ArchiveIOError,
    CompressionError,
    FileNotFoundInArchiveError,
    FormatError,
    IntegrityError,
    MemZipError,
    UnsupportedCompressionError,
)
from .reader import decode, load
from .structures import Compression
from .utils import format_size
from .writer import encode

__version__ = "0.1.0"
__all__ = [
    # Main classes
    "Archive",
    "Entry",
    "ZlibCodec",
    # Convenience functions
    "new",
    "read",
    "load",
    "encode",
    "decode",
    # Constants
    "Compression",
    "STORED",
    "DEFLATED",
    # Utilities
    "format_size",
    # Exceptions
    "MemZipError",
    "FormatError",
    "UnsupportedCompressionError",
    "CompressionError",
    "IntegrityError",
    "ArchiveIOError",
    "FileNotFoundInArchiveError",
]

# Convenience aliases
STORED = Compression.STORED
DEFLATED = Compression.DEFLATED
read = decode


def new(comment: bytes | str = b"", codec: ZlibCodec | None = None) -> Archive:
    """
    Create an empty archive.

    Args:
        comment: Archive comment (str is encoded as UTF-8).
        codec: Checksum and compression engine. A default ZlibCodec is
            created if None.

    Returns:
        A new, empty Archive.
    """
    return Archive(comment, codec=codec)
