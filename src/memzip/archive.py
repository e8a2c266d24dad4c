"""In-memory ZIP archive model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator

from .codec import ZlibCodec
from .exceptions import ArchiveIOError, FileNotFoundInArchiveError, IntegrityError
from .structures import MAX_FIELD_LEN, Compression
from .utils import parse_dos_datetime
from .writer import write_archive


@dataclass
class Entry:
    """One archived file.

    For STORED entries ``compressed_data`` is ``raw_data`` and both sizes are
    equal. ``local_header_offset`` is assigned by the encoder, or read from the
    central directory by the decoder. ``mod_time``/``mod_date`` are the DOS
    words found in a decoded archive; entries built with ``add_file`` leave
    them at 0 and receive the encoder's timestamp on disk.
    """

    filename: bytes
    raw_data: bytes
    compressed_data: bytes
    compression_method: Compression
    uncompressed_size: int
    compressed_size: int
    crc32: int
    local_header_offset: int = 0
    mod_time: int = 0
    mod_date: int = 0

    @property
    def name(self) -> str:
        """Filename decoded as UTF-8 (undecodable bytes replaced)."""
        return self.filename.decode("utf-8", errors="replace")

    @property
    def date_time(self) -> datetime:
        """Modification time stored in the archive."""
        return parse_dos_datetime(self.mod_time, self.mod_date)


class Archive:
    """
    An ordered collection of named payloads plus an archive comment.

    Example:
        >>> archive = Archive(b"nightly build")
        >>> archive.add_file("hello.txt", b"hello world")
        >>> archive.add_file("raw.bin", b"\\x01\\x02\\x03\\x04", compress=False)
        >>> data = archive.write()

    Attributes:
        entries: Entries in on-disk order.
        comment: Archive-level comment.
        codec: Checksum and compression engine used by add_file and read.
    """

    def __init__(self, comment: bytes | str = b"", codec: ZlibCodec | None = None) -> None:
        if isinstance(comment, str):
            comment = comment.encode("utf-8")
        if len(comment) > MAX_FIELD_LEN:
            raise ValueError(f"Archive comment too long ({len(comment)} bytes, max {MAX_FIELD_LEN})")

        self.entries: list[Entry] = []
        self.comment = comment
        self.codec = codec if codec is not None else ZlibCodec()

    def add_file(self, filename: bytes | str, data: bytes | str, compress: bool = True) -> Entry:
        """
        Append a file to the archive.

        The checksum and, when *compress* is set, the compressed payload are
        computed immediately. Nothing is appended if any step fails.

        Args:
            filename: Name in archive (str is encoded as UTF-8).
            data: File contents (str is encoded as UTF-8).
            compress: Store DEFLATE-compressed if True, uncompressed otherwise.

        Returns:
            The new entry.

        Raises:
            ValueError: If the filename does not fit the 16-bit length field.
            CompressionError: If compression fails.
        """
        if isinstance(filename, str):
            filename = filename.encode("utf-8")
        if isinstance(data, str):
            data = data.encode("utf-8")

        if len(filename) > MAX_FIELD_LEN:
            raise ValueError(f"Archive name too long ({len(filename)} bytes, max {MAX_FIELD_LEN})")

        crc = self.codec.checksum(data)

        if compress:
            compressed = self.codec.compress(data)
            method = Compression.DEFLATED
        else:
            compressed = data
            method = Compression.STORED

        entry = Entry(
            filename=filename,
            raw_data=data,
            compressed_data=compressed,
            compression_method=method,
            uncompressed_size=len(data),
            compressed_size=len(compressed),
            crc32=crc,
        )
        self.entries.append(entry)
        return entry

    def write(self, timestamp: float | None = None) -> bytes:
        """Serialize the archive; see :func:`memzip.writer.encode`."""
        return write_archive(self, timestamp, stacklevel=3)

    def save(self, path: str | Path, timestamp: float | None = None) -> None:
        """
        Write the serialized archive to *path*, replacing any existing file.

        Raises:
            ArchiveIOError: If the file cannot be written.
        """
        data = self.write(timestamp)
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise ArchiveIOError(str(path), e.strerror or str(e)) from e

    def verify(self) -> None:
        """
        Recompute every entry's CRC-32 and compare it with the stored value.

        Raises:
            IntegrityError: On the first mismatch.
        """
        for entry in self.entries:
            actual = self.codec.checksum(entry.raw_data)
            if actual != entry.crc32:
                raise IntegrityError(entry.crc32, actual, entry.name)

    def get(self, filename: bytes | str) -> Entry:
        """Return the first entry named *filename*."""
        key = filename.encode("utf-8") if isinstance(filename, str) else filename
        for entry in self.entries:
            if entry.filename == key:
                return entry
        raise FileNotFoundInArchiveError(key.decode("utf-8", errors="replace"))

    def namelist(self) -> list[str]:
        """Entry names in archive order."""
        return [entry.name for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __repr__(self) -> str:
        return f"<Archive: {len(self.entries)} files>"
