"""ZIP archive encoder."""

from __future__ import annotations

import warnings
from typing import TYPE_CHECKING

from .structures import (
    ZIP_VERSION,
    CentralDirectoryHeader,
    EndOfCentralDirectory,
    LocalFileHeader,
)
from .utils import dos_datetime

if TYPE_CHECKING:
    from .archive import Archive, Entry

# ZIP32 limits
_MAX_32 = 0xFFFFFFFF  # 4,294,967,295 bytes
_MAX_ENTRIES = 0xFFFF  # 65,535 entries


def encode(archive: Archive, timestamp: float | None = None) -> bytes:
    """
    Serialize *archive* into a single ZIP byte string.

    Layout: one local file header followed by its payload per entry, then
    the central directory in the same order, then the end of central
    directory record. Every entry is stamped with one date/time snapshot
    taken at the start of the call.

    Each entry's ``local_header_offset`` is set to where its local header
    lands in the output.

    Sizes, offsets and the entry count are written modulo their field width
    (no ZIP64); a warning, attributed to the caller, is issued when a value
    does not fit.

    Args:
        archive: The archive to serialize.
        timestamp: Unix timestamp for the entries. If None, uses current time.

    Returns:
        The complete archive bytes.
    """
    return write_archive(archive, timestamp, stacklevel=3)


def write_archive(archive: Archive, timestamp: float | None, stacklevel: int) -> bytes:
    """Encode *archive*; wrap warnings are raised *stacklevel* frames up."""
    mod_time, mod_date = dos_datetime(timestamp)

    parts: list[bytes] = []
    offset = 0

    for entry in archive.entries:
        header = LocalFileHeader(
            version_needed=ZIP_VERSION,
            flags=0,
            compression=entry.compression_method,
            mod_time=mod_time,
            mod_date=mod_date,
            crc32=entry.crc32,
            compressed_size=entry.compressed_size,
            uncompressed_size=entry.uncompressed_size,
            filename=entry.filename,
        )
        header_bytes = header.to_bytes()

        _check_wrap(entry, offset, stacklevel + 1)
        entry.local_header_offset = offset

        parts.append(header_bytes)
        parts.append(entry.compressed_data)
        offset += len(header_bytes) + len(entry.compressed_data)

    cd_offset = offset
    cd_size = 0

    for entry in archive.entries:
        cd_bytes = CentralDirectoryHeader(
            version_made_by=ZIP_VERSION,
            version_needed=ZIP_VERSION,
            flags=0,
            compression=entry.compression_method,
            mod_time=mod_time,
            mod_date=mod_date,
            crc32=entry.crc32,
            compressed_size=entry.compressed_size,
            uncompressed_size=entry.uncompressed_size,
            local_header_offset=entry.local_header_offset,
            filename=entry.filename,
        ).to_bytes()
        parts.append(cd_bytes)
        cd_size += len(cd_bytes)

    count = len(archive.entries)
    if count > _MAX_ENTRIES:
        warnings.warn(
            f"Entry count {count} exceeds ZIP32 limit of {_MAX_ENTRIES}; "
            "the stored count wraps. ZIP64 not supported.",
            stacklevel=stacklevel,
        )
    if cd_offset > _MAX_32 or cd_size > _MAX_32:
        warnings.warn(
            f"Central directory (offset={cd_offset}, size={cd_size}) exceeds 4GB ZIP32 "
            "limit; stored values wrap. ZIP64 not supported.",
            stacklevel=stacklevel,
        )

    eocd = EndOfCentralDirectory(
        entries_on_disk=count,
        total_entries=count,
        cd_size=cd_size,
        cd_offset=cd_offset,
        comment=archive.comment,
    )
    parts.append(eocd.to_bytes())

    return b"".join(parts)


def _check_wrap(entry: Entry, offset: int, stacklevel: int) -> None:
    """Warn when an entry's sizes or header offset do not fit 32 bits."""
    if offset > _MAX_32 or entry.compressed_size > _MAX_32 or entry.uncompressed_size > _MAX_32:
        warnings.warn(
            f"Entry '{entry.name}' exceeds 4GB ZIP32 limit (offset={offset}, "
            f"compressed={entry.compressed_size}, uncompressed={entry.uncompressed_size}); "
            "stored values wrap. ZIP64 not supported.",
            stacklevel=stacklevel,
        )
