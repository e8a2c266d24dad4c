"""ZIP archive decoder."""

from __future__ import annotations

from pathlib import Path

from .archive import Archive, Entry
from .codec import ZlibCodec
from .exceptions import ArchiveIOError, FormatError, UnsupportedCompressionError
from .structures import (
    CentralDirectoryHeader,
    Compression,
    EndOfCentralDirectory,
    LocalFileHeader,
)
from .utils import read_u16, read_u32, write_u32

_EOCD_SIG_BYTES = write_u32(EndOfCentralDirectory.SIGNATURE)


def find_eocd(data: bytes) -> int:
    """
    Locate the end of central directory record.

    Searches backwards from the end of *data*, over the last
    ``EndOfCentralDirectory.MAX_SIZE`` bytes (fixed record plus the longest
    possible comment). Signature matches are ranked so that one inside the
    archive comment is not mistaken for the record:

    1. the record ends exactly at the end of *data* and its central
       directory ends exactly where the record starts;
    2. the record ends exactly at the end of *data*;
    3. the record's fixed part fits in *data*.

    The last match of the best rank wins. Matches too close to the end to
    hold the fixed record are skipped.

    Returns:
        Offset of the record's signature.

    Raises:
        FormatError: If no record is found.
    """
    fixed = EndOfCentralDirectory.FIXED_SIZE
    start = max(0, len(data) - EndOfCentralDirectory.MAX_SIZE)
    end = len(data)
    exact = fallback = -1
    while True:
        pos = data.rfind(_EOCD_SIG_BYTES, start, end)
        if pos < 0:
            break
        end = pos + len(_EOCD_SIG_BYTES) - 1
        if pos + fixed > len(data):
            continue
        if pos + fixed + read_u16(data, pos + 20) == len(data):
            if read_u32(data, pos + 16) + read_u32(data, pos + 12) == pos:
                return pos
            if exact < 0:
                exact = pos
        elif fallback < 0:
            fallback = pos
    if exact >= 0:
        return exact
    if fallback >= 0:
        return fallback
    raise FormatError("EOCD not found: not a ZIP archive or archive is truncated")


def read_central_directory(data: bytes, eocd: EndOfCentralDirectory) -> list[CentralDirectoryHeader]:
    """Parse ``eocd.total_entries`` consecutive central directory records."""
    records = []
    pos = eocd.cd_offset
    for index in range(eocd.total_entries):
        try:
            record = CentralDirectoryHeader.from_bytes(data, pos)
        except FormatError as e:
            raise FormatError(f"Central directory entry {index}: {e}") from e
        records.append(record)
        pos += record.total_size
    return records


def decode(data: bytes, codec: ZlibCodec | None = None, verify: bool = False) -> Archive:
    """
    Parse ZIP bytes into an Archive.

    Entries come back in central directory order with both their stored
    payload and their uncompressed data. Either the whole archive decodes or
    an exception is raised.

    Args:
        data: The complete archive.
        codec: Engine for decompression and checksums. A default ZlibCodec
            is created if None.
        verify: If True, recompute each entry's CRC-32 and compare it with
            the stored value.

    Raises:
        FormatError: If the layout is invalid (missing EOCD, bad signature,
            truncated record or payload).
        UnsupportedCompressionError: If an entry is neither STORED nor DEFLATED.
        CompressionError: If a DEFLATE payload is corrupt.
        IntegrityError: If *verify* is set and a CRC-32 does not match.
    """
    if not isinstance(data, (bytes, bytearray)):
        data = bytes(data)

    eocd = EndOfCentralDirectory.from_bytes(data, find_eocd(data))
    archive = Archive(eocd.comment, codec=codec)

    for record in read_central_directory(data, eocd):
        archive.entries.append(_read_entry(data, record, archive.codec))

    if verify:
        archive.verify()

    return archive


def _read_entry(data: bytes, record: CentralDirectoryHeader, codec: ZlibCodec) -> Entry:
    """Extract the payload described by one central directory record."""
    name = record.filename.decode("utf-8", errors="replace")

    try:
        header = LocalFileHeader.from_bytes(data, record.local_header_offset)
    except FormatError as e:
        raise FormatError(f"Entry '{name}': {e}") from e

    start = record.local_header_offset + header.total_size
    end = start + record.compressed_size
    if end > len(data):
        raise FormatError(
            f"Entry '{name}': payload truncated (need {record.compressed_size} bytes "
            f"at offset {start}, archive is {len(data)} bytes)"
        )
    payload = bytes(data[start:end])

    if record.compression == Compression.STORED:
        if record.compressed_size != record.uncompressed_size:
            raise FormatError(
                f"Entry '{name}': stored entry sizes differ "
                f"({record.compressed_size} != {record.uncompressed_size})"
            )
        raw = payload
    elif record.compression == Compression.DEFLATED:
        raw = codec.decompress(payload, record.uncompressed_size)
    else:
        raise UnsupportedCompressionError(record.compression, name)

    return Entry(
        filename=record.filename,
        raw_data=raw,
        compressed_data=payload,
        compression_method=Compression(record.compression),
        uncompressed_size=record.uncompressed_size,
        compressed_size=record.compressed_size,
        crc32=record.crc32,
        local_header_offset=record.local_header_offset,
        mod_time=record.mod_time,
        mod_date=record.mod_date,
    )


def load(path: str | Path, codec: ZlibCodec | None = None, verify: bool = False) -> Archive:
    """
    Read and decode the archive stored at *path*.

    Raises:
        ArchiveIOError: If the file cannot be read.
        FormatError, CompressionError, IntegrityError: As for :func:`decode`.
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise ArchiveIOError(str(path), e.strerror or str(e)) from e

    return decode(data, codec=codec, verify=verify)
