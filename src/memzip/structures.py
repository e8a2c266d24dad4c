"""ZIP file format data structures.

Based on PKWARE's APPNOTE.TXT specification.
https://pkware.cachefly.net/webdocs/casestudies/APPNOTE.TXT

Every record serializes its integer fields through ``write_u16``/``write_u32``,
so values wider than a field wrap modulo the field width. Parsing checks that
the fixed part and the variable-length tail of a record fit in the buffer
before touching them.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar

from .exceptions import FormatError
from .utils import read_u32, write_u16, write_u32


class Compression(IntEnum):
    """Compression methods supported by ZIP."""

    STORED = 0  # No compression
    DEFLATED = 8  # DEFLATE compression


# Signatures
LOCAL_FILE_HEADER_SIG = 0x04034B50
CENTRAL_DIR_HEADER_SIG = 0x02014B50
END_OF_CENTRAL_DIR_SIG = 0x06054B50

# Version 2.0: DEFLATE, MS-DOS compatible
ZIP_VERSION = 20

# Largest value of the 16-bit length fields (filename, comment)
MAX_FIELD_LEN = 0xFFFF


def _check_fits(name: str, data: bytes, offset: int, size: int) -> None:
    if offset < 0 or offset + size > len(data):
        raise FormatError(
            f"Truncated {name} at offset {offset}: need {size} bytes, "
            f"{max(len(data) - offset, 0)} available"
        )


def _check_signature(name: str, data: bytes, offset: int, expected: int) -> None:
    sig = read_u32(data, offset)
    if sig != expected:
        raise FormatError(f"Invalid {name} signature at offset {offset}: {sig:#010x}")


@dataclass
class LocalFileHeader:
    """Local file header structure (precedes each file's data)."""

    SIGNATURE: ClassVar[int] = LOCAL_FILE_HEADER_SIG
    STRUCT_FORMAT: ClassVar[str] = "<IHHHHHIIIHH"
    FIXED_SIZE: ClassVar[int] = 30  # Size without filename and extra

    version_needed: int = ZIP_VERSION
    flags: int = 0
    compression: int = Compression.DEFLATED
    mod_time: int = 0
    mod_date: int = 0
    crc32: int = 0
    compressed_size: int = 0
    uncompressed_size: int = 0
    filename: bytes = b""
    extra: bytes = b""

    def to_bytes(self) -> bytes:
        """Serialize to bytes."""
        return b"".join(
            (
                write_u32(self.SIGNATURE),
                write_u16(self.version_needed),
                write_u16(self.flags),
                write_u16(self.compression),
                write_u16(self.mod_time),
                write_u16(self.mod_date),
                write_u32(self.crc32),
                write_u32(self.compressed_size),
                write_u32(self.uncompressed_size),
                write_u16(len(self.filename)),
                write_u16(len(self.extra)),
                self.filename,
                self.extra,
            )
        )

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> LocalFileHeader:
        """Parse the header starting at *offset* in *data*.

        The filename and extra lengths come from this header itself; they may
        differ from the central directory's copies.
        """
        _check_fits("local file header", data, offset, cls.FIXED_SIZE)
        _check_signature("local file header", data, offset, cls.SIGNATURE)

        (
            _sig,
            version_needed,
            flags,
            compression,
            mod_time,
            mod_date,
            crc32,
            compressed_size,
            uncompressed_size,
            filename_len,
            extra_len,
        ) = struct.unpack_from(cls.STRUCT_FORMAT, data, offset)

        start = offset + cls.FIXED_SIZE
        _check_fits("local file header", data, start, filename_len + extra_len)
        filename = bytes(data[start : start + filename_len])
        extra = bytes(data[start + filename_len : start + filename_len + extra_len])

        return cls(
            version_needed=version_needed,
            flags=flags,
            compression=compression,
            mod_time=mod_time,
            mod_date=mod_date,
            crc32=crc32,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
            filename=filename,
            extra=extra,
        )

    @property
    def total_size(self) -> int:
        """Total size of header including variable fields."""
        return self.FIXED_SIZE + len(self.filename) + len(self.extra)


@dataclass
class CentralDirectoryHeader:
    """Central directory file header."""

    SIGNATURE: ClassVar[int] = CENTRAL_DIR_HEADER_SIG
    STRUCT_FORMAT: ClassVar[str] = "<IHHHHHHIIIHHHHHII"
    FIXED_SIZE: ClassVar[int] = 46

    version_made_by: int = ZIP_VERSION
    version_needed: int = ZIP_VERSION
    flags: int = 0
    compression: int = Compression.DEFLATED
    mod_time: int = 0
    mod_date: int = 0
    crc32: int = 0
    compressed_size: int = 0
    uncompressed_size: int = 0
    disk_number_start: int = 0
    internal_attr: int = 0
    external_attr: int = 0
    local_header_offset: int = 0
    filename: bytes = b""
    extra: bytes = b""
    comment: bytes = b""

    def to_bytes(self) -> bytes:
        """Serialize to bytes."""
        return b"".join(
            (
                write_u32(self.SIGNATURE),
                write_u16(self.version_made_by),
                write_u16(self.version_needed),
                write_u16(self.flags),
                write_u16(self.compression),
                write_u16(self.mod_time),
                write_u16(self.mod_date),
                write_u32(self.crc32),
                write_u32(self.compressed_size),
                write_u32(self.uncompressed_size),
                write_u16(len(self.filename)),
                write_u16(len(self.extra)),
                write_u16(len(self.comment)),
                write_u16(self.disk_number_start),
                write_u16(self.internal_attr),
                write_u32(self.external_attr),
                write_u32(self.local_header_offset),
                self.filename,
                self.extra,
                self.comment,
            )
        )

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> CentralDirectoryHeader:
        """Parse the record starting at *offset* in *data*."""
        _check_fits("central directory header", data, offset, cls.FIXED_SIZE)
        _check_signature("central directory header", data, offset, cls.SIGNATURE)

        (
            _sig,
            version_made_by,
            version_needed,
            flags,
            compression,
            mod_time,
            mod_date,
            crc32,
            compressed_size,
            uncompressed_size,
            filename_len,
            extra_len,
            comment_len,
            disk_number_start,
            internal_attr,
            external_attr,
            local_header_offset,
        ) = struct.unpack_from(cls.STRUCT_FORMAT, data, offset)

        pos = offset + cls.FIXED_SIZE
        _check_fits(
            "central directory header", data, pos, filename_len + extra_len + comment_len
        )
        filename = bytes(data[pos : pos + filename_len])
        pos += filename_len
        extra = bytes(data[pos : pos + extra_len])
        pos += extra_len
        comment = bytes(data[pos : pos + comment_len])

        return cls(
            version_made_by=version_made_by,
            version_needed=version_needed,
            flags=flags,
            compression=compression,
            mod_time=mod_time,
            mod_date=mod_date,
            crc32=crc32,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
            disk_number_start=disk_number_start,
            internal_attr=internal_attr,
            external_attr=external_attr,
            local_header_offset=local_header_offset,
            filename=filename,
            extra=extra,
            comment=comment,
        )

    @property
    def total_size(self) -> int:
        """Total size of header including variable fields."""
        return self.FIXED_SIZE + len(self.filename) + len(self.extra) + len(self.comment)


@dataclass
class EndOfCentralDirectory:
    """End of central directory record."""

    SIGNATURE: ClassVar[int] = END_OF_CENTRAL_DIR_SIG
    STRUCT_FORMAT: ClassVar[str] = "<IHHHHIIH"
    FIXED_SIZE: ClassVar[int] = 22
    # Fixed record plus the longest possible comment
    MAX_SIZE: ClassVar[int] = FIXED_SIZE + MAX_FIELD_LEN

    # Single-disk archives only: both disk fields stay 0
    disk_number: int = 0
    disk_with_cd_start: int = 0
    entries_on_disk: int = 0
    total_entries: int = 0
    cd_size: int = 0
    cd_offset: int = 0
    comment: bytes = b""

    def to_bytes(self) -> bytes:
        """Serialize to bytes."""
        return b"".join(
            (
                write_u32(self.SIGNATURE),
                write_u16(self.disk_number),
                write_u16(self.disk_with_cd_start),
                write_u16(self.entries_on_disk),
                write_u16(self.total_entries),
                write_u32(self.cd_size),
                write_u32(self.cd_offset),
                write_u16(len(self.comment)),
                self.comment,
            )
        )

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> EndOfCentralDirectory:
        """Parse the record starting at *offset* in *data*.

        Raises FormatError if the fixed record or the comment it announces
        runs past the end of *data*.
        """
        _check_fits("end of central directory", data, offset, cls.FIXED_SIZE)
        _check_signature("end of central directory", data, offset, cls.SIGNATURE)

        (
            _sig,
            disk_number,
            disk_with_cd_start,
            entries_on_disk,
            total_entries,
            cd_size,
            cd_offset,
            comment_len,
        ) = struct.unpack_from(cls.STRUCT_FORMAT, data, offset)

        start = offset + cls.FIXED_SIZE
        _check_fits("end of central directory", data, start, comment_len)
        comment = bytes(data[start : start + comment_len])

        return cls(
            disk_number=disk_number,
            disk_with_cd_start=disk_with_cd_start,
            entries_on_disk=entries_on_disk,
            total_entries=total_entries,
            cd_size=cd_size,
            cd_offset=cd_offset,
            comment=comment,
        )

    @property
    def total_size(self) -> int:
        """Total size of record including comment."""
        return self.FIXED_SIZE + len(self.comment)
