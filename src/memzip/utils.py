"""Utility functions for memzip."""

from __future__ import annotations

import struct
import time
from datetime import datetime

# Range of years a DOS date can hold
MIN_DOS_YEAR = 1980
MAX_DOS_YEAR = 2107

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")


def write_u16(n: int) -> bytes:
    """Encode *n* modulo 2**16 as 2 little-endian bytes."""
    return _U16.pack(n & 0xFFFF)


def write_u32(n: int) -> bytes:
    """Encode *n* modulo 2**32 as 4 little-endian bytes."""
    return _U32.pack(n & 0xFFFFFFFF)


def read_u16(data: bytes, offset: int = 0) -> int:
    """Read a little-endian unsigned 16-bit value at *offset*.

    The caller guarantees that ``offset + 2 <= len(data)``.
    """
    return _U16.unpack_from(data, offset)[0]


def read_u32(data: bytes, offset: int = 0) -> int:
    """Read a little-endian unsigned 32-bit value at *offset*.

    The caller guarantees that ``offset + 4 <= len(data)``.
    """
    return _U32.unpack_from(data, offset)[0]


def format_size(size: int, binary: bool = False) -> str:
    """
    Format a size in bytes to a human-readable string.

    Args:
        size: Size in bytes.
        binary: If True, use binary units (KiB, MiB). If False, use decimal (KB, MB).

    Returns:
        Human-readable size string.

    Examples:
        >>> format_size(1500000)
        '1.50 MB'
        >>> format_size(1572864, binary=True)
        '1.50 MiB'
    """
    if binary:
        units = ["B", "KiB", "MiB", "GiB", "TiB"]
        divisor = 1024.0
    else:
        units = ["B", "KB", "MB", "GB", "TB"]
        divisor = 1000.0

    value = float(size)
    for unit in units[:-1]:
        if abs(value) < divisor:
            return f"{value:.2f} {unit}" if value != int(value) else f"{int(value)} {unit}"
        value /= divisor

    return f"{value:.2f} {units[-1]}"


def dos_datetime(timestamp: float | None = None) -> tuple[int, int]:
    """
    Convert a Unix timestamp to DOS date and time format.

    Only years 1980 through 2107 can be represented; other years are
    clamped to that range while month, day and time of day are kept.

    Args:
        timestamp: Unix timestamp. If None, uses current time.

    Returns:
        Tuple of (dos_time, dos_date) as 16-bit integers.
    """
    if timestamp is None:
        timestamp = time.time()

    t = time.localtime(timestamp)
    year = min(max(t.tm_year, MIN_DOS_YEAR), MAX_DOS_YEAR)

    # DOS time: bits 0-4 = seconds/2, bits 5-10 = minute, bits 11-15 = hour
    dos_time = (t.tm_sec // 2) | (t.tm_min << 5) | (t.tm_hour << 11)

    # DOS date: bits 0-4 = day, bits 5-8 = month, bits 9-15 = year - 1980
    dos_date = t.tm_mday | (t.tm_mon << 5) | ((year - MIN_DOS_YEAR) << 9)

    return dos_time, dos_date


def parse_dos_datetime(dos_time: int, dos_date: int) -> datetime:
    """Convert DOS time and date words back to a naive datetime.

    Out-of-range fields (e.g. an all-zero date) are clamped to the nearest
    valid value.
    """
    year = ((dos_date >> 9) & 0x7F) + MIN_DOS_YEAR
    month = min(max((dos_date >> 5) & 0x0F, 1), 12)
    day = max(dos_date & 0x1F, 1)
    hour = min((dos_time >> 11) & 0x1F, 23)
    minute = min((dos_time >> 5) & 0x3F, 59)
    second = min((dos_time & 0x1F) * 2, 59)

    # Day 31 in a 30-day month and similar
    while True:
        try:
            return datetime(year, month, day, hour, minute, second)
        except ValueError:
            day -= 1
