"""Custom exceptions for memzip."""


class MemZipError(Exception):
    """Base exception for all memzip errors."""


class FormatError(MemZipError):
    """Archive bytes do not follow the ZIP layout."""


class UnsupportedCompressionError(FormatError):
    """Entry uses a compression method other than STORED or DEFLATED."""

    def __init__(self, method: int, filename: str = "") -> None:
        self.method = method
        self.filename = filename
        where = f" for '{filename}'" if filename else ""
        super().__init__(f"Unsupported compression method {method}{where}")


class CompressionError(MemZipError):
    """Error during compression or decompression."""


class IntegrityError(MemZipError):
    """CRC mismatch or corrupted data."""

    def __init__(self, expected: int, actual: int, filename: str) -> None:
        self.expected = expected
        self.actual = actual
        self.filename = filename
        super().__init__(
            f"CRC32 mismatch for '{filename}': expected {expected:08x}, got {actual:08x}"
        )


class ArchiveIOError(MemZipError):
    """Archive file could not be opened, read or written."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot access '{path}': {reason}")


class FileNotFoundInArchiveError(MemZipError):
    """Requested file not found in archive."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"File not found in archive: '{filename}'")
