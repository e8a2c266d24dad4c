"""Integration tests for encoding and decoding archives."""

import io
import os
import time
import warnings
import zipfile

import pytest

import memzip
from memzip import Archive, Compression, ZlibCodec, decode, encode, load
from memzip.exceptions import (
    ArchiveIOError,
    CompressionError,
    FileNotFoundInArchiveError,
    FormatError,
    IntegrityError,
    UnsupportedCompressionError,
)
from memzip.structures import (
    CentralDirectoryHeader,
    EndOfCentralDirectory,
    LocalFileHeader,
)
from memzip.utils import read_u16, read_u32


@pytest.fixture
def sample_archive():
    """Archive with one DEFLATED and one STORED entry."""
    archive = memzip.new("test archive comment")
    archive.add_file("a.txt", b"hello", compress=True)
    archive.add_file("b.bin", b"\x01\x02\x03\x04", compress=False)
    return archive


def single_entry(data, compress):
    archive = Archive()
    archive.add_file("f", data, compress=compress)
    return archive


class FailingCodec(ZlibCodec):
    """Codec whose compressor always fails."""

    def compress(self, raw):
        raise CompressionError("Compression failed: simulated")


class TestAddFile:
    """Tests for Archive.add_file."""

    def test_deflated_entry(self):
        archive = Archive()
        entry = archive.add_file("hello.txt", b"hello world" * 10)

        assert entry.compression_method == Compression.DEFLATED
        assert entry.uncompressed_size == 110
        assert entry.compressed_size == len(entry.compressed_data)
        assert entry.crc32 == archive.codec.checksum(b"hello world" * 10)
        assert archive.codec.decompress(entry.compressed_data) == b"hello world" * 10

    def test_stored_entry(self):
        entry = Archive().add_file("raw.bin", b"\x00\x01\x02", compress=False)

        assert entry.compression_method == Compression.STORED
        assert entry.compressed_data == entry.raw_data == b"\x00\x01\x02"
        assert entry.compressed_size == entry.uncompressed_size == 3

    @pytest.mark.parametrize("compress", [True, False])
    def test_zero_length(self, compress):
        archive = Archive()
        entry = archive.add_file("empty.txt", b"", compress=compress)

        assert entry.compressed_size == entry.uncompressed_size == 0
        assert entry.crc32 == archive.codec.checksum(b"", 0) == 0

    def test_str_arguments_encoded(self):
        entry = Archive().add_file("日本語.txt", "テキスト")
        assert entry.filename == "日本語.txt".encode("utf-8")
        assert entry.raw_data == "テキスト".encode("utf-8")
        assert entry.name == "日本語.txt"

    def test_filename_too_long(self):
        archive = Archive()
        with pytest.raises(ValueError, match="too long"):
            archive.add_file("x" * 65536, b"data")
        assert len(archive) == 0

    def test_failed_compression_appends_nothing(self):
        archive = Archive(codec=FailingCodec())
        archive.add_file("ok.bin", b"data", compress=False)

        with pytest.raises(CompressionError):
            archive.add_file("bad.txt", b"data")

        assert archive.namelist() == ["ok.bin"]

    def test_comment_too_long(self):
        with pytest.raises(ValueError, match="comment too long"):
            Archive(b"c" * 65536)


class TestRoundTrip:
    """Tests for decode(encode(archive))."""

    @pytest.mark.parametrize(
        "data",
        [b"", b"x", b"hello world", os.urandom(4096), b"abc" * 50000],
        ids=["empty", "one-byte", "text", "random", "large"],
    )
    @pytest.mark.parametrize("compress", [True, False], ids=["deflated", "stored"])
    def test_single_entry(self, data, compress):
        decoded = decode(encode(single_entry(data, compress)))

        entry = decoded.entries[0]
        assert entry.raw_data == data
        assert entry.filename == b"f"
        expected = Compression.DEFLATED if compress else Compression.STORED
        assert entry.compression_method == expected

    def test_checksum_consistency(self):
        data = os.urandom(1000)
        archive = single_entry(data, True)
        assert archive.entries[0].crc32 == archive.codec.checksum(data)

        decoded = decode(archive.write())
        entry = decoded.entries[0]
        assert decoded.codec.checksum(entry.raw_data) == entry.crc32

    def test_order_preserved(self):
        names = [f"file_{i:03d}.txt" for i in range(50)]
        archive = Archive()
        for i, name in enumerate(names):
            archive.add_file(name, f"Content {i}", compress=i % 2 == 0)

        assert decode(archive.write()).namelist() == names

    def test_concrete_scenario(self, sample_archive):
        decoded = decode(sample_archive.write())

        assert len(decoded) == 2
        a, b = decoded.entries
        assert a.filename == b"a.txt"
        assert a.raw_data == b"hello"
        assert a.compression_method == Compression.DEFLATED
        assert decoded.codec.decompress(a.compressed_data) == b"hello"
        assert b.filename == b"b.bin"
        assert b.raw_data == b"\x01\x02\x03\x04"
        assert b.compression_method == Compression.STORED
        assert b.compressed_size == 4
        assert decoded.comment == b"test archive comment"

    def test_empty_archive(self):
        data = Archive().write()
        assert data == EndOfCentralDirectory().to_bytes()
        assert len(decode(data)) == 0

    def test_timestamp_decoded(self):
        ts = time.mktime((2024, 3, 9, 8, 15, 20, 0, 0, -1))
        decoded = decode(single_entry(b"data", True).write(ts))
        assert decoded.entries[0].date_time.timetuple()[:6] == (2024, 3, 9, 8, 15, 20)

    def test_verify_passes(self, sample_archive):
        decode(sample_archive.write(), verify=True).verify()

    def test_custom_codec(self):
        codec = ZlibCodec(compresslevel=9, chunk_size=16)
        archive = memzip.new(codec=codec)
        archive.add_file("big.txt", b"0123456789" * 1000)

        decoded = memzip.read(archive.write(), codec=codec)
        assert decoded.codec is codec
        assert decoded.get("big.txt").raw_data == b"0123456789" * 1000


class TestEncodedLayout:
    """Tests for the byte layout produced by encode."""

    def test_offsets_point_at_local_headers(self, sample_archive):
        data = sample_archive.write()
        eocd = EndOfCentralDirectory.from_bytes(data, len(data) - 22 - len(sample_archive.comment))

        pos = eocd.cd_offset
        for entry in sample_archive.entries:
            record = CentralDirectoryHeader.from_bytes(data, pos)
            assert record.local_header_offset == entry.local_header_offset
            header = LocalFileHeader.from_bytes(data, record.local_header_offset)
            assert header.filename == record.filename == entry.filename
            pos += record.total_size

    def test_first_entry_at_zero(self, sample_archive):
        sample_archive.write()
        first, second = sample_archive.entries
        assert first.local_header_offset == 0
        assert second.local_header_offset == 30 + len(b"a.txt") + first.compressed_size

    def test_eocd_arithmetic(self, sample_archive):
        data = sample_archive.write()
        eocd_pos = data.rfind(b"PK\x05\x06")

        entries_on_disk = read_u16(data, eocd_pos + 8)
        entries_total = read_u16(data, eocd_pos + 10)
        cd_size = read_u32(data, eocd_pos + 12)
        cd_offset = read_u32(data, eocd_pos + 16)

        assert entries_on_disk == entries_total == len(sample_archive.entries)
        assert cd_offset + cd_size == eocd_pos
        assert data[cd_offset : cd_offset + 4] == b"PK\x01\x02"
        assert data.count(b"PK\x01\x02", cd_offset, eocd_pos) == 2

    def test_single_timestamp_for_all_entries(self, sample_archive):
        ts = time.mktime((2023, 7, 1, 9, 0, 0, 0, 0, -1))
        data = sample_archive.write(ts)
        words = {
            (read_u16(data, e.local_header_offset + 10), read_u16(data, e.local_header_offset + 12))
            for e in sample_archive.entries
        }
        assert len(words) == 1

    def test_readable_by_zipfile(self, sample_archive):
        with zipfile.ZipFile(io.BytesIO(sample_archive.write())) as zf:
            assert zf.namelist() == ["a.txt", "b.bin"]
            assert zf.read("a.txt") == b"hello"
            assert zf.read("b.bin") == b"\x01\x02\x03\x04"
            assert zf.comment == b"test archive comment"
            assert zf.testzip() is None

    def test_reads_zipfile_output(self):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("stored.txt", b"plain", compress_type=zipfile.ZIP_STORED)
            zf.writestr("deflated.txt", b"squeeze " * 100, compress_type=zipfile.ZIP_DEFLATED)
            zf.comment = b"from zipfile"

        decoded = decode(buf.getvalue(), verify=True)
        assert decoded.namelist() == ["stored.txt", "deflated.txt"]
        assert decoded.get("deflated.txt").raw_data == b"squeeze " * 100
        assert decoded.comment == b"from zipfile"

    def test_oversized_size_wraps_with_warning(self):
        archive = single_entry(b"data", False)
        archive.entries[0].uncompressed_size = 0x1_0000_0004

        with pytest.warns(UserWarning, match="ZIP32"):
            data = archive.write()

        assert read_u32(data, 22) == 4


class TestDecodeErrors:
    """Tests for malformed input."""

    def test_no_eocd(self):
        with pytest.raises(FormatError, match="EOCD not found"):
            decode(b"this is not a zip file at all" * 10)

    def test_empty_input(self):
        with pytest.raises(FormatError, match="EOCD not found"):
            decode(b"")

    def test_eocd_outside_search_window(self):
        data = EndOfCentralDirectory().to_bytes() + b"\x00" * 70000
        with pytest.raises(FormatError, match="EOCD not found"):
            decode(data)

    def test_signature_too_close_to_end_skipped(self):
        data = Archive().write() + b"PK\x05\x06"
        # The trailing signature cannot hold a full record
        assert len(decode(data)) == 0

    def test_max_length_comment(self):
        comment = b"c" * 65535
        archive = Archive(comment)
        archive.add_file("a.txt", b"hello")
        decoded = decode(archive.write())
        assert decoded.comment == comment
        assert decoded.namelist() == ["a.txt"]

    @pytest.mark.parametrize(
        "comment",
        [b"notes: PK\x05\x06" + b"\x00" * 30, b"PK\x05\x06" + b"\x00" * 18],
    )
    def test_signature_inside_comment_ignored(self, comment):
        archive = Archive(comment)
        archive.add_file("a.txt", b"hello")
        decoded = decode(archive.write())
        assert decoded.namelist() == ["a.txt"]
        assert decoded.comment == comment

    def test_truncated_comment(self):
        archive = Archive(b"a comment that gets cut off")
        archive.add_file("a.txt", b"hello")
        data = archive.write()
        with pytest.raises(FormatError, match="Truncated end of central directory"):
            decode(data[:-5])

    def test_bad_central_directory_signature(self, sample_archive):
        data = bytearray(sample_archive.write())
        cd_offset = data.find(b"PK\x01\x02")
        data[cd_offset + 2] = 0x09
        with pytest.raises(FormatError, match="central directory header signature"):
            decode(bytes(data))

    def test_miscounted_central_directory(self, sample_archive):
        data = bytearray(sample_archive.write())
        eocd_pos = data.rfind(b"PK\x05\x06")
        data[eocd_pos + 10] = 3  # Claim three entries
        with pytest.raises(FormatError, match="Central directory entry 2"):
            decode(bytes(data))

    def test_bad_local_header_signature(self, sample_archive):
        data = bytearray(sample_archive.write())
        data[0:4] = b"XXXX"
        with pytest.raises(FormatError, match="local file header signature"):
            decode(bytes(data))

    def test_truncated_payload(self):
        archive = single_entry(b"payload", False)
        archive.entries[0].compressed_size = 10**6
        archive.entries[0].uncompressed_size = 10**6
        with pytest.raises(FormatError, match="payload truncated"):
            decode(archive.write())

    def test_unsupported_method(self):
        archive = single_entry(b"payload", False)
        archive.entries[0].compression_method = 12  # BZIP2
        with pytest.raises(UnsupportedCompressionError, match="method 12") as exc_info:
            decode(archive.write())
        assert exc_info.value.method == 12
        assert isinstance(exc_info.value, FormatError)

    def test_corrupt_deflate_payload(self):
        archive = single_entry(b"some text " * 100, True)
        entry = archive.entries[0]
        entry.compressed_data = b"\xff" * entry.compressed_size
        with pytest.raises(CompressionError):
            decode(archive.write())

    def test_crc_mismatch_detected_with_verify(self):
        archive = single_entry(b"payload", False)
        archive.entries[0].crc32 ^= 0xFFFF
        data = archive.write()

        assert decode(data).entries[0].raw_data == b"payload"
        with pytest.raises(IntegrityError, match="CRC32 mismatch for 'f'"):
            decode(data, verify=True)

    def test_local_header_lengths_used_for_payload(self):
        """Payload position follows the local header's own extra length."""
        local = LocalFileHeader(
            compression=0, crc32=0, compressed_size=3, uncompressed_size=3,
            filename=b"x.bin", extra=b"\xca\xfe\x00\x00",
        ).to_bytes()
        cd = CentralDirectoryHeader(
            compression=0, compressed_size=3, uncompressed_size=3,
            crc32=0, filename=b"x.bin",
        ).to_bytes()
        body = local + b"abc"
        eocd = EndOfCentralDirectory(
            entries_on_disk=1, total_entries=1, cd_size=len(cd), cd_offset=len(body)
        ).to_bytes()

        decoded = decode(body + cd + eocd)
        assert decoded.entries[0].raw_data == b"abc"


class TestArchiveAccess:
    """Tests for lookup and iteration helpers."""

    def test_get(self, sample_archive):
        assert sample_archive.get("b.bin").raw_data == b"\x01\x02\x03\x04"
        assert sample_archive.get(b"a.txt").raw_data == b"hello"

    def test_get_missing(self, sample_archive):
        with pytest.raises(FileNotFoundInArchiveError, match="missing.txt"):
            sample_archive.get("missing.txt")

    def test_len_iter_repr(self, sample_archive):
        assert len(sample_archive) == 2
        assert [e.name for e in sample_archive] == ["a.txt", "b.bin"]
        assert repr(sample_archive) == "<Archive: 2 files>"


class TestFileIO:
    """Tests for save and load."""

    def test_save_and_load(self, tmp_path, sample_archive):
        path = tmp_path / "out.zip"
        sample_archive.save(path)

        loaded = load(path, verify=True)
        assert loaded.namelist() == ["a.txt", "b.bin"]
        assert loaded.get("a.txt").raw_data == b"hello"

    def test_save_overwrites(self, tmp_path, sample_archive):
        path = tmp_path / "out.zip"
        path.write_bytes(b"x" * 100000)
        sample_archive.save(str(path))
        assert load(str(path)).comment == b"test archive comment"

    def test_save_unwritable_path(self, tmp_path, sample_archive):
        with pytest.raises(ArchiveIOError) as exc_info:
            sample_archive.save(tmp_path / "missing_dir" / "out.zip")
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ArchiveIOError, match="Cannot access"):
            load(tmp_path / "nope.zip")

    def test_load_directory(self, tmp_path):
        with pytest.raises(ArchiveIOError):
            load(tmp_path)


class TestWarnings:
    """Normal archives encode without warnings."""

    def test_no_warning(self, sample_archive):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            sample_archive.write()

    def test_warning_points_at_encode_caller(self):
        archive = single_entry(b"data", False)
        archive.entries[0].uncompressed_size = 0x1_0000_0004
        with pytest.warns(UserWarning, match="ZIP32") as record:
            encode(archive)
        assert record[0].filename == __file__

    def test_warning_points_at_write_caller(self):
        archive = single_entry(b"data", False)
        archive.entries[0].compressed_size = 0x1_0000_0004
        with pytest.warns(UserWarning, match="ZIP32") as record:
            archive.write()
        assert record[0].filename == __file__
