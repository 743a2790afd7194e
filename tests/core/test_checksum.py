"""
Tests for content checksums and row keys.

Tests the SHA-256 helpers used for duplicate file detection and record keys.

Dependencies: pytest, csv_migrator.core.checksum
System role: Dedup key verification
"""

import hashlib
import io

import pytest

from csv_migrator.core.checksum import (
    calculate_bytes_checksum,
    calculate_file_checksum,
    calculate_file_checksum_async,
    calculate_row_key,
    checksum_stream,
)


class TestFileChecksum:
    """Test file and stream digests."""

    def test_file_checksum_should_match_hashlib(self, write_csv):
        """Test the digest equals a plain SHA-256 of the bytes."""
        path = write_csv("a.csv", rows=3)

        # Act
        result = calculate_file_checksum(path)

        # Assert
        assert result == hashlib.sha256(path.read_bytes()).hexdigest()
        assert len(result) == 64

    def test_identical_content_should_ignore_filename(self, write_csv):
        """Test two files with the same bytes share a checksum."""
        first = write_csv("first.csv", rows=5)
        second = write_csv("renamed.csv", rows=5)

        assert calculate_file_checksum(first) == calculate_file_checksum(second)

    def test_different_content_should_differ(self, write_csv):
        """Test one changed row changes the checksum."""
        first = write_csv("first.csv", rows=5)
        second = write_csv("second.csv", rows=5, start=1)

        assert calculate_file_checksum(first) != calculate_file_checksum(second)

    def test_stream_should_match_bytes_with_small_blocks(self):
        """Test block size does not influence the digest."""
        data = b"id,name\n" + b"1,x\n" * 1000

        # Act
        streamed = checksum_stream(io.BytesIO(data), block_size=7)

        # Assert
        assert streamed == calculate_bytes_checksum(data)

    def test_missing_file_should_raise_oserror(self, tmp_path):
        """Test read errors propagate."""
        with pytest.raises(OSError):
            calculate_file_checksum(tmp_path / "missing.csv")

    @pytest.mark.asyncio
    async def test_async_checksum_should_match_sync(self, write_csv):
        """Test the thread wrapper returns the same digest."""
        path = write_csv(rows=20)

        assert await calculate_file_checksum_async(path) == calculate_file_checksum(path)


class TestRowKey:
    """Test positional destination keys."""

    def test_same_position_should_share_key(self):
        """Test a replayed row maps onto the key it wrote before."""
        assert calculate_row_key("abc", 2, 7) == calculate_row_key("abc", 2, 7)

    @pytest.mark.parametrize(
        "other",
        [("abd", 2, 7), ("abc", 3, 7), ("abc", 2, 8)],
    )
    def test_any_coordinate_change_should_change_key(self, other):
        assert calculate_row_key("abc", 2, 7) != calculate_row_key(*other)

    def test_key_should_be_sha256_hex(self):
        assert calculate_row_key("abc", 0, 0) == hashlib.sha256(b"abc:0:0").hexdigest()
