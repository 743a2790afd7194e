"""
Tests for streaming CSV chunking.

Dependencies: pytest, csv_migrator.core.csv_reader
System role: Chunk boundary verification
"""

import pytest

from csv_migrator.core.csv_reader import (
    EXTRA_COLUMNS_KEY,
    ChunkReader,
    chunk_count,
    count_rows,
    iter_chunks,
    iter_rows,
    preview_rows,
)


class TestCountRows:
    """Test row counting."""

    def test_count_should_exclude_header(self, write_csv):
        path = write_csv(rows=2500)

        assert count_rows(path) == 2500

    def test_header_only_file_should_have_zero_rows(self, write_csv):
        path = write_csv(content="id,name\n")

        assert count_rows(path) == 0

    def test_quoted_newlines_should_count_as_one_row(self, write_csv):
        path = write_csv(content='id,note\n1,"line one\nline two"\n2,plain\n')

        assert count_rows(path) == 2


class TestChunkCount:
    """Test chunk arithmetic."""

    @pytest.mark.parametrize(
        ("total", "size", "expected"),
        [(0, 1000, 0), (1, 1000, 1), (1000, 1000, 1), (1001, 1000, 2), (2500, 1000, 3)],
    )
    def test_chunk_count(self, total, size, expected):
        assert chunk_count(total, size) == expected


class TestIterChunks:
    """Test chunk boundaries."""

    def test_chunks_should_be_full_except_last(self, write_csv):
        """Test 2500 rows at size 1000 split 1000/1000/500."""
        path = write_csv(rows=2500)

        # Act
        sizes = [len(chunk) for chunk in iter_chunks(path, 1000)]

        # Assert
        assert sizes == [1000, 1000, 500]

    def test_chunks_should_be_deterministic(self, write_csv):
        """Test chunk i holds the same rows on every read."""
        path = write_csv(rows=25)

        first = list(iter_chunks(path, 10))
        second = list(iter_chunks(path, 10))

        assert first == second
        assert first[1][0]["id"] == "10"

    def test_empty_file_should_yield_nothing(self, write_csv):
        path = write_csv(content="id,name\n")

        assert list(iter_chunks(path, 10)) == []

    def test_invalid_chunk_size_should_raise(self, write_csv):
        path = write_csv(rows=1)

        with pytest.raises(ValueError):
            next(iter_chunks(path, 0))

    def test_bom_should_not_leak_into_header(self, tmp_path):
        """Test a UTF-8 byte order mark is stripped from the first column."""
        path = tmp_path / "bom.csv"
        path.write_bytes("\ufeffid,name\n1,a\n".encode("utf-8"))

        rows = list(iter_rows(path))

        assert rows == [{"id": "1", "name": "a"}]

    def test_extra_values_should_be_collected(self, write_csv):
        path = write_csv(content="id,name\n1,a,surplus\n")

        rows = list(iter_rows(path))

        assert rows[0][EXTRA_COLUMNS_KEY] == ["surplus"]


class TestPreviewRows:
    """Test header and leading-row preview."""

    def test_preview_should_cap_rows(self, write_csv):
        path = write_csv(rows=20)

        headers, rows = preview_rows(path, 3)

        assert headers == ["id", "name", "email"]
        assert [row["id"] for row in rows] == ["0", "1", "2"]

    def test_header_only_file_should_keep_headers(self, write_csv):
        headers, rows = preview_rows(write_csv(content="id,name\n"), 5)

        assert (headers, rows) == (["id", "name"], [])

    def test_empty_file_should_have_no_headers(self, write_csv):
        assert preview_rows(write_csv(content=""), 5) == ([], [])


class TestChunkReader:
    """Test wave-at-a-time reading."""

    def test_read_wave_should_number_chunks_in_order(self, write_csv):
        """Test waves of width 2 over three chunks."""
        path = write_csv(rows=25)
        reader = ChunkReader(path, 10)

        # Act
        first = reader.read_wave(2)
        second = reader.read_wave(2)
        third = reader.read_wave(2)
        reader.close()

        # Assert
        assert [index for index, _ in first] == [0, 1]
        assert [(index, len(rows)) for index, rows in second] == [(2, 5)]
        assert third == []
        assert reader.exhausted is True
