"""
Integration tests for RecordCRUD unordered inserts.

Dependencies: pytest, sqlalchemy, csv_migrator.boundary.db.CRUD.record_crud
System role: Destination store dedup verification
"""

import pytest

from csv_migrator.boundary.db.CRUD.record_crud import BulkInsertResult, record_crud

SOURCE = "f" * 64


def _records(count: int, start: int = 0) -> list[dict]:
    return [{"id": str(i), "email": f"user{i}@example.com"} for i in range(start, start + count)]


class TestBulkInsertResult:
    """Test derived counts."""

    def test_duplicates_should_be_difference(self):
        result = BulkInsertResult(attempted=10, inserted=7)

        assert result.duplicates == 3
        assert result.all_duplicates is False

    def test_all_duplicates_when_nothing_inserted(self):
        assert BulkInsertResult(attempted=5, inserted=0).all_duplicates is True


class TestRecordCRUDInsertUnordered:
    """Test insert-ignore semantics over positional keys."""

    @pytest.mark.asyncio
    async def test_new_records_should_all_insert(self, test_async_db, job_id):
        # Act
        result = await record_crud.insert_unordered(
            test_async_db, job_id, 0, _records(25), source_checksum=SOURCE, batch_size=10
        )

        # Assert
        assert result.attempted == 25
        assert result.inserted == 25
        assert await record_crud.count_for_job(test_async_db, job_id) == 25

    @pytest.mark.asyncio
    async def test_reinsert_should_count_duplicates(self, test_async_db, job_id):
        """Test a replayed chunk inserts nothing and is not an error."""
        await record_crud.insert_unordered(test_async_db, job_id, 0, _records(10), source_checksum=SOURCE)

        # Act
        result = await record_crud.insert_unordered(test_async_db, job_id, 0, _records(10), source_checksum=SOURCE)

        # Assert
        assert result.inserted == 0
        assert result.duplicates == 10
        assert result.all_duplicates is True

    @pytest.mark.asyncio
    async def test_partial_replay_should_insert_remainder(self, test_async_db, job_id):
        """Test unordered semantics: duplicates do not stop the batch."""
        await record_crud.insert_unordered(test_async_db, job_id, 0, _records(5), source_checksum=SOURCE)

        # Act
        result = await record_crud.insert_unordered(
            test_async_db, job_id, 0, _records(10), source_checksum=SOURCE, batch_size=3
        )

        # Assert
        assert result.inserted == 5
        assert result.duplicates == 5
        assert await record_crud.count_for_job(test_async_db, job_id) == 10

    @pytest.mark.asyncio
    async def test_identical_rows_should_all_be_kept(self, test_async_db, job_id):
        """Test rows with equal content at different positions are distinct records."""
        records = [{"name": "ann"}, {"name": "ann"}, {"name": "bob"}]

        result = await record_crud.insert_unordered(test_async_db, job_id, 0, records, source_checksum=SOURCE)

        assert result.inserted == 3
        assert result.duplicates == 0

    @pytest.mark.asyncio
    async def test_same_offsets_in_other_chunk_or_file_should_not_collide(self, test_async_db, job_id):
        await record_crud.insert_unordered(test_async_db, job_id, 0, _records(3), source_checksum=SOURCE)

        other_chunk = await record_crud.insert_unordered(test_async_db, job_id, 1, _records(3), source_checksum=SOURCE)
        other_file = await record_crud.insert_unordered(test_async_db, job_id, 0, _records(3), source_checksum="e" * 64)

        assert (other_chunk.inserted, other_file.inserted) == (3, 3)

    @pytest.mark.asyncio
    async def test_explicit_offsets_should_key_rows(self, test_async_db, job_id):
        """Test filtered rows keep their raw positions."""
        await record_crud.insert_unordered(
            test_async_db, job_id, 0, _records(2), source_checksum=SOURCE, offsets=[1, 3]
        )

        # Act
        result = await record_crud.insert_unordered(test_async_db, job_id, 0, _records(4), source_checksum=SOURCE)

        # Assert
        assert (result.inserted, result.duplicates) == (2, 2)
        records = await record_crud.get_all(test_async_db)
        assert sorted(r.row_offset for r in records) == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_mismatched_offsets_should_raise(self, test_async_db, job_id):
        with pytest.raises(ValueError):
            await record_crud.insert_unordered(
                test_async_db, job_id, 0, _records(2), source_checksum=SOURCE, offsets=[0]
            )

    @pytest.mark.asyncio
    async def test_empty_records_should_be_noop(self, test_async_db, job_id):
        result = await record_crud.insert_unordered(test_async_db, job_id, 0, [], source_checksum=SOURCE)

        assert result == BulkInsertResult(attempted=0, inserted=0)
