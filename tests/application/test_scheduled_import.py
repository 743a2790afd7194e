"""
Tests for the scheduled directory import.

Dependencies: pytest, apscheduler, csv_migrator.application.scheduled_import
System role: Time-triggered ingestion verification
"""

from unittest.mock import MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger

from csv_migrator.application.scheduled_import import JOB_ID, ScheduledImport, archive_file, list_csv_files
from csv_migrator.application.services.ingestion_service import IngestionService
from csv_migrator.application.services.job_queue import JobQueue
from csv_migrator.boundary.db.CRUD.audit_log_crud import audit_log_crud
from csv_migrator.boundary.db.models import AuditAction


@pytest.fixture
def inbox(tmp_path):
    directory = tmp_path / "scheduled"
    directory.mkdir()
    return directory


@pytest.fixture
def scheduled(session_factory, inbox):
    """ScheduledImport with a mocked scheduler."""
    ingestion = IngestionService(JobQueue(session_factory), session_factory)
    return ScheduledImport(ingestion, session_factory, directory=inbox, scheduler=MagicMock(running=False))


async def _audit(session_factory, action):
    async with session_factory() as session:
        entries, _ = await audit_log_crud.list_recent(session, limit=50, action=action)
    return entries


class TestFileHelpers:
    """Test directory listing and archiving."""

    def test_list_csv_files_should_match_extension_case_insensitively(self, inbox):
        for name in ("b.csv", "a.CSV", "notes.txt"):
            (inbox / name).write_text("x\n")
        (inbox / "nested.csv").mkdir()

        assert [p.name for p in list_csv_files(inbox)] == ["a.CSV", "b.csv"]

    def test_archive_file_should_prefix_epoch_millis(self, inbox):
        source = inbox / "people.csv"
        source.write_text("id\n1\n")

        target = archive_file(source, inbox / "processed")

        assert not source.exists()
        assert target.parent == inbox / "processed"
        prefix, name = target.name.split("_", 1)
        assert name == "people.csv"
        assert prefix.isdigit() and len(prefix) >= 13


class TestScheduledImportRun:
    """Test one scan of the drop directory."""

    @pytest.mark.asyncio
    async def test_new_files_should_be_enqueued_and_archived(self, scheduled, inbox, session_factory, csv_text):
        (inbox / "a.csv").write_text(csv_text(3))
        (inbox / "b.csv").write_text(csv_text(3, start=100))
        (inbox / "skip.txt").write_text("ignored")

        # Act
        jobs = await scheduled.process_scheduled_imports()

        # Assert
        assert sorted(job.filename for job in jobs) == ["a.csv", "b.csv"]
        assert not (inbox / "a.csv").exists()
        assert (inbox / "skip.txt").exists()
        archived = sorted(p.name.split("_", 1)[1] for p in (inbox / "processed").iterdir())
        assert archived == ["a.csv", "b.csv"]
        for job in jobs:
            assert "processed" in job.file_path
        entries = await _audit(session_factory, AuditAction.SCHEDULED)
        assert len(entries) == 2
        assert all(entry.meta["scheduled"] is True for entry in entries)
        uploads = await _audit(session_factory, AuditAction.UPLOAD)
        assert len(uploads) == 2

    @pytest.mark.asyncio
    async def test_duplicate_file_should_be_skipped_and_left_in_place(self, scheduled, inbox, csv_text):
        (inbox / "a.csv").write_text(csv_text(3))
        await scheduled.process_scheduled_imports()
        (inbox / "again.csv").write_text(csv_text(3))

        # Act
        jobs = await scheduled.process_scheduled_imports()

        # Assert
        assert jobs == []
        assert (inbox / "again.csv").exists()

    @pytest.mark.asyncio
    async def test_empty_directory_should_create_nothing(self, scheduled):
        assert await scheduled.process_scheduled_imports() == []

    @pytest.mark.asyncio
    async def test_missing_directory_should_record_system_error(self, session_factory, tmp_path):
        ingestion = IngestionService(JobQueue(session_factory), session_factory)
        scheduled = ScheduledImport(
            ingestion, session_factory, directory=tmp_path / "absent", scheduler=MagicMock(running=False)
        )

        # Act
        jobs = await scheduled.process_scheduled_imports()

        # Assert
        assert jobs == []
        entries = await _audit(session_factory, AuditAction.SCHEDULED_SYSTEM_ERROR)
        assert len(entries) == 1
        assert entries[0].job_id is None

    @pytest.mark.asyncio
    async def test_failing_file_should_record_error_and_continue(
        self, scheduled, inbox, session_factory, monkeypatch, csv_text
    ):
        (inbox / "a.csv").write_text(csv_text(3))
        (inbox / "b.csv").write_text(csv_text(3, start=100))
        original = scheduled._import_file

        async def flaky(path):
            if path.name == "a.csv":
                raise PermissionError("locked")
            return await original(path)

        monkeypatch.setattr(scheduled, "_import_file", flaky)

        # Act
        jobs = await scheduled.process_scheduled_imports()

        # Assert
        assert [job.filename for job in jobs] == ["b.csv"]
        entries = await _audit(session_factory, AuditAction.SCHEDULED_ERROR)
        assert entries[0].meta["filename"] == "a.csv"
        assert entries[0].job_id is None


class TestScheduledImportLifecycle:
    """Test scheduler registration."""

    @pytest.mark.asyncio
    async def test_start_should_register_cron_job(self, scheduled):
        scheduler = scheduled._scheduler

        scheduled.start()

        kwargs = scheduler.add_job.call_args.kwargs
        assert kwargs["id"] == JOB_ID
        assert kwargs["max_instances"] == 1
        assert isinstance(kwargs["trigger"], CronTrigger)
        scheduler.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalid_cron_should_raise(self, session_factory, inbox):
        ingestion = IngestionService(JobQueue(session_factory), session_factory)
        scheduled = ScheduledImport(
            ingestion, session_factory, directory=inbox, cron="not a cron", scheduler=MagicMock(running=False)
        )

        with pytest.raises(ValueError):
            scheduled.start()

    @pytest.mark.asyncio
    async def test_stop_should_shutdown_running_scheduler(self, scheduled):
        scheduler = scheduled._scheduler
        scheduler.running = True

        scheduled.stop()

        scheduler.shutdown.assert_called_once_with(wait=False)
