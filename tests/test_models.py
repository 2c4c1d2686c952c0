"""Tests for upload_queue models."""
import pytest
from upload_queue.models import (
    FileCategory,
    FileDescriptor,
    QueueConfig,
    QueueCounts,
    SelectedFile,
    TaskStatus,
    TransferOutcome,
    UploadTask,
)


def _task(**overrides):
    values = dict(
        id="a.txt-1",
        file=FileDescriptor("a.txt", 2048, "text/plain"),
        name="a.txt",
        size_bytes=2048,
        category=FileCategory.OTHER,
        extension="txt",
    )
    values.update(overrides)
    return UploadTask(**values)


class TestTransferOutcome:
    def test_ok_outcome(self):
        outcome = TransferOutcome.ok("file-1")
        assert outcome.success is True
        assert outcome.file_id == "file-1"
        assert outcome.error is None

    def test_fail_outcome(self):
        outcome = TransferOutcome.fail("Upload failed")
        assert outcome.success is False
        assert outcome.error == "Upload failed"

    def test_immutable(self):
        outcome = TransferOutcome.ok()
        with pytest.raises(Exception):
            outcome.success = False


class TestFileDescriptor:
    def test_from_path(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(b"x" * 10)

        file = FileDescriptor.from_path(path)

        assert file.name == "photo.png"
        assert file.size == 10
        assert file.mime_type == "image/png"
        assert file.ref == path

    def test_from_bytes_guesses_mime(self):
        file = FileDescriptor.from_bytes("report.pdf", b"%PDF")
        assert file.size == 4
        assert file.mime_type == "application/pdf"
        assert file.ref == b"%PDF"

    def test_from_bytes_unknown_type(self):
        file = FileDescriptor.from_bytes("blob", b"")
        assert file.mime_type == ""


class TestUploadTask:
    def test_from_selection_starts_pending(self):
        selected = SelectedFile(
            id="id-1",
            file=FileDescriptor("a.pdf", 1536, "application/pdf"),
            name="a.pdf",
            size_bytes=1536,
            category=FileCategory.PDF,
            extension="pdf",
        )
        task = UploadTask.from_selection(selected)

        assert task.id == "id-1"
        assert task.status == TaskStatus.PENDING
        assert task.progress == 0
        assert task.attempt == 0
        assert task.size_label == "1.5 KB"

    def test_flags(self):
        assert _task(status=TaskStatus.UPLOADING).is_active is True
        assert _task(status=TaskStatus.UPLOADING).can_remove is False
        assert _task(status=TaskStatus.ERROR).can_retry is True
        assert _task(status=TaskStatus.COMPLETE).can_retry is False
        assert _task(status=TaskStatus.COMPLETE).can_remove is True


class TestQueueCounts:
    def test_total_and_summary(self):
        counts = QueueCounts(pending=2, uploading=3, complete=1, error=1)
        assert counts.total == 7
        assert counts.summary() == "1 complete • 3 uploading • 2 queued • 1 failed • 7 total"

    def test_all_complete(self):
        assert QueueCounts().all_complete is False
        assert QueueCounts(complete=2).all_complete is True
        assert QueueCounts(complete=2, error=1).all_complete is False


class TestQueueConfig:
    def test_default_config(self):
        config = QueueConfig()
        assert config.max_concurrent == 3
        assert config.tick_interval == 0.3
        assert config.progress_cap == 95
        assert config.accept is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_concurrent": 0},
            {"tick_interval": 0},
            {"progress_cap": 100},
            {"min_estimated_duration": 2.0, "max_estimated_duration": 1.0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            QueueConfig(**kwargs)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("UPLOAD_QUEUE_MAX_CONCURRENT", "5")
        monkeypatch.setenv("UPLOAD_QUEUE_TICK_INTERVAL", "0.1")
        monkeypatch.setenv("UPLOAD_QUEUE_ACCEPT", "image/*, .pdf")

        config = QueueConfig.from_env()

        assert config.max_concurrent == 5
        assert config.tick_interval == 0.1
        assert config.accept == ("image/*", ".pdf")

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("UPLOAD_QUEUE_MAX_CONCURRENT", "5")
        monkeypatch.delenv("UPLOAD_QUEUE_TICK_INTERVAL", raising=False)
        monkeypatch.delenv("UPLOAD_QUEUE_ACCEPT", raising=False)

        config = QueueConfig.from_env(max_concurrent=2, accept=None)

        assert config.max_concurrent == 2
        assert config.tick_interval == 0.3
        assert config.accept is None
