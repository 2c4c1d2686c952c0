"""Tests for upload_queue services."""
import json
import random

import httpx
import pytest

from upload_queue.errors import TransferError
from upload_queue.models import FileCategory, FileDescriptor, QueueConfig, UploadTask
from upload_queue.services.executors import HTTPTransferExecutor, SimulatedTransferExecutor
from upload_queue.services.metadata import (
    accepts,
    describe,
    format_file_size,
    get_category,
    get_extension,
)
from upload_queue.services.progress import EstimatedProgress, SimulatedProgressSource


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMetadata:
    def test_format_file_size(self):
        assert format_file_size(0) == "0 Bytes"
        assert format_file_size(500) == "500 Bytes"
        assert format_file_size(1024) == "1 KB"
        assert format_file_size(1536) == "1.5 KB"
        assert format_file_size(5 * 1024 * 1024) == "5 MB"
        assert format_file_size(3 * 1024 ** 3 + 1024 ** 3 // 4) == "3.25 GB"

    def test_format_file_size_stops_at_gb(self):
        assert format_file_size(2 * 1024 ** 4) == "2048 GB"

    def test_get_extension(self):
        assert get_extension("photo.jpeg") == "jpeg"
        assert get_extension("archive.tar.gz") == "gz"
        assert get_extension("README") == ""
        assert get_extension(".bashrc") == ""
        assert get_extension("trailing.") == ""

    def test_get_category_by_mime(self):
        assert get_category("a.png", "image/png") == FileCategory.IMAGE
        assert get_category("a.mp4", "video/mp4") == FileCategory.VIDEO
        assert get_category("a.mp3", "audio/mpeg") == FileCategory.AUDIO
        assert get_category("a.pdf", "application/pdf") == FileCategory.PDF
        assert get_category("a.txt", "text/plain") == FileCategory.OTHER

    def test_get_category_office(self):
        docx_mime = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        assert get_category("a.docx", docx_mime) == FileCategory.DOCUMENT
        assert get_category("a.doc", "") == FileCategory.DOCUMENT
        assert get_category("b.XLSX", "") == FileCategory.SPREADSHEET
        assert get_category("c.ppt", "") == FileCategory.PRESENTATION

    def test_accepts(self):
        png = FileDescriptor("a.png", 1, "image/png")
        docx = FileDescriptor("b.docx", 1, "")
        txt = FileDescriptor("c.txt", 1, "text/plain")
        patterns = ("image/*", "application/pdf", ".docx")

        assert accepts(png, patterns) is True
        assert accepts(docx, patterns) is True
        assert accepts(txt, patterns) is False
        assert accepts(txt, None) is True

    def test_describe_assigns_unique_ids(self):
        file = FileDescriptor("same.txt", 3, "text/plain")
        first = describe(file)
        second = describe(file)

        assert first.id != second.id
        assert first.id.startswith("same.txt-")
        assert first.extension == "txt"
        assert first.size_label == "3 Bytes"


class TestProgress:
    def test_estimate_grows_with_elapsed_time(self):
        clock = FakeClock()
        probe = EstimatedProgress(2.0, cap=95, clock=clock)

        assert probe.percent() == 0
        clock.now += 0.5
        assert probe.percent() == 25
        clock.now += 0.5
        assert probe.percent() == 50

    def test_estimate_is_capped(self):
        clock = FakeClock()
        probe = EstimatedProgress(1.0, cap=95, clock=clock)

        clock.now += 10
        assert probe.percent() == 95

    def test_source_draws_duration_within_range(self):
        config = QueueConfig(min_estimated_duration=1.0, max_estimated_duration=3.0)
        source = SimulatedProgressSource(config, rng=random.Random(3))
        task = UploadTask(
            id="t",
            file=FileDescriptor("t", 1),
            name="t",
            size_bytes=1,
            category=FileCategory.OTHER,
            extension="",
        )

        durations = [source.begin(task).estimated_duration for _ in range(20)]

        assert all(1.0 <= d <= 3.0 for d in durations)
        assert len(set(durations)) > 1


class TestSimulatedTransferExecutor:
    @pytest.mark.asyncio
    async def test_success(self):
        executor = SimulatedTransferExecutor(0, 0, failure_rate=0.0)
        outcome = await executor.transfer(FileDescriptor("a", 1))
        assert outcome.success is True
        assert outcome.file_id

    @pytest.mark.asyncio
    async def test_failure(self):
        executor = SimulatedTransferExecutor(0, 0, failure_rate=1.0)
        with pytest.raises(TransferError, match="Upload failed"):
            await executor.transfer(FileDescriptor("a", 1))

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            SimulatedTransferExecutor(3, 1)
        with pytest.raises(ValueError):
            SimulatedTransferExecutor(failure_rate=1.5)


class TestHTTPTransferExecutor:
    @pytest.mark.asyncio
    async def test_posts_multipart(self, tmp_path):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            return httpx.Response(200, json={"success": True, "fileId": "abc123"})

        path = tmp_path / "notes.txt"
        path.write_bytes(b"hello upload")
        file = FileDescriptor.from_path(path)

        async with HTTPTransferExecutor(
            "https://files.test/upload",
            transport=httpx.MockTransport(handler),
        ) as executor:
            outcome = await executor.transfer(file)

        assert outcome.success is True
        assert outcome.file_id == "abc123"
        assert seen["method"] == "POST"
        assert seen["url"] == "https://files.test/upload"
        assert b"hello upload" in seen["body"]
        assert b'filename="notes.txt"' in seen["body"]

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"detail": "boom"})

        async with HTTPTransferExecutor(
            "https://files.test/upload",
            transport=httpx.MockTransport(handler),
        ) as executor:
            with pytest.raises(TransferError, match="API error 500"):
                await executor.transfer(FileDescriptor.from_bytes("a.txt", b"a"))

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with HTTPTransferExecutor(
            "https://files.test/upload",
            transport=httpx.MockTransport(handler),
        ) as executor:
            with pytest.raises(TransferError, match="ConnectError"):
                await executor.transfer(FileDescriptor.from_bytes("a.txt", b"a"))

    @pytest.mark.asyncio
    async def test_non_json_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, text="created")

        async with HTTPTransferExecutor(
            "https://files.test/upload",
            transport=httpx.MockTransport(handler),
        ) as executor:
            outcome = await executor.transfer(FileDescriptor.from_bytes("a.txt", b"a"))

        assert outcome.success is True
        assert outcome.file_id is None

    @pytest.mark.asyncio
    async def test_requires_context(self):
        executor = HTTPTransferExecutor("https://files.test/upload")
        with pytest.raises(RuntimeError, match="not initialized"):
            await executor.transfer(FileDescriptor.from_bytes("a.txt", b"a"))
