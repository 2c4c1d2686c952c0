"""Transfer executors: the primitive that actually moves a file."""
from __future__ import annotations

import asyncio
import logging
import random
import uuid
from pathlib import Path
from typing import Dict, Optional

import httpx

from ..errors import TransferError
from ..models import FileDescriptor, TransferOutcome
from ..protocols import ITransferExecutor

logger = logging.getLogger(__name__)


class SimulatedTransferExecutor(ITransferExecutor):
    """
    Stand-in executor that waits a random delay and sometimes fails.

    Defaults: 2-5 seconds per file, 10% failure rate.
    """

    def __init__(
        self,
        min_delay: float = 2.0,
        max_delay: float = 5.0,
        failure_rate: float = 0.1,
        rng: Optional[random.Random] = None,
    ):
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError(f"invalid delay range: {min_delay}-{max_delay}")
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within 0-1, got {failure_rate}")
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._failure_rate = failure_rate
        self._rng = rng or random.Random()

    async def transfer(self, file: FileDescriptor) -> TransferOutcome:
        delay = self._rng.uniform(self._min_delay, self._max_delay)
        will_fail = self._rng.random() < self._failure_rate
        await asyncio.sleep(delay)
        if will_fail:
            raise TransferError("Upload failed")
        return TransferOutcome.ok(uuid.uuid4().hex[:13])


class HTTPTransferExecutor(ITransferExecutor):
    """
    HTTP adapter posting each file as multipart form data.

    Usage:
        async with HTTPTransferExecutor("https://example.test/upload") as executor:
            outcome = await executor.transfer(file)
    """

    def __init__(
        self,
        url: str,
        field_name: str = "file",
        timeout: int = 60,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url
        self._field_name = field_name
        self._timeout = timeout
        self._headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _read(self, file: FileDescriptor) -> bytes:
        ref = file.ref
        if isinstance(ref, (bytes, bytearray)):
            return bytes(ref)
        if isinstance(ref, (str, Path)):
            return await asyncio.to_thread(Path(ref).read_bytes)
        raise TransferError(f"unsupported file reference for {file.name}: {type(ref).__name__}")

    async def transfer(self, file: FileDescriptor) -> TransferOutcome:
        if not self._client:
            raise RuntimeError("HTTPTransferExecutor not initialized. Use 'async with' context.")

        content = await self._read(file)
        files = {
            self._field_name: (file.name, content, file.mime_type or "application/octet-stream"),
        }

        try:
            response = await self._client.post(self._url, files=files)
        except (httpx.RequestError, httpx.TimeoutException) as exc:
            raise TransferError(f"{type(exc).__name__} while uploading {file.name}: {exc}") from exc

        if response.status_code >= 400:
            try:
                error_detail = response.json()
            except Exception:
                error_detail = response.text
            raise TransferError(f"API error {response.status_code} on POST {self._url}: {error_detail}")

        file_id = None
        try:
            payload = response.json()
            if isinstance(payload, dict):
                file_id = payload.get("fileId") or payload.get("id")
        except ValueError:
            logger.debug("Upload response for %s is not JSON", file.name)

        return TransferOutcome.ok(str(file_id) if file_id is not None else None)
