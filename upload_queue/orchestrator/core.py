"""Core orchestrator - the upload queue manager."""
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
import asyncio
import logging

from ..errors import EmptySelectionError
from ..models import (
    FileDescriptor,
    QueueConfig,
    QueueCounts,
    SelectedFile,
    TaskStatus,
    TransferOutcome,
    UploadTask,
)
from ..protocols import IProgressProbe, IProgressSource, ITransferExecutor
from ..services.progress import SimulatedProgressSource
from ..utils.events import EventEmitter
from .scheduler import QueueScheduler
from .selection import SelectionBuffer
from .store import TaskStore

logger = logging.getLogger(__name__)


def _describe_exception(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return message
    return f"{type(exc).__name__}: {repr(exc)}"


def _require_running_loop(operation: str) -> None:
    """Fail before any state changes when no event loop can run transfers."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        raise RuntimeError(f"{operation}() needs a running event loop") from None


def _coerce_outcome(result: Any) -> TransferOutcome:
    """Normalize what an executor returned into a TransferOutcome."""
    if isinstance(result, TransferOutcome):
        return result
    if result is None:
        return TransferOutcome.ok()
    if isinstance(result, Mapping):
        if result.get("success"):
            file_id = result.get("fileId") or result.get("file_id")
            return TransferOutcome.ok(str(file_id) if file_id is not None else None)
        return TransferOutcome.fail(str(result.get("error") or "Upload failed"))
    return TransferOutcome.fail(f"unexpected transfer result: {type(result).__name__}")


class UploadQueueManager:
    """
    Client-side upload queue with a bounded number of concurrent transfers.

    All state lives in one TaskStore. Every public mutation applies its
    change synchronously and then re-runs admission, so the store is
    consistent whenever control returns to the event loop. Transfers run
    as background asyncio tasks; their outcome is applied the same way.

    Usage:
        async with UploadQueueManager(executor) as queue:
            queue.on_task_complete(lambda task: print(f"Done: {task.name}"))
            queue.add_files([FileDescriptor.from_path(p) for p in paths])
            queue.submit()
            await queue.join()
            print(queue.counts.summary())
    """

    def __init__(
        self,
        executor: ITransferExecutor,
        config: Optional[QueueConfig] = None,
        progress_source: Optional[IProgressSource] = None,
    ):
        self._executor = executor
        self._config = config or QueueConfig()
        self._progress_source = progress_source or SimulatedProgressSource(self._config)

        self._store = TaskStore(self._config.max_concurrent, self._config.progress_cap)
        self._selection = SelectionBuffer(self._config.accept)
        self._scheduler = QueueScheduler(self._store, self._start_transfer)
        self._events = EventEmitter()

        self._transfers: Dict[str, asyncio.Task] = {}
        self._idle = asyncio.Event()
        self._idle.set()
        self._error: Optional[str] = None
        self._executor_entered = False

    async def __aenter__(self):
        """Open the executor when it is an async context manager."""
        enter = getattr(self._executor, "__aenter__", None)
        if callable(enter):
            await enter()
            self._executor_entered = True
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    # Event subscription methods
    def on_task_start(self, callback: Callable[[UploadTask], None]):
        """Called when a task enters UPLOADING. Receives the task."""
        self._events.on("task_start", callback)

    def on_task_progress(self, callback: Callable[[UploadTask], None]):
        """Called when the progress estimate of a task grows. Receives the task."""
        self._events.on("task_progress", callback)

    def on_task_complete(self, callback: Callable[[UploadTask], None]):
        """Called when a task completes. Receives the task."""
        self._events.on("task_complete", callback)

    def on_task_fail(self, callback: Callable[[UploadTask], None]):
        """Called when a transfer fails. Receives the task, with `error` set."""
        self._events.on("task_fail", callback)

    def on_task_removed(self, callback: Callable[[UploadTask], None]):
        """Called when a task is removed from the queue. Receives the last snapshot."""
        self._events.on("task_removed", callback)

    def on_change(self, callback: Callable[[QueueCounts], None]):
        """Called after every queue mutation. Receives QueueCounts."""
        self._events.on("change", callback)

    # State properties
    @property
    def config(self) -> QueueConfig:
        return self._config

    @property
    def tasks(self) -> Tuple[UploadTask, ...]:
        """All queued tasks in queue order."""
        return self._store.tasks()

    @property
    def selection(self) -> Tuple[SelectedFile, ...]:
        """Files waiting in the selection buffer."""
        return self._selection.entries

    @property
    def counts(self) -> QueueCounts:
        return self._store.counts()

    @property
    def error(self) -> Optional[str]:
        """User-facing message of the last rejected action, if any."""
        return self._error

    @property
    def is_idle(self) -> bool:
        return self._idle.is_set()

    def get(self, task_id: str) -> Optional[UploadTask]:
        return self._store.get(task_id)

    def dismiss_error(self) -> None:
        self._error = None

    # Selection buffer
    def add_files(self, files: Iterable[FileDescriptor]) -> List[FileDescriptor]:
        """Replace the selection with new files. Returns files rejected by the accept filter."""
        self._error = None
        return self._selection.add_files(files)

    def remove_selected(self, entry_id: str) -> bool:
        return self._selection.remove(entry_id)

    def clear_selection(self) -> None:
        self._selection.clear()

    def submit(self) -> List[UploadTask]:
        """
        Move every selected file into the queue as a PENDING task.

        With an empty selection nothing changes and `error` holds the
        message to show. Returns the queued tasks after admission.
        """
        _require_running_loop("submit")
        try:
            entries = self._selection.drain()
        except EmptySelectionError as e:
            self._error = str(e)
            logger.info("Submit ignored: %s", e)
            return []

        added = self._store.add(UploadTask.from_selection(entry) for entry in entries)
        logger.info("Queued %d file(s)", len(added))
        self._reschedule()
        return [self._store.get(task.id) for task in added]

    # Queue operations
    def remove(self, task_id: str) -> bool:
        """Remove a task from the queue. Uploading tasks cannot be removed."""
        _require_running_loop("remove")
        removed = self._store.remove(task_id)
        if removed is None:
            task = self._store.get(task_id)
            if task is not None:
                logger.debug("Not removing %s while it is uploading", task.name)
            return False

        logger.info("Removed %s (%s)", removed.name, removed.status.value)
        self._events.emit_soon("task_removed", removed)
        self._reschedule()
        return True

    def retry(self, task_id: str) -> bool:
        """Put a failed task back in line at its original position."""
        _require_running_loop("retry")
        task = self._store.get(task_id)
        if task is None or task.status != TaskStatus.ERROR:
            return False

        self._store.transition(task_id, TaskStatus.PENDING)
        logger.info("Retrying %s", task.name)
        self._reschedule()
        return True

    def retry_failed(self) -> int:
        """Retry every failed task. Returns how many were requeued."""
        _require_running_loop("retry_failed")
        failed = self._store.with_status(TaskStatus.ERROR)
        for task in failed:
            self._store.transition(task.id, TaskStatus.PENDING)
        if failed:
            logger.info("Retrying %d failed task(s)", len(failed))
            self._reschedule()
        return len(failed)

    async def join(self) -> QueueCounts:
        """Wait until no task is pending or uploading."""
        await self._idle.wait()
        await self._events.drain()
        return self.counts

    async def aclose(self) -> None:
        """Stop outstanding transfers and close the executor."""
        transfers = list(self._transfers.values())
        for transfer in transfers:
            transfer.cancel()
        if transfers:
            logger.info("Cancelling %d outstanding transfer(s)", len(transfers))
            await asyncio.gather(*transfers, return_exceptions=True)
        self._transfers.clear()

        await self._events.drain()

        if self._executor_entered:
            self._executor_entered = False
            await self._executor.__aexit__(None, None, None)

    # Internal methods
    def _reschedule(self) -> None:
        """Re-run admission after a mutation and publish the new counts."""
        self._scheduler.admit()
        counts = self._store.counts()
        if counts.pending == 0 and counts.uploading == 0:
            self._idle.set()
        else:
            self._idle.clear()
        self._events.emit_soon("change", counts)

    def _start_transfer(self, task: UploadTask) -> None:
        logger.info("Uploading %s (attempt %d)", task.name, task.attempt)
        loop = asyncio.get_running_loop()
        transfer = loop.create_task(self._run_transfer(task))
        self._transfers[task.id] = transfer
        transfer.add_done_callback(lambda t, task_id=task.id: self._forget_transfer(task_id, t))
        self._events.emit_soon("task_start", task)

    def _forget_transfer(self, task_id: str, transfer: asyncio.Task) -> None:
        if self._transfers.get(task_id) is transfer:
            del self._transfers[task_id]

    async def _run_transfer(self, task: UploadTask) -> None:
        ticker: Optional[asyncio.Task] = None
        try:
            probe = self._progress_source.begin(task)
            ticker = asyncio.create_task(self._tick(task.id, task.attempt, probe))
            outcome = _coerce_outcome(await self._executor.transfer(task.file))
        except Exception as e:
            logger.debug("Transfer of %s raised", task.name, exc_info=True)
            outcome = TransferOutcome.fail(_describe_exception(e))
        finally:
            if ticker is not None:
                ticker.cancel()

        self._finalize(task.id, task.attempt, outcome)

    async def _tick(self, task_id: str, attempt: int, probe: IProgressProbe) -> None:
        while True:
            await asyncio.sleep(self._config.tick_interval)
            task = self._store.get(task_id)
            if task is None or task.status != TaskStatus.UPLOADING or task.attempt != attempt:
                return
            try:
                percent = probe.percent()
            except Exception as e:
                logger.warning("Progress estimate for %s stopped: %s", task.name, _describe_exception(e))
                return
            updated = self._store.set_progress(task_id, percent)
            if updated is not None:
                self._events.emit_soon("task_progress", updated)

    def _finalize(self, task_id: str, attempt: int, outcome: TransferOutcome) -> None:
        task = self._store.get(task_id)
        if task is None:
            logger.debug("Discarding outcome for removed task %s", task_id)
            return
        if task.status != TaskStatus.UPLOADING or task.attempt != attempt:
            logger.debug("Discarding stale outcome for %s (attempt %d)", task.name, attempt)
            return

        if outcome.success:
            updated = self._store.transition(task_id, TaskStatus.COMPLETE)
            logger.info("Uploaded %s", updated.name)
            self._events.emit_soon("task_complete", updated)
        else:
            updated = self._store.transition(task_id, TaskStatus.ERROR, error=outcome.error)
            logger.warning("Upload failed for %s: %s", updated.name, outcome.error)
            self._events.emit_soon("task_fail", updated)

        self._reschedule()
