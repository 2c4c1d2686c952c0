"""Task State Store - the single authoritative record of queued tasks."""
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import ConcurrencyLimitError, DuplicateTaskError, InvalidTransitionError
from ..models import QueueCounts, TaskStatus, UploadTask


ALLOWED_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.UPLOADING},
    TaskStatus.UPLOADING: {TaskStatus.COMPLETE, TaskStatus.ERROR},
    TaskStatus.ERROR: {TaskStatus.PENDING},
    TaskStatus.COMPLETE: set(),
}


class TaskStore:
    """
    Ordered store of upload tasks.

    Tasks are immutable snapshots; every change replaces the snapshot
    through one of the mutating methods below, which keep these
    invariants after each call:

    - ids are unique
    - at most `max_concurrent` tasks are UPLOADING
    - progress only grows while UPLOADING, is 0 on entry to PENDING or
      UPLOADING, and is 100 exactly when COMPLETE
    """

    def __init__(self, max_concurrent: int = 3, progress_cap: int = 95):
        self._max_concurrent = max_concurrent
        self._progress_cap = progress_cap
        self._order: List[str] = []
        self._tasks: Dict[str, UploadTask] = {}

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._tasks

    def get(self, task_id: str) -> Optional[UploadTask]:
        return self._tasks.get(task_id)

    def tasks(self) -> Tuple[UploadTask, ...]:
        """Snapshot of all tasks in queue order."""
        return tuple(self._tasks[task_id] for task_id in self._order)

    def with_status(self, status: TaskStatus) -> List[UploadTask]:
        """Tasks in the given status, in queue order."""
        return [task for task in self.tasks() if task.status == status]

    def count(self, status: TaskStatus) -> int:
        return sum(1 for task in self._tasks.values() if task.status == status)

    def counts(self) -> QueueCounts:
        return QueueCounts(
            pending=self.count(TaskStatus.PENDING),
            uploading=self.count(TaskStatus.UPLOADING),
            complete=self.count(TaskStatus.COMPLETE),
            error=self.count(TaskStatus.ERROR),
        )

    def add(self, tasks: Iterable[UploadTask]) -> List[UploadTask]:
        """Append new PENDING tasks at the end of the queue."""
        added = []
        for task in tasks:
            if task.id in self._tasks:
                raise DuplicateTaskError(f"task id already queued: {task.id}")
            task = replace(task, status=TaskStatus.PENDING, progress=0)
            self._tasks[task.id] = task
            self._order.append(task.id)
            added.append(task)
        return added

    def remove(self, task_id: str) -> Optional[UploadTask]:
        """
        Remove a task unless it is uploading.

        Returns the removed snapshot, or None when the task is missing or
        currently UPLOADING.
        """
        task = self._tasks.get(task_id)
        if task is None or task.status == TaskStatus.UPLOADING:
            return None
        del self._tasks[task_id]
        self._order.remove(task_id)
        return task

    def transition(self, task_id: str, status: TaskStatus, error: Optional[str] = None) -> UploadTask:
        """Move a task to a new status, resetting or pinning progress."""
        task = self._tasks.get(task_id)
        if task is None:
            raise KeyError(task_id)
        if status not in ALLOWED_TRANSITIONS[task.status]:
            raise InvalidTransitionError(
                f"{task.name}: {task.status.value} -> {status.value} is not allowed"
            )

        changes = {"status": status}
        if status == TaskStatus.UPLOADING:
            if self.count(TaskStatus.UPLOADING) >= self._max_concurrent:
                raise ConcurrencyLimitError(
                    f"cannot start {task.name}: {self._max_concurrent} uploads already running"
                )
            changes.update(progress=0, attempt=task.attempt + 1, error=None)
        elif status == TaskStatus.COMPLETE:
            changes.update(progress=100, error=None)
        elif status == TaskStatus.ERROR:
            changes.update(progress=0, error=error)
        elif status == TaskStatus.PENDING:
            changes.update(progress=0, error=None)

        updated = replace(task, **changes)
        self._tasks[task_id] = updated
        return updated

    def set_progress(self, task_id: str, progress: int) -> Optional[UploadTask]:
        """
        Record progress for an uploading task.

        Lower values are ignored and values are capped below 100. Returns
        the new snapshot, or None when nothing changed.
        """
        task = self._tasks.get(task_id)
        if task is None or task.status != TaskStatus.UPLOADING:
            return None
        value = min(max(int(progress), task.progress), self._progress_cap)
        if value == task.progress:
            return None
        updated = replace(task, progress=value)
        self._tasks[task_id] = updated
        return updated
