"""Queue Scheduler - admits pending tasks while slots are free."""
from typing import Callable, List
import logging

from ..models import TaskStatus, UploadTask
from .store import TaskStore

logger = logging.getLogger(__name__)


class QueueScheduler:
    """
    Keeps the concurrency cap filled, first-come first-served.

    `admit()` is meant to run after every queue mutation. Calling it
    with no free slot or no pending task does nothing.
    """

    def __init__(self, store: TaskStore, dispatch: Callable[[UploadTask], None]):
        self._store = store
        self._dispatch = dispatch

    @property
    def free_slots(self) -> int:
        return max(self._store.max_concurrent - self._store.count(TaskStatus.UPLOADING), 0)

    def admit(self) -> List[UploadTask]:
        """Start as many pending tasks as the cap allows, in queue order."""
        admitted: List[UploadTask] = []
        while True:
            slots = self.free_slots
            if slots == 0:
                break
            pending = self._store.with_status(TaskStatus.PENDING)[:slots]
            if not pending:
                break
            for task in pending:
                started = self._store.transition(task.id, TaskStatus.UPLOADING)
                admitted.append(started)
                self._dispatch(started)

        if admitted:
            logger.debug(
                "Admitted %d task(s), %d/%d uploading",
                len(admitted),
                self._store.count(TaskStatus.UPLOADING),
                self._store.max_concurrent,
            )
        return admitted
