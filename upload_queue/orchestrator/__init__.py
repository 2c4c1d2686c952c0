"""Orchestrator package - upload queue state, admission and transfers."""
from .core import UploadQueueManager
from .scheduler import QueueScheduler
from .selection import SelectionBuffer
from .store import TaskStore

__all__ = ["UploadQueueManager", "QueueScheduler", "SelectionBuffer", "TaskStore"]
