"""
upload_queue - client-side upload queue with bounded concurrency.

Follows SOLID principles:
- Single Responsibility: store, scheduler, selection and executors are separate
- Open/Closed: plug in new executors and progress sources
- Dependency Injection: executor and progress source injected into the manager

Usage:
    from upload_queue import UploadQueueManager, FileDescriptor, SimulatedTransferExecutor

    async with UploadQueueManager(SimulatedTransferExecutor()) as queue:
        queue.add_files([FileDescriptor.from_path("report.pdf")])
        queue.submit()
        await queue.join()

    # Real uploads over HTTP
    executor = HTTPTransferExecutor("https://files.example.com/upload")
    async with UploadQueueManager(executor, QueueConfig(max_concurrent=5)) as queue:
        ...
"""
from .errors import (
    ConcurrencyLimitError,
    DuplicateTaskError,
    EmptySelectionError,
    InvalidTransitionError,
    QueueError,
    TransferError,
)
from .models import (
    DOCUMENT_ACCEPT,
    FileCategory,
    FileDescriptor,
    QueueConfig,
    QueueCounts,
    SelectedFile,
    TaskStatus,
    TransferOutcome,
    UploadTask,
)
from .orchestrator import UploadQueueManager
from .services import HTTPTransferExecutor, SimulatedProgressSource, SimulatedTransferExecutor

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadQueueManager",
    # Models
    "DOCUMENT_ACCEPT",
    "FileCategory",
    "FileDescriptor",
    "QueueConfig",
    "QueueCounts",
    "SelectedFile",
    "TaskStatus",
    "TransferOutcome",
    "UploadTask",
    # Services
    "HTTPTransferExecutor",
    "SimulatedProgressSource",
    "SimulatedTransferExecutor",
    # Errors
    "QueueError",
    "EmptySelectionError",
    "TransferError",
    "InvalidTransitionError",
    "ConcurrencyLimitError",
    "DuplicateTaskError",
]
