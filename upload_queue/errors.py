"""Error types for the upload queue."""


class QueueError(Exception):
    """Base class for upload queue errors."""


class EmptySelectionError(QueueError):
    """Raised when submitting with nothing selected."""

    def __init__(self, message: str = "Please select files to upload."):
        super().__init__(message)


class TransferError(QueueError):
    """Raised by a transfer executor when an upload fails."""


class InvalidTransitionError(QueueError):
    """Raised when a task status change is not allowed by the state machine."""


class ConcurrencyLimitError(QueueError):
    """Raised when admitting a task would exceed the concurrency cap."""


class DuplicateTaskError(QueueError):
    """Raised when a task id is already present in the queue."""
