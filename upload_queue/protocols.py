"""
Protocols (Interfaces) for Dependency Inversion.

Following Interface Segregation Principle - small, focused interfaces.
"""
from typing import Protocol, runtime_checkable

from .models import FileDescriptor, TransferOutcome, UploadTask


@runtime_checkable
class ITransferExecutor(Protocol):
    """Interface for the transfer primitive."""

    async def transfer(self, file: FileDescriptor) -> TransferOutcome:
        """
        Upload one file.

        Resolves once on success. Failure is signalled by raising
        (usually TransferError) or by returning a failed outcome.
        """
        ...


@runtime_checkable
class IProgressProbe(Protocol):
    """Progress reading for one upload attempt."""

    def percent(self) -> int:
        """Current completion estimate, 0-100."""
        ...


@runtime_checkable
class IProgressSource(Protocol):
    """Interface for progress feedback while a task is uploading."""

    def begin(self, task: UploadTask) -> IProgressProbe:
        """Start tracking a task that just entered the uploading state."""
        ...
