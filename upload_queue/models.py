"""
Models for upload_queue module.

Immutable dataclasses following Single Responsibility Principle.
The store replaces task snapshots instead of mutating them.
"""
import mimetypes
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Tuple, Union


class TaskStatus(Enum):
    """Upload task status."""
    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETE = "complete"
    ERROR = "error"


class FileCategory(Enum):
    """Coarse file type used for labels."""
    IMAGE = "Image"
    VIDEO = "Video"
    AUDIO = "Audio"
    PDF = "PDF"
    DOCUMENT = "Document"
    SPREADSHEET = "Spreadsheet"
    PRESENTATION = "Presentation"
    OTHER = "Other"


@dataclass(frozen=True)
class FileDescriptor:
    """
    Opaque file handed over by the presentation layer.

    `ref` is whatever the executor needs to read the content (a Path,
    raw bytes, ...). The queue never looks inside it.
    """
    name: str
    size: int
    mime_type: str = ""
    ref: Any = None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "FileDescriptor":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            size=path.stat().st_size,
            mime_type=mime_type or "",
            ref=path,
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: Optional[str] = None) -> "FileDescriptor":
        if mime_type is None:
            mime_type = mimetypes.guess_type(name)[0] or ""
        return cls(name=name, size=len(data), mime_type=mime_type, ref=data)


@dataclass(frozen=True)
class SelectedFile:
    """A file picked by the user and waiting in the selection buffer."""
    id: str
    file: FileDescriptor
    name: str
    size_bytes: int
    category: FileCategory
    extension: str

    @property
    def size_label(self) -> str:
        from .services.metadata import format_file_size
        return format_file_size(self.size_bytes)


@dataclass(frozen=True)
class UploadTask:
    """Immutable snapshot of one file in the upload queue."""
    id: str
    file: FileDescriptor
    name: str
    size_bytes: int
    category: FileCategory
    extension: str
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    attempt: int = 0
    error: Optional[str] = None

    @classmethod
    def from_selection(cls, selected: SelectedFile) -> "UploadTask":
        return cls(
            id=selected.id,
            file=selected.file,
            name=selected.name,
            size_bytes=selected.size_bytes,
            category=selected.category,
            extension=selected.extension,
        )

    @property
    def size_label(self) -> str:
        from .services.metadata import format_file_size
        return format_file_size(self.size_bytes)

    @property
    def is_active(self) -> bool:
        return self.status == TaskStatus.UPLOADING

    @property
    def can_retry(self) -> bool:
        return self.status == TaskStatus.ERROR

    @property
    def can_remove(self) -> bool:
        return self.status != TaskStatus.UPLOADING


@dataclass(frozen=True)
class TransferOutcome:
    """Immutable result of one executor invocation."""
    success: bool
    file_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, file_id: Optional[str] = None):
        return cls(success=True, file_id=file_id)

    @classmethod
    def fail(cls, error: str):
        return cls(success=False, error=error)


@dataclass(frozen=True)
class QueueCounts:
    """Aggregate counts for presentation."""
    pending: int = 0
    uploading: int = 0
    complete: int = 0
    error: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.uploading + self.complete + self.error

    @property
    def all_complete(self) -> bool:
        return self.total > 0 and self.complete == self.total

    def summary(self) -> str:
        return (
            f"{self.complete} complete • {self.uploading} uploading • "
            f"{self.pending} queued • {self.error} failed • {self.total} total"
        )


# Images, PDFs, office documents and plain text
DOCUMENT_ACCEPT: Tuple[str, ...] = (
    "image/*",
    "application/pdf",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    ".ppt",
    ".pptx",
    ".txt",
)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass(frozen=True)
class QueueConfig:
    """Immutable configuration for the upload queue."""
    max_concurrent: int = 3
    tick_interval: float = 0.3   # seconds between progress estimates
    progress_cap: int = 95       # estimated progress never goes above this
    min_estimated_duration: float = 1.0
    max_estimated_duration: float = 3.0
    accept: Optional[Tuple[str, ...]] = None  # None accepts every file

    def __post_init__(self):
        if self.max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {self.max_concurrent}")
        if self.tick_interval <= 0:
            raise ValueError(f"tick_interval must be > 0, got {self.tick_interval}")
        if not 1 <= self.progress_cap <= 99:
            raise ValueError(f"progress_cap must be within 1-99, got {self.progress_cap}")
        if self.min_estimated_duration <= 0 or self.max_estimated_duration < self.min_estimated_duration:
            raise ValueError(
                "estimated duration range is invalid: "
                f"{self.min_estimated_duration}-{self.max_estimated_duration}"
            )

    @classmethod
    def from_env(cls, **overrides) -> "QueueConfig":
        """Build config from UPLOAD_QUEUE_* environment variables."""
        accept_env = os.getenv("UPLOAD_QUEUE_ACCEPT")
        values = {
            "max_concurrent": _env_int("UPLOAD_QUEUE_MAX_CONCURRENT", cls.max_concurrent),
            "tick_interval": _env_float("UPLOAD_QUEUE_TICK_INTERVAL", cls.tick_interval),
            "accept": tuple(p.strip() for p in accept_env.split(",") if p.strip()) if accept_env else None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
