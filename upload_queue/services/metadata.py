"""
Metadata Service - Single Responsibility: derive labels for selected files.

Everything here is computed once, when a file enters the selection buffer.
"""
import time
import uuid
from typing import Iterable, Optional

from ..models import FileCategory, FileDescriptor, SelectedFile

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]

_DOCUMENT_SUFFIXES = (".doc", ".docx")
_SPREADSHEET_SUFFIXES = (".xls", ".xlsx")
_PRESENTATION_SUFFIXES = (".ppt", ".pptx")


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``1.5 KB``. Units stop at GB."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit_idx = 0
    while value >= 1024.0 and unit_idx < len(SIZE_UNITS) - 1:
        value /= 1024.0
        unit_idx += 1
    rendered = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{rendered} {SIZE_UNITS[unit_idx]}"


def get_extension(filename: str) -> str:
    """Text after the last dot; empty for ``README`` or ``.bashrc``."""
    idx = filename.rfind(".")
    if idx <= 0:
        return ""
    return filename[idx + 1:]


def get_category(name: str, mime_type: str = "") -> FileCategory:
    mime = (mime_type or "").lower()
    lowered = name.lower()

    if mime.startswith("image/"):
        return FileCategory.IMAGE
    if mime.startswith("video/"):
        return FileCategory.VIDEO
    if mime.startswith("audio/"):
        return FileCategory.AUDIO
    if mime.startswith("application/pdf"):
        return FileCategory.PDF
    if "document" in mime or lowered.endswith(_DOCUMENT_SUFFIXES):
        return FileCategory.DOCUMENT
    if "spreadsheet" in mime or lowered.endswith(_SPREADSHEET_SUFFIXES):
        return FileCategory.SPREADSHEET
    if "presentation" in mime or lowered.endswith(_PRESENTATION_SUFFIXES):
        return FileCategory.PRESENTATION
    return FileCategory.OTHER


def generate_task_id(name: str) -> str:
    """Id unique within a session: name, epoch millis and random hex."""
    return f"{name}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def accepts(file: FileDescriptor, patterns: Optional[Iterable[str]]) -> bool:
    """
    Check a file against accept patterns.

    Patterns follow the browser ``accept`` attribute: ``image/*``,
    ``application/pdf`` or a ``.docx`` suffix. No patterns accepts all.
    """
    if not patterns:
        return True

    mime = (file.mime_type or "").lower()
    name = file.name.lower()
    for pattern in patterns:
        pattern = pattern.strip().lower()
        if not pattern:
            continue
        if pattern.startswith("."):
            if name.endswith(pattern):
                return True
        elif pattern.endswith("/*"):
            if mime.startswith(pattern[:-1]):
                return True
        elif mime == pattern:
            return True
    return False


def describe(file: FileDescriptor) -> SelectedFile:
    """Wrap a raw file with a fresh id and its derived metadata."""
    return SelectedFile(
        id=generate_task_id(file.name),
        file=file,
        name=file.name,
        size_bytes=file.size,
        category=get_category(file.name, file.mime_type),
        extension=get_extension(file.name),
    )
