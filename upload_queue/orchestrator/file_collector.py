"""File collection utilities for queueing local paths."""
from pathlib import Path
from typing import Iterable, List

from ..models import FileDescriptor


class FileCollector:
    """Turns files and folders given on the command line into descriptors."""

    @staticmethod
    def collect_files(folder: Path) -> List[Path]:
        """
        Collect all regular files recursively, skipping hidden ones.

        Args:
            folder: Root folder to scan

        Returns:
            Sorted list of file paths
        """
        files = []
        for item in folder.rglob("*"):
            if item.is_file() and not item.name.startswith("."):
                files.append(item)
        return sorted(files)

    @classmethod
    def describe_paths(cls, paths: Iterable[Path]) -> List[FileDescriptor]:
        """Descriptors for every file, expanding folders in place."""
        descriptors = []
        for path in paths:
            path = Path(path)
            if path.is_dir():
                descriptors.extend(FileDescriptor.from_path(p) for p in cls.collect_files(path))
            elif path.is_file():
                descriptors.append(FileDescriptor.from_path(path))
        return descriptors
