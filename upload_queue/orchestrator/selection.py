"""Selection Buffer - files picked by the user but not queued yet."""
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

from ..errors import EmptySelectionError
from ..models import FileDescriptor, SelectedFile
from ..services.metadata import accepts, describe

logger = logging.getLogger(__name__)


class SelectionBuffer:
    """Ordered list of selected files, reviewed before submit."""

    def __init__(self, accept: Optional[Sequence[str]] = None):
        self._accept = accept
        self._entries: List[SelectedFile] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[SelectedFile, ...]:
        return tuple(self._entries)

    def add_files(self, files: Iterable[FileDescriptor]) -> List[FileDescriptor]:
        """
        Replace the buffer with newly selected files.

        Files rejected by the accept filter are left out and returned.
        """
        selected = []
        rejected = []
        for file in files:
            if accepts(file, self._accept):
                selected.append(describe(file))
            else:
                rejected.append(file)

        if rejected:
            logger.info(
                "Rejected %d file(s) not matching accept filter: %s",
                len(rejected),
                ", ".join(f.name for f in rejected),
            )
        self._entries = selected
        return rejected

    def remove(self, entry_id: str) -> bool:
        for idx, entry in enumerate(self._entries):
            if entry.id == entry_id:
                del self._entries[idx]
                return True
        return False

    def clear(self) -> None:
        self._entries = []

    def drain(self) -> List[SelectedFile]:
        """Hand over every entry and empty the buffer."""
        if not self._entries:
            raise EmptySelectionError()
        entries, self._entries = self._entries, []
        return entries
