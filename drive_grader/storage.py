"""
Storage capability used by the fetcher, the writer and the poller.

The grading pipeline only depends on the StorageBackend protocol. Google
Drive is the production backend (see drive.py); LocalFolderStorage serves
the same contract from a directory tree for development and tests.
"""

import logging
import mimetypes
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from .config import BINARY_PLACEHOLDER, UNKNOWN_SUBMITTER
from .exceptions import FetchFailure, PersistFailure
from .models import StoredFile, Submission

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Narrow storage interface the pipeline depends on."""

    def fetch_by_id(self, file_id: str) -> Submission:
        """Fetch a document's content and metadata. Raises FetchFailure."""
        ...

    def list_children(self, folder_id: str) -> list[StoredFile]:
        """List the files currently in a folder."""
        ...

    def write_content(self, folder_id: str, name: str, content: str, mime_type: str = "text/plain") -> str:
        """Create a file in a folder and return its id. Raises PersistFailure."""
        ...

    def copy_permissions(self, source_id: str, target_id: str) -> None:
        """Share target with everyone who can access source (owners excluded)."""
        ...


def _owner(path: Path) -> str:
    try:
        return path.owner()
    except (KeyError, NotImplementedError, OSError):
        return UNKNOWN_SUBMITTER


class LocalFolderStorage:
    """
    StorageBackend over a local directory tree.

    Folder ids are directory paths relative to the root; file ids are file
    paths relative to the root.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _resolve(self, relative: str) -> Path:
        path = (self.root / relative).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Path escapes storage root: {relative}")
        return path

    def fetch_by_id(self, file_id: str) -> Submission:
        try:
            path = self._resolve(file_id)
            stat = path.stat()
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            try:
                content = path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                content = BINARY_PLACEHOLDER
        except (OSError, ValueError) as e:
            raise FetchFailure(f"Error fetching submission {file_id}: {e}") from e

        return Submission(
            file_id=file_id,
            file_name=path.name,
            file_content=content,
            submitted_by=_owner(path),
            submitted_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            mime_type=mime_type,
        )

    def list_children(self, folder_id: str) -> list[StoredFile]:
        folder = self._resolve(folder_id)
        if not folder.is_dir():
            return []

        files = [p for p in folder.iterdir() if p.is_file() and not p.name.startswith(".")]
        # Newest first, like the Drive listing
        files.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        return [
            StoredFile(
                file_id=str(p.relative_to(self.root.resolve())),
                name=p.name,
                mime_type=mimetypes.guess_type(p.name)[0] or "",
            )
            for p in files
        ]

    def write_content(self, folder_id: str, name: str, content: str, mime_type: str = "text/plain") -> str:
        try:
            folder = self._resolve(folder_id)
            folder.mkdir(parents=True, exist_ok=True)
            target = folder / name
            target.write_text(content, encoding="utf-8")
        except (OSError, ValueError) as e:
            raise PersistFailure(f"Error saving {name} to {folder_id}: {e}") from e

        return str(target.relative_to(self.root.resolve()))

    def copy_permissions(self, source_id: str, target_id: str) -> None:
        try:
            shutil.copymode(self._resolve(source_id), self._resolve(target_id))
        except (OSError, ValueError) as e:
            logger.error("Error copying permissions from %s to %s: %s", source_id, target_id, e)
