"""
Folder poller.

Lists the watched folder at a fixed interval and starts one grading run
per file it has not seen before. An id is recorded as processed as soon as
its run has been started, not when the run completes.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Iterable, Protocol

from .storage import StorageBackend
from .utils import is_report_file

logger = logging.getLogger(__name__)


class ProcessedStore(Protocol):
    """Set-membership store of file ids that already have a run."""

    def __contains__(self, file_id: str) -> bool: ...

    def add(self, file_id: str) -> None: ...


class InMemoryProcessedStore:
    """Processed ids kept for the lifetime of the process."""

    def __init__(self, file_ids: Iterable[str] = ()) -> None:
        self._ids: set[str] = set(file_ids)

    def __contains__(self, file_id: str) -> bool:
        return file_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, file_id: str) -> None:
        self._ids.add(file_id)


class FileProcessedStore(InMemoryProcessedStore):
    """Processed ids appended to a text file (one per line) and reloaded on start."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        existing: list[str] = []
        if self.path.exists():
            existing = [line.strip() for line in self.path.read_text(encoding="utf-8").splitlines() if line.strip()]
        super().__init__(existing)

    def add(self, file_id: str) -> None:
        if file_id in self:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(f"{file_id}\n")
        super().add(file_id)


class SubmissionPoller:
    """
    Discovers new submissions and starts a grading run for each.

    Args:
        storage: Storage backend to list the folder with.
        processed: Store of ids that already have a run.
        start_run: Callback starting a run for a file id; returns the run id.
        folder_id: Folder to watch.
        interval_seconds: Sleep between poll cycles.
    """

    def __init__(
        self,
        storage: StorageBackend,
        processed: ProcessedStore,
        start_run: Callable[[str], str],
        folder_id: str,
        interval_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.storage = storage
        self.processed = processed
        self.start_run = start_run
        self.folder_id = folder_id
        self.interval_seconds = interval_seconds
        self._sleep = sleep

    def find_new_submissions(self) -> list[str]:
        """Ids in the folder that have no run yet, skipping generated reports."""
        return [
            f.file_id
            for f in self.storage.list_children(self.folder_id)
            if f.file_id not in self.processed and not is_report_file(f.name)
        ]

    def poll_once(self) -> list[str]:
        """
        Run one poll cycle.

        A failure to start one run is logged and does not affect the others.

        Returns:
            Ids whose run was started in this cycle.
        """
        logger.info("Checking for new submissions...")
        new_ids = self.find_new_submissions()

        if not new_ids:
            logger.info("No new submissions found")
            return []

        logger.info("Found %d new submission(s)", len(new_ids))
        started: list[str] = []
        for file_id in new_ids:
            try:
                logger.info("Starting workflow for file: %s", file_id)
                run_id = self.start_run(file_id)
                self.processed.add(file_id)
                started.append(file_id)
                logger.info("Workflow started: %s", run_id)
            except Exception as e:
                logger.error("Error starting workflow for file %s: %s", file_id, e)

        return started

    def run_forever(self, max_cycles: int | None = None) -> None:
        """
        Poll until interrupted.

        Args:
            max_cycles: Stop after this many cycles (None polls forever).
        """
        logger.info("File watcher started")
        logger.info("Watching folder: %s", self.folder_id)
        logger.info("Polling interval: %ss", self.interval_seconds)

        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            try:
                self.poll_once()
            except Exception as e:
                logger.error("Error in polling loop: %s", e)
            cycles += 1
            self._sleep(self.interval_seconds)
