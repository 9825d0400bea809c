"""File-backed queue of pending documentation sources."""

import logging
import os
import tempfile
from collections import Counter
from pathlib import Path
from typing import Iterable

from .exceptions import QueueStoreError
from .models import RemovalReport

logger = logging.getLogger(__name__)

QUEUE_FILE = "queue.txt"
PROCESSING_FILE = "processing.txt"


class FileQueueStore:
    """Newline-delimited queue file with whole-file atomic rewrites.

    An absent file is an empty queue. Every mutation writes a temporary file
    next to the queue and replaces the queue with it, so readers never see a
    partially written list.
    """

    def __init__(self, path: str = QUEUE_FILE, processing_path: str = PROCESSING_FILE):
        self.path = Path(path)
        self.processing_path = Path(processing_path)

    def exists(self) -> bool:
        return self.path.exists()

    def read_all(self) -> list[str]:
        """Read the current queue.

        Returns:
            Entries in queue order, blank lines filtered out
        """
        return self._read_lines(self.path)

    def enqueue(self, items: Iterable[str]) -> int:
        """Append items to the queue, creating it if needed.

        Args:
            items: Raw entries; whitespace is trimmed and blanks are skipped

        Returns:
            Number of entries added
        """
        new_items = [item.strip() for item in items if item and item.strip()]
        if not new_items:
            return 0
        current = self.read_all()
        self._write_lines(self.path, current + new_items)
        logger.info(f"Enqueued {len(new_items)} item(s) to {self.path}")
        return len(new_items)

    def remove_exact(self, items: Iterable[str]) -> RemovalReport:
        """Remove exact matches, suggesting case-insensitive near misses.

        Args:
            items: Entries to remove

        Returns:
            RemovalReport describing what was removed, suggested or missing
        """
        remaining = self.read_all()
        report = RemovalReport()

        for requested in items:
            if requested in remaining:
                remaining = [entry for entry in remaining if entry != requested]
                report.removed.append(requested)
                continue

            suggestion = next(
                (entry for entry in remaining if entry.lower() == requested.lower()),
                None,
            )
            if suggestion is not None:
                report.case_mismatches.append((requested, suggestion))
            else:
                report.not_found.append(requested)

        if report.removed:
            self._write_lines(self.path, remaining)
        report.remaining = remaining
        return report

    def remove_batch(self, items: Iterable[str]) -> None:
        """Remove one occurrence of each given entry.

        Entries appended while the batch was processing are kept.
        """
        pending = Counter(items)
        remaining = []
        for entry in self.read_all():
            if pending[entry] > 0:
                pending[entry] -= 1
                continue
            remaining.append(entry)
        self._write_lines(self.path, remaining)

    def clear(self) -> int:
        """Empty the queue.

        Returns:
            Number of entries removed
        """
        count = len(self.read_all())
        self._write_lines(self.path, [])
        return count

    def mark_processing(self, items: list[str]) -> None:
        """Record the in-flight batch."""
        self._write_lines(self.processing_path, items)

    def clear_processing(self) -> None:
        self._write_lines(self.processing_path, [])

    def read_processing(self) -> list[str]:
        return self._read_lines(self.processing_path)

    def _read_lines(self, path: Path) -> list[str]:
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise QueueStoreError(f"Failed to read {path}: {e}") from e
        return [line.strip() for line in content.splitlines() if line.strip()]

    def _write_lines(self, path: Path, lines: list[str]) -> None:
        try:
            if not lines:
                path.unlink(missing_ok=True)
                return

            directory = path.parent if str(path.parent) else Path(".")
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write("\n".join(lines) + "\n")
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise QueueStoreError(f"Failed to write {path}: {e}") from e
