"""Progress tracking for queue runs."""

import math
import time
from typing import Callable, Iterable, Optional

from .models import ItemError, QueueProgress, RunSummary

ProgressCallback = Callable[[QueueProgress], None]


class ProgressTracker:
    """Counts completed and failed items and estimates the time remaining.

    The tracker is the only writer of progress state. Callers read it through
    ``snapshot()``, which returns an immutable copy.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.callback = callback
        self.clock = clock
        self.total_items = 0
        self.processing: set[str] = set()
        self.completed = 0
        self.failed = 0
        self.errors: list[ItemError] = []
        self.start_time = clock()
        self.estimated_time_remaining: Optional[float] = None

    def start(self, total_items: int):
        self.total_items = total_items
        self.processing = set()
        self.completed = 0
        self.failed = 0
        self.errors = []
        self.start_time = self.clock()
        self.estimated_time_remaining = None
        self._notify()

    def mark_processing(self, items: Iterable[str]):
        self.processing = set(items)
        self._notify()

    def complete(self, item: str):
        self.processing.discard(item)
        self.completed += 1
        self._notify()

    def fail(self, item: str, error: str, attempts: int):
        self.processing.discard(item)
        self.failed += 1
        self.errors.append(ItemError(item=item, error=error, attempts=attempts))
        self._notify()

    def snapshot(self) -> QueueProgress:
        self._update_estimate()
        return QueueProgress(
            total_items=self.total_items,
            processing=frozenset(self.processing),
            completed=self.completed,
            failed=self.failed,
            errors=tuple(self.errors),
            start_time=self.start_time,
            estimated_time_remaining=self.estimated_time_remaining,
        )

    def _update_estimate(self):
        done = self.completed + self.failed
        if done == 0:
            self.estimated_time_remaining = None
            return
        elapsed = max(self.clock() - self.start_time, 0.0)
        remaining = max(self.total_items - done, 0)
        self.estimated_time_remaining = (elapsed / done) * remaining

    def _notify(self):
        self._update_estimate()
        if self.callback:
            self.callback(self.snapshot())


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" + ("" if count == 1 else "s")


def format_progress(progress: QueueProgress) -> str:
    """Render a progress snapshot as a human-readable digest."""
    total = progress.total_items
    done = progress.done
    percent = round(done / total * 100) if total else 100

    lines = [
        f"Progress: {done}/{total} ({percent}%)",
        f"Completed: {progress.completed}",
        f"Failed: {progress.failed}",
    ]

    if progress.processing:
        lines.append("")
        lines.append("Currently processing:")
        lines.extend(f"  • {item}" for item in sorted(progress.processing))

    if progress.estimated_time_remaining is not None and progress.estimated_time_remaining > 0:
        minutes = math.ceil(progress.estimated_time_remaining / 60)
        lines.append("")
        lines.append(f"Estimated time remaining: {_plural(minutes, 'minute')}")

    if progress.errors:
        lines.append("")
        lines.append("Errors:")
        for e in progress.errors:
            lines.append(f"  • {e.item} ({_plural(e.attempts, 'attempt')}): {e.error}")

    return "\n".join(lines)


def format_summary(summary: RunSummary) -> str:
    """Render the final report of a dispatcher run."""
    minutes = int(summary.elapsed_seconds // 60)
    seconds = round(summary.elapsed_seconds % 60)

    lines = [
        f"Processing completed in: {minutes}m {seconds}s",
        f"Successfully processed: {summary.completed}",
        f"Failed: {summary.failed}",
    ]

    if summary.errors:
        lines.append("")
        lines.append("Failed items:")
        for e in summary.errors:
            lines.append(f"  • {e.item}")
            lines.append(f"    ({_plural(e.attempts, 'attempt')}: {e.error})")

    if summary.requeued:
        lines.append("")
        lines.append(f"Requeued {summary.requeued} failed item(s) for a later run")

    return "\n".join(lines)
