"""Worker that drains the documentation queue in bounded concurrent batches."""

import asyncio
import logging
import os
import time
from typing import Awaitable, Callable, Optional, Protocol

from .models import (
    ProcessResult,
    QueueEntry,
    RunConfig,
    RunSummary,
    UrlItem,
    classify,
)
from .progress import ProgressCallback, ProgressTracker, format_progress, format_summary
from .queue import FileQueueStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class Ingester(Protocol):
    async def add_url(self, url: str) -> int: ...

    async def add_local_path(self, path: str) -> int: ...


class QueueWorker:
    """Processes the queue batch by batch.

    Each batch holds up to ``max_concurrent`` entries taken from the head of
    the queue. Entries of a batch are processed concurrently, each with its own
    retries, and the batch is removed from the queue once every entry has
    succeeded or given up. Batches run one after another.
    """

    def __init__(
        self,
        store: FileQueueStore,
        ingester: Ingester,
        progress_callback: Optional[ProgressCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.ingester = ingester
        self.tracker = ProgressTracker(progress_callback)
        self.sleep = sleep

    async def run(self, config: Optional[RunConfig] = None) -> RunSummary:
        """Drain the queue.

        Args:
            config: Concurrency, retry and failure policy settings

        Returns:
            RunSummary with counts, failures and elapsed time
        """
        config = config or RunConfig()
        started = time.monotonic()
        summary = RunSummary()
        failed_items: list[str] = []

        items = await asyncio.to_thread(self.store.read_all)
        self.tracker.start(len(items))
        if not items:
            logger.info("Queue is empty, nothing to process")
            return summary

        logger.info(
            f"Worker started: {len(items)} item(s), max_concurrent={config.max_concurrent}, "
            f"retry_attempts={config.retry_attempts}"
        )

        while items:
            batch = items[:config.max_concurrent]
            await asyncio.to_thread(self.store.mark_processing, batch)
            self.tracker.mark_processing(batch)

            logger.info(f"Processing batch of {len(batch)} items...")
            results = await asyncio.gather(*(self.process_item(item, config) for item in batch))

            for result in results:
                if result.success:
                    summary.completed += 1
                else:
                    summary.failed += 1
                    failed_items.append(result.item)

            await asyncio.to_thread(self.store.remove_batch, batch)
            await asyncio.to_thread(self.store.clear_processing)
            summary.batches += 1
            logger.info(format_progress(self.tracker.snapshot()))

            items = await asyncio.to_thread(self.store.read_all)

        if failed_items and config.failure_policy == "requeue":
            summary.requeued = await asyncio.to_thread(self.store.enqueue, failed_items)
            logger.info(f"Requeued {summary.requeued} failed item(s)")

        summary.errors = list(self.tracker.snapshot().errors)
        summary.elapsed_seconds = time.monotonic() - started
        logger.info(format_summary(summary))
        return summary

    async def process_item(self, item: str, config: RunConfig) -> ProcessResult:
        """Process one queue entry with retries and record the outcome."""
        result = await self._attempt(item, config)
        if result.success:
            self.tracker.complete(result.item)
        else:
            self.tracker.fail(result.item, result.error or "Unknown error", result.attempts)
        return result

    async def _attempt(self, item: str, config: RunConfig) -> ProcessResult:
        attempts = 0
        last_error = "Unknown error"

        while attempts < config.max_attempts:
            attempts += 1
            try:
                entry = classify(item)
                if not isinstance(entry, UrlItem) and not await self._path_exists(entry):
                    # Retrying cannot make a missing file appear
                    error = f"File not accessible: {entry.value}"
                    logger.error(error)
                    return ProcessResult(item=item, success=False, attempts=attempts, error=error)
                await self._dispatch(entry)
                return ProcessResult(item=item, success=True, attempts=attempts)
            except Exception as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning(f"Attempt {attempts} failed for {item}: {last_error}")
                if attempts < config.max_attempts:
                    await self.sleep(config.retry_delay_ms / 1000)

        logger.error(f"Giving up on {item} after {attempts} attempt(s): {last_error}")
        return ProcessResult(item=item, success=False, attempts=attempts, error=last_error)

    async def _path_exists(self, entry: QueueEntry) -> bool:
        return await asyncio.to_thread(os.path.exists, entry.value)

    async def _dispatch(self, entry: QueueEntry) -> None:
        if isinstance(entry, UrlItem):
            await self.ingester.add_url(entry.value)
        else:
            await self.ingester.add_local_path(entry.value)


def main():
    """Main entry point for the worker."""
    import argparse

    from .commands import build_context
    from .config import Settings

    parser = argparse.ArgumentParser(description="Queue worker for ingesting documentation")
    parser.add_argument(
        "--queue-file",
        default=None,
        help="Path to the queue file (default: $RAGDOCS_QUEUE_FILE or queue.txt)"
    )
    parser.add_argument(
        "--max-concurrent",
        type=int,
        default=3,
        help="Number of items processed concurrently per batch (1-5)"
    )
    parser.add_argument(
        "--retry-attempts",
        type=int,
        default=3,
        help="Attempts per item before giving up (0-5)"
    )
    parser.add_argument(
        "--retry-delay",
        type=int,
        default=1000,
        help="Delay between attempts in milliseconds (1000-10000)"
    )
    parser.add_argument(
        "--requeue-failed",
        action="store_true",
        help="Append failed items back to the queue after the run"
    )

    args = parser.parse_args()

    settings = Settings.from_env()
    if args.queue_file:
        settings = settings.model_copy(update={"queue_file": args.queue_file})
    config = RunConfig(
        max_concurrent=args.max_concurrent,
        retry_attempts=args.retry_attempts,
        retry_delay_ms=args.retry_delay,
        failure_policy="requeue" if args.requeue_failed else "drop",
    )

    async def _run():
        context = build_context(settings)
        try:
            await context.prepare()
            worker = QueueWorker(context.queue, context.ingester)
            return await worker.run(config)
        finally:
            await context.close()

    summary = asyncio.run(_run())
    print(format_summary(summary))


if __name__ == "__main__":
    main()
