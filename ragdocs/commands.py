"""Command surface shared by the HTTP API and the CLI.

Every command returns a ``CommandResult``. Failures are reported as results
with ``is_error`` set and a ``code`` taken from the exception, never raised
to the caller.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from . import discovery
from .content import ContentProcessor
from .embeddings import EmbeddingService
from .exceptions import (
    InvalidParamsError,
    InvalidRequestError,
    NoMatchError,
    QueueStoreError,
    RagDocsError,
)
from .identity import resolve_removal
from .ingest import DocumentIngester, Embedder
from .models import DocumentRecord, RunConfig, SearchHit
from .progress import format_progress, format_summary
from .queue import FileQueueStore
from .sources import format_sources
from .storage import DocumentFilter, QdrantVectorStore, VectorStore
from .worker import QueueWorker

logger = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 20


class CommandResult(BaseModel):
    text: str
    is_error: bool = False
    code: Optional[str] = None
    data: Optional[dict[str, Any]] = None

    @classmethod
    def failure(cls, message: str, code: str) -> "CommandResult":
        return cls(text=message, is_error=True, code=code)


def _validation_message(error: ValidationError) -> str:
    parts = []
    for e in error.errors():
        field = ".".join(str(loc) for loc in e["loc"])
        parts.append(f"Invalid parameter value: '{field}' {e['msg']}")
    return "; ".join(parts)


def command(func):
    """Turn exceptions raised by a command into failure results."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> CommandResult:
        try:
            return await func(*args, **kwargs)
        except RagDocsError as e:
            return CommandResult.failure(str(e), e.code)
        except ValidationError as e:
            return CommandResult.failure(_validation_message(e), InvalidParamsError.code)
        except Exception as e:
            logger.error(f"Command {func.__name__} failed: {e}", exc_info=True)
            return CommandResult.failure(str(e) or e.__class__.__name__, "internal_error")

    return wrapper


def validate_string_list(values: Optional[list[str]], key: str) -> list[str]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise InvalidParamsError(
            f"Invalid parameter type: '{key}' must be an array, got {type(values).__name__}"
        )
    invalid = [type(v).__name__ for v in values if not isinstance(v, str)]
    if invalid:
        raise InvalidParamsError(
            f"Invalid array contents: '{key}' must contain only strings, "
            f"found items of type: {', '.join(invalid)}"
        )
    return [v.strip() for v in values if v.strip()]


def validate_required_string(value: Optional[str], key: str) -> str:
    if value is None:
        raise InvalidParamsError(f"Missing required parameter: '{key}'")
    if not isinstance(value, str):
        raise InvalidParamsError(
            f"Invalid parameter type: '{key}' must be a string, got {type(value).__name__}"
        )
    if not value.strip():
        raise InvalidParamsError(f"Invalid parameter value: '{key}' cannot be empty")
    return value.strip()


@dataclass
class AppContext:
    """Collaborators wired together for one process."""
    queue: FileQueueStore
    store: VectorStore
    embedder: Embedder
    content: ContentProcessor
    ingester: DocumentIngester

    async def prepare(self) -> None:
        if isinstance(self.store, QdrantVectorStore):
            await self.store.test_connection()
        await self.store.ensure_collection(self.embedder.get_vector_size())

    async def close(self) -> None:
        if isinstance(self.store, QdrantVectorStore):
            await self.store.close()


def build_context(settings) -> AppContext:
    """Wire the Qdrant, embedding and content collaborators from settings."""
    store = QdrantVectorStore(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        collection_name=settings.collection_name,
        timeout=settings.request_timeout,
    )
    embedder = EmbeddingService(
        provider=settings.embedding_provider,
        model=settings.embedding_model,
        api_key=settings.openai_api_key,
        base_url=settings.ollama_url if settings.embedding_provider == "ollama" else None,
    )
    content = ContentProcessor(timeout=settings.request_timeout)
    return AppContext(
        queue=FileQueueStore(settings.queue_file, settings.processing_file),
        store=store,
        embedder=embedder,
        content=content,
        ingester=DocumentIngester(content, embedder, store),
    )


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" + ("" if count == 1 else "s")


class Commands:
    """Operations exposed to users."""

    def __init__(self, context: AppContext):
        self.context = context

    # Queue

    @command
    async def list_queue(self) -> CommandResult:
        queue = self.context.queue
        if not await asyncio.to_thread(queue.exists):
            return CommandResult(text="Queue is empty (queue file does not exist)", data={"items": []})

        items = await asyncio.to_thread(queue.read_all)
        if not items:
            return CommandResult(text="Queue is empty", data={"items": []})

        return CommandResult(
            text=f"Queue contains {_plural(len(items), 'item')}:\n" + "\n".join(items),
            data={"items": items},
        )

    @command
    async def enqueue(self, items: list[str]) -> CommandResult:
        items = validate_string_list(items, "items")
        if not items:
            raise InvalidParamsError("At least one item must be provided")
        added = await asyncio.to_thread(self.context.queue.enqueue, items)
        return CommandResult(
            text=f"Successfully added {_plural(added, 'item')} to the queue",
            data={"added": added},
        )

    @command
    async def clear_queue(self) -> CommandResult:
        queue = self.context.queue
        if not await asyncio.to_thread(queue.exists):
            return CommandResult(text="Queue is already empty (queue file does not exist)", data={"removed": 0})

        count = await asyncio.to_thread(queue.clear)
        return CommandResult(
            text=f"Queue cleared successfully. Removed {_plural(count, 'item')} from the queue.",
            data={"removed": count},
        )

    @command
    async def remove_from_queue(self, paths: list[str]) -> CommandResult:
        paths = validate_string_list(paths, "paths")
        if not paths:
            raise InvalidParamsError("At least one path must be provided")

        queue = self.context.queue
        if not await asyncio.to_thread(queue.exists):
            raise InvalidRequestError("Queue is empty (queue file does not exist)")

        report = await asyncio.to_thread(queue.remove_exact, paths)

        sections = []
        if report.removed:
            sections.append(
                f"Successfully removed {len(report.removed)} item(s):\n" + "\n".join(report.removed)
            )
        if report.case_mismatches:
            sections.append(
                f"Found {len(report.case_mismatches)} case-insensitive match(es):\n"
                + "\n".join(f"{path} (Did you mean: {suggestion}?)" for path, suggestion in report.case_mismatches)
            )
        if report.not_found:
            sections.append(f"{len(report.not_found)} item(s) not found:\n" + "\n".join(report.not_found))

        text = "\n\n".join(sections + [f"{len(report.remaining)} items remaining in queue."])
        if not report.removed and report.remaining:
            text += "\n\nCurrent queue contains:\n" + "\n".join(report.remaining)

        return CommandResult(text=text, data=report.model_dump())

    @command
    async def run_queue(
        self,
        max_concurrent: int = 3,
        retry_attempts: int = 3,
        retry_delay: int = 1000,
        failure_policy: str = "drop",
    ) -> CommandResult:
        config = RunConfig(
            max_concurrent=max_concurrent,
            retry_attempts=retry_attempts,
            retry_delay_ms=retry_delay,
            failure_policy=failure_policy,
        )

        worker = QueueWorker(
            self.context.queue,
            self.context.ingester,
            progress_callback=lambda progress: logger.debug(format_progress(progress)),
        )
        try:
            summary = await worker.run(config)
        except QueueStoreError as e:
            raise QueueStoreError(f"Failed to process queue: {e}") from e

        return CommandResult(text=format_summary(summary), data=summary.model_dump())

    # Documents

    @command
    async def add_documentation(self, url: str) -> CommandResult:
        url = validate_required_string(url, "url")
        count = await self.context.ingester.add_url(url)
        return CommandResult(
            text=f"Successfully added documentation from {url} ({count} chunks processed)",
            data={"chunks": count},
        )

    @command
    async def add_local_documentation(self, path: str) -> CommandResult:
        path = validate_required_string(path, "path")
        count = await self.context.ingester.add_local_path(path)
        return CommandResult(
            text=f"Successfully added documentation from {path} ({count} chunks processed)",
            data={"chunks": count},
        )

    @command
    async def list_sources(self, expanded: bool = False) -> CommandResult:
        records = []
        async for point in self.context.store.iter_points():
            record = DocumentRecord.from_payload(point.payload)
            if record is not None:
                records.append(record)
        return CommandResult(text=format_sources(records, expanded=expanded))

    @command
    async def remove_documentation(
        self, paths: Optional[list[str]] = None, urls: Optional[list[str]] = None
    ) -> CommandResult:
        paths = validate_string_list(paths, "paths")
        urls = validate_string_list(urls, "urls")
        if not paths and not urls:
            raise InvalidParamsError("Either urls or paths must be provided as a non-empty array")

        store = self.context.store

        if paths:
            points = await store.list_points(DocumentFilter(local_only=True))
            plan = resolve_removal(points, paths)
            await store.delete(DocumentFilter(ids=plan.point_ids, urls=urls))

            removed = [f.path for f in plan.files]
            text = (
                f"Successfully removed {_plural(len(plan.files), 'file')} "
                f"({plan.chunk_count} chunks): {', '.join(removed)}"
            )
            if urls:
                text += f" and {_plural(len(urls), 'URL')}: {', '.join(urls)}"
            return CommandResult(text=text, data={"files": removed, "chunks": plan.chunk_count, "urls": urls})

        existing = await store.list_points(DocumentFilter(urls=urls))
        if not existing:
            raise NoMatchError(f"No documents found matching the specified URL(s): {', '.join(urls)}")

        await store.delete(DocumentFilter(urls=urls))
        return CommandResult(
            text=(
                f"Successfully removed {_plural(len(existing), 'document')} "
                f"from {_plural(len(urls), 'URL')}: {', '.join(urls)}"
            ),
            data={"chunks": len(existing), "urls": urls},
        )

    @command
    async def search_documentation(self, query: str, limit: int = 5) -> CommandResult:
        query = validate_required_string(query, "query")
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise InvalidParamsError(f"Invalid parameter type: 'limit' must be a number, got {type(limit).__name__}")
        if limit < 1 or limit > MAX_SEARCH_LIMIT:
            raise InvalidParamsError(f"Invalid limit: must be between 1 and {MAX_SEARCH_LIMIT}, got {limit}")

        vector = await self.context.embedder.generate_embeddings(query)
        hits = []
        for scored in await self.context.store.search(vector, limit):
            if DocumentRecord.from_payload(scored.payload) is None:
                continue
            hits.append(SearchHit(
                score=scored.score,
                text=scored.payload.get("text", ""),
                url=scored.payload["url"],
                title=scored.payload["title"],
            ))

        if not hits:
            return CommandResult(
                text="No relevant documentation found for your query. Try rephrasing or using different terms.",
                data={"results": []},
            )

        text = "\n---\n".join(f"[{h.title}]({h.url}) (score: {h.score:.2f})\n{h.text}\n" for h in hits)
        return CommandResult(text=text, data={"results": [h.model_dump() for h in hits]})

    @command
    async def wipe_database(self) -> CommandResult:
        existed = await self.context.store.wipe(self.context.embedder.get_vector_size())
        if not existed:
            return CommandResult(text="No database found to wipe.")
        return CommandResult(text="Database successfully wiped and reinitialized.")

    # Discovery

    @command
    async def extract_urls(self, url: str, add_to_queue: bool = False) -> CommandResult:
        url = validate_required_string(url, "url")
        urls = await discovery.extract_urls(self.context.content, url)

        if add_to_queue:
            added = await asyncio.to_thread(self.context.queue.enqueue, urls)
            return CommandResult(text=f"Successfully added {added} URLs to the queue", data={"urls": urls})

        return CommandResult(text="\n".join(urls) or "No URLs found on this page.", data={"urls": urls})

    @command
    async def check_files(self, path: str, add_to_queue: bool = False) -> CommandResult:
        path = validate_required_string(path, "path")
        files = await discovery.check_files(path)

        if add_to_queue:
            await asyncio.to_thread(self.context.queue.enqueue, files)
            return CommandResult(
                text=f"Found {len(files)} file(s) and added them to the queue:\n" + "\n".join(files),
                data={"files": files},
            )

        text = f"Found {len(files)} file(s):\n" + "\n".join(files) if files else "No files found."
        return CommandResult(text=text, data={"files": files})
