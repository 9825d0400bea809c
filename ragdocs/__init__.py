"""Documentation ingestion queue package."""

from .commands import CommandResult, Commands
from .models import (
    DocumentChunk,
    DocumentRecord,
    QueueProgress,
    RunConfig,
    RunSummary,
)
from .queue import FileQueueStore
from .storage import InMemoryVectorStore, QdrantVectorStore, VectorStore
from .worker import QueueWorker

__all__ = [
    "CommandResult",
    "Commands",
    "DocumentChunk",
    "DocumentRecord",
    "QueueProgress",
    "RunConfig",
    "RunSummary",
    "FileQueueStore",
    "InMemoryVectorStore",
    "QdrantVectorStore",
    "VectorStore",
    "QueueWorker",
]
