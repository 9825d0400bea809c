"""Shared fixtures for the documentation queue tests."""

import asyncio
import tempfile
from pathlib import Path

import pytest

from ragdocs.commands import AppContext, Commands
from ragdocs.content import ContentProcessor
from ragdocs.exceptions import ProcessingError
from ragdocs.ingest import DocumentIngester
from ragdocs.queue import FileQueueStore
from ragdocs.storage import InMemoryVectorStore

VECTOR_SIZE = 4


class FakeEmbedder:
    """Deterministic embeddings derived from the text's letters."""

    def __init__(self):
        self.texts = []

    def get_vector_size(self) -> int:
        return VECTOR_SIZE

    async def generate_embeddings(self, text: str) -> list[float]:
        self.texts.append(text)
        vector = [0.0] * VECTOR_SIZE
        for char in text.lower():
            if char.isalpha():
                vector[ord(char) % VECTOR_SIZE] += 1.0
        vector[0] += 0.1
        return vector


class FakeIngester:
    """Records calls and fails items a configured number of times."""

    def __init__(self, failures=None, on_call=None):
        self.failures = dict(failures or {})
        self.on_call = on_call
        self.calls = []
        self.active = 0
        self.max_active = 0

    async def add_url(self, url: str) -> int:
        return await self._handle(url)

    async def add_local_path(self, path: str) -> int:
        return await self._handle(path)

    async def _handle(self, value: str) -> int:
        self.calls.append(value)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            if self.on_call:
                self.on_call(value)
            remaining = self.failures.get(value, 0)
            if remaining:
                self.failures[value] = remaining - 1
                raise ProcessingError(f"Failed to fetch URL {value}")
            return 1
        finally:
            self.active -= 1


@pytest.fixture
def temp_dir():
    """Create a temporary directory for queue files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def queue_store(temp_dir):
    """Create a queue store inside the temporary directory."""
    return FileQueueStore(
        path=str(temp_dir / "queue.txt"),
        processing_path=str(temp_dir / "processing.txt"),
    )


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def vector_store():
    store = InMemoryVectorStore()
    asyncio.run(store.ensure_collection(VECTOR_SIZE))
    return store


@pytest.fixture
def ingester(embedder, vector_store):
    return DocumentIngester(ContentProcessor(), embedder, vector_store)


@pytest.fixture
def commands(queue_store, vector_store, embedder, ingester):
    """Commands wired to in-memory collaborators."""
    context = AppContext(
        queue=queue_store,
        store=vector_store,
        embedder=embedder,
        content=ingester.content,
        ingester=ingester,
    )
    return Commands(context)


@pytest.fixture
def docs_tree(temp_dir):
    """Create a small documentation tree on disk.

    Layout::

        docs/guide.md
        docs/api/index.md
        other/guide.md
    """
    root = temp_dir / "project"
    (root / "docs" / "api").mkdir(parents=True)
    (root / "other").mkdir()
    (root / "docs" / "guide.md").write_text("Getting started with the queue worker.")
    (root / "docs" / "api" / "index.md").write_text("API reference for commands and storage.")
    (root / "other" / "guide.md").write_text("A different guide about something else.")
    return root


@pytest.fixture
def make_ingester():
    """Factory for fake ingesters."""
    return FakeIngester
