"""Ingestion of a single documentation source into the vector store."""

import asyncio
import logging
import os
import uuid
from typing import Protocol

from .content import ContentProcessor, file_url
from .exceptions import InvalidParamsError, ProcessingError
from .identity import path_segments
from .models import DocumentChunk, DocumentRecord, is_web_url
from .storage import PointData, VectorStore

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    async def generate_embeddings(self, text: str) -> list[float]: ...

    def get_vector_size(self) -> int: ...


def generate_point_id() -> str:
    return str(uuid.uuid4())


class DocumentIngester:
    """Acquires chunks for a source, embeds them and stores one point each."""

    def __init__(self, content: ContentProcessor, embedder: Embedder, store: VectorStore):
        self.content = content
        self.embedder = embedder
        self.store = store

    async def add_url(self, url: str) -> int:
        """Ingest a web page.

        Args:
            url: Absolute http(s) URL

        Returns:
            Number of chunks stored
        """
        if not is_web_url(url):
            raise InvalidParamsError(
                f"Invalid URL format: {url}. Must be a valid URL including protocol (e.g., https://)"
            )

        chunks = await self.content.fetch_and_process_url(url)
        if not chunks:
            raise ProcessingError(
                f"No content could be extracted from {url}. "
                "The page might be empty, blocked, or require authentication."
            )

        record = DocumentRecord(title=chunks[0].title, url=url)
        await self._store_chunks(chunks, lambda chunk: record)
        logger.info(f"Added documentation from {url} ({len(chunks)} chunks)")
        return len(chunks)

    async def add_local_path(self, path: str) -> int:
        """Ingest a local file, or every text file under a directory.

        Args:
            path: File or directory path

        Returns:
            Number of chunks stored
        """
        if not await asyncio.to_thread(os.path.exists, path):
            raise InvalidParamsError(
                f"Invalid path: {path}. The file or directory does not exist or is not accessible."
            )

        path = os.path.abspath(path)
        is_dir = await asyncio.to_thread(os.path.isdir, path)
        if is_dir:
            chunks = await self.content.process_local_directory(path)
        else:
            chunks = await self.content.process_local_file(path)

        if not chunks:
            raise ProcessingError(
                f"No content could be extracted from {path}. "
                "The file might be empty or in an unsupported format."
            )

        await self._store_chunks(chunks, self._local_record)
        if is_dir:
            await self._store_folder_marker(path)
        logger.info(f"Added documentation from {path} ({len(chunks)} chunks)")
        return len(chunks)

    def _local_record(self, chunk: DocumentChunk) -> DocumentRecord:
        segments = path_segments(chunk.url)
        return DocumentRecord(
            title=chunk.title,
            url=chunk.url,
            path_segments=segments,
            depth=max(len(segments) - 1, 0),
            is_folder=False,
        )

    async def _store_chunks(self, chunks: list[DocumentChunk], record_for) -> None:
        # Embed everything before writing so a failed embedding stores nothing
        points = []
        for chunk in chunks:
            vector = await self.embedder.generate_embeddings(chunk.text)
            payload = {
                **chunk.model_dump(),
                **record_for(chunk).model_dump(),
                "_type": "DocumentChunk",
            }
            points.append(PointData(id=generate_point_id(), vector=vector, payload=payload))
        await self.store.upsert(points)

    async def _store_folder_marker(self, path: str) -> None:
        segments = path_segments(path)
        url = file_url(path)
        marker = DocumentChunk(text="", url=url, title=os.path.basename(path) or path)
        record = DocumentRecord(
            title=marker.title,
            url=url,
            path_segments=segments,
            depth=max(len(segments) - 1, 0),
            is_folder=True,
        )
        vector = await self.embedder.generate_embeddings(path)
        payload = {**marker.model_dump(), **record.model_dump(), "_type": "DocumentChunk"}
        await self.store.upsert([PointData(id=generate_point_id(), vector=vector, payload=payload)])
