"""Vector store adapters for stored documentation chunks."""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from qdrant_client import AsyncQdrantClient
from qdrant_client import models as qmodels

from .exceptions import StorageError
from .models import StoredPoint

logger = logging.getLogger(__name__)

COLLECTION_NAME = "documentation"
SCROLL_LIMIT = 100


@dataclass
class DocumentFilter:
    """Storage-agnostic predicate over stored points.

    A point matches when it satisfies any of the populated conditions:
    its id is in ``ids``, its url is in ``urls``, or (with ``local_only``)
    its url is a ``file://`` url. An empty filter matches every point.
    """
    ids: list[str] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)
    local_only: bool = False

    def is_empty(self) -> bool:
        return not (self.ids or self.urls or self.local_only)

    def matches(self, point_id: str, payload: dict[str, Any]) -> bool:
        if self.is_empty():
            return True
        url = payload.get("url") or ""
        if point_id in self.ids:
            return True
        if url in self.urls:
            return True
        return self.local_only and url.startswith("file://")


@dataclass
class ScrollPage:
    points: list[StoredPoint]
    next_offset: Optional[Any] = None


@dataclass
class PointData:
    """A point to upsert."""
    id: str
    vector: list[float]
    payload: dict[str, Any]


@dataclass
class ScoredPayload:
    score: float
    payload: dict[str, Any]


class VectorStore(ABC):
    """Abstract base class for the collection holding documentation chunks."""

    collection_name: str

    @abstractmethod
    async def ensure_collection(self, vector_size: int) -> None:
        """Create the collection, recreating it if the vector size changed."""

    @abstractmethod
    async def upsert(self, points: list[PointData]) -> None:
        """Insert or replace points."""

    @abstractmethod
    async def scroll(
        self,
        doc_filter: Optional[DocumentFilter] = None,
        limit: int = SCROLL_LIMIT,
        offset: Optional[Any] = None,
    ) -> ScrollPage:
        """Return one page of points and the offset of the next page."""

    @abstractmethod
    async def delete(self, doc_filter: DocumentFilter) -> None:
        """Delete every point matching the filter."""

    @abstractmethod
    async def search(self, vector: list[float], limit: int) -> list[ScoredPayload]:
        """Return the closest points to a query vector."""

    @abstractmethod
    async def wipe(self, vector_size: int) -> bool:
        """Drop and recreate the collection. Returns False if it did not exist."""

    async def iter_points(
        self, doc_filter: Optional[DocumentFilter] = None, page_size: int = SCROLL_LIMIT
    ) -> AsyncIterator[StoredPoint]:
        """Iterate every matching point, following scroll offsets."""
        offset = None
        while True:
            page = await self.scroll(doc_filter, limit=page_size, offset=offset)
            for point in page.points:
                yield point
            if page.next_offset is None:
                break
            offset = page.next_offset

    async def list_points(self, doc_filter: Optional[DocumentFilter] = None) -> list[StoredPoint]:
        return [point async for point in self.iter_points(doc_filter)]


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryVectorStore(VectorStore):
    """Dictionary-backed store for tests and dry runs."""

    def __init__(self, collection_name: str = COLLECTION_NAME):
        self.collection_name = collection_name
        self.vector_size: Optional[int] = None
        self.points: dict[str, PointData] = {}

    async def ensure_collection(self, vector_size: int) -> None:
        if self.vector_size != vector_size:
            self.points.clear()
        self.vector_size = vector_size

    async def upsert(self, points: list[PointData]) -> None:
        for point in points:
            self.points[point.id] = point

    async def scroll(
        self,
        doc_filter: Optional[DocumentFilter] = None,
        limit: int = SCROLL_LIMIT,
        offset: Optional[Any] = None,
    ) -> ScrollPage:
        doc_filter = doc_filter or DocumentFilter()
        matching = [
            StoredPoint(id=p.id, payload=dict(p.payload))
            for p in self.points.values()
            if doc_filter.matches(p.id, p.payload)
        ]
        start = offset or 0
        page = matching[start:start + limit]
        next_offset = start + limit if start + limit < len(matching) else None
        return ScrollPage(points=page, next_offset=next_offset)

    async def delete(self, doc_filter: DocumentFilter) -> None:
        doomed = [pid for pid, p in self.points.items() if doc_filter.matches(pid, p.payload)]
        for pid in doomed:
            del self.points[pid]

    async def search(self, vector: list[float], limit: int) -> list[ScoredPayload]:
        scored = [ScoredPayload(_cosine(vector, p.vector), dict(p.payload)) for p in self.points.values()]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[:limit]

    async def wipe(self, vector_size: int) -> bool:
        existed = self.vector_size is not None
        self.points.clear()
        self.vector_size = vector_size
        return existed


class QdrantVectorStore(VectorStore):
    """Qdrant-backed store. The only place that speaks Qdrant's filter DSL."""

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        collection_name: str = COLLECTION_NAME,
        timeout: int = 10,
        client: Optional[AsyncQdrantClient] = None,
    ):
        self.collection_name = collection_name
        self.client = client or AsyncQdrantClient(url=url, api_key=api_key, timeout=timeout)

    async def test_connection(self) -> None:
        try:
            response = await self.client.get_collections()
        except Exception as e:
            raise StorageError(f"Failed to establish connection to Qdrant server: {e}") from e
        logger.info(f"Connected to Qdrant: {[c.name for c in response.collections]}")

    async def close(self) -> None:
        await self.client.close()

    def _to_qdrant_filter(self, doc_filter: Optional[DocumentFilter]) -> Optional[qmodels.Filter]:
        if doc_filter is None or doc_filter.is_empty():
            return None
        should: list[Any] = [
            qmodels.FieldCondition(key="url", match=qmodels.MatchValue(value=url))
            for url in doc_filter.urls
        ]
        if doc_filter.ids:
            should.append(qmodels.HasIdCondition(has_id=list(doc_filter.ids)))
        if doc_filter.local_only:
            # Without a full-text index MatchText is a substring match.
            should.append(qmodels.FieldCondition(key="url", match=qmodels.MatchText(text="file://")))
        return qmodels.Filter(should=should)

    async def _create(self, vector_size: int) -> None:
        await self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=qmodels.VectorParams(size=vector_size, distance=qmodels.Distance.COSINE),
            optimizers_config=qmodels.OptimizersConfigDiff(
                default_segment_number=2,
                memmap_threshold=20000,
            ),
        )

    async def _exists(self) -> bool:
        response = await self.client.get_collections()
        return any(c.name == self.collection_name for c in response.collections)

    async def ensure_collection(self, vector_size: int) -> None:
        try:
            if not await self._exists():
                logger.info(f"Creating collection '{self.collection_name}' with vector size {vector_size}")
                await self._create(vector_size)
                return

            info = await self.client.get_collection(self.collection_name)
            vectors = info.config.params.vectors
            current_size = getattr(vectors, "size", None)
            if current_size != vector_size:
                logger.warning(
                    f"Vector size mismatch: collection={current_size}, required={vector_size}; recreating"
                )
                await self.client.delete_collection(self.collection_name)
                await self._create(vector_size)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to initialize Qdrant collection: {e}") from e

    async def upsert(self, points: list[PointData]) -> None:
        try:
            await self.client.upsert(
                collection_name=self.collection_name,
                wait=True,
                points=[
                    qmodels.PointStruct(id=p.id, vector=p.vector, payload=p.payload)
                    for p in points
                ],
            )
        except Exception as e:
            raise StorageError(f"Failed to upsert {len(points)} point(s): {e}") from e

    async def scroll(
        self,
        doc_filter: Optional[DocumentFilter] = None,
        limit: int = SCROLL_LIMIT,
        offset: Optional[Any] = None,
    ) -> ScrollPage:
        try:
            records, next_offset = await self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=self._to_qdrant_filter(doc_filter),
                limit=limit,
                offset=offset,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            raise StorageError(f"Failed to scroll '{self.collection_name}': {e}") from e
        points = [StoredPoint(id=str(r.id), payload=r.payload or {}) for r in records]
        return ScrollPage(points=points, next_offset=next_offset)

    async def delete(self, doc_filter: DocumentFilter) -> None:
        qfilter = self._to_qdrant_filter(doc_filter)
        if qfilter is None:
            raise StorageError("Refusing to delete with an empty filter")
        try:
            result = await self.client.delete(
                collection_name=self.collection_name,
                points_selector=qmodels.FilterSelector(filter=qfilter),
                wait=True,
            )
        except Exception as e:
            raise StorageError(f"Delete operation failed: {e}") from e
        if result.status not in (qmodels.UpdateStatus.ACKNOWLEDGED, qmodels.UpdateStatus.COMPLETED):
            raise StorageError(f"Delete operation failed with status {result.status}")

    async def search(self, vector: list[float], limit: int) -> list[ScoredPayload]:
        try:
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                limit=limit,
                with_payload=True,
            )
        except Exception as e:
            raise StorageError(f"Search failed: {e}") from e
        return [ScoredPayload(hit.score, hit.payload or {}) for hit in response.points]

    async def wipe(self, vector_size: int) -> bool:
        try:
            if not await self._exists():
                return False
            await self.client.delete_collection(self.collection_name)
            await self._create(vector_size)
        except Exception as e:
            raise StorageError(f"Failed to wipe collection: {e}") from e
        return True
