"""Data models for the documentation queue."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidParamsError


@dataclass(frozen=True)
class UrlItem:
    """Queue entry that points at a web page."""
    value: str


@dataclass(frozen=True)
class PathItem:
    """Queue entry that points at a local file or directory."""
    value: str


QueueEntry = Union[UrlItem, PathItem]


def is_web_url(value: str) -> bool:
    """Return True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def classify(raw: str) -> QueueEntry:
    """Classify a raw queue line as a URL or a local path.

    Args:
        raw: Queue line, surrounding whitespace is ignored

    Returns:
        UrlItem or PathItem carrying the trimmed value
    """
    value = raw.strip()
    if not value:
        raise InvalidParamsError("Queue item cannot be empty")
    if is_web_url(value):
        return UrlItem(value)
    return PathItem(value)


class RunConfig(BaseModel):
    """Parameters for one dispatcher run."""
    max_concurrent: int = Field(default=3, ge=1, le=5, strict=True)
    retry_attempts: int = Field(default=3, ge=0, le=5, strict=True)
    retry_delay_ms: int = Field(default=1000, ge=1000, le=10000, strict=True)
    failure_policy: Literal["drop", "requeue"] = "drop"

    @property
    def max_attempts(self) -> int:
        # Zero retries still means one attempt.
        return max(self.retry_attempts, 1)


class ProcessResult(BaseModel):
    """Terminal outcome of one queue item."""
    item: str
    success: bool
    attempts: int = Field(ge=1)
    error: Optional[str] = None


class ItemError(BaseModel):
    """A failed item as reported by the progress tracker."""
    model_config = ConfigDict(frozen=True)

    item: str
    error: str
    attempts: int


class QueueProgress(BaseModel):
    """Immutable snapshot of a run's progress."""
    model_config = ConfigDict(frozen=True)

    total_items: int
    processing: frozenset[str] = frozenset()
    completed: int = 0
    failed: int = 0
    errors: tuple[ItemError, ...] = ()
    start_time: float
    estimated_time_remaining: Optional[float] = None  # seconds

    @property
    def done(self) -> int:
        return self.completed + self.failed


class RunSummary(BaseModel):
    """Aggregate result of a dispatcher run."""
    completed: int = 0
    failed: int = 0
    errors: list[ItemError] = []
    elapsed_seconds: float = 0.0
    batches: int = 0
    requeued: int = 0


class RemovalReport(BaseModel):
    """Outcome of removing entries from the queue."""
    removed: list[str] = []
    case_mismatches: list[tuple[str, str]] = []  # (requested, suggestion)
    not_found: list[str] = []
    remaining: list[str] = []


class DocumentChunk(BaseModel):
    """A bounded fragment of extracted text with its source."""
    text: str
    url: str
    title: str
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class DocumentRecord(BaseModel):
    """Identity fields stored with every chunk."""
    title: str
    url: str
    path_segments: list[str] = []
    depth: int = 0
    is_folder: bool = False

    @property
    def is_local(self) -> bool:
        return self.url.startswith("file://")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Optional["DocumentRecord"]:
        """Build a record from a stored payload, None if it is not a document."""
        if not payload or payload.get("_type") != "DocumentChunk":
            return None
        if not isinstance(payload.get("url"), str) or not isinstance(payload.get("title"), str):
            return None
        return cls(
            title=payload["title"],
            url=payload["url"],
            path_segments=payload.get("path_segments") or [],
            depth=payload.get("depth") or 0,
            is_folder=bool(payload.get("is_folder", False)),
        )


class StoredPoint(BaseModel):
    """A point returned by a storage scroll."""
    id: str
    payload: dict[str, Any] = {}


class SearchHit(BaseModel):
    """A scored search result."""
    score: float
    text: str
    url: str
    title: str


class EnqueueRequest(BaseModel):
    """Request to add items to the queue."""
    items: list[str]


class RemoveFromQueueRequest(BaseModel):
    paths: list[str]


class RunQueueRequest(BaseModel):
    """Request to drain the queue. Ranges are checked by RunConfig."""
    max_concurrent: int = 3
    retry_attempts: int = 3
    retry_delay: int = 1000  # milliseconds
    failure_policy: str = "drop"


class AddUrlRequest(BaseModel):
    url: str


class AddLocalRequest(BaseModel):
    path: str


class RemoveDocumentationRequest(BaseModel):
    paths: list[str] = []
    urls: list[str] = []


class ExtractUrlsRequest(BaseModel):
    url: str
    add_to_queue: bool = False


class CheckFilesRequest(BaseModel):
    path: str
    add_to_queue: bool = False
