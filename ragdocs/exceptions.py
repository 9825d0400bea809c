"""Error types shared across the queue engine and its collaborators."""


class RagDocsError(Exception):
    """Base class for errors surfaced to command callers."""

    code = "internal_error"


class InvalidParamsError(RagDocsError):
    """Raised when a parameter has the wrong type or is out of range."""

    code = "invalid_params"


class InvalidRequestError(RagDocsError):
    """Raised when a request is well-formed but cannot be served."""

    code = "invalid_request"


class ConfigError(InvalidParamsError):
    """Raised for missing or malformed configuration."""


class QueueStoreError(RagDocsError):
    """Raised when the queue file cannot be read or written."""


class ProcessingError(RagDocsError):
    """Raised when a single queue item cannot be ingested."""


class StorageError(RagDocsError):
    """Raised when the vector store rejects an operation."""


class NoMatchError(InvalidParamsError):
    """Raised when a removal target matches no stored document."""


class AmbiguousMatchError(InvalidParamsError):
    """Raised when a removal target binds to more than one stored identity."""

    def __init__(self, message: str, locations: dict[str, list[str]]):
        super().__init__(message)
        self.locations = locations
