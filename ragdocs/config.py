"""Runtime settings read from the environment."""

import os
from typing import Literal, Optional

from pydantic import BaseModel

from .exceptions import ConfigError
from .models import is_web_url
from .queue import PROCESSING_FILE, QUEUE_FILE
from .storage import COLLECTION_NAME


class Settings(BaseModel):
    """Connection and storage settings.

    Environment variables:
        QDRANT_URL: Qdrant server url, including protocol (required)
        QDRANT_API_KEY: Qdrant API key
        EMBEDDING_PROVIDER: ollama (default) or openai
        EMBEDDING_MODEL: embedding model name
        OLLAMA_URL: Ollama server url
        OPENAI_API_KEY: required with the openai provider
        RAGDOCS_COLLECTION: collection name (default: documentation)
        RAGDOCS_QUEUE_FILE: queue file path (default: queue.txt)
    """

    qdrant_url: str
    qdrant_api_key: Optional[str] = None
    embedding_provider: Literal["ollama", "openai"] = "ollama"
    embedding_model: Optional[str] = None
    ollama_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    collection_name: str = COLLECTION_NAME
    queue_file: str = QUEUE_FILE
    processing_file: str = PROCESSING_FILE
    request_timeout: int = 10

    @classmethod
    def from_env(cls) -> "Settings":
        qdrant_url = os.getenv("QDRANT_URL")
        if not qdrant_url:
            raise ConfigError("QDRANT_URL environment variable is required")
        if not is_web_url(qdrant_url):
            raise ConfigError(
                f"Invalid QDRANT_URL format: {qdrant_url}. "
                "Must be a valid URL including protocol (e.g., https://)"
            )

        provider = os.getenv("EMBEDDING_PROVIDER", "ollama")
        if provider not in ("ollama", "openai"):
            raise ConfigError(f"Invalid EMBEDDING_PROVIDER: {provider}. Must be one of: ollama, openai")

        openai_key = os.getenv("OPENAI_API_KEY")
        if provider == "openai" and not openai_key:
            raise ConfigError("OPENAI_API_KEY environment variable is required when using OpenAI embeddings")

        return cls(
            qdrant_url=qdrant_url,
            qdrant_api_key=os.getenv("QDRANT_API_KEY"),
            embedding_provider=provider,
            embedding_model=os.getenv("EMBEDDING_MODEL"),
            ollama_url=os.getenv("OLLAMA_URL"),
            openai_api_key=openai_key,
            collection_name=os.getenv("RAGDOCS_COLLECTION", COLLECTION_NAME),
            queue_file=os.getenv("RAGDOCS_QUEUE_FILE", QUEUE_FILE),
        )
