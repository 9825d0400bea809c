"""Embedding clients for Ollama and OpenAI."""

import logging
from typing import Optional

import httpx

from .exceptions import ConfigError, ProcessingError

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "ollama": "nomic-embed-text",
    "openai": "text-embedding-3-small",
}

VECTOR_SIZES = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class EmbeddingService:
    """Turns text into vectors through an HTTP embedding endpoint."""

    def __init__(
        self,
        provider: str = "ollama",
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = 30,
    ):
        if provider not in DEFAULT_MODELS:
            raise ConfigError(f"Unknown embedding provider: {provider}. Must be one of: ollama, openai")
        if provider == "openai" and not api_key:
            raise ConfigError("OPENAI_API_KEY environment variable is required when using OpenAI embeddings")

        self.provider = provider
        self.model = model or DEFAULT_MODELS[provider]
        self.api_key = api_key
        self.base_url = base_url or (
            "http://localhost:11434" if provider == "ollama" else "https://api.openai.com/v1"
        )
        self.timeout = timeout

    def get_vector_size(self) -> int:
        if self.model not in VECTOR_SIZES:
            raise ConfigError(f"Unknown vector size for embedding model: {self.model}")
        return VECTOR_SIZES[self.model]

    async def generate_embeddings(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                if self.provider == "ollama":
                    response = await client.post(
                        f"{self.base_url}/api/embeddings",
                        json={"model": self.model, "prompt": text},
                    )
                    response.raise_for_status()
                    return response.json()["embedding"]

                response = await client.post(
                    f"{self.base_url}/embeddings",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={"model": self.model, "input": text},
                )
                response.raise_for_status()
                return response.json()["data"][0]["embedding"]
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            logger.error(f"Failed to generate embeddings with {self.provider}/{self.model}: {e}")
            raise ProcessingError(f"Failed to generate embeddings: {e}") from e
