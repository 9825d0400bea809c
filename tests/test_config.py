"""Tests for settings and embedding configuration."""

import pytest

from ragdocs.config import Settings
from ragdocs.embeddings import EmbeddingService
from ragdocs.exceptions import ConfigError
from ragdocs.models import PathItem, RunConfig, UrlItem, classify


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "QDRANT_URL",
        "QDRANT_API_KEY",
        "EMBEDDING_PROVIDER",
        "EMBEDDING_MODEL",
        "OLLAMA_URL",
        "OPENAI_API_KEY",
        "RAGDOCS_COLLECTION",
        "RAGDOCS_QUEUE_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_require_qdrant_url(clean_env):
    with pytest.raises(ConfigError, match="QDRANT_URL environment variable is required"):
        Settings.from_env()


def test_settings_reject_url_without_protocol(clean_env):
    clean_env.setenv("QDRANT_URL", "localhost:6333")

    with pytest.raises(ConfigError, match="Invalid QDRANT_URL format"):
        Settings.from_env()


def test_settings_defaults(clean_env):
    clean_env.setenv("QDRANT_URL", "http://localhost:6333")

    settings = Settings.from_env()

    assert settings.embedding_provider == "ollama"
    assert settings.collection_name == "documentation"
    assert settings.queue_file == "queue.txt"


def test_openai_requires_key(clean_env):
    clean_env.setenv("QDRANT_URL", "http://localhost:6333")
    clean_env.setenv("EMBEDDING_PROVIDER", "openai")

    with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
        Settings.from_env()


def test_embedding_vector_sizes():
    assert EmbeddingService("ollama").get_vector_size() == 768
    assert EmbeddingService("openai", api_key="sk-test").get_vector_size() == 1536

    with pytest.raises(ConfigError):
        EmbeddingService("cohere")


def test_run_config_ranges():
    assert RunConfig().max_attempts == 3
    assert RunConfig(retry_attempts=0).max_attempts == 1

    with pytest.raises(ValueError):
        RunConfig(max_concurrent=0)
    with pytest.raises(ValueError):
        RunConfig(retry_delay_ms=500)


def test_classify():
    assert classify("  https://example.com/docs ") == UrlItem("https://example.com/docs")
    assert classify("docs/guide.md") == PathItem("docs/guide.md")
    assert isinstance(classify("ftp://example.com/file"), PathItem)


def test_run_config_rejects_coerced_values():
    with pytest.raises(ValueError):
        RunConfig(max_concurrent=True)
    with pytest.raises(ValueError):
        RunConfig(retry_attempts="3")
    with pytest.raises(ValueError):
        RunConfig(retry_delay_ms=1500.0)
