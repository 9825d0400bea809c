"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

import ragdocs.api
from ragdocs.api import app, get_commands


@pytest.fixture
def client(commands):
    """Create a test client backed by in-memory collaborators."""
    app.dependency_overrides[get_commands] = lambda: commands
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["message"] == "RAG Docs Queue API"


def test_enqueue_and_list(client):
    response = client.post("/api/queue", json={"items": ["https://example.com/a", "https://example.com/b"]})
    assert response.status_code == 200
    assert response.json()["data"] == {"added": 2}

    response = client.get("/api/queue")
    assert response.json()["data"]["items"] == ["https://example.com/a", "https://example.com/b"]


def test_clear_queue(client):
    client.post("/api/queue", json={"items": ["a"]})

    response = client.delete("/api/queue")

    assert response.status_code == 200
    assert response.json()["data"] == {"removed": 1}


def test_run_queue_validation_error(client):
    response = client.post("/api/queue/run", json={"max_concurrent": 9})

    assert response.status_code == 400
    assert "max_concurrent" in response.json()["detail"]


def test_run_queue(client, docs_tree):
    client.post("/api/queue", json={"items": [str(docs_tree / "docs" / "guide.md")]})

    response = client.post("/api/queue/run", json={"retry_attempts": 1})

    assert response.status_code == 200
    assert response.json()["data"]["completed"] == 1


def test_remove_documents_requires_targets(client):
    response = client.post("/api/documents/remove", json={})

    assert response.status_code == 400
    assert response.json()["detail"] == "Either urls or paths must be provided as a non-empty array"


def test_sources_and_search(client, docs_tree):
    response = client.post("/api/documents/local", json={"path": str(docs_tree / "docs")})
    assert response.status_code == 200

    response = client.get("/api/sources")
    assert "Local Documentation Sources:" in response.json()["text"]

    response = client.get("/api/search", params={"query": "queue", "limit": 2})
    assert response.status_code == 200
    assert len(response.json()["data"]["results"]) == 2


def test_search_limit_rejected(client):
    response = client.get("/api/search", params={"query": "queue", "limit": 50})

    assert response.status_code == 400


def test_internal_error_maps_to_500(client, vector_store, monkeypatch):
    async def broken(vector_size):
        raise RuntimeError("disk full")

    monkeypatch.setattr(vector_store, "wipe", broken)

    response = client.delete("/api/documents")

    assert response.status_code == 500
    assert response.json()["detail"] == "disk full"


def test_shutdown_closes_context(commands, monkeypatch):
    closed = []

    async def close():
        closed.append(True)

    monkeypatch.setattr(ragdocs.api, "_commands", commands)
    monkeypatch.setattr(commands.context, "close", close)

    with TestClient(app):
        assert closed == []

    assert closed == [True]
