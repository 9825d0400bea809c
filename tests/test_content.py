"""Tests for content extraction and chunking."""

import asyncio

import pytest

from ragdocs.content import ContentProcessor, chunk_text
from ragdocs.exceptions import ProcessingError


@pytest.fixture
def processor():
    return ContentProcessor(chunk_size=50)


def test_chunk_text_empty():
    assert chunk_text("") == []
    assert chunk_text("   \n\t ") == []


def test_chunk_text_splits_on_words():
    text = " ".join(["word"] * 30)

    chunks = chunk_text(text, max_chunk_size=20)

    assert len(chunks) > 1
    assert " ".join(chunks) == text
    for chunk in chunks:
        assert len(chunk) < 20 + len("word ")


def test_chunk_text_single_chunk():
    assert chunk_text("short text here") == ["short text here"]


def test_extract_text_prefers_main_content(processor):
    html = """
    <html>
    <head><title>Queue Guide</title><style>body { color: red; }</style></head>
    <body>
        <nav>Navigation links</nav>
        <main>
            <h1>Queue</h1>
            <script>var tracking = 1;</script>
            <p>The queue holds pending sources.</p>
        </main>
    </body>
    </html>
    """

    title, text = processor.extract_text(html, "https://example.com/guide")

    assert title == "Queue Guide"
    assert "The queue holds pending sources." in text
    assert "Navigation" not in text
    assert "tracking" not in text


def test_extract_text_falls_back_to_body_and_url_title(processor):
    html = "<html><body><p>Plain body text.</p></body></html>"

    title, text = processor.extract_text(html, "https://example.com/plain")

    assert title == "https://example.com/plain"
    assert text == "Plain body text."


def test_fetch_and_process_url(processor, monkeypatch):
    html = "<html><head><title>Doc</title></head><body><article>" + "alpha beta " * 20 + "</article></body></html>"

    async def fake_download(url):
        return html

    monkeypatch.setattr(processor, "download_page", fake_download)

    chunks = asyncio.run(processor.fetch_and_process_url("https://example.com/doc"))

    assert len(chunks) > 1
    assert all(c.url == "https://example.com/doc" for c in chunks)
    assert all(c.title == "Doc" for c in chunks)


def test_process_local_file(processor, docs_tree):
    path = str(docs_tree / "docs" / "guide.md")

    chunks = asyncio.run(processor.process_local_file(path))

    assert len(chunks) == 1
    assert chunks[0].url == f"file://{path}"
    assert chunks[0].title == "guide.md"
    assert chunks[0].text == "Getting started with the queue worker."


def test_process_missing_file(processor, docs_tree):
    with pytest.raises(ProcessingError):
        asyncio.run(processor.process_local_file(str(docs_tree / "missing.md")))


def test_process_local_directory_filters_extensions(processor, docs_tree):
    (docs_tree / "docs" / "logo.png").write_bytes(b"\x89PNG")

    files = processor.list_text_files(str(docs_tree))
    chunks = asyncio.run(processor.process_local_directory(str(docs_tree)))

    assert [f.replace(str(docs_tree), "") for f in files] == [
        "/docs/guide.md",
        "/docs/api/index.md",
        "/other/guide.md",
    ]
    assert len(chunks) == 3
