"""Tests for link and file discovery."""

import asyncio

import pytest

from ragdocs.content import ContentProcessor
from ragdocs.discovery import check_files, extract_links, extract_urls, scan_files, section_base_path
from ragdocs.exceptions import InvalidParamsError


PAGE = """
<html><body>
    <a href="/3/library/os.html">os</a>
    <a href="/3/library/sys.html">sys</a>
    <a href="/3/library/os.html">os again</a>
    <a href="/3/library/io.html#section">fragment</a>
    <a href="/3/library/pathlib.html#">bare hash</a>
    <a href="#top">top</a>
    <a href="/3/tutorial/index.html">tutorial</a>
    <a href="https://other.example.com/3/library/x.html">other host</a>
    <a href="mailto:docs@example.com">mail</a>
    <a href="json.html">relative</a>
</body></html>
"""


def test_section_base_path():
    assert section_base_path("https://docs.python.org/3/library/index.html") == "/3/library"
    assert section_base_path("https://example.com/") == "/"


def test_extract_links_stays_in_section():
    links = extract_links(PAGE, "https://docs.python.org/3/library/index.html")

    assert links == [
        "https://docs.python.org/3/library/os.html",
        "https://docs.python.org/3/library/sys.html",
        "https://docs.python.org/3/library/json.html",
    ]


def test_extract_urls_rejects_invalid_url():
    with pytest.raises(InvalidParamsError):
        asyncio.run(extract_urls(ContentProcessor(), "not a url"))


def test_extract_urls_downloads_page(monkeypatch):
    content = ContentProcessor()

    async def fake_download(url):
        return PAGE

    monkeypatch.setattr(content, "download_page", fake_download)

    links = asyncio.run(extract_urls(content, "https://docs.python.org/3/library/index.html"))

    assert len(links) == 3


def test_scan_files(docs_tree):
    files = scan_files(str(docs_tree))

    assert [f.replace(str(docs_tree), "") for f in files] == [
        "/docs/guide.md",
        "/docs/api/index.md",
        "/other/guide.md",
    ]


def test_scan_single_file(docs_tree):
    path = str(docs_tree / "docs" / "guide.md")

    assert asyncio.run(check_files(path)) == [path]


def test_scan_missing_path(docs_tree):
    with pytest.raises(InvalidParamsError):
        scan_files(str(docs_tree / "missing"))


def test_extract_links_skips_bare_hash():
    html = '<a href="/docs/guide/page.html#">page</a><a href="/docs/guide/other.html">other</a>'

    links = extract_links(html, "https://example.com/docs/guide/index.html")

    assert links == ["https://example.com/docs/guide/other.html"]
