"""Discovery of documentation sources to enqueue."""

import asyncio
import logging
import os
from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup

from .content import ContentProcessor
from .exceptions import InvalidParamsError
from .models import is_web_url

logger = logging.getLogger(__name__)


def section_base_path(url: str) -> str:
    """First two path segments of a URL, e.g. ``/3/library`` for Python docs."""
    return "/".join(urlparse(url).path.split("/")[:3])


def extract_links(html: str, page_url: str) -> list[str]:
    """Collect links that stay within the page's documentation section.

    Args:
        html: HTML content
        page_url: URL of the page, used to resolve relative links

    Returns:
        Absolute URLs without fragments, in document order, deduplicated
    """
    base = urlparse(page_url)
    base_path = section_base_path(page_url)
    soup = BeautifulSoup(html, "lxml")

    urls: list[str] = []
    seen = set()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith("#") or href.endswith("#"):
            continue
        try:
            absolute = urljoin(page_url, href)
        except ValueError:
            continue
        absolute, fragment = urldefrag(absolute)
        parsed = urlparse(absolute)
        if fragment or parsed.scheme not in ("http", "https"):
            continue
        if parsed.hostname != base.hostname or not parsed.path.startswith(base_path):
            continue
        if absolute not in seen:
            seen.add(absolute)
            urls.append(absolute)

    return urls


async def extract_urls(content: ContentProcessor, url: str) -> list[str]:
    """Fetch a page and return the documentation links found on it."""
    if not is_web_url(url):
        raise InvalidParamsError(
            f"Invalid URL format: {url}. Must be a valid URL including protocol (e.g., https://)"
        )
    html = await content.download_page(url)
    links = extract_links(html, url)
    logger.info(f"Found {len(links)} URL(s) on {url}")
    return links


def scan_files(path: str) -> list[str]:
    """List a file, or every file under a directory recursively."""
    if not os.path.exists(path):
        raise InvalidParamsError(f"Path does not exist or is not accessible: {path}")
    if not os.path.isdir(path):
        return [path]

    files = []
    for root, dirs, names in os.walk(path):
        dirs.sort()
        for name in sorted(names):
            files.append(os.path.join(root, name))
    return files


async def check_files(path: str) -> list[str]:
    return await asyncio.to_thread(scan_files, path)
