"""Content acquisition: web pages and local files into text chunks."""

import asyncio
import logging
import os
import re
from pathlib import Path

import httpx
from bs4 import BeautifulSoup

from .exceptions import ProcessingError
from .models import DocumentChunk

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1000
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
TEXT_FILE_PATTERN = re.compile(
    r"\.(txt|md|js|ts|py|java|c|cpp|h|hpp|json|yaml|yml|xml|html|css|sql)$", re.IGNORECASE
)


def chunk_text(text: str, max_chunk_size: int = CHUNK_SIZE) -> list[str]:
    """Split text on whitespace into chunks of roughly max_chunk_size chars.

    A chunk is closed as soon as it reaches the size, so chunks may run over
    by at most one word.
    """
    chunks = []
    current: list[str] = []
    length = 0

    for word in text.split():
        current.append(word)
        length += len(word) + (1 if len(current) > 1 else 0)
        if length >= max_chunk_size:
            chunks.append(" ".join(current))
            current = []
            length = 0

    if current:
        chunks.append(" ".join(current))

    return chunks


def file_url(path: str) -> str:
    return f"file://{path}"


class ContentProcessor:
    """Fetches documentation sources and normalizes them into chunks."""

    def __init__(self, timeout: int = 10, chunk_size: int = CHUNK_SIZE):
        self.timeout = timeout
        self.chunk_size = chunk_size

    async def download_page(self, url: str) -> str:
        """Download HTML content from a URL.

        Args:
            url: URL to download

        Returns:
            HTML content as string
        """
        try:
            async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout) as client:
                response = await client.get(url, headers={"User-Agent": USER_AGENT})
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as e:
            logger.error(f"Failed to download {url}: {e}")
            raise ProcessingError(f"Failed to fetch URL {url}: {e}") from e

    def extract_text(self, html: str, url: str) -> tuple[str, str]:
        """Extract the page title and main text from HTML.

        Args:
            html: HTML content
            url: Page URL, used as the title when the page has none

        Returns:
            (title, text) tuple
        """
        soup = BeautifulSoup(html, "lxml")

        for element in soup(["script", "style", "noscript"]):
            element.decompose()

        title_tag = soup.find("title")
        title = title_tag.get_text(strip=True) if title_tag else ""

        # Prefer the documentation body over page chrome
        main_content = (
            soup.find("main")
            or soup.find("article")
            or soup.find(class_="content")
            or soup.find(class_="documentation")
            or soup.find("body")
        )
        text = main_content.get_text(" ", strip=True) if main_content else ""

        return title or url, text

    async def fetch_and_process_url(self, url: str) -> list[DocumentChunk]:
        """Fetch a page and split its main text into chunks."""
        logger.info(f"Processing: {url}")

        html = await self.download_page(url)
        title, text = self.extract_text(html, url)

        return [
            DocumentChunk(text=chunk, url=url, title=title)
            for chunk in chunk_text(text, self.chunk_size)
        ]

    async def process_local_file(self, file_path: str) -> list[DocumentChunk]:
        """Read a local text file and split it into chunks."""
        try:
            content = await asyncio.to_thread(Path(file_path).read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ProcessingError(f"Failed to process file {file_path}: {e}") from e

        title = os.path.basename(file_path)
        return [
            DocumentChunk(text=chunk, url=file_url(file_path), title=title)
            for chunk in chunk_text(content, self.chunk_size)
        ]

    async def process_local_directory(self, dir_path: str) -> list[DocumentChunk]:
        """Recursively chunk every supported text file under a directory."""
        try:
            files = await asyncio.to_thread(self.list_text_files, dir_path)
        except OSError as e:
            raise ProcessingError(f"Failed to process directory {dir_path}: {e}") from e

        all_chunks = []
        for path in files:
            all_chunks.extend(await self.process_local_file(path))
        return all_chunks

    def list_text_files(self, dir_path: str) -> list[str]:
        """Supported text files under a directory, in a stable order."""
        files = []
        for root, dirs, names in os.walk(dir_path):
            dirs.sort()
            for name in sorted(names):
                if TEXT_FILE_PATTERN.search(name):
                    files.append(os.path.join(root, name))
        return files
