"""
Web Document Loader Implementation

Fetches a page with requests and extracts readable text with BeautifulSoup.
requests is blocking, so the fetch runs in a worker thread.
"""
import asyncio
import logging
from typing import Optional

import requests
from bs4 import BeautifulSoup

from learnflow.ports.document_loader import (
    DocumentLoader,
    LoadedDocument,
    DocumentLoadError,
    DocumentLoadTimeoutError,
)


logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; learnflow/0.1)"}
NON_CONTENT_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form")


def extract_main_text(html: str) -> tuple:
    """Return (title, text) from an HTML page."""
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""

    for tag in soup(NON_CONTENT_TAGS):
        tag.decompose()

    root = soup.find("main") or soup.find("article") or soup.body or soup
    text = root.get_text(separator="\n", strip=True)
    return title, text


class WebDocumentLoader(DocumentLoader):
    """
    Example:
        loader = WebDocumentLoader(timeout=15)
        doc = await loader.load("https://docs.python.org/3/tutorial/")
    """

    def __init__(self, timeout: float = 15.0, headers: Optional[dict] = None):
        self._timeout = timeout
        self._headers = headers or DEFAULT_HEADERS

    def _fetch(self, url: str) -> LoadedDocument:
        try:
            resp = requests.get(url, timeout=self._timeout, headers=self._headers)
            resp.raise_for_status()
        except requests.Timeout as e:
            raise DocumentLoadTimeoutError(f"Timed out fetching {url} after {self._timeout}s") from e
        except requests.RequestException as e:
            raise DocumentLoadError(f"Network error fetching {url}: {e}") from e

        content_type = resp.headers.get("Content-Type", "")
        if "html" in content_type or not content_type:
            title, text = extract_main_text(resp.text)
        else:
            title, text = "", resp.text

        return LoadedDocument(
            title=title,
            raw_text=text,
            last_modified=resp.headers.get("Last-Modified"),
        )

    async def load(self, url: str) -> LoadedDocument:
        logger.info(f"Loading document: {url}")
        document = await asyncio.to_thread(self._fetch, url)
        logger.info(f"Document loaded: title='{document.title[:60]}', length={len(document.raw_text)}")
        return document
