"""
Document Loader Port (Interface)

Fetching a URL and extracting its readable text lives outside the core.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class LoadedDocument:
    """
    Raw document as returned by a loader.

    Attributes:
        title: page title (may be empty)
        raw_text: extracted text, not yet cleaned
        last_modified: Last-Modified header value, if the source reported one
    """
    title: str
    raw_text: str
    last_modified: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.raw_text or "").strip()


class DocumentLoader(ABC):
    """
    Document fetch interface.

    Implementations:
        - WebDocumentLoader: requests + BeautifulSoup
        - stub loaders in tests
    """

    @abstractmethod
    async def load(self, url: str) -> LoadedDocument:
        """
        Fetch a document.

        Raises:
            DocumentLoadError: network or extraction failure
            DocumentLoadTimeoutError: fetch timed out
        """
        pass


class DocumentLoadError(Exception):
    """Document could not be fetched or extracted"""
    pass


class DocumentLoadTimeoutError(DocumentLoadError):
    """Document fetch timed out"""
    pass
