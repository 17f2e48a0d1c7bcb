"""
Document Parser Agent

Loads a URL through the DocumentLoader port and turns it into a cleaned,
length-capped DocumentContent.
"""
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

from learnflow.agents.base import AgentConfig, AgentContext, AgentError, AgentErrorType, BaseAgent
from learnflow.ports.document_loader import DocumentLoader, LoadedDocument
from learnflow.schemas.learning import DocumentContent, DocumentMetadata
from learnflow.utils.logger import get_logger
from learnflow.utils.text import normalize_whitespace, strip_residue, truncate_text

logger = get_logger(__name__)

DEFAULT_MAX_CONTENT_LENGTH = 10000
UNTITLED = "Untitled Document"

SUPPORTED_URL_PATTERNS = (
    r"^https?://(www\.)?github\.com/.+",
    r"^https?://docs\..+",
    r"^https?://.+\.readthedocs\.io/.*",
    r"^https?://developer\.mozilla\.org/.+",
    r"^https?://(www\.)?python\.org/.*",
    r"^https?://.+/(docs?|documentation|guide|tutorial|reference|api)(/.*)?$",
    r"^https?://.+\.(md|html?|txt)$",
)

_TITLE_RE = re.compile(r"^(.{1,100}?)(?:\n|\.|:|$)")
_CJK_RE = re.compile(r"[\u4e00-\u9fff\u3400-\u4dbf]")
_LATIN_RE = re.compile(r"[A-Za-z]")


@dataclass
class DocumentParserInput:
    url: str
    include_metadata: bool = False
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH


def is_valid_url(url: str) -> bool:
    if not isinstance(url, str) or not url.strip():
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def detect_language(text: str) -> str:
    """Character-class ratio heuristic: 'zh', 'en' or 'unknown'."""
    significant = [char for char in text if not char.isspace()]
    if not significant:
        return "unknown"
    total = len(significant)
    cjk_ratio = len(_CJK_RE.findall(text)) / total
    latin_ratio = len(_LATIN_RE.findall(text)) / total
    if cjk_ratio > 0.3:
        return "zh"
    if latin_ratio > 0.5:
        return "en"
    return "unknown"


class DocumentParserAgent(BaseAgent[DocumentParserInput, DocumentContent]):
    """
    Example:
        parser = DocumentParserAgent(loader=WebDocumentLoader())
        result = await parser.execute(DocumentParserInput(url="https://docs.python.org/3/"))
    """

    def __init__(self, loader: DocumentLoader, config: Optional[AgentConfig] = None, **kwargs):
        super().__init__(
            config or AgentConfig(
                name="DocumentParser",
                description="Fetches a document and extracts its title and text",
                max_retries=3,
                timeout=15.0,
            ),
            **kwargs,
        )
        self.loader = loader

    def validate_input(self, input: DocumentParserInput) -> bool:
        return (
            isinstance(input, DocumentParserInput)
            and is_valid_url(input.url)
            and isinstance(input.max_content_length, int)
            and input.max_content_length > 0
        )

    async def do_execute(self, input: DocumentParserInput, context: AgentContext) -> DocumentContent:
        url = input.url.strip()
        document = await self.loader.load(url)
        if document is None or document.is_empty():
            raise AgentError(AgentErrorType.PARSING_ERROR, f"No readable content at {url}")

        content = normalize_whitespace(strip_residue(document.raw_text))
        if not content:
            raise AgentError(AgentErrorType.PARSING_ERROR, f"No readable content at {url}")

        content = truncate_text(content, input.max_content_length)
        title = self.resolve_title(document.title, content)
        metadata = self.build_metadata(content, document) if input.include_metadata else None

        logger.info(f"Parsed document '{title}' ({len(content)} chars) from {url}")
        return DocumentContent(title=title, content=content, source_url=url, metadata=metadata)

    @staticmethod
    def resolve_title(raw_title: Optional[str], content: str) -> str:
        title = " ".join(strip_residue(raw_title or "").split())
        if title:
            return truncate_text(title, 100)

        match = _TITLE_RE.match(content.strip())
        if match and match.group(1).strip():
            return match.group(1).strip()
        return UNTITLED

    @staticmethod
    def build_metadata(content: str, document: LoadedDocument) -> DocumentMetadata:
        return DocumentMetadata(
            word_count=len(content.split()),
            language=detect_language(content),
            last_modified=document.last_modified,
        )

    @staticmethod
    def supported_url_patterns() -> List[str]:
        return list(SUPPORTED_URL_PATTERNS)

    @staticmethod
    def is_supported_document_url(url: str) -> bool:
        """True for URLs that look like technical documentation."""
        if not is_valid_url(url):
            return False
        return any(re.match(pattern, url.strip(), re.IGNORECASE) for pattern in SUPPORTED_URL_PATTERNS)
