# learnflow/core/structured_output.py
"""
Structured output recovery

Turns free-form model text into a list (or dict) of raw items. Strategies are
tried in order and the first one that yields the expected shape wins:

1. ``json``: the whole text is a JSON literal
2. ``bracketed``: a fenced block or the first balanced ``[...]`` / ``{...}``
   substring inside the text
3. ``heuristic``: line scanning for numbered / bulleted / heading-like item
   markers, falling back to one item per paragraph

Recovery never raises. Normalization (defaults, caps, enum coercion, dedup)
is owned by each agent; an empty result after normalization is the caller's
PARSING_ERROR.
"""
import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from learnflow.utils.logger import get_logger

logger = get_logger(__name__)


STRATEGY_JSON = "json"
STRATEGY_BRACKETED = "bracketed"
STRATEGY_HEURISTIC = "heuristic"
STRATEGY_NONE = "none"

DEFAULT_LIST_KEYS = (
    "items",
    "key_points",
    "keyPoints",
    "steps",
    "learning_path",
    "learningPath",
    "questions",
    "quiz",
    "data",
    "results",
)

# bounded scan on pathological inputs
MAX_BRACKET_CANDIDATES = 50

_FENCED_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")

_MARKER_PATTERNS = (
    re.compile(r"^\s*#{1,6}\s+(?P<title>\S.*)$"),
    re.compile(r"^\s*(?:step|question|q)\s*\d+\s*[:.)\-]?\s*(?P<title>.*)$", re.IGNORECASE),
    re.compile(r"^\s*(?:\d{1,3}[.)、]|\(\d{1,3}\))\s*(?P<title>\S.*)$"),
    re.compile(r"^\s*[-*•+]\s+(?P<title>\S.*)$"),
)
_BOLD_LEAD_RE = re.compile(r"^\s*\*\*(?P<title>[^*]+?)\*\*\s*[:：\-]?\s*(?P<rest>.*)$")
_LEAD_SPLIT_RE = re.compile(r"\s+(?:is|are|refers to|means|describes)\s+", re.IGNORECASE)

_MISSING = object()

ItemMapper = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]
LineParser = Callable[[str], List[Dict[str, Any]]]


@dataclass
class RecoveryResult:
    items: List[Any] = field(default_factory=list)
    strategy: str = STRATEGY_NONE

    @property
    def is_empty(self) -> bool:
        return not self.items


def _loads(text: str) -> Any:
    try:
        return json.loads(text, strict=False)
    except (ValueError, RecursionError):
        return _MISSING


def _coerce_shape(payload: Any, expected: str, list_keys: Sequence[str]) -> Any:
    """Return payload in the expected shape, unwrapping ``{"questions": [...]}`` style dicts."""
    if payload is _MISSING:
        return None

    if expected == "dict":
        return payload if isinstance(payload, dict) and payload else None

    # a list only counts when it holds records, so "[1]" in prose is skipped
    if isinstance(payload, list):
        return payload if any(isinstance(item, dict) for item in payload) else None
    if isinstance(payload, dict):
        for key in list_keys:
            value = payload.get(key)
            if isinstance(value, list) and any(isinstance(item, dict) for item in value):
                return value
    return None


def _match_bracket(text: str, start: int, opener: str, closer: str) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
    return None


def iter_bracketed(text: str, opener: str = "[", closer: str = "]") -> Iterator[str]:
    """Yield balanced ``opener...closer`` substrings, left to right."""
    produced = 0
    position = text.find(opener)
    while position != -1 and produced < MAX_BRACKET_CANDIDATES:
        end = _match_bracket(text, position, opener, closer)
        if end is not None:
            produced += 1
            yield text[position:end + 1]
        position = text.find(opener, position + 1)


def _parse_bracketed(text: str, expected: str, list_keys: Sequence[str]) -> Any:
    for block in _FENCED_RE.findall(text):
        shaped = _coerce_shape(_loads(block.strip()), expected, list_keys)
        if shaped is not None:
            return shaped

    brackets = [("{", "}")] if expected == "dict" else [("[", "]"), ("{", "}")]
    for opener, closer in brackets:
        for candidate in iter_bracketed(text, opener, closer):
            shaped = _coerce_shape(_loads(candidate), expected, list_keys)
            if shaped is not None:
                return shaped
    return None


def leading_phrase(paragraph: str, max_length: int = 80) -> str:
    """Best-effort concept name for a prose paragraph."""
    text = " ".join(paragraph.split())
    if not text:
        return ""

    head, sep, _ = text.partition(":")
    if sep and 0 < len(head.strip()) <= max_length:
        return head.strip()

    parts = _LEAD_SPLIT_RE.split(text, maxsplit=1)
    if len(parts) == 2 and 0 < len(parts[0]) <= max_length:
        return parts[0].strip(" ,.")

    sentence = re.split(r"(?<=[.!?。])\s", text, maxsplit=1)[0].rstrip(".!?。")
    if len(sentence) <= max_length:
        return sentence.strip()

    return " ".join(text.split()[:8])


def _match_marker(line: str) -> Optional[Dict[str, Any]]:
    bold = _BOLD_LEAD_RE.match(line)
    if bold:
        rest = bold.group("rest").strip()
        return {"title": bold.group("title").strip(), "lines": [rest] if rest else []}

    for pattern in _MARKER_PATTERNS:
        match = pattern.match(line)
        if match:
            title = match.group("title").strip() or line.strip()
            return {"title": title, "lines": []}
    return None


def parse_marked_lines(text: str) -> List[Dict[str, Any]]:
    """
    Line-oriented item scanner.

    A marker line (numbering, bullet, heading, ``Step N``, ``**bold**``)
    opens a new item; following non-marker lines are accumulated into the
    item's ``lines``. Text before the first marker is treated as preamble.
    When no marker is found at all, each paragraph becomes one item.

    Returns:
        List of ``{"title": str, "lines": List[str]}``
    """
    items: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("```"):
            continue

        marker = _match_marker(line)
        if marker is not None and marker["title"]:
            current = marker
            items.append(current)
        elif current is not None:
            current["lines"].append(line)

    if items:
        return items

    paragraphs = [block.strip() for block in re.split(r"\n\s*\n", text) if block.strip()]
    if len(paragraphs) == 1:
        paragraphs = [line.strip() for line in paragraphs[0].splitlines() if line.strip()]

    for paragraph in paragraphs:
        title = leading_phrase(paragraph)
        if title:
            items.append({"title": title, "lines": [" ".join(paragraph.split())]})
    return items


def recover_structured_output(
    text: str,
    *,
    expected: str = "list",
    list_keys: Sequence[str] = DEFAULT_LIST_KEYS,
    line_parser: LineParser = parse_marked_lines,
    item_mapper: Optional[ItemMapper] = None,
) -> RecoveryResult:
    """
    Extract structured items from raw model output.

    Args:
        text: raw response text
        expected: "list" or "dict"
        list_keys: keys under which a wrapping dict may hold the list
        line_parser: last-resort scanner producing ``{"title", "lines"}`` items
        item_mapper: converts a heuristic ``{"title", "lines"}`` item into the
            caller's item dict (returning None drops it). Unused for dicts.

    Returns:
        RecoveryResult: items plus the strategy that produced them. Empty
        items with strategy "none" when nothing could be recovered.
    """
    if not isinstance(text, str) or not text.strip():
        return RecoveryResult()

    try:
        stripped = text.strip()

        shaped = _coerce_shape(_loads(stripped), expected, list_keys)
        if shaped is not None:
            return RecoveryResult(items=_as_items(shaped), strategy=STRATEGY_JSON)

        shaped = _parse_bracketed(stripped, expected, list_keys)
        if shaped is not None:
            logger.debug("Structured output recovered from bracketed substring")
            return RecoveryResult(items=_as_items(shaped), strategy=STRATEGY_BRACKETED)

        if expected == "dict":
            return RecoveryResult()

        marked = line_parser(stripped)
        if item_mapper is not None:
            marked = [mapped for mapped in (item_mapper(item) for item in marked) if mapped]
        if marked:
            logger.debug(f"Structured output recovered heuristically: {len(marked)} items")
            return RecoveryResult(items=marked, strategy=STRATEGY_HEURISTIC)

    except Exception as e:
        logger.warning(f"Structured output recovery failed: {e}")

    return RecoveryResult()


def _as_items(shaped: Any) -> List[Any]:
    return [shaped] if isinstance(shaped, dict) else list(shaped)
