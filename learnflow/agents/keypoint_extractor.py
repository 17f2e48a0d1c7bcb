"""
Key-Point Extractor Agent

Asks the LLM for importance-ranked concepts and normalizes whatever comes
back into a deduplicated, capped list of KeyPoint.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from learnflow.agents.base import AgentConfig, AgentContext, AgentError, AgentErrorType, BaseAgent
from learnflow.core.structured_output import recover_structured_output
from learnflow.prompts.templates import KEYPOINT_EXTRACTION
from learnflow.schemas.learning import Importance, KeyPoint
from learnflow.utils.logger import get_logger
from learnflow.utils.text import cap_text, truncate_middle

logger = get_logger(__name__)

VALID_LEVELS = ("beginner", "advanced")
DEFAULT_MAX_KEY_POINTS = 8
MAX_INPUT_LENGTH = 4000
HEAD_RATIO = 0.7

CONCEPT_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 300
DESCRIPTION_MIN_LENGTH = 11
CATEGORY_MAX_LENGTH = 50
MAX_EXAMPLES = 5
DEFAULT_DESCRIPTION = "No description available."

_IMPORTANCE_ALIASES = {
    "high": Importance.HIGH,
    "critical": Importance.HIGH,
    "important": Importance.HIGH,
    "medium": Importance.MEDIUM,
    "normal": Importance.MEDIUM,
    "moderate": Importance.MEDIUM,
    "low": Importance.LOW,
    "minor": Importance.LOW,
}


@dataclass
class KeyPointExtractorInput:
    content: str
    user_level: str = "beginner"
    title: str = ""
    max_key_points: int = DEFAULT_MAX_KEY_POINTS


def coerce_importance(value: Any) -> Importance:
    if isinstance(value, Importance):
        return value
    return _IMPORTANCE_ALIASES.get(str(value or "").strip().lower(), Importance.MEDIUM)


def _clean_examples(raw: Any) -> List[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return []
    examples = [cap_text(str(example), 200) for example in raw if isinstance(example, (str, int, float))]
    return [example for example in examples if example][:MAX_EXAMPLES]


def keypoint_from_marked(item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Map a heuristic ``{"title", "lines"}`` item onto key point fields."""
    title = (item.get("title") or "").strip().strip("*").strip()
    if not title:
        return None

    concept, inline = title, ""
    head, sep, rest = title.partition(":")
    if sep and 0 < len(head.strip()) <= 80:
        concept, inline = head.strip(), rest.strip()

    description = " ".join(part for part in [inline, *item.get("lines", [])] if part)
    return {"concept": concept, "description": description}


def normalize_key_points(items: Iterable[Any], max_count: int = DEFAULT_MAX_KEY_POINTS) -> List[KeyPoint]:
    """
    Fill defaults, trim and cap text, coerce importance, drop entries without
    a concept, dedupe by case-insensitive concept and cap the count.

    Idempotent: normalizing an already-normalized list returns it unchanged.
    """
    normalized: List[KeyPoint] = []
    seen = set()

    for item in items:
        if isinstance(item, KeyPoint):
            item = item.model_dump()
        if not isinstance(item, dict):
            continue

        concept = cap_text(str(item.get("concept") or item.get("title") or item.get("name") or ""), CONCEPT_MAX_LENGTH)
        if not concept:
            continue
        description = cap_text(str(item.get("description") or item.get("explanation") or ""), DESCRIPTION_MAX_LENGTH)
        if len(description) < DESCRIPTION_MIN_LENGTH:
            description = DEFAULT_DESCRIPTION

        key = concept.lower()
        if key in seen:
            continue
        seen.add(key)

        category = cap_text(str(item.get("category") or ""), CATEGORY_MAX_LENGTH) or None
        normalized.append(
            KeyPoint(
                concept=concept,
                description=description,
                importance=coerce_importance(item.get("importance")),
                category=category,
                examples=_clean_examples(item.get("examples")),
            )
        )
        if len(normalized) >= max_count:
            break

    return normalized


class KeyPointExtractorAgent(BaseAgent[KeyPointExtractorInput, List[KeyPoint]]):
    """
    Example:
        extractor = KeyPointExtractorAgent(llm_manager=manager)
        result = await extractor.execute(
            KeyPointExtractorInput(content=doc.content, title=doc.title, user_level="beginner")
        )
    """

    template_id = KEYPOINT_EXTRACTION

    def __init__(self, config: Optional[AgentConfig] = None, **kwargs):
        super().__init__(
            config or AgentConfig(
                name="KeyPointExtractor",
                description="Extracts importance-ranked key concepts from a document",
                max_retries=2,
                timeout=30.0,
            ),
            **kwargs,
        )

    def validate_input(self, input: KeyPointExtractorInput) -> bool:
        return (
            isinstance(input, KeyPointExtractorInput)
            and isinstance(input.content, str)
            and bool(input.content.strip())
            and input.user_level in VALID_LEVELS
            and isinstance(input.max_key_points, int)
            and 1 <= input.max_key_points <= 20
        )

    @staticmethod
    def preprocess_content(content: str) -> str:
        return truncate_middle(content.strip(), MAX_INPUT_LENGTH, HEAD_RATIO)

    async def do_execute(self, input: KeyPointExtractorInput, context: AgentContext) -> List[KeyPoint]:
        prompt = self.render_prompt({
            "title": input.title or "Untitled Document",
            "content": self.preprocess_content(input.content),
            "user_level": input.user_level,
            "max_key_points": input.max_key_points,
        })
        response = await self.invoke_llm(prompt)

        recovered = recover_structured_output(response, item_mapper=keypoint_from_marked)
        key_points = normalize_key_points(recovered.items, input.max_key_points)
        if not key_points:
            raise AgentError(
                AgentErrorType.PARSING_ERROR,
                "No valid key points could be extracted from the model response",
                {"strategy": recovered.strategy, "response_length": len(response)},
            )

        logger.info(f"Extracted {len(key_points)} key points (strategy={recovered.strategy})")
        return key_points


def format_key_points(key_points: Iterable[KeyPoint], limit: Optional[int] = None) -> str:
    """Render key points as a numbered prompt block."""
    lines = []
    for index, point in enumerate(key_points, start=1):
        if limit is not None and index > limit:
            break
        lines.append(f"{index}. {point.concept}: {point.description} (importance: {point.importance.value})")
    return "\n".join(lines) if lines else "(none)"
