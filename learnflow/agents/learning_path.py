"""
Learning-Path Planner Agent

Turns key points into a 3-8 step learning path. Time estimates are parsed
into minutes and scaled by user level; short paths are padded with generic
steps and every step is numbered.
"""
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from learnflow.agents.base import AgentConfig, AgentContext, AgentError, AgentErrorType, BaseAgent
from learnflow.agents.keypoint_extractor import format_key_points
from learnflow.core.structured_output import recover_structured_output
from learnflow.prompts.templates import LEARNING_PATH
from learnflow.schemas.learning import KeyPoint, LearningStep
from learnflow.utils.logger import get_logger
from learnflow.utils.text import cap_text

logger = get_logger(__name__)

VALID_LEVELS = ("beginner", "advanced")
MIN_STEPS = 3
MAX_STEPS = 8
STEP_TITLE_MAX_LENGTH = 95  # leaves room for the "N. " prefix
DESCRIPTION_MAX_LENGTH = 500
DESCRIPTION_MIN_LENGTH = 11

DEFAULT_MINUTES = {"beginner": 45, "advanced": 30}

DEFAULT_STEPS: Dict[str, List[Dict[str, str]]] = {
    "beginner": [
        {
            "step": "Review the core concepts",
            "time": "45 minutes",
            "description": "Read through the key concepts of the document and write down unfamiliar terms.",
        },
        {
            "step": "Work through the examples",
            "time": "60 minutes",
            "description": "Reproduce the examples from the document step by step and observe the results.",
        },
        {
            "step": "Build a small practice project",
            "time": "90 minutes",
            "description": "Combine the concepts in a small project of your own to consolidate what you learned.",
        },
    ],
    "advanced": [
        {
            "step": "Survey the advanced features",
            "time": "30 minutes",
            "description": "Skim the document for advanced features, trade-offs and configuration options.",
        },
        {
            "step": "Apply the concepts in a real project",
            "time": "60 minutes",
            "description": "Integrate the most relevant features into an existing codebase and measure the effect.",
        },
        {
            "step": "Review best practices and edge cases",
            "time": "30 minutes",
            "description": "Study failure modes, performance considerations and recommended patterns.",
        },
    ],
}

_NUMBER_UNIT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-zA-Z\u4e00-\u9fff]*)")
_STEP_PREFIX_RE = re.compile(r"^\s*(?:step\s*)?\d{1,2}\s*[.)、:\-]\s*", re.IGNORECASE)
_TIME_LINE_RE = re.compile(
    r"^(?:estimated\s+)?(?:time|duration|time\s+estimate|预计时间|时间)\s*[:：]\s*(?P<value>.+)$",
    re.IGNORECASE,
)
_CODE_LINE_RE = re.compile(r"^code\s*[:：]\s*(?P<value>.+)$", re.IGNORECASE)


@dataclass
class LearningPathInput:
    key_points: List[KeyPoint]
    user_level: str = "beginner"
    time_constraint: Optional[str] = None
    focus_areas: List[str] = field(default_factory=list)


def parse_minutes(value: Any) -> Optional[float]:
    """
    Read a duration in minutes from free text.

    "1.5 hours" -> 90, "1 hour 30 minutes" -> 90, "1-2 hours" -> 120,
    "45" -> 45, "soon" -> None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None

    total = 0.0
    has_unit = False
    first_bare: Optional[float] = None
    for number, unit in _NUMBER_UNIT_RE.findall(value):
        amount = float(number)
        unit = unit.lower()
        if unit.startswith(("hour", "hr", "h")) or unit.startswith("小时"):
            total += amount * 60
            has_unit = True
        elif unit.startswith(("min", "m")) or unit.startswith("分"):
            total += amount
            has_unit = True
        elif not unit and first_bare is None:
            first_bare = amount

    if has_unit:
        return total
    return first_bare


def normalize_time_estimate(value: Any, user_level: str) -> str:
    """Convert to minutes and scale by level (beginner +20% with a 30 min floor, advanced -20% with a 15 min floor)."""
    minutes = parse_minutes(value)
    if minutes is None or minutes <= 0:
        return f"{DEFAULT_MINUTES.get(user_level, 45)} minutes"
    if user_level == "advanced":
        scaled = max(15, math.ceil(minutes * 0.8))
    else:
        scaled = max(30, math.ceil(minutes * 1.2))
    return f"{scaled} minutes"


def _string_list(raw: Any) -> List[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return []
    values = [cap_text(str(entry), 200) for entry in raw if isinstance(entry, (str, int, float))]
    return [entry for entry in values if entry]


def step_from_marked(item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Map a heuristic ``{"title", "lines"}`` item onto learning step fields."""
    title = (item.get("title") or "").strip().strip("*").strip()
    if not title:
        return None

    time_value = None
    code = None
    description: List[str] = []
    for line in item.get("lines", []):
        time_match = _TIME_LINE_RE.match(line.lstrip("-* ").strip())
        code_match = _CODE_LINE_RE.match(line.strip())
        if time_match and time_value is None:
            time_value = time_match.group("value")
        elif code_match and code is None:
            code = code_match.group("value")
        else:
            description.append(line)
    return {"step": title, "time": time_value, "description": " ".join(description), "code": code}


def normalize_learning_path(items: Iterable[Any], user_level: str = "beginner") -> List[LearningStep]:
    """
    Validate generated steps, normalize their times, cap at MAX_STEPS, pad to
    MIN_STEPS with level defaults and number them. Returns [] when no
    generated step is usable.

    Idempotent: LearningStep inputs keep their time, so normalizing an
    already-normalized path returns it unchanged.
    """
    level = user_level if user_level in VALID_LEVELS else "beginner"
    drafts: List[Dict[str, Any]] = []
    seen = set()

    for item in items:
        # a LearningStep already carries a level-scaled time
        already_scaled = isinstance(item, LearningStep)
        if already_scaled:
            item = item.model_dump()
        if not isinstance(item, dict):
            continue

        title = cap_text(_STEP_PREFIX_RE.sub("", str(item.get("step") or item.get("title") or "")), STEP_TITLE_MAX_LENGTH)
        if not title or title.lower() in seen:
            continue
        description = cap_text(str(item.get("description") or ""), DESCRIPTION_MAX_LENGTH)
        if len(description) < DESCRIPTION_MIN_LENGTH:
            description = f"Study and practice: {title}"
        seen.add(title.lower())

        raw_time = item.get("time") or item.get("duration") or item.get("estimated_time")
        code = item.get("code")
        drafts.append({
            "step": title,
            "time": item["time"] if already_scaled else normalize_time_estimate(raw_time, level),
            "description": description,
            "code": str(code).strip() if code and str(code).strip() else None,
            "prerequisites": _string_list(item.get("prerequisites")),
            "resources": _string_list(item.get("resources")),
        })

    if not drafts:
        return []

    drafts = drafts[:MAX_STEPS]
    for default in DEFAULT_STEPS[level]:
        if len(drafts) >= MIN_STEPS:
            break
        if default["step"].lower() not in seen:
            drafts.append(dict(default))

    return [
        LearningStep(**{**draft, "step": f"{index}. {draft['step']}"})
        for index, draft in enumerate(drafts, start=1)
    ]


class LearningPathPlannerAgent(BaseAgent[LearningPathInput, List[LearningStep]]):
    """
    Example:
        planner = LearningPathPlannerAgent(llm_manager=manager)
        result = await planner.execute(LearningPathInput(key_points=points, user_level="advanced"))
    """

    template_id = LEARNING_PATH

    def __init__(self, config: Optional[AgentConfig] = None, **kwargs):
        super().__init__(
            config or AgentConfig(
                name="LearningPathPlanner",
                description="Plans a staged learning path from key points",
                max_retries=2,
                timeout=30.0,
            ),
            **kwargs,
        )

    def validate_input(self, input: LearningPathInput) -> bool:
        return (
            isinstance(input, LearningPathInput)
            and isinstance(input.key_points, list)
            and len(input.key_points) > 0
            and all(isinstance(point, KeyPoint) for point in input.key_points)
            and input.user_level in VALID_LEVELS
        )

    async def do_execute(self, input: LearningPathInput, context: AgentContext) -> List[LearningStep]:
        prompt = self.render_prompt({
            "key_points": format_key_points(input.key_points),
            "user_level": input.user_level,
            "time_constraint": input.time_constraint or "no constraint",
            "focus_areas": ", ".join(input.focus_areas) if input.focus_areas else "all topics",
        })
        response = await self.invoke_llm(prompt)

        recovered = recover_structured_output(response, item_mapper=step_from_marked)
        steps = normalize_learning_path(recovered.items, input.user_level)
        if not steps:
            raise AgentError(
                AgentErrorType.PARSING_ERROR,
                "No valid learning steps could be extracted from the model response",
                {"strategy": recovered.strategy},
            )

        logger.info(
            f"Learning path planned: {len(steps)} steps, "
            f"{self.estimate_total_time(steps)} minutes (strategy={recovered.strategy})"
        )
        return steps

    @staticmethod
    def estimate_total_time(steps: Iterable[LearningStep]) -> int:
        """Total minutes across the path."""
        return int(sum(parse_minutes(step.time) or 0 for step in steps))
