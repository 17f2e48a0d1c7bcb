import json

from learnflow.agents.base import AgentErrorType
from learnflow.agents.keypoint_extractor import (
    DEFAULT_DESCRIPTION,
    KeyPointExtractorAgent,
    KeyPointExtractorInput,
    coerce_importance,
    format_key_points,
    normalize_key_points,
)
from learnflow.schemas.learning import Importance, KeyPoint
from learnflow.services.llm_manager import LLMManager
from learnflow.utils.text import ELISION_MARKER


def _extractor(llm):
    manager = LLMManager()
    manager.register("stub", llm, default=True)
    agent = KeyPointExtractorAgent(llm_manager=manager)
    agent.config.retry_base_delay = 0.0
    return agent


async def test_json_reply_is_normalized(make_llm):
    reply = json.dumps([
        {"concept": "  Coroutines ", "description": "Functions declared with async def.", "importance": "critical"},
        {"concept": "coroutines", "description": "Duplicate entry with different case.", "importance": "low"},
        {"concept": "", "description": "No concept, dropped entirely."},
        {"concept": "Tasks", "description": "short", "importance": "whatever"},
    ])
    agent = _extractor(make_llm([reply]))

    result = await agent.execute(KeyPointExtractorInput(content="asyncio docs", title="Asyncio"))

    assert result.success is True
    assert [point.concept for point in result.data] == ["Coroutines", "Tasks"]
    assert result.data[0].importance == Importance.HIGH
    assert result.data[1].description == DEFAULT_DESCRIPTION
    assert result.data[1].importance == Importance.MEDIUM


async def test_prose_reply_is_recovered_heuristically(make_llm):
    reply = (
        "Coroutines are functions declared with async def that can be suspended.\n\n"
        "The event loop: schedules callbacks and performs network IO for every task."
    )
    agent = _extractor(make_llm([reply]))

    result = await agent.execute(KeyPointExtractorInput(content="asyncio docs"))

    assert result.success is True
    concepts = [point.concept for point in result.data]
    assert concepts == ["Coroutines", "The event loop"]


async def test_unusable_reply_fails_with_parsing_error(make_llm):
    agent = _extractor(make_llm(["   "]))

    result = await agent.execute(KeyPointExtractorInput(content="asyncio docs"))

    assert result.success is False
    assert result.error_type == AgentErrorType.PARSING_ERROR
    assert result.metadata["attempts"] == 2


async def test_max_key_points_caps_output(make_llm):
    reply = json.dumps([
        {"concept": f"Concept {index}", "description": f"Description number {index} of the list."}
        for index in range(12)
    ])
    agent = _extractor(make_llm([reply]))

    result = await agent.execute(KeyPointExtractorInput(content="docs", max_key_points=4))

    assert len(result.data) == 4


async def test_long_content_is_elided_in_the_prompt(make_llm):
    llm = make_llm(['[{"concept": "A", "description": "A long enough description."}]'])
    agent = _extractor(llm)
    content = "H" * 3000 + "M" * 3000 + "T" * 3000

    await agent.execute(KeyPointExtractorInput(content=content))

    assert ELISION_MARKER in llm.prompts[0]
    assert "H" * 2800 in llm.prompts[0]
    assert "T" * 1150 in llm.prompts[0]
    assert "M" * 10 not in llm.prompts[0]


async def test_intermediate_level_is_rejected(make_llm):
    agent = _extractor(make_llm(["[]"]))

    result = await agent.execute(KeyPointExtractorInput(content="docs", user_level="intermediate"))

    assert result.error_type == AgentErrorType.INVALID_INPUT


def test_normalization_is_idempotent():
    raw = [
        {"concept": "Event loop " * 20, "description": "x" * 400, "importance": "HIGH", "examples": ["a", "b"]},
        {"concept": "Futures", "description": "Low-level awaitable objects.", "category": "api"},
    ]

    once = normalize_key_points(raw)
    twice = normalize_key_points(once)

    assert once == twice
    assert len(once[0].concept) <= 100
    assert len(once[0].description) == 300


def test_coerce_importance_aliases():
    assert coerce_importance("Critical") == Importance.HIGH
    assert coerce_importance("minor") == Importance.LOW
    assert coerce_importance(None) == Importance.MEDIUM


def test_format_key_points():
    points = [KeyPoint(concept="Tasks", description="Schedule coroutines.", importance=Importance.HIGH)]

    assert format_key_points(points) == "1. Tasks: Schedule coroutines. (importance: high)"
    assert format_key_points([]) == "(none)"
