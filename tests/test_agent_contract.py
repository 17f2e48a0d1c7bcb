import asyncio

import pytest

from learnflow.agents.base import (
    AgentConfig,
    AgentError,
    AgentErrorType,
    AgentResult,
    AgentStatus,
    BaseAgent,
    classify_error,
)
from learnflow.agents.events import AgentEventBus, AgentEventType
from learnflow.agents.keypoint_extractor import KeyPointExtractorAgent, KeyPointExtractorInput
from learnflow.ports.document_loader import DocumentLoadError
from learnflow.ports.llm_gateway import LLMAPIError, LLMTimeoutError
from learnflow.schemas.learning import KeyPoint


class ScriptedAgent(BaseAgent[str, str]):
    def __init__(self, behaviour, max_retries=3, timeout=1.0, retry_base_delay=0.0, events=None):
        super().__init__(
            AgentConfig(name="Scripted", max_retries=max_retries, timeout=timeout, retry_base_delay=retry_base_delay),
            events=events,
        )
        self.behaviour = behaviour
        self.calls = 0

    def validate_input(self, input):
        return isinstance(input, str) and bool(input)

    async def do_execute(self, input, context):
        self.calls += 1
        return await self.behaviour(self.calls, input)


def _recording_bus():
    bus = AgentEventBus()
    seen = []
    bus.subscribe(seen.append)
    return bus, seen


async def _succeed(call, value):
    return value.upper()


async def _always_fail(call, value):
    raise RuntimeError(f"boom {call}")


async def test_first_attempt_success_publishes_started_and_completed():
    bus, seen = _recording_bus()
    agent = ScriptedAgent(_succeed, events=bus)

    result = await agent.execute("hello")

    assert result.success is True
    assert result.data == "HELLO"
    assert result.metadata["attempts"] == 1
    assert result.metadata["agent"] == "Scripted"
    assert [event.type for event in seen] == [AgentEventType.STARTED, AgentEventType.COMPLETED]
    assert agent.status == AgentStatus.IDLE


async def test_exhausted_retries_make_exactly_n_attempts():
    bus, seen = _recording_bus()
    agent = ScriptedAgent(_always_fail, max_retries=3, events=bus)

    result = await agent.execute("hello")

    assert result.success is False
    assert agent.calls == 3
    assert result.metadata["attempts"] == 3
    assert result.error == "Agent Scripted failed after 3 attempts: boom 3"
    assert result.error_type == AgentErrorType.UNKNOWN_ERROR
    assert [event.type for event in seen] == [
        AgentEventType.STARTED,
        AgentEventType.PROGRESS,
        AgentEventType.PROGRESS,
        AgentEventType.ERROR,
    ]
    assert agent.status == AgentStatus.ERROR


async def test_success_on_retry_reports_attempt_count():
    async def flaky(call, value):
        if call == 1:
            raise ConnectionError("connection reset")
        return value

    agent = ScriptedAgent(flaky, max_retries=2)
    result = await agent.execute("ok")

    assert result.success is True
    assert result.metadata["attempts"] == 2


async def test_backoff_is_linear_in_attempt_number(monkeypatch):
    original_sleep = asyncio.sleep
    delays = []

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)
        await original_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    agent = ScriptedAgent(_always_fail, max_retries=3, retry_base_delay=0.5)

    await agent.execute("x")

    assert delays == [0.5, 1.0]


async def test_invalid_input_never_runs_and_publishes_nothing():
    bus, seen = _recording_bus()
    agent = ScriptedAgent(_succeed, events=bus)

    result = await agent.execute("")

    assert result.success is False
    assert result.error == "Invalid input for agent Scripted"
    assert result.error_type == AgentErrorType.INVALID_INPUT
    assert result.metadata["attempts"] == 0
    assert agent.calls == 0
    assert seen == []


async def test_attempt_exceeding_timeout_is_reported_as_timeout():
    async def slow(call, value):
        await asyncio.sleep(1)
        return value

    agent = ScriptedAgent(slow, max_retries=1, timeout=0.05)
    result = await agent.execute("x")

    assert result.success is False
    assert result.error_type == AgentErrorType.TIMEOUT_ERROR
    assert "timed out" in result.error


async def test_non_retryable_error_stops_after_first_attempt():
    async def reject(call, value):
        raise AgentError(AgentErrorType.INVALID_INPUT, "unsupported document")

    agent = ScriptedAgent(reject, max_retries=3)
    result = await agent.execute("x")

    assert agent.calls == 1
    assert result.error_type == AgentErrorType.INVALID_INPUT


async def test_agent_without_llm_fails_with_llm_error():
    agent = KeyPointExtractorAgent(config=AgentConfig(name="KeyPointExtractor", max_retries=1))

    result = await agent.execute(KeyPointExtractorInput(content="Some document text"))

    assert result.success is False
    assert result.error_type == AgentErrorType.LLM_ERROR


async def test_reset_returns_agent_to_idle():
    agent = ScriptedAgent(_always_fail, max_retries=1)
    await agent.execute("x")
    assert agent.status == AgentStatus.ERROR

    agent.reset()

    assert agent.status == AgentStatus.IDLE


def test_classify_error_maps_exceptions_onto_taxonomy():
    assert classify_error(LLMTimeoutError("slow")) == AgentErrorType.TIMEOUT_ERROR
    assert classify_error(TimeoutError()) == AgentErrorType.TIMEOUT_ERROR
    assert classify_error(LLMAPIError("rate limited")) == AgentErrorType.LLM_ERROR
    assert classify_error(DocumentLoadError("404")) == AgentErrorType.NETWORK_ERROR
    assert classify_error(ConnectionError("reset")) == AgentErrorType.NETWORK_ERROR
    assert classify_error(ValueError("invalid json payload")) == AgentErrorType.PARSING_ERROR
    assert classify_error(RuntimeError("boom")) == AgentErrorType.UNKNOWN_ERROR
    assert classify_error(AgentError(AgentErrorType.PARSING_ERROR, "x")) == AgentErrorType.PARSING_ERROR


def test_failing_subscriber_does_not_block_others():
    bus = AgentEventBus()
    seen = []

    def broken(event):
        raise RuntimeError("subscriber bug")

    bus.subscribe(broken)
    unsubscribe = bus.subscribe(seen.append)
    agent = ScriptedAgent(_succeed, events=bus)

    asyncio.run(agent.execute("x"))
    assert len(seen) == 2

    unsubscribe()
    assert bus.subscriber_count == 1


async def test_cancelled_execution_publishes_error_and_reraises():
    bus, seen = _recording_bus()
    started = asyncio.Event()

    async def hang(call, value):
        started.set()
        await asyncio.sleep(10)

    agent = ScriptedAgent(hang, timeout=30.0, events=bus)
    task = asyncio.create_task(agent.execute("x"))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert [event.type for event in seen] == [AgentEventType.STARTED, AgentEventType.ERROR]
    assert seen[-1].error == "Agent Scripted was cancelled"
    assert seen[-1].data["attempts"] == 1
    assert agent.status == AgentStatus.ERROR


async def test_result_to_dict_serializes_models():
    extractor_result = AgentResult(
        success=True,
        data=[KeyPoint(concept="Tasks", description="Schedule coroutines concurrently.", importance="high")],
        metadata={"agent": "KeyPointExtractor", "attempts": 1},
    )
    failed = await ScriptedAgent(_always_fail, max_retries=1).execute("x")

    assert extractor_result.to_dict()["data"][0] == {
        "concept": "Tasks",
        "description": "Schedule coroutines concurrently.",
        "importance": "high",
        "category": None,
        "examples": [],
    }
    assert failed.to_dict()["error_type"] == "UNKNOWN_ERROR"
    assert failed.to_dict()["data"] is None


def test_clear_removes_every_subscriber():
    bus, seen = _recording_bus()
    bus.subscribe(lambda event: None)

    bus.clear()
    asyncio.run(ScriptedAgent(_succeed, events=bus).execute("x"))

    assert bus.subscriber_count == 0
    assert seen == []
