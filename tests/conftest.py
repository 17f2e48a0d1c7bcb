"""
Test configuration for stable local/CI execution.
"""
from __future__ import annotations

import asyncio
import inspect
import json
import os
from typing import Any, Callable, Dict, List, Optional, Union

import pytest


# Disable external tracing uploads during tests.
os.environ.setdefault("LANGSMITH_TRACING", "false")
os.environ.setdefault("LANGCHAIN_TRACING_V2", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from learnflow.agents.registry import AgentRegistry  # noqa: E402
from learnflow.ports.document_loader import DocumentLoader, LoadedDocument  # noqa: E402
from learnflow.ports.llm_gateway import LLMGateway  # noqa: E402
from learnflow.services.llm_manager import LLMManager  # noqa: E402


def pytest_pyfunc_call(pyfuncitem):
    """
    Minimal asyncio runner to support async test functions without extra plugins.
    """
    testfunction = pyfuncitem.obj
    if not inspect.iscoroutinefunction(testfunction):
        return None

    kwargs = {
        argname: pyfuncitem.funcargs[argname]
        for argname in pyfuncitem._fixtureinfo.argnames
    }
    asyncio.run(testfunction(**kwargs))
    return True


Reply = Union[str, BaseException, Callable[[str], str]]


class StubLLM(LLMGateway):
    """
    Scripted gateway.

    ``replies`` are consumed in order (the last one repeats); ``routes`` maps
    a prompt substring to a reply and wins over ``replies``. Exceptions are
    raised, callables receive the prompt.
    """

    def __init__(self, replies: Optional[List[Reply]] = None, routes: Optional[Dict[str, Reply]] = None,
                 delay: float = 0.0):
        self.replies = list(replies or [])
        self.routes = dict(routes or {})
        self.delay = delay
        self.prompts: List[str] = []

    async def invoke(self, prompt: str, temperature: Optional[float] = None) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)

        reply: Reply = ""
        for marker, routed in self.routes.items():
            if marker in prompt:
                reply = routed
                break
        else:
            if self.replies:
                reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]

        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(prompt)
        return reply

    def get_model_name(self) -> str:
        return "stub-llm"


class StubLoader(DocumentLoader):
    def __init__(self, document: Optional[LoadedDocument] = None, error: Optional[BaseException] = None,
                 delay: float = 0.0):
        self.document = document
        self.error = error
        self.delay = delay
        self.calls: List[str] = []

    async def load(self, url: str) -> LoadedDocument:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.document


SAMPLE_TEXT = (
    "Python Asyncio Guide\n\n"
    "Asyncio is a library to write concurrent code using the async/await syntax. "
    "Coroutines are declared with async def and awaited with await. "
    "The event loop runs asynchronous tasks and callbacks, performs network IO operations "
    "and runs subprocesses. Tasks are used to schedule coroutines concurrently."
)

KEY_POINTS_REPLY = json.dumps([
    {"concept": "Coroutines", "description": "Functions declared with async def that can be awaited.",
     "importance": "high"},
    {"concept": "Event loop", "description": "Runs asynchronous tasks, callbacks and network IO.",
     "importance": "high"},
    {"concept": "Tasks", "description": "Wrap coroutines to schedule them concurrently on the loop.",
     "importance": "medium"},
])

LEARNING_PATH_REPLY = json.dumps([
    {"step": "Understand coroutines", "time": "30 minutes",
     "description": "Write and await simple coroutines to see how they suspend."},
    {"step": "Explore the event loop", "time": "1 hour",
     "description": "Run several coroutines on the loop and observe the scheduling order."},
    {"step": "Schedule tasks", "time": "45 minutes",
     "description": "Use asyncio.create_task and gather to run work concurrently."},
])

QUIZ_REPLY = json.dumps([
    {"type": "multiple_choice", "question": "Which keyword declares a coroutine?",
     "options": ["async def", "def", "lambda", "yield"], "correct_answer": "async def",
     "explanation": "Coroutines are declared with async def.", "difficulty": "easy"},
    {"type": "true_false", "question": "The event loop can perform network IO.",
     "correct_answer": "true", "explanation": "It runs network IO operations.", "difficulty": "easy"},
    {"type": "multiple_choice", "question": "What schedules a coroutine concurrently?",
     "options": ["A task", "A list", "A lock", "A module"], "correct_answer": "A",
     "explanation": "Tasks wrap coroutines.", "difficulty": "medium"},
    {"type": "true_false", "question": "Coroutines must be awaited to run.",
     "correct_answer": "True", "explanation": "Awaiting drives the coroutine.", "difficulty": "medium"},
    {"type": "multiple_choice", "question": "Which function runs several awaitables together?",
     "options": ["asyncio.gather", "asyncio.sleep", "print", "open"], "correct_answer": "asyncio.gather",
     "explanation": "gather runs awaitables concurrently.", "difficulty": "hard"},
])

ANSWER_REPLY = "Answer: A coroutine is a function declared with async def that can pause at await points."

PIPELINE_ROUTES = {
    "technical document analyst": KEY_POINTS_REPLY,
    "technical instructor": LEARNING_PATH_REPLY,
    "assessment designer": QUIZ_REPLY,
    "patient technical tutor": ANSWER_REPLY,
}


@pytest.fixture
def sample_document() -> LoadedDocument:
    return LoadedDocument(title="Python Asyncio Guide", raw_text=SAMPLE_TEXT, last_modified="Mon, 01 Jan 2024")


@pytest.fixture
def stub_llm() -> StubLLM:
    return StubLLM(routes=PIPELINE_ROUTES)


@pytest.fixture
def stub_loader(sample_document) -> StubLoader:
    return StubLoader(sample_document)


@pytest.fixture
def llm_manager(stub_llm) -> LLMManager:
    manager = LLMManager()
    manager.register("stub", stub_llm, default=True)
    return manager


@pytest.fixture
def make_registry():
    """Build an AgentRegistry around the given stubs with zero retry delay."""

    def _make(llm: LLMGateway, loader: Optional[DocumentLoader] = None, **overrides: Any) -> AgentRegistry:
        manager = LLMManager()
        manager.register("stub", llm, default=True)
        return AgentRegistry.create(
            llm_manager=manager,
            loader=loader or StubLoader(LoadedDocument(title="Doc", raw_text=SAMPLE_TEXT)),
            retry_base_delay=0.0,
            overrides=overrides or None,
        )

    return _make


@pytest.fixture
def agents(make_registry, stub_llm, stub_loader) -> AgentRegistry:
    return make_registry(stub_llm, stub_loader)


@pytest.fixture
def make_llm():
    return StubLLM


@pytest.fixture
def make_loader():
    return StubLoader


@pytest.fixture
def pipeline_routes() -> Dict[str, Reply]:
    return dict(PIPELINE_ROUTES)
