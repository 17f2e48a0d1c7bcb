"""
Base Agent contract

Every model-backed capability (parse, extract, plan, quiz, answer) subclasses
BaseAgent and implements ``validate_input`` and ``do_execute``. ``execute``
wraps them with validation, per-attempt timeout, linear backoff retries,
status tracking and event publication, and always reports the outcome as an
AgentResult.
"""
import asyncio
import json
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import ValidationError

from learnflow.agents.events import AgentEvent, AgentEventBus, AgentEventType
from learnflow.infrastructure.prompt_templates import TemplatePromptProvider
from learnflow.ports.document_loader import DocumentLoadError, DocumentLoadTimeoutError
from learnflow.ports.llm_gateway import LLMAPIError, LLMGateway, LLMTimeoutError
from learnflow.ports.prompt_provider import PromptProvider, PromptRenderError
from learnflow.schemas.learning import ConversationTurn
from learnflow.services.llm_manager import LLMManager, LLMNotFoundError
from learnflow.utils.logger import get_logger

logger = get_logger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class AgentStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"


class AgentErrorType(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    PARSING_ERROR = "PARSING_ERROR"
    LLM_ERROR = "LLM_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


NON_RETRYABLE_ERRORS = frozenset({AgentErrorType.INVALID_INPUT})


class AgentError(Exception):
    """Capability failure tagged with its error category"""

    def __init__(self, error_type: AgentErrorType, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        return self.message


def generate_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class AgentConfig:
    """
    Attributes:
        name: agent name used in logs, events and health reports
        max_retries: total number of attempts (not additional retries)
        timeout: per-attempt timeout in seconds
        retry_base_delay: backoff unit; the wait after attempt n is n * base
    """
    name: str
    description: str = ""
    max_retries: int = 3
    timeout: float = 30.0
    retry_base_delay: float = 1.0


@dataclass
class AgentContext:
    """Per-request correlation data shared by all agents of one workflow run"""
    session_id: str
    user_level: str = "beginner"
    conversation_history: List[ConversationTurn] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, user_level: str = "beginner", **kwargs: Any) -> "AgentContext":
        return cls(session_id=generate_session_id(), user_level=user_level, **kwargs)


@dataclass
class AgentResult(Generic[OutputT]):
    """
    Agent outcome

    Attributes:
        success: True if do_execute produced data
        data: capability output (None on failure)
        error: human-readable failure message
        error_type: classified failure category
        metadata: attempts, execution_time (seconds), agent name
    """
    success: bool
    data: Optional[OutputT] = None
    error: Optional[str] = None
    error_type: Optional[AgentErrorType] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = self.data
        if hasattr(data, "model_dump"):
            data = data.model_dump(mode="json")
        elif isinstance(data, list):
            data = [item.model_dump(mode="json") if hasattr(item, "model_dump") else item for item in data]
        return {
            "success": self.success,
            "data": data,
            "error": self.error,
            "error_type": self.error_type.value if self.error_type else None,
            "metadata": self.metadata,
        }


_KEYWORD_CLASSES = (
    (("timeout", "timed out"), AgentErrorType.TIMEOUT_ERROR),
    (("network", "enotfound", "connection", "econnrefused"), AgentErrorType.NETWORK_ERROR),
    (("parse", "json", "invalid format"), AgentErrorType.PARSING_ERROR),
)


def classify_error(exc: BaseException) -> AgentErrorType:
    """Map an exception onto the agent error taxonomy."""
    if isinstance(exc, AgentError):
        return exc.error_type
    # TimeoutError is an OSError subclass, check it first
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, LLMTimeoutError, DocumentLoadTimeoutError)):
        return AgentErrorType.TIMEOUT_ERROR
    if isinstance(exc, (LLMAPIError, LLMNotFoundError)):
        return AgentErrorType.LLM_ERROR
    if isinstance(exc, (DocumentLoadError, ConnectionError, OSError)):
        return AgentErrorType.NETWORK_ERROR
    if isinstance(exc, (PromptRenderError, json.JSONDecodeError, ValidationError)):
        return AgentErrorType.PARSING_ERROR

    message = str(exc).lower()
    for keywords, error_type in _KEYWORD_CLASSES:
        if any(keyword in message for keyword in keywords):
            return error_type
    return AgentErrorType.UNKNOWN_ERROR


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """
    Agent contract

    Subclasses set ``template_id`` when they render prompts through the
    PromptProvider and implement:
        - validate_input(input) -> bool: cheap synchronous checks
        - do_execute(input, context) -> OutputT: the capability itself

    Example:
        agent = KeyPointExtractorAgent(llm_manager=manager)
        result = await agent.execute(KeyPointExtractorInput(...), AgentContext.create())
        if result.success:
            print(result.data)
    """

    template_id: Optional[str] = None

    def __init__(
        self,
        config: AgentConfig,
        llm_manager: Optional[LLMManager] = None,
        llm_name: Optional[str] = None,
        prompt_provider: Optional[PromptProvider] = None,
        events: Optional[AgentEventBus] = None,
    ):
        self.config = config
        self.llm_manager = llm_manager
        self.llm_name = llm_name
        self.events = events or AgentEventBus()
        if prompt_provider is None and self.template_id is not None:
            prompt_provider = TemplatePromptProvider()
        self.prompts = prompt_provider
        self._status = AgentStatus.IDLE

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def status(self) -> AgentStatus:
        return self._status

    @property
    def llm(self) -> LLMGateway:
        if self.llm_manager is None:
            raise AgentError(AgentErrorType.LLM_ERROR, f"No LLM backend bound to agent {self.name}")
        return self.llm_manager.get(self.llm_name)

    @abstractmethod
    def validate_input(self, input: InputT) -> bool:
        pass

    @abstractmethod
    async def do_execute(self, input: InputT, context: AgentContext) -> OutputT:
        pass

    def reset(self) -> None:
        self._status = AgentStatus.IDLE

    def render_prompt(self, variables: Dict[str, Any]) -> str:
        if self.prompts is None or self.template_id is None:
            raise AgentError(AgentErrorType.UNKNOWN_ERROR, f"Agent {self.name} has no prompt template")
        return self.prompts.render(self.template_id, variables)

    async def invoke_llm(self, prompt: str, temperature: Optional[float] = None) -> str:
        logger.debug(f"[{self.name}] invoking LLM: prompt_length={len(prompt)}")
        return await self.llm.invoke(prompt, temperature=temperature)

    def _publish(
        self,
        event_type: AgentEventType,
        context: AgentContext,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        self.events.publish(
            AgentEvent(
                type=event_type,
                agent=self.name,
                session_id=context.session_id,
                data=data or {},
                error=error,
            )
        )

    async def execute(self, input: InputT, context: Optional[AgentContext] = None) -> AgentResult[OutputT]:
        """
        Run the capability under the contract. Never raises for capability
        failures; the outcome is always reported through AgentResult.
        """
        context = context or AgentContext.create()

        try:
            valid = self.validate_input(input)
        except Exception as e:
            logger.warning(f"[{self.name}] input validation raised: {e}")
            valid = False
        if not valid:
            logger.warning(f"[{self.name}] invalid input rejected")
            return AgentResult(
                success=False,
                error=f"Invalid input for agent {self.name}",
                error_type=AgentErrorType.INVALID_INPUT,
                metadata={"agent": self.name, "attempts": 0, "execution_time": 0.0},
            )

        max_attempts = max(1, self.config.max_retries)
        started_at = time.perf_counter()
        self._status = AgentStatus.RUNNING
        self._publish(AgentEventType.STARTED, context)
        logger.info(f"[{self.name}] started (session={context.session_id})")

        last_message = ""
        last_type = AgentErrorType.UNKNOWN_ERROR
        attempts = 0

        try:
            for attempt in range(1, max_attempts + 1):
                attempts = attempt
                try:
                    data = await asyncio.wait_for(self.do_execute(input, context), timeout=self.config.timeout)
                except (asyncio.TimeoutError, TimeoutError) as e:
                    last_type = AgentErrorType.TIMEOUT_ERROR
                    last_message = str(e) or f"Agent {self.name} timed out after {self.config.timeout}s"
                except Exception as e:
                    last_type = classify_error(e)
                    last_message = str(e) or e.__class__.__name__
                else:
                    execution_time = time.perf_counter() - started_at
                    self._status = AgentStatus.IDLE
                    metadata = {"agent": self.name, "attempts": attempt, "execution_time": execution_time}
                    self._publish(AgentEventType.COMPLETED, context, data=metadata)
                    logger.info(f"[{self.name}] completed in {execution_time:.2f}s (attempts={attempt})")
                    return AgentResult(success=True, data=data, metadata=metadata)

                log = logger.error if last_type == AgentErrorType.UNKNOWN_ERROR else logger.warning
                log(f"[{self.name}] attempt {attempt}/{max_attempts} failed ({last_type.value}): {last_message}")

                if last_type in NON_RETRYABLE_ERRORS:
                    break
                if attempt < max_attempts:
                    self._publish(
                        AgentEventType.PROGRESS,
                        context,
                        data={"attempt": attempt, "error_type": last_type.value},
                        error=last_message,
                    )
                    await asyncio.sleep(attempt * self.config.retry_base_delay)
        except asyncio.CancelledError:
            # caller gave up (e.g. a workflow step timeout); close the event sequence and propagate
            execution_time = time.perf_counter() - started_at
            self._status = AgentStatus.ERROR
            metadata = {"agent": self.name, "attempts": attempts, "execution_time": execution_time}
            self._publish(AgentEventType.ERROR, context, data=metadata, error=f"Agent {self.name} was cancelled")
            logger.warning(f"[{self.name}] cancelled after {execution_time:.2f}s (attempts={attempts})")
            raise

        execution_time = time.perf_counter() - started_at
        self._status = AgentStatus.ERROR
        error = f"Agent {self.name} failed after {attempts} attempts: {last_message}"
        metadata = {"agent": self.name, "attempts": attempts, "execution_time": execution_time}
        self._publish(AgentEventType.ERROR, context, data=metadata, error=last_message)
        logger.error(f"[{self.name}] {error}")
        return AgentResult(success=False, error=error, error_type=last_type, metadata=metadata)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name} status={self._status.value}>"
