"""
Agent registry

Bundles the five capability agents, bound to one LLMManager, one document
loader, one prompt provider and one shared event bus.
"""
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, Optional

from learnflow.agents.base import AgentStatus, BaseAgent
from learnflow.agents.document_parser import DocumentParserAgent
from learnflow.agents.events import AgentEventBus
from learnflow.agents.keypoint_extractor import KeyPointExtractorAgent
from learnflow.agents.learning_path import LearningPathPlannerAgent
from learnflow.agents.question_answerer import DEFAULT_HISTORY_WINDOW, QuestionAnswererAgent
from learnflow.agents.quiz_generator import QuizGeneratorAgent
from learnflow.infrastructure.prompt_templates import TemplatePromptProvider
from learnflow.ports.document_loader import DocumentLoader
from learnflow.ports.prompt_provider import PromptProvider
from learnflow.services.llm_manager import LLMManager
from learnflow.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AgentRegistry:
    document_parser: DocumentParserAgent
    keypoint_extractor: KeyPointExtractorAgent
    learning_path_planner: LearningPathPlannerAgent
    quiz_generator: QuizGeneratorAgent
    question_answerer: QuestionAnswererAgent
    events: AgentEventBus

    @classmethod
    def create(
        cls,
        llm_manager: LLMManager,
        loader: DocumentLoader,
        prompt_provider: Optional[PromptProvider] = None,
        events: Optional[AgentEventBus] = None,
        retry_base_delay: float = 1.0,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        overrides: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> "AgentRegistry":
        """
        Args:
            overrides: per-agent AgentConfig field overrides keyed by agent
                name, e.g. {"QuizGenerator": {"timeout": 60}}
        """
        events = events or AgentEventBus()
        prompt_provider = prompt_provider or TemplatePromptProvider()
        shared = {"llm_manager": llm_manager, "prompt_provider": prompt_provider, "events": events}

        registry = cls(
            document_parser=DocumentParserAgent(loader=loader, **shared),
            keypoint_extractor=KeyPointExtractorAgent(**shared),
            learning_path_planner=LearningPathPlannerAgent(**shared),
            quiz_generator=QuizGeneratorAgent(**shared),
            question_answerer=QuestionAnswererAgent(history_window=history_window, **shared),
            events=events,
        )

        overrides = overrides or {}
        for agent in registry:
            agent.config = replace(agent.config, retry_base_delay=retry_base_delay, **overrides.get(agent.name, {}))

        logger.info(f"Agent registry created: {', '.join(registry.names())}")
        return registry

    def __iter__(self) -> Iterator[BaseAgent]:
        return iter((
            self.document_parser,
            self.keypoint_extractor,
            self.learning_path_planner,
            self.quiz_generator,
            self.question_answerer,
        ))

    def names(self):
        return [agent.name for agent in self]

    def get(self, name: str) -> BaseAgent:
        for agent in self:
            if agent.name == name:
                return agent
        raise KeyError(f"Unknown agent: {name}")

    def health(self) -> Dict[str, bool]:
        """Agent name -> True when the agent is idle."""
        return {agent.name: agent.status == AgentStatus.IDLE for agent in self}

    def reset_all(self) -> None:
        for agent in self:
            agent.reset()
