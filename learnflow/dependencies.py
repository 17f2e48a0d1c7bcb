"""
Dependency wiring

Builds the LLM manager, adapters, agents and workflow engines from Settings.
Factories without arguments are cached; the others build fresh instances so
tests can pass their own collaborators.
"""
import logging
from functools import lru_cache
from typing import Optional

from learnflow.agents.events import AgentEventBus
from learnflow.agents.registry import AgentRegistry
from learnflow.config import Settings, get_settings
from learnflow.infrastructure import OpenAILLMGateway, TemplatePromptProvider, UpstageLLMGateway, WebDocumentLoader
from learnflow.ports import DocumentLoader, LLMGateway, PromptProvider
from learnflow.services.learning_service import LearningWorkflowService
from learnflow.services.llm_manager import LLMManager
from learnflow.workflow.definitions import StepHandlers, build_default_definitions
from learnflow.workflow.graph_executor import WorkflowExecutor
from learnflow.workflow.pipeline import AgentOrchestrator

logger = logging.getLogger(__name__)


def create_llm_gateway(settings: Settings) -> LLMGateway:
    """Upstage (default) or any OpenAI-compatible endpoint."""
    if settings.llm_provider == "openai":
        return OpenAILLMGateway(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            base_url=settings.llm_base_url or None,
            timeout=settings.llm_timeout,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
    if settings.llm_provider != "upstage":
        raise ValueError(f"Unsupported LLM provider: {settings.llm_provider}")
    return UpstageLLMGateway(
        api_key=settings.upstage_api_key,
        model=settings.llm_model,
        timeout=settings.llm_timeout,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )


@lru_cache()
def get_llm_manager() -> LLMManager:
    settings = get_settings()
    manager = LLMManager()
    manager.register(settings.llm_provider, create_llm_gateway(settings), default=True)
    logger.info("LLM manager created")
    return manager


@lru_cache()
def get_document_loader() -> DocumentLoader:
    return WebDocumentLoader(timeout=get_settings().document_fetch_timeout)


@lru_cache()
def get_prompt_provider() -> PromptProvider:
    return TemplatePromptProvider()


def create_agent_registry(
    llm_manager: Optional[LLMManager] = None,
    loader: Optional[DocumentLoader] = None,
    prompt_provider: Optional[PromptProvider] = None,
    events: Optional[AgentEventBus] = None,
    settings: Optional[Settings] = None,
) -> AgentRegistry:
    settings = settings or get_settings()
    return AgentRegistry.create(
        llm_manager=llm_manager or get_llm_manager(),
        loader=loader or get_document_loader(),
        prompt_provider=prompt_provider or get_prompt_provider(),
        events=events,
        retry_base_delay=settings.agent_retry_base_delay,
        history_window=settings.qa_history_window,
    )


def create_learning_service(
    agents: Optional[AgentRegistry] = None,
    settings: Optional[Settings] = None,
) -> LearningWorkflowService:
    settings = settings or get_settings()
    agents = agents or create_agent_registry(settings=settings)
    steps = StepHandlers(
        agents,
        max_content_length=settings.document_max_content_length,
        max_key_points=settings.max_key_points,
    )
    orchestrator = AgentOrchestrator(
        agents,
        steps=steps,
        step_timeout=settings.workflow_step_timeout,
        max_concurrency=settings.max_concurrent_agents,
    )
    executor = WorkflowExecutor(build_default_definitions(steps))
    logger.info("Learning workflow service created")
    return LearningWorkflowService(agents, orchestrator, executor)


@lru_cache()
def get_learning_service() -> LearningWorkflowService:
    return create_learning_service()
