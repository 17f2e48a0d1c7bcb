"""
Ports (Interfaces)

Inner layer of the clean architecture: agents and schedulers depend on these
abstractions only, never on a concrete LLM SDK, HTTP client or template store.
"""
from learnflow.ports.llm_gateway import LLMGateway, LLMAPIError, LLMTimeoutError
from learnflow.ports.document_loader import (
    DocumentLoader,
    LoadedDocument,
    DocumentLoadError,
    DocumentLoadTimeoutError,
)
from learnflow.ports.prompt_provider import PromptProvider, PromptRenderError

__all__ = [
    "LLMGateway",
    "LLMAPIError",
    "LLMTimeoutError",
    "DocumentLoader",
    "LoadedDocument",
    "DocumentLoadError",
    "DocumentLoadTimeoutError",
    "PromptProvider",
    "PromptRenderError",
]
