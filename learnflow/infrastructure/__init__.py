"""
Infrastructure (Adapters)

Outer layer of the clean architecture: concrete implementations of the ports
(Upstage / OpenAI-compatible LLMs, web document loading, prompt templates).
"""
from learnflow.infrastructure.upstage_llm import UpstageLLMGateway
from learnflow.infrastructure.openai_llm import OpenAILLMGateway
from learnflow.infrastructure.web_document_loader import WebDocumentLoader
from learnflow.infrastructure.prompt_templates import TemplatePromptProvider

__all__ = [
    "UpstageLLMGateway",
    "OpenAILLMGateway",
    "WebDocumentLoader",
    "TemplatePromptProvider",
]
