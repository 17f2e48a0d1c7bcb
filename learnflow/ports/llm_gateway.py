"""
LLM Gateway Port (Interface)

Abstracts text generation so agents never depend on a specific LLM framework.
"""
from abc import ABC, abstractmethod
from typing import Optional


class LLMGateway(ABC):
    """
    Asynchronous text-generation interface.

    Implementations:
        - UpstageLLMGateway: Upstage Solar via langchain-upstage
        - OpenAILLMGateway: any OpenAI-compatible endpoint
        - stub gateways in tests

    Example:
        llm = UpstageLLMGateway(api_key="...")
        text = await llm.invoke("Summarize: ...")
    """

    @abstractmethod
    async def invoke(self, prompt: str, temperature: Optional[float] = None) -> str:
        """
        Send a prompt and return the response text.

        The response may be slow or ignore the requested format; callers
        must not assume anything beyond "some text".

        Args:
            prompt: full prompt text
            temperature: sampling temperature (None for the gateway default)

        Returns:
            str: stripped response text

        Raises:
            LLMAPIError: API call failed
            LLMTimeoutError: API call timed out
        """
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Return the model name in use (e.g. "solar-pro")."""
        pass


class LLMAPIError(Exception):
    """LLM API call failed"""
    pass


class LLMTimeoutError(Exception):
    """LLM API call timed out"""
    pass
