"""
OpenAI-compatible LLM Gateway Implementation

Works against api.openai.com or any compatible endpoint (Upstage exposes one
at https://api.upstage.ai/v1).
"""
import logging
from typing import Optional

import openai
from openai import AsyncOpenAI
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from learnflow.ports.llm_gateway import LLMGateway, LLMAPIError, LLMTimeoutError


logger = logging.getLogger(__name__)


class OpenAILLMGateway(LLMGateway):
    """
    Chat-completions gateway on top of ``AsyncOpenAI``.

    Example:
        gateway = OpenAILLMGateway(api_key="...", model="solar-pro",
                                   base_url="https://api.upstage.ai/v1")
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: int = 30,
        temperature: float = 0.7,
        max_tokens: int = 2048
    ):
        self._model = model
        self._timeout = timeout
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        logger.info(f"OpenAILLMGateway initialized: model={model}, base_url={base_url or 'default'}")

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(LLMAPIError),
        reraise=True
    )
    async def invoke(self, prompt: str, temperature: Optional[float] = None) -> str:
        try:
            logger.debug(f"Invoking LLM: prompt_length={len(prompt)}, temperature={temperature}")
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature if temperature is None else temperature,
                max_tokens=self._max_tokens,
            )
            content = (response.choices[0].message.content or "").strip()
            logger.info(f"LLM response received: length={len(content)}")
            return content

        except openai.APITimeoutError as e:
            logger.error(f"LLM timeout: {e}")
            raise LLMTimeoutError(f"LLM call timed out after {self._timeout}s") from e

        except openai.APIError as e:
            logger.error(f"LLM API error: {e}")
            raise LLMAPIError(f"LLM call failed: {e}") from e

    def get_model_name(self) -> str:
        return self._model

    def __repr__(self) -> str:
        return f"<OpenAILLMGateway model={self._model}>"
