"""
Upstage LLM Gateway Implementation

LLMGateway backed by Upstage Solar through langchain-upstage.
Transient API failures are retried with exponential backoff.
"""
import asyncio
import logging
from typing import Optional

from langchain_core.messages import HumanMessage
from langchain_upstage import ChatUpstage
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from learnflow.ports.llm_gateway import LLMGateway, LLMAPIError, LLMTimeoutError


logger = logging.getLogger(__name__)


class UpstageLLMGateway(LLMGateway):
    """
    Upstage Solar API gateway

    Features:
        - Automatic retry of API errors (max 2 calls)
        - Exponential backoff
        - Timeouts surfaced as LLMTimeoutError (not retried here; the
          agent contract owns per-attempt timeouts)

    Example:
        gateway = UpstageLLMGateway(api_key="...", model="solar-pro")
        text = await gateway.invoke("Explain FastAPI dependencies")
    """

    def __init__(
        self,
        api_key: str,
        model: str = "solar-pro",
        timeout: int = 30,
        temperature: float = 0.7,
        max_tokens: int = 2048
    ):
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._temperature = temperature
        self._max_tokens = max_tokens

        try:
            self._llm = self._build_client(temperature)
            logger.info(f"UpstageLLMGateway initialized: model={model}, timeout={timeout}s")
        except Exception as e:
            logger.error(f"Failed to initialize Upstage LLM: {e}")
            raise LLMAPIError(f"LLM initialization failed: {e}") from e

    def _build_client(self, temperature: float) -> ChatUpstage:
        return ChatUpstage(
            api_key=self._api_key,
            model=self._model,
            timeout=self._timeout,
            temperature=temperature,
            max_tokens=self._max_tokens
        )

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(LLMAPIError),
        reraise=True
    )
    async def invoke(self, prompt: str, temperature: Optional[float] = None) -> str:
        try:
            logger.debug(f"Invoking LLM: prompt_length={len(prompt)}, temperature={temperature}")

            llm = self._llm
            if temperature is not None and temperature != self._temperature:
                llm = self._build_client(temperature)

            response = await llm.ainvoke([HumanMessage(content=prompt)])
            content = str(response.content).strip()
            logger.info(f"LLM response received: length={len(content)}")
            return content

        except (asyncio.TimeoutError, TimeoutError) as e:
            logger.error(f"LLM timeout: {e}")
            raise LLMTimeoutError(f"LLM call timed out after {self._timeout}s") from e

        except Exception as e:
            logger.error(f"LLM API error: {e}")
            raise LLMAPIError(f"LLM call failed: {e}") from e

    def get_model_name(self) -> str:
        return self._model

    def __repr__(self) -> str:
        return f"<UpstageLLMGateway model={self._model}>"
