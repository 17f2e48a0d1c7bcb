"""
LLM manager

Named registry of LLM gateways. One instance is created at startup and handed
to the agents; there is no process-wide registry.
"""
import asyncio
from typing import Dict, List, Optional

from learnflow.ports.llm_gateway import LLMGateway
from learnflow.utils.logger import get_logger

logger = get_logger(__name__)


class LLMNotFoundError(KeyError):
    """No gateway registered under the requested name"""
    pass


class LLMManager:
    """
    Example:
        manager = LLMManager()
        manager.register("solar", UpstageLLMGateway(api_key="..."), default=True)
        llm = manager.get()          # default gateway
        llm = manager.get("solar")   # by name
    """

    def __init__(self):
        self._gateways: Dict[str, LLMGateway] = {}
        self._default_name: Optional[str] = None

    def register(self, name: str, gateway: LLMGateway, default: bool = False) -> None:
        self._gateways[name] = gateway
        if default or self._default_name is None:
            self._default_name = name
        logger.info(f"LLM registered: {name} ({gateway.get_model_name()})")

    def get(self, name: Optional[str] = None) -> LLMGateway:
        key = name or self._default_name
        if key is None or key not in self._gateways:
            raise LLMNotFoundError(f"LLM not registered: {key or '<default>'}")
        return self._gateways[key]

    def set_default(self, name: str) -> None:
        if name not in self._gateways:
            raise LLMNotFoundError(f"LLM not registered: {name}")
        self._default_name = name

    def remove(self, name: str) -> bool:
        if self._gateways.pop(name, None) is None:
            return False
        if self._default_name == name:
            self._default_name = next(iter(self._gateways), None)
        return True

    def list_names(self) -> List[str]:
        return list(self._gateways)

    @property
    def default_name(self) -> Optional[str]:
        return self._default_name

    async def health_check(self, timeout: float = 10.0) -> Dict[str, bool]:
        """Ping every gateway with a tiny prompt."""
        async def ping(name: str, gateway: LLMGateway) -> bool:
            try:
                response = await asyncio.wait_for(gateway.invoke("ping"), timeout=timeout)
                return bool(response)
            except Exception as e:
                logger.warning(f"LLM health check failed for {name}: {e}")
                return False

        names = list(self._gateways)
        results = await asyncio.gather(*(ping(n, self._gateways[n]) for n in names))
        return dict(zip(names, results))

    def __len__(self) -> int:
        return len(self._gateways)
