"""
Prompt Provider Port (Interface)
"""
from abc import ABC, abstractmethod
from typing import Any, Dict


class PromptProvider(ABC):
    """
    Renders a prompt template identified by id with a variable mapping.
    """

    @abstractmethod
    def render(self, template_id: str, variables: Dict[str, Any]) -> str:
        """
        Raises:
            PromptRenderError: unknown template id or missing variables
        """
        pass

    @abstractmethod
    def has_template(self, template_id: str) -> bool:
        pass


class PromptRenderError(Exception):
    """Prompt template could not be rendered"""
    pass
