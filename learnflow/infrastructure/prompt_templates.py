"""
In-memory prompt template provider backed by langchain-core PromptTemplate.
"""
import logging
from typing import Any, Dict, List, Optional

from langchain_core.prompts import PromptTemplate

from learnflow.ports.prompt_provider import PromptProvider, PromptRenderError
from learnflow.prompts.templates import DEFAULT_TEMPLATES


logger = logging.getLogger(__name__)


class TemplatePromptProvider(PromptProvider):
    """
    Example:
        provider = TemplatePromptProvider()
        provider.register_template("greeting", "Hello {name}")
        provider.render("greeting", {"name": "Ada"})  # "Hello Ada"
    """

    def __init__(self, templates: Optional[Dict[str, str]] = None, include_defaults: bool = True):
        self._templates: Dict[str, PromptTemplate] = {}
        if include_defaults:
            for template_id, text in DEFAULT_TEMPLATES.items():
                self.register_template(template_id, text)
        for template_id, text in (templates or {}).items():
            self.register_template(template_id, text)

    def register_template(self, template_id: str, text: str) -> None:
        self._templates[template_id] = PromptTemplate.from_template(text)
        logger.debug(f"Prompt template registered: {template_id}")

    def has_template(self, template_id: str) -> bool:
        return template_id in self._templates

    def list_templates(self) -> List[str]:
        return sorted(self._templates)

    def get_variables(self, template_id: str) -> List[str]:
        return list(self._get(template_id).input_variables)

    def _get(self, template_id: str) -> PromptTemplate:
        template = self._templates.get(template_id)
        if template is None:
            raise PromptRenderError(f"Unknown prompt template: {template_id}")
        return template

    def render(self, template_id: str, variables: Dict[str, Any]) -> str:
        template = self._get(template_id)
        missing = [name for name in template.input_variables if name not in variables]
        if missing:
            raise PromptRenderError(
                f"Missing variables for template '{template_id}': {', '.join(missing)}"
            )
        values = {name: variables[name] for name in template.input_variables}
        return template.format(**values)
