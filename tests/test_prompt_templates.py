import pytest

from learnflow.infrastructure.prompt_templates import TemplatePromptProvider
from learnflow.ports.prompt_provider import PromptRenderError
from learnflow.prompts.templates import DEFAULT_TEMPLATES, KEYPOINT_EXTRACTION, QUESTION_ANSWERING


def test_default_templates_are_registered():
    provider = TemplatePromptProvider()

    assert provider.list_templates() == sorted(DEFAULT_TEMPLATES)
    assert set(provider.get_variables(KEYPOINT_EXTRACTION)) == {"title", "content", "user_level", "max_key_points"}


def test_render_fills_variables_and_keeps_literal_braces():
    provider = TemplatePromptProvider()

    prompt = provider.render(KEYPOINT_EXTRACTION, {
        "title": "Asyncio",
        "content": "Coroutines {with braces}",
        "user_level": "beginner",
        "max_key_points": 5,
        "unused": "ignored",
    })

    assert "Document title: Asyncio" in prompt
    assert "Coroutines {with braces}" in prompt
    assert '"concept": "concept name"' in prompt


def test_missing_variables_raise():
    provider = TemplatePromptProvider()

    with pytest.raises(PromptRenderError, match="question"):
        provider.render(QUESTION_ANSWERING, {"title": "x", "content": "y"})


def test_unknown_template_raises():
    with pytest.raises(PromptRenderError):
        TemplatePromptProvider().render("nope", {})


def test_custom_templates_without_defaults():
    provider = TemplatePromptProvider({"greeting": "Hello {name}"}, include_defaults=False)

    assert provider.has_template("greeting")
    assert not provider.has_template(KEYPOINT_EXTRACTION)
    assert provider.render("greeting", {"name": "Ada"}) == "Hello Ada"
