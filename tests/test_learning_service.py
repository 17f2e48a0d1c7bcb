import json
import logging
import os

import pytest

from learnflow import __main__ as cli
from learnflow.config import Settings, configure_tracing
from learnflow.dependencies import create_learning_service, create_llm_gateway
from learnflow.infrastructure.openai_llm import OpenAILLMGateway
from learnflow.schemas.workflow import WorkflowOutcome
from learnflow.utils.logger import setup_logging
from learnflow.workflow.graph_executor import WorkflowInputError

URL = "https://docs.python.org/3/library/asyncio.html"


def _settings(**overrides):
    values = {"langsmith_tracing": False, "workflow_step_timeout": 5.0, "max_concurrent_agents": 2}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def service(agents):
    return create_learning_service(agents=agents, settings=_settings())


async def test_run_pipeline_accepts_plain_dicts(service):
    output = await service.run_pipeline({"type": "full_pipeline", "url": URL, "question_count": 3})

    assert output.outcome == WorkflowOutcome.SUCCEEDED
    assert len(output.results.quiz) == 3


async def test_run_pipeline_rejects_unknown_types(service):
    with pytest.raises(WorkflowInputError):
        await service.run_pipeline({"type": "summarize_everything", "url": URL})


async def test_run_and_stream_graph_workflows(service):
    state = await service.run_workflow("document_analysis", {"url": URL})
    snapshots = [snapshot async for snapshot in service.stream_workflow("document_analysis", {"url": URL})]

    assert state["completed"] is True
    assert [point.concept for point in state["key_points"]] == ["Coroutines", "Event loop", "Tasks"]
    assert [snapshot["current_step"] for snapshot in snapshots] == ["parse", "extract", None]


async def test_single_capability_calls(service):
    parsed = await service.parse_document(URL)
    points = await service.extract_key_points(parsed.data)
    path = await service.plan_learning_path(points.data, user_level="advanced")
    quiz = await service.generate_quiz(points.data, parsed.data, question_count=2, difficulty_level="easy")
    answer = await service.answer_question("What is a coroutine?", parsed.data, points.data)

    assert all(result.success for result in (parsed, points, path, quiz, answer))
    assert len(quiz.data) == 2
    assert service.get_agents_health() == {name: True for name in service.agents.names()}


def test_service_exposes_workflow_catalogue(service):
    assert len(service.get_available_workflows()) == 5
    assert service.get_workflow_visualization("learning_generation").startswith("graph TD")
    assert service.cancel_workflow("session_1") is True
    assert service.orchestrator.step_timeout == 5.0
    assert service.orchestrator.max_concurrency == 2


def test_llm_gateway_selection():
    gateway = create_llm_gateway(_settings(llm_provider="openai", openai_api_key="test-key", llm_model="gpt-4o-mini"))

    assert isinstance(gateway, OpenAILLMGateway)
    assert gateway.get_model_name() == "gpt-4o-mini"

    with pytest.raises(ValueError):
        create_llm_gateway(_settings(llm_provider="ollama"))


TRACING_VARS = (
    "LANGSMITH_TRACING", "LANGSMITH_API_KEY", "LANGSMITH_PROJECT",
    "LANGCHAIN_TRACING_V2", "LANGCHAIN_API_KEY", "LANGCHAIN_PROJECT",
)


def test_configure_tracing_only_with_api_key(monkeypatch):
    for name in TRACING_VARS:
        monkeypatch.setenv(name, "unset")

    assert configure_tracing(_settings(langsmith_tracing=True, langsmith_api_key="")) is False
    assert os.environ["LANGSMITH_TRACING"] == "false"

    assert configure_tracing(_settings(langsmith_tracing=True, langsmith_api_key="ls-key",
                                       langsmith_project="demo")) is True
    assert os.environ["LANGSMITH_PROJECT"] == "demo"
    assert os.environ["LANGCHAIN_TRACING_V2"] == "true"
    assert os.environ["LANGCHAIN_API_KEY"] == "ls-key"


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("WORKFLOW_STEP_TIMEOUT", "12.5")
    monkeypatch.setenv("LLM_PROVIDER", "openai")

    settings = Settings(_env_file=None)

    assert settings.workflow_step_timeout == 12.5
    assert settings.llm_provider == "openai"
    assert settings.max_concurrent_agents == 3


def test_setup_logging_writes_log_files(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(environment="production", log_dir=str(tmp_path), app_name="unit")
        logging.getLogger("learnflow.test").error("something broke")
        for handler in root.handlers:
            handler.flush()

        assert (tmp_path / "unit.log").exists()
        assert "something broke" in (tmp_path / "unit_error.log").read_text(encoding="utf-8")
        assert not (tmp_path / "unit_debug.log").exists()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_cli_runs_pipeline_and_lists_workflows(monkeypatch, capsys, service):
    monkeypatch.setattr(cli, "get_learning_service", lambda: service)
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(cli, "configure_tracing", lambda settings: False)

    assert cli.main(["--list"]) == 0
    listed = json.loads(capsys.readouterr().out)
    assert [workflow["id"] for workflow in listed][-1] == "full_pipeline"

    assert cli.main(["full_pipeline", "--url", URL, "--skip-quiz"]) == 0
    output = json.loads(capsys.readouterr().out)
    assert output["outcome"] == "succeeded"
    assert output["results"]["quiz"] is None

    assert cli.main(["interactive_qa", "--question", "Why?"]) == 2
