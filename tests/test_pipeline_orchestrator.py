import pytest

from learnflow.agents.base import AgentStatus
from learnflow.agents.keypoint_extractor import KeyPointExtractorInput
from learnflow.agents.learning_path import LearningPathInput
from learnflow.ports.document_loader import DocumentLoadError
from learnflow.ports.llm_gateway import LLMAPIError
from learnflow.schemas.learning import DocumentContent, KeyPoint
from learnflow.schemas.workflow import WorkflowInput, WorkflowOptions, WorkflowOutcome, WorkflowType
from learnflow.workflow.graph_executor import WorkflowInputError
from learnflow.workflow.pipeline import AgentOrchestrator

URL = "https://docs.python.org/3/library/asyncio.html"

DOCUMENT = DocumentContent(title="Asyncio", content="Coroutines are declared with async def.", source_url=URL)
KEY_POINTS = [KeyPoint(concept="Coroutines", description="Functions declared with async def.")]


async def test_full_pipeline_succeeds(agents):
    output = await AgentOrchestrator(agents).execute_workflow(
        WorkflowInput(type=WorkflowType.FULL_PIPELINE, url=URL)
    )

    assert output.success is True
    assert output.outcome == WorkflowOutcome.SUCCEEDED
    assert output.metadata.steps_executed == [
        "parse_document", "extract_key_points", "generate_learning_path", "generate_quiz",
    ]
    assert output.metadata.errors == []
    assert output.results.document_content.title == "Python Asyncio Guide"
    assert len(output.results.quiz) == 5
    assert output.session_id.startswith("session_")


async def test_failing_quiz_keeps_earlier_results(make_registry, make_llm, stub_loader, pipeline_routes):
    pipeline_routes["assessment designer"] = LLMAPIError("quota exceeded")
    agents = make_registry(make_llm(routes=pipeline_routes), stub_loader)

    output = await AgentOrchestrator(agents).execute_workflow(
        WorkflowInput(type=WorkflowType.FULL_PIPELINE, url=URL)
    )

    assert output.success is False
    assert output.outcome == WorkflowOutcome.PARTIAL
    assert output.results.learning_path
    assert output.results.quiz is None
    assert [error.step for error in output.metadata.errors] == ["generate_quiz"]
    assert output.metadata.errors[0].error.startswith("Agent QuizGenerator failed after 2 attempts")


async def test_first_step_failure_aborts_the_rest(make_registry, make_llm, make_loader):
    llm = make_llm(["never used"])
    agents = make_registry(llm, make_loader(error=DocumentLoadError("404 Not Found")))

    output = await AgentOrchestrator(agents).execute_workflow(
        WorkflowInput(type=WorkflowType.FULL_PIPELINE, url=URL)
    )

    assert output.outcome == WorkflowOutcome.ABORTED
    assert output.results.is_empty()
    assert output.metadata.steps_executed == []
    assert llm.prompts == []


async def test_step_timeout_aborts_pipeline(make_registry, make_llm, make_loader, sample_document):
    llm = make_llm(["never used"])
    agents = make_registry(llm, make_loader(sample_document, delay=1.0))

    output = await AgentOrchestrator(agents).execute_workflow(
        WorkflowInput(type=WorkflowType.FULL_PIPELINE, url=URL, options=WorkflowOptions(step_timeout=0.05))
    )

    assert output.outcome == WorkflowOutcome.ABORTED
    assert output.metadata.errors[0].step == "parse_document"
    assert output.metadata.errors[0].error == "Step parse_document timed out after 0.05s"
    assert llm.prompts == []


async def test_step_timeout_closes_the_agent_event_sequence(make_registry, make_llm, make_loader, sample_document):
    agents = make_registry(make_llm(["never used"]), make_loader(sample_document, delay=1.0))
    events = []
    agents.events.subscribe(lambda event: events.append((event.agent, event.type.value, event.error)))
    orchestrator = AgentOrchestrator(agents)

    output = await orchestrator.execute_workflow(
        WorkflowInput(type=WorkflowType.FULL_PIPELINE, url=URL, options=WorkflowOptions(step_timeout=0.05))
    )

    assert output.outcome == WorkflowOutcome.ABORTED
    assert events == [
        ("DocumentParser", "started", None),
        ("DocumentParser", "error", "Agent DocumentParser was cancelled"),
    ]
    assert agents.document_parser.status == AgentStatus.ERROR
    assert orchestrator.get_agents_health()["DocumentParser"] is False

    orchestrator.reset_all_agents()
    assert all(orchestrator.get_agents_health().values())


async def test_quiz_step_can_be_skipped(agents):
    output = await AgentOrchestrator(agents).execute_workflow(
        WorkflowInput(type=WorkflowType.FULL_PIPELINE, url=URL, options=WorkflowOptions(skip_steps=["generate_quiz"]))
    )

    assert output.outcome == WorkflowOutcome.SUCCEEDED
    assert output.results.quiz is None
    assert "generate_quiz" not in output.metadata.steps_executed


async def test_zero_questions_drops_the_quiz_step(agents):
    output = await AgentOrchestrator(agents).execute_workflow(
        WorkflowInput(type=WorkflowType.FULL_PIPELINE, url=URL, question_count=0)
    )

    assert output.success is True
    assert output.results.quiz is None


async def test_intermediate_level_is_mapped_for_extractor_and_planner(agents, stub_llm):
    output = await AgentOrchestrator(agents).execute_workflow(
        WorkflowInput(type=WorkflowType.LEARNING_GENERATION, document_content=DOCUMENT, user_level="intermediate")
    )

    assert output.success is True
    assert output.metadata.steps_executed == ["extract_key_points", "generate_learning_path"]
    assert all("User level: beginner" in prompt for prompt in stub_llm.prompts)


async def test_provided_inputs_shorten_the_pipeline(agents):
    orchestrator = AgentOrchestrator(agents)

    analysis = await orchestrator.execute_workflow(
        WorkflowInput(type=WorkflowType.DOCUMENT_ANALYSIS, document_content=DOCUMENT)
    )
    path = await orchestrator.execute_workflow(
        WorkflowInput(type=WorkflowType.LEARNING_GENERATION, key_points=KEY_POINTS)
    )
    answer = await orchestrator.execute_workflow(
        WorkflowInput(type=WorkflowType.INTERACTIVE_QA, question="What is a coroutine?", document_content=DOCUMENT)
    )

    assert analysis.metadata.steps_executed == ["extract_key_points"]
    assert path.metadata.steps_executed == ["generate_learning_path"]
    assert answer.results.answer.startswith("A coroutine is a function")


@pytest.mark.parametrize(
    "request_kwargs",
    [
        {"type": WorkflowType.FULL_PIPELINE},
        {"type": WorkflowType.DOCUMENT_ANALYSIS},
        {"type": WorkflowType.LEARNING_GENERATION},
        {"type": WorkflowType.QUIZ_GENERATION, "key_points": KEY_POINTS},
        {"type": WorkflowType.INTERACTIVE_QA, "question": "Why?"},
    ],
)
def test_missing_required_input_is_rejected(request_kwargs):
    with pytest.raises(WorkflowInputError):
        AgentOrchestrator.plan_steps(WorkflowInput(**request_kwargs))


async def test_parallel_agents_return_results_in_order(agents):
    orchestrator = AgentOrchestrator(agents)

    results = await orchestrator.execute_parallel_agents([
        (agents.keypoint_extractor, KeyPointExtractorInput(content="Coroutines and tasks.")),
        (agents.learning_path_planner, LearningPathInput(key_points=KEY_POINTS)),
    ])

    assert [result.success for result in results] == [True, True]
    assert results[0].metadata["agent"] == "KeyPointExtractor"
    assert results[1].metadata["agent"] == "LearningPathPlanner"

    with pytest.raises(ValueError):
        await orchestrator.execute_parallel_agents([
            (agents.keypoint_extractor, KeyPointExtractorInput(content="a")),
            (agents.keypoint_extractor, KeyPointExtractorInput(content="b")),
        ])


async def test_health_reset_cancel_and_statistics(make_registry, make_llm, make_loader):
    agents = make_registry(make_llm(["unused"]), make_loader(error=DocumentLoadError("down")))
    orchestrator = AgentOrchestrator(agents, max_concurrency=2)

    await orchestrator.execute_workflow(WorkflowInput(type=WorkflowType.FULL_PIPELINE, url=URL))
    health = orchestrator.get_agents_health()

    assert health["DocumentParser"] is False
    assert health["KeyPointExtractor"] is True

    orchestrator.reset_all_agents()
    assert all(orchestrator.get_agents_health().values())
    assert orchestrator.cancel_workflow("session_123") is True

    stats = orchestrator.get_workflow_statistics()
    assert stats["total_agents"] == 5
    assert stats["max_concurrency"] == 2
    assert "full_pipeline" in stats["workflow_types"]
