"""
Fixed-pipeline orchestrator

Each WorkflowType runs as a linear langgraph StateGraph. Every node wraps one
agent-backed step in a per-step timeout; the first failing node records a
StepError and a conditional edge ends the run, keeping whatever earlier
nodes produced.
"""
import asyncio
import operator
import time
from typing import Annotated, Any, Dict, List, Optional, Sequence, Tuple, TypedDict

from langgraph.graph import END, StateGraph
from langsmith import traceable

from learnflow.agents.base import AgentContext, AgentResult, BaseAgent
from learnflow.agents.registry import AgentRegistry
from learnflow.schemas.learning import ConversationTurn, DocumentContent, KeyPoint, LearningStep, QuizQuestion
from learnflow.schemas.workflow import (
    StepError,
    WorkflowInput,
    WorkflowMetadata,
    WorkflowOutcome,
    WorkflowOutput,
    WorkflowResults,
    WorkflowType,
)
from learnflow.utils.logger import get_logger
from learnflow.workflow.concurrency import DEFAULT_MAX_CONCURRENCY, run_with_concurrency
from learnflow.workflow.definitions import (
    ANSWER_QUESTION,
    EXTRACT_KEY_POINTS,
    GENERATE_LEARNING_PATH,
    GENERATE_QUIZ,
    PARSE_DOCUMENT,
    StepHandlers,
)
from learnflow.workflow.graph_executor import WorkflowInputError

logger = get_logger(__name__)

DEFAULT_STEP_TIMEOUT = 60.0
SKIPPABLE_STEPS = frozenset({GENERATE_QUIZ})


class PipelineState(TypedDict, total=False):
    session_id: str
    url: Optional[str]
    question: Optional[str]
    user_level: str
    question_count: int
    time_constraint: Optional[str]
    focus_areas: List[str]
    conversation_history: List[ConversationTurn]
    skip_steps: List[str]
    step_timeout: float

    document_content: Optional[DocumentContent]
    key_points: Optional[List[KeyPoint]]
    learning_path: Optional[List[LearningStep]]
    quiz: Optional[List[QuizQuestion]]
    answer: Optional[str]

    steps_executed: Annotated[List[str], operator.add]
    step_errors: Annotated[List[StepError], operator.add]
    failed: bool


def _route_after_step(state: PipelineState) -> str:
    return "halt" if state.get("failed") else "continue"


class AgentOrchestrator:
    """
    Example:
        orchestrator = AgentOrchestrator(agents)
        output = await orchestrator.execute_workflow(
            WorkflowInput(type=WorkflowType.FULL_PIPELINE, url="https://docs.python.org/3/")
        )
    """

    def __init__(
        self,
        agents: AgentRegistry,
        steps: Optional[StepHandlers] = None,
        step_timeout: float = DEFAULT_STEP_TIMEOUT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        self.agents = agents
        self.steps = steps or StepHandlers(agents)
        self.step_timeout = step_timeout
        self.max_concurrency = max_concurrency
        self._handlers = {
            PARSE_DOCUMENT: self.steps.parse_document,
            EXTRACT_KEY_POINTS: self.steps.extract_key_points,
            GENERATE_LEARNING_PATH: self.steps.generate_learning_path,
            GENERATE_QUIZ: self.steps.generate_quiz,
            ANSWER_QUESTION: self.steps.answer_question,
        }
        self._graphs: Dict[Tuple[str, ...], Any] = {}

    # ---- planning ----

    @staticmethod
    def plan_steps(request: WorkflowInput) -> List[str]:
        """Step names for a request; raises WorkflowInputError on missing input."""
        workflow_type = request.type
        has_document = request.document_content is not None
        has_key_points = bool(request.key_points)

        if workflow_type == WorkflowType.DOCUMENT_ANALYSIS:
            if not (request.url or has_document):
                raise WorkflowInputError("document_analysis requires url or document_content")
            return ([] if has_document else [PARSE_DOCUMENT]) + [EXTRACT_KEY_POINTS]

        if workflow_type == WorkflowType.LEARNING_GENERATION:
            if not (has_key_points or has_document):
                raise WorkflowInputError("learning_generation requires key_points or document_content")
            return ([] if has_key_points else [EXTRACT_KEY_POINTS]) + [GENERATE_LEARNING_PATH]

        if workflow_type == WorkflowType.QUIZ_GENERATION:
            if not (has_document and has_key_points):
                raise WorkflowInputError("quiz_generation requires document_content and key_points")
            return [GENERATE_QUIZ]

        if workflow_type == WorkflowType.INTERACTIVE_QA:
            if not (request.question and has_document):
                raise WorkflowInputError("interactive_qa requires question and document_content")
            return [ANSWER_QUESTION]

        if workflow_type == WorkflowType.FULL_PIPELINE:
            if not request.url:
                raise WorkflowInputError("full_pipeline requires url")
            return [PARSE_DOCUMENT, EXTRACT_KEY_POINTS, GENERATE_LEARNING_PATH, GENERATE_QUIZ]

        raise WorkflowInputError(f"Unknown workflow type: {workflow_type}")

    # ---- graph construction ----

    def _make_node(self, step_name: str):
        handler = self._handlers[step_name]

        async def node(state: PipelineState) -> Dict[str, Any]:
            if step_name in SKIPPABLE_STEPS and step_name in (state.get("skip_steps") or []):
                logger.info(f"Skipping step {step_name} (session={state.get('session_id')})")
                return {"steps_executed": []}

            timeout = state.get("step_timeout") or self.step_timeout
            try:
                update = await asyncio.wait_for(handler(dict(state)), timeout=timeout)
            except (asyncio.TimeoutError, TimeoutError):
                message = f"Step {step_name} timed out after {timeout}s"
            except Exception as e:
                message = str(e) or e.__class__.__name__
            else:
                return {**update, "steps_executed": [step_name]}

            logger.error(f"Pipeline step {step_name} failed: {message}")
            return {"step_errors": [StepError(step=step_name, error=message)], "failed": True}

        return node

    def build_graph(self, step_names: Sequence[str]) -> StateGraph:
        workflow = StateGraph(PipelineState)
        for name in step_names:
            workflow.add_node(name, self._make_node(name))

        workflow.set_entry_point(step_names[0])
        for current, following in zip(step_names, step_names[1:]):
            workflow.add_conditional_edges(current, _route_after_step, {"continue": following, "halt": END})
        workflow.add_edge(step_names[-1], END)
        return workflow

    def _compiled_graph(self, step_names: Sequence[str]):
        key = tuple(step_names)
        if key not in self._graphs:
            self._graphs[key] = self.build_graph(step_names).compile()
        return self._graphs[key]

    # ---- execution ----

    @staticmethod
    def _initial_state(request: WorkflowInput, session_id: str, step_timeout: float) -> PipelineState:
        return {
            "session_id": session_id,
            "url": request.url,
            "question": request.question,
            "user_level": request.user_level,
            "question_count": request.question_count,
            "time_constraint": request.time_constraint,
            "focus_areas": list(request.focus_areas),
            "conversation_history": list(request.conversation_history),
            "skip_steps": list(request.options.skip_steps),
            "step_timeout": step_timeout,
            "document_content": request.document_content,
            "key_points": request.key_points,
            "learning_path": None,
            "quiz": None,
            "answer": None,
            "steps_executed": [],
            "step_errors": [],
            "failed": False,
        }

    @traceable(name="learnflow.execute_workflow")
    async def execute_workflow(self, request: WorkflowInput, session_id: Optional[str] = None) -> WorkflowOutput:
        step_names = self.plan_steps(request)
        if request.type == WorkflowType.FULL_PIPELINE and request.question_count == 0:
            step_names = [name for name in step_names if name != GENERATE_QUIZ]

        session_id = session_id or AgentContext.create().session_id
        step_timeout = request.options.step_timeout or self.step_timeout
        started_at = time.perf_counter()
        logger.info(f"Workflow {request.type.value} started (session={session_id}, steps={step_names})")

        graph = self._compiled_graph(step_names)
        final_state = await graph.ainvoke(self._initial_state(request, session_id, step_timeout))

        errors: List[StepError] = list(final_state.get("step_errors") or [])
        steps_executed: List[str] = list(final_state.get("steps_executed") or [])
        results = WorkflowResults(
            document_content=final_state.get("document_content"),
            key_points=final_state.get("key_points"),
            learning_path=final_state.get("learning_path"),
            answer=final_state.get("answer"),
            quiz=final_state.get("quiz"),
        )

        if not errors:
            outcome = WorkflowOutcome.SUCCEEDED
        elif steps_executed:
            outcome = WorkflowOutcome.PARTIAL
        else:
            outcome = WorkflowOutcome.ABORTED

        execution_time = time.perf_counter() - started_at
        logger.info(
            f"Workflow {request.type.value} finished: outcome={outcome.value}, "
            f"steps={steps_executed}, time={execution_time:.2f}s"
        )
        return WorkflowOutput(
            success=not errors,
            outcome=outcome,
            workflow_type=request.type,
            session_id=session_id,
            results=results,
            metadata=WorkflowMetadata(
                execution_time=execution_time,
                steps_executed=steps_executed,
                errors=errors,
            ),
        )

    async def execute_parallel_agents(
        self,
        tasks: Sequence[Tuple[BaseAgent, Any]],
        context: Optional[AgentContext] = None,
        max_concurrency: Optional[int] = None,
    ) -> List[AgentResult]:
        """Run independent (agent, input) pairs, at most ``max_concurrency`` at a time."""
        agent_ids = [id(agent) for agent, _ in tasks]
        if len(agent_ids) != len(set(agent_ids)):
            raise ValueError("Each parallel task needs its own agent instance")

        context = context or AgentContext.create()
        factories = [
            (lambda agent=agent, payload=payload: agent.execute(payload, context))
            for agent, payload in tasks
        ]
        return await run_with_concurrency(factories, max_concurrency or self.max_concurrency)

    # ---- management ----

    def get_agents_health(self) -> Dict[str, bool]:
        return self.agents.health()

    def reset_all_agents(self) -> None:
        self.agents.reset_all()
        logger.info("All agents reset")

    def cancel_workflow(self, session_id: str) -> bool:
        # Advisory only: running steps are not interrupted.
        logger.info(f"Cancellation requested for workflow session {session_id}")
        return True

    def get_workflow_statistics(self) -> Dict[str, Any]:
        return {
            "total_agents": len(self.agents.names()),
            "agents": self.agents.names(),
            "workflow_types": [workflow_type.value for workflow_type in WorkflowType],
            "max_concurrency": self.max_concurrency,
            "step_timeout": self.step_timeout,
        }
