"""
Workflow steps

StepHandlers turns each agent capability into a state-in / partial-out
coroutine. The same handlers back the langgraph pipeline and the
dependency/condition executor; ``build_default_definitions`` wires them into
the five built-in workflow definitions.
"""
from typing import Any, Dict, List, Mapping, Optional

from learnflow.agents.base import AgentContext, AgentErrorType, AgentResult, generate_session_id
from learnflow.agents.document_parser import DEFAULT_MAX_CONTENT_LENGTH, DocumentParserInput
from learnflow.agents.keypoint_extractor import DEFAULT_MAX_KEY_POINTS, KeyPointExtractorInput
from learnflow.agents.learning_path import LearningPathInput
from learnflow.agents.question_answerer import QuestionAnswererInput
from learnflow.agents.quiz_generator import QuizGeneratorInput
from learnflow.agents.registry import AgentRegistry
from learnflow.schemas.learning import ConversationTurn, DocumentContent, KeyPoint
from learnflow.utils.logger import get_logger
from learnflow.workflow.graph_executor import WorkflowDefinition, WorkflowStep
from learnflow.workflow.state import DEFAULT_QUESTION_COUNT

logger = get_logger(__name__)

PARSE_DOCUMENT = "parse_document"
EXTRACT_KEY_POINTS = "extract_key_points"
GENERATE_LEARNING_PATH = "generate_learning_path"
GENERATE_QUIZ = "generate_quiz"
ANSWER_QUESTION = "answer_question"


class StepExecutionError(RuntimeError):
    """A workflow step could not produce its output"""

    def __init__(self, message: str, error_type: Optional[AgentErrorType] = None):
        super().__init__(message)
        self.error_type = error_type


def planner_level(user_level: Optional[str]) -> str:
    """The extractor and planner only know beginner and advanced."""
    return "advanced" if user_level == "advanced" else "beginner"


def _document(value: Any) -> Optional[DocumentContent]:
    if value is None or isinstance(value, DocumentContent):
        return value
    return DocumentContent.model_validate(value)


def _key_points(value: Any) -> Optional[List[KeyPoint]]:
    if value is None:
        return None
    return [point if isinstance(point, KeyPoint) else KeyPoint.model_validate(point) for point in value]


def _history(value: Any) -> List[ConversationTurn]:
    return [turn if isinstance(turn, ConversationTurn) else ConversationTurn.model_validate(turn) for turn in value or []]


def _unwrap(result: AgentResult) -> Any:
    if not result.success:
        raise StepExecutionError(result.error or "Agent failed without an error message", result.error_type)
    return result.data


class StepHandlers:
    """
    Agent-backed workflow steps.

    Every handler takes a copy of the current workflow state and returns the
    keys it produced. Agent failures are raised as StepExecutionError so the
    caller decides whether the run continues.
    """

    def __init__(
        self,
        agents: AgentRegistry,
        max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH,
        max_key_points: int = DEFAULT_MAX_KEY_POINTS,
    ):
        self.agents = agents
        self.max_content_length = max_content_length
        self.max_key_points = max_key_points

    @staticmethod
    def context_for(state: Mapping[str, Any]) -> AgentContext:
        return AgentContext(
            session_id=state.get("session_id") or generate_session_id(),
            user_level=state.get("user_level") or "beginner",
            conversation_history=_history(state.get("conversation_history")),
        )

    async def parse_document(self, state: Mapping[str, Any]) -> Dict[str, Any]:
        url = state.get("url")
        if not url:
            raise StepExecutionError("No URL provided", AgentErrorType.INVALID_INPUT)

        result = await self.agents.document_parser.execute(
            DocumentParserInput(url=url, include_metadata=True, max_content_length=self.max_content_length),
            self.context_for(state),
        )
        return {"document_content": _unwrap(result)}

    async def extract_key_points(self, state: Mapping[str, Any]) -> Dict[str, Any]:
        document = _document(state.get("document_content"))
        if document is None:
            raise StepExecutionError("No document content available", AgentErrorType.INVALID_INPUT)

        result = await self.agents.keypoint_extractor.execute(
            KeyPointExtractorInput(
                content=document.content,
                title=document.title,
                user_level=planner_level(state.get("user_level")),
                max_key_points=self.max_key_points,
            ),
            self.context_for(state),
        )
        return {"key_points": _unwrap(result)}

    async def generate_learning_path(self, state: Mapping[str, Any]) -> Dict[str, Any]:
        key_points = _key_points(state.get("key_points"))
        if not key_points:
            raise StepExecutionError("No key points available", AgentErrorType.INVALID_INPUT)

        result = await self.agents.learning_path_planner.execute(
            LearningPathInput(
                key_points=key_points,
                user_level=planner_level(state.get("user_level")),
                time_constraint=state.get("time_constraint"),
                focus_areas=list(state.get("focus_areas") or []),
            ),
            self.context_for(state),
        )
        return {"learning_path": _unwrap(result)}

    async def generate_quiz(self, state: Mapping[str, Any]) -> Dict[str, Any]:
        key_points = _key_points(state.get("key_points"))
        if not key_points:
            raise StepExecutionError("No key points available", AgentErrorType.INVALID_INPUT)

        count = state.get("question_count")
        result = await self.agents.quiz_generator.execute(
            QuizGeneratorInput(
                key_points=key_points,
                document_content=_document(state.get("document_content")),
                question_count=DEFAULT_QUESTION_COUNT if count is None else count,
                user_level=state.get("user_level") or "beginner",
            ),
            self.context_for(state),
        )
        return {"quiz": _unwrap(result)}

    async def answer_question(self, state: Mapping[str, Any]) -> Dict[str, Any]:
        question = state.get("question")
        document = _document(state.get("document_content"))
        if not question or document is None:
            raise StepExecutionError("A question and document content are required", AgentErrorType.INVALID_INPUT)

        result = await self.agents.question_answerer.execute(
            QuestionAnswererInput(
                question=question,
                document_content=document,
                key_points=_key_points(state.get("key_points")) or [],
                conversation_history=_history(state.get("conversation_history")),
            ),
            self.context_for(state),
        )
        return {"answer": _unwrap(result)}


def wants_quiz(state: Mapping[str, Any]) -> bool:
    return (state.get("question_count") or 0) > 0


def build_default_definitions(steps: StepHandlers) -> Dict[str, WorkflowDefinition]:
    definitions = [
        WorkflowDefinition(
            id="document_analysis",
            name="Document analysis",
            description="Parse a document and extract its key points",
            steps=[
                WorkflowStep(id="parse", name="Parse document", handler=steps.parse_document),
                WorkflowStep(
                    id="extract",
                    name="Extract key points",
                    handler=steps.extract_key_points,
                    dependencies=["parse"],
                ),
            ],
        ),
        WorkflowDefinition(
            id="learning_generation",
            name="Learning path generation",
            description="Extract key points from document content and plan a learning path",
            steps=[
                WorkflowStep(id="extract", name="Extract key points", handler=steps.extract_key_points),
                WorkflowStep(
                    id="generate_path",
                    name="Generate learning path",
                    handler=steps.generate_learning_path,
                    dependencies=["extract"],
                ),
            ],
        ),
        WorkflowDefinition(
            id="quiz_generation",
            name="Quiz generation",
            description="Generate a quiz from key points",
            steps=[WorkflowStep(id="generate_quiz", name="Generate quiz", handler=steps.generate_quiz)],
        ),
        WorkflowDefinition(
            id="interactive_qa",
            name="Interactive Q&A",
            description="Answer a question about a document",
            steps=[WorkflowStep(id="answer", name="Answer question", handler=steps.answer_question)],
        ),
        WorkflowDefinition(
            id="full_pipeline",
            name="Full learning pipeline",
            description="Parse, extract, plan and quiz in one run",
            steps=[
                WorkflowStep(id="parse", name="Parse document", handler=steps.parse_document),
                WorkflowStep(
                    id="extract",
                    name="Extract key points",
                    handler=steps.extract_key_points,
                    dependencies=["parse"],
                ),
                WorkflowStep(
                    id="generate_path",
                    name="Generate learning path",
                    handler=steps.generate_learning_path,
                    dependencies=["extract"],
                ),
                WorkflowStep(
                    id="generate_quiz",
                    name="Generate quiz",
                    handler=steps.generate_quiz,
                    dependencies=["extract"],
                    condition=wants_quiz,
                ),
            ],
        ),
    ]
    return {definition.id: definition for definition in definitions}
