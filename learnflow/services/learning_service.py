# learnflow/services/learning_service.py

from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Union

from learnflow.agents.base import AgentContext, AgentResult
from learnflow.agents.document_parser import DocumentParserInput
from learnflow.agents.keypoint_extractor import KeyPointExtractorInput
from learnflow.agents.learning_path import LearningPathInput
from learnflow.agents.question_answerer import QuestionAnswererInput
from learnflow.agents.quiz_generator import QuizGeneratorInput
from learnflow.agents.registry import AgentRegistry
from learnflow.schemas.learning import DocumentContent, KeyPoint, LearningStep, QuizQuestion
from learnflow.schemas.workflow import WorkflowInput, WorkflowOutput
from learnflow.utils.logger import get_logger
from learnflow.workflow.graph_executor import WorkflowExecutor, WorkflowInputError
from learnflow.workflow.pipeline import AgentOrchestrator
from learnflow.workflow.state import WorkflowState

logger = get_logger(__name__)


class LearningWorkflowService:
    """
    Entry point for callers (API layer, scripts).

    Wraps the fixed pipeline, the graph executor and single-agent calls
    behind one object built from an AgentRegistry.
    """

    def __init__(self, agents: AgentRegistry, orchestrator: AgentOrchestrator, executor: WorkflowExecutor):
        self.agents = agents
        self.orchestrator = orchestrator
        self.executor = executor

    # ---- workflows ----

    async def run_workflow(self, workflow_type: str, inputs: Optional[Mapping[str, Any]] = None) -> WorkflowState:
        return await self.executor.run(workflow_type, inputs or {})

    def stream_workflow(self, workflow_type: str, inputs: Optional[Mapping[str, Any]] = None) -> AsyncIterator[WorkflowState]:
        return self.executor.stream(workflow_type, inputs or {})

    async def run_pipeline(self, request: Union[WorkflowInput, Mapping[str, Any]]) -> WorkflowOutput:
        if not isinstance(request, WorkflowInput):
            try:
                request = WorkflowInput.model_validate(request)
            except ValueError as e:
                raise WorkflowInputError(f"Invalid workflow request: {e}") from e
        return await self.orchestrator.execute_workflow(request)

    def get_available_workflows(self) -> List[Dict[str, Any]]:
        return self.executor.get_available_workflows()

    def get_workflow_visualization(self, workflow_type: str) -> str:
        return self.executor.get_workflow_visualization(workflow_type)

    def get_agents_health(self) -> Dict[str, bool]:
        return self.orchestrator.get_agents_health()

    def cancel_workflow(self, session_id: str) -> bool:
        return self.orchestrator.cancel_workflow(session_id)

    # ---- single capabilities ----

    async def parse_document(self, url: str, include_metadata: bool = True,
                             context: Optional[AgentContext] = None) -> AgentResult[DocumentContent]:
        return await self.agents.document_parser.execute(
            DocumentParserInput(url=url, include_metadata=include_metadata), context
        )

    async def extract_key_points(self, document: DocumentContent, user_level: str = "beginner",
                                 context: Optional[AgentContext] = None) -> AgentResult[List[KeyPoint]]:
        return await self.agents.keypoint_extractor.execute(
            KeyPointExtractorInput(content=document.content, title=document.title, user_level=user_level),
            context,
        )

    async def plan_learning_path(self, key_points: List[KeyPoint], user_level: str = "beginner",
                                 time_constraint: Optional[str] = None,
                                 context: Optional[AgentContext] = None) -> AgentResult[List[LearningStep]]:
        return await self.agents.learning_path_planner.execute(
            LearningPathInput(key_points=key_points, user_level=user_level, time_constraint=time_constraint),
            context,
        )

    async def generate_quiz(self, key_points: List[KeyPoint], document: Optional[DocumentContent] = None,
                            question_count: int = 5, difficulty_level: str = "mixed",
                            context: Optional[AgentContext] = None) -> AgentResult[List[QuizQuestion]]:
        return await self.agents.quiz_generator.execute(
            QuizGeneratorInput(
                key_points=key_points,
                document_content=document,
                question_count=question_count,
                difficulty_level=difficulty_level,
            ),
            context,
        )

    async def answer_question(self, question: str, document: DocumentContent,
                              key_points: Optional[List[KeyPoint]] = None,
                              context: Optional[AgentContext] = None) -> AgentResult[str]:
        return await self.agents.question_answerer.execute(
            QuestionAnswererInput(question=question, document_content=document, key_points=key_points or []),
            context,
        )
