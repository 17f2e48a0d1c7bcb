from learnflow.agents.base import (
    AgentConfig,
    AgentContext,
    AgentError,
    AgentErrorType,
    AgentResult,
    AgentStatus,
    BaseAgent,
    classify_error,
)
from learnflow.agents.events import AgentEvent, AgentEventBus, AgentEventType
from learnflow.agents.document_parser import DocumentParserAgent, DocumentParserInput
from learnflow.agents.keypoint_extractor import KeyPointExtractorAgent, KeyPointExtractorInput
from learnflow.agents.learning_path import LearningPathInput, LearningPathPlannerAgent
from learnflow.agents.quiz_generator import QuizGeneratorAgent, QuizGeneratorInput
from learnflow.agents.question_answerer import QuestionAnswererAgent, QuestionAnswererInput
from learnflow.agents.registry import AgentRegistry

__all__ = [
    "AgentConfig",
    "AgentContext",
    "AgentError",
    "AgentErrorType",
    "AgentResult",
    "AgentStatus",
    "BaseAgent",
    "classify_error",
    "AgentEvent",
    "AgentEventBus",
    "AgentEventType",
    "DocumentParserAgent",
    "DocumentParserInput",
    "KeyPointExtractorAgent",
    "KeyPointExtractorInput",
    "LearningPathInput",
    "LearningPathPlannerAgent",
    "QuizGeneratorAgent",
    "QuizGeneratorInput",
    "QuestionAnswererAgent",
    "QuestionAnswererInput",
    "AgentRegistry",
]
