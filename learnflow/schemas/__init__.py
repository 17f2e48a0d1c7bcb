from learnflow.schemas.learning import (
    Importance,
    QuestionType,
    Difficulty,
    DocumentMetadata,
    DocumentContent,
    KeyPoint,
    LearningStep,
    QuizQuestion,
    ConversationTurn,
)
from learnflow.schemas.workflow import (
    WorkflowType,
    WorkflowOutcome,
    WorkflowOptions,
    WorkflowInput,
    StepError,
    WorkflowResults,
    WorkflowMetadata,
    WorkflowOutput,
)

__all__ = [
    "Importance",
    "QuestionType",
    "Difficulty",
    "DocumentMetadata",
    "DocumentContent",
    "KeyPoint",
    "LearningStep",
    "QuizQuestion",
    "ConversationTurn",
    "WorkflowType",
    "WorkflowOutcome",
    "WorkflowOptions",
    "WorkflowInput",
    "StepError",
    "WorkflowResults",
    "WorkflowMetadata",
    "WorkflowOutput",
]
