# learnflow/schemas/workflow.py

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from learnflow.schemas.learning import (
    ConversationTurn,
    DocumentContent,
    KeyPoint,
    LearningStep,
    QuizQuestion,
)


class WorkflowType(str, Enum):
    DOCUMENT_ANALYSIS = "document_analysis"
    LEARNING_GENERATION = "learning_generation"
    QUIZ_GENERATION = "quiz_generation"
    INTERACTIVE_QA = "interactive_qa"
    FULL_PIPELINE = "full_pipeline"


class WorkflowOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    ABORTED = "aborted"
    STALLED = "stalled"


class WorkflowOptions(BaseModel):
    skip_steps: List[str] = Field(default_factory=list, description="Only 'generate_quiz' is skippable")
    step_timeout: Optional[float] = Field(None, description="Per-step timeout override (seconds)", gt=0)


class WorkflowInput(BaseModel):
    """Request for the fixed-pipeline orchestrator"""
    type: WorkflowType
    url: Optional[str] = None
    document_content: Optional[DocumentContent] = None
    key_points: Optional[List[KeyPoint]] = None
    question: Optional[str] = None
    user_level: str = Field("beginner", description="beginner, intermediate or advanced")
    question_count: int = Field(5, ge=0, le=20)
    time_constraint: Optional[str] = None
    focus_areas: List[str] = Field(default_factory=list)
    conversation_history: List[ConversationTurn] = Field(default_factory=list)
    options: WorkflowOptions = Field(default_factory=WorkflowOptions)


class StepError(BaseModel):
    step: str
    error: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class WorkflowResults(BaseModel):
    document_content: Optional[DocumentContent] = None
    key_points: Optional[List[KeyPoint]] = None
    learning_path: Optional[List[LearningStep]] = None
    answer: Optional[str] = None
    quiz: Optional[List[QuizQuestion]] = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.document_content, self.key_points, self.learning_path, self.answer, self.quiz)
        )


class WorkflowMetadata(BaseModel):
    execution_time: float = Field(0.0, description="Seconds")
    steps_executed: List[str] = Field(default_factory=list)
    errors: List[StepError] = Field(default_factory=list)


class WorkflowOutput(BaseModel):
    success: bool
    outcome: WorkflowOutcome
    workflow_type: WorkflowType
    session_id: str
    results: WorkflowResults = Field(default_factory=WorkflowResults)
    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)
