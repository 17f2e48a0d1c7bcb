# learnflow/schemas/learning.py

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Importance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    SHORT_ANSWER = "short_answer"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class DocumentMetadata(BaseModel):
    """Best-effort facts about a parsed document"""
    word_count: int = Field(0, description="Whitespace-delimited word count", ge=0)
    language: str = Field("unknown", description="Detected language: zh, en or unknown")
    last_modified: Optional[str] = Field(None, description="Source Last-Modified value, if any")


class DocumentContent(BaseModel):
    """Cleaned document produced by the parser; read-only for later steps"""
    title: str = Field(..., description="Document title")
    content: str = Field(..., description="Cleaned, length-capped text")
    source_url: str = Field(..., description="URL the document was loaded from")
    metadata: Optional[DocumentMetadata] = None


class KeyPoint(BaseModel):
    """Single extracted concept"""
    concept: str = Field(..., description="Concept name (unique, case-insensitive)", max_length=100)
    description: str = Field(..., description="Explanation of the concept", max_length=300)
    importance: Importance = Field(Importance.MEDIUM, description="high, medium or low")
    category: Optional[str] = Field(None, description="Optional grouping")
    examples: List[str] = Field(default_factory=list, description="Short examples")


class LearningStep(BaseModel):
    """One stage of a learning path"""
    step: str = Field(..., description="Numbered step title, e.g. '1. Basics'", max_length=100)
    time: str = Field(..., description="Time estimate in minutes, e.g. '45 minutes'")
    description: str = Field(..., description="What to learn in this step", max_length=500)
    code: Optional[str] = Field(None, description="Optional code example")
    prerequisites: List[str] = Field(default_factory=list)
    resources: List[str] = Field(default_factory=list)


class QuizQuestion(BaseModel):
    """Single quiz question; shape rules are enforced by the quiz generator"""
    id: str = Field(..., description="Question id (q1..qN)")
    type: QuestionType = Field(QuestionType.MULTIPLE_CHOICE, description="Question type")
    question: str = Field(..., description="Question text")
    options: List[str] = Field(default_factory=list, description="Answer options (empty for fill_blank / short_answer)")
    correct_answer: str = Field(..., description="Correct answer; a member of options for choice types")
    explanation: str = Field("", description="Why the answer is correct")
    difficulty: Difficulty = Field(Difficulty.MEDIUM, description="easy, medium or hard")
    concept: Optional[str] = Field(None, description="Key concept being tested")
    points: int = Field(1, description="Score weight", ge=1)


class ConversationTurn(BaseModel):
    """A question/answer pair from an earlier exchange"""
    question: str
    answer: str
