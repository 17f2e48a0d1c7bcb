# learnflow/workflow/state.py

from typing import Any, Dict, List, Mapping, Optional, TypedDict

from learnflow.agents.base import generate_session_id
from learnflow.schemas.learning import (
    ConversationTurn,
    DocumentContent,
    KeyPoint,
    LearningStep,
    QuizQuestion,
)

DEFAULT_QUESTION_COUNT = 5


class WorkflowState(TypedDict, total=False):
    """
    Accumulated state of one workflow run.

    Each step receives a copy and returns a partial update; ``merge_state``
    produces the next state, so a snapshot handed out earlier never changes.
    """
    session_id: str

    # inputs
    url: Optional[str]
    question: Optional[str]
    user_level: str
    question_count: int
    time_constraint: Optional[str]
    focus_areas: List[str]
    conversation_history: List[ConversationTurn]

    # results
    document_content: Optional[DocumentContent]
    key_points: Optional[List[KeyPoint]]
    learning_path: Optional[List[LearningStep]]
    quiz: Optional[List[QuizQuestion]]
    answer: Optional[str]

    # bookkeeping
    errors: List[str]
    current_step: Optional[str]
    completed_steps: List[str]
    completed: bool
    stalled: bool


APPEND_KEYS = ("errors", "completed_steps")


def merge_state(state: Mapping[str, Any], update: Optional[Mapping[str, Any]]) -> WorkflowState:
    """Return a new state with ``update`` applied; list bookkeeping keys are appended."""
    merged: Dict[str, Any] = dict(state)
    for key, value in (update or {}).items():
        if key in APPEND_KEYS:
            merged[key] = list(state.get(key) or []) + list(value or [])
        else:
            merged[key] = value
    return merged  # type: ignore[return-value]


def initial_state(inputs: Optional[Mapping[str, Any]] = None) -> WorkflowState:
    state: Dict[str, Any] = {
        "session_id": generate_session_id(),
        "user_level": "beginner",
        "question_count": DEFAULT_QUESTION_COUNT,
        "focus_areas": [],
        "conversation_history": [],
    }
    state.update({key: value for key, value in (inputs or {}).items() if value is not None})
    state["errors"] = list(state.get("errors") or [])
    state["completed_steps"] = []
    state["current_step"] = None
    state["completed"] = False
    state["stalled"] = False
    return state  # type: ignore[return-value]
