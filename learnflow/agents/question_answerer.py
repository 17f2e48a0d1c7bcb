"""
Question Answerer Agent

Answers free-form questions about a document using a head+tail excerpt of
its content, the key points and a bounded window of earlier turns.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from learnflow.agents.base import AgentConfig, AgentContext, BaseAgent
from learnflow.agents.keypoint_extractor import format_key_points
from learnflow.prompts.templates import QUESTION_ANSWERING
from learnflow.schemas.learning import ConversationTurn, DocumentContent, Importance, KeyPoint
from learnflow.utils.logger import get_logger
from learnflow.utils.text import clean_text, truncate_middle, truncate_text

logger = get_logger(__name__)

MAX_CONTEXT_LENGTH = 3000
HEAD_RATIO = 0.6
DEFAULT_HISTORY_WINDOW = 10
MAX_QUESTION_LENGTH = 2000
MAX_ANSWER_LENGTH = 1000

FALLBACK_ANSWER = (
    "Sorry, I couldn't produce an answer to that question. "
    "Please try rephrasing it or ask about another part of the document."
)

_LEADING_LABEL_RE = re.compile(r"^\s*(?:answer|回答|答案)\s*[:：]?\s*", re.IGNORECASE)
_ECHO_RE = re.compile(r"(?:please\s+start\s+answering|请开始回答)\s*[:：]?", re.IGNORECASE)

_QUESTION_TYPE_PATTERNS = (
    ("comparison", re.compile(r"\b(difference|differ|compare|comparison|versus|vs\.?)\b|区别|比较", re.IGNORECASE)),
    ("definition", re.compile(r"^(what is|what are|what's|define|meaning of)\b|是什么|什么是", re.IGNORECASE)),
    ("how_to", re.compile(r"^(how (do|can|to|should|would)|steps to)\b|如何|怎么", re.IGNORECASE)),
    ("reason", re.compile(r"^why\b|为什么", re.IGNORECASE)),
    ("example", re.compile(r"\b(example|examples|instance|sample)\b|例子|示例", re.IGNORECASE)),
)

_IMPORTANCE_RANK = {Importance.HIGH: 0, Importance.MEDIUM: 1, Importance.LOW: 2}


@dataclass
class QuestionAnswererInput:
    question: str
    document_content: DocumentContent
    key_points: List[KeyPoint] = field(default_factory=list)
    # None means "use the history carried by the AgentContext"
    conversation_history: Optional[List[ConversationTurn]] = None


def preprocess_question(question: str) -> str:
    return clean_text(question).replace("？", "?")


def format_history(turns: Sequence[ConversationTurn], window: int = DEFAULT_HISTORY_WINDOW) -> str:
    recent = list(turns)[-window:] if window > 0 else []
    if not recent:
        return "(no previous conversation)"
    lines = []
    for index, turn in enumerate(recent, start=1):
        lines.append(f"Q{index}: {turn.question}")
        lines.append(f"A{index}: {turn.answer}")
    return "\n".join(lines)


def postprocess_answer(raw: str) -> str:
    """Strip label and prompt echoes, fall back when empty, cap the length."""
    text = (raw or "").strip()
    text = _ECHO_RE.sub("", text).strip()
    text = _LEADING_LABEL_RE.sub("", text, count=1).strip()
    text = re.sub(r"\n{3,}", "\n\n", text)
    if not text:
        return FALLBACK_ANSWER
    return truncate_text(text, MAX_ANSWER_LENGTH)


def detect_question_type(question: str) -> str:
    text = clean_text(question)
    for question_type, pattern in _QUESTION_TYPE_PATTERNS:
        if pattern.search(text):
            return question_type
    return "general"


def generate_related_questions(key_points: Sequence[KeyPoint], limit: int = 3) -> List[str]:
    templates = (
        "What is {concept}?",
        "How is {concept} used in practice?",
        "Why does {concept} matter?",
    )
    ranked = sorted(key_points, key=lambda point: _IMPORTANCE_RANK.get(point.importance, 1))
    return [
        templates[index % len(templates)].format(concept=point.concept)
        for index, point in enumerate(ranked[:limit])
    ]


def evaluate_answer_quality(answer: str, question: str) -> Dict[str, Any]:
    """Rough 0-100 quality score with feedback hints."""
    score = 0
    feedback: List[str] = []
    text = (answer or "").strip()

    if not text or text == FALLBACK_ANSWER:
        return {"score": 0, "feedback": ["No usable answer was produced."]}

    if len(text) >= 200:
        score += 30
    elif len(text) >= 50:
        score += 20
    else:
        feedback.append("The answer is very short.")

    terms = {word for word in re.findall(r"\w+", question.lower()) if len(word) > 3}
    if terms:
        covered = sum(1 for term in terms if term in text.lower())
        score += round(40 * covered / len(terms))
        if covered < len(terms) / 2:
            feedback.append("The answer does not address most of the question's terms.")
    else:
        score += 20

    if "\n" in text or "```" in text:
        score += 15
    else:
        feedback.append("Structure (paragraphs, lists or code) would improve readability.")

    score += 15  # non-fallback answer
    return {"score": min(score, 100), "feedback": feedback}


class QuestionAnswererAgent(BaseAgent[QuestionAnswererInput, str]):
    """
    Example:
        qa = QuestionAnswererAgent(llm_manager=manager)
        result = await qa.execute(QuestionAnswererInput(question="What is a coroutine?", document_content=doc))
    """

    template_id = QUESTION_ANSWERING

    def __init__(
        self,
        config: Optional[AgentConfig] = None,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        **kwargs,
    ):
        super().__init__(
            config or AgentConfig(
                name="QuestionAnswerer",
                description="Answers questions about a document",
                max_retries=2,
                timeout=25.0,
            ),
            **kwargs,
        )
        self.history_window = history_window

    def validate_input(self, input: QuestionAnswererInput) -> bool:
        return (
            isinstance(input, QuestionAnswererInput)
            and isinstance(input.question, str)
            and bool(input.question.strip())
            and len(input.question) <= MAX_QUESTION_LENGTH
            and isinstance(input.document_content, DocumentContent)
            and bool(input.document_content.content.strip())
        )

    async def do_execute(self, input: QuestionAnswererInput, context: AgentContext) -> str:
        question = preprocess_question(input.question)
        history = input.conversation_history
        if history is None:
            history = context.conversation_history
        document = input.document_content

        prompt = self.render_prompt({
            "title": document.title,
            "content": truncate_middle(document.content, MAX_CONTEXT_LENGTH, HEAD_RATIO),
            "key_points": format_key_points(input.key_points, limit=10),
            "conversation_history": format_history(history, self.history_window),
            "question_type": detect_question_type(question),
            "question": question,
        })
        response = await self.invoke_llm(prompt)

        answer = postprocess_answer(response)
        if answer == FALLBACK_ANSWER:
            logger.warning(f"Empty answer after post-processing for question: {question[:80]}")
        else:
            logger.info(f"Answer generated: length={len(answer)}")
        return answer
