# learnflow/agents/quiz_generator.py
"""
Quiz Generator Agent

Generates questions from key points and (truncated) document content, then
enforces per-type shape rules, removes near-duplicates, rebalances the
difficulty mix and fills any shortfall with questions synthesized from the
key points.
"""
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

from learnflow.agents.base import AgentConfig, AgentContext, AgentError, AgentErrorType, BaseAgent
from learnflow.agents.keypoint_extractor import format_key_points
from learnflow.core.structured_output import recover_structured_output
from learnflow.prompts.templates import QUIZ_GENERATION
from learnflow.schemas.learning import Difficulty, DocumentContent, KeyPoint, QuestionType, QuizQuestion
from learnflow.utils.logger import get_logger
from learnflow.utils.text import cap_text, clean_text, truncate_paragraphs

logger = get_logger(__name__)

DEFAULT_QUESTION_COUNT = 5
MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 20
MAX_CONTENT_LENGTH = 2500
MAX_OPTIONS = 6

VALID_DIFFICULTY_LEVELS = ("easy", "medium", "hard", "mixed")
VALID_USER_LEVELS = ("beginner", "intermediate", "advanced")
DEFAULT_QUESTION_TYPES = [QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE]

TRUE_FALSE_OPTIONS = ["True", "False"]
BLANK_MARKER = "_____"
DEFAULT_EXPLANATION = "No explanation provided."

# target share of easy / hard questions; medium takes the rest
EASY_RATIO = 0.3
HARD_RATIO = 0.2

_TYPE_ALIASES = {
    "multiple_choice": QuestionType.MULTIPLE_CHOICE,
    "multiple-choice": QuestionType.MULTIPLE_CHOICE,
    "multiplechoice": QuestionType.MULTIPLE_CHOICE,
    "single_choice": QuestionType.MULTIPLE_CHOICE,
    "choice": QuestionType.MULTIPLE_CHOICE,
    "mcq": QuestionType.MULTIPLE_CHOICE,
    "true_false": QuestionType.TRUE_FALSE,
    "true-false": QuestionType.TRUE_FALSE,
    "true/false": QuestionType.TRUE_FALSE,
    "truefalse": QuestionType.TRUE_FALSE,
    "boolean": QuestionType.TRUE_FALSE,
    "fill_blank": QuestionType.FILL_BLANK,
    "fill_in_the_blank": QuestionType.FILL_BLANK,
    "fill-in-the-blank": QuestionType.FILL_BLANK,
    "cloze": QuestionType.FILL_BLANK,
    "short_answer": QuestionType.SHORT_ANSWER,
    "short-answer": QuestionType.SHORT_ANSWER,
    "open": QuestionType.SHORT_ANSWER,
}
_TRUE_WORDS = {"true", "t", "yes", "y", "correct", "right", "正确", "对"}
_FALSE_WORDS = {"false", "f", "no", "n", "incorrect", "wrong", "错误", "错"}

_OPTION_PREFIX_RE = re.compile(r"^\s*\(?([A-Ha-h])[.)\]:]\s+")
_LETTER_ANSWER_RE = re.compile(r"^\(?([A-Ha-h])(?:[.)\]:]|\s|$)")
_BLANK_RE = re.compile(r"_{3,}")
_OPTION_LINE_RE = re.compile(r"^\(?([A-Ha-h])[.)\]:]\s*(?P<value>.+)$")
_ANSWER_LINE_RE = re.compile(r"^(?:correct\s+answer|answer|答案|正确答案)\s*[:：]\s*(?P<value>.+)$", re.IGNORECASE)
_EXPLANATION_LINE_RE = re.compile(r"^(?:explanation|解释|解析)\s*[:：]\s*(?P<value>.+)$", re.IGNORECASE)


@dataclass
class QuizGeneratorInput:
    key_points: List[KeyPoint]
    document_content: Optional[DocumentContent] = None
    question_count: int = DEFAULT_QUESTION_COUNT
    question_types: List[QuestionType] = field(default_factory=lambda: list(DEFAULT_QUESTION_TYPES))
    difficulty_level: str = "mixed"
    user_level: str = "beginner"


def question_key(text: str) -> str:
    """Dedup key: lowercase with whitespace and punctuation removed."""
    return re.sub(r"[\W_]+", "", (text or "").lower())


def coerce_question_type(value: Any, options: Sequence[str]) -> QuestionType:
    if isinstance(value, QuestionType):
        return value
    key = str(value or "").strip().lower().replace(" ", "_")
    if key in _TYPE_ALIASES:
        return _TYPE_ALIASES[key]
    return QuestionType.MULTIPLE_CHOICE if len(options) >= 2 else QuestionType.SHORT_ANSWER


def coerce_difficulty(value: Any, default: Difficulty = Difficulty.MEDIUM) -> Difficulty:
    if isinstance(value, Difficulty):
        return value
    try:
        return Difficulty(str(value or "").strip().lower())
    except ValueError:
        return default


def coerce_bool_answer(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "True" if value else "False"
    word = clean_text(str(value or "")).lower().rstrip(".")
    if word in _TRUE_WORDS:
        return "True"
    if word in _FALSE_WORDS:
        return "False"
    return None


def _clean_options(raw: Any) -> List[str]:
    if isinstance(raw, dict):
        raw = list(raw.values())
    if not isinstance(raw, (list, tuple)):
        return []

    options: List[str] = []
    seen = set()
    for entry in raw:
        if not isinstance(entry, (str, int, float)) or isinstance(entry, bool):
            continue
        option = cap_text(_OPTION_PREFIX_RE.sub("", str(entry)), 200)
        if option and option.lower() not in seen:
            seen.add(option.lower())
            options.append(option)
    return options[:MAX_OPTIONS]


def resolve_choice(answer: Any, options: Sequence[str]) -> Optional[str]:
    """Map an answer given as option text, letter or 0-based index onto an option."""
    if isinstance(answer, bool) or answer is None:
        return None
    if isinstance(answer, int):
        return options[answer] if 0 <= answer < len(options) else None

    text = cap_text(str(answer), 200)
    if not text:
        return None
    for option in options:
        if option == text:
            return option
    lowered = text.lower()
    for option in options:
        if option.lower() == lowered:
            return option

    stripped = _OPTION_PREFIX_RE.sub("", text)
    if stripped != text:
        for option in options:
            if option.lower() == stripped.lower():
                return option

    letter = _LETTER_ANSWER_RE.match(text)
    if letter:
        index = ord(letter.group(1).upper()) - ord("A")
        if 0 <= index < len(options):
            return options[index]
    return None


def validate_question(item: Any, fallback_difficulty: Difficulty = Difficulty.MEDIUM) -> Optional[Dict[str, Any]]:
    """
    Enforce the shape rules of the question's type. Returns the cleaned
    question fields, or None when the question cannot be repaired.
    """
    if isinstance(item, QuizQuestion):
        item = item.model_dump()
    if not isinstance(item, dict):
        return None

    question = cap_text(str(item.get("question") or item.get("text") or ""), 500)
    if not question:
        return None

    options = _clean_options(item.get("options") or item.get("choices") or [])
    question_type = coerce_question_type(item.get("type"), options)
    answer = next(
        (item[key] for key in ("correct_answer", "correctAnswer", "answer") if item.get(key) is not None),
        None,
    )

    if question_type == QuestionType.MULTIPLE_CHOICE:
        if len(options) < 2:
            return None
        correct = resolve_choice(answer, options)
    elif question_type == QuestionType.TRUE_FALSE:
        options = list(TRUE_FALSE_OPTIONS)
        correct = coerce_bool_answer(answer)
    else:
        options = []
        correct = cap_text(str(answer), 200) if answer is not None else None
        if question_type == QuestionType.FILL_BLANK:
            question = _BLANK_RE.sub(BLANK_MARKER, question)
            if BLANK_MARKER not in question:
                question = f"{question} {BLANK_MARKER}"

    if not correct:
        return None

    try:
        points = int(item.get("points") or 1)
    except (TypeError, ValueError):
        points = 1

    return {
        "type": question_type,
        "question": question,
        "options": options,
        "correct_answer": correct,
        "explanation": cap_text(str(item.get("explanation") or ""), 500) or DEFAULT_EXPLANATION,
        "difficulty": coerce_difficulty(item.get("difficulty"), fallback_difficulty),
        "concept": cap_text(str(item.get("concept") or ""), 100) or None,
        "points": min(max(points, 1), 10),
    }


def question_from_marked(item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Map a heuristic ``{"title", "lines"}`` item onto question fields."""
    question = (item.get("title") or "").strip()
    if not question:
        return None

    options: List[str] = []
    answer = None
    explanation = None
    for line in item.get("lines", []):
        option_match = _OPTION_LINE_RE.match(line)
        answer_match = _ANSWER_LINE_RE.match(line)
        explanation_match = _EXPLANATION_LINE_RE.match(line)
        if answer_match:
            answer = answer_match.group("value").strip()
        elif explanation_match:
            explanation = explanation_match.group("value").strip()
        elif option_match:
            options.append(option_match.group("value").strip())

    question_type = None
    if not options and coerce_bool_answer(answer) is not None:
        question_type = QuestionType.TRUE_FALSE
    elif not options and _BLANK_RE.search(question):
        question_type = QuestionType.FILL_BLANK
    return {
        "question": question,
        "type": question_type,
        "options": options,
        "correct_answer": answer,
        "explanation": explanation,
    }


def dedupe_questions(questions: List[Dict[str, Any]], seen: Optional[set] = None) -> List[Dict[str, Any]]:
    seen = set() if seen is None else seen
    unique = []
    for question in questions:
        key = question_key(question["question"])
        if key and key not in seen:
            seen.add(key)
            unique.append(question)
    return unique


def difficulty_quotas(target: int) -> Dict[Difficulty, int]:
    easy = math.ceil(target * EASY_RATIO)
    hard = math.ceil(target * HARD_RATIO)
    return {
        Difficulty.EASY: easy,
        Difficulty.MEDIUM: max(target - easy - hard, 0),
        Difficulty.HARD: hard,
    }


def rebalance_difficulty(questions: List[Dict[str, Any]], target: int) -> List[Dict[str, Any]]:
    """
    Pick up to ``target`` questions, filling the easy/medium/hard quotas
    first and topping up from the remaining questions in their original order.
    """
    quotas = difficulty_quotas(target)
    selected: List[Dict[str, Any]] = []
    for difficulty in (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD):
        bucket = [q for q in questions if q["difficulty"] == difficulty]
        selected.extend(bucket[:quotas[difficulty]])

    chosen = {id(q) for q in selected}
    leftovers = [q for q in questions if id(q) not in chosen]
    return (selected + leftovers)[:target]


def _filler_candidates(
    key_points: Sequence[KeyPoint],
    question_types: Sequence[QuestionType],
    difficulty: Difficulty,
) -> Iterator[Dict[str, Any]]:
    concepts = [point.concept for point in key_points]
    for index, point in enumerate(key_points):
        explanation = cap_text(f"{point.concept}: {point.description}", 500)
        for question_type in question_types:
            base = {"type": question_type, "difficulty": difficulty, "concept": point.concept, "explanation": explanation}
            if question_type == QuestionType.MULTIPLE_CHOICE and len(concepts) >= 2:
                distractors = [c for c in concepts[index + 1:] + concepts[:index] if c != point.concept][:3]
                options = list(distractors)
                options.insert(index % (len(distractors) + 1), point.concept)
                yield {**base, "question": f"Which concept matches this description: {point.description}",
                       "options": options, "correct_answer": point.concept}
            elif question_type == QuestionType.TRUE_FALSE:
                yield {**base, "question": f"True or false: {point.description}", "correct_answer": "True"}
            elif question_type == QuestionType.FILL_BLANK:
                yield {**base, "question": f"{BLANK_MARKER} is described as: {point.description}",
                       "correct_answer": point.concept}
            elif question_type == QuestionType.SHORT_ANSWER:
                yield {**base, "question": f"In your own words, explain {point.concept}.",
                       "correct_answer": point.description}


def _generic_candidate(question_type: QuestionType, review: int, title: str, difficulty: Difficulty) -> Dict[str, Any]:
    base = {"type": question_type, "difficulty": difficulty}
    if question_type == QuestionType.MULTIPLE_CHOICE:
        return {**base, "question": f"Review question {review}: which material is this quiz based on?",
                "options": [title, "None of the above"], "correct_answer": title}
    if question_type == QuestionType.FILL_BLANK:
        return {**base, "question": f"Review question {review}: this quiz is based on {BLANK_MARKER}.",
                "correct_answer": title}
    if question_type == QuestionType.SHORT_ANSWER:
        return {**base, "question": f"Review question {review}: summarize one idea from '{title}'.",
                "correct_answer": f"Any key idea from {title}"}
    return {**base, "question": f"True or false: review question {review} is based on '{title}'.",
            "correct_answer": "True"}


def build_filler_questions(
    key_points: Sequence[KeyPoint],
    question_types: Sequence[QuestionType],
    count: int,
    seen_keys: set,
    difficulty: Difficulty = Difficulty.MEDIUM,
    title: str = "this material",
) -> List[Dict[str, Any]]:
    """Synthesize up to ``count`` valid questions not already in ``seen_keys``."""
    fillers: List[Dict[str, Any]] = []
    if count <= 0:
        return fillers

    for candidate in _filler_candidates(key_points, question_types, difficulty):
        validated = validate_question(candidate, difficulty)
        if validated:
            fillers.extend(dedupe_questions([validated], seen_keys))
        if len(fillers) >= count:
            return fillers[:count]

    generic_type = question_types[0] if question_types else QuestionType.TRUE_FALSE
    review = 1
    while len(fillers) < count:
        generic = (
            validate_question(_generic_candidate(generic_type, review, title, difficulty), difficulty)
            or validate_question(_generic_candidate(QuestionType.TRUE_FALSE, review, title, difficulty), difficulty)
        )
        fillers.extend(dedupe_questions([generic], seen_keys))
        review += 1
    return fillers


def generate_quiz_statistics(questions: Sequence[QuizQuestion]) -> Dict[str, Any]:
    by_type: Dict[str, int] = {}
    by_difficulty: Dict[str, int] = {}
    concepts: List[str] = []
    for question in questions:
        by_type[question.type.value] = by_type.get(question.type.value, 0) + 1
        by_difficulty[question.difficulty.value] = by_difficulty.get(question.difficulty.value, 0) + 1
        if question.concept and question.concept not in concepts:
            concepts.append(question.concept)

    total_points = sum(question.points for question in questions)
    return {
        "total_questions": len(questions),
        "total_points": total_points,
        "average_points": round(total_points / len(questions), 2) if questions else 0.0,
        "by_type": by_type,
        "by_difficulty": by_difficulty,
        "concepts": concepts,
    }


def _answers_match(question: QuizQuestion, answer: Any) -> bool:
    if answer is None:
        return False
    if question.type == QuestionType.TRUE_FALSE:
        return coerce_bool_answer(answer) == question.correct_answer
    if question.type == QuestionType.MULTIPLE_CHOICE:
        return resolve_choice(answer, question.options) == question.correct_answer
    return clean_text(str(answer)).lower() == clean_text(question.correct_answer).lower()


def validate_quiz_answers(questions: Sequence[QuizQuestion], answers: Dict[str, Any]) -> Dict[str, Any]:
    """
    Score submitted answers (keyed by question id).

    Returns:
        Dict with score, total_points, percentage, correct_count and per-question results
    """
    results = []
    score = 0
    for question in questions:
        user_answer = answers.get(question.id)
        correct = _answers_match(question, user_answer)
        earned = question.points if correct else 0
        score += earned
        results.append({
            "question_id": question.id,
            "correct": correct,
            "user_answer": user_answer,
            "correct_answer": question.correct_answer,
            "points_earned": earned,
            "explanation": question.explanation,
        })

    total_points = sum(question.points for question in questions)
    return {
        "score": score,
        "total_points": total_points,
        "percentage": round(score / total_points * 100, 1) if total_points else 0.0,
        "correct_count": sum(1 for result in results if result["correct"]),
        "results": results,
    }


class QuizGeneratorAgent(BaseAgent[QuizGeneratorInput, List[QuizQuestion]]):
    """
    Example:
        quiz_agent = QuizGeneratorAgent(llm_manager=manager)
        result = await quiz_agent.execute(
            QuizGeneratorInput(key_points=points, document_content=doc, question_count=5)
        )
    """

    template_id = QUIZ_GENERATION

    def __init__(self, config: Optional[AgentConfig] = None, **kwargs):
        super().__init__(
            config or AgentConfig(
                name="QuizGenerator",
                description="Generates typed quiz questions from key points",
                max_retries=2,
                timeout=30.0,
            ),
            **kwargs,
        )

    def validate_input(self, input: QuizGeneratorInput) -> bool:
        if not isinstance(input, QuizGeneratorInput):
            return False
        if not input.key_points or not all(isinstance(point, KeyPoint) for point in input.key_points):
            return False
        if not isinstance(input.question_count, int) or not MIN_QUESTION_COUNT <= input.question_count <= MAX_QUESTION_COUNT:
            return False
        if not input.question_types:
            return False
        try:
            [QuestionType(question_type) for question_type in input.question_types]
        except ValueError:
            return False
        return input.difficulty_level in VALID_DIFFICULTY_LEVELS and input.user_level in VALID_USER_LEVELS

    async def do_execute(self, input: QuizGeneratorInput, context: AgentContext) -> List[QuizQuestion]:
        question_types = [QuestionType(question_type) for question_type in input.question_types]
        document = input.document_content
        fallback_difficulty = (
            Difficulty.MEDIUM if input.difficulty_level == "mixed" else Difficulty(input.difficulty_level)
        )

        prompt = self.render_prompt({
            "title": document.title if document else "Untitled Document",
            "content": truncate_paragraphs(document.content, MAX_CONTENT_LENGTH) if document else "(not provided)",
            "key_points": format_key_points(input.key_points),
            "question_types": ", ".join(question_type.value for question_type in question_types),
            "question_count": input.question_count,
            "difficulty_level": input.difficulty_level,
            "user_level": input.user_level,
        })
        response = await self.invoke_llm(prompt)

        recovered = recover_structured_output(response, item_mapper=question_from_marked)
        validated = [q for q in (validate_question(item, fallback_difficulty) for item in recovered.items) if q]
        seen_keys: set = set()
        unique = dedupe_questions(validated, seen_keys)
        if not unique:
            raise AgentError(
                AgentErrorType.PARSING_ERROR,
                "No valid quiz questions could be extracted from the model response",
                {"strategy": recovered.strategy},
            )

        if input.difficulty_level == "mixed":
            selected = rebalance_difficulty(unique, input.question_count)
        else:
            selected = unique[:input.question_count]

        shortfall = input.question_count - len(selected)
        if shortfall > 0:
            logger.info(f"Quiz short by {shortfall} questions, synthesizing from key points")
            selected_keys = {question_key(q["question"]) for q in selected}
            selected.extend(
                build_filler_questions(
                    input.key_points,
                    question_types,
                    shortfall,
                    selected_keys,
                    difficulty=fallback_difficulty,
                    title=document.title if document else "this material",
                )
            )

        questions = [QuizQuestion(id=f"q{index}", **fields) for index, fields in enumerate(selected, start=1)]
        logger.info(f"Quiz generated: {len(questions)} questions (strategy={recovered.strategy})")
        return questions
