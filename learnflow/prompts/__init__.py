from learnflow.prompts.templates import (
    KEYPOINT_EXTRACTION,
    LEARNING_PATH,
    QUIZ_GENERATION,
    QUESTION_ANSWERING,
    DEFAULT_TEMPLATES,
)

__all__ = [
    "KEYPOINT_EXTRACTION",
    "LEARNING_PATH",
    "QUIZ_GENERATION",
    "QUESTION_ANSWERING",
    "DEFAULT_TEMPLATES",
]
