# learnflow/prompts/templates.py
"""
Default prompt templates (f-string syntax, literal braces doubled).
"""

KEYPOINT_EXTRACTION = "keypoint_extraction"
LEARNING_PATH = "learning_path"
QUIZ_GENERATION = "quiz_generation"
QUESTION_ANSWERING = "question_answering"


KEYPOINT_EXTRACTION_TEMPLATE = """You are an expert technical document analyst. Extract the core concepts and key points from the document below.

Document title: {title}
Document content:
{content}

User level: {user_level}
Maximum number of key points: {max_key_points}

Guidelines:
1. For beginners: focus on foundational concepts, plain explanations and practical examples.
2. For advanced users: focus on advanced features, best practices and deeper technical detail.
3. Order the key points from most to least important.

Return ONLY a JSON array in this format:
[
  {{
    "concept": "concept name",
    "description": "detailed description",
    "importance": "high|medium|low",
    "category": "optional category",
    "examples": ["example 1", "example 2"]
  }}
]
"""


LEARNING_PATH_TEMPLATE = """You are an experienced technical instructor. Design a staged learning path from the key points below.

Key points:
{key_points}

User level: {user_level}
Time constraint: {time_constraint}
Focus areas: {focus_areas}

Guidelines:
1. Between 3 and 8 steps, ordered from fundamentals to application.
2. Give every step a realistic time estimate in minutes.
3. Include a short code example where it helps.

Return ONLY a JSON array in this format:
[
  {{
    "step": "step title",
    "time": "estimated time, e.g. 30 minutes",
    "description": "what to learn and how",
    "code": "optional code example",
    "prerequisites": ["prerequisite"],
    "resources": ["resource"]
  }}
]
"""


QUIZ_GENERATION_TEMPLATE = """You are an assessment designer. Write quiz questions for the learning material below.

Document title: {title}
Document content:
{content}

Key concepts:
{key_points}

Requirements:
- Question types: {question_types}
- Number of questions: {question_count}
- Difficulty: {difficulty_level}
- User level: {user_level}

Rules:
- multiple_choice: 4 options, correct_answer must equal one option exactly.
- true_false: options are ["True", "False"].
- fill_blank: mark the blank with _____ and give no options.
- short_answer: no options, a concise reference answer.

Return ONLY a JSON array in this format:
[
  {{
    "id": "q1",
    "type": "multiple_choice",
    "question": "question text",
    "options": ["option A", "option B", "option C", "option D"],
    "correct_answer": "option A",
    "explanation": "why this is correct",
    "difficulty": "easy|medium|hard",
    "concept": "related concept",
    "points": 1
  }}
]
"""


QUESTION_ANSWERING_TEMPLATE = """You are a patient technical tutor. Answer the user's question using the document and the conversation so far.

Document title: {title}
Document content:
{content}

Key points:
{key_points}

Conversation history:
{conversation_history}

Question type: {question_type}
Question: {question}

Answer clearly and accurately. If the document does not cover the question, say so and give your best general guidance.

Please start answering:
"""


DEFAULT_TEMPLATES = {
    KEYPOINT_EXTRACTION: KEYPOINT_EXTRACTION_TEMPLATE,
    LEARNING_PATH: LEARNING_PATH_TEMPLATE,
    QUIZ_GENERATION: QUIZ_GENERATION_TEMPLATE,
    QUESTION_ANSWERING: QUESTION_ANSWERING_TEMPLATE,
}
