"""
Prompt templates for quiz and flashcard generation.

Keeping templates in a separate module makes them easy to iterate on
without touching generation logic.
"""
from __future__ import annotations

from src.schemas import GenerationKind

# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates educational content in JSON format."
)

# ---------------------------------------------------------------------------
# Quiz prompt
# ---------------------------------------------------------------------------

QUIZ_PROMPT = """\
Convert the following text into a set of quiz questions in JSON format using the \
structure strictly as specified below. You must not deviate from the format. Make sure \
to include all relevant information from the provided text that pertains to the lecture \
(e.g., key points, concepts, examples, and mathematical equations).

The quiz format is as follows:

[
  {{
    "question": "<Quiz question>",
    "options": ["<Option 1>", "<Option 2>", "<Option 3>", "<Option 4>"],
    "correctAnswer": "<Correct option>",
    "explanation": "<Optional explanation>"
  }}
]

Instructions for Quiz Generation:
1. Each quiz question should be phrased clearly and relate to key concepts, examples, or \
mathematical problems from the lecture.
2. Provide exactly four answer options for each question, one of which is the correct answer.
3. The correctAnswer field must repeat the text of the correct option.
4. Explanation is optional but recommended for complex topics or math problems.
5. If mathematical content is included, format equations properly using markdown.
6. Explanation must not exceed 500 characters.
7. Try to cover everything in the chunk if possible and meet the requirements.
8. Strictly use the given format without deviating from it.

Text Chunk:

{chunk}"""

# ---------------------------------------------------------------------------
# Flashcard prompt
# ---------------------------------------------------------------------------

FLASHCARD_PROMPT = """\
Convert the following text into a set of flashcards in JSON format using the structure \
strictly as specified below. You must not deviate from the format. Make sure to include \
all relevant information from the provided text that pertains to the lecture (e.g., key \
points, concepts, examples, and mathematical equations).

The flashcard format is as follows:

[
  {{
    "front": "<Flashcard front>",
    "back": "<Flashcard back>"
  }}
]

Instructions for Flashcard Generation:
1. Each flashcard should contain a clear question or concept on the front and a \
comprehensive answer or explanation on the back.
2. Break down complex topics or math problems into multiple flashcards for clarity.
3. If mathematical content is included, format equations properly using markdown.
4. Keep the back concise and to the point.
5. Try to cover everything in the chunk if possible and meet the requirements.
6. Strictly use the given format without deviating from it.

Text Chunk:

{chunk}"""

_TEMPLATES = {
    GenerationKind.QUIZ: QUIZ_PROMPT,
    GenerationKind.FLASHCARD: FLASHCARD_PROMPT,
}


def build_prompt(chunk: str, kind: GenerationKind) -> str:
    return _TEMPLATES[GenerationKind(kind)].format(chunk=chunk)
