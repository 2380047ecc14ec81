"""Response schemas declared to the generative endpoint.

The endpoint is asked to answer with ``application/json`` matching these
schemas. They are declarative only: responses are parsed locally, not
re-validated against the schema.
"""

from typing import Any, Dict

from .models import OPTIONS_PER_QUESTION

RESPONSE_MIME_TYPE = "application/json"

QUESTION_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "text": {"type": "STRING", "description": "The question statement"},
        "options": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "minItems": OPTIONS_PER_QUESTION,
            "maxItems": OPTIONS_PER_QUESTION,
            "description": "Exactly four answer options",
        },
        "correctIndex": {
            "type": "INTEGER",
            "description": "Zero-based index of the correct option",
        },
        "explanation": {
            "type": "STRING",
            "description": "Why the answer is correct, always in Thai",
        },
        "topic": {
            "type": "STRING",
            "description": "Curriculum topic of the question, always in Thai",
        },
    },
    "required": ["text", "options", "correctIndex", "explanation", "topic"],
}

EXAM_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": QUESTION_SCHEMA,
}

ANALYSIS_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "summary": {"type": "STRING"},
        "strengths": {"type": "ARRAY", "items": {"type": "STRING"}},
        "weaknesses": {"type": "ARRAY", "items": {"type": "STRING"}},
        "readingAdvice": {"type": "STRING"},
    },
    "required": ["summary", "strengths", "weaknesses", "readingAdvice"],
}
