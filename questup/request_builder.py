"""Builds endpoint requests from uploaded files and exam parameters.

All parameter checks happen here, before any credential lookup or network
call, and fail with :class:`questup.errors.ValidationError`.
"""

import base64
import binascii
import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from .config import settings
from .errors import ValidationError
from .models import (
    MAX_QUESTION_COUNT,
    MIN_QUESTION_COUNT,
    AnalysisRequest,
    GenerationRequest,
    Grade,
    InlinePart,
    Language,
    Question,
    ReferenceFile,
)
from .prompts import SYSTEM_INSTRUCTION, build_analysis_prompt, build_exam_prompt
from .schemas import ANALYSIS_RESPONSE_SCHEMA, EXAM_RESPONSE_SCHEMA

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[^;,]*)(?:;[^,]*)?,(?P<payload>.*)$", re.S)


def strip_data_uri(data: str) -> Tuple[str, Optional[str]]:
    """Split a data URI into its raw payload and declared mime type.

    Bare payloads are returned unchanged with no mime type.
    """
    match = DATA_URI_PATTERN.match(data.strip())
    if match is None:
        return data.strip(), None
    return match.group("payload"), match.group("mime") or None


def to_inline_part(file: ReferenceFile) -> InlinePart:
    """Convert a reference file into its transport form.

    Raises:
        ValidationError: If the payload is empty or not base64, or no mime
            type is known
    """
    payload, uri_mime = strip_data_uri(file.data)
    if not payload:
        raise ValidationError(f"File '{file.name}' is empty", field="files")
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(
            f"File '{file.name}' is not valid base64 data", field="files"
        ) from e

    mime_type = file.mime_type or uri_mime
    if not mime_type:
        raise ValidationError(f"File '{file.name}' has no mime type", field="files")
    return InlinePart(data=payload, mime_type=mime_type)


def normalize_weak_topics(weak_topics: Optional[Iterable[str]]) -> List[str]:
    """Drop blank entries and duplicates, keeping first-seen order."""
    topics: List[str] = []
    for topic in weak_topics or []:
        cleaned = topic.strip() if isinstance(topic, str) else ""
        if cleaned and cleaned not in topics:
            topics.append(cleaned)
    return topics


def validate_count(count: object) -> int:
    """Check that count is an integer in the supported range.

    Raises:
        ValidationError: If count is not an int within bounds
    """
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError(
            f"Question count must be an integer, got {count!r}", field="count"
        )
    if not MIN_QUESTION_COUNT <= count <= MAX_QUESTION_COUNT:
        raise ValidationError(
            f"Question count must be between {MIN_QUESTION_COUNT} and "
            f"{MAX_QUESTION_COUNT}, got {count}",
            field="count",
        )
    return count


def _coerce_enum(enum_type, value, field: str):
    try:
        return enum_type(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(
            f"Invalid {field} {value!r}; expected one of: {allowed}", field=field
        ) from e


def build_exam_request(
    files: Sequence[ReferenceFile],
    grade: Union[Grade, str],
    language: Union[Language, str],
    count: int,
    weak_topics: Optional[Sequence[str]] = None,
    model: Optional[str] = None,
    thinking_budget: Optional[int] = None,
) -> GenerationRequest:
    """Build an exam generation request.

    Args:
        files: Uploaded reference files (at least one)
        grade: Target grade
        language: Language of question and option text
        count: Number of questions, within [1, 50]
        weak_topics: Topics to prioritize in a follow-up exam
        model: Model identifier (default: settings.gemini_model)
        thinking_budget: Thinking token budget (default: settings.thinking_budget;
            0 disables)

    Returns:
        GenerationRequest ready for the provider

    Raises:
        ValidationError: If any parameter is out of bounds
    """
    count = validate_count(count)
    grade = _coerce_enum(Grade, grade, "grade")
    language = _coerce_enum(Language, language, "language")
    if not files:
        raise ValidationError("At least one reference file is required", field="files")

    parts = [to_inline_part(f) for f in files]
    topics = normalize_weak_topics(weak_topics)
    if thinking_budget is None:
        thinking_budget = settings.thinking_budget

    try:
        request = GenerationRequest(
            files=list(files),
            grade=grade,
            language=language,
            count=count,
            weak_topics=topics,
            parts=parts,
            prompt=build_exam_prompt(grade, language, count, topics),
            system_instruction=SYSTEM_INSTRUCTION,
            response_schema=EXAM_RESPONSE_SCHEMA,
            model=model or settings.gemini_model,
            thinking_budget=thinking_budget or None,
        )
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid generation request: {e}") from e

    logger.debug(
        f"Built exam request: grade={grade.value}, language={language.value}, "
        f"count={count}, files={len(parts)}, weak_topics={len(topics)}"
    )
    return request


def build_analysis_request(
    questions: Sequence[Question],
    user_answers: Sequence[Optional[int]],
    model: Optional[str] = None,
) -> AnalysisRequest:
    """Build a request to analyze a finished exam.

    Args:
        questions: Questions of the exam
        user_answers: Selected option index per question, None if unanswered
        model: Model identifier (default: settings.gemini_model)

    Raises:
        ValidationError: If there are no questions or the answer count differs
    """
    if not questions:
        raise ValidationError("Cannot analyze an exam without questions", field="questions")
    if len(user_answers) != len(questions):
        raise ValidationError(
            f"Expected {len(questions)} answers, got {len(user_answers)}",
            field="user_answers",
        )

    history = [
        {"topic": q.topic, "correct": answer is not None and answer == q.correct_index}
        for q, answer in zip(questions, user_answers)
    ]
    return AnalysisRequest(
        history=history,
        prompt=build_analysis_prompt(history),
        system_instruction=SYSTEM_INSTRUCTION,
        response_schema=ANALYSIS_RESPONSE_SCHEMA,
        model=model or settings.gemini_model,
    )
