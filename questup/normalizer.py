"""Parses raw endpoint responses into domain entities.

Parsing is all-or-nothing: a payload that is not valid JSON, or a record that
lacks a required field, fails the whole response with
:class:`questup.errors.MalformedResponseError`. Field values are otherwise
taken verbatim.
"""

import json
import logging
import time
import uuid
from typing import Any, Callable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .errors import MalformedResponseError
from .models import AnalysisResult, Question

logger = logging.getLogger(__name__)


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def _batch_suffix() -> str:
    return uuid.uuid4().hex[:8]


def _parse_json(raw_text: str) -> Any:
    text = (raw_text or "").strip()
    if not text:
        raise MalformedResponseError("Endpoint returned an empty response", raw_text)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"Failed to parse JSON response: {e}", raw_text
        ) from e


def make_question_id(timestamp_ms: int, suffix: str, index: int) -> str:
    """Question id: generation time, per-batch random suffix, position."""
    return f"q-{timestamp_ms}-{suffix}-{index}"


def normalize_questions(
    raw_text: str,
    clock: Optional[Callable[[], int]] = None,
    suffix_factory: Optional[Callable[[], str]] = None,
) -> List[Question]:
    """Parse a generation response and assign question ids.

    Args:
        raw_text: Raw JSON text returned by the endpoint
        clock: Returns the current time in epoch milliseconds
        suffix_factory: Returns the per-batch disambiguating suffix

    Returns:
        Questions in response order

    Raises:
        MalformedResponseError: If the text is not a JSON array of question
            records
    """
    data = _parse_json(raw_text)
    if not isinstance(data, list):
        raise MalformedResponseError(
            f"Expected a JSON array of questions, got {type(data).__name__}", raw_text
        )

    timestamp_ms = (clock or _epoch_millis)()
    suffix = (suffix_factory or _batch_suffix)()

    questions: List[Question] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedResponseError(
                f"Question {i} is a {type(item).__name__}, not an object", raw_text
            )
        record = {**item, "id": make_question_id(timestamp_ms, suffix, i)}
        try:
            question = Question.model_validate(record)
        except PydanticValidationError as e:
            raise MalformedResponseError(
                f"Question {i} does not match the response schema: {e}", raw_text
            ) from e

        if not question.has_valid_answer:
            logger.warning(
                f"Question {question.id} has correctIndex {question.correct_index} "
                f"outside its {len(question.options)} options"
            )
        questions.append(question)

    return questions


def normalize_analysis(raw_text: str) -> AnalysisResult:
    """Parse an analysis response.

    Raises:
        MalformedResponseError: If the text is not a JSON analysis object
    """
    data = _parse_json(raw_text)
    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(data).__name__}", raw_text
        )
    try:
        return AnalysisResult.model_validate(data)
    except PydanticValidationError as e:
        raise MalformedResponseError(
            f"Analysis does not match the response schema: {e}", raw_text
        ) from e
