"""Pytest configuration and shared fixtures for exam generation tests."""

import json
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from questup.models import Question, ReferenceFile
from questup.providers.base import RetryConfig, reset_retry_metrics

# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)
PDF_BASE64 = "JVBERi0xLjQKJcfsj6IKMSAwIG9iago8PD4+CmVuZG9iagp0cmFpbGVyCjw8Pj4KJSVFT0YK"


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset retry metrics before and after each test."""
    reset_retry_metrics()
    yield
    reset_retry_metrics()


@pytest.fixture(autouse=True)
def clear_api_key_env(monkeypatch):
    """Keep a developer's API_KEY out of the tests."""
    monkeypatch.delenv("API_KEY", raising=False)


@pytest.fixture
def mock_api_key() -> str:
    """Fixture providing a mock Gemini API key for testing."""
    return "AIza-test-mock-api-key-12345"


@pytest.fixture
def png_file() -> ReferenceFile:
    """A reference file as produced by the upload form (data URI)."""
    return ReferenceFile(
        name="chapter1.png",
        data=f"data:image/png;base64,{PNG_BASE64}",
        mime_type="image/png",
    )


@pytest.fixture
def pdf_file() -> ReferenceFile:
    """A second reference file."""
    return ReferenceFile(
        name="handout.pdf",
        data=f"data:application/pdf;base64,{PDF_BASE64}",
        mime_type="application/pdf",
    )


@pytest.fixture
def sample_question_records() -> List[dict]:
    """Question records as returned by the endpoint."""
    return [
        {
            "text": "What is the plural of 'child'?",
            "options": ["childs", "children", "childes", "child"],
            "correctIndex": 1,
            "explanation": "คำว่า child เป็นคำนามที่มีรูปพหูพจน์ไม่ปกติ คือ children",
            "topic": "คำนามพหูพจน์",
        },
        {
            "text": "Choose the past tense of 'go'.",
            "options": ["goed", "gone", "went", "going"],
            "correctIndex": 2,
            "explanation": "go เป็นกริยาไม่ปกติ รูปอดีตคือ went",
            "topic": "กริยาช่องที่ 2",
        },
    ]


@pytest.fixture
def sample_exam_json(sample_question_records) -> str:
    """Raw generation response text."""
    return json.dumps(sample_question_records, ensure_ascii=False)


@pytest.fixture
def sample_analysis_json() -> str:
    """Raw analysis response text."""
    return json.dumps(
        {
            "summary": "ทำได้ดีในเรื่องคำนาม แต่ควรทบทวนเรื่องกริยา",
            "strengths": ["คำนามพหูพจน์"],
            "weaknesses": ["กริยาช่องที่ 2"],
            "readingAdvice": "ทบทวนตารางกริยาไม่ปกติวันละ 10 คำ",
        },
        ensure_ascii=False,
    )


@pytest.fixture
def sample_questions(sample_question_records) -> List[Question]:
    """Normalized questions."""
    return [
        Question.model_validate({**record, "id": f"q-1-abc-{i}"})
        for i, record in enumerate(sample_question_records)
    ]


@pytest.fixture
def fast_retry_config() -> RetryConfig:
    """Retry config with the default shape: 3 retries, 2s doubling."""
    return RetryConfig(max_retries=3, base_delay=2.0, exponential_base=2.0, max_delay=60.0)


@pytest.fixture
def mock_sleep() -> AsyncMock:
    """Injectable sleep that records delays instead of waiting."""
    return AsyncMock()


@pytest.fixture
def make_api_error():
    """Factory for exceptions shaped like google.genai.errors.APIError."""

    def _make(code: int, message: str) -> Exception:
        error = Exception(f"{code} {message}")
        error.code = code
        return error

    return _make


@pytest.fixture
def make_response():
    """Factory for generate_content responses with the given text."""

    def _make(text: str) -> MagicMock:
        response = MagicMock()
        response.text = text
        return response

    return _make
