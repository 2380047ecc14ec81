"""Data models for exam generation."""

import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 50
OPTIONS_PER_QUESTION = 4


class Grade(str, enum.Enum):
    """School grades of the Thai basic education curriculum."""

    G1 = "G1"
    G2 = "G2"
    G3 = "G3"
    G4 = "G4"
    G5 = "G5"
    G6 = "G6"
    M1 = "M1"
    M2 = "M2"
    M3 = "M3"
    M4 = "M4"
    M5 = "M5"
    M6 = "M6"

    @property
    def is_primary(self) -> bool:
        return self.value.startswith("G")

    @property
    def thai_label(self) -> str:
        """Grade name as written in the curriculum, e.g. "มัธยมศึกษาปีที่ 3"."""
        level = "ประถมศึกษา" if self.is_primary else "มัธยมศึกษา"
        return f"{level}ปีที่ {self.value[1:]}"


class Language(str, enum.Enum):
    """Language of question and option text."""

    THAI = "Thai"
    ENGLISH = "English"


class ReferenceFile(BaseModel):
    """An uploaded reference document.

    ``data`` is a base64 data URI (``data:<mime>;base64,<payload>``) as
    produced by the upload form, or a bare base64 payload.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    data: str
    mime_type: str = Field(alias="mimeType")


class InlinePart(BaseModel):
    """Raw base64 payload of a reference file, ready for transport."""

    model_config = ConfigDict(frozen=True)

    data: str
    mime_type: str


class ModelRequest(BaseModel):
    """Everything sent to the generative endpoint for one call."""

    parts: List[InlinePart] = Field(default_factory=list)
    prompt: str
    system_instruction: Optional[str] = None
    response_schema: Dict[str, Any]
    model: str
    thinking_budget: Optional[int] = None


class GenerationRequest(ModelRequest):
    """An exam generation request built from files and exam parameters."""

    files: List[ReferenceFile] = Field(min_length=1)
    grade: Grade
    language: Language
    count: int = Field(ge=MIN_QUESTION_COUNT, le=MAX_QUESTION_COUNT)
    weak_topics: List[str] = Field(default_factory=list)


class AnalysisRequest(ModelRequest):
    """A request to analyze a finished exam."""

    history: List[Dict[str, Any]]


class Question(BaseModel):
    """A multiple-choice question returned by the endpoint.

    Values are taken verbatim from the endpoint; ``correct_index`` is not
    checked against ``options``. Unknown extra fields are preserved.
    """

    model_config = ConfigDict(strict=True, extra="allow", populate_by_name=True)

    id: str
    text: str
    options: List[str]
    correct_index: int = Field(alias="correctIndex")
    explanation: str
    topic: str

    @property
    def has_valid_answer(self) -> bool:
        return 0 <= self.correct_index < len(self.options)


class AnalysisResult(BaseModel):
    """Performance analysis of a finished exam."""

    model_config = ConfigDict(strict=True, populate_by_name=True)

    summary: str
    strengths: List[str]
    weaknesses: List[str]
    reading_advice: str = Field(alias="readingAdvice")


class ExamResult(BaseModel):
    """Outcome of grading a set of answers."""

    score: int
    total: int
    percent: float
    weak_topics: List[str] = Field(default_factory=list)


class ExamSession(BaseModel):
    """State kept between generation, the quiz and its analysis."""

    user_id: str
    files: List[ReferenceFile]
    grade: Grade
    language: Language
    question_count: int
    questions: List[Question]
    user_answers: List[Optional[int]] = Field(default_factory=list)
    current_score: int = 0
    weak_topics_from_previous: Optional[List[str]] = None
