"""Exam generation service.

Orchestrates one generation or analysis call: validate and build the request,
then (per attempt) resolve a credential and call the provider through the
retry policy, then normalize the response into domain entities.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .credentials import CredentialResolver, default_resolver
from .errors import (
    AuthError,
    AuthMissingError,
    MalformedResponseError,
    QuotaError,
    ValidationError,
)
from .models import (
    AnalysisResult,
    ExamResult,
    ExamSession,
    Grade,
    Language,
    ModelRequest,
    Question,
    ReferenceFile,
)
from .normalizer import normalize_analysis, normalize_questions
from .providers.base import BaseLLMProvider, RetryConfig, SleepFunc, with_retry
from .providers.google_provider import GoogleProvider
from .request_builder import build_analysis_request, build_exam_request
from .scoring import derive_weak_topics, grade_answers

logger = logging.getLogger(__name__)

RESELECT_CREDENTIAL = "reselect_credential"
RETRY_LATER = "retry_later"


@dataclass(frozen=True)
class FailureNotice:
    """What to tell the user after a failed call, and what they can do."""

    message: str
    action: str

    @property
    def requires_reselection(self) -> bool:
        return self.action == RESELECT_CREDENTIAL


def describe_failure(error: BaseException) -> FailureNotice:
    """Map any error raised by the service onto a user-facing notice."""
    if isinstance(error, AuthMissingError):
        return FailureNotice(
            "ระบบขัดข้อง: ไม่พบ API Key สำหรับประมวลผล กรุณาเชื่อมต่อหรือเลือก API Key",
            RESELECT_CREDENTIAL,
        )
    if isinstance(error, QuotaError):
        return FailureNotice(
            "API Key นี้ติดปัญหาเรื่องการชำระเงินหรือสิทธิ์การใช้งาน กรุณาเลือก API Key อื่น",
            RESELECT_CREDENTIAL,
        )
    if isinstance(error, AuthError):
        return FailureNotice(
            "API Key ไม่ถูกต้องหรือไม่มีสิทธิ์ใช้งานโมเดลนี้ กรุณาเลือก API Key ใหม่",
            RESELECT_CREDENTIAL,
        )
    if isinstance(error, ValidationError):
        return FailureNotice(f"ข้อมูลไม่ถูกต้อง: {error}", RETRY_LATER)
    return FailureNotice(
        "AI ไม่สามารถสร้างข้อสอบได้ในขณะนี้ กรุณาลองใหม่อีกครั้งใน 1 นาที",
        RETRY_LATER,
    )


class ExamService:
    """Generates exams from reference files and analyzes their results.

    Usage:
        service = ExamService()
        questions = await service.generate_exam(files, "M3", "English", 5)
    """

    def __init__(
        self,
        resolver: Optional[CredentialResolver] = None,
        provider: Optional[BaseLLMProvider] = None,
        retry_config: Optional[RetryConfig] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize the service.

        Args:
            resolver: Credential chain (default: environment value only)
            provider: Endpoint provider (default: GoogleProvider)
            retry_config: Retry policy (default: from settings)
            sleep: Coroutine function used for backoff delays
        """
        self.resolver = resolver or default_resolver()
        self.provider = provider or GoogleProvider()
        self.retry_config = retry_config or RetryConfig()
        self.sleep = sleep

    async def _call(
        self, request: ModelRequest, cancel_event: Optional[asyncio.Event]
    ) -> str:
        async def attempt() -> str:
            api_key = await self.resolver.resolve()
            return await self.provider.generate_json(request, api_key)

        return await with_retry(
            attempt,
            self.provider.get_provider_name(),
            config=self.retry_config,
            sleep=self.sleep,
            cancel_event=cancel_event,
        )

    async def generate_exam(
        self,
        files: Sequence[ReferenceFile],
        grade: Grade,
        language: Language,
        count: int,
        weak_topics: Optional[Sequence[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Question]:
        """Generate multiple-choice questions from reference files.

        Args:
            files: Uploaded reference files
            grade: Target grade
            language: Language of question and option text
            count: Number of questions, within [1, 50]
            weak_topics: Topics to prioritize
            cancel_event: Set by the caller to abandon the request

        Returns:
            Questions with unique ids

        Raises:
            ValidationError: Before any network call, on bad parameters
            AuthMissingError: If no credential is available
            AuthError: If the credential was rejected (QuotaError for billing)
            TransientError: If the retry budget was exhausted
            MalformedResponseError: If the response could not be parsed or
                contained no questions
            GenerationCancelledError: If cancel_event was set
        """
        request = build_exam_request(files, grade, language, count, weak_topics)
        start = time.perf_counter()
        logger.info(
            f"Generating {request.count} questions for {request.grade.value} "
            f"({request.language.value}) from {len(request.parts)} files"
        )

        raw_text = await self._call(request, cancel_event)
        questions = normalize_questions(raw_text)
        if not questions:
            raise MalformedResponseError("Endpoint returned no questions", raw_text)

        if len(questions) != request.count:
            logger.warning(
                f"Requested {request.count} questions, received {len(questions)}"
            )
        logger.info(
            f"Generated {len(questions)} questions in {time.perf_counter() - start:.1f}s"
        )
        return questions

    async def analyze_results(
        self,
        questions: Sequence[Question],
        user_answers: Sequence[Optional[int]],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AnalysisResult:
        """Analyze a finished exam: summary, strengths, weaknesses, advice.

        Raises:
            The same errors as generate_exam
        """
        request = build_analysis_request(questions, user_answers)
        logger.info(f"Analyzing results of {len(questions)} questions")
        raw_text = await self._call(request, cancel_event)
        return normalize_analysis(raw_text)

    async def start_session(
        self,
        user_id: str,
        files: Sequence[ReferenceFile],
        grade: Grade,
        language: Language,
        count: int,
        weak_topics: Optional[Sequence[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ExamSession:
        """Generate an exam and wrap it in a new session."""
        questions = await self.generate_exam(
            files, grade, language, count, weak_topics, cancel_event
        )
        return ExamSession(
            user_id=user_id,
            files=list(files),
            grade=grade,
            language=language,
            question_count=count,
            questions=questions,
            weak_topics_from_previous=list(weak_topics) if weak_topics else None,
        )

    def record_answers(
        self, session: ExamSession, user_answers: Sequence[Optional[int]]
    ) -> ExamResult:
        """Grade the session's answers and store them with the score."""
        result = grade_answers(session.questions, user_answers)
        session.user_answers = list(user_answers)
        session.current_score = result.score
        return result

    async def retry_with_weaknesses(
        self,
        session: ExamSession,
        answers: Optional[Sequence[Optional[int]]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ExamSession:
        """Start a follow-up exam on the topics the user got wrong.

        Reuses the session's files, grade, language and question count. With
        no wrong answers recorded, the follow-up is a general exam.

        Args:
            session: The finished session
            answers: The user's answers; when given they are recorded on the
                session first, otherwise the answers already recorded are used
            cancel_event: Set to abandon the generation
        """
        if answers is not None:
            self.record_answers(session, answers)
        weak_topics = derive_weak_topics(session.questions, session.user_answers)
        logger.info(f"Follow-up exam targeting {len(weak_topics)} weak topics")
        return await self.start_session(
            session.user_id,
            session.files,
            session.grade,
            session.language,
            session.question_count,
            weak_topics or None,
            cancel_event,
        )
