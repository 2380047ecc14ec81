"""QuestUp exam generation core."""

from questup.credentials import (
    CredentialProvider,
    CredentialResolver,
    DialogCredentialProvider,
    EnvironmentCredentialProvider,
)
from questup.errors import (
    AuthError,
    AuthMissingError,
    GenerationCancelledError,
    MalformedResponseError,
    QuestUpError,
    QuotaError,
    TransientError,
    ValidationError,
)
from questup.models import (
    AnalysisResult,
    ExamSession,
    Grade,
    Language,
    Question,
    ReferenceFile,
)
from questup.service import ExamService, describe_failure

__version__ = "0.1.0"

__all__ = [
    "AnalysisResult",
    "AuthError",
    "AuthMissingError",
    "CredentialProvider",
    "CredentialResolver",
    "DialogCredentialProvider",
    "EnvironmentCredentialProvider",
    "ExamService",
    "ExamSession",
    "GenerationCancelledError",
    "Grade",
    "Language",
    "MalformedResponseError",
    "Question",
    "QuestUpError",
    "QuotaError",
    "ReferenceFile",
    "TransientError",
    "ValidationError",
    "describe_failure",
]
