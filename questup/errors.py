"""Exception hierarchy for the exam generation core.

Every call path of the generation service ends either in a result or in one
of the exceptions defined here. Failures detected locally (bad parameters)
are raised before any network call; failures reported by the generative
endpoint are classified once by :mod:`questup.error_classifier` and raised
as one of the provider error subclasses.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .error_classifier import ClassifiedError


class QuestUpError(Exception):
    """Base exception for all generation core errors."""

    #: Whether the user must connect or re-select a credential to recover.
    requires_reselection = False


class ValidationError(QuestUpError):
    """Caller-supplied parameters are out of bounds.

    Attributes:
        field: Name of the offending parameter, when known
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class AuthMissingError(QuestUpError):
    """No credential could be resolved from any configured source."""

    requires_reselection = True


class MalformedResponseError(QuestUpError):
    """The endpoint returned text that does not parse as the declared schema.

    Attributes:
        raw_text: The payload that failed to parse (may be truncated)
    """

    def __init__(self, message: str, raw_text: Optional[str] = None):
        self.raw_text = raw_text[:500] if raw_text else raw_text
        super().__init__(message)


class GenerationCancelledError(QuestUpError):
    """The caller abandoned the request before it completed."""


class ProviderError(QuestUpError):
    """A classified failure reported by the generative endpoint.

    Attributes:
        classified_error: The classified error with category and message
        original_exception: The exception raised by the SDK
    """

    def __init__(
        self,
        classified_error: "ClassifiedError",
        original_exception: Exception,
    ):
        self.classified_error = classified_error
        self.original_exception = original_exception
        super().__init__(str(classified_error))


class AuthError(ProviderError):
    """The credential was rejected (invalid key, wrong project, no access).

    Never retried automatically; the caller should prompt for a new credential.
    """

    requires_reselection = True


class QuotaError(AuthError):
    """The credential's account has a billing or tier problem."""


class TransientError(ProviderError):
    """Rate limiting or temporary unavailability; retried up to the budget."""
