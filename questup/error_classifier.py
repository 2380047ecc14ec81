"""Error classification for generative endpoint failures.

Maps the status codes and messages raised by the Gemini SDK (or any HTTP
client underneath it) onto a small closed set of categories, and from there
onto the exception taxonomy in :mod:`questup.errors`. This is the only place
where provider-specific failure signals are interpreted.
"""

import re
from enum import Enum
from typing import Optional, Type

from .errors import AuthError, ProviderError, QuotaError, TransientError


class ErrorCategory(Enum):
    """Categories of endpoint errors."""

    AUTHENTICATION = "authentication"  # Key invalid, wrong project, no access
    BILLING = "billing"  # Billing disabled, tier too low, payment required
    RATE_LIMIT = "rate_limit"  # 429 / resource exhausted
    SERVICE_UNAVAILABLE = "service_unavailable"  # 503 / overloaded
    UNKNOWN = "unknown"  # Unclassified errors


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    CRITICAL = "critical"  # User must act (select another credential)
    HIGH = "high"  # Transient but worth surfacing
    MEDIUM = "medium"  # Unclassified


class ClassifiedError:
    """An endpoint error with category and severity."""

    def __init__(
        self,
        category: ErrorCategory,
        severity: ErrorSeverity,
        provider: str,
        original_error: str,
        message: str,
        status_code: Optional[int] = None,
        is_retryable: bool = False,
    ):
        """Initialize classified error.

        Args:
            category: Error category
            severity: Error severity level
            provider: Provider name (google)
            original_error: Original exception type name
            message: Human-readable error message
            status_code: HTTP status code reported by the endpoint, if any
            is_retryable: Whether the error is transient and retryable
        """
        self.category = category
        self.severity = severity
        self.provider = provider
        self.original_error = original_error
        self.message = message
        self.status_code = status_code
        self.is_retryable = is_retryable

    def __str__(self) -> str:
        """String representation of classified error."""
        return (
            f"[{self.severity.value.upper()}] {self.provider}: "
            f"{self.category.value} - {self.message}"
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "provider": self.provider,
            "original_error": self.original_error,
            "message": self.message,
            "status_code": self.status_code,
            "is_retryable": self.is_retryable,
        }

    def to_exception(self, original: Exception) -> Optional[ProviderError]:
        """Build the typed exception for this error.

        Args:
            original: The exception raised by the SDK

        Returns:
            The matching ProviderError subclass, or None for unclassified
            errors, which callers re-raise unmodified
        """
        exc_type = _EXCEPTION_TYPES.get(self.category)
        if exc_type is None:
            return None
        return exc_type(classified_error=self, original_exception=original)


_EXCEPTION_TYPES: dict[ErrorCategory, Type[ProviderError]] = {
    ErrorCategory.AUTHENTICATION: AuthError,
    ErrorCategory.BILLING: QuotaError,
    ErrorCategory.RATE_LIMIT: TransientError,
    ErrorCategory.SERVICE_UNAVAILABLE: TransientError,
}


class ErrorClassifier:
    """Classifies errors raised while calling the generative endpoint."""

    AUTH_STATUS_CODES = frozenset({401, 403, 404})
    RATE_LIMIT_STATUS_CODES = frozenset({429})
    UNAVAILABLE_STATUS_CODES = frozenset({503})
    RETRYABLE_CATEGORIES = frozenset(
        {ErrorCategory.RATE_LIMIT, ErrorCategory.SERVICE_UNAVAILABLE}
    )

    # Patterns for billing errors; checked before the auth status codes since
    # the endpoint reports billing problems under 400 and 403
    BILLING_PATTERNS = [
        r"billing",
        r"payment.*required",
        r"insufficient.*(funds|credit)",
        r"credit.*balance",
        r"\b402\b",
    ]

    # Patterns for authentication errors
    AUTH_PATTERNS = [
        r"\b40[134]\b",
        r"invalid.*api.*key",
        r"api.*key.*(invalid|expired|not.*valid)",
        r"unauthenticated",
        r"unauthori[sz]ed",
        r"permission.*denied",
        r"forbidden",
        r"not.*found",
        r"invalid.*credentials",
    ]

    # Patterns for rate limit errors
    RATE_LIMIT_PATTERNS = [
        r"\b429\b",
        r"rate.*limit",
        r"too.*many.*requests",
        r"resource.*exhausted",
        r"throttl",
    ]

    # Patterns for temporary unavailability
    UNAVAILABLE_PATTERNS = [
        r"\b503\b",
        r"service.*unavailable",
        r"\bunavailable\b",
        r"overloaded",
    ]

    @staticmethod
    def classify_error(error: Exception, provider: str = "google") -> ClassifiedError:
        """Classify an endpoint error.

        A 429 or 503 status is always transient. Billing phrasing wins over
        the other status codes since the endpoint reports billing problems
        under 400 and 403. Without a known code the message is matched
        against patterns.

        Args:
            error: The exception that was raised
            provider: Provider name

        Returns:
            ClassifiedError with category and severity
        """
        error_str = str(error).lower()
        status_code = ErrorClassifier.extract_status_code(error)
        category = ErrorClassifier._categorize(error_str, status_code)

        if category == ErrorCategory.BILLING:
            severity = ErrorSeverity.CRITICAL
            message = (
                f"Billing or tier issue detected. Please check the {provider} "
                f"project linked to this API key."
            )
        elif category == ErrorCategory.AUTHENTICATION:
            severity = ErrorSeverity.CRITICAL
            message = (
                f"Authentication failed. Please select a valid {provider} API key "
                f"with access to the requested model."
            )
        elif category == ErrorCategory.RATE_LIMIT:
            severity = ErrorSeverity.HIGH
            message = f"Rate limit exceeded for {provider}."
        elif category == ErrorCategory.SERVICE_UNAVAILABLE:
            severity = ErrorSeverity.HIGH
            message = f"{provider} is temporarily unavailable."
        else:
            severity = ErrorSeverity.MEDIUM
            message = f"Unclassified error from {provider}: {str(error)[:100]}"

        return ClassifiedError(
            category=category,
            severity=severity,
            provider=provider,
            original_error=type(error).__name__,
            message=message,
            status_code=status_code,
            is_retryable=category in ErrorClassifier.RETRYABLE_CATEGORIES,
        )

    @staticmethod
    def _categorize(error_str: str, status_code: Optional[int]) -> ErrorCategory:
        match = ErrorClassifier._match_patterns

        # 429 and 503 are transient whatever the message says; the free-tier
        # quota message mentions billing too
        if status_code in ErrorClassifier.RATE_LIMIT_STATUS_CODES:
            return ErrorCategory.RATE_LIMIT
        if status_code in ErrorClassifier.UNAVAILABLE_STATUS_CODES:
            return ErrorCategory.SERVICE_UNAVAILABLE

        if match(error_str, ErrorClassifier.BILLING_PATTERNS):
            return ErrorCategory.BILLING

        if status_code in ErrorClassifier.AUTH_STATUS_CODES:
            return ErrorCategory.AUTHENTICATION

        if match(error_str, ErrorClassifier.AUTH_PATTERNS):
            return ErrorCategory.AUTHENTICATION
        if match(error_str, ErrorClassifier.RATE_LIMIT_PATTERNS):
            return ErrorCategory.RATE_LIMIT
        if match(error_str, ErrorClassifier.UNAVAILABLE_PATTERNS):
            return ErrorCategory.SERVICE_UNAVAILABLE

        return ErrorCategory.UNKNOWN

    @staticmethod
    def extract_status_code(error: Exception) -> Optional[int]:
        """Return the HTTP status code carried by an exception, if any.

        Looks at ``code`` (google-genai ``APIError``), ``status_code`` and
        ``status``, then at ``response.status_code`` (httpx errors).
        """
        for attr in ("code", "status_code", "status"):
            value = getattr(error, attr, None)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
        response = getattr(error, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return None

    @staticmethod
    def _match_patterns(text: str, patterns: list[str]) -> bool:
        """Check if text matches any of the given regex patterns.

        Args:
            text: Text to search
            patterns: List of regex patterns

        Returns:
            True if any pattern matches
        """
        for pattern in patterns:
            if re.search(pattern, text, re.IGNORECASE):
                return True
        return False
