"""Base class for generative providers and the retry policy around them."""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from ..config import settings
from ..error_classifier import ErrorClassifier
from ..errors import GenerationCancelledError, ProviderError, TransientError
from ..models import ModelRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class RetryConfig:
    """Configuration for retrying transient endpoint failures."""

    max_retries: int = settings.max_retries
    """Retries after the first attempt."""

    base_delay: float = settings.retry_base_delay
    """Delay in seconds before the first retry."""

    exponential_base: float = settings.retry_exponential_base
    """Factor applied to the delay for each further retry."""

    max_delay: float = settings.retry_max_delay
    """Upper bound for a single delay."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.exponential_base < 1:
            raise ValueError("exponential_base must be at least 1")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be at least base_delay")

    def schedule(self) -> List[float]:
        """Delays before each retry, in order."""
        return [calculate_backoff_delay(attempt, self) for attempt in range(self.max_retries)]


def calculate_backoff_delay(attempt: int, config: RetryConfig) -> float:
    """Delay before retry number ``attempt`` (0-based), capped at max_delay."""
    delay = config.base_delay * (config.exponential_base**attempt)
    return min(delay, config.max_delay)


class RetryMetrics:
    """Counts retries across providers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_retries = 0
        self.successful_retries = 0
        self.exhausted_retries = 0
        self.retries_by_provider: Dict[str, int] = {}

    def record_retry(self, provider: str, success: bool) -> None:
        """Record one retry attempt and whether it succeeded."""
        with self._lock:
            self.total_retries += 1
            if success:
                self.successful_retries += 1
            self.retries_by_provider[provider] = (
                self.retries_by_provider.get(provider, 0) + 1
            )

    def record_exhausted(self, provider: str) -> None:
        """Record a request that ran out of retries."""
        with self._lock:
            self.exhausted_retries += 1
            self.retries_by_provider.setdefault(provider, 0)

    def get_summary(self) -> Dict[str, object]:
        with self._lock:
            success_rate = (
                self.successful_retries / self.total_retries
                if self.total_retries
                else 0.0
            )
            return {
                "total_retries": self.total_retries,
                "successful_retries": self.successful_retries,
                "exhausted_retries": self.exhausted_retries,
                "success_rate": success_rate,
                "retries_by_provider": dict(self.retries_by_provider),
            }


_retry_metrics: Optional[RetryMetrics] = None


def get_retry_metrics() -> RetryMetrics:
    """Get or create the global RetryMetrics instance."""
    global _retry_metrics
    if _retry_metrics is None:
        _retry_metrics = RetryMetrics()
    return _retry_metrics


def reset_retry_metrics() -> None:
    """Replace the global RetryMetrics with a fresh instance."""
    global _retry_metrics
    _retry_metrics = RetryMetrics()


def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise GenerationCancelledError("Request was cancelled by the caller")


async def _until_cancelled(
    awaitable: Awaitable[T], cancel_event: Optional[asyncio.Event]
) -> T:
    """Await ``awaitable``, abandoning it as soon as ``cancel_event`` is set.

    Raises:
        GenerationCancelledError: If the event was set first; the abandoned
            task is cancelled and awaited
    """
    if cancel_event is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task.done():
        return task.result()
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    raise GenerationCancelledError("Request was cancelled by the caller")


async def with_retry(
    call: Callable[[], Awaitable[T]],
    provider: str,
    config: Optional[RetryConfig] = None,
    sleep: SleepFunc = asyncio.sleep,
    cancel_event: Optional[asyncio.Event] = None,
) -> T:
    """Run ``call`` and retry it on transient failures with exponential backoff.

    Attempts run strictly one after another. Only TransientError is retried;
    any other exception propagates immediately.

    Args:
        call: Zero-argument coroutine function performing one attempt. It is
            called again for each retry, so it must build fresh resources.
        provider: Provider name for logging and metrics
        config: Retry configuration (default: from settings)
        sleep: Coroutine function used for backoff delays
        cancel_event: When set, the running attempt or delay is abandoned
            and no further attempt is started

    Returns:
        The result of the first successful attempt

    Raises:
        TransientError: If the retry budget is exhausted
        GenerationCancelledError: If cancel_event was set
    """
    config = config or RetryConfig()
    metrics = get_retry_metrics()
    attempt = 0

    while True:
        _check_cancelled(cancel_event)
        try:
            result = await _until_cancelled(call(), cancel_event)
        except TransientError as e:
            if attempt > 0:
                metrics.record_retry(provider, success=False)
            if attempt >= config.max_retries:
                metrics.record_exhausted(provider)
                logger.error(
                    f"{provider}: retries exhausted after {attempt + 1} attempts: {e}"
                )
                raise
            delay = calculate_backoff_delay(attempt, config)
            logger.warning(
                f"{provider}: transient failure ({e.classified_error.category.value}), "
                f"retrying in {delay:.1f}s (retry {attempt + 1}/{config.max_retries})"
            )
            await _until_cancelled(sleep(delay), cancel_event)
            attempt += 1
            continue

        if attempt > 0:
            metrics.record_retry(provider, success=True)
            logger.info(f"{provider}: succeeded after {attempt} retries")
        return result


class BaseLLMProvider(ABC):
    """Abstract base class for generative endpoint integrations."""

    def __init__(self, model: str):
        """
        Initialize the provider.

        Args:
            model: Default model identifier
        """
        self.model = model

    @abstractmethod
    async def generate_json(self, request: ModelRequest, api_key: str) -> str:
        """
        Send one request and return the raw JSON text of the response.

        Args:
            request: The request to send
            api_key: Credential resolved for this attempt

        Returns:
            Raw response text

        Raises:
            AuthError: If the credential was rejected
            TransientError: On rate limiting or temporary unavailability
            Exception: Unclassified SDK errors, unmodified
        """

    def get_provider_name(self) -> str:
        """
        Get the name of this provider.

        Returns:
            Provider name (e.g., "google")
        """
        return self.__class__.__name__.replace("Provider", "").lower()

    def _handle_api_error(self, error: Exception) -> Exception:
        """Classify an API error.

        Args:
            error: The exception that was raised

        Returns:
            The typed ProviderError, or the original exception when the
            error could not be classified
        """
        classified = ErrorClassifier.classify_error(
            error=error,
            provider=self.get_provider_name(),
        )
        typed = classified.to_exception(error)
        if typed is None:
            logger.error(f"Unclassified {classified.provider} error: {error}")
            return error
        log = logger.warning if classified.is_retryable else logger.error
        log(str(classified))
        return typed


__all__ = [
    "BaseLLMProvider",
    "ProviderError",
    "RetryConfig",
    "RetryMetrics",
    "calculate_backoff_delay",
    "get_retry_metrics",
    "reset_retry_metrics",
    "with_retry",
]
