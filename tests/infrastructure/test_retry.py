"""Tests for the retry policy with exponential backoff."""

import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from questup.error_classifier import ClassifiedError, ErrorCategory, ErrorSeverity
from questup.errors import AuthError, GenerationCancelledError, TransientError
from questup.providers.base import (
    RetryConfig,
    RetryMetrics,
    calculate_backoff_delay,
    get_retry_metrics,
    reset_retry_metrics,
    with_retry,
)


def _classified(category: ErrorCategory) -> ClassifiedError:
    return ClassifiedError(
        category=category,
        severity=ErrorSeverity.HIGH,
        provider="google",
        original_error="Exception",
        message="test",
        is_retryable=category
        in (ErrorCategory.RATE_LIMIT, ErrorCategory.SERVICE_UNAVAILABLE),
    )


def _transient() -> TransientError:
    return TransientError(_classified(ErrorCategory.RATE_LIMIT), Exception("429"))


def _auth() -> AuthError:
    return AuthError(_classified(ErrorCategory.AUTHENTICATION), Exception("403"))


class TestRetryConfig:
    """Tests for RetryConfig class."""

    def test_default_values(self):
        """Test that RetryConfig uses settings defaults."""
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.base_delay == pytest.approx(2.0)
        assert config.exponential_base == pytest.approx(2.0)
        assert config.max_delay == pytest.approx(60.0)

    def test_default_schedule(self):
        """Test that the default schedule is 2s, 4s, 8s."""
        assert RetryConfig().schedule() == [2.0, 4.0, 8.0]

    def test_zero_retries_has_empty_schedule(self):
        """Test that no retries means no delays."""
        assert RetryConfig(max_retries=0).schedule() == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": -1},
            {"base_delay": -0.5},
            {"exponential_base": 0.5},
            {"base_delay": 10.0, "max_delay": 5.0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        """Test that invalid configurations raise ValueError."""
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)


class TestCalculateBackoffDelay:
    """Tests for calculate_backoff_delay function."""

    def test_exponential_growth(self, fast_retry_config):
        """Test that the delay doubles for each retry."""
        delays = [calculate_backoff_delay(i, fast_retry_config) for i in range(3)]
        assert delays == [2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        """Test that delays never exceed max_delay."""
        config = RetryConfig(max_retries=10, base_delay=2.0, max_delay=10.0)
        assert calculate_backoff_delay(5, config) == pytest.approx(10.0)


class TestRetryMetrics:
    """Tests for RetryMetrics class."""

    @pytest.fixture
    def metrics(self):
        """Create a fresh retry metrics instance for each test."""
        return RetryMetrics()

    def test_initialization(self, metrics):
        """Test that metrics initializes with zero values."""
        assert metrics.total_retries == 0
        assert metrics.successful_retries == 0
        assert metrics.exhausted_retries == 0
        assert metrics.retries_by_provider == {}

    def test_record_retry(self, metrics):
        """Test recording successful and failed retries."""
        metrics.record_retry("google", success=False)
        metrics.record_retry("google", success=True)

        summary = metrics.get_summary()
        assert summary["total_retries"] == 2
        assert summary["successful_retries"] == 1
        assert summary["success_rate"] == pytest.approx(0.5)
        assert summary["retries_by_provider"] == {"google": 2}

    def test_record_exhausted(self, metrics):
        """Test recording exhausted retries."""
        metrics.record_exhausted("google")
        assert metrics.get_summary()["exhausted_retries"] == 1

    def test_global_metrics_reset(self):
        """Test that reset replaces the global instance."""
        get_retry_metrics().record_retry("google", success=True)
        reset_retry_metrics()
        assert get_retry_metrics().total_retries == 0


class TestWithRetry:
    """Tests for with_retry."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, fast_retry_config, mock_sleep):
        """Test that a successful call is not retried."""
        call = AsyncMock(return_value="ok")

        result = await with_retry(call, "google", fast_retry_config, sleep=mock_sleep)

        assert result == "ok"
        assert call.await_count == 1
        mock_sleep.assert_not_awaited()
        assert get_retry_metrics().total_retries == 0

    @pytest.mark.asyncio
    async def test_two_transient_failures_then_success(
        self, fast_retry_config, mock_sleep
    ):
        """Test exactly two retries with 2s then 4s delays."""
        call = AsyncMock(side_effect=[_transient(), _transient(), "ok"])

        result = await with_retry(call, "google", fast_retry_config, sleep=mock_sleep)

        assert result == "ok"
        assert call.await_count == 3
        delays = [c.args[0] for c in mock_sleep.await_args_list]
        assert delays == [2.0, 4.0]
        assert sum(delays) == pytest.approx(sum(fast_retry_config.schedule()[:2]))

        summary = get_retry_metrics().get_summary()
        assert summary["total_retries"] == 2
        assert summary["successful_retries"] == 1

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, fast_retry_config, mock_sleep):
        """Test that the last TransientError propagates after the budget."""
        errors = [_transient() for _ in range(4)]
        call = AsyncMock(side_effect=errors)

        with pytest.raises(TransientError) as exc_info:
            await with_retry(call, "google", fast_retry_config, sleep=mock_sleep)

        assert exc_info.value is errors[-1]
        assert call.await_count == 4
        assert [c.args[0] for c in mock_sleep.await_args_list] == [2.0, 4.0, 8.0]
        assert get_retry_metrics().exhausted_retries == 1

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self, fast_retry_config, mock_sleep):
        """Test that an AuthError propagates without any retry."""
        call = AsyncMock(side_effect=_auth())

        with pytest.raises(AuthError):
            await with_retry(call, "google", fast_retry_config, sleep=mock_sleep)

        assert call.await_count == 1
        mock_sleep.assert_not_awaited()
        assert get_retry_metrics().total_retries == 0

    @pytest.mark.asyncio
    async def test_unclassified_error_not_retried(self, fast_retry_config, mock_sleep):
        """Test that other exceptions propagate unmodified."""
        original = RuntimeError("connection reset")
        call = AsyncMock(side_effect=original)

        with pytest.raises(RuntimeError) as exc_info:
            await with_retry(call, "google", fast_retry_config, sleep=mock_sleep)

        assert exc_info.value is original
        assert call.await_count == 1

    @pytest.mark.asyncio
    async def test_zero_retries(self, mock_sleep):
        """Test that max_retries=0 makes a single attempt."""
        call = AsyncMock(side_effect=_transient())

        with pytest.raises(TransientError):
            await with_retry(call, "google", RetryConfig(max_retries=0), sleep=mock_sleep)

        assert call.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancelled_before_first_attempt(self, fast_retry_config, mock_sleep):
        """Test that a set cancel event prevents any attempt."""
        cancel = asyncio.Event()
        cancel.set()
        call = AsyncMock(return_value="ok")

        with pytest.raises(GenerationCancelledError):
            await with_retry(
                call, "google", fast_retry_config, sleep=mock_sleep, cancel_event=cancel
            )

        call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancelled_during_backoff(self, fast_retry_config):
        """Test that cancelling during a delay stops further attempts."""
        cancel = asyncio.Event()

        async def sleep(delay):
            cancel.set()

        call = AsyncMock(side_effect=[_transient(), "ok"])

        with pytest.raises(GenerationCancelledError):
            await with_retry(
                call, "google", fast_retry_config, sleep=sleep, cancel_event=cancel
            )

        assert call.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel_interrupts_backoff_sleep(self):
        """Test that setting the event ends a real backoff delay right away."""
        config = RetryConfig(max_retries=3, base_delay=1.5)
        cancel = asyncio.Event()
        call = AsyncMock(side_effect=[_transient(), "ok"])
        asyncio.get_running_loop().call_later(0.05, cancel.set)

        started = time.perf_counter()
        with pytest.raises(GenerationCancelledError):
            await with_retry(call, "google", config, cancel_event=cancel)
        elapsed = time.perf_counter() - started

        assert elapsed < 0.5
        assert call.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel_interrupts_in_flight_call(self, fast_retry_config, mock_sleep):
        """Test that setting the event cancels a running attempt."""
        cancel = asyncio.Event()
        call_cancelled = asyncio.Event()

        async def call():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                call_cancelled.set()
                raise
            return "ok"

        asyncio.get_running_loop().call_later(0.05, cancel.set)

        started = time.perf_counter()
        with pytest.raises(GenerationCancelledError):
            await with_retry(
                call, "google", fast_retry_config, sleep=mock_sleep, cancel_event=cancel
            )

        assert time.perf_counter() - started < 0.5
        assert call_cancelled.is_set()
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unset_event_does_not_change_result(self, fast_retry_config, mock_sleep):
        """Test that an event that is never set leaves retries untouched."""
        call = AsyncMock(side_effect=[_transient(), "ok"])

        result = await with_retry(
            call,
            "google",
            fast_retry_config,
            sleep=mock_sleep,
            cancel_event=asyncio.Event(),
        )

        assert result == "ok"
        mock_sleep.assert_awaited_once_with(2.0)
