"""Tests for the retry policy and combinator."""

from unittest.mock import MagicMock, patch

import pytest
from github import GithubException, RateLimitExceededException

from prguard_core.retry import RATE_LIMIT_POLICY, RetryError, RetryPolicy, is_rate_limit_error, retry


class TestIsRateLimitError:
    @pytest.mark.parametrize("status", [403, 429])
    def test_rate_limit_statuses(self, status):
        assert is_rate_limit_error(GithubException(status, {"message": "slow down"}, None))

    def test_rate_limit_exception_subclass(self):
        assert is_rate_limit_error(RateLimitExceededException(403, {"message": "API rate limit exceeded"}, None))

    @pytest.mark.parametrize("status", [404, 422, 500])
    def test_other_statuses(self, status):
        assert not is_rate_limit_error(GithubException(status, {"message": "nope"}, None))

    def test_plain_exception_with_rate_limit_text_is_not_rate_limit(self):
        assert not is_rate_limit_error(RuntimeError("403 rate limit exceeded"))


class TestRetryPolicy:
    def test_default_schedule(self):
        assert RATE_LIMIT_POLICY.max_attempts == 3
        assert RATE_LIMIT_POLICY.delay_before(1) == 0.0
        assert RATE_LIMIT_POLICY.delay_before(2) == 1.0
        assert RATE_LIMIT_POLICY.delay_before(3) == 2.0

    def test_last_delay_repeats_beyond_schedule(self):
        policy = RetryPolicy(max_attempts=5, delays=(1.0, 2.0))
        assert policy.delay_before(5) == 2.0


class TestRetry:
    def test_returns_first_success_without_sleeping(self):
        operation = MagicMock(return_value="ok")
        with patch("prguard_core.retry.time.sleep") as sleep:
            assert retry(operation) == "ok"
        operation.assert_called_once()
        sleep.assert_not_called()

    def test_retries_until_success(self):
        operation = MagicMock(side_effect=[GithubException(429, {}, None), "ok"])
        with patch("prguard_core.retry.time.sleep") as sleep:
            assert retry(operation) == "ok"
        assert operation.call_count == 2
        sleep.assert_called_once_with(1.0)

    def test_exhaustion_raises_retry_error_with_attempts(self):
        error = GithubException(429, {}, None)
        operation = MagicMock(side_effect=error)
        with patch("prguard_core.retry.time.sleep"):
            with pytest.raises(RetryError) as exc_info:
                retry(operation)
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is error

    def test_non_retryable_error_stops_immediately(self):
        operation = MagicMock(side_effect=ValueError("bad input"))
        with patch("prguard_core.retry.time.sleep") as sleep:
            with pytest.raises(RetryError) as exc_info:
                retry(operation)
        assert exc_info.value.attempts == 1
        assert isinstance(exc_info.value.last_error, ValueError)
        sleep.assert_not_called()

    def test_custom_predicate(self):
        operation = MagicMock(side_effect=[ConnectionError("reset"), "ok"])
        policy = RetryPolicy(max_attempts=2, delays=(0.5,), retry_on=lambda e: isinstance(e, ConnectionError))
        with patch("prguard_core.retry.time.sleep") as sleep:
            assert retry(operation, policy) == "ok"
        sleep.assert_called_once_with(0.5)
