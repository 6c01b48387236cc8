"""Retry policy and the combinator that applies it.

The policy is data (attempt count, backoff schedule, which errors qualify),
and ``retry`` is the only place that loops and sleeps. Any provider call can
be wrapped; today only commit statuses use it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from github import GithubException

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RATE_LIMIT_STATUSES = (403, 429)


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True for GitHub responses that signal quota or abuse limits.

    Keys on the HTTP status code only. A 403 without a status (e.g. a plain
    exception whose message mentions "forbidden") is not a rate limit.
    """
    return isinstance(exc, GithubException) and exc.status in _RATE_LIMIT_STATUSES


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    # delays[i] is slept before attempt i + 2
    delays: tuple[float, ...] = (1.0, 2.0)
    retry_on: Callable[[BaseException], bool] = is_rate_limit_error

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before ``attempt`` (1-based). The first attempt never waits."""
        if attempt <= 1:
            return 0.0
        index = min(attempt - 2, len(self.delays) - 1)
        return self.delays[index] if self.delays else 0.0


RATE_LIMIT_POLICY = RetryPolicy()


class RetryError(Exception):
    """Raised when an operation fails for good.

    ``attempts`` is how many calls were made; ``last_error`` is the final
    exception. Callers translate this into their own error type.
    """

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"failed after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def retry(operation: Callable[[], T], policy: RetryPolicy = RATE_LIMIT_POLICY) -> T:
    """Call ``operation`` until it succeeds or the policy gives up.

    Errors the policy does not consider retryable stop the loop immediately.
    """
    for attempt in range(1, policy.max_attempts + 1):
        delay = policy.delay_before(attempt)
        if delay:
            time.sleep(delay)
        try:
            return operation()
        except Exception as e:
            if not policy.retry_on(e) or attempt == policy.max_attempts:
                raise RetryError(attempt, e) from e
            logger.warning(
                "Retryable error (attempt %d/%d): %s. Retrying in %ss...",
                attempt,
                policy.max_attempts,
                e,
                policy.delay_before(attempt + 1),
            )
    raise AssertionError("unreachable: RetryPolicy.max_attempts must be >= 1")
