"""Exception hierarchy for the validation pipeline.

Fatal errors (bad input, unreachable PR data, timeouts) are raised as
PrGuardError subclasses so the CLI can report them on a single line.
Model failures never appear here. The verdict client absorbs them into a
fallback ValidationVerdict instead.
"""

from __future__ import annotations


class PrGuardError(Exception):
    """Base class for every error raised by prguard."""


class InvalidArgumentError(PrGuardError, ValueError):
    """Malformed caller input or missing required configuration."""


class NotFoundError(PrGuardError):
    """The repository or pull request does not exist (or is not visible)."""


class PermissionDeniedError(PrGuardError):
    """The token lacks the permissions needed for the request."""


class ProviderError(PrGuardError):
    """Any other repository-provider failure, including retry exhaustion."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class ValidationTimeoutError(PrGuardError, TimeoutError):
    """The validation pipeline did not finish before its deadline."""
