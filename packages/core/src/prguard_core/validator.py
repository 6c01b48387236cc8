"""Validation pipeline orchestration.

    Init → DataFetched → (Skipped | Invoked) → Done

The pipeline runs on a daemon worker thread and the caller waits for it at
most ``timeout`` seconds. A run that misses the deadline raises
ValidationTimeoutError. The worker is not interrupted because PyGithub and
the model SDK have no cancellation hook. Its result is never read.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TypeVar

from prguard_core.config import DEFAULT_TIMEOUT, Config
from prguard_core.errors import ValidationTimeoutError
from prguard_core.models import PullRequestSnapshot, ValidationVerdict

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_deadline(operation: Callable[[], T], timeout: float, name: str = "prguard-pipeline") -> T:
    """Run ``operation`` on a daemon thread and return its result within ``timeout`` seconds."""
    outcome: dict = {}

    def _target():
        try:
            outcome["result"] = operation()
        except BaseException as e:  # re-raised on the caller's thread below
            outcome["error"] = e

    worker = threading.Thread(target=_target, name=name, daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        raise ValidationTimeoutError(f"Validation timeout after {timeout:g} seconds")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]


def is_skipped_author(author: str, skip_authors) -> bool:
    """Exact, case-sensitive match against the configured skip list."""
    return bool(author) and author in skip_authors


class Validator:
    """Coordinates the provider, the verdict client and the skip rules for one PR.

    Both collaborators are optional. Without a provider nothing can be
    fetched and the run passes by default; without a verdict client the PR
    is fetched (so a missing PR still fails loudly) and then passes by
    default. This lets the pipeline run in configuration-only environments.
    """

    def __init__(
        self,
        config: Config,
        provider=None,
        client=None,
        guidelines: str = "",
        timeout: float | None = None,
    ):
        self._config = config
        self._provider = provider
        self._client = client
        self._guidelines = guidelines
        self._timeout = timeout if timeout is not None else (config.timeout or DEFAULT_TIMEOUT)
        self.last_snapshot: PullRequestSnapshot | None = None

    def validate(self, owner: str, repo: str, number: int) -> ValidationVerdict:
        """Return the verdict for one PR, or raise if the run cannot complete.

        Raises ValidationTimeoutError past the deadline. Errors while
        fetching PR data propagate unchanged.
        """
        start = time.monotonic()
        verdict = run_with_deadline(lambda: self._perform_validation(owner, repo, number), self._timeout)
        logger.info(
            "Validated %s/%s#%d: %s in %.1fs", owner, repo, number, verdict.status, time.monotonic() - start
        )
        return verdict

    def _perform_validation(self, owner: str, repo: str, number: int) -> ValidationVerdict:
        if self._provider is None:
            logger.warning("No repository provider configured; returning default PASS verdict.")
            return ValidationVerdict.default_pass()

        snapshot = self._provider.fetch_pull_request(owner, repo, number)
        self.last_snapshot = snapshot

        if is_skipped_author(snapshot.author, self._config.skip_authors):
            logger.info("Skipping validation for PR #%d by excluded author %s", number, snapshot.author)
            return ValidationVerdict.skip(snapshot.author)

        if self._client is None:
            logger.warning("No verdict client configured; returning default PASS verdict.")
            return ValidationVerdict.default_pass()

        prompt = self._client.build_prompt(snapshot, self._guidelines)
        return self._client.invoke(prompt)
