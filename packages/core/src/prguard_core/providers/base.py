"""Base verdict client implementing the Template Method pattern.

    invoke() → _build_system_prompt()
             → _call_api()        ← the only provider-specific step
             → _parse() → _normalize()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return a ModelReply

Prompt construction, JSON parsing, verdict normalization and the
fallback-on-failure rule are defined here once.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from prguard_core.models import PASS, VERDICT_STATUSES, WARNINGS, PullRequestSnapshot, TokenUsage, ValidationVerdict

logger = logging.getLogger(__name__)

_MAX_TOKENS = 2048

_REQUIRED_FIELDS = ("status", "issues", "improvedTitle", "improvedCommitMessage", "improvedDescription")


class MalformedResponseError(ValueError):
    """The model answered, but not with a usable verdict object."""


@dataclass(frozen=True)
class ModelReply:
    text: str
    token_usage: TokenUsage = field(default_factory=TokenUsage)


class BaseValidator(ABC):
    MAX_TOKENS: int = _MAX_TOKENS

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def build_prompt(self, snapshot: PullRequestSnapshot, guidelines: str) -> str:
        """Build the per-PR prompt.

        Only title, description and commit messages are included. Filenames,
        line counts and patches never reach the model.
        """
        description = snapshot.body.strip() or "No description provided"
        commits = "\n".join(f"- {c.message} (by {c.author.name or 'unknown'})" for c in snapshot.commits)
        return f"""Analyze this pull request against the contribution guidelines.

## Pull Request Title
{snapshot.title}

## Pull Request Description
{description}

## Commits
{commits or "- (no commits)"}

## Contribution Guidelines
{guidelines}"""

    def invoke(self, prompt: str) -> ValidationVerdict:
        """Ask the model for a verdict. Never raises.

        Any failure in the API call or in parsing the reply turns into
        ValidationVerdict.fallback().
        """
        try:
            reply = self._call_api(self._build_system_prompt(), prompt)
            payload = self._parse(reply.text)
            return self._normalize(payload, reply.token_usage)
        except Exception as e:
            logger.warning("%s: AI validation unavailable: %s", self.__class__.__name__, e)
            return ValidationVerdict.fallback()

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> ModelReply:
        """Make a single API call and return the raw reply.

        Should raise on failure; invoke() turns any exception into the
        fallback verdict.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _build_system_prompt(self) -> str:
        return f"""You are a meticulous maintainer checking pull requests against a project's
contribution guidelines.

Judge only:
1. Commit message format and clarity
2. Pull request title clarity
3. Pull request description completeness

Do not judge code quality, style, or correctness of the change itself.

Respond with **only** a JSON object with exactly these fields:

{{
  "status": "PASS" | "WARNINGS" | "FAIL",
  "issues": ["<one concise, actionable problem per entry>"],
  "improvedTitle": "<a better PR title, or empty string if the title is fine>",
  "improvedCommitMessage": "<a better commit message, or empty string>",
  "improvedDescription": "<a better PR description, or empty string>"
}}

Use PASS only when there are no issues, WARNINGS for minor deviations and FAIL
when the guidelines are clearly violated. Required fields: {", ".join(_REQUIRED_FIELDS)}.
Do not return any text outside the JSON object."""

    def _parse(self, raw: str) -> dict:
        """Parse the model's text into a dict, tolerating an outer code fence."""
        cleaned = re.sub(r"^```(?:json)?\s*", "", (raw or "").strip())
        cleaned = re.sub(r"\s*```$", "", cleaned.strip())
        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"response is not valid JSON: {raw[:200]!r}") from e
        if not isinstance(payload, dict):
            raise MalformedResponseError(f"expected a JSON object, got {type(payload).__name__}")
        return payload

    def _normalize(self, payload: dict, token_usage: TokenUsage) -> ValidationVerdict:
        status = str(payload.get("status", "")).strip().upper()
        if status not in VERDICT_STATUSES:
            raise MalformedResponseError(f"unknown status {payload.get('status')!r}")

        issues = payload.get("issues") or []
        if not isinstance(issues, list):
            raise MalformedResponseError("'issues' must be a list")
        issues = tuple(str(i).strip() for i in issues if str(i).strip())

        # PASS means no issues; a PASS that still lists problems is a warning.
        if status == PASS and issues:
            logger.debug("Model returned PASS with %d issue(s); reporting WARNINGS", len(issues))
            status = WARNINGS

        return ValidationVerdict(
            status=status,
            issues=issues,
            improved_title=_text(payload.get("improvedTitle")),
            improved_commit_message=_text(payload.get("improvedCommitMessage")),
            improved_description=_text(payload.get("improvedDescription")),
            token_usage=token_usage,
        )


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()
