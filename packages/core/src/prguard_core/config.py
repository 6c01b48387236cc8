"""Configuration loading.

The environment is read here and nowhere else: ``load_config`` runs once at
process start and every other component receives the resulting ``Config``.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from prguard_core.errors import InvalidArgumentError

DEFAULT_GUIDELINES_FILE = "CONTRIBUTING.md"
DEFAULT_IDENTIFIER = "ai-validator"
DEFAULT_TIMEOUT = 30.0
DEFAULT_SERVER_URL = "https://github.com"

DEFAULT_CONFIG: dict = {
    "guidelines_file": DEFAULT_GUIDELINES_FILE,
    "skip_authors": "",  # comma-separated logins, or a YAML list
    "comment_identifier": DEFAULT_IDENTIFIER,
    "model": None,  # None = provider default
    "timeout": DEFAULT_TIMEOUT,
    "status_context": DEFAULT_IDENTIFIER,
    "commit_status": True,
}

BUILTIN_GUIDELINES_DIR = Path(__file__).parent / "guidelines"
_BUILTIN_DEFAULT = BUILTIN_GUIDELINES_DIR / "default.md"

# GitHub Actions exposes `with:` inputs as INPUT_<NAME> with the name upper-cased.
_ACTION_INPUTS = {
    "guidelines_file": "INPUT_GUIDELINES-FILE",
    "skip_authors": "INPUT_SKIP-AUTHORS",
    "comment_identifier": "INPUT_COMMENT-IDENTIFIER",
}


def parse_skip_authors(value) -> tuple[str, ...]:
    """Normalize a comma-separated string (or list) of logins into a tuple."""
    if not value:
        return ()
    items = value.split(",") if isinstance(value, str) else value
    return tuple(s for s in (str(item).strip() for item in items) if s)


@dataclass(frozen=True)
class Config:
    repository_token: str | None = None
    model_api_key: str | None = None
    guidelines_file: str = DEFAULT_GUIDELINES_FILE
    skip_authors: tuple[str, ...] = ()
    comment_identifier: str = DEFAULT_IDENTIFIER
    model: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    status_context: str = DEFAULT_IDENTIFIER
    commit_status: bool = True
    repository: str | None = None
    event_path: str | None = None
    server_url: str = DEFAULT_SERVER_URL
    api_url: str | None = None
    output_path: str | None = None

    def require_credentials(self) -> None:
        """Raise InvalidArgumentError naming the first missing credential."""
        if not self.repository_token:
            raise InvalidArgumentError("Missing required configuration: repository token (GITHUB_TOKEN)")
        if not self.model_api_key:
            raise InvalidArgumentError("Missing required configuration: model API key (ANTHROPIC_API_KEY)")


def load_config(
    config_path: str = ".prguard.yml",
    cli_overrides: Optional[dict] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Build the run configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prguard.yml in the current directory
      3. GitHub Actions inputs (INPUT_*)
      4. CLI argument overrides
    Credentials and the calling context come from the environment.
    """
    env = os.environ if environ is None else environ
    values = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise InvalidArgumentError(f"{config_path} must contain a mapping at the top level")
        values.update(file_config)

    for key, env_name in _ACTION_INPUTS.items():
        if env.get(env_name):
            values[key] = env[env_name]

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                values[key] = value

    try:
        timeout = float(values["timeout"])
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"timeout must be a number, got {values['timeout']!r}")
    if timeout <= 0:
        raise InvalidArgumentError("timeout must be positive")

    return Config(
        repository_token=values.get("repository_token") or env.get("GITHUB_TOKEN") or env.get("INPUT_GITHUB-TOKEN"),
        model_api_key=values.get("model_api_key")
        or env.get("ANTHROPIC_API_KEY")
        or env.get("INPUT_MODEL-API-KEY"),
        guidelines_file=values["guidelines_file"] or DEFAULT_GUIDELINES_FILE,
        skip_authors=parse_skip_authors(values["skip_authors"]),
        comment_identifier=values["comment_identifier"] or DEFAULT_IDENTIFIER,
        model=values["model"],
        timeout=timeout,
        status_context=values["status_context"] or DEFAULT_IDENTIFIER,
        commit_status=bool(values["commit_status"]),
        repository=values.get("repository") or env.get("GITHUB_REPOSITORY"),
        event_path=env.get("GITHUB_EVENT_PATH"),
        server_url=env.get("GITHUB_SERVER_URL") or DEFAULT_SERVER_URL,
        api_url=env.get("GITHUB_API_URL"),
        output_path=env.get("GITHUB_OUTPUT"),
    )


def load_guidelines(guidelines_file: str = DEFAULT_GUIDELINES_FILE) -> str:
    """
    Load contribution guidelines.

    A custom path must exist. When the default CONTRIBUTING.md is absent the
    built-in guidelines are used instead.
    """
    p = Path(guidelines_file)
    if p.exists():
        return p.read_text(encoding="utf-8")

    if guidelines_file != DEFAULT_GUIDELINES_FILE:
        raise FileNotFoundError(f"Guidelines file not found: {guidelines_file}")

    if _BUILTIN_DEFAULT.exists():
        return _BUILTIN_DEFAULT.read_text(encoding="utf-8")

    raise FileNotFoundError("No CONTRIBUTING.md found and built-in default guidelines are missing.")


@dataclass(frozen=True)
class PullRequestEvent:
    number: int
    head_sha: str | None = None


def parse_repository(value: str | None) -> tuple[str, str]:
    """Split ``owner/repo`` into its two parts."""
    if not value:
        raise InvalidArgumentError("Repository not set: pass --repo or set GITHUB_REPOSITORY")
    owner, _, repo = value.strip().partition("/")
    if not owner or not repo or "/" in repo:
        raise InvalidArgumentError(f"Invalid repository format: {value!r} (expected owner/repo)")
    return owner, repo


def read_event(event_path: str | None) -> PullRequestEvent:
    """Extract the PR number (and head SHA when present) from a webhook payload file.

    Accepts both ``pull_request.number`` (pull_request events) and a
    top-level ``number`` (issue_comment and similar events).
    """
    if not event_path:
        raise InvalidArgumentError("Event payload not set: pass --pr or set GITHUB_EVENT_PATH")
    try:
        with open(event_path, encoding="utf-8") as f:
            event = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidArgumentError(f"Failed to parse GitHub event: {e}") from e
    if not isinstance(event, dict):
        raise InvalidArgumentError("Failed to parse GitHub event: payload is not a JSON object")

    pull_request = event.get("pull_request") or {}
    if not isinstance(pull_request, dict):
        raise InvalidArgumentError("Failed to parse GitHub event: pull_request is not a JSON object")
    number = pull_request.get("number") or event.get("number")
    if isinstance(number, bool) or not isinstance(number, int) or number <= 0:
        raise InvalidArgumentError("Failed to parse GitHub event: PR number not found in event data")
    head = pull_request.get("head") or {}
    if not isinstance(head, dict):
        raise InvalidArgumentError("Failed to parse GitHub event: pull_request.head is not a JSON object")
    head_sha = head.get("sha")
    return PullRequestEvent(number=number, head_sha=head_sha)
