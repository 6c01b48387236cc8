"""GitHub token resolution with gh CLI fallback.

Resolution order (stops at first success):
  1. An explicit token (``--token``, GITHUB_TOKEN, or the action input)
  2. `gh auth token` (GitHub CLI session, works after `gh auth login`)

Inside GitHub Actions the token always comes from step 1; step 2 lets
developers run `prguard validate` locally without creating a PAT.
"""

from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token(explicit: str | None = None) -> str | None:
    """Return a GitHub token or None if no valid source is available.

    Never raises. Callers should check for None and emit a UsageError.
    """
    if explicit:
        return explicit

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved GitHub token via gh CLI session.")
                return gh_token
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or timed out.
        pass

    return None
