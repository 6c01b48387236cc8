"""Idempotent publication of the validation report.

CI re-runs the validator on every push, so each run must update the comment
it posted last time instead of adding another one. The hidden marker
``<!-- {identifier} -->`` ties a comment to one validator; distinct
identifiers let several validators share a PR without touching each other's
comments.

Publication never fails the run over comment bookkeeping: a failing lookup
or update degrades to creating a fresh comment.
"""

from __future__ import annotations

import logging

from prguard_core.config import DEFAULT_SERVER_URL

logger = logging.getLogger(__name__)


def publish(provider, owner: str, repo: str, number: int, body: str, identifier: str) -> int:
    """Create or update the tracked comment and return its id."""
    try:
        existing = provider.find_tracked_comment(owner, repo, number, identifier)
    except Exception as e:
        logger.warning("Could not look up existing %s comment; creating a new one: %s", identifier, e)
        existing = None

    if existing is not None:
        try:
            updated = provider.update_comment(owner, repo, number, existing.id, body, identifier)
            logger.info("Updated comment %d on %s/%s#%d", updated.id, owner, repo, number)
            return updated.id
        except Exception as e:
            # e.g. the comment was deleted between the lookup and the update
            logger.warning("Failed to update comment %d; creating a new one: %s", existing.id, e)

    created = provider.create_comment(owner, repo, number, body, identifier)
    logger.info("Created comment %d on %s/%s#%d", created.id, owner, repo, number)
    return created.id


def comment_url(owner: str, repo: str, number: int, comment_id: int, server_url: str = DEFAULT_SERVER_URL) -> str:
    return f"{server_url.rstrip('/')}/{owner}/{repo}/pull/{number}#issuecomment-{comment_id}"
