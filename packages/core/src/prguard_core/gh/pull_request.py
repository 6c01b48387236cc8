"""GitHub adapter: the only module that talks to PyGithub.

Every PyGithub object is mapped into a prguard model before it leaves this
module, so the rest of the pipeline never depends on the SDK's lazily
completed, duck-typed response objects.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from github import Auth, Github, GithubException

from prguard_core.errors import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    ProviderError,
)
from prguard_core.models import (
    COMMIT_STATES,
    Commit,
    CommitAuthor,
    CommitStatus,
    FileChange,
    PullRequestSnapshot,
    TrackedComment,
)
from prguard_core.retry import RATE_LIMIT_POLICY, RetryError, RetryPolicy, retry

logger = logging.getLogger(__name__)

DEFAULT_STATUS_CONTEXT = "ai-validator"


def comment_marker(identifier: str) -> str:
    """Hidden HTML marker that tags comments owned by one validator."""
    return f"<!-- {identifier} -->"


def with_marker(body: str, identifier: str) -> str:
    return f"{comment_marker(identifier)}\n{body}"


def _iso(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _error_message(exc: GithubException) -> str:
    data = exc.data
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return str(exc)


def _validate_target(owner, repo, number) -> None:
    if not isinstance(owner, str) or not owner.strip():
        raise InvalidArgumentError("Invalid repository owner: owner cannot be empty")
    if not isinstance(repo, str) or not repo.strip():
        raise InvalidArgumentError("Invalid repository name: repo cannot be empty")
    if isinstance(number, bool) or not isinstance(number, int) or number <= 0:
        raise InvalidArgumentError("Invalid PR number: must be a positive integer")


def _translate_fetch_error(
    exc: GithubException, owner: str, repo: str, number: int, repo_resolved: bool
) -> Exception:
    """Map a GitHub error from the PR-data calls onto an actionable error."""
    message = _error_message(exc)
    if exc.status == 404:
        lowered = message.lower()
        if repo_resolved or "pull request" in lowered or "issue not found" in lowered:
            return NotFoundError(f'Pull request #{number} not found in repository "{owner}/{repo}"')
        return NotFoundError(f'Repository "{owner}/{repo}" not found or you don\'t have access to it')
    if exc.status == 403:
        return PermissionDeniedError(f'Insufficient permissions to access repository "{owner}/{repo}"')
    return ProviderError(f"Failed to fetch PR data: {message}", cause=exc)


def _to_commit(raw) -> Commit:
    git_commit = raw.commit
    author = git_commit.author
    return Commit(
        sha=raw.sha,
        message=git_commit.message or "",
        author=CommitAuthor(
            name=(author.name or "") if author else "",
            email=(author.email or "") if author else "",
            date=_iso(author.date) if author else "",
        ),
    )


def _to_file(raw) -> FileChange:
    return FileChange(
        filename=raw.filename,
        status=raw.status,
        additions=raw.additions or 0,
        deletions=raw.deletions or 0,
        changes=raw.changes or 0,
        patch=raw.patch or None,
    )


def _to_comment(raw) -> TrackedComment:
    return TrackedComment(
        id=raw.id,
        body=raw.body or "",
        created_at=_iso(raw.created_at),
        updated_at=_iso(raw.updated_at),
    )


def _to_status(raw) -> CommitStatus:
    return CommitStatus(
        id=raw.id,
        state=raw.state,
        description=raw.description or "",
        context=raw.context or "",
        target_url=raw.target_url or None,
        created_at=_iso(raw.created_at),
        updated_at=_iso(raw.updated_at),
    )


def _gather(*operations):
    """Run each operation on its own daemon thread and return the results in order.

    The threads are daemons so a listing that hangs past the validation
    deadline cannot hold the process open at exit. The first error raised by
    any operation is re-raised once all of them have finished.
    """
    results = [None] * len(operations)
    errors: list[BaseException | None] = [None] * len(operations)

    def _target(index, operation):
        try:
            results[index] = operation()
        except BaseException as e:  # re-raised on the calling thread below
            errors[index] = e

    threads = [
        threading.Thread(target=_target, args=(i, op), name=f"prguard-fetch-{i}", daemon=True)
        for i, op in enumerate(operations)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    for error in errors:
        if error is not None:
            raise error
    return results


class GitHubProvider:
    """Repository data provider backed by the GitHub REST API."""

    def __init__(self, token: str, base_url: str | None = None, status_retry: RetryPolicy = RATE_LIMIT_POLICY):
        if not token:
            raise InvalidArgumentError("GitHub token is required")
        kwargs = {"auth": Auth.Token(token)}
        if base_url:
            kwargs["base_url"] = base_url
        self._gh = Github(**kwargs)
        self._status_retry = status_retry

    def _repo(self, owner: str, repo: str, lazy: bool = True):
        # Lazy repositories skip the metadata round-trip; used when a later
        # call will surface a missing repo anyway.
        return self._gh.get_repo(f"{owner}/{repo}", lazy=lazy)

    # ------------------------------------------------------------------ #
    # Pull request data                                                    #
    # ------------------------------------------------------------------ #

    def fetch_pull_request(self, owner: str, repo: str, number: int) -> PullRequestSnapshot:
        """Fetch title, body, author, commits and files for one pull request.

        Fails fast on malformed input before any network call. Commits and
        files are listed concurrently once the pull request has resolved.
        """
        _validate_target(owner, repo, number)

        repo_resolved = False
        try:
            this_repo = self._repo(owner, repo, lazy=False)
            repo_resolved = True
            pr = this_repo.get_pull(number)
            commits, files = _gather(
                lambda: [_to_commit(c) for c in pr.get_commits()],
                lambda: [_to_file(f) for f in pr.get_files()],
            )
        except GithubException as e:
            raise _translate_fetch_error(e, owner, repo, number, repo_resolved) from e
        except Exception as e:
            raise ProviderError(f"Failed to fetch PR data: {e}", cause=e) from e

        snapshot = PullRequestSnapshot(
            number=pr.number,
            title=pr.title or "",
            body=pr.body or "",
            author=pr.user.login if pr.user else "",
            head_sha=pr.head.sha if pr.head else "",
            commits=tuple(commits),
            files=tuple(files),
        )
        logger.debug(
            "Fetched PR #%d: %d commit(s), %d file(s)",
            snapshot.number,
            len(snapshot.commits),
            snapshot.diff_stats.files_changed,
        )
        return snapshot

    # ------------------------------------------------------------------ #
    # Tracked comments                                                     #
    # ------------------------------------------------------------------ #

    def find_tracked_comment(self, owner: str, repo: str, number: int, identifier: str) -> TrackedComment | None:
        """Return the first PR comment carrying the identifier's marker, or None."""
        marker = comment_marker(identifier)
        try:
            for raw in self._repo(owner, repo).get_issue(number).get_comments():
                if marker in (raw.body or ""):
                    return _to_comment(raw)
        except GithubException as e:
            raise ProviderError(f"Failed to find comment: {_error_message(e)}", cause=e) from e
        except Exception as e:
            raise ProviderError(f"Failed to find comment: {e}", cause=e) from e
        return None

    def create_comment(self, owner: str, repo: str, number: int, body: str, identifier: str) -> TrackedComment:
        try:
            raw = self._repo(owner, repo).get_issue(number).create_comment(with_marker(body, identifier))
        except GithubException as e:
            raise ProviderError(f"Failed to create comment: {_error_message(e)}", cause=e) from e
        except Exception as e:
            raise ProviderError(f"Failed to create comment: {e}", cause=e) from e
        return _to_comment(raw)

    def update_comment(
        self, owner: str, repo: str, number: int, comment_id: int, body: str, identifier: str
    ) -> TrackedComment:
        try:
            raw = self._repo(owner, repo).get_issue(number).get_comment(comment_id)
            raw.edit(with_marker(body, identifier))
        except GithubException as e:
            raise ProviderError(f"Failed to update comment: {_error_message(e)}", cause=e) from e
        except Exception as e:
            raise ProviderError(f"Failed to update comment: {e}", cause=e) from e
        return _to_comment(raw)

    # ------------------------------------------------------------------ #
    # Commit statuses                                                      #
    # ------------------------------------------------------------------ #

    def set_commit_status(
        self,
        owner: str,
        repo: str,
        sha: str,
        state: str,
        description: str,
        context: str = DEFAULT_STATUS_CONTEXT,
        target_url: str | None = None,
    ) -> CommitStatus:
        """Create a commit status, retrying when GitHub rate-limits the call."""
        if state not in COMMIT_STATES:
            raise InvalidArgumentError(f"Invalid commit status state: {state!r}")

        def _create():
            kwargs = {"state": state, "description": description, "context": context}
            if target_url:
                kwargs["target_url"] = target_url
            return self._repo(owner, repo).get_commit(sha).create_status(**kwargs)

        try:
            raw = retry(_create, self._status_retry)
        except RetryError as e:
            cause = e.last_error
            message = _error_message(cause) if isinstance(cause, GithubException) else str(cause)
            raise ProviderError(
                f"Failed to create commit status after {e.attempts} attempt(s): {message}", cause=cause
            ) from cause
        return _to_status(raw)
