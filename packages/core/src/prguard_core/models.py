"""Data models passed between the pipeline stages.

Every model is frozen: a snapshot is taken once per run and only read
afterwards, and a verdict is never changed once it has been returned.
Sequences are tuples for the same reason.
"""

from __future__ import annotations

from dataclasses import dataclass, field

PASS = "PASS"
FAIL = "FAIL"
WARNINGS = "WARNINGS"
VERDICT_STATUSES = (PASS, FAIL, WARNINGS)

COMMIT_STATES = ("pending", "success", "failure", "error")

FALLBACK_ISSUE = "AI validation unavailable - please review manually"


@dataclass(frozen=True)
class CommitAuthor:
    name: str = ""
    email: str = ""
    date: str = ""  # ISO-8601, empty when GitHub omits it


@dataclass(frozen=True)
class Commit:
    sha: str
    message: str
    author: CommitAuthor = field(default_factory=CommitAuthor)


@dataclass(frozen=True)
class FileChange:
    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None


@dataclass(frozen=True)
class DiffStats:
    total_additions: int = 0
    total_deletions: int = 0
    total_changes: int = 0
    files_changed: int = 0

    @classmethod
    def from_files(cls, files) -> DiffStats:
        return cls(
            total_additions=sum(f.additions for f in files),
            total_deletions=sum(f.deletions for f in files),
            total_changes=sum(f.changes for f in files),
            files_changed=len(files),
        )


@dataclass(frozen=True)
class PullRequestSnapshot:
    """One pull request as it looked when the run fetched it."""

    number: int
    title: str
    body: str = ""
    author: str = ""
    head_sha: str = ""
    commits: tuple[Commit, ...] = ()
    files: tuple[FileChange, ...] = ()

    @property
    def diff_stats(self) -> DiffStats:
        return DiffStats.from_files(self.files)


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass(frozen=True)
class ValidationVerdict:
    """Structured outcome of one validation run."""

    status: str  # "PASS" | "FAIL" | "WARNINGS"
    issues: tuple[str, ...] = ()
    improved_title: str = ""
    improved_commit_message: str = ""
    improved_description: str = ""
    token_usage: TokenUsage | None = None
    skipped: bool = False

    def __post_init__(self):
        if self.status not in VERDICT_STATUSES:
            raise ValueError(f"Unknown verdict status: {self.status!r}")
        if self.skipped and (self.status != PASS or len(self.issues) != 1):
            raise ValueError("A skipped verdict must be PASS with exactly one explanatory issue.")

    @classmethod
    def skip(cls, author: str) -> ValidationVerdict:
        return cls(status=PASS, issues=(f"Validation skipped for automated PR by {author}",), skipped=True)

    @classmethod
    def fallback(cls) -> ValidationVerdict:
        return cls(status=FAIL, issues=(FALLBACK_ISSUE,), token_usage=TokenUsage())

    @classmethod
    def default_pass(cls) -> ValidationVerdict:
        return cls(status=PASS)

    @property
    def has_improvements(self) -> bool:
        return any(
            s.strip() for s in (self.improved_title, self.improved_commit_message, self.improved_description)
        )

    def to_dict(self) -> dict:
        """Render the JSON summary published as an action output."""
        data: dict = {
            "status": self.status,
            "issues": list(self.issues),
            "improvedTitle": self.improved_title,
            "improvedCommitMessage": self.improved_commit_message,
            "improvedDescription": self.improved_description,
        }
        if self.token_usage is not None:
            data["tokenUsage"] = self.token_usage.to_dict()
        if self.skipped:
            data["skipped"] = True
        return data


@dataclass(frozen=True)
class TrackedComment:
    id: int
    body: str
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class CommitStatus:
    id: int
    state: str  # "pending" | "success" | "failure" | "error"
    description: str = ""
    context: str = ""
    target_url: str | None = None
    created_at: str = ""
    updated_at: str = ""
