"""Tests for pipeline data models."""

import dataclasses

import pytest

from prguard_core.models import (
    FALLBACK_ISSUE,
    DiffStats,
    FileChange,
    PullRequestSnapshot,
    TokenUsage,
    ValidationVerdict,
)


def _files():
    return (
        FileChange("a.py", "modified", additions=4, deletions=1, changes=5),
        FileChange("b.py", "added", additions=10, deletions=0, changes=10),
        FileChange("c.py", "removed", additions=0, deletions=7, changes=7),
    )


class TestDiffStats:
    def test_sums_over_files(self):
        snapshot = PullRequestSnapshot(number=1, title="t", files=_files())
        stats = snapshot.diff_stats
        assert stats.total_additions == sum(f.additions for f in snapshot.files)
        assert stats.total_deletions == sum(f.deletions for f in snapshot.files)
        assert stats.total_changes == 22
        assert stats.files_changed == len(snapshot.files)

    def test_empty_pr(self):
        assert PullRequestSnapshot(number=1, title="t").diff_stats == DiffStats()

    def test_snapshot_is_immutable(self):
        snapshot = PullRequestSnapshot(number=1, title="t", files=_files())
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.title = "changed"


class TestValidationVerdict:
    def test_skip_verdict(self):
        verdict = ValidationVerdict.skip("dependabot[bot]")
        assert verdict.to_dict() == {
            "status": "PASS",
            "issues": ["Validation skipped for automated PR by dependabot[bot]"],
            "improvedTitle": "",
            "improvedCommitMessage": "",
            "improvedDescription": "",
            "skipped": True,
        }

    def test_fallback_verdict(self):
        verdict = ValidationVerdict.fallback()
        assert verdict.status == "FAIL"
        assert verdict.issues == (FALLBACK_ISSUE,)
        assert verdict.token_usage == TokenUsage(0, 0, 0)
        assert not verdict.has_improvements

    def test_default_pass(self):
        verdict = ValidationVerdict.default_pass()
        assert verdict.status == "PASS"
        assert verdict.issues == ()
        assert verdict.skipped is False

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            ValidationVerdict(status="MAYBE")

    def test_skipped_must_be_pass(self):
        with pytest.raises(ValueError):
            ValidationVerdict(status="FAIL", issues=("x",), skipped=True)

    def test_skipped_requires_single_issue(self):
        with pytest.raises(ValueError):
            ValidationVerdict(status="PASS", issues=(), skipped=True)

    def test_to_dict_includes_token_usage(self):
        verdict = ValidationVerdict(status="WARNINGS", issues=("a",), token_usage=TokenUsage(10, 5, 15))
        data = verdict.to_dict()
        assert data["tokenUsage"] == {"promptTokens": 10, "completionTokens": 5, "totalTokens": 15}
        assert "skipped" not in data

    def test_has_improvements_ignores_whitespace(self):
        assert not ValidationVerdict(status="PASS", improved_title="   ").has_improvements
        assert ValidationVerdict(status="FAIL", improved_description="Better").has_improvements
