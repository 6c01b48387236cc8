"""Render a ValidationVerdict as the markdown body of the PR comment."""

from __future__ import annotations

from datetime import datetime, timezone

from prguard_core.config import DEFAULT_GUIDELINES_FILE
from prguard_core.models import FAIL, PASS, WARNINGS, ValidationVerdict

MAX_ITEM_CHARS = 1000

_STATUS_LINES = {
    PASS: ("### Status: ✅ Passed", "Great work! Your contribution meets our guidelines."),
    WARNINGS: (
        "### Status: ⚠️ Passed with Warnings",
        "Your contribution looks good, but consider these suggestions for improvement.",
    ),
    FAIL: ("### Status: ❌ Needs Improvement", "Your contribution needs some changes to meet our guidelines."),
}

_IMPROVEMENT_HEADERS = {
    PASS: "### ✨ Optional Enhancements",
    WARNINGS: "### ✨ Suggested Improvements",
    FAIL: "### ✨ Required Improvements",
}


def truncate(text: str, limit: int = MAX_ITEM_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def format_report(
    verdict: ValidationVerdict,
    guidelines_file: str = DEFAULT_GUIDELINES_FILE,
    now: datetime | None = None,
) -> str:
    """Build the report posted below the hidden comment marker."""
    lines = ["## 🤖 AI Validation Results\n"]

    if verdict.skipped:
        lines.append("### Status: ⏭️ Skipped")
        lines.append("This pull request was opened by an excluded author; no AI validation was run.\n")
    else:
        status_line, blurb = _STATUS_LINES[verdict.status]
        lines.append(status_line)
        lines.append(f"{blurb}\n")

    lines.append("### 📋 Issues Found")
    if verdict.issues:
        lines.append("")
        lines.extend(f"- {truncate(issue)}" for issue in verdict.issues)
        lines.append("")
    else:
        lines.append("_No issues detected_\n")

    if verdict.has_improvements:
        lines.append(f"{_IMPROVEMENT_HEADERS[verdict.status]}\n")
        for heading, text in (
            ("#### 📝 Suggested PR Title", verdict.improved_title),
            ("#### 📋 Suggested Commit Message", verdict.improved_commit_message),
            ("#### 📄 Suggested PR Description", verdict.improved_description),
        ):
            if text.strip():
                lines.append(heading)
                lines.append("```")
                lines.append(truncate(text))
                lines.append("```\n")

    usage = verdict.token_usage
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M:%S")
    lines.append("---")
    lines.append(f"*Automated validation based on [contribution guidelines]({guidelines_file})*")
    if usage is not None and usage.total_tokens:
        lines.append(
            f"_Tokens used: {usage.total_tokens} "
            f"({usage.prompt_tokens} prompt, {usage.completion_tokens} completion)_"
        )
    lines.append(f"_Last updated: {stamp} UTC_")

    return "\n".join(lines) + "\n"
