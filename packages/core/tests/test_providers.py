"""Tests for verdict client implementations.

Shared behaviour (build_prompt, _parse, _normalize and the fallback rule in
invoke) lives in BaseValidator and is tested once via a lightweight stub.
Provider-specific tests cover only the SDK client setup and _call_api.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from prguard_core.errors import InvalidArgumentError
from prguard_core.models import (
    FALLBACK_ISSUE,
    Commit,
    CommitAuthor,
    FileChange,
    PullRequestSnapshot,
    TokenUsage,
)
from prguard_core.providers.anthropic import AnthropicValidator
from prguard_core.providers.base import BaseValidator, ModelReply

FAIL_JSON = json.dumps(
    {
        "status": "FAIL",
        "issues": ["Commit message 'fix stuff' does not follow Conventional Commits"],
        "improvedTitle": "fix(auth): handle expired tokens",
        "improvedCommitMessage": "fix(auth): handle expired tokens",
        "improvedDescription": "",
    }
)


class _StubValidator(BaseValidator):
    """Minimal concrete subclass used to test BaseValidator shared methods."""

    def __init__(self, text=FAIL_JSON, usage=None, error=None):
        self.text = text
        self.usage = usage or TokenUsage(120, 30, 150)
        self.error = error
        self.calls = []

    def _call_api(self, system_prompt: str, user_prompt: str) -> ModelReply:
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return ModelReply(text=self.text, token_usage=self.usage)


def _snapshot(body="Adds token refresh.", commits=None):
    return PullRequestSnapshot(
        number=12,
        title="Fix login",
        body=body,
        author="octocat",
        commits=commits
        if commits is not None
        else (Commit(sha="c1", message="fix stuff", author=CommitAuthor(name="Ada Lovelace")),),
        files=(FileChange("src/secret_module.py", "modified", additions=321, deletions=45, changes=366),),
    )


# ---------------------------------------------------------------------------
# build_prompt
# ---------------------------------------------------------------------------


class TestBuildPrompt:
    def test_contains_title_description_and_guidelines(self):
        prompt = _StubValidator().build_prompt(_snapshot(), "## Use Conventional Commits")
        assert "Fix login" in prompt
        assert "Adds token refresh." in prompt
        assert "## Use Conventional Commits" in prompt

    def test_lists_commit_messages_with_author(self):
        prompt = _StubValidator().build_prompt(_snapshot(), "g")
        assert "- fix stuff (by Ada Lovelace)" in prompt

    def test_placeholder_for_empty_description(self):
        prompt = _StubValidator().build_prompt(_snapshot(body="   "), "g")
        assert "No description provided" in prompt

    def test_excludes_file_level_diff_metrics(self):
        prompt = _StubValidator().build_prompt(_snapshot(), "g")
        assert "src/secret_module.py" not in prompt
        assert "321" not in prompt
        assert "366" not in prompt

    def test_is_deterministic(self):
        validator = _StubValidator()
        assert validator.build_prompt(_snapshot(), "g") == validator.build_prompt(_snapshot(), "g")


# ---------------------------------------------------------------------------
# invoke: success path
# ---------------------------------------------------------------------------


class TestInvoke:
    def test_parses_structured_verdict(self):
        verdict = _StubValidator().invoke("prompt")
        assert verdict.status == "FAIL"
        assert verdict.issues == ("Commit message 'fix stuff' does not follow Conventional Commits",)
        assert verdict.improved_commit_message == "fix(auth): handle expired tokens"
        assert verdict.improved_description == ""
        assert verdict.token_usage == TokenUsage(120, 30, 150)

    def test_system_prompt_scopes_the_judgment(self):
        validator = _StubValidator()
        validator.invoke("the prompt")
        system, user = validator.calls[0]
        assert user == "the prompt"
        assert "Do not judge code quality" in system
        for name in ("status", "issues", "improvedTitle", "improvedCommitMessage", "improvedDescription"):
            assert name in system

    def test_strips_markdown_code_fence(self):
        verdict = _StubValidator(text=f"```json\n{FAIL_JSON}\n```").invoke("p")
        assert verdict.status == "FAIL"

    def test_absent_fields_default_to_empty(self):
        verdict = _StubValidator(text='{"status": "WARNINGS", "issues": ["minor"]}').invoke("p")
        assert verdict.status == "WARNINGS"
        assert verdict.improved_title == ""
        assert verdict.improved_commit_message == ""
        assert verdict.improved_description == ""

    def test_missing_issues_defaults_to_empty_list(self):
        verdict = _StubValidator(text='{"status": "PASS"}').invoke("p")
        assert verdict.status == "PASS"
        assert verdict.issues == ()

    def test_status_is_case_insensitive(self):
        assert _StubValidator(text='{"status": "pass", "issues": []}').invoke("p").status == "PASS"

    def test_pass_with_issues_becomes_warnings(self):
        verdict = _StubValidator(text='{"status": "PASS", "issues": ["title is long"]}').invoke("p")
        assert verdict.status == "WARNINGS"
        assert verdict.issues == ("title is long",)

    def test_blank_issues_dropped(self):
        verdict = _StubValidator(text='{"status": "PASS", "issues": ["", "  "]}').invoke("p")
        assert verdict.status == "PASS"
        assert verdict.issues == ()


# ---------------------------------------------------------------------------
# invoke: failure path never raises
# ---------------------------------------------------------------------------


def _assert_fallback(verdict):
    assert verdict.status == "FAIL"
    assert verdict.issues == (FALLBACK_ISSUE,)
    assert verdict.improved_title == ""
    assert verdict.improved_commit_message == ""
    assert verdict.improved_description == ""
    assert verdict.token_usage == TokenUsage(0, 0, 0)
    assert set(verdict.to_dict()) >= {
        "status",
        "issues",
        "improvedTitle",
        "improvedCommitMessage",
        "improvedDescription",
    }


class TestInvokeFallback:
    def test_api_error(self):
        _assert_fallback(_StubValidator(error=ConnectionError("network down")).invoke("p"))

    def test_invalid_json(self):
        _assert_fallback(_StubValidator(text="I think this PR is fine!").invoke("p"))

    def test_json_array_instead_of_object(self):
        _assert_fallback(_StubValidator(text='["PASS"]').invoke("p"))

    def test_unknown_status(self):
        _assert_fallback(_StubValidator(text='{"status": "LGTM", "issues": []}').invoke("p"))

    def test_missing_status(self):
        _assert_fallback(_StubValidator(text='{"issues": []}').invoke("p"))

    def test_issues_not_a_list(self):
        _assert_fallback(_StubValidator(text='{"status": "FAIL", "issues": "bad title"}').invoke("p"))

    def test_empty_response(self):
        _assert_fallback(_StubValidator(text="").invoke("p"))


# ---------------------------------------------------------------------------
# Provider-specific
# ---------------------------------------------------------------------------


class TestAnthropicValidator:
    def test_requires_api_key(self):
        with pytest.raises(InvalidArgumentError):
            AnthropicValidator(api_key="  ")

    def test_raises_import_error_without_sdk(self):
        with patch.dict("sys.modules", {"anthropic": None}):
            with pytest.raises(ImportError, match="anthropic"):
                AnthropicValidator(api_key="key")

    def test_model_is_claude(self):
        assert "claude" in AnthropicValidator.MODEL

    def test_model_override(self, mocker):
        mocker.patch("anthropic.Anthropic")
        assert AnthropicValidator(api_key="key", model="claude-3-5-haiku-latest").model == "claude-3-5-haiku-latest"

    def test_call_api_extracts_text_and_usage(self, mocker):
        from anthropic.types import TextBlock

        client_cls = mocker.patch("anthropic.Anthropic")
        response = MagicMock()
        response.content = [TextBlock(type="text", text=FAIL_JSON)]
        response.usage.input_tokens = 200
        response.usage.output_tokens = 40
        client_cls.return_value.messages.create.return_value = response

        validator = AnthropicValidator(api_key="key")
        verdict = validator.invoke("prompt")

        client_cls.assert_called_once_with(api_key="key")
        kwargs = client_cls.return_value.messages.create.call_args.kwargs
        assert kwargs["model"] == AnthropicValidator.MODEL
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
        assert verdict.status == "FAIL"
        assert verdict.token_usage == TokenUsage(200, 40, 240)

    def test_sdk_error_becomes_fallback(self, mocker):
        client_cls = mocker.patch("anthropic.Anthropic")
        client_cls.return_value.messages.create.side_effect = RuntimeError("overloaded")

        _assert_fallback(AnthropicValidator(api_key="key").invoke("prompt"))
