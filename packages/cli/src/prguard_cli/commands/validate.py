"""validate command: check a pull request against the contribution guidelines."""

from __future__ import annotations

import dataclasses
import json
import logging

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape

from prguard_cli.auth import resolve_github_token
from prguard_cli.outputs import write_outputs
from prguard_core.comments import comment_url, publish
from prguard_core.config import load_config, load_guidelines, parse_repository, read_event
from prguard_core.errors import InvalidArgumentError, PrGuardError, ValidationTimeoutError
from prguard_core.gh.pull_request import GitHubProvider
from prguard_core.models import FAIL, PASS, ValidationVerdict
from prguard_core.providers.anthropic import AnthropicValidator
from prguard_core.report import format_report
from prguard_core.validator import Validator

console = Console()
logger = logging.getLogger(__name__)

_STATUS_COLOR = {"PASS": "green", "WARNINGS": "yellow", "FAIL": "red"}


def _fail(stage: str, error: BaseException) -> None:
    console.print(f"[red]Validation failed during {stage}: {escape(str(error))}[/red]", soft_wrap=True)
    raise SystemExit(1)


def _status_description(verdict: ValidationVerdict) -> str:
    """Short commit-status text; GitHub caps descriptions at 140 characters."""
    if verdict.skipped:
        return "Validation skipped for automated PR"
    if verdict.status == PASS:
        return "Contribution guidelines check passed"
    count = len(verdict.issues)
    if verdict.status == FAIL:
        return f"Contribution guidelines check failed: {count} issue(s)"
    return f"Passed with {count} warning(s)"


@click.command("validate")
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Defaults to GITHUB_REPOSITORY.")
@click.option(
    "--pr",
    "pr_number",
    type=click.IntRange(min=1),
    default=None,
    help="Pull request number. Defaults to the PR in the GITHUB_EVENT_PATH payload.",
)
@click.option("--token", default=None, help="GitHub token. Defaults to GITHUB_TOKEN or the gh CLI session.")
@click.option(
    "--guidelines",
    "guidelines_file",
    default=None,
    help="Path to the contribution guidelines. Overrides config file.",
)
@click.option("--skip-authors", default=None, help="Comma-separated PR authors to skip, e.g. 'dependabot[bot]'.")
@click.option("--identifier", "comment_identifier", default=None, help="Hidden marker used to find the comment.")
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the report without commenting or setting a commit status.",
)
@click.option("--no-status", is_flag=True, help="Do not set a commit status on the PR head.")
@click.option("--strict", is_flag=True, help="Exit with status 2 when the verdict is FAIL.")
@click.option("--json", "as_json", is_flag=True, help="Print the verdict summary as JSON.")
@click.pass_context
def validate_cmd(
    ctx,
    repo: str | None,
    pr_number: int | None,
    token: str | None,
    guidelines_file: str | None,
    skip_authors: str | None,
    comment_identifier: str | None,
    shadow: bool,
    no_status: bool,
    strict: bool,
    as_json: bool,
):
    """Validate a pull request's title, description and commit messages.

    Fetches the pull request, asks Claude to check it against your
    contribution guidelines, and posts (or updates) a single report comment.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token (or use --token / the gh CLI)
      ANTHROPIC_API_KEY    Anthropic API key
    """
    config_path = (ctx.obj or {}).get("config_path", ".prguard.yml")
    try:
        config = load_config(
            config_path,
            cli_overrides={
                "repository_token": token,
                "repository": repo,
                "guidelines_file": guidelines_file,
                "skip_authors": skip_authors,
                "comment_identifier": comment_identifier,
            },
        )
    except InvalidArgumentError as e:
        raise click.UsageError(str(e))

    # Resolve token: explicit value first, then gh CLI session.
    github_token = resolve_github_token(config.repository_token)
    if not github_token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    config = dataclasses.replace(config, repository_token=github_token)
    try:
        config.require_credentials()
    except InvalidArgumentError as e:
        raise click.UsageError(str(e))

    head_sha = None
    try:
        owner, repo_name = parse_repository(config.repository)
        if pr_number is None:
            event = read_event(config.event_path)
            pr_number, head_sha = event.number, event.head_sha
        guidelines = load_guidelines(config.guidelines_file)
        provider = GitHubProvider(github_token, base_url=config.api_url)
        client = AnthropicValidator(config.model_api_key, model=config.model)
    except (InvalidArgumentError, OSError, UnicodeDecodeError) as e:
        _fail("configuration", e)

    validator = Validator(config, provider=provider, client=client, guidelines=guidelines)
    console.print(f"Validating PR #{pr_number} in {owner}/{repo_name}...")

    try:
        verdict = validator.validate(owner, repo_name, pr_number)
    except ValidationTimeoutError as e:
        _fail("validation", e)
    except PrGuardError as e:
        _fail("PR data fetch", e)

    if head_sha is None and validator.last_snapshot is not None:
        head_sha = validator.last_snapshot.head_sha or None

    report = format_report(verdict, guidelines_file=config.guidelines_file)
    link = ""

    if shadow:
        console.print(Markdown(report))
        console.print("[bold]Shadow run complete. Nothing was posted.[/bold]")
    else:
        try:
            comment_id = publish(provider, owner, repo_name, pr_number, report, config.comment_identifier)
            link = comment_url(owner, repo_name, pr_number, comment_id, server_url=config.server_url)
            console.print(f"Report published: {link}", soft_wrap=True)
        except PrGuardError as e:
            logger.warning("Could not publish the validation report: %s", e)

        if config.commit_status and not no_status and head_sha:
            state = "failure" if verdict.status == FAIL else "success"
            try:
                provider.set_commit_status(
                    owner,
                    repo_name,
                    head_sha,
                    state,
                    _status_description(verdict),
                    context=config.status_context,
                    target_url=link or None,
                )
            except PrGuardError as e:
                logger.warning("Could not set commit status: %s", e)

    summary = verdict.to_dict()
    if config.output_path:
        write_outputs(
            config.output_path,
            {"validation-status": verdict.status, "comment-url": link, "summary": json.dumps(summary, indent=2)},
        )

    color = _STATUS_COLOR[verdict.status]
    console.print(f"[bold {color}]Validation status: {verdict.status}[/bold {color}]")
    for issue in verdict.issues:
        console.print(f"  - {escape(issue)}", soft_wrap=True)
    if as_json:
        click.echo(json.dumps(summary, indent=2))

    if strict and verdict.status == FAIL:
        raise SystemExit(2)
