"""init command: write .prguard.yml and a GitHub Actions workflow.

Runs once per repository: afterwards every pull request is validated in CI
without any per-developer setup.
"""

from __future__ import annotations

import subprocess
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click
import yaml
from rich.console import Console

from prguard_core.config import DEFAULT_GUIDELINES_FILE, DEFAULT_IDENTIFIER, parse_skip_authors

console = Console()

_WORKFLOW_TEMPLATE = """\
name: PR Guidelines Check

on:
  pull_request:
    types: [opened, edited, synchronize, reopened]

jobs:
  validate:
    runs-on: ubuntu-latest
    timeout-minutes: 5
    permissions:
      contents: read
      pull-requests: write
      issues: write
      statuses: write

    steps:
      - uses: actions/checkout@v4

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install prguard
        run: pip install "prguard=={version}"

      - name: Validate pull request
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
          ANTHROPIC_API_KEY: ${{{{ secrets.ANTHROPIC_API_KEY }}}}
        run: prguard validate
"""


@click.command("init")
@click.option("--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote.")
def init_cmd(repo: str | None):
    """Set up prguard for this repository.

    Creates .prguard.yml and, optionally, a GitHub Actions workflow that
    validates every pull request.
    """
    console.print("\n[bold cyan]prguard init[/bold cyan] repository setup\n")

    if repo is None:
        repo = _detect_repo_from_git()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")
        else:
            repo = click.prompt("GitHub repository (owner/name)")

    guidelines_file = click.prompt("Contribution guidelines file", default=DEFAULT_GUIDELINES_FILE)
    if not Path(guidelines_file).exists():
        console.print(
            f"[yellow]{guidelines_file} does not exist yet; built-in guidelines apply until it does.[/yellow]"
        )

    skip_authors = click.prompt(
        "PR authors to skip (comma-separated)",
        default="dependabot[bot],renovate[bot]",
        show_default=True,
    )

    config: dict = {
        "guidelines_file": guidelines_file,
        "skip_authors": list(parse_skip_authors(skip_authors)),
        "comment_identifier": DEFAULT_IDENTIFIER,
    }
    _write_config(config)
    console.print("[green]Created .prguard.yml[/green]")

    setup_ci = click.confirm("\nGenerate .github/workflows/prguard.yml for GitHub Actions?", default=True)
    if setup_ci:
        _write_workflow()
        console.print("[green]Created .github/workflows/prguard.yml[/green]")
        console.print(
            "\n[yellow]Remember to add [bold]ANTHROPIC_API_KEY[/bold] to your "
            "GitHub repository secrets (Settings → Secrets → Actions).[/yellow]"
        )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(f"Validate a PR with: [bold]prguard validate --repo {repo} --pr <number>[/bold]")


def _detect_repo_from_git() -> str | None:
    """Try to detect the GitHub repo slug from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode != 0:
            return None
        url = result.stdout.strip()
        # https://github.com/owner/repo.git  →  owner/repo
        # git@github.com:owner/repo.git      →  owner/repo
        if "github.com" not in url:
            return None
        slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
        return slug if "/" in slug else None
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None


def _write_config(config: dict) -> None:
    """Write or update .prguard.yml, preserving any existing keys."""
    path = Path(".prguard.yml")
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    try:
        return version("prguard")
    except PackageNotFoundError:
        return "0.1.0"


def _write_workflow() -> None:
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    (workflow_dir / "prguard.yml").write_text(_WORKFLOW_TEMPLATE.format(version=_get_version()))
