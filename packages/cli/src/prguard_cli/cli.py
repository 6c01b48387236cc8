"""CLI entry point for prguard.

Commands:
  validate  check a pull request against the contribution guidelines
  init      write .prguard.yml and an optional GitHub Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prguard_cli.commands.init import init_cmd
from prguard_cli.commands.validate import validate_cmd

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # PyGithub logs every request at DEBUG; keep it quiet unless asked.
    logging.getLogger("github").setLevel(logging.DEBUG if verbose else logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("prguard"),
    prog_name="prguard",
)
@click.option(
    "--config",
    "config_path",
    default=".prguard.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRGUARD_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Validate pull requests against contribution guidelines with AI."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(validate_cmd)
main.add_command(init_cmd)
