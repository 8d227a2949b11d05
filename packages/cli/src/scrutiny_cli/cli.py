"""CLI entry point for scrutiny.

Commands:
  run   — scan every configured source and mail digests of new matches
  seen  — display the change ids already reported, per source
  init  — interactive wizard that writes a starter .scrutiny.yml
"""

from __future__ import annotations

import importlib.metadata
import logging

import click

from scrutiny_cli.commands.init import init_cmd
from scrutiny_cli.commands.run import run_cmd
from scrutiny_cli.commands.seen import seen_cmd

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@click.group()
@click.version_option(
    version=importlib.metadata.version("scrutiny"),
    prog_name="scrutiny",
)
@click.option(
    "--config",
    "config_path",
    default=".scrutiny.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="SCRUTINY_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Watch code-review servers and mail digests of changes matching your patterns."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=_LOG_FORMAT)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(run_cmd)
main.add_command(seen_cmd)
main.add_command(init_cmd)
