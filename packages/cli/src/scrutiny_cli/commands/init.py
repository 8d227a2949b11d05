"""init command — interactive wizard that writes a starter config.

Running it again adds another source to the same file; existing keys and
sources are preserved.
"""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

from scrutiny_core.config import SOURCE_KINDS, split_list

console = Console()

_DEFAULT_ENDPOINTS = {
    "gerrit": "https://review.opendev.org/",
    "github": "https://github.com",
}


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Set up scrutiny: add a watched source to the config file."""
    path = Path(ctx.obj["config_path"])
    console.print(f"\n[bold cyan]scrutiny init[/bold cyan] — writing {path}\n")

    name = click.prompt("Source name", default="default")
    kind = click.prompt("Review server type", type=click.Choice(list(SOURCE_KINDS)), default="gerrit")
    endpoint = click.prompt("Server URL", default=_DEFAULT_ENDPOINTS[kind])
    projects = click.prompt("Projects (comma-separated)")
    patterns = click.prompt("Patterns (comma-separated regular expressions)")
    recipient = click.prompt("Send digests to")

    config = _read_config(path)
    config.setdefault("db", "scrutiny.db")
    sources = config.get("sources") or {}
    if name in sources and not click.confirm(f"Source {name!r} already exists. Replace it?", default=False):
        console.print("[yellow]Nothing written.[/yellow]")
        return

    source: dict = {
        "endpoint": endpoint,
        "projects": list(split_list(projects)),
        "patterns": list(split_list(patterns)),
        "recipient": recipient,
    }
    if kind != "gerrit":
        source["type"] = kind
    sources[name] = source
    config["sources"] = sources

    path.write_text(yaml.dump(config, default_flow_style=False, sort_keys=False))
    console.print(f"[green]Wrote source {name!r} to {path}[/green]")
    if kind == "github":
        console.print("[yellow]GitHub sources need GITHUB_TOKEN or a `gh auth login` session.[/yellow]")
    console.print("Run a scan with: [bold]scrutiny run --shadow[/bold]")


def _read_config(path: Path) -> dict:
    if not path.exists():
        return {}
    return yaml.safe_load(path.read_text()) or {}
