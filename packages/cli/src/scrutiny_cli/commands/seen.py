"""seen command — display change ids already reported, per source."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from scrutiny_cli.bootstrap import build_store, load_settings

console = Console()


@click.command("seen")
@click.option("--endpoint", default=None, help="Only show entries for this source endpoint.")
@click.option("--limit", default=50, show_default=True, help="Maximum number of entries to show.")
@click.pass_context
def seen_cmd(ctx, endpoint: str | None, limit: int):
    """Show the changes already reported and not yet pruned.

    An entry disappears once its change is no longer open on the server.
    """
    config, _ = load_settings(ctx.obj["config_path"])
    store = build_store(config)
    ctx.call_on_close(store.close)

    entries = store.list_seen(endpoint)
    if not entries:
        console.print("[yellow]No reported changes recorded.[/yellow]")
        return

    # Most recent first, capped at --limit.
    entries = list(reversed(entries))[:limit]

    table = Table(title="Reported changes", show_header=True, header_style="bold cyan")
    table.add_column("Endpoint", max_width=50)
    table.add_column("Change", style="bold")
    table.add_column("First seen", width=20)

    for e in entries:
        table.add_row(e.endpoint, e.change_id, e.first_seen[:19].replace("T", " "))

    console.print(table)
