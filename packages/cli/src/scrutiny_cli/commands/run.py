"""run command — scan all sources, mail digests, reconcile the store."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from scrutiny_cli.bootstrap import build_store, load_settings
from scrutiny_core.config import mail_settings
from scrutiny_core.mailer import send_mail
from scrutiny_core.review.factory import build_client
from scrutiny_core.runner import RunSummary, run_watch

console = Console()


def _print_summary(summary: RunSummary, shadow: bool) -> None:
    title = "Shadow run" if shadow else "Run summary"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Source", style="bold")
    table.add_column("Open", justify="right", width=6)
    table.add_column("New", justify="right", width=6)
    table.add_column("Mailed", width=8)
    table.add_column("Pruned", justify="right", width=8)
    table.add_column("Errors")

    for r in summary.sources:
        mailed = "[green]yes[/green]" if r.notified else "-"
        errors = f"[red]{'; '.join(r.errors)}[/red]" if r.errors else ""
        table.add_row(r.name, str(r.open_matches), str(r.new_matches), mailed, str(len(r.removed)), errors)

    console.print(table)


@click.command("run")
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print digests instead of mailing them and leave the store untouched.",
)
@click.pass_context
def run_cmd(ctx, shadow: bool):
    """Scan every configured source once and mail digests of new matches.

    Meant to be run from cron or another scheduler. Exits non-zero only when
    the configuration or the store cannot be loaded; per-source failures are
    logged and do not change the exit code.

    \b
    Optional environment variables:
      GITHUB_TOKEN             Token for `type: github` sources (or use gh CLI)
      SCRUTINY_SMTP_USER       SMTP login user
      SCRUTINY_SMTP_PASSWORD   SMTP login password
    """
    config, sources = load_settings(ctx.obj["config_path"])
    store = build_store(config)

    if shadow:
        # Work on an in-memory copy so marks and pruning are thrown away.
        real_store = store
        store = real_store.snapshot()
        real_store.close()

        def send(source, body):
            console.print(f"\n[bold]Digest for {source.name}[/bold] [dim](to {source.recipient}, not sent)[/dim]")
            console.print(body, markup=False, highlight=False)

    else:
        settings = mail_settings(config)

        def send(source, body):
            send_mail(settings, source.recipient, body)

    ctx.call_on_close(store.close)

    summary = run_watch(sources, store, lambda source: build_client(source, config), send)
    _print_summary(summary, shadow)
    if summary.total_new == 0:
        console.print("[yellow]No new matching changes.[/yellow]")
