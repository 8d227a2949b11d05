"""Setup shared by the commands: config loading and store construction.

Failures here are unrecoverable for a run, so they surface as
click.ClickException and a non-zero exit code.
"""

from __future__ import annotations

import click

from scrutiny_core.config import ConfigError, load_config, parse_sources
from scrutiny_store.base import StoreError
from scrutiny_store.sqlite import SQLiteStore


def load_settings(config_path: str) -> tuple[dict, list]:
    """Return (config, sources) or raise ClickException."""
    from scrutiny_cli.auth import resolve_github_token

    try:
        config = load_config(config_path)
        sources = parse_sources(config)
    except ConfigError as e:
        raise click.ClickException(str(e))

    # Only GitHub sources need a token; skip the gh subprocess otherwise.
    if not config.get("github_token") and any(s.kind == "github" for s in sources):
        config["github_token"] = resolve_github_token()

    return config, sources


def build_store(config: dict) -> SQLiteStore:
    """Open the SQLite store configured under `db` (default scrutiny.db)."""
    db_path = config.get("db") or "scrutiny.db"
    try:
        return SQLiteStore(db_path=str(db_path))
    except StoreError as e:
        raise click.ClickException(str(e))
