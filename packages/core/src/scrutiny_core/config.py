import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from scrutiny_core.mailer import MailSettings
from scrutiny_core.matcher import compile_patterns

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "db": "scrutiny.db",
    "smtp_host": "localhost",
    "smtp_port": 25,
    "smtp_starttls": False,
    "mail_sender": "scrutiny@localhost",
    "mail_subject": "[scrutiny] Changes requiring attention",
    "request_timeout": 30,
    "sources": {},
}

SOURCE_KINDS = ("gerrit", "github")
_REQUIRED_SOURCE_KEYS = ("endpoint", "recipient")


class ConfigError(Exception):
    """The configuration cannot be loaded or yields nothing to watch."""


@dataclass(frozen=True)
class WatchedSource:
    """One review server to monitor, with its projects, patterns and recipient.

    `endpoint` is the partition key into the seen-change store, so it must
    stay stable across runs.
    """

    name: str
    endpoint: str
    projects: tuple[str, ...]
    patterns: tuple[str, ...]
    recipient: str
    kind: str = "gerrit"


def load_config(config_path: str = ".scrutiny.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. The YAML config file (required)
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "sources": {}}

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot load config file {config_path}: {e}") from e
    if not isinstance(file_config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping at the top level.")
    config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["smtp_user"] = os.environ.get("SCRUTINY_SMTP_USER")
    config["smtp_password"] = os.environ.get("SCRUTINY_SMTP_PASSWORD")

    return config


def split_list(value) -> tuple[str, ...]:
    """Turn a comma-separated string or a YAML list into a tuple of unique, stripped items.

    Order is kept; blanks and repeats are dropped.
    """
    if value is None:
        return ()
    items = value.split(",") if isinstance(value, str) else [str(v) for v in value]
    result: list[str] = []
    for item in items:
        item = item.strip()
        if item and item not in result:
            result.append(item)
    return tuple(result)


def parse_source(name: str, options: dict) -> WatchedSource:
    """Build a WatchedSource from one `sources:` entry, reading each option explicitly."""
    if not isinstance(options, dict):
        raise ConfigError(f"Source {name!r} must be a mapping of options.")

    for key in _REQUIRED_SOURCE_KEYS:
        if not options.get(key):
            raise ConfigError(f"Source {name!r} is missing required key {key!r}.")

    kind = str(options.get("type", "gerrit")).lower()
    if kind not in SOURCE_KINDS:
        raise ConfigError(f"Source {name!r} has unknown type {kind!r}. Choose one of: {', '.join(SOURCE_KINDS)}.")

    return WatchedSource(
        name=name,
        endpoint=str(options["endpoint"]).strip(),
        projects=split_list(options.get("projects")),
        patterns=split_list(options.get("patterns")),
        recipient=str(options["recipient"]).strip(),
        kind=kind,
    )


def parse_sources(config: dict) -> list[WatchedSource]:
    """Return the watched sources in config order.

    A broken source is logged and skipped; only an empty result is fatal.
    """
    raw = config.get("sources") or {}
    if not isinstance(raw, dict):
        raise ConfigError("'sources' must be a mapping of source name to options.")

    sources: list[WatchedSource] = []
    endpoints: set[str] = set()
    for name, options in raw.items():
        try:
            source = parse_source(str(name), options)
        except ConfigError as e:
            logger.error("Skipping source: %s", e)
            continue
        if source.endpoint in endpoints:
            logger.error("Skipping source %r: endpoint %s is already watched by another source.", name, source.endpoint)
            continue
        if not source.projects:
            logger.warning("Source %r has no projects configured; nothing will be scanned.", name)
        if not source.patterns:
            logger.warning("Source %r has no patterns configured; no change will match.", name)
        elif len(compile_patterns(source.patterns)) < len(source.patterns):
            logger.warning("Source %r has invalid patterns; they will never match.", name)
        endpoints.add(source.endpoint)
        sources.append(source)

    if not sources:
        raise ConfigError("No valid sources configured.")
    return sources


def mail_settings(config: dict) -> MailSettings:
    return MailSettings(
        host=config.get("smtp_host", DEFAULT_CONFIG["smtp_host"]),
        port=int(config.get("smtp_port", DEFAULT_CONFIG["smtp_port"])),
        sender=config.get("mail_sender", DEFAULT_CONFIG["mail_sender"]),
        subject=config.get("mail_subject", DEFAULT_CONFIG["mail_subject"]),
        username=config.get("smtp_user"),
        password=config.get("smtp_password"),
        starttls=bool(config.get("smtp_starttls", False)),
    )
