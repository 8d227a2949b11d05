"""Run orchestration across all watched sources."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Sequence

from scrutiny_core.digest import compose
from scrutiny_core.mailer import MailError
from scrutiny_core.review.base import ReviewClientError
from scrutiny_core.scanner import scan
from scrutiny_store.base import StoreError

if TYPE_CHECKING:
    from scrutiny_core.config import WatchedSource
    from scrutiny_core.review.base import BaseReviewClient
    from scrutiny_store.base import BaseStore

logger = logging.getLogger(__name__)

ClientFactory = Callable[["WatchedSource"], "BaseReviewClient"]
Sender = Callable[["WatchedSource", str], None]


@dataclass
class SourceReport:
    """What happened to one source during a run."""

    name: str
    endpoint: str
    open_matches: int = 0
    new_matches: int = 0
    notified: bool = False
    reconciled: bool = False
    removed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class RunSummary:
    sources: list[SourceReport] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def total_new(self) -> int:
        return sum(r.new_matches for r in self.sources)

    @property
    def has_errors(self) -> bool:
        return any(r.errors for r in self.sources)


def process_source(
    source: WatchedSource,
    store: BaseStore,
    client_factory: ClientFactory,
    send: Sender,
) -> SourceReport:
    """Run one full cycle for a source: scan, notify, reconcile.

    Every failure in here is source-scoped: it is logged, recorded on the
    report, and never propagates to the other sources.
    """
    report = SourceReport(name=source.name, endpoint=source.endpoint)

    try:
        store.ensure_partition(source.endpoint)
    except StoreError as e:
        logger.error("Skipping source %s: %s", source.name, e)
        report.errors.append(str(e))
        return report

    try:
        client = client_factory(source)
    except ReviewClientError as e:
        logger.error("Unable to create review client for %s: %s", source.endpoint, e)
        report.errors.append(str(e))
        return report

    result = scan(source, client, store)
    report.open_matches = len(result.open_matches)
    report.new_matches = len(result.new_matches)
    report.errors.extend(f"query failed: {p}" for p in result.failed_projects)

    body = compose(source, result.new_matches)
    if body is not None:
        try:
            send(source, body)
            report.notified = True
        except MailError as e:
            # The changes are already marked seen, so log the body to keep the report.
            logger.error(
                "Unable to send report for %s to %s: %s. Report message:\n%s",
                source.endpoint,
                source.recipient,
                e,
                body,
            )
            report.errors.append(f"mail failed: {e}")

    if not result.complete:
        logger.warning(
            "Not reconciling %s: %d project(s) could not be queried (%s)",
            source.endpoint,
            len(result.failed_projects),
            ", ".join(result.failed_projects),
        )
        return report

    try:
        report.removed = store.reconcile(source.endpoint, result.open_ids)
        report.reconciled = True
    except StoreError as e:
        logger.error("Failed to reconcile %s: %s", source.endpoint, e)
        report.errors.append(str(e))

    return report


def run_watch(
    sources: Sequence[WatchedSource],
    store: BaseStore,
    client_factory: ClientFactory,
    send: Sender,
) -> RunSummary:
    """Process every source in order and return a summary of the run.

    Setup (config, store) has already succeeded by the time this is called,
    so nothing raised per source aborts the run.
    """
    summary = RunSummary()
    for source in sources:
        logger.info("Scanning %s (%s)", source.name, source.endpoint)
        report = process_source(source, store, client_factory, send)
        logger.info(
            "%s: %d open match(es), %d new",
            source.name,
            report.open_matches,
            report.new_matches,
        )
        summary.sources.append(report)
    return summary
