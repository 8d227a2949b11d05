"""Per-source scan: query open changes, match them, and split off the new ones."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scrutiny_core.matcher import matches
from scrutiny_core.review.base import QueryError
from scrutiny_store.base import StoreError

if TYPE_CHECKING:
    from scrutiny_core.config import WatchedSource
    from scrutiny_core.models import ChangeRecord
    from scrutiny_core.review.base import BaseReviewClient
    from scrutiny_store.base import BaseStore

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Outcome of scanning one source.

    open_matches holds every matching change that is currently open, seen
    before or not. It is the ground truth used for reconciliation.
    new_matches is the subset that has not been reported yet.
    """

    open_matches: list[ChangeRecord] = field(default_factory=list)
    new_matches: list[ChangeRecord] = field(default_factory=list)
    failed_projects: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_projects

    @property
    def open_ids(self) -> set[str]:
        return {c.key for c in self.open_matches}


def is_interesting(change: ChangeRecord, patterns) -> bool:
    """Match the commit message first, the subject as a secondary field."""
    return matches(change.commit_message, patterns) or matches(change.subject, patterns)


def scan(source: WatchedSource, client: BaseReviewClient, store: BaseStore) -> ScanResult:
    """Scan every project of source and mark matching changes in the store.

    A failed project query is logged and skipped. A change is listed at most
    once per result list even if several project queries return it.
    """
    result = ScanResult()
    seen_keys: set[str] = set()

    for project in source.projects:
        try:
            changes = client.query_open_changes(project)
        except QueryError as e:
            logger.error("Unable to query open changes of %s on %s: %s", project, source.endpoint, e.reason)
            result.failed_projects.append(project)
            continue

        logger.debug("%s [%s]: %d open change(s)", source.endpoint, project, len(changes))

        for change in changes:
            if change.key in seen_keys or not is_interesting(change, source.patterns):
                continue
            seen_keys.add(change.key)
            result.open_matches.append(change)

            try:
                is_new = store.check_and_mark(source.endpoint, change.key)
            except StoreError as e:
                # Not recorded, so report it; it may show up again next run.
                logger.error("Failed to record change %s on %s: %s", change.key, source.endpoint, e)
                is_new = True
            if is_new:
                result.new_matches.append(change)

    return result
