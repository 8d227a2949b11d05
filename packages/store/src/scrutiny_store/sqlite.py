"""SQLiteStore — the file-backed seen-change store.

Why SQLite:
- Batteries included: ships with Python, no extra dependencies.
- Transactions: every check-and-mark and every reconciliation runs in a
  single transaction, so a crash mid-run leaves each key either in its
  pre-run state or fully marked.
- One file, opened once per run, is all a scheduled job needs.

Schema:
  partitions    — one row per watched source endpoint.
  seen_changes  — one row per (endpoint, change id) already reported.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Iterable

from scrutiny_store.base import BaseStore, StoreError
from scrutiny_store.models import SEEN_MARKER, SeenEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS partitions (
    endpoint    TEXT PRIMARY KEY,
    created_at  TEXT
);
CREATE TABLE IF NOT EXISTS seen_changes (
    endpoint    TEXT NOT NULL,
    change_id   TEXT NOT NULL,
    marker      TEXT NOT NULL DEFAULT '1',
    first_seen  TEXT,
    PRIMARY KEY (endpoint, change_id)
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStore(BaseStore):
    """Stores seen changes in a local SQLite database file.

    The database file path defaults to `scrutiny.db` in the current working
    directory. Configure via .scrutiny.yml: `db: /var/lib/scrutiny/seen.db`.
    """

    def __init__(self, db_path: str = "scrutiny.db"):
        self._db_path = db_path
        try:
            self._conn = sqlite3.connect(db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Could not open store {db_path!r}: {e}") from e

    def ensure_partition(self, endpoint: str) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT OR IGNORE INTO partitions (endpoint, created_at) VALUES (?, ?)",
                    (endpoint, _now()),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Could not create partition for {endpoint}: {e}") from e

    def check_and_mark(self, endpoint: str, change_id: str) -> bool:
        try:
            with self._conn:
                self._require_partition(endpoint)
                cursor = self._conn.execute(
                    "INSERT OR IGNORE INTO seen_changes (endpoint, change_id, marker, first_seen) VALUES (?, ?, ?, ?)",
                    (endpoint, change_id, SEEN_MARKER, _now()),
                )
                is_new = cursor.rowcount == 1
        except sqlite3.Error as e:
            raise StoreError(f"Could not mark change {change_id} for {endpoint}: {e}") from e

        if is_new:
            logger.info("New change %s on %s", change_id, endpoint)
        else:
            logger.info("Already reported change %s on %s", change_id, endpoint)
        return is_new

    def reconcile(self, endpoint: str, open_ids: Iterable[str]) -> list[str]:
        keep = {str(i) for i in open_ids}
        try:
            with self._conn:
                self._require_partition(endpoint)
                rows = self._conn.execute(
                    "SELECT change_id FROM seen_changes WHERE endpoint=?",
                    (endpoint,),
                ).fetchall()
                stale = sorted(r["change_id"] for r in rows if r["change_id"] not in keep)
                self._conn.executemany(
                    "DELETE FROM seen_changes WHERE endpoint=? AND change_id=?",
                    [(endpoint, change_id) for change_id in stale],
                )
        except sqlite3.Error as e:
            raise StoreError(f"Could not reconcile {endpoint}: {e}") from e

        if stale:
            logger.info("Dropped %d closed change(s) from %s: %s", len(stale), endpoint, ", ".join(stale))
        return stale

    def list_seen(self, endpoint: str | None = None) -> list[SeenEntry]:
        if endpoint is not None:
            rows = self._conn.execute(
                "SELECT * FROM seen_changes WHERE endpoint=? ORDER BY first_seen, change_id",
                (endpoint,),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM seen_changes ORDER BY endpoint, first_seen, change_id",
            ).fetchall()

        return [self._row_to_entry(r) for r in rows]

    def snapshot(self) -> SQLiteStore:
        """Return an in-memory copy of this store.

        Shadow runs work on the copy so the database file is never written.
        """
        clone = SQLiteStore(db_path=":memory:")
        self._conn.backup(clone._conn)
        return clone

    def close(self) -> None:
        self._conn.close()

    def _require_partition(self, endpoint: str) -> None:
        row = self._conn.execute("SELECT 1 FROM partitions WHERE endpoint=?", (endpoint,)).fetchone()
        if row is None:
            raise StoreError(f"No partition for {endpoint}; call ensure_partition() first.")

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> SeenEntry:
        return SeenEntry(
            endpoint=row["endpoint"],
            change_id=row["change_id"],
            first_seen=row["first_seen"] or "",
            marker=row["marker"] or SEEN_MARKER,
        )
