"""Abstract seen-change store interface.

The store answers one question per source: "has this open change already been
included in a digest?". Entries are partitioned by source endpoint and keyed by
the change identifier in its canonical text form. The runner depends on
BaseStore, never on a concrete backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from scrutiny_store.models import SeenEntry


class StoreError(Exception):
    """Raised when the durable store cannot be opened or an operation fails.

    A failed operation leaves the store unchanged: a check_and_mark that
    raised has not recorded anything.
    """


class BaseStore(ABC):
    """Durable per-source record of changes already reported."""

    @abstractmethod
    def ensure_partition(self, endpoint: str) -> None:
        """Create the partition for a source if it does not exist yet.

        Must be called before any other operation on that endpoint. Calling
        it for an existing partition is a no-op.
        """

    @abstractmethod
    def check_and_mark(self, endpoint: str, change_id: str) -> bool:
        """Record change_id for endpoint and return True if it was not recorded yet.

        Returns False, leaving the store untouched, when the change is already
        recorded. The test and the write happen in one transaction.
        """

    @abstractmethod
    def reconcile(self, endpoint: str, open_ids: Iterable[str]) -> list[str]:
        """Drop every entry of the partition whose key is not in open_ids.

        Returns the removed keys. A change that is closed and later shows up
        again (or whose number is reused) is treated as new afterwards.
        """

    @abstractmethod
    def list_seen(self, endpoint: str | None = None) -> list[SeenEntry]:
        """Return stored entries, optionally limited to one endpoint.

        Returns an empty list for an unknown endpoint.
        """

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
