"""Change records returned by review clients."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChangeRecord:
    """One open change on a review server.

    `id` is assigned by the server and is the only key used for
    deduplication. Records are built fresh on every run and never mutated.
    """

    id: int | str
    project: str
    subject: str
    commit_message: str
    source_endpoint: str
    url: str = ""

    @property
    def key(self) -> str:
        """Canonical text form of the id, as stored in the seen-change store."""
        return str(self.id)

    @property
    def link(self) -> str:
        if self.url:
            return self.url
        return f"{self.source_endpoint.rstrip('/')}/{self.id}"
