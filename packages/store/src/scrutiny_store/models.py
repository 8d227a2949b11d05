"""Seen-change data models.

Decoupled from scrutiny_core so the store layer can be used independently
and scrutiny_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass

SEEN_MARKER = "1"


@dataclass
class SeenEntry:
    """One (endpoint, change id) pair that has already been reported."""

    endpoint: str
    change_id: str
    first_seen: str  # ISO-8601 UTC timestamp
    marker: str = SEEN_MARKER
