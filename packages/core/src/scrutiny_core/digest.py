from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from scrutiny_core.config import WatchedSource
    from scrutiny_core.models import ChangeRecord

DIGEST_HEADER = "Following changes potentially require your attention. Please check:"


def format_change(change: ChangeRecord) -> str:
    return f"[{change.project}] {change.subject}: {change.link}"


def compose(source: WatchedSource, changes: Sequence[ChangeRecord]) -> str | None:
    """Render the digest body for source, or None when there is nothing to report.

    Changes are listed in the order they were discovered.
    """
    if not changes:
        return None
    lines = [DIGEST_HEADER, ""]
    lines.extend(format_change(c) for c in changes)
    return "\n".join(lines) + "\n"
