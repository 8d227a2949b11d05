"""Gerrit REST client for open changes."""

from __future__ import annotations

import json
import logging

import requests

from scrutiny_core.models import ChangeRecord
from scrutiny_core.review.base import BaseReviewClient, QueryError

logger = logging.getLogger(__name__)

# Gerrit prefixes every JSON response with this line to defeat XSSI.
_XSSI_PREFIX = ")]}'"

# Guards against a server that keeps setting _more_changes forever.
_MAX_PAGES = 50


def _strip_xssi(text: str) -> str:
    text = text.lstrip()
    if text.startswith(_XSSI_PREFIX):
        return text[len(_XSSI_PREFIX) :]
    return text


def _commit_message(change: dict) -> str:
    """Full commit message of the change's current revision, or "" if absent."""
    revisions = change.get("revisions") or {}
    revision = revisions.get(change.get("current_revision") or "", {})
    return (revision.get("commit") or {}).get("message", "")


class GerritClient(BaseReviewClient):
    """Queries `<endpoint>/changes/` anonymously.

    Each change is requested with its current revision and commit so the
    full commit message is available for matching without extra calls.
    """

    def __init__(self, endpoint: str, timeout: float = 30):
        super().__init__(endpoint)
        self.base_url = endpoint.rstrip("/")
        self.timeout = timeout

    def query_open_changes(self, project: str) -> list[ChangeRecord]:
        changes: list[dict] = []
        for _ in range(_MAX_PAGES):
            page = self._fetch_page(project, start=len(changes))
            changes.extend(page)
            if not page or not page[-1].get("_more_changes"):
                break
        else:
            logger.warning("%s [%s]: stopped after %d pages of open changes", self.endpoint, project, _MAX_PAGES)

        records = []
        for change in changes:
            record = self._to_record(change, project)
            if record is None:
                logger.warning("%s [%s]: skipping change without an id: %r", self.endpoint, project, change.get("subject", ""))
                continue
            records.append(record)
        return records

    def _fetch_page(self, project: str, start: int) -> list[dict]:
        params: dict = {
            "q": f"project:{project} status:open",
            "o": ["CURRENT_REVISION", "CURRENT_COMMIT"],
        }
        if start:
            params["start"] = start
        try:
            response = requests.get(f"{self.base_url}/changes/", params=params, timeout=self.timeout)
            response.raise_for_status()
            data = json.loads(_strip_xssi(response.text))
        except requests.RequestException as e:
            raise QueryError(self.endpoint, project, f"{type(e).__name__}: {e}") from e
        except json.JSONDecodeError as e:
            raise QueryError(self.endpoint, project, f"invalid JSON response: {e}") from e

        if not isinstance(data, list):
            raise QueryError(self.endpoint, project, f"unexpected response type {type(data).__name__}")
        return data

    def _to_record(self, change: dict, project: str) -> ChangeRecord | None:
        change_id = change.get("_number")
        if change_id is None:
            change_id = change.get("id")
        if change_id in (None, ""):
            return None
        return ChangeRecord(
            id=change_id,
            project=change.get("project", project),
            subject=change.get("subject", ""),
            commit_message=_commit_message(change),
            source_endpoint=self.endpoint,
        )
