"""Review client interface.

A review client knows how to ask one review server for the open changes of
a project and return them as ChangeRecords. URL layout, paging and
response shape live in the concrete client; the scanner only sees query_open_changes().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scrutiny_core.models import ChangeRecord


class ReviewClientError(Exception):
    """A client for a source could not be created."""


class QueryError(ReviewClientError):
    """A query for the open changes of one project failed."""

    def __init__(self, endpoint: str, project: str, reason: str):
        super().__init__(f"{endpoint} [{project}]: {reason}")
        self.endpoint = endpoint
        self.project = project
        self.reason = reason


class BaseReviewClient(ABC):
    def __init__(self, endpoint: str):
        self.endpoint = endpoint

    @abstractmethod
    def query_open_changes(self, project: str) -> list[ChangeRecord]:
        """Return every open change of project.

        Raises QueryError on network or API failure.
        """
