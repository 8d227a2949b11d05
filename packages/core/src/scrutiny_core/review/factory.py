from __future__ import annotations

from typing import TYPE_CHECKING

from scrutiny_core.review.base import BaseReviewClient, ReviewClientError

if TYPE_CHECKING:
    from scrutiny_core.config import WatchedSource


def build_client(source: WatchedSource, config: dict) -> BaseReviewClient:
    """Instantiate the review client matching source.kind."""
    timeout = config.get("request_timeout", 30)
    if source.kind == "gerrit":
        from scrutiny_core.review.gerrit import GerritClient

        return GerritClient(source.endpoint, timeout=timeout)
    if source.kind == "github":
        from scrutiny_core.review.github import GitHubClient

        return GitHubClient(source.endpoint, token=config.get("github_token"), timeout=timeout)
    raise ReviewClientError(f"Unknown source type: {source.kind!r}. Choose 'gerrit' or 'github'.")
