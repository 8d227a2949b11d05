from __future__ import annotations

import requests
from github import Github, GithubException

from scrutiny_core.models import ChangeRecord
from scrutiny_core.review.base import BaseReviewClient, QueryError, ReviewClientError

PUBLIC_GITHUB = "https://github.com"


def get_repo(gh: Github, repo_name: str):
    return gh.get_repo(repo_name)


def get_pull_requests(repo, state: str = "open"):
    return repo.get_pulls(state=state)


class GitHubClient(BaseReviewClient):
    """Open pull requests of `owner/name` projects on GitHub.

    The endpoint `https://github.com` talks to the public API; any other
    endpoint is taken as a GitHub Enterprise API base URL
    (e.g. `https://github.example.com/api/v3`).
    """

    def __init__(self, endpoint: str, token: str | None, timeout: float = 30):
        super().__init__(endpoint)
        if not token:
            raise ReviewClientError(f"{endpoint}: no GitHub token. Set GITHUB_TOKEN or run `gh auth login` first.")
        if endpoint.rstrip("/") == PUBLIC_GITHUB:
            self._gh = Github(token, timeout=int(timeout))
        else:
            self._gh = Github(token, base_url=endpoint.rstrip("/"), timeout=int(timeout))

    def query_open_changes(self, project: str) -> list[ChangeRecord]:
        try:
            repo = get_repo(self._gh, project)
            pulls = list(get_pull_requests(repo))
        except GithubException as e:
            raise QueryError(self.endpoint, project, f"GitHub API error {e.status}: {e.data}") from e
        except requests.RequestException as e:
            raise QueryError(self.endpoint, project, f"{type(e).__name__}: {e}") from e

        return [
            ChangeRecord(
                # PR numbers are only unique per repository.
                id=f"{project}#{pr.number}",
                project=project,
                subject=pr.title or "",
                # A PR has no single commit message; title and description play that role.
                commit_message="\n\n".join(part for part in (pr.title, pr.body) if part),
                source_endpoint=self.endpoint,
                url=pr.html_url or "",
            )
            for pr in pulls
        ]
