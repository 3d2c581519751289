"""GitHub repository adapter: stars and last commit time."""

import os
from datetime import datetime, timezone

import httpx

from agentbuilders.adapters.base import BaseAdapter, as_count
from agentbuilders.errors import UpstreamError
from agentbuilders.models.schemas import MetricSource, RepositoryMetrics


class GitHubAdapter(BaseAdapter):
    """Fetches repository metrics from the GitHub REST API.

    Data sources:
    - Repository metadata: https://api.github.com/repos/{path}
    - Latest commit: https://api.github.com/repos/{path}/commits?per_page=1&sha={branch}

    A token is optional; it raises the rate limit from 60 to 5000 requests/hour.
    Set GITHUB_TOKEN or pass token to the constructor.
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        self._token = token or os.environ.get("GITHUB_TOKEN")

        # Rate limit tracking
        self.rate_limit_remaining: int | None = None
        self.rate_limit_total: int | None = None
        self.rate_limit_reset: datetime | None = None

    @property
    def source(self) -> MetricSource:
        return MetricSource.GITHUB

    def _headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _on_response(self, response: httpx.Response) -> None:
        """Extract and store rate limit info from response headers."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        limit = response.headers.get("X-RateLimit-Limit")
        reset = response.headers.get("X-RateLimit-Reset")

        if remaining is not None:
            self.rate_limit_remaining = int(remaining)
        if limit is not None:
            self.rate_limit_total = int(limit)
        if reset is not None:
            self.rate_limit_reset = datetime.fromtimestamp(int(reset), tz=timezone.utc)

    async def fetch(self, identifier: str, **options) -> RepositoryMetrics:
        """Fetch stars and last commit time for a repository.

        Args:
            identifier: Repository path, e.g. "langchain-ai/langchain".

        Returns:
            RepositoryMetrics. ``last_commit_timestamp`` is None when the
            default branch has no commits.

        Raises:
            UpstreamError: If either request fails or the body is malformed.
        """
        repo_path = identifier.strip("/")
        repo = await self._fetch_json(f"{self.BASE_URL}/repos/{repo_path}", headers=self._headers())
        if not isinstance(repo, dict):
            raise UpstreamError(self.source.value, f"unexpected repository payload for {repo_path}")

        stars = as_count(repo.get("stargazers_count"))
        if stars is None:
            raise UpstreamError(self.source.value, f"stargazers_count missing for {repo_path}")

        commits = await self._fetch_json(
            f"{self.BASE_URL}/repos/{repo_path}/commits",
            params={"per_page": 1, "sha": repo.get("default_branch") or "main"},
            headers=self._headers(),
        )
        if not isinstance(commits, list):
            raise UpstreamError(self.source.value, f"unexpected commits payload for {repo_path}")

        return RepositoryMetrics(
            stars=stars,
            last_commit_timestamp=self._commit_timestamp(commits[0] if commits else None),
            forks=as_count(repo.get("forks_count")) or 0,
            open_issues=as_count(repo.get("open_issues_count")) or 0,
            description=repo.get("description"),
            language=repo.get("language"),
        )

    def _commit_timestamp(self, commit: dict | None) -> float | None:
        """Convert a commit's committer date to unix seconds."""
        if not commit:
            return None
        committer = (commit.get("commit") or {}).get("committer") or {}
        date_str = committer.get("date")
        if not date_str:
            return None
        try:
            committed = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
        except ValueError as e:
            raise UpstreamError(self.source.value, f"invalid committer date {date_str!r}") from e
        if committed.tzinfo is None:
            committed = committed.replace(tzinfo=timezone.utc)
        return committed.timestamp()
