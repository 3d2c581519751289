"""Abstract base class for metric source adapters."""

import re
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlparse

import httpx

from agentbuilders.errors import UpstreamError
from agentbuilders.models.schemas import MetricSource


class BaseAdapter(ABC):
    """Base class for metric source adapters.

    Each adapter performs a single network fetch against one provider and
    normalizes the response. Adapters never retry: errors propagate to the
    caller as UpstreamError (or ConfigurationError for missing credentials).
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        """Initialize the adapter.

        Args:
            client: Optional shared httpx client. When omitted a short-lived
                client is created per request.
            timeout: Request timeout in seconds for self-created clients.
        """
        self._client = client
        self._timeout = timeout

    @property
    @abstractmethod
    def source(self) -> MetricSource:
        """Return the metric family this adapter feeds."""
        ...

    @abstractmethod
    async def fetch(self, identifier: str, **options: Any) -> Any:
        """Fetch and normalize metrics for one identifier."""
        ...

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self._timeout)

    async def _fetch_json(
        self,
        url: str,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> Any:
        """Fetch JSON from a URL.

        Raises:
            UpstreamError: On a non-success status or a body that is not JSON.
        """
        client = await self._get_client()
        try:
            response = await client.get(url, params=params, headers=headers or {})
            self._on_response(response)
            if not response.is_success:
                raise UpstreamError(
                    self.source.value,
                    f"GET {url} failed",
                    status_code=response.status_code,
                    body=response.text,
                )
            try:
                return response.json()
            except ValueError as e:
                raise UpstreamError(
                    self.source.value,
                    f"GET {url} returned invalid JSON",
                    status_code=response.status_code,
                    body=response.text,
                ) from e
        finally:
            if self._client is None:
                await client.aclose()

    def _on_response(self, response: httpx.Response) -> None:
        """Hook for inspecting raw responses (rate limit headers etc.)."""


def as_count(value: Any) -> int | None:
    """Return ``value`` as an int if it is a real number, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def parse_repo_path(url: str) -> str | None:
    """Extract "owner/repo" from a GitHub URL.

    Supports https, git@ and git:// forms, with or without a ``.git`` suffix
    and trailing path segments.

    Returns:
        The repository path, or None if the URL is not a GitHub repository URL.
    """
    if not url:
        return None

    patterns = [
        r"(?:https?://)?(?:www\.)?github\.com/([^/\s]+)/([^/\s#?]+)",
        r"git@github\.com:([^/\s]+)/([^/\s]+)",
        r"git://github\.com/([^/\s]+)/([^/\s]+)",
    ]
    for pattern in patterns:
        match = re.match(pattern, url.strip())
        if match:
            owner, repo = match.group(1), match.group(2)
            repo = repo.removesuffix(".git")
            if repo:
                return f"{owner}/{repo}"
    return None


def domain_from_url(url: str) -> str | None:
    """Return the bare host of a website URL, without a leading ``www.``."""
    if not url:
        return None
    parsed = urlparse(url if "//" in url else f"https://{url}")
    host = (parsed.hostname or "").lower()
    host = host.removeprefix("www.")
    return host or None
