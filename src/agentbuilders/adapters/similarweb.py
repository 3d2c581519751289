"""Similarweb global rank adapter."""

import os

import httpx

from agentbuilders.adapters.base import BaseAdapter, as_count
from agentbuilders.errors import ConfigurationError
from agentbuilders.models.schemas import MetricSource, RankData


class SimilarwebAdapter(BaseAdapter):
    """Fetches the global traffic rank of a website domain.

    Requires an API key (SIMILARWEB_API_KEY). A response without rank data
    is a valid "rank unknown" result, not an error.
    """

    BASE_URL = "https://api.similarweb.com/v1/website"

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(client=client, timeout=timeout)
        self._api_key = api_key or os.environ.get("SIMILARWEB_API_KEY")

    @property
    def source(self) -> MetricSource:
        return MetricSource.SIMILARWEB

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def fetch(self, identifier: str, **options) -> RankData:
        """Fetch the global rank for a bare domain such as "langchain.com".

        Raises:
            ConfigurationError: If no API key is configured.
            UpstreamError: On non-success status.
        """
        if not self._api_key:
            raise ConfigurationError("Similarweb API key is not configured")

        data = await self._fetch_json(
            f"{self.BASE_URL}/{identifier}/traffic-and-engagement/visits",
            params={
                "api_key": self._api_key,
                "main_domain_only": "false",
                "granularity": "monthly",
            },
        )

        rank = as_count(data.get("global_rank")) if isinstance(data, dict) else None
        if not rank:
            return RankData(domain=identifier, rank=None, message="No global rank data available")
        return RankData(domain=identifier, rank=rank)
