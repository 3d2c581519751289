"""PyPI download statistics adapter (pypistats.org)."""

from urllib.parse import quote

from agentbuilders.adapters.base import BaseAdapter, as_count
from agentbuilders.errors import UpstreamError
from agentbuilders.models.schemas import DownloadStats, MetricSource


class PyPIDownloadsAdapter(BaseAdapter):
    """Adapter for the pypistats.org recent downloads API.

    Data source: https://pypistats.org/api/packages/{package}/recent?period={period}
    No authentication required. Counts are nested under ``data``, keyed by
    period: ``{"data": {"last_month": N, ...}, "package": "..."}``.
    """

    STATS_URL = "https://pypistats.org/api/packages"
    DEFAULT_PERIOD = "month"
    PERIODS = ("day", "week", "month")

    @property
    def source(self) -> MetricSource:
        return MetricSource.PYPI

    async def fetch(self, identifier: str, period: str = DEFAULT_PERIOD, **options) -> DownloadStats:
        """Fetch recent download count for a PyPI package.

        Args:
            identifier: PyPI package name, e.g. "llama-index".
            period: "day", "week" or "month".

        Raises:
            UpstreamError: On non-success status or a missing/non-numeric count.
        """
        encoded_name = quote(identifier.lower(), safe="")
        data = await self._fetch_json(
            f"{self.STATS_URL}/{encoded_name}/recent",
            params={"period": period},
        )

        counts = data.get("data") if isinstance(data, dict) else None
        downloads = None
        if isinstance(counts, dict):
            raw = counts.get(period, counts.get(f"last_{period}"))
            downloads = as_count(raw)
        if downloads is None:
            raise UpstreamError(self.source.value, f"invalid response format for {identifier}")

        return DownloadStats(downloads=downloads, period=period)
