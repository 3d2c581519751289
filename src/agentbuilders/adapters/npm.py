"""npm download statistics adapter."""

from urllib.parse import quote

from agentbuilders.adapters.base import BaseAdapter, as_count
from agentbuilders.errors import UpstreamError
from agentbuilders.models.schemas import DownloadStats, MetricSource


class NpmDownloadsAdapter(BaseAdapter):
    """Adapter for the npm registry downloads API.

    Data source: https://api.npmjs.org/downloads/point/{period}/{package}
    No authentication required. The body is flat:
    ``{"downloads": N, "start": "...", "end": "...", "package": "..."}``.
    """

    DOWNLOADS_URL = "https://api.npmjs.org/downloads"
    DEFAULT_PERIOD = "last-month"

    @property
    def source(self) -> MetricSource:
        return MetricSource.NPM

    async def fetch(self, identifier: str, period: str = DEFAULT_PERIOD, **options) -> DownloadStats:
        """Fetch download count for an npm package.

        Args:
            identifier: Package name, scoped names like "@org/pkg" included.
            period: "last-day", "last-week", "last-month" or a date range.

        Raises:
            UpstreamError: On non-success status or a missing/non-numeric count.
        """
        # Scoped packages keep their slash encoded
        encoded_name = quote(identifier, safe="@")
        data = await self._fetch_json(f"{self.DOWNLOADS_URL}/point/{period}/{encoded_name}")

        downloads = as_count(data.get("downloads")) if isinstance(data, dict) else None
        if downloads is None:
            raise UpstreamError(self.source.value, f"invalid response format for {identifier}")

        return DownloadStats(
            downloads=downloads,
            period=period,
            start=data.get("start"),
            end=data.get("end"),
        )
