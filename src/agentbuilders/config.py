"""Runtime settings for agentbuilders.

Values are read from the environment (a local .env file is loaded by the CLI
before this module is consulted). Every credential is optional at import time;
adapters that need one raise ConfigurationError when it is missing.
"""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    """Immutable settings for the refresh pipeline and the API."""

    github_token: str | None = None
    # Raises the GitHub rate limit from 60 to 5000 requests/hour.

    similarweb_api_key: str | None = None
    # Required for the rank refresh; the job is skipped when absent.

    data_dir: Path = Path("data")
    # Holds the JSON document store and the run metrics file.

    http_timeout: float = 30.0

    trending_window_days: int = 30
    # Age of the historical snapshot the trending score compares against.

    @property
    def store_path(self) -> Path:
        return self.data_dir / "store.json"

    @property
    def metrics_path(self) -> Path:
        return self.data_dir / ".metrics.json"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            github_token=os.environ.get("GITHUB_TOKEN") or None,
            similarweb_api_key=os.environ.get("SIMILARWEB_API_KEY") or None,
            data_dir=Path(os.environ.get("AGENTBUILDERS_DATA_DIR", "data")),
            http_timeout=float(os.environ.get("AGENTBUILDERS_HTTP_TIMEOUT", "30")),
            trending_window_days=int(os.environ.get("AGENTBUILDERS_TRENDING_WINDOW_DAYS", "30")),
        )
