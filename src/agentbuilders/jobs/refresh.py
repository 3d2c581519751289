"""Scheduled metrics refresh jobs.

Each job walks every eligible framework sequentially: one provider call, then
a patch of the framework's denormalized fields and a write to the day's
snapshot. A single framework's failure is logged and recorded in the job
report; it never aborts the batch.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from agentbuilders.adapters.base import BaseAdapter, domain_from_url
from agentbuilders.adapters.github import GitHubAdapter
from agentbuilders.adapters.npm import NpmDownloadsAdapter
from agentbuilders.adapters.pypi import PyPIDownloadsAdapter
from agentbuilders.adapters.similarweb import SimilarwebAdapter
from agentbuilders.analyzers.trending import SECONDS_PER_DAY, TrendingScorer
from agentbuilders.config import Settings
from agentbuilders.models.schemas import (
    Framework,
    MetricBundle,
    MetricSource,
    MetricsSnapshot,
    RefreshOutcome,
    RefreshReport,
)
from agentbuilders.monitoring import MetricsCollector
from agentbuilders.storage.base import DocumentStore
from agentbuilders.storage.snapshots import SnapshotStore

logger = logging.getLogger(__name__)

FRAMEWORKS = "frameworks"

# Fraction of each current metric assumed as the prior value when no
# historical snapshot exists yet.
SYNTHETIC_PRIOR_RATIO = 0.9

# Frameworks whose registry package name differs from the repository name
PYPI_PACKAGE_OVERRIDES = {
    "langchain-ai/langchain": "langchain",
    "run-llama/llama_index": "llama-index",
}
NPM_PACKAGE_OVERRIDES = {
    "langchain-ai/langchainjs": "langchain",
}


class _Skip(Exception):
    """Raised by a job handler for a framework that has nothing to refresh."""


@dataclass(frozen=True)
class DownloadFamily:
    """Field mapping for one package-registry download job."""

    source: MetricSource
    package_field: str
    current_field: str
    snapshot_field: str
    overrides: dict[str, str]


DOWNLOAD_FAMILIES = {
    MetricSource.PYPI: DownloadFamily(
        source=MetricSource.PYPI,
        package_field="pypi_package",
        current_field="current_pypi_downloads",
        snapshot_field="pypi_downloads",
        overrides=PYPI_PACKAGE_OVERRIDES,
    ),
    MetricSource.NPM: DownloadFamily(
        source=MetricSource.NPM,
        package_field="npm_package",
        current_field="current_npm_downloads",
        snapshot_field="npm_downloads",
        overrides=NPM_PACKAGE_OVERRIDES,
    ),
}


def package_name_for(framework: Framework, family: DownloadFamily) -> str | None:
    """Resolve the registry package name for a framework.

    Order: explicit package field, override table, then the repository name
    (second segment of ``repo_path``) lower-cased.
    """
    explicit = getattr(framework, family.package_field)
    if explicit:
        return explicit
    if framework.repo_path in family.overrides:
        return family.overrides[framework.repo_path]
    parts = framework.repo_path.split("/")
    if len(parts) >= 2 and parts[1]:
        return parts[1].lower()
    return None


def synthesize_previous(current: MetricBundle, window_days: int = 30) -> MetricBundle:
    """Build a stand-in historical bundle assuming modest prior growth."""

    def prior(value: int | None) -> int | None:
        return math.floor(value * SYNTHETIC_PRIOR_RATIO) if value else None

    last_commit = current.last_commit_timestamp
    return MetricBundle(
        github_stars=prior(current.github_stars),
        pypi_downloads=prior(current.pypi_downloads),
        npm_downloads=prior(current.npm_downloads),
        last_commit_timestamp=last_commit - window_days * SECONDS_PER_DAY if last_commit else None,
    )


def bundle_from_snapshot(snapshot: MetricsSnapshot) -> MetricBundle:
    return MetricBundle(
        github_stars=snapshot.github_stars,
        pypi_downloads=snapshot.pypi_downloads,
        npm_downloads=snapshot.npm_downloads,
        last_commit_timestamp=snapshot.github_last_commit_timestamp,
    )


def bundle_from_framework(framework: Framework) -> MetricBundle:
    return MetricBundle(
        github_stars=framework.current_stars,
        pypi_downloads=framework.current_pypi_downloads,
        npm_downloads=framework.current_npm_downloads,
        last_commit_timestamp=framework.last_commit_timestamp,
    )


class MetricsRefresher:
    """Runs the metrics refresh jobs against a document store.

    Jobs:
    1. github      - stars and last commit per linked repository
    2. pypi / npm  - registry download counts
    3. similarweb  - website global rank (skipped without an API key)
    4. trending    - trending score from current vs ~30-day-old metrics

    Usage:
        async with MetricsRefresher(store, settings) as refresher:
            reports = await refresher.run_all()
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
        github: GitHubAdapter | None = None,
        pypi: PyPIDownloadsAdapter | None = None,
        npm: NpmDownloadsAdapter | None = None,
        similarweb: SimilarwebAdapter | None = None,
        scorer: TrendingScorer | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the refresher.

        Args:
            store: Document store holding frameworks and snapshots.
            settings: Credentials and tuning; defaults to Settings.from_env().
            metrics: Optional run metrics collector.
            github, pypi, npm, similarweb: Adapter overrides (tests); built
                from settings when omitted.
            scorer: Trending scorer override.
            clock: Returns the current unix time.
        """
        self.store = store
        self.settings = settings or Settings.from_env()
        self.metrics = metrics or MetricsCollector(None)
        self.snapshots = SnapshotStore(store)
        self.scorer = scorer or TrendingScorer()
        self.clock = clock
        self._adapters: dict[MetricSource, BaseAdapter | None] = {
            MetricSource.GITHUB: github,
            MetricSource.PYPI: pypi,
            MetricSource.NPM: npm,
            MetricSource.SIMILARWEB: similarweb,
        }
        self._http_client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> MetricsRefresher:
        """Set up a shared HTTP client for self-built adapters."""
        self._http_client = httpx.AsyncClient(timeout=self.settings.http_timeout)
        return self

    async def __aexit__(self, *args) -> None:
        """Clean up HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def adapter(self, source: MetricSource) -> BaseAdapter:
        """Return the adapter for a metric family, building it on first use."""
        adapter = self._adapters.get(source)
        if adapter is None:
            client = self._http_client
            timeout = self.settings.http_timeout
            if source == MetricSource.GITHUB:
                adapter = GitHubAdapter(token=self.settings.github_token, client=client, timeout=timeout)
            elif source == MetricSource.PYPI:
                adapter = PyPIDownloadsAdapter(client=client, timeout=timeout)
            elif source == MetricSource.NPM:
                adapter = NpmDownloadsAdapter(client=client, timeout=timeout)
            elif source == MetricSource.SIMILARWEB:
                adapter = SimilarwebAdapter(
                    api_key=self.settings.similarweb_api_key, client=client, timeout=timeout
                )
            else:
                raise ValueError(f"No adapter for {source.value}")
            self._adapters[source] = adapter
        return adapter

    # --- Job dispatch ---

    async def refresh(self, job: MetricSource) -> RefreshReport:
        """Run one job by name."""
        if job == MetricSource.GITHUB:
            return await self.refresh_github()
        if job in DOWNLOAD_FAMILIES:
            return await self.refresh_downloads(job)
        if job == MetricSource.SIMILARWEB:
            return await self.refresh_similarweb()
        if job == MetricSource.TRENDING:
            return await self.recompute_trending()
        raise ValueError(f"Unknown job: {job}")

    async def run_all(self) -> list[RefreshReport]:
        """Run every metric job, then the trending recompute.

        The trending score reads what the metric jobs write, so it only starts
        once all of them have completed.
        """
        reports = []
        for job in (
            MetricSource.GITHUB,
            MetricSource.PYPI,
            MetricSource.NPM,
            MetricSource.SIMILARWEB,
        ):
            reports.append(await self.refresh(job))
        reports.append(await self.recompute_trending())
        return reports

    # --- Jobs ---

    async def refresh_github(self) -> RefreshReport:
        """Refresh stars and last commit time for every framework with a repository."""
        github = self.adapter(MetricSource.GITHUB)
        frameworks = self._frameworks(
            index="by_repo_path",
            gte="",
            where=lambda d: bool(d.get("repo_path")),
        )

        async def handle(framework: Framework) -> float:
            data = await github.fetch(framework.repo_path)
            fields: dict = {"current_stars": data.stars}
            if data.last_commit_timestamp is not None:
                fields["last_commit_timestamp"] = data.last_commit_timestamp
            self.store.patch(FRAMEWORKS, framework.id, fields)
            self.snapshots.upsert_daily(framework.id, self.clock(), {
                "github_stars": data.stars,
                "github_last_commit_timestamp": data.last_commit_timestamp,
            })
            return data.stars

        report = await self._run(MetricSource.GITHUB, frameworks, handle)
        if isinstance(github, GitHubAdapter):
            self.metrics.update_github_rate_limit(
                github.rate_limit_remaining, github.rate_limit_total, github.rate_limit_reset
            )
        return report

    async def refresh_pypi(self) -> RefreshReport:
        return await self.refresh_downloads(MetricSource.PYPI)

    async def refresh_npm(self) -> RefreshReport:
        return await self.refresh_downloads(MetricSource.NPM)

    async def refresh_downloads(self, source: MetricSource) -> RefreshReport:
        """Refresh download counts for one package registry.

        Eligible frameworks have an explicit package name for the registry or
        already track a non-zero download count for it.
        """
        family = DOWNLOAD_FAMILIES[source]
        adapter = self.adapter(source)
        frameworks = self._frameworks(
            where=lambda d: bool(d.get(family.package_field)) or (d.get(family.current_field) or 0) > 0,
        )

        async def handle(framework: Framework) -> float:
            package_name = package_name_for(framework, family)
            if not package_name:
                raise _Skip(f"no {source.value} package name")
            stats = await adapter.fetch(package_name)
            self.store.patch(FRAMEWORKS, framework.id, {family.current_field: stats.downloads})
            self.snapshots.upsert_daily(framework.id, self.clock(), {
                family.snapshot_field: stats.downloads,
            })
            return stats.downloads

        return await self._run(source, frameworks, handle)

    async def refresh_similarweb(self) -> RefreshReport:
        """Refresh the global web rank of every framework with a website."""
        similarweb = self.adapter(MetricSource.SIMILARWEB)
        if isinstance(similarweb, SimilarwebAdapter) and not similarweb.configured:
            logger.warning("SIMILARWEB_API_KEY not set, skipping similarweb refresh")
            # Recorded as an empty run so the scheduler waits for the next slot
            self.metrics.start_job(MetricSource.SIMILARWEB.value, 0)
            self.metrics.finish_job(MetricSource.SIMILARWEB.value)
            return RefreshReport(job=MetricSource.SIMILARWEB, finished_at=datetime.now(timezone.utc))

        frameworks = self._frameworks(where=lambda d: bool(d.get("website_url")))

        async def handle(framework: Framework) -> float | None:
            domain = domain_from_url(framework.website_url)
            if not domain:
                raise _Skip("no domain")
            data = await similarweb.fetch(domain)
            if data.rank is None:
                logger.info(f"No similarweb rank for {framework.name} ({domain})")
                return None
            self.store.patch(FRAMEWORKS, framework.id, {"current_similarweb_rank": data.rank})
            self.snapshots.upsert_daily(framework.id, self.clock(), {"similarweb_rank": data.rank})
            return data.rank

        return await self._run(MetricSource.SIMILARWEB, frameworks, handle)

    async def recompute_trending(self) -> RefreshReport:
        """Recompute the trending score of every framework with at least one snapshot.

        Compares the framework's current metrics against the latest snapshot
        taken at least ``trending_window_days`` ago. Without one, a prior
        bundle of 90% of each current value is assumed.
        """
        window_days = self.settings.trending_window_days
        frameworks = self._frameworks()

        async def handle(framework: Framework) -> float:
            now = self.clock()
            if self.snapshots.latest(framework.id) is None:
                raise _Skip("no snapshots yet")
            current = bundle_from_framework(framework)
            historical = self.snapshots.historical_before(
                framework.id, now - window_days * SECONDS_PER_DAY
            )
            if historical is not None:
                previous = bundle_from_snapshot(historical)
            else:
                previous = synthesize_previous(current, window_days)
            score = self.scorer.score(current, previous, now=now)
            self.store.patch(FRAMEWORKS, framework.id, {"trending_score": score})
            return score

        return await self._run(MetricSource.TRENDING, frameworks, handle)

    # --- Helpers ---

    def _frameworks(self, index: str | None = None, **kwargs) -> list[Framework]:
        if index is not None:
            docs = self.store.query(FRAMEWORKS, index, **kwargs)
        else:
            docs = self.store.all(FRAMEWORKS, where=kwargs.get("where"))
        return [Framework.model_validate(d) for d in docs]

    async def _run(
        self,
        job: MetricSource,
        frameworks: list[Framework],
        handle: Callable[[Framework], Awaitable[float | None]],
    ) -> RefreshReport:
        """Apply ``handle`` to each framework, collecting outcomes."""
        report = RefreshReport(job=job)
        self.metrics.start_job(job.value, len(frameworks))
        logger.info(f"Starting {job.value} refresh for {len(frameworks)} frameworks")

        for framework in frameworks:
            self.metrics.start_framework(job.value, framework.name)
            try:
                value = await handle(framework)
            except _Skip as skip:
                logger.debug(f"Skipping {framework.name} in {job.value} refresh: {skip}")
                continue
            except Exception as e:
                logger.error(f"Error updating {job.value} metrics for {framework.name}: {e}")
                report.outcomes.append(
                    RefreshOutcome(framework_name=framework.name, success=False, error=str(e))
                )
                self.metrics.record_error(job.value, framework.name, type(e).__name__, str(e))
                self.metrics.complete_framework(job.value, framework.name, False, message=str(e))
                continue

            report.outcomes.append(
                RefreshOutcome(framework_name=framework.name, success=True, value=value)
            )
            self.metrics.complete_framework(job.value, framework.name, True, value=value)

        report.finished_at = datetime.now(timezone.utc)
        self.metrics.finish_job(job.value)
        logger.info(
            f"Finished {job.value} refresh: {report.succeeded} succeeded, {report.failed} failed"
        )
        return report
