"""Refresh scheduler daemon."""

from __future__ import annotations

import asyncio
import logging
import math
import signal
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from agentbuilders.jobs.refresh import MetricsRefresher
from agentbuilders.models.schemas import MetricSource, RefreshReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledJob:
    """A refresh job with its cadence.

    Runs are slotted at ``offset`` past UTC midnight plus whole multiples of
    ``interval``. ``after`` names jobs that must run first when they are due
    in the same pass.
    """

    job: MetricSource
    interval: timedelta
    offset: timedelta = timedelta(0)
    after: tuple[MetricSource, ...] = ()

    def latest_slot(self, now: datetime) -> datetime:
        """Return the most recent slot start at or before ``now``."""
        anchor = now.replace(hour=0, minute=0, second=0, microsecond=0) + self.offset
        periods = math.floor((now - anchor) / self.interval)
        return anchor + periods * self.interval


DEFAULT_SCHEDULE = (
    ScheduledJob(MetricSource.GITHUB, timedelta(hours=12)),
    ScheduledJob(MetricSource.PYPI, timedelta(hours=24)),
    ScheduledJob(MetricSource.NPM, timedelta(hours=24)),
    ScheduledJob(MetricSource.SIMILARWEB, timedelta(hours=24)),
    ScheduledJob(
        MetricSource.TRENDING,
        timedelta(hours=24),
        offset=timedelta(hours=1),
        after=(MetricSource.GITHUB, MetricSource.PYPI, MetricSource.NPM),
    ),
)


class RefreshScheduler:
    """Daemon that runs refresh jobs on their cadences.

    Jobs run one at a time, so the trending recompute never overlaps the
    metric refreshes it reads from. Last-run times come from the refresher's
    metrics collector, so a restarted daemon resumes where it left off.

    Usage:
        scheduler = RefreshScheduler(MetricsRefresher(store, settings, metrics))
        await scheduler.run()  # Runs until SIGINT/SIGTERM
    """

    # Seconds between checks for due jobs
    POLL_INTERVAL = 60.0

    def __init__(
        self,
        refresher: MetricsRefresher,
        schedule: tuple[ScheduledJob, ...] = DEFAULT_SCHEDULE,
        poll_interval: float | None = None,
    ) -> None:
        self.refresher = refresher
        self.schedule = {entry.job: entry for entry in schedule}
        self.poll_interval = poll_interval if poll_interval is not None else self.POLL_INTERVAL
        self._shutdown_requested = False
        self._current_job: MetricSource | None = None

    def due_jobs(self, now: datetime | None = None) -> list[MetricSource]:
        """Return due jobs, each listed after the due jobs it depends on."""
        now = now or datetime.now(timezone.utc)
        due = set()
        for job, entry in self.schedule.items():
            last = self.refresher.metrics.last_finished(job.value)
            if last is None or last < entry.latest_slot(now):
                due.add(job)

        ordered: list[MetricSource] = []

        def visit(job: MetricSource) -> None:
            if job in ordered:
                return
            for dependency in self.schedule[job].after:
                if dependency in due:
                    visit(dependency)
            ordered.append(job)

        for job in self.schedule:
            if job in due:
                visit(job)
        return ordered

    async def run_pending(self, now: datetime | None = None) -> list[RefreshReport]:
        """Run every due job once.

        A job that raises is logged; jobs declared to run after it are held
        back until the next pass.
        """
        reports = []
        failed: set[MetricSource] = set()
        for job in self.due_jobs(now):
            if self._shutdown_requested:
                break
            blocked = failed.intersection(self.schedule[job].after)
            if blocked:
                logger.warning(
                    f"Deferring {job.value}: {', '.join(sorted(j.value for j in blocked))} failed"
                )
                continue

            self._current_job = job
            try:
                reports.append(await self.refresher.refresh(job))
            except Exception:
                logger.exception(f"Job {job.value} failed")
                failed.add(job)
            finally:
                self._current_job = None
        return reports

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""

        def handle_shutdown(signum, frame):
            signame = signal.Signals(signum).name
            logger.info(f"Received {signame}, initiating graceful shutdown...")
            self._shutdown_requested = True

            if self._current_job:
                logger.info(f"Waiting for current job to complete: {self._current_job.value}")

        signal.signal(signal.SIGINT, handle_shutdown)
        signal.signal(signal.SIGTERM, handle_shutdown)

    def request_shutdown(self) -> None:
        self._shutdown_requested = True

    async def run(self) -> None:
        """Run due jobs until SIGINT/SIGTERM is received."""
        self._setup_signal_handlers()

        logger.info("Starting refresh scheduler...")
        for entry in self.schedule.values():
            logger.info(
                f"  {entry.job.value}: every {entry.interval}, offset {entry.offset}"
                + (f", after {', '.join(j.value for j in entry.after)}" if entry.after else "")
            )

        async with self.refresher:
            while not self._shutdown_requested:
                await self.run_pending()
                await self._interruptible_sleep(self.poll_interval)

        logger.info("Scheduler shutdown complete")

    async def _interruptible_sleep(self, seconds: float) -> None:
        """Sleep that can be interrupted by shutdown request.

        Args:
            seconds: Total seconds to sleep
        """
        start = time.time()
        while time.time() - start < seconds:
            if self._shutdown_requested:
                break
            await asyncio.sleep(min(1, seconds - (time.time() - start)))
