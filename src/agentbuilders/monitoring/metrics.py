"""Thread-safe run metrics collector for the refresh jobs."""

from __future__ import annotations

import json
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _format_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class ErrorEntry:
    """A recorded per-framework failure."""

    timestamp: datetime
    job: str
    framework: str
    error_type: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "job": self.job,
            "framework": self.framework,
            "error_type": self.error_type,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ErrorEntry:
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            job=data["job"],
            framework=data["framework"],
            error_type=data["error_type"],
            message=data["message"],
        )


@dataclass
class ActivityEntry:
    """A log entry for one refreshed framework."""

    timestamp: datetime
    job: str
    framework: str
    status: str  # "ok", "error"
    value: float | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "job": self.job,
            "framework": self.framework,
            "status": self.status,
            "value": self.value,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivityEntry:
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            job=data["job"],
            framework=data["framework"],
            status=data["status"],
            value=data.get("value"),
            message=data.get("message"),
        )


@dataclass
class JobStats:
    """Running state and last-run results of one job."""

    is_running: bool = False
    total_runs: int = 0
    last_started: datetime | None = None
    last_finished: datetime | None = None
    last_duration_seconds: float | None = None
    last_total: int = 0
    last_succeeded: int = 0
    last_failed: int = 0
    current_framework: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "total_runs": self.total_runs,
            "last_started": _format_dt(self.last_started),
            "last_finished": _format_dt(self.last_finished),
            "last_duration_seconds": self.last_duration_seconds,
            "last_total": self.last_total,
            "last_succeeded": self.last_succeeded,
            "last_failed": self.last_failed,
            "current_framework": self.current_framework,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobStats:
        return cls(
            is_running=data.get("is_running", False),
            total_runs=data.get("total_runs", 0),
            last_started=_parse_dt(data.get("last_started")),
            last_finished=_parse_dt(data.get("last_finished")),
            last_duration_seconds=data.get("last_duration_seconds"),
            last_total=data.get("last_total", 0),
            last_succeeded=data.get("last_succeeded", 0),
            last_failed=data.get("last_failed", 0),
            current_framework=data.get("current_framework", ""),
        )


@dataclass
class RefreshMetrics:
    """Current state of all refresh jobs."""

    jobs: dict[str, JobStats] = field(default_factory=dict)

    # GitHub API status
    github_rate_limit_remaining: int | None = None
    github_rate_limit_total: int | None = None
    github_rate_limit_reset: datetime | None = None

    # Errors (ring buffer of last N)
    recent_errors: deque[ErrorEntry] = field(default_factory=lambda: deque(maxlen=20))

    # Activity log (ring buffer)
    activity_log: deque[ActivityEntry] = field(default_factory=lambda: deque(maxlen=100))

    last_updated: datetime | None = None

    def job(self, name: str) -> JobStats:
        return self.jobs.setdefault(name, JobStats())

    def to_dict(self) -> dict[str, Any]:
        """Serialize metrics to a dictionary for JSON storage."""
        return {
            "jobs": {name: stats.to_dict() for name, stats in self.jobs.items()},
            "github_rate_limit_remaining": self.github_rate_limit_remaining,
            "github_rate_limit_total": self.github_rate_limit_total,
            "github_rate_limit_reset": _format_dt(self.github_rate_limit_reset),
            "recent_errors": [e.to_dict() for e in self.recent_errors],
            "activity_log": [a.to_dict() for a in self.activity_log],
            "last_updated": _format_dt(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RefreshMetrics:
        """Deserialize metrics from a dictionary."""
        metrics = cls(
            jobs={name: JobStats.from_dict(s) for name, s in data.get("jobs", {}).items()},
            github_rate_limit_remaining=data.get("github_rate_limit_remaining"),
            github_rate_limit_total=data.get("github_rate_limit_total"),
            github_rate_limit_reset=_parse_dt(data.get("github_rate_limit_reset")),
            last_updated=_parse_dt(data.get("last_updated")),
        )
        metrics.recent_errors = deque(
            [ErrorEntry.from_dict(e) for e in data.get("recent_errors", [])],
            maxlen=20,
        )
        metrics.activity_log = deque(
            [ActivityEntry.from_dict(a) for a in data.get("activity_log", [])],
            maxlen=100,
        )
        return metrics


class MetricsCollector:
    """Thread-safe metrics collector for refresh job monitoring.

    Collects metrics during job execution and persists them to a JSON file so
    the CLI ``status`` command and the scheduler can read them across processes.
    Pass ``metrics_file=None`` to keep metrics in memory only.
    """

    def __init__(self, metrics_file: Path | None = None):
        self._lock = threading.Lock()
        self._metrics_file = metrics_file
        self._metrics = self.load()

    def start_job(self, job: str, total: int) -> None:
        """Mark the start of a job run over ``total`` frameworks."""
        with self._lock:
            stats = self._metrics.job(job)
            stats.is_running = True
            stats.last_started = _now()
            stats.last_total = total
            stats.last_succeeded = 0
            stats.last_failed = 0
            stats.current_framework = ""
            self._touch()
            self._save()

    def start_framework(self, job: str, name: str) -> None:
        """Mark a framework as currently being refreshed."""
        with self._lock:
            self._metrics.job(job).current_framework = name
            self._touch()

    def complete_framework(
        self,
        job: str,
        name: str,
        success: bool,
        value: float | None = None,
        message: str | None = None,
    ) -> None:
        """Record the outcome of refreshing one framework."""
        with self._lock:
            stats = self._metrics.job(job)
            stats.current_framework = ""
            if success:
                stats.last_succeeded += 1
            else:
                stats.last_failed += 1
            self._metrics.activity_log.append(
                ActivityEntry(
                    timestamp=_now(),
                    job=job,
                    framework=name,
                    status="ok" if success else "error",
                    value=value,
                    message=message,
                )
            )
            self._touch()
            self._save()

    def record_error(self, job: str, framework: str, error_type: str, message: str) -> None:
        """Record an error that occurred while refreshing a framework."""
        with self._lock:
            self._metrics.recent_errors.append(
                ErrorEntry(
                    timestamp=_now(),
                    job=job,
                    framework=framework,
                    error_type=error_type,
                    message=message,
                )
            )
            self._touch()
            self._save()

    def update_github_rate_limit(
        self, remaining: int | None, total: int | None, reset_time: datetime | None = None
    ) -> None:
        """Update GitHub API rate limit status."""
        with self._lock:
            self._metrics.github_rate_limit_remaining = remaining
            self._metrics.github_rate_limit_total = total
            self._metrics.github_rate_limit_reset = reset_time
            self._touch()

    def finish_job(self, job: str) -> None:
        """Mark the job run as complete."""
        with self._lock:
            stats = self._metrics.job(job)
            finished = _now()
            stats.is_running = False
            stats.current_framework = ""
            stats.total_runs += 1
            stats.last_finished = finished
            if stats.last_started:
                stats.last_duration_seconds = (finished - stats.last_started).total_seconds()
            self._touch()
            self._save()

    def last_finished(self, job: str) -> datetime | None:
        """Return when ``job`` last completed, or None if it never ran."""
        with self._lock:
            stats = self._metrics.jobs.get(job)
            return stats.last_finished if stats else None

    def get_metrics(self) -> RefreshMetrics:
        """Get a copy of current metrics."""
        with self._lock:
            return RefreshMetrics.from_dict(self._metrics.to_dict())

    def _touch(self) -> None:
        self._metrics.last_updated = _now()

    def _save(self) -> None:
        """Save metrics to file (must be called with lock held)."""
        if self._metrics_file is None:
            return
        try:
            self._metrics_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self._metrics_file, "w") as f:
                json.dump(self._metrics.to_dict(), f, indent=2)
        except OSError as e:
            # Monitoring must not disrupt a refresh run
            logger.warning(f"Could not save metrics to {self._metrics_file}: {e}")

    def load(self) -> RefreshMetrics:
        """Load metrics from file, or return empty metrics."""
        if self._metrics_file is None or not self._metrics_file.exists():
            return RefreshMetrics()
        try:
            with open(self._metrics_file) as f:
                return RefreshMetrics.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Could not read metrics from {self._metrics_file}: {e}")
            return RefreshMetrics()
