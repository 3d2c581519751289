"""Scheduler daemon for the metrics refresh jobs."""

from agentbuilders.daemon.scheduler import DEFAULT_SCHEDULE, RefreshScheduler, ScheduledJob

__all__ = ["DEFAULT_SCHEDULE", "RefreshScheduler", "ScheduledJob"]
