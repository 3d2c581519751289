"""Metrics refresh jobs."""

from agentbuilders.jobs.refresh import MetricsRefresher, package_name_for, synthesize_previous

__all__ = ["MetricsRefresher", "package_name_for", "synthesize_previous"]
