"""Refresh job monitoring and metrics collection."""

from .metrics import MetricsCollector, RefreshMetrics

__all__ = ["MetricsCollector", "RefreshMetrics"]
