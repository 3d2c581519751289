"""Data models and schemas."""

from agentbuilders.models.schemas import (
    Category,
    Framework,
    MetricBundle,
    MetricSource,
    MetricsSnapshot,
    RefreshOutcome,
    RefreshReport,
    Resource,
    UserSettings,
)

__all__ = [
    "Category",
    "Framework",
    "MetricBundle",
    "MetricSource",
    "MetricsSnapshot",
    "RefreshOutcome",
    "RefreshReport",
    "Resource",
    "UserSettings",
]
