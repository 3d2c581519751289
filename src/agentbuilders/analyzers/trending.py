"""Trending score calculator.

The trending score (0-100) combines month-over-month growth of GitHub stars,
PyPI downloads and npm downloads with the recency of the last commit.
"""

import logging
import math
import time

from agentbuilders.models.schemas import MetricBundle, TrendingBreakdown

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def growth_component(
    current: float | None,
    previous: float | None,
    cap: float,
    multiplier: float,
) -> float:
    """Score a growth rate as ``min(cap, growth_percent * multiplier)``.

    Contributes 0 when either value is missing or the previous value is not
    positive. Declines never produce a negative component.
    """
    if current is None or previous is None or previous <= 0:
        return 0.0
    growth_percent = (current - previous) / previous * 100
    return max(0.0, min(cap, growth_percent * multiplier))


def recency_component(last_commit_timestamp: float | None, now: float) -> float:
    """Score commit recency with a piecewise linear decay.

    0-7 days: 10 -> 5 points
    7-30 days: 5 -> 2 points
    30-90 days: 2 -> 1 points
    90+ days: 0 points
    """
    if last_commit_timestamp is None or not math.isfinite(last_commit_timestamp):
        return 0.0
    days = max(0.0, (now - last_commit_timestamp) / SECONDS_PER_DAY)
    if days <= 7:
        return 10 - (days / 7) * 5
    if days <= 30:
        return 5 - ((days - 7) / 23) * 3
    if days <= 90:
        return 2 - (days - 30) / 60
    return 0.0


class TrendingScorer:
    """Calculates trending scores from current and historical metric bundles.

    Component caps (total before clamping can reach 100):
    - Stars growth: 40 (4 points per 1% growth)
    - PyPI downloads growth: 25 (2.5 points per 1% growth)
    - npm downloads growth: 25 (2.5 points per 1% growth)
    - Commit recency: 10
    """

    COMPONENTS = {
        "stars": ("github_stars", 40.0, 4.0),
        "pypi": ("pypi_downloads", 25.0, 2.5),
        "npm": ("npm_downloads", 25.0, 2.5),
    }
    MAX_SCORE = 100.0

    def breakdown(
        self,
        current: MetricBundle,
        previous: MetricBundle,
        now: float | None = None,
    ) -> TrendingBreakdown:
        """Return each component and the clamped total."""
        now = time.time() if now is None else now

        parts = {
            name: growth_component(getattr(current, field), getattr(previous, field), cap, multiplier)
            for name, (field, cap, multiplier) in self.COMPONENTS.items()
        }
        parts["recency"] = recency_component(current.last_commit_timestamp, now)

        total = sum(parts.values())
        if not math.isfinite(total):
            raise ValueError(f"non-finite trending score: {parts}")
        return TrendingBreakdown(**parts, total=min(self.MAX_SCORE, max(0.0, total)))

    def score(
        self,
        current: MetricBundle,
        previous: MetricBundle,
        now: float | None = None,
    ) -> float:
        """Calculate the trending score.

        Never raises: an internal fault is logged and scored as 0 so one bad
        bundle cannot block a refresh batch.
        """
        try:
            return self.breakdown(current, previous, now).total
        except Exception:
            logger.exception("Error calculating trending score")
            return 0.0
