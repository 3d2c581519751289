"""Metric analyzers."""

from agentbuilders.analyzers.trending import TrendingScorer

__all__ = ["TrendingScorer"]
