"""Metric source adapters."""

from agentbuilders.adapters.base import BaseAdapter
from agentbuilders.adapters.github import GitHubAdapter
from agentbuilders.adapters.npm import NpmDownloadsAdapter
from agentbuilders.adapters.pypi import PyPIDownloadsAdapter
from agentbuilders.adapters.similarweb import SimilarwebAdapter

__all__ = [
    "BaseAdapter",
    "GitHubAdapter",
    "NpmDownloadsAdapter",
    "PyPIDownloadsAdapter",
    "SimilarwebAdapter",
]
