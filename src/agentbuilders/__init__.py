"""agentbuilders - catalog and popularity tracking for AI agent frameworks."""

__version__ = "0.1.0"
