"""HTTP API for the framework catalog."""

from agentbuilders.api.app import create_app

__all__ = ["create_app"]
