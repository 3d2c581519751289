"""Exception taxonomy shared by adapters, storage, jobs and the query layer."""


class AgentBuildersError(Exception):
    """Base class for all errors raised by agentbuilders."""


class UpstreamError(AgentBuildersError):
    """Raised when an external provider returns a non-success status or a malformed body."""

    def __init__(
        self,
        source: str,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.source = source
        self.status_code = status_code
        self.body = body
        detail = f"{source} API error"
        if status_code is not None:
            detail += f": {status_code}"
        detail += f" {message}"
        if body:
            detail += f" - {body[:200]}"
        super().__init__(detail)


class ConfigurationError(AgentBuildersError):
    """Raised when a required credential or setting is missing."""


class NotFoundError(AgentBuildersError):
    """Raised when a referenced framework, category, resource or document is absent."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} '{identifier}' not found")


class ValidationError(AgentBuildersError):
    """Raised when a caller-supplied argument fails a precondition."""
