"""Error taxonomy shared by the core, the adapters and the dispatcher."""


class NestToolsError(Exception):
    """Base error for the package."""

    # JSON-RPC error code the dispatcher reports for this error
    code = -32603


class InvalidArgument(NestToolsError, ValueError):
    """Query rejected before any upstream call was made."""

    code = -32602


class MissingParameter(InvalidArgument):
    """A mandatory filter (e.g. repository) was not supplied."""

    def __init__(self, parameter: str, tool: str = "") -> None:
        self.parameter = parameter
        target = f" for {tool}" if tool else ""
        super().__init__(f"{parameter} parameter is required{target}")


class UpstreamTransportError(NestToolsError):
    """Network, timeout, non-2xx or unparseable response from the upstream API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class EnrichmentFailure(NestToolsError):
    """Failure fetching or parsing a single page during enrichment."""


class MethodNotFound(NestToolsError):
    """Unknown JSON-RPC method or tool name."""

    code = -32601


class InvalidRequest(NestToolsError):
    """Malformed JSON-RPC request object."""

    code = -32600
