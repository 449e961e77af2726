"""OWASP Nest upstream adapters."""

from nest_tools.adapters.nest.nest_client import (
    ENDPOINTS,
    NestApiClient,
    NestResourceClient,
    build_resource_clients,
)

__all__ = ["ENDPOINTS", "NestApiClient", "NestResourceClient", "build_resource_clients"]
