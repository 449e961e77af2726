"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from typing import Optional

from nest_tools.core.entities import (
    EnrichmentResult,
    ResourceFilters,
    ResourceType,
    UpstreamPage,
)


class ResourceClient(ABC):
    """Interface for fetching one page of an upstream resource."""

    resource_type: ResourceType

    @abstractmethod
    async def fetch_page(
        self,
        page: int,
        page_size: int,
        filters: ResourceFilters,
        api_key: Optional[str] = None,
    ) -> UpstreamPage:
        """Fetch a single page.

        Raises:
            UpstreamTransportError: on network, timeout, status or parse failure.
        """
        pass


class PageEnricher(ABC):
    """Interface for extracting details from a web page."""

    @abstractmethod
    async def enrich(self, url: str) -> EnrichmentResult:
        """Fetch and extract the page; failures are reported, never raised."""
        pass
