"""OWASP Nest REST API client."""

import asyncio
import logging
from typing import Any, Optional

import httpx

from nest_tools.core import (
    ResourceClient,
    ResourceFilters,
    ResourceType,
    UpstreamPage,
    UpstreamTransportError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://nest.owasp.org/api/v0"

# Upstream endpoint serving each resource type
ENDPOINTS: dict[ResourceType, str] = {
    ResourceType.PROJECTS: "projects",
    ResourceType.EVENTS: "events",
    ResourceType.ISSUES: "issues",
    ResourceType.CONTRIBUTORS: "members",
    ResourceType.CHAPTERS: "chapters",
    ResourceType.COMMITTEES: "committees",
    ResourceType.MILESTONES: "milestones",
    ResourceType.RELEASES: "releases",
    ResourceType.REPOSITORIES: "repositories",
    ResourceType.SPONSORS: "sponsors",
}


class NestApiClient:
    """Thin async client for paginated Nest list endpoints.

    One instance is created per process and shared by all resource clients;
    it owns the underlying ``httpx.AsyncClient`` unless one is injected.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be zero or positive")

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def __aenter__(self) -> "NestApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def get_page(
        self,
        endpoint: str,
        params: dict[str, Any],
        api_key: Optional[str] = None,
    ) -> UpstreamPage:
        """GET one page of a list endpoint with bounded retries.

        429 and 5xx responses, timeouts and network errors are retried;
        other non-2xx responses fail immediately.
        """
        url = f"{self.base_url}/{endpoint}/"
        headers = self._get_headers(api_key)
        last_error: Optional[UpstreamTransportError] = None

        for attempt in range(self.max_retries + 1):
            delay = self.retry_delay * (2 ** attempt)

            try:
                response = await self._client.get(url, params=params, headers=headers)
            except httpx.TimeoutException as e:
                last_error = UpstreamTransportError(f"Timeout fetching {endpoint}: {e}")
            except httpx.RequestError as e:
                last_error = UpstreamTransportError(f"Network error fetching {endpoint}: {e}")
            else:
                status = response.status_code

                if 200 <= status < 300:
                    return self._parse_page(endpoint, response)

                message = f"Nest API returned HTTP {status} for {endpoint}"
                if status != 429 and status < 500:
                    raise UpstreamTransportError(message, status_code=status)

                last_error = UpstreamTransportError(message, status_code=status)
                delay = self._get_retry_delay(response, attempt)

            if attempt < self.max_retries:
                logger.warning(
                    "%s, retry %d/%d in %.1fs", last_error, attempt + 1, self.max_retries, delay
                )
                await asyncio.sleep(delay)

        raise last_error

    def _get_headers(self, api_key: Optional[str]) -> dict[str, str]:
        """Get headers for Nest API requests."""
        headers = {"Accept": "application/json"}

        # A per-call key takes precedence over the configured one
        key = api_key or self.api_key
        if key:
            headers["X-API-Key"] = key

        return headers

    def _get_retry_delay(self, response: httpx.Response, attempt: int) -> float:
        """Calculate retry delay from response headers or use exponential backoff."""
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass

        return self.retry_delay * (2 ** attempt)

    def _parse_page(self, endpoint: str, response: httpx.Response) -> UpstreamPage:
        """Extract items and pagination signals from a list response."""
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamTransportError(f"Invalid JSON from {endpoint}: {e}") from e

        # Some deployments return a bare list
        if isinstance(payload, list):
            return UpstreamPage(items=payload)

        if not isinstance(payload, dict):
            raise UpstreamTransportError(f"Unexpected payload from {endpoint}")

        items = next(
            (
                payload[key]
                for key in ("items", "results", endpoint)
                if isinstance(payload.get(key), list)
            ),
            None,
        )
        if items is None:
            raise UpstreamTransportError(f"No items in response from {endpoint}")

        total_count = next(
            (
                payload[key]
                for key in ("total_count", "totalCount", "count")
                if isinstance(payload.get(key), int) and not isinstance(payload.get(key), bool)
            ),
            None,
        )
        has_next = next(
            (
                payload[key]
                for key in ("has_next", "hasNext")
                if isinstance(payload.get(key), bool)
            ),
            None,
        )

        return UpstreamPage(items=items, total_count=total_count, has_next=has_next)


class NestResourceClient(ResourceClient):
    """Fetch pages of one resource type from the Nest API."""

    def __init__(
        self,
        api: NestApiClient,
        resource_type: ResourceType,
        endpoint: Optional[str] = None,
    ) -> None:
        self.api = api
        self.resource_type = resource_type
        self.endpoint = endpoint or ENDPOINTS[resource_type]

    async def fetch_page(
        self,
        page: int,
        page_size: int,
        filters: ResourceFilters,
        api_key: Optional[str] = None,
    ) -> UpstreamPage:
        """Fetch a single page of this resource."""
        params: dict[str, Any] = {"page": page, "page_size": page_size}
        params.update(filters.to_params())

        logger.debug(
            "Fetching %s page %d (page_size=%d)",
            self.endpoint,
            page,
            page_size,
            extra={"resource": self.resource_type.value, "page": page, "page_size": page_size},
        )
        return await self.api.get_page(self.endpoint, params, api_key=api_key)


def build_resource_clients(api: NestApiClient) -> dict[ResourceType, ResourceClient]:
    """Create one resource client per resource type."""
    return {
        resource_type: NestResourceClient(api, resource_type, endpoint)
        for resource_type, endpoint in ENDPOINTS.items()
    }
