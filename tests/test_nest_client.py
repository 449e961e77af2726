"""Tests for the Nest API client."""

import httpx
import pytest

from nest_tools.adapters.nest import (
    ENDPOINTS,
    NestApiClient,
    NestResourceClient,
    build_resource_clients,
)
from nest_tools.core import (
    ChapterFilters,
    ContributorFilters,
    EventFilters,
    ResourceType,
    UpstreamTransportError,
)


def _client(handler, **kwargs) -> NestApiClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("retry_delay", 0)
    return NestApiClient(base_url="https://nest.test/api/v0/", http_client=http_client, **kwargs)


@pytest.mark.asyncio
async def test_get_page_parses_envelope() -> None:
    """Test items, total count and has_next are read from the payload."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"items": [{"name": "OWASP Nest"}], "total_count": 42, "has_next": True},
        )

    api = _client(handler, api_key="configured")
    page = await api.get_page("projects", {"page": 2, "page_size": 10})

    assert page.items == [{"name": "OWASP Nest"}]
    assert page.total_count == 42
    assert page.has_next is True

    request = requests[0]
    assert request.url.path == "/api/v0/projects/"
    assert request.url.params["page"] == "2"
    assert request.url.params["page_size"] == "10"
    assert request.headers["X-API-Key"] == "configured"
    assert request.headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_per_call_api_key_overrides() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("X-API-Key"))
        return httpx.Response(200, json=[])

    api = _client(handler, api_key="configured")
    await api.get_page("projects", {}, api_key="caller")

    assert seen == ["caller"]


@pytest.mark.asyncio
async def test_no_api_key_header_when_unset() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append("X-API-Key" in request.headers)
        return httpx.Response(200, json=[])

    await _client(handler).get_page("events", {})

    assert seen == [False]


@pytest.mark.asyncio
async def test_bare_list_payload() -> None:
    api = _client(lambda request: httpx.Response(200, json=[{"name": "a"}, {"name": "b"}]))

    page = await api.get_page("committees", {})

    assert len(page.items) == 2
    assert page.total_count is None
    assert page.has_next is None


@pytest.mark.asyncio
async def test_results_and_count_keys() -> None:
    api = _client(
        lambda request: httpx.Response(200, json={"results": [{"login": "x"}], "count": 7, "hasNext": False})
    )

    page = await api.get_page("members", {})

    assert page.items == [{"login": "x"}]
    assert page.total_count == 7
    assert page.has_next is False


@pytest.mark.asyncio
async def test_payload_without_items() -> None:
    api = _client(lambda request: httpx.Response(200, json={"detail": "nothing here"}))

    with pytest.raises(UpstreamTransportError, match="No items"):
        await api.get_page("projects", {})


@pytest.mark.asyncio
async def test_invalid_json() -> None:
    api = _client(lambda request: httpx.Response(200, content=b"<html>"))

    with pytest.raises(UpstreamTransportError, match="Invalid JSON"):
        await api.get_page("projects", {})


@pytest.mark.asyncio
async def test_client_error_not_retried() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"detail": "Not found"})

    api = _client(handler, max_retries=2)

    with pytest.raises(UpstreamTransportError) as exc_info:
        await api.get_page("milestones", {})

    assert exc_info.value.status_code == 404
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_server_error_retried_then_succeeds() -> None:
    responses = [httpx.Response(503), httpx.Response(200, json={"items": [{"name": "x"}]})]
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return responses.pop(0)

    page = await _client(handler, max_retries=2).get_page("projects", {})

    assert page.items == [{"name": "x"}]
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_rate_limit_retried_until_exhausted() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429, headers={"Retry-After": "0"})

    with pytest.raises(UpstreamTransportError) as exc_info:
        await _client(handler, max_retries=2).get_page("projects", {})

    assert exc_info.value.status_code == 429
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamTransportError, match="Network error"):
        await _client(handler, max_retries=1).get_page("projects", {})


@pytest.mark.asyncio
async def test_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamTransportError, match="Timeout"):
        await _client(handler, max_retries=0).get_page("projects", {})


@pytest.mark.asyncio
async def test_resource_client_sends_filters() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"items": []})

    api = _client(handler)
    client = NestResourceClient(api, ResourceType.CHAPTERS)

    await client.fetch_page(1, 5, ChapterFilters(location="London"))

    params = requests[0].url.params
    assert requests[0].url.path == "/api/v0/chapters/"
    assert params["country"] == "London"
    assert params["page_size"] == "5"


@pytest.mark.asyncio
async def test_contributors_use_members_endpoint() -> None:
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={"items": []})

    clients = build_resource_clients(_client(handler))
    client = clients[ResourceType.CONTRIBUTORS]

    await client.fetch_page(1, 10, ContributorFilters())

    assert paths == ["/api/v0/members/"]
    assert set(clients) == set(ResourceType)
    assert set(ENDPOINTS) == set(ResourceType)


@pytest.mark.asyncio
async def test_injected_client_not_closed() -> None:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))

    async with NestApiClient(http_client=http_client) as api:
        await api.get_page("projects", {})

    assert not http_client.is_closed
    await http_client.aclose()


def test_negative_max_retries_rejected() -> None:
    with pytest.raises(ValueError, match="max_retries"):
        _client(lambda request: httpx.Response(200, json=[]), max_retries=-1)


@pytest.mark.asyncio
async def test_events_request_carries_only_paging() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"items": []})

    client = NestResourceClient(_client(handler), ResourceType.EVENTS)

    await client.fetch_page(1, 10, EventFilters(upcoming=True))

    assert dict(requests[0].url.params) == {"page": "1", "page_size": "10"}
