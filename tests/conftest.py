"""Shared test helpers."""

from typing import Any, Optional, Union

import pytest

from nest_tools.core import (
    ResourceClient,
    ResourceFilters,
    ResourceType,
    UpstreamPage,
)


def raw_records(resource_type: ResourceType, count: int, start: int = 0) -> list[dict[str, Any]]:
    """Upstream-shaped records with distinct URLs."""
    return [
        {
            "name": f"Item {i}",
            "title": f"Item {i}",
            "key": f"item-{i}",
            "login": f"user{i}",
            "url": f"https://example.org/{resource_type.value}/{i}",
        }
        for i in range(start, start + count)
    ]


class CursorClient(ResourceClient):
    """Serves records sequentially, ``page_size`` at a time."""

    def __init__(
        self,
        resource_type: ResourceType,
        records: list[Any],
        total_count: Optional[int] = None,
        has_next: Optional[bool] = None,
        fail_on_call: Optional[int] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.resource_type = resource_type
        self.records = records
        self.total_count = total_count
        self.has_next = has_next
        self.fail_on_call = fail_on_call
        self.error = error
        self.cursor = 0
        self.calls: list[dict[str, Any]] = []

    async def fetch_page(
        self,
        page: int,
        page_size: int,
        filters: ResourceFilters,
        api_key: Optional[str] = None,
    ) -> UpstreamPage:
        self.calls.append(
            {"page": page, "page_size": page_size, "filters": filters, "api_key": api_key}
        )
        if self.fail_on_call == len(self.calls):
            raise self.error

        items = self.records[self.cursor:self.cursor + page_size]
        self.cursor += len(items)
        return UpstreamPage(items=items, total_count=self.total_count, has_next=self.has_next)


class ScriptedClient(ResourceClient):
    """Returns pre-built pages (or raises pre-built errors) in order."""

    def __init__(self, resource_type: ResourceType, pages: list[Union[UpstreamPage, Exception]]) -> None:
        self.resource_type = resource_type
        self.pages = list(pages)
        self.calls: list[dict[str, Any]] = []

    async def fetch_page(
        self,
        page: int,
        page_size: int,
        filters: ResourceFilters,
        api_key: Optional[str] = None,
    ) -> UpstreamPage:
        self.calls.append({"page": page, "page_size": page_size, "filters": filters})
        result = self.pages.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def london_chapters() -> list[dict[str, Any]]:
    return [
        {
            "name": "OWASP London",
            "key": "london",
            "country": "United Kingdom",
            "summary": "London chapter",
            "url": "https://owasp.org/www-chapter-london/",
        },
        {
            "name": "OWASP London Docklands",
            "key": "london-docklands",
            "country": "United Kingdom",
            "url": "https://owasp.org/www-chapter-london-docklands/",
        },
        {
            "name": "OWASP London Ontario",
            "key": "london-ontario",
            "country": "Canada",
            "url": "https://owasp.org/www-chapter-london-ontario/",
        },
    ]
