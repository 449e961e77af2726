"""Business logic use cases."""

import logging
import math
import time
from collections.abc import Mapping
from dataclasses import replace
from typing import Optional

from nest_tools.core import (
    AggregationResult,
    InvalidArgument,
    NormalizedRecord,
    PageEnricher,
    Pagination,
    ResourceClient,
    ResourceQuery,
    ResourceType,
    ResultCache,
    UpstreamTransportError,
    normalize,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class AggregationService:
    """Turn one logical "give me N items" request into paginated upstream calls.

    Pages are fetched sequentially: the size of each request depends on how
    many unique records have been collected so far, and the loop stops as
    soon as the limit is reached or the upstream signals exhaustion.
    """

    def __init__(
        self,
        clients: Mapping[ResourceType, ResourceClient],
        page_size_caps: Optional[Mapping[str, int]] = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        cache: Optional[ResultCache] = None,
    ) -> None:
        self.clients = dict(clients)
        self.default_page_size = default_page_size
        self.page_size_caps = {
            ResourceType.parse(key): int(value) for key, value in (page_size_caps or {}).items()
        }
        self.cache = cache

        for resource_type, cap in self.page_size_caps.items():
            if cap < 1:
                raise ValueError(f"Page size cap for {resource_type.value} must be positive")
        if default_page_size < 1:
            raise ValueError("Default page size must be positive")

    def max_page_size(self, resource_type: ResourceType) -> int:
        """Per-call cap for a resource type."""
        return self.page_size_caps.get(resource_type, self.default_page_size)

    async def aggregate(self, query: ResourceQuery) -> AggregationResult:
        """Collect up to ``query.requested_limit`` unique normalized records.

        Upstream failures never raise: collection stops and the partial
        result carries ``pagination.error``.

        Raises:
            InvalidArgument: when no client serves the resource type.
        """
        resource_type = query.resource_type
        client = self.clients.get(resource_type)
        if client is None:
            raise InvalidArgument(f"No upstream client for resource type: {resource_type.value}")

        if self.cache is not None:
            cached = await self.cache.get(query.cache_key())
            if cached is not None:
                logger.debug("Cache hit for %s", resource_type.value)
                return cached

        limit = query.requested_limit
        max_page_size = self.max_page_size(resource_type)
        pages_needed = math.ceil(limit / max_page_size)
        context = query.filters.as_context()

        logger.info(
            "Fetching %d %s: up to %d page(s) of %d",
            limit,
            resource_type.value,
            pages_needed,
            max_page_size,
            extra={"resource": resource_type.value},
        )

        # Insertion-ordered dedup keyed by canonical URL; first occurrence wins
        collected: dict[str, NormalizedRecord] = {}
        total_count: Optional[int] = None
        requests_made = 0
        error: Optional[str] = None
        started = time.monotonic()

        for page in range(query.page_offset, query.page_offset + pages_needed):
            current_page_size = min(max_page_size, limit - len(collected))

            requests_made += 1
            try:
                upstream_page = await client.fetch_page(
                    page, current_page_size, query.filters, api_key=query.api_key
                )
            except UpstreamTransportError as e:
                error = str(e)
                logger.warning(
                    "Error on %s page %d: %s", resource_type.value, page, e,
                    extra={"resource": resource_type.value, "page": page},
                )
                break
            except Exception as e:
                error = f"Unexpected upstream failure: {e}"
                logger.exception(
                    "Unexpected error on %s page %d", resource_type.value, page,
                    extra={"resource": resource_type.value, "page": page},
                )
                break

            if upstream_page.total_count is not None:
                total_count = upstream_page.total_count

            received = len(upstream_page.items)
            duplicates = 0
            for raw_item in upstream_page.items:
                if not isinstance(raw_item, Mapping):
                    logger.warning("Skipping malformed %s item: %r", resource_type.value, raw_item)
                    continue

                try:
                    record = normalize(resource_type, raw_item, context)
                    if record.url in collected:
                        duplicates += 1
                        continue
                    collected[record.url] = record
                except Exception as e:
                    logger.warning(
                        "Skipping unusable %s item: %s", resource_type.value, e,
                        extra={"resource": resource_type.value, "page": page},
                    )

            logger.debug(
                "Page %d: received %d items (%d duplicates), %d unique so far",
                page,
                received,
                duplicates,
                len(collected),
                extra={"resource": resource_type.value, "page": page},
            )

            if len(collected) >= limit:
                break
            if received == 0 or received < current_page_size:
                break
            if upstream_page.has_next is False:
                break

        items = list(collected.values())[:limit]
        total_available = total_count if total_count is not None else len(items)

        result = AggregationResult(
            items=items,
            pagination=Pagination(
                requested=limit,
                returned=len(items),
                total_available=total_available,
                has_more=total_available > len(items),
                requests_made=requests_made,
                error=error,
            ),
        )

        logger.info(
            "Fetched %d %s (%d API calls)",
            len(items),
            resource_type.value,
            requests_made,
            extra={
                "resource": resource_type.value,
                "requests_made": requests_made,
                "returned": len(items),
                "duration_ms": round((time.monotonic() - started) * 1000),
            },
        )

        # Partial results are not worth remembering
        if self.cache is not None and error is None:
            await self.cache.set(query.cache_key(), result)

        return result


class EnrichmentService:
    """Augment records with details scraped from their pages."""

    def __init__(self, enricher: PageEnricher) -> None:
        self.enricher = enricher

    async def enrich_records(self, records: list[NormalizedRecord]) -> list[NormalizedRecord]:
        """Enrich records one by one (sequential, best effort).

        A record whose page cannot be fetched keeps its original fields.
        """
        enriched: list[NormalizedRecord] = []
        succeeded = 0

        for record in records:
            try:
                page = await self.enricher.enrich(record.url)
            except Exception as e:
                logger.warning("Enrichment raised for %s: %s", record.url, e, extra={"url": record.url})
                enriched.append(record)
                continue

            if not page.success:
                enriched.append(record)
                continue

            data = dict(record.data)
            if page.description:
                data["description"] = page.description
            if "githubUrl" in data and not data["githubUrl"] and page.resource_links:
                data["githubUrl"] = page.resource_links[0]

            enriched.append(replace(record, data=data))
            succeeded += 1

        logger.info("Enriched %d/%d records", succeeded, len(records))
        return enriched

    async def enrich_result(self, result: AggregationResult) -> AggregationResult:
        """Return a copy of the result with enriched items."""
        items = await self.enrich_records(result.items)
        return AggregationResult(items=items, pagination=result.pagination)
