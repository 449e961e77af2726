"""Page enrichment adapters."""

from nest_tools.adapters.enrichment.page_enricher import WebPageEnricher

__all__ = ["WebPageEnricher"]
