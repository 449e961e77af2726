"""Web page enrichment: fetch a URL and extract title, description and links."""

import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from nest_tools.core import EnrichmentFailure, EnrichmentResult, PageEnricher

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class WebPageEnricher(PageEnricher):
    """Scrape a page for the details the Nest listings leave out."""

    # Elements that never carry page content
    NOISE_TAGS = ["script", "style", "nav", "footer", "header"]

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        max_content_chars: int = 5000,
        max_links: int = 20,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self.max_content_chars = max_content_chars
        self.max_links = max_links
        self._http_client = http_client

    async def enrich(self, url: str) -> EnrichmentResult:
        """Fetch the page and extract its details.

        Never raises: any failure is reported through ``success=False``.
        """
        try:
            html = await self._fetch(url)
            result = self._extract(url, html)
        except Exception as e:
            logger.warning("Enrichment failed for %s: %s", url, e, extra={"url": url})
            return EnrichmentResult(url=url, success=False, error=str(e) or type(e).__name__)

        logger.info(
            "Fetched page: %s (%d chars, %d links)",
            result.title,
            len(result.content),
            len(result.links),
            extra={"url": url},
        )
        return result

    async def _fetch(self, url: str) -> str:
        """GET the page body.

        Raises:
            EnrichmentFailure: on network errors or a non-2xx status.
        """
        headers = {"User-Agent": self.user_agent}

        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, headers=headers)
            else:
                async with httpx.AsyncClient(
                    timeout=self.timeout, follow_redirects=True, max_redirects=5
                ) as client:
                    response = await client.get(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EnrichmentFailure(f"HTTP {e.response.status_code} fetching {url}") from e
        except httpx.HTTPError as e:
            raise EnrichmentFailure(f"Error fetching {url}: {e}") from e

        return response.text

    def _extract(self, url: str, html: str) -> EnrichmentResult:
        """Extract title, meta description, text and links from HTML."""
        soup = BeautifulSoup(html, "html.parser")

        for element in soup(self.NOISE_TAGS):
            element.decompose()

        title = ""
        if soup.title and soup.title.string:
            title = soup.title.string.strip()
        if not title:
            h1 = soup.find("h1")
            title = h1.get_text(strip=True) if h1 else ""

        description = ""
        for attrs in ({"name": "description"}, {"property": "og:description"}):
            meta = soup.find("meta", attrs=attrs)
            if meta and meta.get("content"):
                description = meta["content"].strip()
                break

        body = soup.body or soup
        content = re.sub(r"\s+", " ", body.get_text(separator=" ")).strip()

        # Absolute links only, unique, in document order
        links: list[str] = []
        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if href.startswith(("http://", "https://")) and href not in links:
                links.append(href)

        resource_links = [link for link in links if "github.com" in link]

        return EnrichmentResult(
            url=url,
            success=True,
            title=title or "No title",
            description=description,
            content=content[: self.max_content_chars],
            links=links[: self.max_links],
            resource_links=resource_links,
        )
