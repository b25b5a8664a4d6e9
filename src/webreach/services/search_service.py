"""Web search providers for the web_search tool.

The default provider is a SearXNG-compatible JSON endpoint
(``GET /search?q=...&format=json``). Tavily is available as an alternative
when an API key is configured.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging
import os

import httpx
from tavily import AsyncTavilyClient

from ..config import AppConfig, get_config
from .errors import InvalidInputError, SearchError

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """Single search hit."""
    url: str
    title: str
    content: str  # Snippet


@dataclass
class SearchResponse:
    """Response from a search provider."""
    query: str
    results: List[SearchResult]


class SearxSearchService:
    """Service for a self-hosted SearXNG instance."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8080",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def search(self, query: str) -> SearchResponse:
        """Execute a single search query."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    f"{self.base_url}/search",
                    params={"q": query, "format": "json"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"SearXNG search failed for '{query}': {e}")
            raise SearchError(f"Search failed: {e}", query=query) from e
        except ValueError as e:
            logger.error(f"SearXNG returned invalid JSON for '{query}': {e}")
            raise SearchError("Search failed: invalid response from search provider", query=query) from e

        results = [
            SearchResult(
                url=r.get("url", ""),
                title=r.get("title", ""),
                content=r.get("content", ""),
            )
            for r in data.get("results", [])
            if isinstance(r, dict)
        ]
        logger.info(f"Fetched {len(results)} results for query '{query[:50]}'")
        return SearchResponse(query=query, results=results)


class TavilySearchService:
    """Service for Tavily web search."""

    def __init__(self, api_key: Optional[str] = None, max_results: int = 5):
        """Initialize with API key from param or environment."""
        self.api_key = api_key
        self.max_results = max_results
        self._client: Optional[AsyncTavilyClient] = None

    @property
    def client(self) -> AsyncTavilyClient:
        """Lazy-load the async client."""
        if self._client is None:
            if not self.api_key:
                self.api_key = os.getenv("TAVILY_API_KEY")
            if not self.api_key:
                raise SearchError("TAVILY_API_KEY not configured")
            self._client = AsyncTavilyClient(api_key=self.api_key)
        return self._client

    async def search(self, query: str) -> SearchResponse:
        """Execute a single search query."""
        try:
            response = await self.client.search(query=query, max_results=self.max_results)
        except SearchError:
            raise
        except Exception as e:
            logger.error(f"Tavily search failed for '{query}': {e}")
            raise SearchError(f"Search failed: {e}", query=query) from e

        results = [
            SearchResult(
                url=r.get("url", ""),
                title=r.get("title", ""),
                content=r.get("content", ""),
            )
            for r in response.get("results", [])
        ]
        return SearchResponse(query=query, results=results)

    def is_configured(self) -> bool:
        """Check if Tavily is properly configured."""
        return bool(self.api_key or os.getenv("TAVILY_API_KEY"))


class SearchService:
    """Front for the configured search provider."""

    def __init__(self, config: Optional[AppConfig] = None, provider=None):
        self.config = config or get_config()
        self.provider = provider or self._build_provider()

    def _build_provider(self):
        if self.config.search_provider == "tavily":
            return TavilySearchService(api_key=self.config.tavily_api_key)
        return SearxSearchService(
            base_url=self.config.searxng_url,
            timeout=self.config.search_timeout,
        )

    async def search(self, query: str) -> SearchResponse:
        """Search for ``query``.

        Raises:
            InvalidInputError: If the query is empty
            SearchError: If the provider fails
        """
        if not query or not isinstance(query, str) or not query.strip():
            raise InvalidInputError("Search query cannot be empty")
        return await self.provider.search(query.strip())
