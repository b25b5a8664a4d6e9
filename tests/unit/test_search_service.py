"""Tests for the search providers."""
import httpx
import pytest
from unittest.mock import AsyncMock, patch

from webreach.config import AppConfig
from webreach.services.errors import InvalidInputError, SearchError
from webreach.services.search_service import (
    SearchResponse,
    SearchResult,
    SearchService,
    SearxSearchService,
    TavilySearchService,
)


class TestSearxSearchService:
    """Tests for SearxSearchService."""

    @pytest.mark.asyncio
    async def test_search_parses_results(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json={"results": [
                {"url": "https://a.example", "title": "A", "content": "snippet a", "engine": "x"},
                {"url": "https://b.example", "title": "B"},
            ]})

        service = SearxSearchService("http://searx.local/", transport=httpx.MockTransport(handler))

        response = await service.search("python httpx")

        assert seen["url"].path == "/search"
        assert seen["url"].params["q"] == "python httpx"
        assert seen["url"].params["format"] == "json"
        assert response.query == "python httpx"
        assert response.results == [
            SearchResult(url="https://a.example", title="A", content="snippet a"),
            SearchResult(url="https://b.example", title="B", content=""),
        ]

    @pytest.mark.asyncio
    async def test_http_error_becomes_search_error(self):
        service = SearxSearchService(transport=httpx.MockTransport(lambda r: httpx.Response(500)))

        with pytest.raises(SearchError) as exc_info:
            await service.search("q")

        assert exc_info.value.code == "SEARCH_FAILED"

    @pytest.mark.asyncio
    async def test_invalid_json_becomes_search_error(self):
        service = SearxSearchService(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>oops</html>"))
        )

        with pytest.raises(SearchError, match="invalid response"):
            await service.search("q")


class TestTavilySearchService:
    """Tests for TavilySearchService."""

    def test_is_configured_without_key(self):
        service = TavilySearchService()
        with patch.dict("os.environ", {}, clear=True):
            assert not service.is_configured()

    def test_client_raises_without_key(self):
        service = TavilySearchService()
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(SearchError, match="TAVILY_API_KEY not configured"):
                _ = service.client

    @pytest.mark.asyncio
    async def test_search_maps_results(self):
        service = TavilySearchService(api_key="test-key")

        with patch.object(service, "_client") as mock_client:
            mock_client.search = AsyncMock(return_value={
                "query": "q",
                "results": [{"url": "http://example.com", "title": "Example", "content": "c", "score": 0.9}],
            })
            service._client = mock_client

            response = await service.search("q")

        assert response.results == [SearchResult(url="http://example.com", title="Example", content="c")]

    @pytest.mark.asyncio
    async def test_client_failure_becomes_search_error(self):
        service = TavilySearchService(api_key="test-key")

        with patch.object(service, "_client") as mock_client:
            mock_client.search = AsyncMock(side_effect=RuntimeError("quota exceeded"))
            service._client = mock_client

            with pytest.raises(SearchError, match="quota exceeded"):
                await service.search("q")


class TestSearchService:
    """Tests for provider selection and query validation."""

    def test_default_provider_is_searxng(self):
        service = SearchService(AppConfig(searxng_url="http://searx.local:9000/"))

        assert isinstance(service.provider, SearxSearchService)
        assert service.provider.base_url == "http://searx.local:9000"

    def test_tavily_provider(self):
        service = SearchService(AppConfig(search_provider="Tavily", tavily_api_key="k"))

        assert isinstance(service.provider, TavilySearchService)
        assert service.provider.api_key == "k"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", None])
    async def test_empty_query_rejected(self, query):
        provider = AsyncMock()
        service = SearchService(AppConfig(), provider=provider)

        with pytest.raises(InvalidInputError):
            await service.search(query)

        provider.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_query_is_stripped(self):
        provider = AsyncMock()
        provider.search.return_value = SearchResponse(query="q", results=[])
        service = SearchService(AppConfig(), provider=provider)

        await service.search("  q  ")

        provider.search.assert_awaited_once_with("q")
