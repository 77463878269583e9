"""
Tests for search: query rewriting, the client and /search handlers.
"""
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from drivebot.integrations.search_client import SearchClient
from drivebot.models.search import SearchType
from drivebot.services.search_service import SearchService
from drivebot.utils.errors import RemoteQuotaError, SearchError, ValidationError

from conftest import FakeSearchClient, command, render_text, select


class TestSearchService:
    """Tests for per-type query building."""
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("search_type, sent, file_type", [
        (SearchType.WEB, "python", None),
        (SearchType.IMAGE, "python", None),
        (SearchType.NEWS, "python news", None),
        (SearchType.VIDEO, "python site:youtube.com", None),
        (SearchType.DOCUMENT, "python", "pdf"),
    ])
    async def test_query_per_type(self, search_type, sent, file_type):
        client = FakeSearchClient()
        
        results = await SearchService(client).search("  python ", search_type, 3)
        
        assert client.queries == [{"text": sent, "type": search_type, "count": 3, "file_type": file_type}]
        assert results.query == "python"
    
    @pytest.mark.asyncio
    async def test_invalid_query_never_reaches_api(self):
        client = FakeSearchClient()
        
        with pytest.raises(ValidationError):
            await SearchService(client).search("   ")
        assert client.queries == []


class TestSearchClient:
    """Tests for the Custom Search API client."""
    
    @pytest.fixture
    def client(self):
        return SearchClient("key", "engine")
    
    @pytest.mark.asyncio
    async def test_parses_results(self, client):
        """Items and totals are mapped from the API payload."""
        payload = {
            "searchInformation": {"totalResults": "1200", "searchTime": 0.31},
            "items": [{"title": "Py", "link": "https://python.org", "snippet": "Home", "displayLink": "python.org"}],
        }
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = httpx.Response(200, json=payload)
            
            results = await client.query("python", SearchType.IMAGE, count=50)
        
        params = mock_get.call_args.kwargs["params"]
        assert params["num"] == 10
        assert params["searchType"] == "image"
        assert results.total_results == 1200
        assert results.items[0].image_url == "https://python.org"
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, error", [(429, RemoteQuotaError), (403, SearchError), (500, SearchError)])
    async def test_error_statuses(self, client, status, error):
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = httpx.Response(status, json={})
            
            with pytest.raises(error):
                await client.query("python")
    
    @pytest.mark.asyncio
    async def test_unconfigured_client(self):
        """Missing key or engine fails without a request."""
        with pytest.raises(SearchError):
            await SearchClient("", "engine").query("python")


class TestSearchCommands:
    """Tests for /search through the router."""
    
    @pytest.mark.asyncio
    async def test_results_are_public(self, context, search_api, send):
        """Search results are visible to the whole channel."""
        result = await send(command("search", query="fastapi", type="news", limit=3))
        
        assert result.ephemeral is False
        assert search_api.queries[0]["text"] == "fastapi news"
        assert "First" in render_text(result)
    
    @pytest.mark.asyncio
    async def test_search_needs_no_link(self, context, send):
        result = await send(command("search", query="fastapi"))
        
        assert "not linked" not in render_text(result)
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"type": "music"}, {"limit": 0}, {"limit": "many"}])
    async def test_bad_options(self, context, search_api, send, params):
        result = await send(command("search", query="fastapi", **params))
        
        assert "Invalid input" in render_text(result)
        assert search_api.queries == []
    
    @pytest.mark.asyncio
    async def test_search_cooldown_is_five_seconds(self, context, clock, search_api):
        """A second search within 5s is refused."""
        await context.router.dispatch(command("search", query="a"))
        clock.advance(4000)
        
        result = await context.router.dispatch(command("search", query="b"))
        
        assert "Slow down" in render_text(result)
        assert len(search_api.queries) == 1
    
    @pytest.mark.asyncio
    async def test_quota_error(self, context, search_api, send):
        search_api.error = RemoteQuotaError("search API")
        
        result = await send(command("search", query="fastapi"))
        
        assert "Too many requests" in render_text(result)
    
    @pytest.mark.asyncio
    async def test_type_select_menu(self, context, send):
        result = await send(select("searchtype_select", "video"))
        
        assert "Video search selected" in render_text(result)
