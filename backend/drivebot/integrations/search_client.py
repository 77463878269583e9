"""
Google Programmable Search (Custom Search JSON API) client.

API Reference: https://developers.google.com/custom-search/v1/reference/rest/v1/cse/list
"""
from typing import Optional

import httpx

from drivebot.models.search import SearchItem, SearchResults, SearchType
from drivebot.utils.logger import get_logger
from drivebot.utils.errors import RemoteQuotaError, SearchError

logger = get_logger(__name__)

SEARCH_API_URL = "https://www.googleapis.com/customsearch/v1"
MAX_RESULTS_PER_PAGE = 10


class SearchClient:
    """
    Thin wrapper around the Custom Search JSON API.
    
    Usage:
        client = SearchClient(api_key, engine_id)
        results = await client.query("python asyncio", search_type=SearchType.WEB)
    """
    
    def __init__(self, api_key: str, engine_id: str):
        self.api_key = api_key
        self.engine_id = engine_id
    
    async def query(
        self,
        text: str,
        search_type: SearchType = SearchType.WEB,
        count: int = MAX_RESULTS_PER_PAGE,
        start: int = 1,
        safe_mode: str = "medium",
        file_type: Optional[str] = None,
        site_filter: Optional[str] = None,
    ) -> SearchResults:
        """
        Run one search request.
        
        Args:
            text: Query string sent as-is
            search_type: IMAGE switches the API to image search; the other
                types only affect how the caller builds `text`
            count: Results wanted, capped at 10 by the API
            start: 1-based index of the first result
            safe_mode: SafeSearch level
            file_type: Restrict to a file extension, e.g. "pdf"
            site_filter: Restrict to a site
            
        Returns:
            SearchResults
            
        Raises:
            RemoteQuotaError: Daily quota or rate limit hit
            SearchError: Access denied or any other failure
        """
        if not self.api_key or not self.engine_id:
            raise SearchError("Search is not configured on this bot.")
        
        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": text,
            "num": max(1, min(count, MAX_RESULTS_PER_PAGE)),
            "start": start,
            "safe": safe_mode,
        }
        if search_type == SearchType.IMAGE:
            params["searchType"] = "image"
        if file_type:
            params["fileType"] = file_type
        if site_filter:
            params["siteSearch"] = site_filter
        
        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(SEARCH_API_URL, params=params, timeout=30.0)
            except httpx.RequestError as e:
                logger.error(f"Search request failed: {e}")
                raise SearchError()
        
        if response.status_code == 429:
            logger.warning("Search API quota exceeded")
            raise RemoteQuotaError("search API")
        
        if response.status_code == 403:
            logger.error("Search API access denied, check the API key")
            raise SearchError("Search API access denied.")
        
        if response.status_code != 200:
            logger.error(f"Search API error: {response.status_code}")
            raise SearchError()
        
        logger.info(f"Search completed ({search_type.value})")
        return self._parse_results(response.json(), text, search_type)
    
    def _parse_results(self, data: dict, query: str, search_type: SearchType) -> SearchResults:
        info = data.get("searchInformation", {})
        items = []
        
        for item in data.get("items", []):
            image_url = None
            if search_type == SearchType.IMAGE:
                image_url = item.get("link")
            else:
                thumbnails = item.get("pagemap", {}).get("cse_thumbnail", [])
                if thumbnails:
                    image_url = thumbnails[0].get("src")
            
            items.append(SearchItem(
                title=item.get("title") or "No title",
                link=item.get("link", ""),
                snippet=item.get("snippet") or "No description available",
                display_link=item.get("displayLink", ""),
                image_url=image_url,
            ))
        
        try:
            total = int(info.get("totalResults", 0))
        except (TypeError, ValueError):
            total = 0
        try:
            search_time = float(info.get("searchTime", 0))
        except (TypeError, ValueError):
            search_time = 0.0
        
        return SearchResults(
            query=query,
            search_type=search_type,
            total_results=total,
            search_time=search_time,
            items=items,
        )
