"""
Search service - maps search types onto Custom Search parameters.
"""
from drivebot.integrations.search_client import SearchClient
from drivebot.models.search import SearchResults, SearchType
from drivebot.utils.logger import get_logger
from drivebot.utils.validation import validate_search_query

logger = get_logger(__name__)

DEFAULT_RESULT_COUNT = 5


class SearchService:
    """
    Usage:
        service = SearchService(client)
        results = await service.search("rust async", SearchType.NEWS)
    """
    
    def __init__(self, client: SearchClient):
        self.client = client
    
    async def search(
        self,
        query: str,
        search_type: SearchType = SearchType.WEB,
        count: int = DEFAULT_RESULT_COUNT,
    ) -> SearchResults:
        """
        Validate the query and run it as the given type.
        
        Raises:
            ValidationError: Empty, too long or prohibited query
            RemoteQuotaError / SearchError: From the search API
        """
        text = validate_search_query(query)
        
        if search_type == SearchType.NEWS:
            results = await self.client.query(f"{text} news", search_type, count)
        elif search_type == SearchType.VIDEO:
            results = await self.client.query(f"{text} site:youtube.com", search_type, count)
        elif search_type == SearchType.DOCUMENT:
            results = await self.client.query(text, search_type, count, file_type="pdf")
        else:
            results = await self.client.query(text, search_type, count)
        
        # Report the user's query, not the rewritten one
        results.query = text
        logger.info(f"{search_type.value} search returned {len(results.items)} items")
        return results
