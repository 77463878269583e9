"""
Web search models.
"""
from enum import Enum
from pydantic import BaseModel
from typing import Optional, List


class SearchType(str, Enum):
    """Supported search flavours."""
    WEB = "web"
    IMAGE = "image"
    NEWS = "news"
    VIDEO = "video"
    DOCUMENT = "document"


class SearchItem(BaseModel):
    title: str
    link: str
    snippet: str = ""
    display_link: str = ""
    image_url: Optional[str] = None


class SearchResults(BaseModel):
    """One page of results."""
    query: str
    search_type: SearchType = SearchType.WEB
    total_results: int = 0
    search_time: float = 0.0
    items: List[SearchItem] = []
