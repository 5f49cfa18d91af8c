"""Web-search provider implementations.

- DuckDuckGoSearchProvider -- free, keyless; the default.
- ApiSearchProvider        -- Brave, Google Custom Search or SerpAPI,
  configured by a SearchEndpoint entry.
"""

from src.providers.search.api_search_provider import (
    SEARCH_ENDPOINTS,
    ApiSearchProvider,
    SearchEndpoint,
)
from src.providers.search.duckduckgo_provider import DuckDuckGoSearchProvider

__all__ = [
    "ApiSearchProvider",
    "DuckDuckGoSearchProvider",
    "SEARCH_ENDPOINTS",
    "SearchEndpoint",
]
