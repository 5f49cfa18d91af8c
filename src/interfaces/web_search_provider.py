"""Abstract base class for web-search service providers.

Web search is the retrieval pipeline's fallback when the knowledge bases
return too little context.  Implementations wrap DuckDuckGo (keyless),
Brave Search, Google Custom Search or SerpAPI.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


# A plain frozen dataclass: SearchResult is a value object that never needs
# Pydantic validation.
@dataclass(frozen=True)
class SearchResult:
    """A single web-search result.

    Attributes
    ----------
    title:
        The page title as returned by the search engine.
    url:
        The canonical URL of the result page.
    snippet:
        A text excerpt from the result, empty when the engine gives none.
    """

    title: str
    url: str
    snippet: str = ""


# Concrete implementations: DuckDuckGoSearchProvider, ApiSearchProvider
# (src/providers/search/)
class IWebSearchProvider(ABC):
    """Contract for web-search services."""

    @abstractmethod
    async def search(self, query: str, num_results: int = 10) -> list[SearchResult]:
        """Execute a web search and return the top results.

        Raises
        ------
        src.utils.errors.WebSearchError
            If the search API call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider id, e.g. ``"duckduckgo"`` or ``"brave"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has the credentials it needs."""
