"""DuckDuckGo web-search provider implementing IWebSearchProvider.

Uses the duckduckgo_search library for free, keyless web searches.  The
synchronous ``DDGS`` client is wrapped in ``asyncio.to_thread`` so the
event loop keeps relaying chat chunks while a search runs.  Failures are
raised as :class:`WebSearchError`; the web search service decides whether
to degrade.
"""

from __future__ import annotations

import asyncio

import structlog
from duckduckgo_search import DDGS
from duckduckgo_search.exceptions import DuckDuckGoSearchException

from src.interfaces.web_search_provider import IWebSearchProvider, SearchResult
from src.utils.errors import WebSearchError

logger = structlog.get_logger(logger_name=__name__)


class DuckDuckGoSearchProvider(IWebSearchProvider):
    """DuckDuckGo web-search provider.  Needs no API key."""

    async def search(self, query: str, num_results: int = 10) -> list[SearchResult]:
        try:
            raw_results = await asyncio.to_thread(self._sync_search, query, num_results)
        except DuckDuckGoSearchException as exc:
            raise WebSearchError(
                message=f"DuckDuckGo search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        results = [
            SearchResult(
                title=item.get("title", ""),
                url=item.get("href", item.get("url", "")),
                snippet=item.get("body") or "",
            )
            for item in raw_results or []
        ]
        logger.debug("duckduckgo_search_complete", query=query, result_count=len(results))
        return results

    @staticmethod
    def _sync_search(query: str, max_results: int) -> list[dict]:
        with DDGS() as ddgs:
            return list(ddgs.text(query, max_results=max_results))

    def get_provider_name(self) -> str:
        return "duckduckgo"

    def is_available(self) -> bool:
        return True
