"""Web search fallback for the retrieval pipeline.

Dispatches a query to the configured provider, removes duplicate URLs,
re-ranks results by how often the query terms appear in each title and
snippet, and truncates.  Web search only ever enriches a prompt, so every
failure is logged and turned into an empty result list.

Relevance score per query term (case-insensitive):

    title whole-word matches   x 3
    title substring matches    x 1
    snippet whole-word matches x 2
    snippet substring matches  x 0.5
"""

from __future__ import annotations

import re

import structlog

from src.interfaces.web_search_provider import IWebSearchProvider, SearchResult

logger = structlog.get_logger(logger_name=__name__)

# Over-fetch so de-duplication and re-ranking have something to work with.
_FETCH_COUNT = 20


def relevance_score(result: SearchResult, query: str) -> float:
    """Score *result* by occurrences of the query's terms."""
    title = result.title.lower()
    snippet = result.snippet.lower()
    score = 0.0
    for term in query.lower().split():
        escaped = re.escape(term)
        whole_word = re.compile(rf"\b{escaped}\b")
        score += len(whole_word.findall(title)) * 3
        score += title.count(term) * 1
        score += len(whole_word.findall(snippet)) * 2
        score += snippet.count(term) * 0.5
    return score


def rank_results(results: list[SearchResult], query: str, max_results: int) -> list[SearchResult]:
    """De-duplicate by URL (first wins), sort by relevance, keep *max_results*."""
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        if result.url in seen:
            continue
        seen.add(result.url)
        unique.append(result)
    # sorted() is stable: equally relevant results keep provider order.
    ranked = sorted(unique, key=lambda r: relevance_score(r, query), reverse=True)
    return ranked[:max_results]


class WebSearchService:
    """Provider-agnostic web search with ranking and failure isolation.

    Parameters
    ----------
    providers:
        Search providers keyed by id (``"duckduckgo"``, ``"brave"`` ...).
    default_provider:
        Provider used when :meth:`search` is not given one.
    """

    def __init__(
        self,
        providers: dict[str, IWebSearchProvider],
        default_provider: str = "duckduckgo",
    ) -> None:
        self._providers = dict(providers)
        self._default_provider = default_provider

    @property
    def provider_ids(self) -> list[str]:
        return sorted(self._providers)

    async def search(
        self,
        query: str,
        max_results: int = 10,
        provider: str | None = None,
    ) -> list[SearchResult]:
        """Search the web; returns ``[]`` on any failure."""
        provider_id = provider or self._default_provider
        search_provider = self._providers.get(provider_id)
        if search_provider is None or not search_provider.is_available():
            logger.warning("web_search_provider_unavailable", provider=provider_id)
            return []

        try:
            results = await search_provider.search(query, num_results=_FETCH_COUNT)
        except Exception as exc:
            logger.warning(
                "web_search_failed", provider=provider_id, query=query, error=str(exc)
            )
            return []

        ranked = rank_results(results, query, max_results)
        logger.info(
            "web_search_complete",
            provider=provider_id,
            query=query,
            raw_count=len(results),
            returned=len(ranked),
        )
        return ranked

    async def test_connection(self, provider: str) -> bool:
        """Run a throwaway query to check that *provider* answers."""
        search_provider = self._providers.get(provider)
        if search_provider is None or not search_provider.is_available():
            return False
        try:
            await search_provider.search("test", num_results=1)
        except Exception as exc:
            logger.info("web_search_connection_failed", provider=provider, error=str(exc))
            return False
        return True
