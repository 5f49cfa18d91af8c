"""Keyed web-search providers (Brave, Google Custom Search, SerpAPI) over httpx.

The three APIs differ only in URL, how the key is sent, where the result
list sits in the JSON and what the URL/snippet fields are called, so one
adapter is driven by a :class:`SearchEndpoint` per provider instead of
three near-identical classes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from src.interfaces.web_search_provider import IWebSearchProvider, SearchResult
from src.utils.errors import ProviderUnavailableError, UpstreamHTTPError, WebSearchError
from src.utils.retry import request_with_retry

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class SearchEndpoint:
    """How to call one search API and read its response."""

    provider_id: str
    url: str
    query_param: str
    count_param: str
    max_count: int
    results_path: tuple[str, ...]
    url_field: str
    snippet_field: str
    # Name of the header carrying the key; ``None`` sends it as a query param.
    key_header: str | None = None
    key_param: str | None = None
    extra_params: tuple[tuple[str, str], ...] = ()


SEARCH_ENDPOINTS: dict[str, SearchEndpoint] = {
    "brave": SearchEndpoint(
        provider_id="brave",
        url="https://api.search.brave.com/res/v1/web/search",
        query_param="q",
        count_param="count",
        max_count=20,
        results_path=("web", "results"),
        url_field="url",
        snippet_field="description",
        key_header="X-Subscription-Token",
    ),
    "google": SearchEndpoint(
        provider_id="google",
        url="https://www.googleapis.com/customsearch/v1",
        query_param="q",
        count_param="num",
        max_count=10,
        results_path=("items",),
        url_field="link",
        snippet_field="snippet",
        key_param="key",
    ),
    "serp": SearchEndpoint(
        provider_id="serp",
        url="https://serpapi.com/search.json",
        query_param="q",
        count_param="num",
        max_count=20,
        results_path=("organic_results",),
        url_field="link",
        snippet_field="snippet",
        key_param="api_key",
        extra_params=(("engine", "google"),),
    ),
}


class ApiSearchProvider(IWebSearchProvider):
    """Web search through a keyed JSON API.

    Parameters
    ----------
    endpoint:
        Which API to call (see ``SEARCH_ENDPOINTS``).
    http_client:
        Shared async HTTP client.
    api_key:
        The provider's API key.
    extra_params:
        Per-installation query params, e.g. ``{"cx": <cse id>}`` for Google.
    """

    def __init__(
        self,
        endpoint: SearchEndpoint,
        http_client: httpx.AsyncClient,
        api_key: str,
        extra_params: dict[str, str] | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        self._endpoint = endpoint
        self._http = http_client
        self._api_key = api_key
        self._extra_params = dict(extra_params or {})
        self._max_retries = max_retries
        self._base_delay = base_delay

    async def search(self, query: str, num_results: int = 10) -> list[SearchResult]:
        endpoint = self._endpoint
        params: dict[str, Any] = {
            endpoint.query_param: query,
            endpoint.count_param: min(num_results, endpoint.max_count),
            **dict(endpoint.extra_params),
            **self._extra_params,
        }
        headers = {"Accept": "application/json"}
        if endpoint.key_header:
            headers[endpoint.key_header] = self._api_key
        elif endpoint.key_param:
            params[endpoint.key_param] = self._api_key

        try:
            response = await request_with_retry(
                self._http,
                "GET",
                endpoint.url,
                params=params,
                headers=headers,
                timeout=15.0,
                max_retries=self._max_retries,
                base_delay=self._base_delay,
                provider_name=endpoint.provider_id,
            )
            data = response.json()
        except (UpstreamHTTPError, ProviderUnavailableError) as exc:
            raise WebSearchError(
                message=f"Search request failed: {exc.message}",
                provider_name=endpoint.provider_id,
            ) from exc
        except ValueError as exc:
            raise WebSearchError(
                message="Search API returned malformed JSON",
                provider_name=endpoint.provider_id,
            ) from exc

        items: Any = data
        for key in endpoint.results_path:
            items = (items or {}).get(key) if isinstance(items, dict) else None
        results = [
            SearchResult(
                title=item.get("title", ""),
                url=item.get(endpoint.url_field, ""),
                snippet=item.get(endpoint.snippet_field) or "",
            )
            for item in items or []
        ]
        logger.debug(
            "api_search_complete",
            provider=endpoint.provider_id,
            query=query,
            result_count=len(results),
        )
        return results

    def get_provider_name(self) -> str:
        return self._endpoint.provider_id

    def is_available(self) -> bool:
        return bool(self._api_key)
