"""HTTP request helper with exponential backoff.

Every network call to the vector index (and the HTTP-only search and
Ollama adapters) goes through :func:`request_with_retry`:

- HTTP 429 and 5xx responses, and ``httpx.TransportError`` (connection
  refused, reset, timeout), are retried up to ``max_retries`` extra times
  with delays of ``base_delay * 2 ** attempt`` (1 s, 2 s, 4 s by default).
- Any other non-2xx response raises :class:`UpstreamHTTPError` at once,
  carrying the status code and response body.
- A transport failure on the final attempt raises
  :class:`ProviderUnavailableError`.

The ``sleep`` callable is injectable so tests can record delays instead of
waiting for them.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx
import structlog

from src.utils.errors import ProviderUnavailableError, UpstreamHTTPError
from src.utils.logging import get_logger

SleepFn = Callable[[float], Awaitable[Any]]

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0

_logger: structlog.BoundLogger = get_logger(__name__)


def is_retryable_status(status_code: int) -> bool:
    """Return ``True`` for rate-limit and server-side statuses."""
    return status_code == 429 or status_code >= 500


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: SleepFn = asyncio.sleep,
    provider_name: str | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, retrying transient failures with exponential backoff.

    Parameters
    ----------
    client:
        Shared async HTTP client.
    method:
        HTTP method (``"GET"``, ``"PUT"`` ...).
    url:
        Absolute URL, or a path relative to the client's ``base_url``.
    max_retries:
        Extra attempts after the first one.
    base_delay:
        Delay before the first retry, in seconds.  Doubles per retry.
    sleep:
        Awaitable sleep function.
    provider_name:
        Tag for log events and raised errors.
    **kwargs:
        Passed through to :meth:`httpx.AsyncClient.request`.

    Returns
    -------
    httpx.Response
        The first successful (2xx) response.

    Raises
    ------
    UpstreamHTTPError
        On a terminal 4xx, or a retryable status that persists past the
        last attempt.
    ProviderUnavailableError
        If the transport keeps failing past the last attempt.
    """
    for attempt in range(max_retries + 1):
        delay = base_delay * (2 ** attempt)
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            if attempt >= max_retries:
                raise ProviderUnavailableError(
                    message=f"{method} {url} failed after {max_retries + 1} attempts: {exc}",
                    provider_name=provider_name,
                ) from exc
            _logger.warning(
                "http_transport_error_retrying",
                provider=provider_name,
                method=method,
                url=url,
                attempt=attempt + 1,
                delay_s=delay,
                error=str(exc),
            )
            await sleep(delay)
            continue

        if response.is_success:
            return response

        if is_retryable_status(response.status_code) and attempt < max_retries:
            _logger.warning(
                "http_status_retrying",
                provider=provider_name,
                method=method,
                url=url,
                status=response.status_code,
                attempt=attempt + 1,
                delay_s=delay,
            )
            await sleep(delay)
            continue

        raise UpstreamHTTPError(
            status_code=response.status_code,
            body=response.text,
            provider_name=provider_name,
        )

    # Unreachable: the final iteration always returns or raises.
    raise ProviderUnavailableError(
        message=f"{method} {url} exhausted retries", provider_name=provider_name
    )
