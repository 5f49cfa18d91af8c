"""TTL cache for provider connectivity and model-list probes.

Testing a provider connection or listing its models costs a network round
trip, and the settings UI asks for both repeatedly.  Results are kept per
provider id for ``ttl`` seconds (five minutes by default) in two
``cachetools.TTLCache`` instances.

The cache is instance-scoped and takes the clock as a parameter, so tests
can advance time explicitly instead of sleeping.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog
from cachetools import TTLCache

from src.models.llm import ModelInfo

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TTL_SECONDS = 300.0


class ConnectionCache:
    """Per-provider cache of connection-test results and model lists.

    Parameters
    ----------
    ttl:
        Seconds an entry stays valid.
    max_size:
        Maximum providers tracked per cache.
    timer:
        Monotonic clock returning seconds.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        max_size: int = 256,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._connections: TTLCache[str, bool] = TTLCache(maxsize=max_size, ttl=ttl, timer=timer)
        self._models: TTLCache[str, list[ModelInfo]] = TTLCache(
            maxsize=max_size, ttl=ttl, timer=timer
        )

    # -- Connection results -------------------------------------------------

    def get_connection(self, provider_id: str) -> bool | None:
        """Cached connection result, or ``None`` when absent or expired."""
        result = self._connections.get(provider_id)
        logger.debug("connection_cache_lookup", provider=provider_id, hit=result is not None)
        return result

    def set_connection(self, provider_id: str, connected: bool) -> None:
        self._connections[provider_id] = connected

    # -- Model lists --------------------------------------------------------

    def get_models(self, provider_id: str) -> list[ModelInfo] | None:
        """Cached model list, or ``None`` when absent or expired."""
        models = self._models.get(provider_id)
        logger.debug("model_cache_lookup", provider=provider_id, hit=models is not None)
        return list(models) if models is not None else None

    def set_models(self, provider_id: str, models: list[ModelInfo]) -> None:
        self._models[provider_id] = list(models)

    # -- Invalidation -------------------------------------------------------

    def invalidate(self, provider_id: str) -> None:
        """Drop both cached entries for *provider_id*."""
        self._connections.pop(provider_id, None)
        self._models.pop(provider_id, None)

    def clear(self) -> None:
        self._connections.clear()
        self._models.clear()
