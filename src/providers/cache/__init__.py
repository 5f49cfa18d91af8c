"""Cache providers.

ConnectionCache keeps provider connection-test results and model lists
for a few minutes so the provider service does not hit the network on
every settings refresh.  It lives in process memory and is owned by
whoever constructs it.
"""

from src.providers.cache.connection_cache import ConnectionCache

__all__ = ["ConnectionCache"]
