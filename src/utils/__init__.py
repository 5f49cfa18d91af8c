"""Utility modules for ragdesk.

Available utility modules (re-exported here for convenience):

- **errors** -- Domain exception hierarchy rooted at RagDeskError; each
  layer raises its own subclass so callers can tell transient, terminal
  and degradable failures apart.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **retry** -- Exponential-backoff HTTP helper for 429/5xx and transport
  failures.
- **concurrency** -- Reject-if-busy guards keyed by file or session id.
- **cancellation** -- Cancellation tokens and the cancellable chat stream.
"""

# -- Cancellation ------------------------------------------------------------
from src.utils.cancellation import CancellationToken, ChatStream

# -- Single-flight guards ----------------------------------------------------
from src.utils.concurrency import KeyedGuard

# -- Domain exception hierarchy ----------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    IngestionError,
    LLMError,
    OperationCancelledError,
    PipelineError,
    ProviderUnavailableError,
    RagDeskError,
    RAGError,
    RecordNotFoundError,
    ResourceBusyError,
    UnsupportedCapabilityError,
    UnsupportedModelError,
    UpstreamHTTPError,
    WebSearchError,
)

# -- Structured logging setup ------------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- HTTP retry --------------------------------------------------------------
from src.utils.retry import request_with_retry

__all__ = [
    "CancellationToken",
    "ChatStream",
    "ConfigurationError",
    "IngestionError",
    "KeyedGuard",
    "LLMError",
    "OperationCancelledError",
    "PipelineError",
    "ProviderUnavailableError",
    "RAGError",
    "RagDeskError",
    "RecordNotFoundError",
    "ResourceBusyError",
    "UnsupportedCapabilityError",
    "UnsupportedModelError",
    "UpstreamHTTPError",
    "WebSearchError",
    "configure_logging",
    "get_logger",
    "request_with_retry",
]
