"""Custom exception hierarchy for ragdesk.

All application exceptions inherit from :class:`RagDeskError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "qdrant", "brave") caused the failure.

The hierarchy is organized by failure class:

    RagDeskError  (base -- catch-all for any ragdesk error)
    +-- ConfigurationError        (startup / missing config)
    +-- LLMError                  (any LLM API call failure)
    |   +-- UnsupportedCapabilityError  (provider lacks e.g. embeddings)
    |   +-- UnsupportedModelError       (no provider matches a model id)
    +-- RAGError                  (embedding or vector-index failure)
    |   +-- UpstreamHTTPError     (terminal non-2xx response, keeps status/body)
    +-- ProviderUnavailableError  (network failure after retries)
    +-- WebSearchError            (web search provider failure)
    +-- IngestionError            (fatal-to-job ingestion failure)
    +-- PipelineError             (illegal status transition)
    +-- RecordNotFoundError       (missing file / KB / assistant / session)
    +-- ResourceBusyError         (second concurrent job on one resource)
    +-- OperationCancelledError   (job or stream cancelled by the caller)

Transient failures are retried inside :mod:`src.utils.retry`; everything
that escapes it is terminal for the current call.
"""


class RagDeskError(Exception):
    """Base exception for all ragdesk errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    scanning, e.g. ``[qdrant] Request failed with status 400``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(RagDeskError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# LLM errors
# ---------------------------------------------------------------------------

class LLMError(RagDeskError):
    """Raised when an LLM API call fails or returns an unparseable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedCapabilityError(LLMError):
    """Raised when a provider is asked for something it cannot do.

    The canonical case is requesting embeddings from a chat-only provider;
    callers get this error instead of fabricated vectors.
    """

    def __init__(
        self,
        message: str = "Capability not supported by provider",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedModelError(LLMError):
    """Raised when no provider routing rule matches a model identifier."""

    def __init__(
        self,
        message: str = "Unsupported model",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# RAG / vector-index errors
# ---------------------------------------------------------------------------

class RAGError(RagDeskError):
    """Raised when a RAG operation fails (embedding or vector index)."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UpstreamHTTPError(RAGError):
    """Raised for a terminal non-2xx HTTP response.

    Carries the ``status_code`` and raw response ``body`` so callers can
    distinguish e.g. a missing collection (404) from a malformed request.
    """

    def __init__(
        self,
        status_code: int,
        body: str = "",
        message: str | None = None,
        provider_name: str | None = None,
    ) -> None:
        self._status_code = status_code
        self._body = body
        super().__init__(
            message=message or f"Request failed with status {status_code}: {body}",
            provider_name=provider_name,
        )

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def body(self) -> str:
        return self._body


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(RagDeskError):
    """Raised when an external service stays unreachable after retries."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class WebSearchError(RagDeskError):
    """Raised when a web search provider fails."""

    def __init__(
        self,
        message: str = "Web search failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Pipeline errors
# ---------------------------------------------------------------------------

class IngestionError(RagDeskError):
    """Raised when a file cannot be ingested (parse, empty text, dimension mismatch)."""

    def __init__(
        self,
        message: str = "File ingestion failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineError(RagDeskError):
    """Raised when pipeline orchestration fails (invalid status transition, etc.)."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RecordNotFoundError(RagDeskError):
    """Raised when a referenced record does not exist in the relational store."""

    def __init__(
        self,
        message: str = "Record not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ResourceBusyError(RagDeskError):
    """Raised when a job is already running for the same file or session."""

    def __init__(
        self,
        message: str = "Resource is busy",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class OperationCancelledError(RagDeskError):
    """Raised at the next suspension point after a job or stream is cancelled."""

    def __init__(
        self,
        message: str = "Operation cancelled",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
