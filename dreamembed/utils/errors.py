"""Custom exception hierarchy for dreamembed.

All application exceptions inherit from :class:`DreamEmbedError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai_embedding", "sqlite_job_store") caused the
failure.  Each class also declares whether the failure is ``retryable``;
the worker uses that flag to choose between a backoff-rescheduled retry and
a terminal ``failed`` state.

    DreamEmbedError  (base -- catch-all)
    +-- EmbeddingError           (transient embedder failure, timeout)
    |   +-- RateLimitError       (provider rate-limit exceeded)
    |   +-- InvalidInputError    (embedder rejected the input; not retryable)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- ThemeCatalogError        (theme similarity search failure)
    +-- PersistenceError         (job store read/write failure)
    +-- DocumentValidationError  (document missing or without text; not retryable)
    +-- ConfigurationError       (startup / missing config; fatal)
"""


class DreamEmbedError(Exception):
    """Base exception for all dreamembed errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    retryable: bool = True

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
# Embedder errors
# ---------------------------------------------------------------------------

class EmbeddingError(DreamEmbedError):
    """Raised when generating an embedding fails for a transient reason."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(EmbeddingError):
    """Raised when the embedding API rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidInputError(EmbeddingError):
    """Raised when the embedder rejects the input itself (e.g. HTTP 400).

    Retrying the same text cannot succeed, so the job fails terminally.
    """

    retryable = False

    def __init__(
        self,
        message: str = "Embedding input rejected",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(DreamEmbedError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Catalog / storage errors
# ---------------------------------------------------------------------------

class ThemeCatalogError(DreamEmbedError):
    """Raised when the theme catalog similarity search fails."""

    def __init__(
        self,
        message: str = "Theme catalog search failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PersistenceError(DreamEmbedError):
    """Raised when the job store cannot read or commit state.

    A failed commit is rolled back in full, so no partial chunk embeddings
    or theme associations are ever visible.
    """

    def __init__(
        self,
        message: str = "Job store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Input / configuration errors
# ---------------------------------------------------------------------------

class DocumentValidationError(DreamEmbedError):
    """Raised when a claimed document cannot be processed at all."""

    retryable = False

    def __init__(
        self,
        message: str = "Document is not valid for embedding",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(DreamEmbedError):
    """Raised when configuration is invalid or missing at startup."""

    retryable = False

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


def is_retryable(exc: BaseException) -> bool:
    """Return whether a failure should be rescheduled rather than terminal.

    Exceptions outside the hierarchy (bugs, unexpected library errors) are
    retried; the attempt ceiling still bounds them.
    """
    if isinstance(exc, DreamEmbedError):
        return exc.retryable
    return True
