"""Exceptions raised by the search engine."""


class SearchError(Exception):
    """Base class for all indexing and retrieval errors."""

    pass


class EmbedderError(SearchError):
    """Raised when the embedding provider fails or returns a malformed response."""

    pass


class ProviderUnreachableError(EmbedderError):
    """Raised when the embedding provider cannot be reached at all."""

    pass


class ModelNotFoundError(EmbedderError):
    """Raised when the provider is up but the configured model is not installed."""

    pass


class StoreError(SearchError):
    """Raised when the index snapshot cannot be read, written or removed."""

    pass


class IndexNotFoundError(SearchError):
    """Raised when an operation needs an index that has not been built yet."""

    pass
