"""Embedding providers that turn text into vectors."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from agentlens.search.errors import EmbedderError, ModelNotFoundError, ProviderUnreachableError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:11434"
DEFAULT_MODEL = "nomic-embed-text"
DEFAULT_DIMENSIONS = 768

# Embedding a large batch on CPU can take a while
DEFAULT_TIMEOUT = 120.0  # seconds


class Embedder(ABC):
    """Capability interface for embedding providers."""

    async def embed(self, text: str) -> list[float]:
        """Embed a single text."""
        vectors = await self.embed_batch([text])
        if not vectors:
            raise EmbedderError("No embedding returned")
        return vectors[0]

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed texts, returning one vector per input in the same order."""
        pass

    @abstractmethod
    def dimensions(self) -> int:
        """Length of every vector this provider returns."""
        pass

    @abstractmethod
    async def health_check(self) -> None:
        """Raise an EmbedderError unless the provider and model are usable."""
        pass


@dataclass
class EmbedderConfig:
    """Settings used to build an embedder."""

    provider: str = "ollama"
    model: str = DEFAULT_MODEL
    endpoint: str | None = None
    dimensions: int = DEFAULT_DIMENSIONS
    timeout: float = DEFAULT_TIMEOUT


class OllamaEmbedder(Embedder):
    """
    Embedder backed by an Ollama server.

    Uses ``POST /api/embed`` for embeddings and ``GET /api/tags`` to check
    that the configured model is installed.
    """

    def __init__(
        self,
        endpoint: str,
        model: str,
        dimensions: int,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the embedder.

        Args:
            endpoint: Base URL of the Ollama server
            model: Embedding model name
            dimensions: Expected vector length
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self._dimensions = dimensions
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _unreachable(self) -> ProviderUnreachableError:
        return ProviderUnreachableError(
            f"Cannot connect to Ollama at {self.endpoint}. Is Ollama running?\n"
            "Install: https://ollama.ai\n"
            "Start: ollama serve"
        )

    def _model_missing(self) -> ModelNotFoundError:
        return ModelNotFoundError(
            f"Model '{self.model}' not found. Pull it with:\n  ollama pull {self.model}"
        )

    def dimensions(self) -> int:
        return self._dimensions

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        payload = {"model": self.model, "input": list(texts), "truncate": True}
        try:
            async with self._client() as client:
                response = await client.post(f"{self.endpoint}/api/embed", json=payload)
        except httpx.ConnectError as e:
            raise self._unreachable() from e
        except httpx.TimeoutException as e:
            raise EmbedderError(
                f"Ollama request to {self.endpoint} timed out after {self._timeout:g}s"
            ) from e
        except httpx.RequestError as e:
            raise EmbedderError(f"Ollama request failed: {e}") from e

        if not response.is_success:
            body = response.text
            if response.status_code == 404 or "not found" in body:
                raise self._model_missing()
            raise EmbedderError(f"Ollama error ({response.status_code}): {body}")

        try:
            embeddings = response.json()["embeddings"]
        except (ValueError, KeyError, TypeError) as e:
            raise EmbedderError(f"Malformed response from Ollama: {e}") from e

        if not embeddings:
            raise EmbedderError(f"Ollama returned no embeddings for {len(texts)} inputs")
        if len(embeddings) != len(texts):
            raise EmbedderError(
                f"Ollama returned {len(embeddings)} embeddings for {len(texts)} inputs"
            )
        for vector in embeddings:
            if len(vector) != self._dimensions:
                raise EmbedderError(
                    f"Model '{self.model}' returned {len(vector)}-dimensional vectors, "
                    f"expected {self._dimensions}. Set AGENTLENS_EMBED_DIMENSIONS to match."
                )

        logger.debug("Embedded %d texts with %s", len(texts), self.model)
        return [[float(v) for v in vector] for vector in embeddings]

    async def health_check(self) -> None:
        try:
            async with self._client() as client:
                response = await client.get(f"{self.endpoint}/api/tags")
        except httpx.RequestError as e:
            raise self._unreachable() from e

        if not response.is_success:
            raise EmbedderError(
                f"Ollama health check failed at {self.endpoint} ({response.status_code})"
            )

        try:
            models = response.json().get("models") or []
            names = {m["name"] for m in models}
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise EmbedderError(f"Malformed model list from Ollama: {e}") from e

        if self.model not in names and f"{self.model}:latest" not in names:
            raise ModelNotFoundError(
                f"Model '{self.model}' not installed. Pull it with:\n  ollama pull {self.model}"
            )


def create_embedder(config: EmbedderConfig) -> Embedder:
    """Create an embedder from its config."""
    provider = config.provider.strip().lower()
    if provider != "ollama":
        raise EmbedderError(f"Unsupported embedding provider: {config.provider!r}")

    return OllamaEmbedder(
        endpoint=config.endpoint or DEFAULT_ENDPOINT,
        model=config.model,
        dimensions=config.dimensions,
        timeout=config.timeout,
    )
