"""Async client for an Ollama-compatible embedding endpoint."""

import logging

import httpx

from llmobs.config import settings
from llmobs.errors import EmbeddingDimensionError, EmbeddingServiceError

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Turns text into a fixed-length vector.

    Transport failures, timeouts and non-2xx responses raise
    EmbeddingServiceError; a vector of the wrong length raises
    EmbeddingDimensionError.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        dimensions: int,
        timeout: float = 10.0,
        path: str = "/api/embed",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout
        self.path = path
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def embed(self, text: str) -> list[float]:
        """Embed one text and validate its dimensionality."""
        client = self._get_client()
        try:
            response = await client.post(self.path, json={"model": self.model, "input": text or ""})
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise EmbeddingServiceError(f"Embeddings request timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise EmbeddingServiceError(
                f"Embeddings error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise EmbeddingServiceError(f"Embeddings request failed: {e}") from e

        vector = _extract_vector(payload)
        if len(vector) != self.dimensions:
            raise EmbeddingDimensionError(self.dimensions, len(vector))
        return vector

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "EmbeddingClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


def _extract_vector(payload) -> list[float]:
    """Accept both ``{"embeddings": [[...]]}`` and ``{"embedding": [...]}``."""
    if not isinstance(payload, dict):
        return []
    embeddings = payload.get("embeddings")
    if isinstance(embeddings, list) and embeddings and isinstance(embeddings[0], list):
        return [float(x) for x in embeddings[0]]
    single = payload.get("embedding")
    if isinstance(single, list):
        return [float(x) for x in single]
    return []


def client_from_settings() -> EmbeddingClient:
    return EmbeddingClient(
        base_url=settings.embedding_base_url,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
        timeout=settings.embedding_timeout_seconds,
        path=settings.embedding_path,
    )
