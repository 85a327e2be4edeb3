"""Embedding generation for queries and knowledge chunks.

Supports OpenAI (text-embedding-3-small) and Google (text-embedding-004) models.
"""

import asyncio
import logging
from typing import Any

from copilot.core.config import DEFAULT_EMBEDDING_DIMENSIONS, get_settings
from copilot.core.exceptions import ConfigurationError, EmbeddingError
from copilot.observability import track_external

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 8000
BATCH_SIZE = 100

SUPPORTED_PROVIDERS = ("openai", "google")
DEFAULT_MODELS = {
    "openai": "text-embedding-3-small",
    "google": "text-embedding-004",
}


class EmbeddingClient:
    """Turn text into fixed-dimension vectors.

    Construction fails fast when the provider is unknown or has no API key.
    """

    def __init__(
        self,
        provider: str = "openai",
        api_key: str | None = None,
        model: str | None = None,
        dimensions: int | None = None,
        timeout_seconds: float = 10.0,
        client: Any = None,
    ):
        if provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported embedding provider: {provider}",
                details={"provider": provider},
            )
        if not api_key and client is None:
            raise ConfigurationError(
                f"Missing API key for embedding provider '{provider}'",
                details={"provider": provider},
            )

        self.provider = provider
        self.api_key = api_key
        self.model = model or DEFAULT_MODELS[provider]
        self.dimensions = dimensions or DEFAULT_EMBEDDING_DIMENSIONS[provider]
        self.timeout_seconds = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(cls) -> "EmbeddingClient":
        settings = get_settings()
        return cls(
            provider=settings.embedding_provider,
            api_key=settings.embedding_api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            timeout_seconds=settings.embedding_timeout_seconds,
        )

    def _openai_client(self):
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def _embed_openai(self, texts: list[str]) -> list[list[float]]:
        client = self._openai_client()
        embeddings: list[list[float]] = []

        for i in range(0, len(texts), BATCH_SIZE):
            batch = texts[i : i + BATCH_SIZE]
            response = await client.embeddings.create(model=self.model, input=batch)
            embeddings.extend(list(item.embedding) for item in response.data)

        return embeddings

    async def _embed_google(self, texts: list[str], task_type: str) -> list[list[float]]:
        import google.generativeai as genai

        genai.configure(api_key=self.api_key)
        embeddings: list[list[float]] = []

        # Process in batches to avoid rate limits
        for i in range(0, len(texts), BATCH_SIZE):
            batch = texts[i : i + BATCH_SIZE]
            result = await asyncio.to_thread(
                genai.embed_content,
                model=f"models/{self.model}",
                content=batch,
                task_type=task_type,
            )
            embeddings.extend(result["embedding"])

        return embeddings

    async def embed_many(
        self,
        texts: list[str],
        task_type: str = "retrieval_document",
    ) -> list[list[float]]:
        """Embed several texts, preserving order.

        Raises:
            EmbeddingError: On upstream failure, timeout or wrong dimensionality.
        """
        if not texts:
            return []

        inputs = [(text or "")[:MAX_INPUT_CHARS] for text in texts]

        try:
            async with track_external(self.provider, "embedding"):
                if self.provider == "google":
                    call = self._embed_google(inputs, task_type)
                else:
                    call = self._embed_openai(inputs)
                vectors = await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                f"Embedding request timed out after {self.timeout_seconds}s",
                details={"provider": self.provider},
            ) from e
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(
                f"Embedding request failed: {e}",
                details={"provider": self.provider},
            ) from e

        if len(vectors) != len(inputs):
            raise EmbeddingError(
                f"Expected {len(inputs)} embeddings, got {len(vectors)}",
                details={"provider": self.provider},
            )
        for vector in vectors:
            if len(vector) != self.dimensions:
                raise EmbeddingError(
                    f"Embedding has {len(vector)} dimensions, expected {self.dimensions}",
                    details={"provider": self.provider, "model": self.model},
                )

        return [[float(x) for x in vector] for vector in vectors]

    async def embed(self, text: str) -> list[float]:
        """Embed a single query string."""
        vectors = await self.embed_many([text], task_type="retrieval_query")
        return vectors[0]
