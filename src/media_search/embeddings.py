"""
Embedding provider for keyword similarity search.

Wraps the Google GenAI embedding API. Keywords and queries are embedded with
the same task type so that a keyword compared with itself scores 1.0, and every
vector is L2-normalized before it leaves the provider.
"""

from __future__ import annotations

import os
from typing import Any, Sequence

import numpy as np
from google.genai import Client as GenAIClient

from .errors import EmbeddingProviderFailure
from .logging import get_logger


_DEFAULT_MODEL = "gemini-embedding-001"
_DEFAULT_DIM = 384
_DEFAULT_BATCH_SIZE = 50
_TASK_TYPE = "SEMANTIC_SIMILARITY"

logger = get_logger(__name__)


def l2_normalize(vector: Sequence[float] | np.ndarray) -> list[float]:
    array = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(array))
    if norm == 0.0:
        return array.tolist()
    return (array / norm).tolist()


class EmbeddingProvider:
    """Generate unit-length text embeddings via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        batch_size: int | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("MEDIA_SEARCH_EMBEDDING_MODEL", _DEFAULT_MODEL)
        self.dim = dim or int(os.getenv("MEDIA_SEARCH_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.batch_size = batch_size or int(
            os.getenv("MEDIA_SEARCH_EMBEDDING_BATCH_SIZE", str(_DEFAULT_BATCH_SIZE))
        )

        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv("GOOGLE_API_KEY")
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            self._client = GenAIClient(api_key=resolved_key)

    def embed(self, text: str) -> list[float]:
        """Embed a single keyword or query."""
        return self._embed_batch([text])[0]

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in batches, preserving input order."""
        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            all_embeddings.extend(self._embed_batch(batch))
        return all_embeddings

    def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        try:
            result = self._client.models.embed_content(
                model=self.model,
                contents=batch,
                config={
                    "task_type": _TASK_TYPE,
                    "output_dimensionality": self.dim,
                },
            )
        except Exception as exc:
            logger.error(
                "Embedding request failed",
                extra={"keyword_count": len(batch), "error_message": str(exc)},
            )
            raise EmbeddingProviderFailure(f"Embedding request failed: {exc}") from exc

        embeddings = list(result.embeddings or [])
        if len(embeddings) != len(batch):
            raise EmbeddingProviderFailure(
                f"Embedding backend returned {len(embeddings)} vectors for "
                f"{len(batch)} inputs"
            )
        return [l2_normalize(emb.values) for emb in embeddings]
