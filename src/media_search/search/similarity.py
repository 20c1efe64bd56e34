"""
Cosine similarity and top-K selection over stored keyword vectors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from ..errors import DimensionMismatch
from ..storage import KeywordEmbedding


@dataclass(frozen=True)
class SimilarKeyword:
    """A stored keyword scored against a query vector."""

    keyword: str
    similarity: float


def _as_vector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=np.float64).reshape(-1)


def cosine_similarity(
    a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray
) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``; zero-norm vectors score 0.0."""
    va = _as_vector(a)
    vb = _as_vector(b)
    if va.shape != vb.shape:
        raise DimensionMismatch(
            f"Cannot compare vectors of length {va.size} and {vb.size}"
        )
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(va @ vb) / norm


def similarity_scores(
    query_vector: Sequence[float] | np.ndarray, matrix: np.ndarray
) -> np.ndarray:
    """Cosine of ``query_vector`` against each row of ``matrix``.

    Rows (or a query) with zero norm score 0.0.
    """
    query = _as_vector(query_vector)
    if matrix.ndim != 2 or matrix.shape[1] != query.size:
        raise DimensionMismatch(
            f"Cannot compare vectors of length {query.size} and "
            f"{matrix.shape[-1] if matrix.ndim else 0}"
        )
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    scores = np.zeros(matrix.shape[0], dtype=np.float64)
    np.divide(matrix @ query, norms, out=scores, where=norms > 0)
    return scores


def rank(
    query_vector: Sequence[float] | np.ndarray,
    candidates: Iterable[KeywordEmbedding],
    *,
    top_k: int,
    min_similarity: float,
) -> list[SimilarKeyword]:
    """Score every candidate, drop those below the threshold and keep the best."""
    items = list(candidates)
    if not items or top_k <= 0:
        return []

    query = _as_vector(query_vector)
    vectors = [_as_vector(item.vector) for item in items]
    for item, vector in zip(items, vectors):
        if vector.size != query.size:
            raise DimensionMismatch(
                f"Stored vector for {item.keyword!r} has length {vector.size}, "
                f"query has length {query.size}"
            )

    scores = similarity_scores(query, np.vstack(vectors))
    kept = np.flatnonzero(scores >= min_similarity)
    ordered = sorted(kept, key=lambda i: (-scores[i], items[i].keyword))
    return [
        SimilarKeyword(keyword=items[i].keyword, similarity=float(scores[i]))
        for i in ordered[:top_k]
    ]
