"""Tests for cosine similarity and top-K ranking."""

from __future__ import annotations

import numpy as np
import pytest

from media_search.errors import DimensionMismatch
from media_search.search import cosine_similarity, rank
from media_search.search.similarity import similarity_scores
from media_search.storage import KeywordEmbedding


def _emb(keyword: str, vector: list[float]) -> KeywordEmbedding:
    return KeywordEmbedding(keyword=keyword, vector=vector)


def test_cosine_identity_and_symmetry() -> None:
    a = [0.3, -1.2, 4.0]
    b = [1.0, 0.5, -0.25]

    assert cosine_similarity(a, a) == pytest.approx(1.0)
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


def test_cosine_orthogonal_and_opposite() -> None:
    assert cosine_similarity([1.0, 0.0], [0.0, 2.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-3.0, 0.0]) == pytest.approx(-1.0)


def test_cosine_zero_vector_scores_zero() -> None:
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


def test_cosine_rejects_unequal_lengths() -> None:
    with pytest.raises(DimensionMismatch):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


def test_rank_applies_threshold_order_and_limit() -> None:
    query = [1.0, 0.0]
    candidates = [
        _emb("far", [0.0, 1.0]),
        _emb("close", [0.9, 0.1]),
        _emb("same", [2.0, 0.0]),
        _emb("medium", [0.6, 0.8]),
    ]

    ranked = rank(query, candidates, top_k=2, min_similarity=0.3)

    assert [item.keyword for item in ranked] == ["same", "close"]
    assert ranked[0].similarity == pytest.approx(1.0)

    everything = rank(query, candidates, top_k=10, min_similarity=0.3)
    assert [item.keyword for item in everything] == ["same", "close", "medium"]
    assert all(0.3 <= item.similarity <= 1.0 for item in everything)


def test_rank_breaks_ties_by_keyword() -> None:
    candidates = [_emb("beta", [1.0, 0.0]), _emb("alpha", [1.0, 0.0])]

    ranked = rank([1.0, 0.0], candidates, top_k=5, min_similarity=0.0)

    assert [item.keyword for item in ranked] == ["alpha", "beta"]


def test_rank_empty_store_returns_nothing() -> None:
    assert rank([1.0, 0.0], [], top_k=5, min_similarity=0.0) == []


def test_rank_rejects_stored_vector_of_another_dimension() -> None:
    candidates = [_emb("river", [1.0, 0.0]), _emb("legacy", [1.0, 0.0, 0.0])]

    with pytest.raises(DimensionMismatch, match="legacy"):
        rank([1.0, 0.0], candidates, top_k=5, min_similarity=0.0)


def test_rank_accepts_float32_rows_from_storage() -> None:
    stored = np.array([0.6, 0.8], dtype="<f4")

    ranked = rank([0.6, 0.8], [_emb("lake", stored)], top_k=1, min_similarity=0.9)

    assert ranked[0].keyword == "lake"
    assert ranked[0].similarity == pytest.approx(1.0, abs=1e-6)
    assert isinstance(ranked[0].similarity, float)


def test_similarity_scores_zero_rows_score_zero() -> None:
    matrix = np.array([[0.0, 0.0], [3.0, 4.0]])

    scores = similarity_scores([3.0, 4.0], matrix)

    assert scores.tolist() == pytest.approx([0.0, 1.0])
    assert similarity_scores([0.0, 0.0], matrix).tolist() == [0.0, 0.0]
