"""Tests for merging exact, direct and semantic matches."""

from __future__ import annotations

import pytest

from media_search.search import (
    FileKeywordHit,
    HybridMatchMerger,
    KeywordMatch,
    SimilarKeyword,
    candidate_keywords,
)


def _hit(file_id: str, match: KeywordMatch) -> FileKeywordHit:
    return FileKeywordHit(file_id=file_id, match=match)


def test_match_scores_by_origin() -> None:
    assert KeywordMatch.exact("car").score == 1.0
    assert KeywordMatch.direct("racecar").score == 0.9
    assert KeywordMatch.semantic("auto", 0.42).score == 0.42
    assert KeywordMatch.semantic("odd", 1.0000001).score == 1.0
    assert KeywordMatch.semantic("anti", -0.2).score == 0.0


@pytest.mark.parametrize("order", ["semantic_first", "direct_first"])
def test_higher_semantic_score_beats_direct_match(order: str) -> None:
    semantic = [_hit("f1", KeywordMatch.semantic("racecar", 0.95))]
    direct = [_hit("f1", KeywordMatch.direct("racecar"))]
    groups = (semantic, direct) if order == "semantic_first" else (direct, semantic)

    merged = HybridMatchMerger().merge(*groups)

    (match,) = merged["f1"].ranked_matches()
    assert match.origin == "semantic"
    assert match.score == pytest.approx(0.95)


def test_direct_match_is_never_lowered_by_weaker_semantic() -> None:
    merged = HybridMatchMerger().merge(
        [_hit("f1", KeywordMatch.direct("racecar"))],
        [_hit("f1", KeywordMatch.semantic("racecar", 0.5))],
    )

    assert merged["f1"].rank_score == 0.9


def test_equal_scores_prefer_exact_origin() -> None:
    merged = HybridMatchMerger().merge(
        [_hit("f1", KeywordMatch.semantic("river", 1.0))],
        [_hit("f1", KeywordMatch.exact("river"))],
    )

    (match,) = merged["f1"].ranked_matches()
    assert match.origin == "exact"


def test_keywords_merge_case_insensitively() -> None:
    merged = HybridMatchMerger().merge(
        [_hit("f1", KeywordMatch.semantic("Sunset", 0.7))],
        [_hit("f1", KeywordMatch.exact("sunset"))],
    )

    assert merged["f1"].keywords() == ["sunset"]


def test_rank_score_is_max_not_sum() -> None:
    merged = HybridMatchMerger().merge(
        [
            _hit("many", KeywordMatch.semantic("a", 0.5)),
            _hit("many", KeywordMatch.semantic("b", 0.5)),
            _hit("many", KeywordMatch.semantic("c", 0.5)),
            _hit("one", KeywordMatch.semantic("d", 0.8)),
        ]
    )

    assert merged["many"].rank_score == 0.5
    assert merged["one"].rank_score == 0.8
    assert merged["many"].keywords() == ["a", "b", "c"]


def test_candidate_keywords_injects_literal_query() -> None:
    semantic = [SimilarKeyword(keyword="lake", similarity=0.8)]

    candidates = candidate_keywords(semantic, " pond ")

    assert [(c.keyword, c.origin) for c in candidates] == [
        ("lake", "semantic"),
        ("pond", "exact"),
    ]


def test_candidate_keywords_skips_literal_already_present() -> None:
    semantic = [SimilarKeyword(keyword="River", similarity=1.0)]

    candidates = candidate_keywords(semantic, "river")

    assert [(c.keyword, c.origin) for c in candidates] == [("River", "semantic")]
