"""
Merging of exact, direct and semantic keyword matches into per-file scores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, TypeAlias

from .similarity import SimilarKeyword

MatchOrigin: TypeAlias = Literal["exact", "direct", "semantic"]

EXACT_SCORE = 1.0
DIRECT_SCORE = 0.9

# Used only to break equal scores: a literal hit beats a substring hit, which
# beats an embedding hit.
_ORIGIN_STRENGTH: dict[str, int] = {"exact": 2, "direct": 1, "semantic": 0}


@dataclass(frozen=True)
class KeywordMatch:
    """A keyword together with how it was matched."""

    keyword: str
    origin: MatchOrigin
    similarity: float | None = None

    @classmethod
    def exact(cls, keyword: str) -> KeywordMatch:
        return cls(keyword=keyword, origin="exact")

    @classmethod
    def direct(cls, keyword: str) -> KeywordMatch:
        return cls(keyword=keyword, origin="direct")

    @classmethod
    def semantic(cls, keyword: str, similarity: float) -> KeywordMatch:
        return cls(keyword=keyword, origin="semantic", similarity=similarity)

    @property
    def score(self) -> float:
        if self.origin == "exact":
            return EXACT_SCORE
        if self.origin == "direct":
            return DIRECT_SCORE
        return min(max(float(self.similarity or 0.0), 0.0), 1.0)

    def outranks(self, other: KeywordMatch) -> bool:
        return (self.score, _ORIGIN_STRENGTH[self.origin]) > (
            other.score,
            _ORIGIN_STRENGTH[other.origin],
        )

    def with_keyword(self, keyword: str) -> KeywordMatch:
        return KeywordMatch(keyword=keyword, origin=self.origin, similarity=self.similarity)


@dataclass(frozen=True)
class FileKeywordHit:
    """A keyword match that reached a specific file."""

    file_id: str
    match: KeywordMatch


@dataclass
class FileMatches:
    """Best match per keyword for one file."""

    file_id: str
    by_keyword: dict[str, KeywordMatch] = field(default_factory=dict)

    def add(self, match: KeywordMatch) -> None:
        key = match.keyword.casefold()
        current = self.by_keyword.get(key)
        if current is None or match.outranks(current):
            self.by_keyword[key] = match

    @property
    def rank_score(self) -> float:
        """Single highest keyword score; many weak matches never add up."""
        if not self.by_keyword:
            return 0.0
        return max(match.score for match in self.by_keyword.values())

    def ranked_matches(self) -> list[KeywordMatch]:
        return sorted(
            self.by_keyword.values(),
            key=lambda match: (
                -match.score,
                -_ORIGIN_STRENGTH[match.origin],
                match.keyword.casefold(),
            ),
        )

    def keywords(self) -> list[str]:
        return [match.keyword for match in self.ranked_matches()]


def candidate_keywords(
    semantic: list[SimilarKeyword],
    query: str,
) -> list[KeywordMatch]:
    """Semantic candidates plus the literal query, unless already among them."""
    candidates = [
        KeywordMatch.semantic(item.keyword, item.similarity) for item in semantic
    ]
    literal = query.strip()
    if literal and all(c.keyword.casefold() != literal.casefold() for c in candidates):
        candidates.append(KeywordMatch.exact(literal))
    return candidates


class HybridMatchMerger:
    """Collapse hits from every match path into one keyword → score map per file."""

    def merge(self, *hit_groups: Iterable[FileKeywordHit]) -> dict[str, FileMatches]:
        merged: dict[str, FileMatches] = {}
        for hits in hit_groups:
            for hit in hits:
                entry = merged.get(hit.file_id)
                if entry is None:
                    entry = FileMatches(file_id=hit.file_id)
                    merged[hit.file_id] = entry
                entry.add(hit.match)
        return merged
