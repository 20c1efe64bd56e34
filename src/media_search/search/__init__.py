"""Search components for keyword-indexed media."""

from .exact import ExactMatchFinder
from .frames import FrameProvenanceResolver, MatchedFrame, field_contains_token
from .keyword_store import KeywordEmbeddingStore, dedupe_keywords
from .merge import (
    DIRECT_SCORE,
    EXACT_SCORE,
    FileKeywordHit,
    FileMatches,
    HybridMatchMerger,
    KeywordMatch,
    candidate_keywords,
)
from .orchestrator import MatchedKeyword, SearchOrchestrator, SearchResult
from .similarity import SimilarKeyword, cosine_similarity, rank

__all__ = [
    "ExactMatchFinder",
    "FrameProvenanceResolver",
    "MatchedFrame",
    "field_contains_token",
    "KeywordEmbeddingStore",
    "dedupe_keywords",
    "DIRECT_SCORE",
    "EXACT_SCORE",
    "FileKeywordHit",
    "FileMatches",
    "HybridMatchMerger",
    "KeywordMatch",
    "candidate_keywords",
    "MatchedKeyword",
    "SearchOrchestrator",
    "SearchResult",
    "SimilarKeyword",
    "cosine_similarity",
    "rank",
]
