"""
Hybrid keyword search: semantic candidates, literal and substring matches,
per-file merge and type-specific enrichment.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from ..config import ASSET_TYPES, SearchSettings
from ..errors import EmbeddingProviderFailure, InvalidQuery, StorageFailure
from ..logging import get_logger
from ..storage import FileRecord, StorageBackend
from ..timeout import DeadlineExceeded, run_with_deadline
from .exact import ExactMatchFinder
from .frames import FrameProvenanceResolver, MatchedFrame, field_contains_token
from .keyword_store import KeywordEmbeddingStore
from .merge import (
    FileKeywordHit,
    FileMatches,
    HybridMatchMerger,
    KeywordMatch,
    MatchOrigin,
    candidate_keywords,
)
from .similarity import SimilarKeyword, rank

logger = get_logger(__name__)


@dataclass(frozen=True)
class MatchedKeyword:
    """A keyword that matched a file and its resolved score."""

    keyword: str
    score: float
    origin: MatchOrigin


@dataclass(frozen=True)
class SearchResult:
    """A ranked file with its matched keywords and type-specific details."""

    file_id: str
    filename: str
    filepath: str
    filetype: str
    score: float
    matched_keywords: list[MatchedKeyword]
    keywords: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    size: int | None = None
    mimetype: str | None = None
    created_at: str | None = None
    matched_frames: list[MatchedFrame] | None = None
    transcription: str | None = None
    language: str | None = None
    duration: float | None = None
    summary: str | None = None
    word_count: int | None = None


def _parse_float(value: str | None) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _parse_int(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except ValueError:
        return None


class SearchOrchestrator:
    """Run one query through every match path and return ranked files."""

    def __init__(
        self,
        storage: StorageBackend,
        keyword_store: KeywordEmbeddingStore,
        *,
        settings: SearchSettings | None = None,
        exact_finder: ExactMatchFinder | None = None,
        merger: HybridMatchMerger | None = None,
        frame_resolver: FrameProvenanceResolver | None = None,
    ) -> None:
        self.storage = storage
        self.keyword_store = keyword_store
        self.settings = settings or SearchSettings()
        self.exact_finder = exact_finder or ExactMatchFinder(storage)
        self.merger = merger or HybridMatchMerger()
        self.frame_resolver = frame_resolver or FrameProvenanceResolver(storage)

    def find_similar_keywords(
        self,
        query: str,
        top_k: int | None = None,
        min_similarity: float | None = None,
    ) -> list[SimilarKeyword]:
        """Rank stored keywords against the query without resolving files."""
        text, limit, threshold = self._validate(query, top_k, min_similarity)
        return self._semantic_candidates(text, limit=limit, min_similarity=threshold)

    def semantic_search(
        self,
        query: str,
        top_k: int | None = None,
        min_similarity: float | None = None,
        asset_type: str | None = None,
    ) -> list[SearchResult]:
        text, limit, threshold = self._validate(query, top_k, min_similarity)
        if asset_type is not None and asset_type not in ASSET_TYPES:
            allowed = ", ".join(sorted(ASSET_TYPES))
            raise InvalidQuery(f"Unknown asset type {asset_type!r}. Allowed: {allowed}")

        started = time.perf_counter()
        semantic = self._semantic_candidates(
            text,
            limit=limit * self.settings.semantic_overfetch,
            min_similarity=threshold,
        )
        direct_hits = self.exact_finder.find(text, asset_type=asset_type)
        candidate_hits = self._resolve_candidates(
            candidate_keywords(semantic, text),
            asset_type=asset_type,
        )
        merged = self.merger.merge(candidate_hits, direct_hits)
        results = self._rank_files(merged, limit=limit)

        logger.info(
            "Search complete",
            extra={
                "query": text,
                "asset_type": asset_type,
                "top_k": limit,
                "min_similarity": threshold,
                "semantic_count": len(semantic),
                "direct_count": len(direct_hits),
                "file_count": len(merged),
                "result_count": len(results),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return results

    def _validate(
        self,
        query: str,
        top_k: int | None,
        min_similarity: float | None,
    ) -> tuple[str, int, float]:
        if not isinstance(query, str) or not query.strip():
            raise InvalidQuery("Query must be a non-empty string.")
        limit = self.settings.default_top_k if top_k is None else top_k
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise InvalidQuery(f"topK must be an integer, got {limit!r}")
        if not 1 <= limit <= self.settings.max_top_k:
            raise InvalidQuery(
                f"topK must be between 1 and {self.settings.max_top_k}, got {limit}"
            )
        try:
            threshold = (
                self.settings.default_min_similarity
                if min_similarity is None
                else float(min_similarity)
            )
        except (TypeError, ValueError) as exc:
            raise InvalidQuery(
                f"minSimilarity must be a number, got {min_similarity!r}"
            ) from exc
        if not 0.0 <= threshold <= 1.0:
            raise InvalidQuery(
                f"minSimilarity must be between 0 and 1, got {min_similarity!r}"
            )
        return query.strip(), limit, threshold

    def _semantic_candidates(
        self,
        query: str,
        *,
        limit: int,
        min_similarity: float,
    ) -> list[SimilarKeyword]:
        provider = self.keyword_store.embedding_provider
        try:
            query_vector = run_with_deadline(
                "query embedding",
                lambda: provider.embed(query),
                self.settings.embed_timeout_s,
            )
        except DeadlineExceeded as exc:
            raise EmbeddingProviderFailure(str(exc)) from exc

        try:
            stored = run_with_deadline(
                "keyword embedding scan",
                self.keyword_store.get_all,
                self.settings.storage_timeout_s,
            )
        except DeadlineExceeded as exc:
            raise StorageFailure(str(exc)) from exc

        if not stored:
            logger.info("Keyword embedding store is empty", extra={"query": query})
            return []
        return rank(query_vector, stored, top_k=limit, min_similarity=min_similarity)

    def _resolve_candidates(
        self,
        candidates: list[KeywordMatch],
        *,
        asset_type: str | None,
    ) -> list[FileKeywordHit]:
        """Attach semantic and literal candidates to the files that carry them."""
        if not candidates:
            return []

        by_key: dict[str, KeywordMatch] = {}
        for candidate in candidates:
            key = candidate.keyword.lower()
            current = by_key.get(key)
            if current is None or candidate.outranks(current):
                by_key[key] = candidate

        hits: list[FileKeywordHit] = []
        for row in self.storage.find_file_keywords_equal(
            keywords=list(by_key), asset_type=asset_type
        ):
            candidate = by_key.get(row.keyword.lower())
            if candidate is not None:
                hits.append(
                    FileKeywordHit(
                        file_id=row.file_id, match=candidate.with_keyword(row.keyword)
                    )
                )

        for frame in self.storage.list_frame_rows(asset_type=asset_type):
            for candidate in by_key.values():
                if field_contains_token(frame.keyword_field, candidate.keyword):
                    hits.append(FileKeywordHit(file_id=frame.file_id, match=candidate))
        return hits

    def _rank_files(
        self,
        merged: dict[str, FileMatches],
        *,
        limit: int,
    ) -> list[SearchResult]:
        ranked: list[tuple[FileRecord, FileMatches]] = []
        for file_id, matches in merged.items():
            file = self.storage.get_file(file_id=file_id)
            if file is None:
                logger.warning(
                    "Keyword references a missing file",
                    extra={"error_message": f"file_id={file_id}"},
                )
                continue
            ranked.append((file, matches))

        ranked.sort(key=lambda item: (-item[1].rank_score, item[0].filename, item[0].id))
        return [self._build_result(file, matches) for file, matches in ranked[:limit]]

    def _build_result(self, file: FileRecord, matches: FileMatches) -> SearchResult:
        ranked_matches = matches.ranked_matches()
        metadata = self.storage.get_metadata(file_id=file.id)
        matched_frames: list[MatchedFrame] | None = None
        if file.filetype == "video":
            matched_frames = self.frame_resolver.resolve(
                file_id=file.id,
                keywords=[match.keyword for match in ranked_matches],
            )
        is_audio = file.filetype == "audio"
        is_document = file.filetype in {"document", "text"}

        return SearchResult(
            file_id=file.id,
            filename=file.filename,
            filepath=file.filepath,
            filetype=file.filetype,
            score=matches.rank_score,
            matched_keywords=[
                MatchedKeyword(keyword=m.keyword, score=m.score, origin=m.origin)
                for m in ranked_matches
            ],
            keywords=self.storage.get_file_keywords(file_id=file.id),
            metadata=metadata,
            size=file.size,
            mimetype=file.mimetype,
            created_at=file.created_at,
            matched_frames=matched_frames,
            transcription=metadata.get("transcription") if is_audio else None,
            language=metadata.get("language") if is_audio else None,
            duration=_parse_float(metadata.get("duration")) if is_audio else None,
            summary=metadata.get("summary") if is_document else None,
            word_count=_parse_int(metadata.get("word_count")) if is_document else None,
        )
