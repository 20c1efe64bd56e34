"""
media-search - hybrid keyword search over ingested media.

Keywords extracted from video frames, audio transcripts, documents and images
are embedded once and stored in DuckDB. A query is matched both literally and
semantically, merged per file, and returned ranked with frame-level provenance
for videos.

Example usage:
    >>> from media_search import SearchService
    >>> with SearchService.from_db_path("media.duckdb") as service:
    ...     service.index_all()
    ...     results = service.search("river", top_k=5)
"""

from .errors import (
    DimensionMismatch,
    EmbeddingProviderFailure,
    InvalidQuery,
    MediaSearchError,
    StorageFailure,
)
from .search import MatchedKeyword, SearchResult, SimilarKeyword
from .search.frames import MatchedFrame
from .service import SearchService

__all__ = [
    # Service
    "SearchService",
    # Results
    "SearchResult",
    "MatchedKeyword",
    "MatchedFrame",
    "SimilarKeyword",
    # Errors
    "MediaSearchError",
    "InvalidQuery",
    "DimensionMismatch",
    "EmbeddingProviderFailure",
    "StorageFailure",
]
