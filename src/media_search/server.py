"""
FastAPI server for keyword search over ingested media.

Routes validate their query parameters, delegate to a ``SearchService`` built
for the request and serialize results with camelCase keys.
"""

import asyncio
from typing import Any, Iterator

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .config import resolve_db_path
from .errors import (
    DimensionMismatch,
    EmbeddingProviderFailure,
    InvalidQuery,
    MediaSearchError,
    StorageFailure,
)
from .indexing import index_stats as compute_index_stats
from .logging import configure_logging, get_logger
from .search import SearchResult, SimilarKeyword
from .service import SearchService
from .storage import DuckDBStorage, StorageBackend

logger = get_logger(__name__)

app = FastAPI(title="media-search", description="Hybrid keyword search over media")


def get_service() -> Iterator[SearchService]:
    """Open a service on the configured database for one request."""
    try:
        service = SearchService.from_db_path()
    except ValueError as exc:
        raise EmbeddingProviderFailure(str(exc)) from exc
    try:
        yield service
    finally:
        service.close()


def get_storage() -> Iterator[StorageBackend]:
    """Open only the database, for routes that never embed text."""
    storage = DuckDBStorage(resolve_db_path())
    try:
        yield storage
    finally:
        storage.close()


_STATUS_CODES: tuple[tuple[type[MediaSearchError], int], ...] = (
    (InvalidQuery, 400),
    (EmbeddingProviderFailure, 503),
    (StorageFailure, 500),
    (DimensionMismatch, 500),
)


def _status_for(exc: MediaSearchError) -> int:
    for kind, status_code in _STATUS_CODES:
        if isinstance(exc, kind):
            return status_code
    return 500


@app.exception_handler(MediaSearchError)
async def handle_search_error(request: Request, exc: MediaSearchError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(
            "Request failed",
            extra={"error_message": f"{request.url.path}: {exc}"},
        )
    return JSONResponse({"error": str(exc)}, status_code=status_code)


def _parse_top_k(raw: str | None) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidQuery(f"topK must be an integer, got {raw!r}") from exc


def _parse_min_similarity(raw: str | None) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidQuery(f"minSimilarity must be a number, got {raw!r}") from exc


def serialize_result(result: SearchResult) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": result.file_id,
        "filename": result.filename,
        "filepath": result.filepath,
        "filetype": result.filetype,
        "size": result.size,
        "mimetype": result.mimetype,
        "createdAt": result.created_at,
        "score": result.score,
        "keywords": result.keywords,
        "metadata": result.metadata,
        "matchedKeywords": [
            {"keyword": m.keyword, "similarity": m.score, "origin": m.origin}
            for m in result.matched_keywords
        ],
    }
    if result.filetype == "audio":
        payload["transcription"] = result.transcription
        payload["language"] = result.language
        payload["duration"] = result.duration
    elif result.filetype in {"document", "text"}:
        payload["summary"] = result.summary
        payload["wordCount"] = result.word_count
    elif result.filetype == "video":
        payload["matchedFrames"] = [
            {
                "frameIndex": frame.frame_index,
                "timestamp": frame.timestamp,
                "keywords": frame.keywords,
            }
            for frame in result.matched_frames or []
        ]
    return payload


def serialize_keyword(match: SimilarKeyword) -> dict[str, Any]:
    return {"keyword": match.keyword, "similarity": match.similarity}


@app.get("/api/search")
async def search(
    q: str = "",
    topK: str | None = None,
    minSimilarity: str | None = None,
    type: str | None = None,
    service: SearchService = Depends(get_service),
):
    """Hybrid keyword search, optionally scoped to one asset type."""
    results = await asyncio.to_thread(
        service.search,
        q,
        top_k=_parse_top_k(topK),
        min_similarity=_parse_min_similarity(minSimilarity),
        asset_type=type or None,
    )
    return {
        "query": q,
        "count": len(results),
        "results": [serialize_result(result) for result in results],
    }


@app.get("/api/search/keywords")
async def similar_keywords(
    q: str = "",
    topK: str | None = None,
    minSimilarity: str | None = None,
    service: SearchService = Depends(get_service),
):
    """Stored keywords closest to the query, without file resolution."""
    matches = await asyncio.to_thread(
        service.find_similar_keywords,
        q,
        top_k=_parse_top_k(topK),
        min_similarity=_parse_min_similarity(minSimilarity),
    )
    return {
        "query": q,
        "keywords": [serialize_keyword(match) for match in matches],
    }


@app.post("/api/search/index")
async def index_keywords(service: SearchService = Depends(get_service)):
    """Embed every keyword that has no stored vector yet."""
    result = await asyncio.to_thread(service.index_all)
    return {
        "indexedCount": result.keywords_seen,
        "writtenCount": result.embeddings_written,
    }


@app.get("/api/search/stats")
async def index_stats(storage: StorageBackend = Depends(get_storage)):
    stats = await asyncio.to_thread(compute_index_stats, storage)
    return {
        "totalKeywords": stats.total_keywords,
        "indexedKeywords": stats.indexed_keywords,
    }


def run_server(host: str = "127.0.0.1", port: int = 8000):
    """Run the FastAPI server."""
    import uvicorn

    configure_logging()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
