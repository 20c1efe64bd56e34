"""Indexing and ingestion components for media-search."""

from .ingest import AssetIngestor, IngestedAsset, load_manifest
from .pipeline import (
    BackgroundIndexer,
    IndexingResult,
    IndexStats,
    KeywordIndexer,
    index_stats,
)

__all__ = [
    "AssetIngestor",
    "IngestedAsset",
    "load_manifest",
    "BackgroundIndexer",
    "IndexingResult",
    "IndexStats",
    "KeywordIndexer",
    "index_stats",
]
