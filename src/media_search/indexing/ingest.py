"""
Load assets and their extracted keywords into storage.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from ..logging import get_logger
from ..models import AssetManifest, IngestManifest
from ..storage import FrameKeywordRow, StorageBackend

logger = get_logger(__name__)


@dataclass(frozen=True)
class IngestedAsset:
    """Result of ingesting one asset."""

    file_id: str
    filepath: str
    keywords_added: int
    frames_written: int
    keywords: list[str]


def load_manifest(path: str) -> IngestManifest:
    """Read a JSON manifest: either ``{"assets": [...]}`` or a bare list."""
    manifest_path = Path(path)
    if not manifest_path.is_file():
        raise ValueError(f"No such manifest: {path}")
    try:
        payload = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Manifest {path} is not valid JSON: {exc}") from exc
    if isinstance(payload, list):
        payload = {"assets": payload}
    try:
        return IngestManifest.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid manifest {path}: {exc}") from exc


class AssetIngestor:
    """Write file rows, metadata, file keywords and frame keywords."""

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    def ingest(self, asset: AssetManifest) -> IngestedAsset:
        file_id = self.storage.upsert_file(
            filename=asset.filename,
            filepath=asset.filepath,
            filetype=asset.filetype,
            size=asset.size,
            mimetype=asset.mimetype,
        )
        for key, value in asset.metadata.items():
            self.storage.set_metadata(file_id=file_id, key=key, value=value)

        added = self.storage.add_file_keywords(file_id=file_id, keywords=asset.keywords)

        frames_written = 0
        frame_fields = asset.frame_keyword_fields()
        if frame_fields:
            # Frames are replaced as a whole so re-ingesting a video is idempotent.
            self.storage.delete_frame_keywords(file_id=file_id)
            frames_written = self.storage.add_frame_keywords(
                rows=[
                    FrameKeywordRow(
                        file_id=file_id,
                        frame_index=frame.frame_index,
                        keyword_field=field,
                        timestamp=frame.timestamp,
                        confidence=frame.confidence,
                    )
                    for frame, field in frame_fields
                ]
            )

        logger.info(
            "Ingested asset",
            extra={
                "asset_type": asset.filetype,
                "keyword_count": added,
                "written_count": frames_written,
            },
        )
        return IngestedAsset(
            file_id=file_id,
            filepath=asset.filepath,
            keywords_added=added,
            frames_written=frames_written,
            keywords=asset.all_keywords(),
        )

    def ingest_many(self, assets: list[AssetManifest]) -> list[IngestedAsset]:
        return [self.ingest(asset) for asset in assets]
