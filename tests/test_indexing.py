"""Tests for keyword indexing, background indexing and asset ingestion."""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future
from pathlib import Path

import pytest

from conftest import FakeGenAIClient, add_file
from media_search.errors import EmbeddingProviderFailure
from media_search.indexing import (
    AssetIngestor,
    BackgroundIndexer,
    KeywordIndexer,
    load_manifest,
)
from media_search.models import AssetManifest
from media_search.service import SearchService
from media_search.storage import DuckDBStorage, FrameKeywordRow


def _video_manifest() -> AssetManifest:
    return AssetManifest.model_validate(
        {
            "filename": "walk.mp4",
            "filepath": "/media/walk.mp4",
            "filetype": "video",
            "size": 2048,
            "mimetype": "video/mp4",
            "metadata": {"duration": 30, "fps": "25"},
            "keywords": ["outdoor"],
            "frames": [
                {"frame_index": 3, "keywords": ["dog", "park", "sunny"], "timestamp": 12.5},
                {"frame_index": 4, "keywords": "dog, ball", "confidence": 0.7},
                {"frame_index": 5, "keywords": []},
            ],
        }
    )


def test_index_all_covers_file_and_frame_keywords(
    service: SearchService, storage: DuckDBStorage
) -> None:
    add_file(storage, "a.png", keywords=["dog", "tree"])
    video_id = add_file(storage, "clip.mp4", filetype="video")
    storage.add_frame_keywords(
        rows=[FrameKeywordRow(file_id=video_id, frame_index=0, keyword_field="dog, park")]
    )

    first = service.index_all()
    second = service.index_all()

    assert (first.keywords_seen, first.embeddings_written) == (3, 3)
    assert (second.keywords_seen, second.embeddings_written) == (3, 0)


def test_stats_track_progress(service: SearchService, storage: DuckDBStorage) -> None:
    add_file(storage, "a.png", keywords=["dog", "tree"])

    before = service.stats()
    service.index_all()
    after = service.stats()

    assert (before.total_keywords, before.indexed_keywords) == (2, 0)
    assert (after.total_keywords, after.indexed_keywords) == (2, 2)


def test_background_indexer_reports_written_count(service: SearchService) -> None:
    background = BackgroundIndexer(service.indexer)
    try:
        future = background.submit(["kite", "beach", "kite"])
        assert isinstance(future, Future)
        assert future.result(timeout=5) == 2
        assert background.wait(timeout=5) is True
    finally:
        background.shutdown()

    assert service.keyword_store.count() == 2


def test_background_failures_stay_on_the_future(
    service: SearchService, fake_client: FakeGenAIClient, caplog
) -> None:
    fake_client.models.fail = RuntimeError("backend down")
    background = BackgroundIndexer(service.indexer)
    try:
        with caplog.at_level(logging.ERROR):
            future = background.submit(["kite"])
            assert background.wait(timeout=5) is True
        assert isinstance(future.exception(), EmbeddingProviderFailure)
    finally:
        background.shutdown()

    assert "Background keyword indexing failed" in caplog.text


def test_ingest_writes_file_metadata_keywords_and_frames(storage: DuckDBStorage) -> None:
    ingested = AssetIngestor(storage).ingest(_video_manifest())

    assert ingested.file_id == DuckDBStorage.make_file_id("/media/walk.mp4")
    assert ingested.keywords_added == 1
    assert ingested.frames_written == 2
    assert ingested.keywords == ["outdoor", "dog", "park", "sunny", "dog", "ball"]

    record = storage.get_file(file_id=ingested.file_id)
    assert record is not None and record.filetype == "video"
    assert storage.get_metadata(file_id=ingested.file_id) == {
        "duration": "30",
        "fps": "25",
    }
    rows = storage.get_frame_rows(file_id=ingested.file_id)
    assert [(r.frame_index, r.keyword_field) for r in rows] == [
        (3, "dog, park, sunny"),
        (4, "dog, ball"),
    ]
    assert rows[1].confidence == 0.7


def test_reingesting_replaces_frames(storage: DuckDBStorage) -> None:
    ingestor = AssetIngestor(storage)
    first = ingestor.ingest(_video_manifest())
    second = ingestor.ingest(_video_manifest())

    assert second.keywords_added == 0
    assert len(storage.get_frame_rows(file_id=first.file_id)) == 2


def test_service_ingest_indexes_synchronously(service: SearchService) -> None:
    ingested, written = service.ingest([_video_manifest()])

    assert len(ingested) == 1
    assert written == 5
    assert [r.filename for r in service.search("ball")] == ["walk.mp4"]


def test_service_ingest_in_background(service: SearchService) -> None:
    _, pending = service.ingest([_video_manifest()], index="background")

    assert isinstance(pending, Future)
    assert pending.result(timeout=5) == 5
    assert service.stats().indexed_keywords == 5


def test_service_ingest_can_skip_indexing(service: SearchService) -> None:
    _, written = service.ingest([_video_manifest()], index="none")

    assert written is None
    assert service.stats().indexed_keywords == 0


def test_load_manifest_accepts_a_bare_list(tmp_path: Path) -> None:
    path = tmp_path / "assets.json"
    path.write_text(
        json.dumps(
            [
                {
                    "filename": "talk.mp3",
                    "filepath": "/media/talk.mp3",
                    "filetype": "audio",
                    "keywords": ["interview"],
                }
            ]
        )
    )

    manifest = load_manifest(str(path))

    assert [asset.filename for asset in manifest.assets] == ["talk.mp3"]


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps({"assets": [{"filename": "x", "filepath": "/x", "filetype": "movie"}]}),
    ],
)
def test_load_manifest_rejects_bad_input(tmp_path: Path, content: str) -> None:
    path = tmp_path / "bad.json"
    path.write_text(content)

    with pytest.raises(ValueError):
        load_manifest(str(path))


def test_load_manifest_requires_existing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="No such manifest"):
        load_manifest(str(tmp_path / "missing.json"))


def test_keyword_indexer_indexes_explicit_batches(
    storage: DuckDBStorage, service: SearchService
) -> None:
    indexer = KeywordIndexer(storage, service.keyword_store)

    assert indexer.index_keywords(["a", "b", "a"]) == 2


def test_null_metadata_values_are_dropped(service: SearchService) -> None:
    manifest = AssetManifest.model_validate(
        {
            "filename": "memo.mp3",
            "filepath": "/media/memo.mp3",
            "filetype": "audio",
            "keywords": ["memo"],
            "metadata": {"transcription": None, "duration": None, "language": "en"},
        }
    )

    ingested, _ = service.ingest([manifest], index="none")
    (result,) = service.search("memo")

    assert service.storage.get_metadata(file_id=ingested[0].file_id) == {"language": "en"}
    assert result.transcription is None
    assert result.duration is None
    assert result.language == "en"
