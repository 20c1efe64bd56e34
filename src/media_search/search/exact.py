"""
Case-insensitive substring matching over file keywords and frame keyword fields.
"""

from __future__ import annotations

from ..storage import StorageBackend, split_keyword_field
from .merge import FileKeywordHit, KeywordMatch


class ExactMatchFinder:
    """Find keywords that literally contain the query text."""

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    def find(self, query: str, *, asset_type: str | None = None) -> list[FileKeywordHit]:
        term = query.strip().lower()
        if not term:
            return []

        hits: list[FileKeywordHit] = []
        for row in self.storage.search_file_keywords(substring=term, asset_type=asset_type):
            hits.append(
                FileKeywordHit(file_id=row.file_id, match=self._classify(row.keyword, term))
            )

        # A frame field can hold unrelated keywords; keep only the tokens that
        # contain the term themselves.
        for frame in self.storage.search_frame_keywords(
            substring=term, asset_type=asset_type
        ):
            for token in split_keyword_field(frame.keyword_field):
                if term in token.lower():
                    hits.append(
                        FileKeywordHit(
                            file_id=frame.file_id,
                            match=self._classify(token, term),
                        )
                    )
        return hits

    @staticmethod
    def _classify(keyword: str, term: str) -> KeywordMatch:
        if keyword.strip().lower() == term:
            return KeywordMatch.exact(keyword)
        return KeywordMatch.direct(keyword)
