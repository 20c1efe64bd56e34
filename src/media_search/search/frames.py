"""
Frame-level provenance for video keyword matches.

Frame rows store keywords as a single field that is either one keyword or a
comma-joined list (``"person, car, daytime"``), so locating a keyword inside a
frame is a list-membership test rather than an equality lookup.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..storage import FrameKeywordRow, StorageBackend

_COMMA_RE = re.compile(r"\s*,\s*")


@dataclass(frozen=True)
class MatchedFrame:
    """A video frame where one or more matched keywords were detected."""

    frame_index: int
    timestamp: float | None
    keywords: list[str] = field(default_factory=list)


def _normalize_field(value: str) -> str:
    return _COMMA_RE.sub(", ", value.strip()).casefold()


def field_contains_token(keyword_field: str, token: str) -> bool:
    """Return True when *token* is one of the entries of *keyword_field*.

    Matches when the field equals the token, starts with ``"token,"``,
    contains ``", token,"`` or ends with ``", token"``. Comparison ignores case
    and whitespace around commas; a partial token (``"ca"`` in ``"car"``) does
    not match.
    """
    normalized_field = _normalize_field(keyword_field)
    normalized_token = token.strip().casefold()
    if not normalized_token:
        return False
    return (
        normalized_field == normalized_token
        or normalized_field.startswith(f"{normalized_token},")
        or f", {normalized_token}," in normalized_field
        or normalized_field.endswith(f", {normalized_token}")
    )


def resolve_frames(
    rows: list[FrameKeywordRow],
    keywords: list[str],
) -> list[MatchedFrame]:
    """Group matching rows by frame index, one entry per frame."""
    if not keywords:
        return []

    timestamps: dict[int, float | None] = {}
    found: dict[int, list[str]] = {}
    for keyword in keywords:
        for row in rows:
            if not field_contains_token(row.keyword_field, keyword):
                continue
            if row.frame_index not in found:
                found[row.frame_index] = []
                timestamps[row.frame_index] = row.timestamp
            elif timestamps[row.frame_index] is None:
                timestamps[row.frame_index] = row.timestamp
            if keyword not in found[row.frame_index]:
                found[row.frame_index].append(keyword)

    return [
        MatchedFrame(
            frame_index=frame_index,
            timestamp=timestamps[frame_index],
            keywords=found[frame_index],
        )
        for frame_index in sorted(found)
    ]


class FrameProvenanceResolver:
    """Map matched keywords of a video back to the frames they came from."""

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage

    def resolve(self, *, file_id: str, keywords: list[str]) -> list[MatchedFrame]:
        if not keywords:
            return []
        rows = self.storage.get_frame_rows(file_id=file_id)
        return resolve_frames(rows, keywords)
