from pydantic import BaseModel, Field, field_validator
from typing import TypeAlias, Literal

AssetType: TypeAlias = Literal["video", "audio", "image", "document", "text"]


class FrameKeywords(BaseModel):
    """Keywords detected in one video frame"""

    frame_index: int = Field(ge=0, description="Zero-based frame index")
    keywords: list[str] | str = Field(
        description="Keywords for the frame, as a list or a comma-joined string"
    )
    timestamp: float | None = Field(
        default=None, description="Frame position in seconds"
    )
    confidence: float | None = Field(default=None, description="Detector confidence")

    def keyword_field(self) -> str:
        if isinstance(self.keywords, str):
            return self.keywords.strip()
        return ", ".join(k.strip() for k in self.keywords if k.strip())


class AssetManifest(BaseModel):
    """An ingested file together with its extracted keywords"""

    filename: str = Field(min_length=1, description="Display name of the file")
    filepath: str = Field(min_length=1, description="Unique storage path")
    filetype: AssetType = Field(description="Asset type")
    size: int | None = Field(default=None, description="File size in bytes")
    mimetype: str | None = Field(default=None, description="MIME type")
    metadata: dict[str, str] = Field(
        default_factory=dict, description="Extracted metadata key/value pairs"
    )
    keywords: list[str] = Field(
        default_factory=list, description="File-level keywords"
    )
    frames: list[FrameKeywords] = Field(
        default_factory=list, description="Per-frame keywords (videos only)"
    )

    @field_validator("metadata", mode="before")
    @classmethod
    def _stringify_metadata(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items() if v is not None}
        return value

    def frame_keyword_fields(self) -> list[tuple[FrameKeywords, str]]:
        pairs: list[tuple[FrameKeywords, str]] = []
        for frame in self.frames:
            field = frame.keyword_field()
            if field:
                pairs.append((frame, field))
        return pairs

    def all_keywords(self) -> list[str]:
        """File keywords followed by every frame token."""
        tokens = list(self.keywords)
        for _, field in self.frame_keyword_fields():
            tokens.extend(part.strip() for part in field.split(","))
        return tokens


class IngestManifest(BaseModel):
    """A batch of assets to load"""

    assets: list[AssetManifest] = Field(description="Assets to ingest")
