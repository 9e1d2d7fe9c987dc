"""Pydantic models for the persisted suggestion log."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from coden.ledger.models import TrackedRegion


class SuggestionRange(BaseModel):
    start_line: int = Field(default=0, ge=0)
    start_char: int = Field(default=0, ge=0)
    end_line: int = Field(default=0, ge=0)
    end_char: int = Field(default=0, ge=0)


class SuggestionContext(BaseModel):
    before: str = ""
    after: str = ""


class SuggestionMetadata(BaseModel):
    line_count: int = Field(default=1, ge=1)
    char_count: int = Field(default=0, ge=0)
    estimated_tokens: int = Field(default=0, ge=0)
    probable_model: str = "unknown"
    inserted_at: float
    tracking_tool_version: str


class SuggestionEntry(BaseModel):
    """One inserted fragment, as written to ``suggestions.json``."""

    id: str = Field(min_length=1)
    timestamp: str
    file: str
    language: str = "plaintext"
    range: SuggestionRange = Field(default_factory=SuggestionRange)
    inserted_text: str
    context: SuggestionContext = Field(default_factory=SuggestionContext)
    metadata: SuggestionMetadata

    @classmethod
    def from_region(
        cls,
        region: TrackedRegion,
        context: SuggestionContext,
        metadata: SuggestionMetadata,
    ) -> SuggestionEntry:
        return cls(
            id=region.id,
            timestamp=datetime.fromtimestamp(region.timestamp, tz=timezone.utc).isoformat(),
            file=region.file,
            language=region.language,
            range=SuggestionRange(
                start_line=region.start_line,
                start_char=region.start_char,
                end_line=region.end_line,
                end_char=region.end_char,
            ),
            inserted_text=region.text,
            context=context,
            metadata=metadata,
        )

    def to_region(self) -> TrackedRegion:
        """Rebuild a tracked region; the fingerprint is regenerated lazily."""
        return TrackedRegion(
            id=self.id,
            file=self.file,
            language=self.language,
            start_line=self.range.start_line,
            end_line=self.range.end_line,
            start_char=self.range.start_char,
            end_char=self.range.end_char,
            text=self.inserted_text,
            timestamp=self.metadata.inserted_at,
        )
