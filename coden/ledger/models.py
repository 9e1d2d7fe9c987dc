"""Pydantic models for tracked regions and their history."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from coden.fingerprint.models import Fingerprint
from coden.fingerprint.text import count_lines
from coden.tracking.models import Verdict


class TrackedRegion(BaseModel):
    """Lifecycle record for one inserted fragment.

    Mutable: location, flags and the last verdict change over its lifetime.
    Only the ledger should flip ``modified`` / ``deleted``.
    """

    id: str = Field(min_length=1)
    file: str
    language: str = "plaintext"
    start_line: int = Field(default=0, ge=0)
    end_line: int = Field(default=0, ge=0)
    start_char: int = Field(default=0, ge=0)
    end_char: int = Field(default=0, ge=0)
    text: str
    timestamp: float
    fingerprint: Fingerprint | None = None
    modified: bool = False
    deleted: bool = False
    last_tracking_result: Verdict | None = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("id cannot be empty or whitespace")
        return v

    @property
    def line_count(self) -> int:
        return count_lines(self.text)

    @property
    def last_line(self) -> int:
        """Last line covered, derived from the inserted text's line count."""
        return self.start_line + self.line_count - 1


class HistoryRecord(BaseModel):
    """Append-only history entry keyed by region id."""

    id: str = Field(min_length=1)
    file: str
    confidence: float = Field(ge=0, le=1)
    modification_type: str = "unknown"
    timestamp: float
    text: str = ""
    language: str = "plaintext"


class ModificationRecord(HistoryRecord):
    pass


class DeletionRecord(HistoryRecord):
    pass


class FileHistory(BaseModel):
    """Modification and deletion records for one document."""

    modifications: list[ModificationRecord] = Field(default_factory=list)
    deletions: list[DeletionRecord] = Field(default_factory=list)

    def modification(self, region_id: str) -> ModificationRecord | None:
        return next((r for r in self.modifications if r.id == region_id), None)

    def deletion(self, region_id: str) -> DeletionRecord | None:
        return next((r for r in self.deletions if r.id == region_id), None)

    def conflicting_ids(self) -> list[str]:
        """Ids present in both lists, in modification order."""
        deleted = {r.id for r in self.deletions}
        return [r.id for r in self.modifications if r.id in deleted]


class StatusSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    active: int = 0
    modified_count: int = 0
    deleted_count: int = 0


class ReconciliationOutcome(BaseModel):
    """How one conflicting region id was resolved."""

    model_config = ConfigDict(frozen=True)

    id: str
    decision: Literal["modification", "deletion"]
    reason: str
