"""Data models for existence evaluation and multi-method tracking."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    """Fused classification of a tracked region at one point in time."""

    unchanged = "unchanged"
    modified = "modified"
    deleted = "deleted"


class DocumentState(BaseModel):
    """The live content of one document, as seen by a tracking pass."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    language: str = "plaintext"


class ScoreBreakdown(BaseModel):
    """Found / missing items for one fingerprint field."""

    model_config = ConfigDict(frozen=True)

    found: tuple[str, ...] = ()
    not_found: tuple[str, ...] = ()
    score: float = 0.0


class MatchDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "partial_match"
    structural: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    identifiers: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    patterns: ScoreBreakdown = Field(default_factory=ScoreBreakdown)


class ExistenceResult(BaseModel):
    """Outcome of comparing a fingerprint against a document body."""

    model_config = ConfigDict(frozen=True)

    exists: bool
    modified: bool
    confidence: float = Field(ge=0, le=1)
    threshold: float = 0.0
    match_details: MatchDetails = Field(default_factory=MatchDetails)


class MethodVerdict(BaseModel):
    """What a single detection strategy concluded about a region."""

    model_config = ConfigDict(frozen=True)

    method: str
    confidence: float = Field(gt=0, le=1)
    modification_detected: bool = False
    deletion_detected: bool = False
    modification_type: str | None = None
    modifications: tuple[str, ...] = ()


class Verdict(BaseModel):
    """Fused decision for one region, produced by the tracker."""

    model_config = ConfigDict(frozen=True)

    change_type: ChangeType
    modified: bool = False
    deleted: bool = False
    confidence: float = Field(ge=0, le=1)
    modification_type: str | None = None
    modifications: tuple[str, ...] = ()
    methods: tuple[MethodVerdict, ...] = ()
    existence: ExistenceResult | None = None

    @property
    def exists(self) -> bool:
        return not self.deleted
