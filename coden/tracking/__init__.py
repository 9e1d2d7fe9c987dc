"""Existence evaluation and multi-method change tracking."""

from coden.tracking.existence import evaluate, existence_threshold
from coden.tracking.methods import (
    DETECTION_METHODS,
    DetectionMethod,
    ImportSpecificMethod,
    LineSimilarityMethod,
    SemanticAnchorMethod,
    SnapshotDiffMethod,
    TrackingContext,
    is_import_fragment,
)
from coden.tracking.models import (
    ChangeType,
    DocumentState,
    ExistenceResult,
    MethodVerdict,
    Verdict,
)
from coden.tracking.tracker import MultiMethodTracker

__all__ = [
    "DETECTION_METHODS",
    "ChangeType",
    "DetectionMethod",
    "DocumentState",
    "ExistenceResult",
    "ImportSpecificMethod",
    "LineSimilarityMethod",
    "MethodVerdict",
    "MultiMethodTracker",
    "SemanticAnchorMethod",
    "SnapshotDiffMethod",
    "TrackingContext",
    "Verdict",
    "evaluate",
    "existence_threshold",
    "is_import_fragment",
]
