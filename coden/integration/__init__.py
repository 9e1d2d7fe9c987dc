"""Editor-facing session, change events, heuristics and the workspace watcher."""

from coden.integration.changes import Position, TextChange, TextRange, apply_changes
from coden.integration.heuristics import (
    estimate_tokens,
    extract_context,
    infer_probable_model,
    is_probably_machine_suggestion,
)
from coden.integration.session import TRACKING_TOOL_VERSION, TrackingSession
from coden.integration.watcher import WorkspaceWatcher, dispatch_saves

__all__ = [
    "Position",
    "TRACKING_TOOL_VERSION",
    "TextChange",
    "TextRange",
    "TrackingSession",
    "WorkspaceWatcher",
    "apply_changes",
    "dispatch_saves",
    "estimate_tokens",
    "extract_context",
    "infer_probable_model",
    "is_probably_machine_suggestion",
]
