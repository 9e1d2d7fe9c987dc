"""Coden - fingerprinting and change tracking for machine-inserted code fragments."""

from coden.config import CodenConfig, load_config
from coden.fingerprint import Fingerprint, generate_fingerprint
from coden.integration import TextChange, TextRange, TrackingSession, WorkspaceWatcher
from coden.ledger import Ledger, TrackedRegion
from coden.log import configure_logging
from coden.storage import LogStore
from coden.tracking import ChangeType, DocumentState, MultiMethodTracker, Verdict, evaluate

__version__ = "0.1.0"

__all__ = [
    "ChangeType",
    "CodenConfig",
    "DocumentState",
    "Fingerprint",
    "Ledger",
    "LogStore",
    "MultiMethodTracker",
    "TextChange",
    "TextRange",
    "TrackedRegion",
    "TrackingSession",
    "Verdict",
    "WorkspaceWatcher",
    "configure_logging",
    "evaluate",
    "generate_fingerprint",
    "load_config",
]
