"""Region ledger: lifecycle, history, reconciliation and final validation."""

from coden.ledger.ledger import Ledger
from coden.ledger.models import (
    DeletionRecord,
    FileHistory,
    HistoryRecord,
    ModificationRecord,
    ReconciliationOutcome,
    StatusSummary,
    TrackedRegion,
)
from coden.ledger.reconcile import fragment_survives, reconcile_history, resolve_conflict

__all__ = [
    "DeletionRecord",
    "FileHistory",
    "HistoryRecord",
    "Ledger",
    "ModificationRecord",
    "ReconciliationOutcome",
    "StatusSummary",
    "TrackedRegion",
    "fragment_survives",
    "reconcile_history",
    "resolve_conflict",
]
