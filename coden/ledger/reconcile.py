"""Conflict resolution between modification and deletion history."""

from __future__ import annotations

from coden.config.models import CodenConfig
from coden.fingerprint.text import is_short_statement, significant_tokens, token_overlap
from coden.ledger.models import (
    DeletionRecord,
    FileHistory,
    ModificationRecord,
    ReconciliationOutcome,
)


def tokens_survive(text: str, current_text: str, config: CodenConfig) -> bool:
    """True when enough of *text*'s significant tokens appear in *current_text*."""
    tokens = significant_tokens(
        text, config.fingerprint.stoplist, config.fingerprint.min_identifier_length
    )
    if not tokens:
        return False
    return token_overlap(tokens, current_text) >= config.ledger.token_overlap_threshold


def fragment_survives(text: str, current_text: str, config: CodenConfig) -> bool:
    """Verbatim presence, or token survival for anything longer than a short statement."""
    if text and text in current_text:
        return True
    if is_short_statement(text, config.tracker.short_statement_chars):
        return False
    return tokens_survive(text, current_text, config)


def resolve_conflict(
    modification: ModificationRecord,
    deletion: DeletionRecord,
    current_text: str | None,
    config: CodenConfig,
) -> ReconciliationOutcome:
    """Pick the stable outcome for a region recorded as both modified and deleted.

    Presence wins when it is arguable; a quick modify-then-delete is just
    a deletion.
    """
    text = modification.text or deletion.text
    region_id = modification.id

    if (
        is_short_statement(text, config.tracker.short_statement_chars)
        and modification.confidence > deletion.confidence
    ):
        return ReconciliationOutcome(id=region_id, decision="modification", reason="short_statement_confidence")

    if current_text is not None and tokens_survive(text, current_text, config):
        return ReconciliationOutcome(id=region_id, decision="modification", reason="revalidated_present")

    gap = deletion.timestamp - modification.timestamp
    if 0 < gap <= config.ledger.fast_delete_window_seconds:
        return ReconciliationOutcome(id=region_id, decision="deletion", reason="collapsed_fast_delete")
    if gap > 0:
        return ReconciliationOutcome(id=region_id, decision="deletion", reason="deleted_after_modification")
    return ReconciliationOutcome(id=region_id, decision="modification", reason="modified_after_deletion")


def reconcile_history(
    history: FileHistory,
    current_text: str | None,
    config: CodenConfig,
) -> tuple[FileHistory, list[ReconciliationOutcome]]:
    """Return a history in which no id is both modified and deleted.

    Each id is resolved from its own records and the live text only, so
    the result does not depend on the order ids are processed in.
    """
    outcomes: list[ReconciliationOutcome] = []
    drop_modifications: set[str] = set()
    drop_deletions: set[str] = set()

    for region_id in history.conflicting_ids():
        modification = history.modification(region_id)
        deletion = history.deletion(region_id)
        if modification is None or deletion is None:
            continue
        outcome = resolve_conflict(modification, deletion, current_text, config)
        outcomes.append(outcome)
        if outcome.decision == "modification":
            drop_deletions.add(region_id)
        else:
            drop_modifications.add(region_id)

    reconciled = FileHistory(
        modifications=[r for r in history.modifications if r.id not in drop_modifications],
        deletions=[r for r in history.deletions if r.id not in drop_deletions],
    )
    return reconciled, outcomes
