"""Region ledger: active regions, lifecycle flags and append-only history."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Callable

from coden.config.models import CodenConfig
from coden.fingerprint.models import Fingerprint
from coden.fingerprint.text import significant_tokens, token_overlap
from coden.ledger.models import (
    DeletionRecord,
    FileHistory,
    HistoryRecord,
    ModificationRecord,
    ReconciliationOutcome,
    StatusSummary,
    TrackedRegion,
)
from coden.ledger.reconcile import fragment_survives, reconcile_history
from coden.tracking.models import Verdict

logger = logging.getLogger(__name__)


class Ledger:
    """Owns every tracked region of a workspace and their history.

    One instance per workspace or session; nothing is shared between
    instances. Regions move ``active -> modified -> deleted``; a modified
    region never returns to pristine, and a deleted region only comes back
    through :meth:`final_validation`.
    """

    def __init__(
        self,
        config: CodenConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or CodenConfig()
        self._clock = clock
        self._active: dict[str, dict[str, TrackedRegion]] = defaultdict(dict)
        self._regions: dict[str, TrackedRegion] = {}
        self._histories: dict[str, FileHistory] = {}
        self._last_validation: dict[str, float] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, region: TrackedRegion) -> TrackedRegion:
        """Start tracking *region* in its file's active set."""
        if region.id in self._regions:
            raise ValueError(f"Region id already tracked: {region.id}")
        self._regions[region.id] = region
        if not region.deleted:
            self._active[region.file][region.id] = region
        logger.debug("registered region %s in %s (%d lines)", region.id, region.file, region.line_count)
        return region

    def region(self, region_id: str) -> TrackedRegion | None:
        return self._regions.get(region_id)

    def files(self) -> list[str]:
        names = {f for f, regions in self._active.items() if regions}
        names.update(self._histories)
        return sorted(names)

    def active_regions(self, file: str) -> list[TrackedRegion]:
        """Active regions of *file*, oldest first."""
        return sorted(self._active.get(file, {}).values(), key=lambda r: r.timestamp)

    def all_regions(self) -> list[TrackedRegion]:
        return sorted(self._regions.values(), key=lambda r: r.timestamp)

    def history(self, file: str) -> FileHistory:
        """Recorded history of *file*; an empty, unstored one when there is none."""
        return self._histories.get(file, FileHistory())

    def _history_for(self, file: str) -> FileHistory:
        return self._histories.setdefault(file, FileHistory())

    def histories(self) -> dict[str, FileHistory]:
        return dict(self._histories)

    def restore(self, histories: dict[str, FileHistory], regions: list[TrackedRegion]) -> None:
        """Rehydrate from persisted state (histories first, then regions)."""
        self._histories.update(histories)
        for region in regions:
            if region.id not in self._regions:
                self.register(region)

    @staticmethod
    def attach_fingerprint(region: TrackedRegion, fingerprint: Fingerprint) -> None:
        if region.fingerprint is None:
            region.fingerprint = fingerprint

    def shift_regions(self, file: str, after_line: int, delta: int) -> None:
        """Move active regions starting below *after_line* by *delta* lines."""
        if not delta:
            return
        for region in self._active.get(file, {}).values():
            if region.start_line > after_line:
                region.start_line = max(0, region.start_line + delta)
                region.end_line = max(0, region.end_line + delta)

    # ------------------------------------------------------------------
    # Verdicts
    # ------------------------------------------------------------------

    def apply(
        self,
        region: TrackedRegion,
        verdict: Verdict,
        now: float | None = None,
    ) -> list[HistoryRecord]:
        """Apply a tracker verdict to *region*; return the records emitted."""
        now = self._clock() if now is None else now
        if region.deleted:
            logger.debug("ignoring verdict for retired region %s", region.id)
            return []

        region.last_tracking_result = verdict
        history = self._history_for(region.file)
        emitted: list[HistoryRecord] = []

        if verdict.modified and not region.modified:
            region.modified = True
            if history.modification(region.id) is None:
                record = ModificationRecord(
                    id=region.id,
                    file=region.file,
                    confidence=verdict.confidence,
                    modification_type=verdict.modification_type or "modified",
                    timestamp=now,
                    text=region.text,
                    language=region.language,
                )
                history.modifications.append(record)
                emitted.append(record)
                logger.info(
                    "region %s in %s modified (%s, %.2f)",
                    region.id, region.file, record.modification_type, record.confidence,
                )

        if verdict.deleted:
            region.deleted = True
            if history.deletion(region.id) is None:
                record = DeletionRecord(
                    id=region.id,
                    file=region.file,
                    confidence=verdict.confidence,
                    modification_type=verdict.modification_type or "deleted",
                    timestamp=now,
                    text=region.text,
                    language=region.language,
                )
                history.deletions.append(record)
                emitted.append(record)
            self._active[region.file].pop(region.id, None)
            logger.info("region %s in %s deleted (%.2f)", region.id, region.file, verdict.confidence)

        return emitted

    # ------------------------------------------------------------------
    # Reconciliation & validation
    # ------------------------------------------------------------------

    def reconcile(self, file: str, current_text: str | None = None) -> list[ReconciliationOutcome]:
        """Resolve ids recorded as both modified and deleted in *file*."""
        history = self._histories.get(file)
        if history is None:
            return []
        reconciled, outcomes = reconcile_history(history, current_text, self.config)
        self._histories[file] = reconciled
        for outcome in outcomes:
            logger.debug("reconciled %s in %s -> %s (%s)", outcome.id, file, outcome.decision, outcome.reason)
        return outcomes

    def validation_due(self, file: str, now: float | None = None) -> bool:
        now = self._clock() if now is None else now
        last = self._last_validation.get(file)
        return last is None or now - last >= self.config.ledger.validation_interval_seconds

    def final_validation(self, file: str, current_text: str, now: float | None = None) -> list[str]:
        """Reclassify deletions whose fragment is still present in *current_text*.

        Returns the ids moved from deletion to modification. Known regions
        go back into the active set, flagged modified.
        """
        now = self._clock() if now is None else now
        self._last_validation[file] = now
        history = self._histories.get(file)
        restored: list[str] = []
        if history is None:
            return restored

        for record in list(history.deletions):
            if not fragment_survives(record.text, current_text, self.config):
                continue
            history.deletions.remove(record)
            if history.modification(record.id) is None:
                history.modifications.append(ModificationRecord(
                    id=record.id,
                    file=file,
                    confidence=self._presence_confidence(record.text, current_text),
                    modification_type="restored_after_deletion",
                    timestamp=now,
                    text=record.text,
                    language=record.language,
                ))
            region = self._regions.get(record.id)
            if region is not None:
                region.deleted = False
                region.modified = True
                self._active[file][region.id] = region
            restored.append(record.id)
            logger.info("region %s in %s reclassified from deleted to modified", record.id, file)
        return restored

    def _presence_confidence(self, text: str, current_text: str) -> float:
        if text and text in current_text:
            return 1.0
        tokens = significant_tokens(
            text, self.config.fingerprint.stoplist, self.config.fingerprint.min_identifier_length
        )
        return token_overlap(tokens, current_text)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_region_at_line(self, file: str, line: int) -> TrackedRegion | None:
        """Most recently inserted active region covering *line*, if any."""
        covering = [
            r for r in self.active_regions(file)
            if r.start_line <= line <= r.last_line
        ]
        return covering[-1] if covering else None

    def get_status_summary(self, file: str, current_text: str | None = None) -> StatusSummary:
        """Reconcile *file*, then count active, modified and deleted regions."""
        self.reconcile(file, current_text)
        history = self.history(file)
        return StatusSummary(
            active=len(self._active.get(file, {})),
            modified_count=len(history.modifications),
            deleted_count=len(history.deletions),
        )
