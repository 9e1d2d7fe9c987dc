"""Multi-method tracker: runs every applicable detection method and fuses them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from coden.config.models import CodenConfig
from coden.fingerprint.generator import generate_fingerprint
from coden.fingerprint.models import Fingerprint
from coden.fingerprint.text import is_short_statement
from coden.tracking.existence import evaluate
from coden.tracking.methods import (
    DETECTION_METHODS,
    DetectionMethod,
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

if TYPE_CHECKING:
    from coden.ledger.models import TrackedRegion

logger = logging.getLogger(__name__)


class MultiMethodTracker:
    """Judges tracked regions against live document content.

    The tracker never mutates the region it is given. Lazy fingerprint
    generation returns a new fingerprint that the caller (the ledger) may
    attach to the region.
    """

    def __init__(
        self,
        config: CodenConfig | None = None,
        methods: list[DetectionMethod] | None = None,
    ) -> None:
        self.config = config or CodenConfig()
        self.methods = list(methods) if methods is not None else list(DETECTION_METHODS)

    def fingerprint_for(self, region: TrackedRegion) -> Fingerprint:
        if region.fingerprint is not None:
            return region.fingerprint
        return generate_fingerprint(region.text, region.language, self.config.fingerprint)

    def track(
        self,
        document: DocumentState,
        region: TrackedRegion,
        snapshot: str | None = None,
    ) -> Verdict:
        """Classify *region* as unchanged, modified or deleted in *document*.

        *snapshot* is the full document text captured at the previous save,
        which enables the snapshot-diff method.
        """
        fingerprint = self.fingerprint_for(region)
        existence = evaluate(fingerprint, document.text, self.config.evaluator)
        if existence.match_details.type == "exact_match":
            return Verdict(
                change_type=ChangeType.unchanged,
                confidence=1.0,
                existence=existence,
            )

        ctx = TrackingContext(
            fingerprint=fingerprint,
            document=document,
            snapshot=snapshot,
            short=is_short_statement(fingerprint.original_text, self.config.tracker.short_statement_chars),
            config=self.config.tracker,
            fingerprint_config=self.config.fingerprint,
        )
        results: list[MethodVerdict] = []
        for method in self.methods:
            result = method.run(ctx)
            if result is not None:
                results.append(result)

        verdict = self.fuse(results, is_import_fragment(fingerprint.original_text), existence)
        logger.debug(
            "region %s in %s: %s (%.2f) via %s",
            region.id,
            document.id,
            verdict.change_type.value,
            verdict.confidence,
            ", ".join(r.method for r in results) or "existence only",
        )
        return verdict

    def fuse(
        self,
        results: list[MethodVerdict],
        is_import: bool = False,
        existence: ExistenceResult | None = None,
    ) -> Verdict:
        """Confidence-weighted vote over method verdicts.

        Each method's flags count as 0/1, weighted by its confidence. Import
        fragments need a stronger majority to be called deleted. The verdict
        confidence is the score of the chosen outcome.

        When the change votes together clear the modification bar but the
        deletion score stays at or under its bar, the region is kept present
        as modified with confidence ``mod_score``.
        """
        if not results:
            return self._from_existence(existence)

        cfg = self.config.tracker
        total = sum(r.confidence for r in results)
        mod_score = sum(r.confidence for r in results if r.modification_detected) / total
        del_score = sum(r.confidence for r in results if r.deletion_detected) / total
        deletion_bar = cfg.import_deletion_bar if is_import else cfg.deletion_bar

        if del_score > deletion_bar:
            change_type, confidence = ChangeType.deleted, del_score
            agreeing = [r for r in results if r.deletion_detected]
        elif mod_score > cfg.modification_bar:
            change_type, confidence = ChangeType.modified, mod_score
            agreeing = [r for r in results if r.modification_detected]
        elif del_score > 0 and mod_score + del_score > cfg.modification_bar:
            change_type, confidence = ChangeType.modified, mod_score
            agreeing = [r for r in results if r.modification_detected] or [
                r for r in results if r.deletion_detected
            ]
        else:
            change_type, confidence = ChangeType.unchanged, 1.0 - max(mod_score, del_score)
            agreeing = []

        leader = max(agreeing, key=lambda r: r.confidence, default=None)
        modification_type = leader.modification_type if leader is not None else None
        if change_type is ChangeType.modified and not any(r.modification_detected for r in results):
            modification_type = "disputed_deletion"

        return Verdict(
            change_type=change_type,
            modified=change_type is ChangeType.modified,
            deleted=change_type is ChangeType.deleted,
            confidence=min(1.0, confidence),
            modification_type=modification_type,
            modifications=tuple(d for r in results for d in r.modifications),
            methods=tuple(results),
            existence=existence,
        )

    @staticmethod
    def _from_existence(existence: ExistenceResult | None) -> Verdict:
        if existence is None:
            return Verdict(change_type=ChangeType.unchanged, confidence=0.0)
        if not existence.exists:
            return Verdict(
                change_type=ChangeType.deleted,
                deleted=True,
                confidence=1.0 - existence.confidence,
                modification_type="deleted",
                existence=existence,
            )
        return Verdict(
            change_type=ChangeType.modified,
            modified=True,
            confidence=existence.confidence,
            modification_type="fingerprint_drift",
            existence=existence,
        )
