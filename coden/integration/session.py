"""Inbound editor events wired to the tracker, the ledger and the log store."""

from __future__ import annotations

import logging
import time
import uuid
from collections import Counter
from collections.abc import Callable
from pathlib import Path

from coden.config.models import CodenConfig
from coden.fingerprint.generator import generate_fingerprint
from coden.fingerprint.rules import language_for_path
from coden.fingerprint.text import count_lines
from coden.integration.changes import Position, TextChange, TextRange, apply_changes
from coden.integration.heuristics import (
    estimate_tokens,
    extract_context,
    infer_probable_model,
    is_probably_machine_suggestion,
)
from coden.ledger.ledger import Ledger
from coden.ledger.models import StatusSummary, TrackedRegion
from coden.storage.log_store import LogStore
from coden.storage.models import SuggestionContext, SuggestionEntry, SuggestionMetadata
from coden.tracking.models import DocumentState, Verdict
from coden.tracking.tracker import MultiMethodTracker

logger = logging.getLogger(__name__)

TRACKING_TOOL_VERSION = "0.1.0"


class TrackingSession:
    """One workspace's tracking state, driven by editor (or watcher) events.

    Everything runs synchronously on the caller's thread. Documents are
    identified by the id the host passes in; :meth:`document_id_for` turns a
    filesystem path into the workspace-relative id used in the logs.
    """

    def __init__(
        self,
        root: Path | str = ".",
        config: CodenConfig | None = None,
        *,
        store: LogStore | None = None,
        ledger: Ledger | None = None,
        tracker: MultiMethodTracker | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root = Path(root)
        self.config = config or CodenConfig()
        self._clock = clock
        self.store = store or LogStore(self.root, self.config.storage)
        self.ledger = ledger or Ledger(self.config, clock=clock)
        self.tracker = tracker or MultiMethodTracker(self.config)
        self.enabled = True
        self.language_counts: Counter[str] = Counter()
        self._documents: dict[str, str] = {}
        self._languages: dict[str, str] = {}
        self._opened_at: dict[str, float] = {}
        self._snapshots: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Rehydrate the ledger from the log store. Returns regions restored."""
        histories = self.store.load_history()
        regions: list[TrackedRegion] = []
        for entry in self.store.load_suggestions():
            if self.ledger.region(entry.id) is not None:
                continue
            region = entry.to_region()
            history = histories.get(region.file)
            if history is not None:
                region.modified = history.modification(region.id) is not None
                region.deleted = history.deletion(region.id) is not None
            regions.append(region)
            self.language_counts[region.language] += 1
        self.ledger.restore(histories, regions)
        logger.info("Restored %d regions from %s", len(regions), self.store.directory)
        return len(regions)

    def persist(self) -> bool:
        return self.store.write_history(self.ledger.histories())

    # ------------------------------------------------------------------
    # Document bookkeeping
    # ------------------------------------------------------------------

    def document_id_for(self, path: Path | str) -> str:
        path = Path(path)
        try:
            return path.resolve().relative_to(self.root.resolve()).as_posix()
        except ValueError:
            return str(path)

    def is_ignored(self, document_id: str) -> bool:
        if any(fragment in document_id for fragment in self.config.integration.ignored_uri_fragments):
            return True
        return self.store.is_log_file(document_id)

    def document_text(self, document_id: str) -> str | None:
        return self._documents.get(document_id)

    def on_document_opened(self, document_id: str, text: str, language: str | None = None) -> None:
        self._documents[document_id] = text
        self._snapshots.setdefault(document_id, text)
        self._languages[document_id] = language or language_for_path(document_id)
        self._opened_at[document_id] = self._clock()

    def on_document_closed(self, document_id: str) -> None:
        self._documents.pop(document_id, None)
        self._opened_at.pop(document_id, None)
        self._snapshots.pop(document_id, None)

    def _recently_opened(self, document_id: str, now: float) -> bool:
        opened = self._opened_at.get(document_id)
        return opened is not None and now - opened < self.config.integration.recently_opened_seconds

    def _language(self, document_id: str, language: str | None) -> str:
        language = language or self._languages.get(document_id) or language_for_path(document_id)
        self._languages[document_id] = language
        return language

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_fragment_inserted(
        self,
        document_id: str,
        text: str,
        language: str,
        location: TextRange | None = None,
        timestamp: float | None = None,
    ) -> str:
        """Register an inserted fragment and log it. Returns the region id."""
        start = location.start if location is not None else Position()
        end = TextChange(range=TextRange(start=start, end=start), text=text).end_position()
        region = TrackedRegion(
            id=str(uuid.uuid4()),
            file=document_id,
            language=language,
            start_line=start.line,
            start_char=start.character,
            end_line=end.line,
            end_char=end.character,
            text=text,
            timestamp=self._clock() if timestamp is None else timestamp,
            fingerprint=generate_fingerprint(text, language, self.config.fingerprint),
        )
        self.ledger.register(region)
        self.language_counts[language] += 1

        document = self._documents.get(document_id)
        context = (
            extract_context(document, start.line, end.line, self.config.integration)
            if document else SuggestionContext()
        )
        metadata = SuggestionMetadata(
            line_count=count_lines(text),
            char_count=len(text),
            estimated_tokens=estimate_tokens(text),
            probable_model=infer_probable_model(text, language, context.before + context.after),
            inserted_at=region.timestamp,
            tracking_tool_version=TRACKING_TOOL_VERSION,
        )
        self.store.append_suggestion(SuggestionEntry.from_region(region, context, metadata))
        logger.info("Tracking %d-line fragment %s in %s", region.line_count, region.id, document_id)
        return region.id

    def on_document_changed(
        self,
        document_id: str,
        changes: list[TextChange],
        language: str | None = None,
        full_text: str | None = None,
    ) -> list[str]:
        """Apply *changes* to the cached content, then track the document.

        *full_text* is the document content after the changes, when the host
        has it. Without it or a cached copy from :meth:`on_document_opened`,
        insertions are still registered but tracking waits for the next save.

        Returns the ids of fragments auto-registered from these changes.
        """
        if not self.enabled or self.is_ignored(document_id):
            return []
        now = self._clock()
        language = self._language(document_id, language)
        cached = self._documents.get(document_id)
        if full_text is not None:
            content: str | None = full_text
        elif cached is not None:
            content = apply_changes(cached, changes)
        else:
            content = None
        if content is not None:
            self._documents[document_id] = content
        if self._recently_opened(document_id, now):
            logger.debug("Ignoring initial load changes for %s", document_id)
            return []

        for change in sorted(changes, key=lambda c: (c.range.start.line, c.range.start.character), reverse=True):
            self.ledger.shift_regions(document_id, change.range.end.line, change.line_delta)

        registered: list[str] = []
        if self.config.integration.auto_detect:
            for change in changes:
                if is_probably_machine_suggestion(change.text, language, self.config.integration):
                    registered.append(
                        self.on_fragment_inserted(document_id, change.text, language, change.range, now)
                    )

        if content is None:
            logger.debug("No content for %s; tracking waits for a save", document_id)
            return registered
        _, emitted = self._track_document(document_id, content, language)
        if emitted:
            self.persist()
        return registered

    def on_document_saved(self, document_id: str, full_text: str) -> dict[str, Verdict]:
        """Track against the previous save, reconcile, validate, persist."""
        if self.is_ignored(document_id):
            return {}
        now = self._clock()
        language = self._language(document_id, None)
        self._documents[document_id] = full_text
        snapshot = self._snapshots.get(document_id)

        verdicts, _ = self._track_document(document_id, full_text, language, snapshot)
        self.ledger.reconcile(document_id, full_text)
        self.ledger.final_validation(document_id, full_text, now)
        self._snapshots[document_id] = full_text
        self.persist()
        return verdicts

    def sweep(self, now: float | None = None) -> dict[str, list[str]]:
        """Periodic final validation of every cached document that is due."""
        now = self._clock() if now is None else now
        restored: dict[str, list[str]] = {}
        for document_id, text in list(self._documents.items()):
            if not self.ledger.validation_due(document_id, now):
                continue
            self.ledger.reconcile(document_id, text)
            ids = self.ledger.final_validation(document_id, text, now)
            if ids:
                restored[document_id] = ids
        if restored:
            self.persist()
        return restored

    def _track_document(
        self,
        document_id: str,
        text: str,
        language: str,
        snapshot: str | None = None,
    ) -> tuple[dict[str, Verdict], bool]:
        document = DocumentState(id=document_id, text=text, language=language)
        verdicts: dict[str, Verdict] = {}
        emitted = False
        for region in self.ledger.active_regions(document_id):
            try:
                self.ledger.attach_fingerprint(region, self.tracker.fingerprint_for(region))
                verdict = self.tracker.track(document, region, snapshot)
                if self.ledger.apply(region, verdict):
                    emitted = True
                verdicts[region.id] = verdict
            except Exception:
                logger.exception("Tracking failed for region %s in %s", region.id, document_id)
        return verdicts, emitted

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_region_at_line(self, document_id: str, line: int) -> TrackedRegion | None:
        return self.ledger.get_region_at_line(document_id, line)

    def get_status_summary(self, document_id: str) -> StatusSummary:
        return self.ledger.get_status_summary(document_id, self._documents.get(document_id))
