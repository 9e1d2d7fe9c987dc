"""Tests for the tracking session: inbound events, persistence, sweeps."""

from pathlib import Path

from coden.config.models import CodenConfig, IntegrationConfig
from coden.integration import Position, TextChange, TextRange, TrackingSession
from coden.tracking import MultiMethodTracker

ADD_ARROW = "const add = (a, b) => a + b;"
ADD_RENAMED = "const add = (x, y) => x + y;"
DOC = "src/app.js"


# ── Helpers ──────────────────────────────────────────────────────────


def _session(tmp_path: Path, clock, config: CodenConfig | None = None, **kwargs) -> TrackingSession:
    return TrackingSession(tmp_path, config or CodenConfig(), clock=clock, **kwargs)


def _opened(tmp_path: Path, clock, text: str = "") -> TrackingSession:
    """Session with DOC open and past the initial-load window."""
    session = _session(tmp_path, clock)
    session.on_document_opened(DOC, text, "javascript")
    clock.advance(5)
    return session


class _ExplodingTracker(MultiMethodTracker):
    def track(self, document, region, snapshot=None):
        if "boom" in region.text:
            raise RuntimeError("tracker failure")
        return super().track(document, region, snapshot)


# ── on_fragment_inserted ─────────────────────────────────────────────


class TestFragmentInserted:
    def test_registers_region_with_fingerprint(self, tmp_path: Path, clock):
        session = _session(tmp_path, clock)
        region_id = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript", TextRange.at(3, 2))

        region = session.ledger.region(region_id)
        assert region.file == DOC
        assert region.start_line == 3
        assert region.start_char == 2
        assert region.end_char == 2 + len(ADD_ARROW)
        assert region.timestamp == clock.now
        assert region.fingerprint.identifiers == ("add",)
        assert session.language_counts["javascript"] == 1

    def test_logs_suggestion(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock, "// a\n// b\n\n// c\n")
        region_id = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript", TextRange.at(2))

        entries = session.store.load_suggestions()
        assert [e.id for e in entries] == [region_id]
        entry = entries[0]
        assert entry.inserted_text == ADD_ARROW
        assert entry.context.before == "// a\n// b"
        assert entry.metadata.char_count == len(ADD_ARROW)
        assert entry.metadata.estimated_tokens == 7
        assert entry.metadata.tracking_tool_version == "0.1.0"

    def test_region_ids_are_unique(self, tmp_path: Path, clock):
        session = _session(tmp_path, clock)
        ids = {session.on_fragment_inserted(DOC, ADD_ARROW, "javascript") for _ in range(5)}
        assert len(ids) == 5


# ── on_document_changed ──────────────────────────────────────────────


class TestDocumentChanged:
    def test_auto_detects_completion(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock)
        registered = session.on_document_changed(DOC, [TextChange.insert(0, 0, ADD_ARROW)])

        assert len(registered) == 1
        assert session.document_text(DOC) == ADD_ARROW
        assert session.get_region_at_line(DOC, 0).id == registered[0]

    def test_typing_is_not_registered(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock)
        assert session.on_document_changed(DOC, [TextChange.insert(0, 0, "a")]) == []
        assert session.document_text(DOC) == "a"

    def test_changes_right_after_open_are_ignored(self, tmp_path: Path, clock):
        session = _session(tmp_path, clock)
        session.on_document_opened(DOC, "", "javascript")
        clock.advance(0.5)
        assert session.on_document_changed(DOC, [TextChange.insert(0, 0, ADD_ARROW)]) == []
        assert session.document_text(DOC) == ADD_ARROW

    def test_auto_detect_can_be_disabled(self, tmp_path: Path, clock):
        config = CodenConfig(integration=IntegrationConfig(auto_detect=False))
        session = _session(tmp_path, clock, config)
        session.on_document_opened(DOC, "", "javascript")
        clock.advance(5)
        assert session.on_document_changed(DOC, [TextChange.insert(0, 0, ADD_ARROW)]) == []

    def test_change_without_content_does_not_track(self, tmp_path: Path, clock):
        session = _session(tmp_path, clock)
        region_id = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript")
        clock.advance(5)

        assert session.on_document_changed(DOC, [TextChange.insert(3, 0, "x")]) == []

        assert session.ledger.region(region_id).deleted is False
        assert session.document_text(DOC) is None
        assert session.ledger.history(DOC).deletions == []

    def test_change_without_content_still_registers_completions(self, tmp_path: Path, clock):
        session = _session(tmp_path, clock)
        registered = session.on_document_changed(DOC, [TextChange.insert(4, 0, ADD_ARROW)])
        assert len(registered) == 1
        assert session.ledger.region(registered[0]).start_line == 4

    def test_full_text_from_host_is_tracked(self, tmp_path: Path, clock):
        session = _session(tmp_path, clock)
        region_id = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript")
        clock.advance(5)
        removal = TextChange(
            range=TextRange(start=Position(line=0, character=0), end=Position(line=0, character=len(ADD_ARROW))),
            text="",
        )

        session.on_document_changed(DOC, [removal], full_text="// nothing left\n")

        assert session.document_text(DOC) == "// nothing left\n"
        assert session.ledger.region(region_id).deleted is True

    def test_disabled_session_ignores_changes(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock)
        session.enabled = False
        assert session.on_document_changed(DOC, [TextChange.insert(0, 0, ADD_ARROW)]) == []
        assert session.document_text(DOC) == ""

    def test_closed_document_drops_cache(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock, ADD_ARROW)
        session.on_document_closed(DOC)
        assert session.document_text(DOC) is None

    def test_ignored_documents(self, tmp_path: Path, clock):
        session = _session(tmp_path, clock)
        assert session.is_ignored("output:extension-output-coden")
        assert session.is_ignored(".coden/suggestions.json")
        assert session.on_document_changed("output:log", [TextChange.insert(0, 0, ADD_ARROW)]) == []

    def test_deleting_fragment_records_deletion(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock)
        [region_id] = session.on_document_changed(DOC, [TextChange.insert(0, 0, ADD_ARROW)])
        clock.advance(3)

        removal = TextChange(
            range=TextRange(start=Position(line=0, character=0), end=Position(line=0, character=len(ADD_ARROW))),
            text="",
        )
        session.on_document_changed(DOC, [removal])

        assert session.ledger.region(region_id).deleted is True
        summary = session.get_status_summary(DOC)
        assert (summary.active, summary.modified_count, summary.deleted_count) == (0, 0, 1)
        assert DOC in session.store.load_history()

    def test_lines_inserted_above_shift_regions(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock, f"// one\n{ADD_ARROW}\n")
        region_id = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript", TextRange.at(1))
        session.on_document_changed(DOC, [TextChange.insert(0, 0, "\n\n")])
        assert session.ledger.region(region_id).start_line == 3


# ── on_document_saved ────────────────────────────────────────────────


class TestDocumentSaved:
    def test_edit_is_recorded_as_modification(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock)
        region_id = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript")

        verdicts = session.on_document_saved(DOC, ADD_RENAMED)

        assert verdicts[region_id].modified is True
        history = session.ledger.history(DOC)
        assert [r.id for r in history.modifications] == [region_id]
        assert session.store.load_history()[DOC].modifications[0].id == region_id

    def test_restored_text_comes_back_as_modified(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock)
        region_id = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript")
        session.on_document_saved(DOC, "")
        assert session.ledger.region(region_id).deleted is True

        clock.advance(60)
        session.on_document_saved(DOC, f"// moved\n{ADD_ARROW}\n")

        region = session.ledger.region(region_id)
        assert region.deleted is False
        assert region.modified is True
        summary = session.get_status_summary(DOC)
        assert (summary.active, summary.modified_count, summary.deleted_count) == (1, 1, 0)

    def test_deleted_fragment_stays_deleted(self, tmp_path: Path, clock):
        session = _opened(tmp_path, clock)
        region_id = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript")
        session.on_document_saved(DOC, "// nothing left\n")
        clock.advance(60)
        session.on_document_saved(DOC, "// nothing left\n")
        assert session.ledger.region(region_id).deleted is True
        assert session.get_status_summary(DOC).deleted_count == 1

    def test_one_failing_region_does_not_block_others(self, tmp_path: Path, clock, caplog):
        session = _session(tmp_path, clock, tracker=_ExplodingTracker())
        session.on_fragment_inserted(DOC, "const boom = () => 1;", "javascript")
        healthy = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript")

        with caplog.at_level("ERROR", logger="coden.integration"):
            verdicts = session.on_document_saved(DOC, ADD_RENAMED)

        assert list(verdicts) == [healthy]
        assert "Tracking failed" in caplog.text


# ── Persistence & sweeps ─────────────────────────────────────────────


class TestPersistence:
    def test_load_rehydrates_regions(self, tmp_path: Path, clock):
        first = _session(tmp_path, clock)
        region_id = first.on_fragment_inserted(DOC, ADD_ARROW, "javascript")
        first.on_document_saved(DOC, "")

        second = _session(tmp_path, clock)
        assert second.load() == 1
        region = second.ledger.region(region_id)
        assert region.text == ADD_ARROW
        assert region.deleted is True
        assert region.fingerprint is None
        assert second.ledger.history(DOC).deletion(region_id) is not None

    def test_lazy_fingerprint_on_first_track(self, tmp_path: Path, clock):
        _session(tmp_path, clock).on_fragment_inserted(DOC, ADD_ARROW, "javascript")
        session = _session(tmp_path, clock)
        session.load()
        session.on_document_saved(DOC, ADD_ARROW)
        [region] = session.ledger.active_regions(DOC)
        assert region.fingerprint is not None

    def test_sweep_is_throttled(self, tmp_path: Path, clock, make_verdict):
        session = _opened(tmp_path, clock, f"{ADD_ARROW}\n")
        region_id = session.on_fragment_inserted(DOC, ADD_ARROW, "javascript")
        session.ledger.apply(session.ledger.region(region_id), make_verdict("deleted"))

        assert session.sweep() == {DOC: [region_id]}
        assert session.sweep() == {}
        clock.advance(31)
        assert session.sweep() == {}

    def test_document_id_for(self, tmp_path: Path, clock):
        session = _session(tmp_path, clock)
        assert session.document_id_for(tmp_path / "src" / "app.js") == "src/app.js"
