"""Tests for the region ledger: lifecycle, history, queries."""

import pytest
from pydantic import ValidationError

from coden.config.models import CodenConfig
from coden.ledger import DeletionRecord, FileHistory, Ledger, ModificationRecord, StatusSummary, TrackedRegion

ADD_ARROW = "const add = (a, b) => a + b;"


# ── Registry ─────────────────────────────────────────────────────────


class TestRegistry:
    def test_register_and_lookup(self, make_region):
        ledger = Ledger()
        region = ledger.register(make_region())
        assert ledger.region("r1") is region
        assert ledger.active_regions("src/app.js") == [region]
        assert ledger.files() == ["src/app.js"]

    def test_duplicate_id_rejected(self, make_region):
        ledger = Ledger()
        ledger.register(make_region())
        with pytest.raises(ValueError, match="already tracked"):
            ledger.register(make_region())

    def test_active_regions_oldest_first(self, make_region):
        ledger = Ledger()
        late = ledger.register(make_region(region_id="late", timestamp=2000.0))
        early = ledger.register(make_region(region_id="early", timestamp=1000.0))
        assert ledger.active_regions("src/app.js") == [early, late]

    def test_unknown_file_has_no_regions(self):
        assert Ledger().active_regions("nope.py") == []

    def test_blank_region_id_rejected(self):
        with pytest.raises(ValidationError):
            TrackedRegion(id="   ", file="a.py", text="x", timestamp=0.0)

    def test_region_line_span(self, make_region):
        region = make_region(text="a\nb\nc", start_line=5)
        assert region.line_count == 3
        assert region.last_line == 7


# ── apply ────────────────────────────────────────────────────────────


class TestApply:
    def test_modification_recorded_once(self, make_region, make_verdict):
        ledger = Ledger()
        region = ledger.register(make_region())
        first = ledger.apply(region, make_verdict("modified", 0.8, "inline_edit"), now=1010.0)
        second = ledger.apply(region, make_verdict("modified", 0.9), now=1020.0)

        assert region.modified is True
        assert len(first) == 1
        assert isinstance(first[0], ModificationRecord)
        assert first[0].modification_type == "inline_edit"
        assert first[0].timestamp == 1010.0
        assert second == []
        assert len(ledger.history("src/app.js").modifications) == 1

    def test_unchanged_never_clears_modified(self, make_region, make_verdict):
        ledger = Ledger()
        region = ledger.register(make_region())
        ledger.apply(region, make_verdict("modified"), now=1010.0)
        ledger.apply(region, make_verdict("unchanged"), now=1020.0)
        assert region.modified is True
        assert region.last_tracking_result.change_type.value == "unchanged"

    def test_deletion_retires_region(self, make_region, make_verdict):
        ledger = Ledger()
        region = ledger.register(make_region())
        records = ledger.apply(region, make_verdict("deleted", 0.95), now=1010.0)

        assert region.deleted is True
        assert isinstance(records[0], DeletionRecord)
        assert records[0].text == ADD_ARROW
        assert ledger.active_regions("src/app.js") == []
        assert ledger.region("r1") is region

    def test_retired_region_ignores_later_verdicts(self, make_region, make_verdict):
        ledger = Ledger()
        region = ledger.register(make_region())
        ledger.apply(region, make_verdict("deleted"), now=1010.0)
        assert ledger.apply(region, make_verdict("modified"), now=1020.0) == []
        assert region.modified is False

    def test_uses_clock_when_now_missing(self, make_region, make_verdict, clock):
        ledger = Ledger(clock=clock)
        region = ledger.register(make_region())
        clock.advance(42)
        records = ledger.apply(region, make_verdict("modified"))
        assert records[0].timestamp == 1042.0


# ── final_validation ─────────────────────────────────────────────────


class TestFinalValidation:
    def test_verbatim_text_restores_region(self, make_region, make_verdict):
        ledger = Ledger()
        region = ledger.register(make_region())
        ledger.apply(region, make_verdict("deleted"), now=1010.0)

        restored = ledger.final_validation("src/app.js", f"// moved\n{ADD_ARROW}\n", now=1020.0)

        assert restored == ["r1"]
        history = ledger.history("src/app.js")
        assert history.deletions == []
        assert history.modifications[0].modification_type == "restored_after_deletion"
        assert history.modifications[0].confidence == 1.0
        assert region.deleted is False
        assert region.modified is True
        assert ledger.active_regions("src/app.js") == [region]

    def test_short_statement_needs_verbatim_text(self, make_region, make_verdict):
        ledger = Ledger()
        region = ledger.register(make_region())
        ledger.apply(region, make_verdict("deleted"), now=1010.0)
        assert ledger.final_validation("src/app.js", "const add = 1;", now=1020.0) == []
        assert region.deleted is True

    def test_long_fragment_restored_by_tokens(self, make_region, make_verdict):
        text = "def total(items):\n    return sum(item.price for item in items)"
        ledger = Ledger()
        region = ledger.register(make_region(text=text, file="shop.py", language="python"))
        ledger.apply(region, make_verdict("deleted"), now=1010.0)

        current = "def total(items):\n    return sum(i.price for item in items)  # tweaked\n"
        assert ledger.final_validation("shop.py", current, now=1020.0) == ["r1"]

    def test_removed_text_stays_deleted(self, make_region, make_verdict):
        ledger = Ledger()
        region = ledger.register(make_region())
        ledger.apply(region, make_verdict("deleted"), now=1010.0)
        assert ledger.final_validation("src/app.js", "", now=1020.0) == []
        assert len(ledger.history("src/app.js").deletions) == 1

    def test_validation_due_throttle(self):
        ledger = Ledger(CodenConfig())
        assert ledger.validation_due("a.py", now=100.0) is True
        ledger.final_validation("a.py", "", now=100.0)
        assert ledger.validation_due("a.py", now=129.0) is False
        assert ledger.validation_due("a.py", now=130.0) is True


# ── Queries ──────────────────────────────────────────────────────────


class TestQueries:
    def test_region_at_line_prefers_most_recent(self, make_region):
        ledger = Ledger()
        ledger.register(make_region(text="a\nb\nc", region_id="old", timestamp=1.0, start_line=5))
        newer = ledger.register(make_region(text="x\ny", region_id="new", timestamp=2.0, start_line=6))
        assert ledger.get_region_at_line("src/app.js", 6) is newer
        assert ledger.get_region_at_line("src/app.js", 5).id == "old"

    def test_region_at_line_outside_span(self, make_region):
        ledger = Ledger()
        ledger.register(make_region(text="a\nb\nc", start_line=5))
        assert ledger.get_region_at_line("src/app.js", 8) is None
        assert ledger.get_region_at_line("src/app.js", 4) is None

    def test_region_at_line_skips_retired(self, make_region, make_verdict):
        ledger = Ledger()
        region = ledger.register(make_region())
        ledger.apply(region, make_verdict("deleted"), now=1010.0)
        assert ledger.get_region_at_line("src/app.js", 0) is None

    def test_status_summary(self, make_region, make_verdict):
        ledger = Ledger()
        kept = ledger.register(make_region(region_id="kept"))
        gone = ledger.register(make_region(region_id="gone"))
        ledger.register(make_region(region_id="idle"))
        ledger.apply(kept, make_verdict("modified"), now=1010.0)
        ledger.apply(gone, make_verdict("deleted"), now=1010.0)

        summary = ledger.get_status_summary("src/app.js")
        assert summary.active == 2
        assert summary.modified_count == 1
        assert summary.deleted_count == 1

    def test_status_summary_reconciles_first(self, make_region, make_verdict):
        text = "def total(items):\n    return sum(item.price for item in items)"
        ledger = Ledger()
        region = ledger.register(make_region(text=text, file="shop.py", language="python"))
        ledger.apply(region, make_verdict("modified"), now=1010.0)
        ledger.apply(region, make_verdict("deleted"), now=1015.0)

        summary = ledger.get_status_summary("shop.py")
        assert summary.modified_count == 0
        assert summary.deleted_count == 1

    def test_reading_untracked_file_leaves_no_trace(self):
        ledger = Ledger()
        assert ledger.get_status_summary("other.js", "let x = 1;") == StatusSummary()
        assert ledger.history("other.js") == FileHistory()
        assert ledger.final_validation("other.js", "", now=5.0) == []
        assert ledger.files() == []
        assert ledger.histories() == {}

    def test_shift_regions(self, make_region):
        ledger = Ledger()
        above = ledger.register(make_region(region_id="above", start_line=2))
        below = ledger.register(make_region(region_id="below", start_line=10))
        ledger.shift_regions("src/app.js", after_line=5, delta=3)
        assert above.start_line == 2
        assert below.start_line == 13

    def test_restore(self, make_region):
        history = FileHistory(deletions=[
            DeletionRecord(id="gone", file="src/app.js", confidence=0.9, timestamp=5.0, text="x"),
        ])
        retired = make_region(region_id="gone")
        retired.deleted = True
        live = make_region(region_id="live")

        ledger = Ledger()
        ledger.restore({"src/app.js": history}, [retired, live])

        assert ledger.active_regions("src/app.js") == [live]
        assert ledger.region("gone") is retired
        assert ledger.history("src/app.js").deletion("gone") is not None
