"""Shared test fixtures for coden."""

import logging

import pytest

from coden.config.models import CodenConfig
from coden.ledger.models import TrackedRegion
from coden.tracking.models import ChangeType, Verdict


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _reset_coden_logger():
    yield
    logger = logging.getLogger("coden")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def sample_config():
    return CodenConfig()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_region():
    """Factory for tracked regions with sensible defaults."""

    def _make(
        text: str = "const add = (a, b) => a + b;",
        file: str = "src/app.js",
        language: str = "javascript",
        region_id: str = "r1",
        timestamp: float = 1000.0,
        start_line: int = 0,
    ) -> TrackedRegion:
        return TrackedRegion(
            id=region_id,
            file=file,
            language=language,
            start_line=start_line,
            end_line=start_line + text.count("\n"),
            text=text,
            timestamp=timestamp,
        )

    return _make


@pytest.fixture
def make_verdict():
    """Factory for fused verdicts of a given change type."""

    def _make(change_type: str, confidence: float = 0.9, modification_type: str | None = None) -> Verdict:
        kind = ChangeType(change_type)
        return Verdict(
            change_type=kind,
            modified=kind is ChangeType.modified,
            deleted=kind is ChangeType.deleted,
            confidence=confidence,
            modification_type=modification_type,
        )

    return _make
