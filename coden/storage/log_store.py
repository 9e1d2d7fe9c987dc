"""JSON persistence for the suggestion log and the modification log."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from coden.config.models import StorageConfig
from coden.ledger.models import FileHistory
from coden.storage.models import SuggestionEntry

logger = logging.getLogger(__name__)

_SUGGESTIONS = TypeAdapter(list[SuggestionEntry])
_HISTORIES = TypeAdapter(dict[str, FileHistory])


class LogStore:
    """Reads and writes ``<root>/.coden/*.json``.

    Unreadable or invalid files load as empty. Every I/O problem is logged
    and kept in :attr:`diagnostics` so the host can surface it; nothing here
    raises into the tracking path.
    """

    def __init__(self, root: Path | str, config: StorageConfig | None = None) -> None:
        self.root = Path(root)
        self.config = config or StorageConfig()
        self.diagnostics: list[str] = []

    @property
    def directory(self) -> Path:
        return self.root / self.config.base_dir

    @property
    def suggestions_path(self) -> Path:
        return self.directory / self.config.suggestion_log

    @property
    def modifications_path(self) -> Path:
        return self.directory / self.config.modification_log

    def is_log_file(self, path: Path | str) -> bool:
        """True for the store's own files, which must never be tracked."""
        name = Path(path).name
        return name in (self.config.suggestion_log, self.config.modification_log) and (
            Path(path).parent.name == Path(self.config.base_dir).name
        )

    # -- suggestions ------------------------------------------------------

    def load_suggestions(self) -> list[SuggestionEntry]:
        return self._read(self.suggestions_path, _SUGGESTIONS, [])

    def write_suggestions(self, entries: list[SuggestionEntry]) -> bool:
        return self._write(self.suggestions_path, _SUGGESTIONS.dump_json(entries, indent=2))

    def append_suggestion(self, entry: SuggestionEntry) -> bool:
        entries = self.load_suggestions()
        entries.append(entry)
        return self.write_suggestions(entries)

    # -- modification log -------------------------------------------------

    def load_history(self) -> dict[str, FileHistory]:
        return self._read(self.modifications_path, _HISTORIES, {})

    def write_history(self, histories: dict[str, FileHistory]) -> bool:
        return self._write(self.modifications_path, _HISTORIES.dump_json(histories, indent=2))

    # -- plumbing -----------------------------------------------------------

    def _read(self, path: Path, adapter: TypeAdapter, empty):
        if not path.is_file():
            return empty
        try:
            return adapter.validate_json(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValidationError, OSError, UnicodeDecodeError) as exc:
            self._report(f"Unreadable log {path}, treating as empty: {exc}")
            return empty

    def _write(self, path: Path, payload: bytes) -> bool:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        except OSError as exc:
            self._report(f"Failed to write {path}: {exc}")
            return False
        return True

    def _report(self, message: str) -> None:
        logger.warning(message)
        self.diagnostics.append(message)
