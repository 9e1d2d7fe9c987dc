"""Debounced workspace watcher that turns on-disk saves into save events."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

if TYPE_CHECKING:
    from coden.integration.session import TrackingSession

logger = logging.getLogger(__name__)

DEFAULT_IGNORE = (".git", "node_modules", "__pycache__", ".venv", "build", "dist", ".coden")
_CONTENT_EVENTS = {"created", "modified", "moved", "deleted"}


def should_ignore(path: str, ignore: Iterable[str] = DEFAULT_IGNORE) -> bool:
    """Return True if the path contains any ignored directory component."""
    parts = set(Path(path).parts)
    return any(part in parts for part in ignore)


class _DebouncedHandler(FileSystemEventHandler):
    """Collects changed paths; the callback fires at most once per debounce window."""

    def __init__(
        self,
        debounce_seconds: float,
        pending: set[str],
        lock: threading.Lock,
        ignore: tuple[str, ...],
        callback: Callable[[str, str], None] | None = None,
    ) -> None:
        super().__init__()
        self._debounce = debounce_seconds
        self._pending = pending
        self._lock = lock
        self._ignore = ignore
        self._callback = callback
        self._last_event: dict[str, float] = {}

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _CONTENT_EVENTS:
            return
        src = getattr(event, "dest_path", "") or event.src_path
        if isinstance(src, bytes):
            src = src.decode()
        if should_ignore(src, self._ignore):
            return

        now = time.time()
        with self._lock:
            last = self._last_event.get(src, 0)
            self._pending.add(src)
            if now - last < self._debounce:
                return
            self._last_event[src] = now

        if self._callback is not None:
            try:
                self._callback(event.event_type, src)
            except Exception:
                logger.exception("Watcher callback failed for %s", src)


class WorkspaceWatcher:
    """Watches a workspace recursively and queues changed paths.

    The observer thread only records paths. The host drains them with
    :meth:`drain` and feeds them to a session on its own thread, so tracking
    never runs concurrently.
    """

    def __init__(
        self,
        root: Path | str,
        debounce_seconds: float = 2.0,
        ignore_patterns: Iterable[str] | None = None,
        callback: Callable[[str, str], None] | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._lock = threading.Lock()
        self._pending: set[str] = set()
        self._observer: Observer | None = None
        self._handler = _DebouncedHandler(
            debounce_seconds=debounce_seconds,
            pending=self._pending,
            lock=self._lock,
            ignore=tuple(ignore_patterns) if ignore_patterns is not None else DEFAULT_IGNORE,
            callback=callback,
        )

    @property
    def pending_paths(self) -> set[str]:
        with self._lock:
            return set(self._pending)

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        self._observer = Observer()
        self._observer.schedule(self._handler, str(self._root), recursive=True)
        self._observer.start()
        logger.info("Watching %s for saves", self._root)

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        logger.info("Stopped watching %s", self._root)

    def drain(self) -> list[str]:
        """Take and clear every queued path, sorted."""
        with self._lock:
            paths = sorted(self._pending)
            self._pending.clear()
        return paths


def dispatch_saves(session: TrackingSession, paths: Iterable[str]) -> list[str]:
    """Replay drained paths as save events for documents the session tracks.

    A file that no longer exists is saved as empty content. Returns the
    document ids that were processed.
    """
    processed: list[str] = []
    for path in paths:
        document_id = session.document_id_for(path)
        if session.is_ignored(document_id):
            continue
        if not session.ledger.active_regions(document_id) and document_id not in session.ledger.histories():
            continue
        file = Path(path)
        try:
            text = file.read_text(encoding="utf-8") if file.exists() else ""
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable %s: %s", path, exc)
            continue
        session.on_document_saved(document_id, text)
        processed.append(document_id)
    return processed
