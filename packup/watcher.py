"""File watching for the rebuild loop.

Blocks until one of an exact set of files changes. The observer is scheduled on
the parent directory of every watched file (non-recursively) and events for any
other file are ignored. Only writes, creations, deletions and moves count:
opening or reading a file does not, since every build reads the files it watches.

Key functions:
- wait_for_change: Block until the first watched file changes.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterable, Sequence
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

_CHANGE_EVENT_TYPES = {
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
}


def _normalize(path: str | bytes) -> str:
    return os.path.realpath(os.fsdecode(path))


class _WatchPathHandler(FileSystemEventHandler):
    """Records the first event that touches one of the watched paths."""

    def __init__(self, paths: Iterable[str]):
        super().__init__()
        self.paths = {_normalize(path) for path in paths}
        self.changed: str | None = None
        self.triggered = threading.Event()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _CHANGE_EVENT_TYPES:
            return
        if self.triggered.is_set():
            return
        for candidate in (event.src_path, getattr(event, "dest_path", "")):
            if candidate and _normalize(candidate) in self.paths:
                self.changed = os.fsdecode(candidate)
                self.triggered.set()
                return


def wait_for_change(
    paths: Sequence[str],
    stop_event: threading.Event | None = None,
    poll_interval: float = 0.2,
) -> str | None:
    """Block until one of ``paths`` changes.

    The observer is stopped as soon as the first change arrives, so later
    events of the same burst are not seen.

    Args:
        paths: Files to watch.
        stop_event: When set, stop waiting and return None.
        poll_interval: Seconds between checks of ``stop_event``.

    Returns:
        The changed path, or None if ``stop_event`` was set first.
    """
    handler = _WatchPathHandler(paths)
    observer = Observer()
    for directory in sorted({str(Path(path).parent) for path in handler.paths}):
        if os.path.isdir(directory):
            observer.schedule(handler, directory, recursive=False)
    observer.start()
    try:
        while not handler.triggered.wait(poll_interval):
            if stop_event is not None and stop_event.is_set():
                return None
        return handler.changed
    finally:
        observer.stop()
        observer.join()
