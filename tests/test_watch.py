import os
import threading

from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileOpenedEvent,
)

from packup.watcher import _WatchPathHandler, wait_for_change


def test_handler_ignores_unwatched_files(tmp_path):
    watched = tmp_path / "index.html"
    handler = _WatchPathHandler([str(watched)])

    handler.on_any_event(FileModifiedEvent(str(tmp_path / "other.html")))
    assert not handler.triggered.is_set()

    handler.on_any_event(FileModifiedEvent(str(watched)))
    assert handler.triggered.is_set()
    assert handler.changed == str(watched)


def test_handler_ignores_reads_and_directories(tmp_path):
    watched = tmp_path / "style.css"
    handler = _WatchPathHandler([str(watched)])

    handler.on_any_event(FileOpenedEvent(str(watched)))
    handler.on_any_event(DirModifiedEvent(str(tmp_path)))
    assert not handler.triggered.is_set()

    handler.on_any_event(FileClosedEvent(str(watched)))
    assert handler.triggered.is_set()


def test_handler_matches_move_destination(tmp_path):
    watched = tmp_path / "app.js"
    handler = _WatchPathHandler([str(watched)])
    handler.on_any_event(FileMovedEvent(str(tmp_path / ".app.js.swp"), str(watched)))
    assert handler.changed == str(watched)


def test_handler_keeps_first_change(tmp_path):
    first, second = tmp_path / "a.css", tmp_path / "b.css"
    handler = _WatchPathHandler([str(first), str(second)])
    handler.on_any_event(FileCreatedEvent(str(first)))
    handler.on_any_event(FileModifiedEvent(str(second)))
    assert handler.changed == str(first)


def test_wait_for_change_returns_changed_file(tmp_path):
    watched = tmp_path / "index.html"
    watched.write_text("<p>a</p>")
    stop = threading.Event()
    writer = threading.Timer(0.5, lambda: watched.write_text("<p>b</p>"))
    guard = threading.Timer(10, stop.set)
    writer.start()
    guard.start()
    try:
        changed = wait_for_change([str(watched)], stop, poll_interval=0.05)
    finally:
        writer.cancel()
        guard.cancel()

    assert changed is not None
    assert os.path.realpath(changed) == os.path.realpath(watched)


def test_wait_for_change_returns_none_when_stopped(tmp_path):
    watched = tmp_path / "index.html"
    watched.write_text("<p>a</p>")
    stop = threading.Event()
    stop.set()
    assert wait_for_change([str(watched)], stop, poll_interval=0.01) is None
