"""Shared fixtures: fake toolchain collaborators and a recording logger."""

from __future__ import annotations

from pathlib import Path

import pytest

from packup.tools import Toolchain


class FakeBundler:
    def __init__(self):
        self.calls: list[Path] = []

    def bundle(self, entry: Path) -> bytes:
        self.calls.append(entry)
        return b"// bundled\n" + entry.read_bytes()


class FakeCompiler:
    def __init__(self):
        self.calls: list[tuple[str, Path | None]] = []

    def compile(self, source: str, load_path: Path | None = None) -> bytes:
        self.calls.append((source, load_path))
        return f"/* compiled */\n{source}".encode("utf-8")


class FakeDependencies:
    """Returns a configured module graph, or just the entry itself."""

    def __init__(self):
        self.graph: dict[Path, list[str]] = {}
        self.calls: list[Path] = []

    def dependency_graph(self, entry: Path) -> list[str]:
        self.calls.append(entry)
        return self.graph.get(entry, [entry.as_uri()])


class RecordingLogger:
    def __init__(self):
        self.records: list[tuple[str, str]] = []

    def _record(self, level, parts):
        self.records.append((level, " ".join(str(p) for p in parts)))

    def debug(self, *parts):
        self._record("debug", parts)

    def log(self, *parts):
        self._record("info", parts)

    def warn(self, *parts):
        self._record("warn", parts)

    def error(self, *parts):
        self._record("error", parts)

    def messages(self, level: str) -> list[str]:
        return [message for lvl, message in self.records if lvl == level]


@pytest.fixture
def toolchain():
    return Toolchain(
        bundler=FakeBundler(),
        compiler=FakeCompiler(),
        dependencies=FakeDependencies(),
    )


@pytest.fixture
def logger():
    return RecordingLogger()
