"""Console logger for Packup.

A single ConsoleLogger is created by the CLI and passed explicitly to every
component that reports progress, so the log level is configured in one place
and nothing reaches for module-global state.
"""

from __future__ import annotations

import click

LEVELS = {
    "debug": 10,
    "info": 20,
    "warn": 30,
    "error": 40,
}


class ConsoleLogger:
    """Writes log lines to stderr through click.

    Attributes:
        level: Name of the minimum level that is printed.
    """

    def __init__(self, level: str = "info"):
        if level not in LEVELS:
            raise ValueError(
                f"Unknown log level: {level} (expected one of {', '.join(LEVELS)})"
            )
        self.level = level
        self._threshold = LEVELS[level]

    def debug(self, *parts: object) -> None:
        self._emit("debug", click.style("DEBUG", fg="bright_black"), parts)

    def log(self, *parts: object) -> None:
        self._emit("info", None, parts)

    def warn(self, *parts: object) -> None:
        self._emit("warn", click.style("WARN", fg="yellow", bold=True), parts)

    def error(self, *parts: object) -> None:
        self._emit("error", click.style("ERROR", fg="red", bold=True), parts)

    def _emit(self, level: str, prefix: str | None, parts: tuple[object, ...]) -> None:
        if LEVELS[level] < self._threshold:
            return
        message = " ".join(str(part) for part in parts)
        if prefix:
            message = f"{prefix} {message}"
        click.echo(message, err=True)
