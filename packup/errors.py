"""Exceptions raised while generating assets.

Every failure that aborts a generation cycle is a BuildError, so callers (the CLI,
the dev server) only need to catch one type to report an authoring error.
"""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Error during asset generation with file context.

    Attributes:
        source_path: Path to the file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path | str,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = Path(source_path)
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


class EntrypointError(BuildError):
    """The entrypoint is not a usable HTML file."""


class ToolError(BuildError):
    """An external tool (esbuild, sass) is missing or exited with an error.

    Attributes:
        tool: Name of the executable that failed.
    """

    def __init__(self, tool: str, source_path: Path | str, message: str):
        self.tool = tool
        super().__init__(source_path, f"{tool} failed: {message}")
