"""Protocol definitions for Packup.

This module defines the interfaces of the collaborators the asset pipeline
depends on but does not implement itself: the logger, the script bundler, the
stylesheet preprocessor and the module dependency query.

These protocols enable:
- Swapping the esbuild/sass command line tools for other implementations
- Easy testing through fake implementations
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class Logger(Protocol):
    """Protocol for the logging capability passed through the pipeline."""

    @abstractmethod
    def debug(self, *parts: object) -> None: ...

    @abstractmethod
    def log(self, *parts: object) -> None: ...

    @abstractmethod
    def warn(self, *parts: object) -> None: ...

    @abstractmethod
    def error(self, *parts: object) -> None: ...


@runtime_checkable
class Bundler(Protocol):
    """Protocol for bundling a script and its imports into one buffer."""

    @abstractmethod
    def bundle(self, entry: Path) -> bytes:
        """Bundle the script at ``entry``.

        Args:
            entry: Path to the entry script (JavaScript or TypeScript).

        Returns:
            The bundled output.

        Raises:
            ToolError: On unresolved imports or syntax errors.
        """
        ...


@runtime_checkable
class StylesheetCompiler(Protocol):
    """Protocol for compiling preprocessed stylesheets to CSS."""

    @abstractmethod
    def compile(self, source: str, load_path: Path | None = None) -> bytes:
        """Compile stylesheet source text.

        Args:
            source: Preprocessor source (e.g. SCSS).
            load_path: Directory used to resolve relative imports.

        Returns:
            Compiled CSS.
        """
        ...


@runtime_checkable
class DependencyQuery(Protocol):
    """Protocol for listing the module graph of a script."""

    @abstractmethod
    def dependency_graph(self, entry: Path) -> list[str]:
        """Return the specifiers of every module reachable from ``entry``.

        Local modules are returned as ``file:`` URLs or plain paths; anything
        carrying another scheme is treated as a network specifier.

        Raises:
            ToolError: If the underlying query exits with an error.
        """
        ...
