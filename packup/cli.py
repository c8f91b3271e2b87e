"""Command-line interface for Packup.

This module defines the CLI commands using Click framework.

Commands:
- build: Build entrypoints into the output directory.
- serve: Run development server with live reload.

Options left unset fall back to packup.yaml in the current directory, then to
the built-in defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from . import __version__
from .errors import BuildError
from .logger import LEVELS, ConsoleLogger

_entrypoints_argument = click.argument(
    "entrypoints", nargs=-1, type=click.Path(dir_okay=False, path_type=Path)
)
_static_dir_option = click.option(
    "--static-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory whose files are copied/served as-is",
)
_public_url_option = click.option(
    "--public-url", help="URL prefix for rewritten asset references (default: .)"
)
_log_level_option = click.option(
    "--log-level", type=click.Choice(list(LEVELS)), help="Minimum log level"
)


@click.group()
@click.version_option(version=__version__, prog_name="packup")
def cli():
    """Packup: content-addressed asset pipeline for HTML entrypoints."""


@cli.command()
@_entrypoints_argument
@click.option(
    "--dist-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory (overrides packup.yaml dist_dir)",
)
@_static_dir_option
@_public_url_option
@_log_level_option
def build(
    entrypoints: tuple[Path, ...],
    dist_dir: Path | None,
    static_dir: Path | None,
    public_url: str | None,
    log_level: str | None,
):
    """Build the entrypoints into the output directory."""
    from .build import build as build_entrypoints
    from .build import load_config
    from .generate import GenerateOptions
    from .tools import Toolchain

    project_root = Path.cwd()
    config = load_config(project_root)
    logger = ConsoleLogger(log_level or config["log_level"])
    output_dir = dist_dir or project_root / config["dist_dir"]
    options = GenerateOptions(public_url=public_url or config["public_url"])

    try:
        result = build_entrypoints(
            list(entrypoints) or [Path("index.html")],
            output_dir,
            options,
            static_dir=static_dir or _optional_path(config["static_dir"]),
            toolchain=Toolchain.default(project_root),
            logger=logger,
        )
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None
    click.echo(f"Built {len(result.artifacts)} files into {result.output_dir}")


@cli.command()
@_entrypoints_argument
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides packup.yaml)",
)
@click.option(
    "--livereload-port",
    type=int,
    required=False,
    help="Port for the live reload server (overrides packup.yaml livereload_port)",
)
@_static_dir_option
@_public_url_option
@click.option("--open", "open_browser", is_flag=True, help="Open the page in a browser")
@_log_level_option
def serve(
    entrypoints: tuple[Path, ...],
    port: int | None,
    livereload_port: int | None,
    static_dir: Path | None,
    public_url: str | None,
    open_browser: bool,
    log_level: str | None,
):
    """Run dev server with live reload.

    Paths that match no artifact are answered with the first entrypoint's page.
    """
    from .build import load_config
    from .server import DevServer
    from .tools import Toolchain

    project_root = Path.cwd()
    config = load_config(project_root)
    logger = ConsoleLogger(log_level or config["log_level"])

    try:
        server = DevServer(
            list(entrypoints) or [Path("index.html")],
            http_port=int(port or config["port"]),
            livereload_port=int(livereload_port or config["livereload_port"]),
            public_url=public_url or config["public_url"],
            static_dir=static_dir or _optional_path(config["static_dir"]),
            open_browser=open_browser,
            toolchain=Toolchain.default(project_root),
            logger=logger,
        )
        server.start()
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None


def _optional_path(value: Any) -> Path | None:
    return Path(value) if value else None


def _report_build_error(exc: BuildError, project_root: Path) -> None:
    """Display a user-friendly build failure."""
    try:
        shown = exc.source_path.resolve().relative_to(project_root.resolve())
    except ValueError:
        shown = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {shown}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def main():
    """Entry point for the CLI application."""
    cli()
