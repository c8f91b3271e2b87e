"""Building entrypoints into a distribution directory.

This module contains the `packup build` workflow: it loads configuration,
generates the artifacts of every entrypoint, adds the files of the static
directory, and writes everything to the output directory.

Key functions:
- build: Build one or more entrypoints into a directory.
- load_config: Loads configuration from packup.yaml.
- iter_static_artifacts: Artifacts for the files of a static directory.
- write_artifacts: Write artifacts to disk.
"""

from __future__ import annotations

import mimetypes
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .artifacts import Artifact
from .generate import DEFAULT_LIVERELOAD_PORT, GenerateOptions, generate_assets
from .logger import ConsoleLogger
from .protocols import Logger
from .tools import Toolchain
from .utils import byte_size, check_unique_entrypoints

CONFIG_FILENAME = "packup.yaml"

DEFAULT_CONFIG = {
    "dist_dir": "dist",
    "static_dir": None,
    "public_url": ".",
    "port": 1234,
    "livereload_port": DEFAULT_LIVERELOAD_PORT,
    "log_level": "info",
}


@dataclass
class BuildResult:
    """Result of a build operation.

    Attributes:
        artifacts: Every artifact written, in write order.
        output_dir: Directory the artifacts were written to.
    """

    artifacts: list[Artifact] = field(default_factory=list)
    output_dir: Path = Path("dist")

    @property
    def total_size(self) -> int:
        return sum(artifact.size for artifact in self.artifacts)


def load_config(project_root: Path) -> dict[str, Any]:
    """Load configuration from packup.yaml.

    Args:
        project_root: Directory containing packup.yaml.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = project_root / CONFIG_FILENAME
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config.update(loaded)
    return config


def iter_static_artifacts(static_dir: Path) -> Iterator[Artifact]:
    """Yield an artifact for every file under ``static_dir``.

    Names are POSIX paths relative to ``static_dir``; hidden files are skipped.
    """
    for path in sorted(static_dir.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(static_dir)
        if any(part.startswith(".") for part in relative.parts):
            continue
        media_type, _ = mimetypes.guess_type(path.name)
        yield Artifact(
            relative.as_posix(),
            path.read_bytes(),
            media_type or "application/octet-stream",
        )


def write_artifacts(
    artifacts: Iterable[Artifact], output_dir: Path, logger: Logger
) -> Iterator[Artifact]:
    """Write each artifact below ``output_dir`` as it arrives and pass it on."""
    for artifact in artifacts:
        target = output_dir / artifact.name
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.log(f"Writing {target} {byte_size(artifact.size)}")
        target.write_bytes(artifact.data)
        yield artifact


def build(
    entrypoints: Sequence[str | Path],
    output_dir: Path,
    options: GenerateOptions | None = None,
    static_dir: Path | None = None,
    *,
    toolchain: Toolchain | None = None,
    logger: Logger | None = None,
) -> BuildResult:
    """Build entrypoints into ``output_dir``.

    Args:
        entrypoints: HTML entrypoints; their basenames must be unique.
        output_dir: Directory the artifacts are written to.
        options: Generation options.
        static_dir: Optional directory copied as-is into the output.
        toolchain: Bundler, stylesheet compiler and dependency query.
        logger: Logger for progress and warnings.

    Returns:
        BuildResult with every artifact written.

    Raises:
        BuildError: If any entrypoint fails to build.
    """
    logger = logger or ConsoleLogger()
    options = options or GenerateOptions()
    check_unique_entrypoints(entrypoints)
    output_dir.mkdir(parents=True, exist_ok=True)

    result = BuildResult(output_dir=output_dir)
    for entrypoint in entrypoints:
        artifacts, _ = generate_assets(
            entrypoint, options, toolchain=toolchain, logger=logger
        )
        # A failed cycle raises before anything of it reaches the disk.
        completed = list(artifacts)
        result.artifacts.extend(write_artifacts(completed, output_dir, logger))

    if static_dir is not None:
        result.artifacts.extend(
            write_artifacts(iter_static_artifacts(static_dir), output_dir, logger)
        )
    return result
