"""External tools used by the asset pipeline.

Scripts are bundled with the esbuild command line tool, which also answers the
module graph query used for watching, and SCSS is compiled with the sass command
line tool. Each executable is looked up on PATH first and then in the project's
node_modules/.bin.

Key classes:
- EsbuildBundler: Bundler backed by ``esbuild --bundle``.
- EsbuildDependencyQuery: DependencyQuery backed by an esbuild metafile.
- SassCompiler: StylesheetCompiler backed by ``sass --stdin``.
- Toolchain: The three collaborators handed to the pipeline together.
"""

from __future__ import annotations

import json
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from .errors import ToolError
from .protocols import Bundler, DependencyQuery, StylesheetCompiler

# Two characters minimum so Windows drive letters are not taken for schemes.
_SPECIFIER_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]+):")


def find_executable(name: str, project_root: Path | None = None) -> str | None:
    """Locate a node command line tool.

    A global install on PATH wins over the copy ``npm install -D`` puts in the
    project's ``node_modules/.bin``.

    Args:
        name: Command to look up ('esbuild' or 'sass').
        project_root: Project whose node_modules/.bin is searched second.

    Returns:
        Path of the command, or None when neither location has it.

    Examples:
        >>> find_executable('esbuild')
        '/usr/local/bin/esbuild'

        >>> find_executable('sass', Path('/srv/site'))  # no global sass
        '/srv/site/node_modules/.bin/sass'
    """
    found = shutil.which(name)
    if found is None and project_root is not None:
        local = project_root / "node_modules" / ".bin" / name
        found = str(local) if local.is_file() else None
    return found


def _require_executable(name: str, project_root: Path | None, source: Path) -> str:
    executable = find_executable(name, project_root)
    if not executable:
        raise ToolError(
            name,
            source,
            f"{name} not found. Install with `npm install -g {name}` "
            f"or `npm install -D {name}` in the project.",
        )
    return executable


def _decode(output: bytes | str | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


class EsbuildBundler:
    """Bundles a script and everything it imports into one ES module."""

    def __init__(self, project_root: Path | None = None):
        self.project_root = project_root

    def bundle(self, entry: Path) -> bytes:
        esbuild = _require_executable("esbuild", self.project_root, entry)
        cmd = [esbuild, str(entry), "--bundle", "--format=esm", "--log-level=error"]
        result = subprocess.run(cmd, capture_output=True, cwd=str(entry.parent))
        if result.returncode != 0:
            raise ToolError("esbuild", entry, _decode(result.stderr).strip())
        return result.stdout


class EsbuildDependencyQuery:
    """Lists the module graph of a script from an esbuild metafile.

    Inputs that live on disk are returned as absolute ``file:`` URLs; inputs
    resolved by other namespaces keep their ``namespace:`` prefix.
    """

    def __init__(self, project_root: Path | None = None):
        self.project_root = project_root

    def dependency_graph(self, entry: Path) -> list[str]:
        esbuild = _require_executable("esbuild", self.project_root, entry)
        cwd = entry.parent
        with tempfile.TemporaryDirectory(prefix="packup-") as tmp:
            metafile = Path(tmp) / "meta.json"
            cmd = [
                esbuild,
                str(entry),
                "--bundle",
                "--format=esm",
                "--log-level=error",
                f"--outfile={Path(tmp) / 'out.js'}",
                f"--metafile={metafile}",
            ]
            result = subprocess.run(cmd, capture_output=True, cwd=str(cwd))
            if result.returncode != 0:
                raise ToolError("esbuild", entry, _decode(result.stderr).strip())
            meta = json.loads(metafile.read_text(encoding="utf-8"))

        specifiers = []
        for key in meta.get("inputs", {}):
            if _SPECIFIER_SCHEME_RE.match(key):
                specifiers.append(key)
            else:
                specifiers.append((cwd / key).resolve().as_uri())
        return specifiers


class SassCompiler:
    """Compiles SCSS source text to CSS."""

    def __init__(self, project_root: Path | None = None):
        self.project_root = project_root

    def compile(self, source: str, load_path: Path | None = None) -> bytes:
        origin = load_path or Path.cwd()
        sass = _require_executable("sass", self.project_root, origin)
        cmd = [sass, "--stdin", "--no-source-map"]
        if load_path is not None:
            cmd.append(f"--load-path={load_path}")
        result = subprocess.run(cmd, input=source.encode("utf-8"), capture_output=True)
        if result.returncode != 0:
            raise ToolError("sass", origin, _decode(result.stderr).strip())
        return result.stdout


def is_local_specifier(specifier: str) -> bool:
    """Return True for ``file:`` URLs and plain filesystem paths."""
    match = _SPECIFIER_SCHEME_RE.match(specifier)
    return match is None or match.group(1).lower() == "file"


def specifier_to_path(specifier: str) -> str:
    """Convert a local specifier to an absolute filesystem path."""
    if specifier.lower().startswith("file:"):
        return url2pathname(unquote(urlparse(specifier).path))
    return str(Path(specifier).resolve())


def local_dependency_paths(query: DependencyQuery, entry: Path) -> list[str]:
    """Return the local files in the module graph of ``entry``.

    Network specifiers (and any other non-file namespace) are dropped. Errors
    from the query propagate; they are not retried.
    """
    return [
        specifier_to_path(specifier)
        for specifier in query.dependency_graph(entry)
        if is_local_specifier(specifier)
    ]


@dataclass
class Toolchain:
    """The external collaborators used to produce script and SCSS artifacts.

    Attributes:
        bundler: Bundles script entrypoints.
        compiler: Compiles preprocessed stylesheets.
        dependencies: Answers module graph queries for watching.
    """

    bundler: Bundler
    compiler: StylesheetCompiler
    dependencies: DependencyQuery

    @classmethod
    def default(cls, project_root: Path | None = None) -> Toolchain:
        """Create the esbuild/sass toolchain.

        Args:
            project_root: Directory whose node_modules/.bin is searched after PATH.
        """
        return cls(
            bundler=EsbuildBundler(project_root),
            compiler=SassCompiler(project_root),
            dependencies=EsbuildDependencyQuery(project_root),
        )
