"""Assets referenced from an HTML entrypoint.

An asset is the unit of build output. Each one is discovered from a node of the
entrypoint's document, reports the local files it depends on so they can be
watched, and produces one or more content-addressed artifacts. Producing the
artifacts rewrites the reference on the originating node; discovery never
mutates the document.

Key classes:
- Stylesheet: ``<link rel="stylesheet">`` pointing at a CSS file.
- PreprocessedStylesheet: ``<link rel="stylesheet">`` pointing at an SCSS file.
- Script: ``<script src>``, bundled with the toolchain's bundler.
- Image: ``<img>``/``<source>`` with ``src`` and/or ``srcset``.

Key functions:
- extract_referenced_assets: Discover every asset of a document, in order.
"""

from __future__ import annotations

import mimetypes
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path

from bs4 import BeautifulSoup, Tag

from .artifacts import Artifact, GenerationParams
from .errors import BuildError
from .protocols import Bundler, DependencyQuery, Logger, StylesheetCompiler
from .tools import Toolchain, local_dependency_paths
from .utils import digest, is_local_url, url_join

PREPROCESSED_STYLESHEET_EXTENSION = ".scss"

# A srcset candidate's URL: the first token after the start or a comma.
_SRCSET_URL_RE = re.compile(r"(^|,)(\s*)([^\s,]+)")


def attribute(node: Tag, name: str) -> str | None:
    """Return an attribute as a string (multi-valued ones like rel are joined)."""
    value = node.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value


def resolve_reference(base: str | Path, reference: str) -> Path:
    """Resolve a document reference against the entrypoint's directory."""
    return Path(base) / reference.lstrip("/")


def parse_srcset(srcset: str) -> list[str]:
    """Return the URL of every candidate in a srcset, dropping descriptors."""
    return [
        candidate.split()[0]
        for candidate in srcset.split(",")
        if candidate.strip()
    ]


def replace_srcset_url(srcset: str, old: str, new: str) -> str:
    """Replace candidate URLs equal to ``old``, keeping descriptors and spacing.

    Examples:
        >>> replace_srcset_url("a.png 1x, b.png 2x", "b.png", "page.f00.png")
        'a.png 1x, page.f00.png 2x'
    """

    def repl(match: re.Match) -> str:
        if match.group(3) != old:
            return match.group(0)
        return f"{match.group(1)}{match.group(2)}{new}"

    return _SRCSET_URL_RE.sub(repl, srcset)


def _read_source(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise BuildError(
            path, f"Cannot read referenced file: {exc.strerror or exc}", exc
        ) from exc


class Asset(ABC):
    """Base class for assets discovered in the entrypoint.

    Subclasses keep a reference to the node they were discovered from and
    rewrite only that node, so several assets can produce concurrently.
    """

    node: Tag

    @abstractmethod
    def watch_paths(self, base: str) -> list[str]:
        """Return the absolute local paths this asset is built from.

        Args:
            base: Directory of the entrypoint.
        """
        ...

    @abstractmethod
    def produce(self, params: GenerationParams) -> list[Artifact]:
        """Produce the artifacts and rewrite the node's reference(s).

        Args:
            params: Page name, base directory and public path prefix.

        Returns:
            Artifacts, in the order they were produced.
        """
        ...


class Stylesheet(Asset):
    """A ``<link rel="stylesheet">`` pointing at a local CSS file."""

    media_type = "text/css"

    def __init__(self, href: str, node: Tag):
        self.href = href
        self.node = node
        self.dest: str | None = None

    @classmethod
    def from_node(
        cls, link: Tag, compiler: StylesheetCompiler, logger: Logger
    ) -> Stylesheet | PreprocessedStylesheet | None:
        """Recognize a stylesheet link, or return None for anything else."""
        if attribute(link, "rel") != "stylesheet":
            return None
        href = attribute(link, "href")
        if not href:
            logger.warn(
                "<link> tag has rel=stylesheet attribute, but doesn't have href attribute"
            )
            return None
        if not is_local_url(href):
            return None
        stylesheet = cls(href, link)
        if href.endswith(PREPROCESSED_STYLESHEET_EXTENSION):
            return PreprocessedStylesheet(stylesheet, compiler)
        return stylesheet

    def source_path(self, base: str | Path) -> Path:
        return resolve_reference(base, self.href)

    def watch_paths(self, base: str) -> list[str]:
        return [str(self.source_path(base))]

    def publish(self, params: GenerationParams, source: bytes, output: bytes) -> Artifact:
        """Name the output after ``source``, rewrite ``href`` and wrap ``output``."""
        self.dest = f"{params.page_name}.{digest(source)}.css"
        self.node["href"] = url_join(params.path_prefix, self.dest)
        return Artifact(self.dest, output, self.media_type)

    def produce(self, params: GenerationParams) -> list[Artifact]:
        data = _read_source(self.source_path(params.base))
        return [self.publish(params, data, data)]


class PreprocessedStylesheet(Asset):
    """A stylesheet link whose source must be compiled before publishing.

    The output name is derived from the raw source so it is stable regardless
    of compiler version, and always carries the .css extension.
    """

    def __init__(self, stylesheet: Stylesheet, compiler: StylesheetCompiler):
        self.stylesheet = stylesheet
        self.compiler = compiler

    @property
    def node(self) -> Tag:
        return self.stylesheet.node

    @property
    def href(self) -> str:
        return self.stylesheet.href

    @property
    def dest(self) -> str | None:
        return self.stylesheet.dest

    def watch_paths(self, base: str) -> list[str]:
        # TODO: include files pulled in through @use/@import once sass can report them.
        return self.stylesheet.watch_paths(base)

    def produce(self, params: GenerationParams) -> list[Artifact]:
        path = self.stylesheet.source_path(params.base)
        source = _read_source(path)
        try:
            text = source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BuildError(path, f"Stylesheet is not valid UTF-8: {exc.reason}", exc) from exc
        css = self.compiler.compile(text, load_path=path.parent)
        return [self.stylesheet.publish(params, source, css)]


class Script(Asset):
    """A ``<script src>`` pointing at a local JavaScript or TypeScript module."""

    media_type = "application/javascript"

    def __init__(
        self,
        src: str,
        node: Tag,
        bundler: Bundler,
        dependencies: DependencyQuery,
    ):
        self.src = src
        self.node = node
        self.bundler = bundler
        self.dependencies = dependencies
        self.dest: str | None = None

    @classmethod
    def from_node(cls, script: Tag, toolchain: Toolchain) -> Script | None:
        """Recognize an external local script; inline and remote ones are skipped."""
        src = attribute(script, "src")
        if not src or not is_local_url(src):
            return None
        return cls(src, script, toolchain.bundler, toolchain.dependencies)

    def source_path(self, base: str | Path) -> Path:
        return resolve_reference(base, self.src)

    def watch_paths(self, base: str) -> list[str]:
        return local_dependency_paths(self.dependencies, self.source_path(base))

    def produce(self, params: GenerationParams) -> list[Artifact]:
        data = self.bundler.bundle(self.source_path(params.base))
        self.dest = f"{params.page_name}.{digest(data)}.js"
        self.node["src"] = url_join(params.path_prefix, self.dest)
        return [Artifact(self.dest, data, self.media_type)]


class Image(Asset):
    """An ``<img>`` or ``<source>`` with local ``src``/``srcset`` references."""

    def __init__(self, sources: list[str], node: Tag):
        self.sources = sources
        self.node = node
        self.dests: list[str] = []

    @classmethod
    def from_node(cls, node: Tag, logger: Logger) -> Image | None:
        """Collect the node's local sources, or return None if there are none."""
        src = attribute(node, "src")
        srcset = attribute(node, "srcset")

        if node.name == "img" and not src:
            logger.warn("<img> tag doesn't have src attribute")
            return None

        sources: list[str] = []
        if src and is_local_url(src):
            sources.append(src)
        if srcset:
            sources.extend(url for url in parse_srcset(srcset) if is_local_url(url))

        sources = list(dict.fromkeys(sources))
        if not sources:
            return None
        return cls(sources, node)

    def watch_paths(self, base: str) -> list[str]:
        return [str(resolve_reference(base, src)) for src in self.sources]

    def produce(self, params: GenerationParams) -> list[Artifact]:
        artifacts = []
        for src in self.sources:
            data = _read_source(resolve_reference(params.base, src))
            extension = Path(src).suffix.lstrip(".")
            dest = f"{params.page_name}.{digest(data)}"
            if extension:
                dest = f"{dest}.{extension}"
            published = url_join(params.path_prefix, dest)

            if attribute(self.node, "src") == src:
                self.node["src"] = published
            srcset = attribute(self.node, "srcset")
            if srcset:
                rewritten = replace_srcset_url(srcset, src, published)
                if rewritten != srcset:
                    self.node["srcset"] = rewritten

            self.dests.append(dest)
            artifacts.append(Artifact(dest, data, _image_media_type(extension)))
        return artifacts


def _image_media_type(extension: str) -> str:
    return mimetypes.types_map.get(f".{extension.lower()}", f"image/{extension}")


def extract_referenced_assets(
    doc: BeautifulSoup, toolchain: Toolchain, logger: Logger
) -> Iterator[Asset]:
    """Yield the assets referenced by ``doc``.

    Scripts come first, then stylesheets, then images (all ``<img>`` before all
    ``<source>``), each group in document order.
    """
    yield from _extract_scripts(doc, toolchain)
    yield from _extract_stylesheets(doc, toolchain, logger)
    yield from _extract_images(doc, logger)


def _extract_scripts(doc: BeautifulSoup, toolchain: Toolchain) -> Iterator[Asset]:
    for script in doc.find_all("script"):
        asset = Script.from_node(script, toolchain)
        if asset:
            yield asset


def _extract_stylesheets(
    doc: BeautifulSoup, toolchain: Toolchain, logger: Logger
) -> Iterator[Asset]:
    for link in doc.find_all("link"):
        asset = Stylesheet.from_node(link, toolchain.compiler, logger)
        if asset:
            yield asset


def _extract_images(doc: BeautifulSoup, logger: Logger) -> Iterator[Asset]:
    for node in [*doc.find_all("img"), *doc.find_all("source")]:
        asset = Image.from_node(node, logger)
        if asset:
            yield asset
