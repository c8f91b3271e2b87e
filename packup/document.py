"""The HTML entrypoint of a build.

EntryDocument parses the entrypoint once per build cycle. Assets discovered from
it rewrite their nodes in the shared tree, and the document is serialized last so
the emitted page points at every renamed asset.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

from bs4 import BeautifulSoup, UnicodeDammit

from .artifacts import Artifact, GenerationParams
from .assets import Asset, extract_referenced_assets
from .errors import BuildError, EntrypointError
from .protocols import Logger
from .tools import Toolchain

HTML_EXTENSION = ".html"
DOCTYPE = b"<!DOCTYPE html>"


def page_name_of(path: str) -> tuple[str, str]:
    """Return ``(filename, page_name)`` for an entrypoint path.

    Raises:
        EntrypointError: If the filename doesn't end in .html or has nothing before it.
    """
    filename = os.path.basename(path)
    if not filename.endswith(HTML_EXTENSION):
        raise EntrypointError(path, "Entrypoint needs to be an html file")
    page_name = filename[: -len(HTML_EXTENSION)]
    if not page_name:
        raise EntrypointError(path, "Bad entrypoint name")
    return filename, page_name


def decode_html(data: bytes, path: str | Path) -> str:
    """Decode entrypoint bytes, trying UTF-8 before the declared or sniffed encoding.

    Raises:
        BuildError: If no encoding can decode the file.
    """
    markup = UnicodeDammit(data, ["utf-8"], is_html=True).unicode_markup
    if markup is None:
        raise BuildError(path, "Cannot decode entrypoint: unknown text encoding")
    return markup


class EntryDocument:
    """A parsed HTML entrypoint.

    Attributes:
        path: Path of the entrypoint as given.
        base: Absolute directory that relative references resolve against.
        filename: Basename of the entrypoint, used as the output name.
        page_name: Filename without the .html extension.
    """

    media_type = "text/html"

    def __init__(self, html: str, path: str | Path):
        self.path = str(path)
        self.filename, self.page_name = page_name_of(self.path)
        self.base = os.path.dirname(os.path.abspath(self.path))
        self.doc = BeautifulSoup(html, "html5lib")

    @classmethod
    def create(cls, path: str | Path, logger: Logger) -> EntryDocument:
        """Read and parse the entrypoint at ``path``.

        Raises:
            EntrypointError: If the path is not a usable .html filename.
            BuildError: If the file cannot be read.
        """
        page_name_of(str(path))
        logger.debug("Reading", path)
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise BuildError(
                path, f"Cannot read entrypoint: {exc.strerror or exc}", exc
            ) from exc
        return cls(decode_html(data, path), path)

    def extract_referenced_assets(
        self, toolchain: Toolchain, logger: Logger
    ) -> Iterator[Asset]:
        return extract_referenced_assets(self.doc, toolchain, logger)

    def insert_script_tag(self, src: str) -> None:
        """Append ``<script src>`` as the last child of ``<body>``."""
        script = self.doc.new_tag("script", attrs={"src": src})
        self.doc.body.append(script)

    def watch_paths(self) -> list[str]:
        return [os.path.abspath(self.path)]

    def serialize(self) -> bytes:
        root = self.doc.html if self.doc.html is not None else self.doc
        return DOCTYPE + str(root).encode("utf-8")

    def produce(self, params: GenerationParams) -> list[Artifact]:
        return [Artifact(self.filename, self.serialize(), self.media_type)]
