"""Value types shared by the asset pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Artifact:
    """One output file of a build.

    ``last_modified`` is always the epoch so two builds of identical inputs are
    identical byte for byte.

    Attributes:
        name: Output filename, relative to the output root.
        data: File content.
        media_type: MIME type used when serving the file.
        last_modified: Fixed timestamp (milliseconds since the epoch).
    """

    name: str
    data: bytes
    media_type: str
    last_modified: int = 0

    @property
    def size(self) -> int:
        return len(self.data)

    def renamed(self, name: str) -> Artifact:
        """Return a copy of this artifact under another name."""
        return Artifact(name, self.data, self.media_type, self.last_modified)


@dataclass(frozen=True)
class GenerationParams:
    """Per-cycle context handed to every asset when it produces its artifacts.

    Attributes:
        page_name: Entrypoint filename without the .html extension.
        base: Directory that relative asset references resolve against.
        path_prefix: Public URL prefix written into rewritten references.
    """

    page_name: str
    base: str
    path_prefix: str
