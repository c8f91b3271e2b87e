"""Utility functions for Packup.

Key functions:
    digest: Content address used in output filenames.
    is_local_url: Tell local references apart from remote ones.
    url_join: Join the public URL prefix with an output filename.
    byte_size: Human readable byte counts for build logs.
    check_unique_entrypoints: Reject entrypoints that would overwrite each other.
"""

from __future__ import annotations

import hashlib
import posixpath
import re
from collections.abc import Iterable
from pathlib import Path

from .errors import EntrypointError

_REMOTE_PREFIXES = ("http://", "https://")
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")

KB = 2**10
MB = 2**20


def digest(data: bytes) -> str:
    """Return the hex digest of ``data`` used for cache-busting filenames."""
    return hashlib.md5(data).hexdigest()


def is_local_url(url: str) -> bool:
    """Return True unless the URL points at an http(s) resource."""
    return not url.startswith(_REMOTE_PREFIXES)


def url_join(prefix: str, name: str) -> str:
    """Join a public URL prefix and a filename with forward slashes.

    Plain prefixes are normalised the way POSIX paths are, so the default
    prefix ``.`` disappears. Prefixes carrying a scheme keep their ``//``.

    Examples:
        >>> url_join(".", "index.abc.css")
        'index.abc.css'

        >>> url_join("/static/", "index.abc.css")
        '/static/index.abc.css'

        >>> url_join("https://cdn.example.com/app", "index.abc.css")
        'https://cdn.example.com/app/index.abc.css'
    """
    if _SCHEME_RE.match(prefix):
        return f"{prefix.rstrip('/')}/{name.lstrip('/')}"
    return posixpath.normpath(posixpath.join(prefix or ".", name))


def byte_size(n: int) -> str:
    """Return a human readable byte size.

    Examples:
        >>> byte_size(1700)
        '1.66KB'

        >>> byte_size(1300000)
        '1.24MB'
    """
    if n > MB:
        return f"{n / MB:.2f}MB"
    if n > KB:
        return f"{n / KB:.2f}KB"
    return f"{n}B"


def check_unique_entrypoints(paths: Iterable[str | Path]) -> None:
    """Raise if two entrypoints share a basename.

    Output artifacts are named after the entrypoint's filename, so two pages with
    the same name in different folders would overwrite each other.

    Raises:
        EntrypointError: If any basename appears more than once.
    """
    seen: dict[str, Path] = {}
    for path in paths:
        path = Path(path)
        if path.name in seen:
            raise EntrypointError(
                path, f"Duplicate basename, already used by {seen[path.name]}"
            )
        seen[path.name] = path
