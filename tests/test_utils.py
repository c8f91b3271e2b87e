import hashlib
from pathlib import Path

import pytest

from packup import utils
from packup.errors import EntrypointError


def test_digest_is_stable_md5():
    assert utils.digest(b"body{}") == hashlib.md5(b"body{}").hexdigest()
    assert utils.digest(b"body{}") == utils.digest(b"body{}")
    assert utils.digest(b"body{}") != utils.digest(b"body{ }")


def test_is_local_url():
    assert utils.is_local_url("style.css")
    assert utils.is_local_url("/abs/style.css")
    assert utils.is_local_url("../up/style.css")
    assert not utils.is_local_url("http://example.com/a.css")
    assert not utils.is_local_url("https://example.com/a.css")


def test_url_join_plain_prefixes():
    assert utils.url_join(".", "index.abc.css") == "index.abc.css"
    assert utils.url_join("", "index.abc.css") == "index.abc.css"
    assert utils.url_join("/", "index.abc.css") == "/index.abc.css"
    assert utils.url_join("/static/", "index.abc.css") == "/static/index.abc.css"
    assert utils.url_join("assets", "index.abc.css") == "assets/index.abc.css"


def test_url_join_keeps_scheme_slashes():
    assert (
        utils.url_join("https://cdn.example.com/app/", "index.abc.js")
        == "https://cdn.example.com/app/index.abc.js"
    )
    assert (
        utils.url_join("https://cdn.example.com", "index.abc.js")
        == "https://cdn.example.com/index.abc.js"
    )


def test_byte_size():
    assert utils.byte_size(12) == "12B"
    assert utils.byte_size(1024) == "1024B"
    assert utils.byte_size(1700) == "1.66KB"
    assert utils.byte_size(1300000) == "1.24MB"


def test_check_unique_entrypoints():
    utils.check_unique_entrypoints(["index.html", "about/about.html"])
    with pytest.raises(EntrypointError) as exc_info:
        utils.check_unique_entrypoints([Path("index.html"), Path("docs/index.html")])
    assert "Duplicate basename" in exc_info.value.message
    assert exc_info.value.source_path == Path("docs/index.html")
