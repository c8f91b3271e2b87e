from pathlib import Path

from click.testing import CliRunner

from packup import __version__
from packup.cli import cli


def write_page(root: Path) -> None:
    (root / "style.css").write_text("body { margin: 0 }", encoding="utf-8")
    (root / "logo.png").write_bytes(b"png")
    (root / "index.html").write_text(
        '<link rel="stylesheet" href="style.css"><img src="logo.png">',
        encoding="utf-8",
    )


def test_cli_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_build_defaults_to_index_html(monkeypatch, tmp_path):
    write_page(tmp_path)
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli, ["build"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "Built 3 files into" in result.output
    dist = tmp_path / "dist"
    html = (dist / "index.html").read_text(encoding="utf-8")
    assert html.startswith("<!DOCTYPE html>")
    css = [p.name for p in dist.glob("index.*.css")]
    assert len(css) == 1
    assert f'href="{css[0]}"' in html


def test_cli_build_options_and_config(monkeypatch, tmp_path):
    write_page(tmp_path)
    static = tmp_path / "public"
    static.mkdir()
    (static / "robots.txt").write_text("User-agent: *", encoding="utf-8")
    (tmp_path / "packup.yaml").write_text(
        "public_url: /site/\nstatic_dir: public\n", encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(
        cli, ["build", "index.html", "--dist-dir", "out"], catch_exceptions=False
    )

    assert result.exit_code == 0
    out = tmp_path / "out"
    assert (out / "robots.txt").exists()
    assert 'src="/site/index.' in (out / "index.html").read_text(encoding="utf-8")


def test_cli_build_failure_exits_with_error(monkeypatch, tmp_path):
    (tmp_path / "index.html").write_text(
        '<link rel="stylesheet" href="missing.css">', encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli, ["build"])

    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "missing.css" in result.output
    assert "Cannot read referenced file" in result.output


def test_cli_build_accepts_latin1_entrypoint(monkeypatch, tmp_path):
    (tmp_path / "index.html").write_bytes(b"<p>caf\xe9</p>")
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli, ["build"], catch_exceptions=False)

    assert result.exit_code == 0
    html = (tmp_path / "dist" / "index.html").read_bytes()
    assert html.startswith(b"<!DOCTYPE html>")
    assert b"<p>caf" in html


def test_cli_build_rejects_non_html_entrypoint(monkeypatch, tmp_path):
    (tmp_path / "index.htm").write_text("<p>x</p>", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli, ["build", "index.htm"])

    assert result.exit_code == 1
    assert "Entrypoint needs to be an html file" in result.output


def test_cli_serve(monkeypatch, tmp_path):
    (tmp_path / "packup.yaml").write_text("livereload_port: 4001\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    called = {}

    class DummyServer:
        def __init__(self, entrypoints, **kwargs):
            called["entrypoints"] = entrypoints
            called.update(kwargs)

        def start(self):
            called["started"] = True

    monkeypatch.setattr("packup.server.DevServer", DummyServer)

    result = CliRunner().invoke(
        cli, ["serve", "--port", "5050", "--open", "--public-url", "/"], catch_exceptions=False
    )

    assert result.exit_code == 0
    assert called["started"] is True
    assert called["entrypoints"] == [Path("index.html")]
    assert called["http_port"] == 5050
    assert called["livereload_port"] == 4001
    assert called["public_url"] == "/"
    assert called["open_browser"] is True
    assert called["static_dir"] is None


def test_cli_serve_reports_build_errors(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli, ["serve", "a/index.html", "b/index.html"])

    assert result.exit_code == 1
    assert "Duplicate basename" in result.output
