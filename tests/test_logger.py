import pytest

from packup.logger import ConsoleLogger
from packup.protocols import Logger


def test_info_level_hides_debug(capsys):
    logger = ConsoleLogger()
    logger.debug("Reading", "index.html")
    logger.log("index.html bundled in", "12ms")
    logger.warn("careful")
    logger.error("broken")

    captured = capsys.readouterr()
    assert captured.out == ""
    lines = captured.err.splitlines()
    assert lines[0] == "index.html bundled in 12ms"
    assert "WARN" in lines[1] and lines[1].endswith("careful")
    assert "ERROR" in lines[2] and lines[2].endswith("broken")
    assert len(lines) == 3


def test_debug_level_shows_everything(capsys):
    ConsoleLogger("debug").debug("Reading", "index.html")
    err = capsys.readouterr().err
    assert "DEBUG" in err
    assert "Reading index.html" in err


def test_error_level_only_shows_errors(capsys):
    logger = ConsoleLogger("error")
    logger.log("hidden")
    logger.warn("hidden")
    logger.error("shown")
    assert "hidden" not in capsys.readouterr().err


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError, match="Unknown log level"):
        ConsoleLogger("verbose")


def test_console_logger_satisfies_protocol():
    assert isinstance(ConsoleLogger(), Logger)
