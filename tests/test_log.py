import io
import re

import pytest

from livesrt import log as logmod
from livesrt.log import Logger, LogLevel


@pytest.fixture(autouse=True)
def _fresh_singleton():
    logmod.reset_logger()
    yield
    logmod.reset_logger()


def test_level_values():
    logger = Logger(LogLevel.INFO, io.StringIO())
    names = ["FATAL", "ERROR", "WARNING", "INFO", "DEBUG", "TRACE"]
    chosen = [logger.set_level(name) for name in names]
    assert [lvl.name for lvl in chosen] == names
    assert chosen == list(LogLevel)
    assert LogLevel.FATAL < LogLevel.TRACE


def test_format_line_shape():
    logger = Logger(stream=io.StringIO())
    line = logger.format_line(LogLevel.INFO, "hello", 1000.5)
    assert line[19:] == ":500 SLS INFO: hello\n"
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", line[:19]) is not None


def test_log_filters_by_level():
    out = io.StringIO()
    logger = Logger(LogLevel.WARNING, out)
    assert logger.log(LogLevel.ERROR, "bad") is True
    assert logger.log(LogLevel.INFO, "quiet") is False
    text = out.getvalue()
    assert "SLS ERROR: bad" in text
    assert "quiet" not in text


def test_set_level_by_name_case_insensitive():
    out = io.StringIO()
    logger = Logger(LogLevel.INFO, out)
    assert logger.set_level("trace") is LogLevel.TRACE
    assert logger.log(LogLevel.TRACE, "deep") is True


def test_set_level_unknown_keeps_current():
    out = io.StringIO()
    logger = Logger(LogLevel.DEBUG, out)
    assert logger.set_level("nonsense") is LogLevel.DEBUG
    assert "wrong log level 'NONSENSE'" in out.getvalue()


def test_set_file_appends_and_only_once(tmp_path):
    first = tmp_path / "a.log"
    second = tmp_path / "b.log"
    logger = Logger(LogLevel.INFO, io.StringIO())
    assert logger.set_file(str(first)) is True
    assert logger.set_file(str(second)) is False
    logger.log(LogLevel.INFO, "to file")
    logger.close()
    assert "SLS INFO: to file" in first.read_text()
    assert not second.exists()


def test_close_allows_new_file(tmp_path):
    logger = Logger(LogLevel.INFO, io.StringIO())
    logger.set_file(str(tmp_path / "x.log"))
    logger.close()
    assert logger.set_file(str(tmp_path / "y.log")) is True
    logger.close()


def test_singleton_functions():
    shared = logmod.get_logger()
    assert logmod.get_logger() is shared
    assert logmod.set_log_level("error") is LogLevel.ERROR
    assert logmod.log(LogLevel.DEBUG, "hidden") is False
    logmod.reset_logger()
    assert logmod.get_logger() is not shared