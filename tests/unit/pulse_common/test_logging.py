"""Tests for the unified log configuration."""

import logging

import pytest

from pulse_common.logging import RAW_LOGGER_NAME, configure_logging, raw_logger

pytestmark = pytest.mark.unit_common


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def test_file_receives_raw_output(tmp_path) -> None:
    log_file = tmp_path / "pulse.log"
    configure_logging(level="WARNING", log_file=str(log_file), force=True)

    raw_logger().debug("colima start output")
    logging.getLogger("pulse_controller.test").info("phase line")
    for handler in logging.getLogger().handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "colima start output" in text
    assert "phase line" in text


def test_console_filters_raw_logger(tmp_path) -> None:
    configure_logging(level="DEBUG", log_file=str(tmp_path / "x.log"), force=True)
    stream_handlers = [
        h for h in logging.getLogger().handlers if type(h) is logging.StreamHandler
    ]
    assert stream_handlers
    record = logging.LogRecord(RAW_LOGGER_NAME, logging.INFO, __file__, 1, "raw", None, None)
    assert not stream_handlers[0].filter(record)


def test_unwritable_log_file_is_tolerated(tmp_path, capsys) -> None:
    target = tmp_path / "missing-dir" / "pulse.log"
    configure_logging(log_file=str(target), force=True)
    assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)
    assert "cannot open log file" in capsys.readouterr().err


def test_env_level_is_honoured(monkeypatch) -> None:
    monkeypatch.setenv("PULSE_LOG_LEVEL", "ERROR")
    configure_logging(force=True)
    assert logging.getLogger().level == logging.ERROR
