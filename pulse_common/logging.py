"""Shared logging configuration using structlog."""

from __future__ import annotations

import logging
import os
import sys

import structlog

from pulse_common.config.env import parse_bool_env

RAW_LOGGER_NAME = "pulse.raw"


def _resolve_level(value: str | int | None, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    return logging._nameToLevel.get(value.upper(), logging.INFO)


def _read_logging_env() -> tuple[str | None, bool | None, str | None]:
    return (
        os.environ.get("PULSE_LOG_LEVEL"),
        parse_bool_env(os.environ.get("PULSE_LOG_JSON")),
        os.environ.get("PULSE_LOG_FILE"),
    )


def _make_structlog_formatter(
    resolved_json: bool | None,
) -> structlog.stdlib.ProcessorFormatter:
    renderer: structlog.types.Processor
    if resolved_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=pre_chain,
    )


def _open_file_handler(log_file: str) -> logging.Handler | None:
    """Open the unified log in append mode; None when the path is not writable."""
    try:
        return logging.FileHandler(log_file, mode="a", encoding="utf-8")
    except OSError as exc:
        sys.stderr.write(f"warning: cannot open log file {log_file}: {exc}\n")
        return None


def _build_handlers(
    formatter: structlog.stdlib.ProcessorFormatter,
    log_file: str | None,
    console_level: int,
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(console_level)
    # Raw subprocess output belongs to the log file, not the console.
    stream_handler.addFilter(lambda record: not record.name.startswith(RAW_LOGGER_NAME))
    handlers.append(stream_handler)
    if log_file:
        file_handler = _open_file_handler(log_file)
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)
            handlers.append(file_handler)
    return handlers


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging(
    *,
    level: str | int | None = None,
    debug: bool = False,
    log_file: str | None = None,
    json: bool | None = None,
    force: bool = False,
) -> None:
    """Configure stdlib logging and structlog with a shared formatter.

    The console handler honours ``level``; the optional file handler always
    records DEBUG so the unified log keeps raw command output.
    """
    env_level, env_json, env_log_file = _read_logging_env()
    resolved_level = _resolve_level(level or env_level, debug)
    resolved_json = env_json if json is None else json
    resolved_log_file = env_log_file if log_file is None else log_file

    root_logger = logging.getLogger()
    if root_logger.handlers and not force:
        _configure_structlog()
        return

    formatter = _make_structlog_formatter(resolved_json)
    handlers = _build_handlers(formatter, resolved_log_file, resolved_level)
    if force:
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    root_logger.setLevel(logging.DEBUG if resolved_log_file else resolved_level)
    for handler in handlers:
        root_logger.addHandler(handler)
    _configure_structlog()


def raw_logger() -> logging.Logger:
    """Logger receiving unfiltered subprocess output for the unified log."""
    return logging.getLogger(RAW_LOGGER_NAME)
