"""Logging bootstrap: stdlib handlers rendered through structlog."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import structlog

APP_LOGGER_PREFIX = "chat_relay"
DEFAULT_LOG_FILE = "~/.local/state/chat-relay/app.log"
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class AppLoggerFilter(logging.Filter):
    """Pass only records emitted under the ``chat_relay`` logger tree."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.startswith(APP_LOGGER_PREFIX)


def build_json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Return a stdlib formatter that renders records (and their extras) as JSON lines."""
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(
            ensure_ascii=False, separators=(",", ":")
        ),
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ExtraAdder(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
        ],
    )


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _open_private_log(path: Path) -> Path:
    """Create the log file (and its directory) readable by the owner only."""
    target = path.expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.touch(mode=0o600, exist_ok=True)
    if os.name == "posix":
        try:
            target.chmod(0o600)
        except OSError as exc:
            logging.getLogger(__name__).warning(
                "logging.file.permissions",
                extra={"event": "logging.file.permissions", "reason": str(exc)},
            )
    return target


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(max(level, logging.WARNING))
    handler.setFormatter(formatter)
    handler.addFilter(AppLoggerFilter())
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    """File output is always JSON lines, whatever the console format."""
    handler = logging.FileHandler(_open_private_log(path), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(build_json_formatter())
    return handler


def configure_logging(logging_config: dict[str, Any]) -> None:
    """Install handlers on the root logger from the ``[logging]`` config section.

    The console only shows warnings and errors from ``chat_relay`` so the
    terminal UI stays readable; the optional file handler records every
    level from every logger.
    """
    level = getattr(
        logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO
    )

    if logging_config.get("structured", True):
        _configure_structlog()
        console_formatter: logging.Formatter = build_json_formatter()
    else:
        console_formatter = logging.Formatter(PLAIN_FORMAT)

    handlers = [_console_handler(level, console_formatter)]
    if logging_config.get("log_to_file", False):
        log_path = Path(str(logging_config.get("log_file_path") or DEFAULT_LOG_FILE))
        handlers.append(_file_handler(log_path, level))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
