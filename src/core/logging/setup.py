"""Root logger wiring for applications that embed the client."""

import io
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging.context import set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter

# HTTP client libraries log every connection at DEBUG
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "aiohttp.client",
    "urllib3",
    "asyncio",
]


def _stdout_stream():
    # The Windows console code page cannot encode every track title
    if sys.platform != "win32":
        return sys.stdout
    return io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")


def _with(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _rotating_file(path: Path, when: str, keep: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return TimedRotatingFileHandler(path, when=when, backupCount=keep, encoding="utf-8")


def setup_logging(
    name: str = "music_api",
    client_name: str | None = None,
    json_format: bool = False,
    console_level: int = logging.INFO,
    log_file: Path | None = None,
    file_level: int = logging.DEBUG,
    rotation_when: str = "midnight",
    backup_count: int = 7,
    suppress_noisy: bool = True,
) -> logging.Logger:
    """
    Replace the root logger's handlers and return the logger called name.

    The console gets ConsoleFormatter lines, or JSON when json_format is set.
    With log_file the same records also go to a time-rotated file, always as
    JSON lines. The root level is DEBUG; each handler applies its own level.

    Args:
        name: Logger to return
        client_name: Label stamped on every line via the log context
        json_format: Emit JSON on the console too (containers, log shippers)
        console_level: Console threshold
        log_file: Rotating JSON log file, created with its parent directory
        file_level: File threshold
        rotation_when: TimedRotatingFileHandler schedule, e.g. 'midnight' or 'H'
        backup_count: Rotated files kept on disk
        suppress_noisy: Raise NOISY_LOGGERS to WARNING
    """
    if client_name:
        set_log_context(client_name=client_name)

    handlers = [
        _with(
            logging.StreamHandler(_stdout_stream()),
            console_level,
            JSONFormatter() if json_format else ConsoleFormatter(),
        )
    ]
    if log_file is not None:
        handlers.append(
            _with(
                _rotating_file(Path(log_file), rotation_when, backup_count),
                file_level,
                JSONFormatter(),
            )
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    for handler in handlers:
        root.addHandler(handler)

    if suppress_noisy:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug("Logging configured", extra={"log_file": str(log_file) if log_file else None})
    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__."""
    return logging.getLogger(name)
