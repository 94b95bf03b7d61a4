"""Logging to a daily rotated file and to standard error."""

from __future__ import annotations

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "llc-launcher.log"
MAX_LOG_FILES = 10

_NOISY_PREFIXES = ("urllib3", "asyncio")

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(filename)s:%(lineno)d: %(message)s"
_STDERR_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class _NoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(_NOISY_PREFIXES)


def init_logging(log_dir: str | Path, log_level: int) -> list[logging.Handler]:
    """Install file and stderr handlers on the root logger and return them."""
    log_dir = Path(log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(f"failed to create log directory: {exc}", file=sys.stderr)
        raise
    print(f"logging to {log_dir}", file=sys.stderr)

    noise = _NoiseFilter()
    file_handler = TimedRotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        when="midnight",
        backupCount=MAX_LOG_FILES - 1,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(_STDERR_FORMAT))

    handlers: list[logging.Handler] = [file_handler, stderr_handler]
    root = logging.getLogger()
    for handler in handlers:
        handler.setLevel(log_level)
        handler.addFilter(noise)
        root.addHandler(handler)
    root.setLevel(log_level)
    return handlers