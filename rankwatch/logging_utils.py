from __future__ import annotations

import logging
import os
import time
from collections import deque
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR_ENV = "RANKWATCH_LOG_DIR"
LOG_FILE_NAME = "rankwatch.log"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def resolve_log_file(data_directory: Path | None = None) -> Path:
    override_dir = os.getenv(LOG_DIR_ENV)
    if override_dir:
        return Path(override_dir) / LOG_FILE_NAME
    if data_directory is not None:
        return Path(data_directory) / "logs" / LOG_FILE_NAME
    return Path(__file__).resolve().parent / "logs" / LOG_FILE_NAME


def _rotating_handler(log_file: Path) -> RotatingFileHandler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5, encoding="utf-8")


def configure_rotating_logger(
    logger_names: tuple[str, ...],
    preferred_log_file: Path,
    fallback_log_file: Path,
    level: int = logging.INFO,
) -> tuple[logging.Logger, Path]:
    """Attach one rotating file handler and one console handler to every named logger.

    The first name is the application logger that is returned. Further names
    (library packages) share the same handlers so everything lands in one file.
    """
    logger = logging.getLogger(logger_names[0])
    if logger.handlers:
        return logger, preferred_log_file

    effective_log_file = preferred_log_file
    try:
        file_handler = _rotating_handler(preferred_log_file)
    except OSError:
        file_handler = _rotating_handler(fallback_log_file)
        effective_log_file = fallback_log_file

    formatter = logging.Formatter(LOG_FORMAT, "%Y-%m-%d %H:%M:%S")
    console_handler = logging.StreamHandler()
    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)

    for name in logger_names:
        named_logger = logging.getLogger(name)
        named_logger.setLevel(level)
        named_logger.addHandler(file_handler)
        named_logger.addHandler(console_handler)
        named_logger.propagate = False
    return logger, effective_log_file


def tail_logs(
    log_file: Path,
    lines: int = 100,
    follow: bool = True,
    poll_interval: float = 0.5,
) -> int:
    """Print the last lines of the log file, then optionally follow it."""
    if lines < 0:
        print("--tail-lines must be >= 0")
        return 2
    if not log_file.exists():
        print(f"Log file does not exist yet: {log_file}")
        return 1

    try:
        with log_file.open("r", encoding="utf-8", errors="replace") as handle:
            if lines > 0:
                print("".join(deque(handle, maxlen=lines)), end="")
            else:
                handle.seek(0, os.SEEK_END)

            while follow:
                line = handle.readline()
                if line:
                    print(line, end="", flush=True)
                else:
                    time.sleep(poll_interval)
    except KeyboardInterrupt:
        pass
    return 0
