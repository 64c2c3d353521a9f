"""Logging configuration for pagewise.

Everything goes to one rotating file; the terminal is kept for replies.
"""

import logging
import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOG_FILE = "~/.config/pagewise/logs/pagewise.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ARCHIVE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
MAX_LOG_FILE_BYTES = 5 * 1024 * 1024  # 5 MiB per rotated file.
LOG_BACKUP_COUNT = 3
# Chatty at DEBUG while fetching pages or loading embedding models.
NOISY_LIBRARIES = (
    "urllib3",
    "requests",
    "trafilatura",
    "sentence_transformers",
)
_ROLLED_LOG_PATHS: set[Path] = set()


def resolve_log_file_path(log_file: Union[str, Path]) -> Path:
    return Path(log_file).expanduser()


def _archive_path(log_path: Path) -> Path:
    timestamp = datetime.datetime.now().strftime(ARCHIVE_TIMESTAMP_FORMAT)
    candidate = log_path.parent / f"{timestamp}_{log_path.name}"
    suffix = 1
    while candidate.exists():
        candidate = log_path.parent / f"{timestamp}_{suffix}_{log_path.name}"
        suffix += 1
    return candidate


def _archive_existing_log_file(log_path: Path) -> None:
    """Move the previous run's log aside, once per process and path."""
    resolved_path = log_path.resolve()
    if resolved_path in _ROLLED_LOG_PATHS:
        return
    _ROLLED_LOG_PATHS.add(resolved_path)
    if log_path.exists():
        log_path.rename(_archive_path(log_path))


def setup_logging(
    level_name: str = "INFO", log_file: Optional[Union[str, Path]] = None
) -> None:
    """Send root logging to ``log_file``; an empty ``log_file`` leaves logging untouched."""
    if not log_file:
        return
    log_path = resolve_log_file_path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _archive_existing_log_file(log_path)

    handler = RotatingFileHandler(
        log_path,
        maxBytes=MAX_LOG_FILE_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))
    # Re-running setup (tests, repeated CLI entry) must not stack handlers.
    for existing_handler in list(root_logger.handlers):
        root_logger.removeHandler(existing_handler)
        existing_handler.close()
    root_logger.addHandler(handler)

    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
