"""Process logging for hook invocations.

Hooks run as short-lived processes whose stdout is the decision payload,
so log records go to a daily file (``hookgate-YYYY-MM-DD.log``) and, in
debug mode, to stderr.  Day files older than the retention window are
removed each time logging is configured.
"""
from __future__ import annotations

import logging
import sys
from datetime import date
from pathlib import Path

from hookgate.audit.rotator import LogRotator
from hookgate.config import GateConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
LOG_FILE_STEM = "hookgate"


def log_file_for(directory: Path, day: date | None = None) -> Path:
    """Path of the day file for ``day`` (today by default)."""
    return directory / f"{LOG_FILE_STEM}-{(day or date.today()).isoformat()}.log"


def configure_logging(config: GateConfig, project_dir: Path | None = None) -> Path | None:
    """Configure the ``hookgate`` logger from ``config``.

    Parameters
    ----------
    config:
        Loaded gate configuration.
    project_dir:
        Base for a relative ``logging.directory``.

    Returns
    -------
    Path | None
        The active log file, or None when file logging is disabled or the
        directory cannot be created.
    """
    level = getattr(logging, config.effective_log_level())
    package_logger = logging.getLogger("hookgate")
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    if config.debug_forced():
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        package_logger.addHandler(console)

    directory = config.logging.directory
    if directory is None:
        return None
    if not directory.is_absolute() and project_dir is not None:
        directory = project_dir / directory

    try:
        directory.mkdir(parents=True, exist_ok=True)
        log_file = log_file_for(directory)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as exc:
        print(f"hookgate: cannot write logs to {directory}: {exc}", file=sys.stderr)
        return None

    file_handler.setFormatter(formatter)
    package_logger.addHandler(file_handler)
    LogRotator(directory, f"{LOG_FILE_STEM}.log", config.logging.retention_days).purge()
    return log_file
