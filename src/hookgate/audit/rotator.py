"""Daily rotation and retention for date-stamped log files.

Both the decision audit trail (``audit.jsonl`` archived as
``audit-YYYY-MM-DD.jsonl``) and the process log (``hookgate-YYYY-MM-DD.log``)
keep one file per day.  :class:`LogRotator` archives the active file and
deletes archives that fall outside the retention window.

Example
-------
>>> from pathlib import Path
>>> rotator = LogRotator(Path(".hookgate"), "audit.jsonl", retention_days=30)
>>> rotator.rotate_if_needed()
False
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path

logger = logging.getLogger(__name__)


class LogRotator:
    """Manages rotation and retention of date-stamped files in one directory.

    Parameters
    ----------
    log_dir:
        Directory holding the active file and its archives.
    log_filename:
        Name of the active file, e.g. ``audit.jsonl``.  Archives are named
        ``<stem>-YYYY-MM-DD<suffix>``.
    retention_days:
        Archives older than this many days are deleted.
    """

    def __init__(self, log_dir: Path, log_filename: str, retention_days: int = 30) -> None:
        self._log_dir = log_dir
        self._log_filename = log_filename
        self._retention_days = retention_days
        name = Path(log_filename)
        self._prefix = f"{name.stem}-"
        self._suffix = name.suffix

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def archive_path(self, day: date) -> Path:
        """Path of the archive for ``day``."""
        return self._log_dir / f"{self._prefix}{day.isoformat()}{self._suffix}"

    def rotate_if_needed(self, today: date | None = None) -> bool:
        """Archive the active file when it was last written before today.

        Returns
        -------
        bool
            ``True`` when a rotation happened.
        """
        current = self._log_dir / self._log_filename
        if not current.exists():
            return False

        effective_today = today or date.today()
        modified = date.fromtimestamp(current.stat().st_mtime)
        if modified >= effective_today:
            return False

        archive = self.archive_path(modified)
        if archive.exists():
            with archive.open("a", encoding="utf-8") as target:
                target.write(current.read_text(encoding="utf-8"))
            current.unlink()
        else:
            current.rename(archive)
        logger.info("Rotated %s to %s", current, archive)

        self.purge(effective_today)
        return True

    def list_archives(self) -> list[Path]:
        """Archive files in the directory, oldest first."""
        if not self._log_dir.exists():
            return []
        return sorted(
            p
            for p in self._log_dir.iterdir()
            if p.is_file()
            and p.name.startswith(self._prefix)
            and p.suffix == self._suffix
            and p.name != self._log_filename
        )

    def purge(self, today: date | None = None) -> list[Path]:
        """Delete archives older than the retention window.

        Returns
        -------
        list[Path]
            The files removed.
        """
        cutoff = (today or date.today()) - timedelta(days=self._retention_days)
        removed: list[Path] = []
        for archive in self.list_archives():
            try:
                archive_date = date.fromisoformat(archive.stem.removeprefix(self._prefix))
            except ValueError:
                continue
            if archive_date < cutoff:
                archive.unlink(missing_ok=True)
                removed.append(archive)
                logger.info("Purged old log archive: %s", archive)
        return removed
