"""Append-only JSONL trail of gate decisions.

Every decision the gate makes is written as one JSON line carrying a UTC
timestamp, the session identifier, and the decision fields::

    {"timestamp": "...", "session_id": "...", "event": "decision",
     "decision": "deny", "workflow": "lint", "tool": "edit", ...}

Writes are serialised with a :class:`threading.Lock` so hosts that run
several gates in one process share a file safely.
"""
from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from hookgate.audit.rotator import LogRotator

if TYPE_CHECKING:
    from hookgate.schema.event import Event
    from hookgate.schema.result import WorkflowResult

logger = logging.getLogger(__name__)


class AuditLogger:
    """Append-only JSONL audit logger.

    Parameters
    ----------
    log_path:
        The ``.jsonl`` file.  Parent directories are created on first write.
    session_id:
        Identifier stamped on every record; a random UUID when omitted.
    retention_days:
        When given, the file is rotated daily and archives older than this
        are removed.
    """

    def __init__(
        self,
        log_path: Path,
        session_id: str | None = None,
        retention_days: int | None = None,
    ) -> None:
        self._log_path = log_path
        self._session_id: str = session_id or str(uuid.uuid4())
        self._lock = threading.Lock()
        self._rotator = (
            LogRotator(log_path.parent, log_path.name, retention_days)
            if retention_days is not None
            else None
        )

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def log(self, entry: dict[str, object]) -> None:
        """Append ``entry`` with ``timestamp`` and ``session_id`` added."""
        record: dict[str, object] = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "session_id": self._session_id,
            **entry,
        }
        self._write(record)

    def record_decision(
        self,
        event: Event,
        result: WorkflowResult,
        workflow: str | None = None,
    ) -> None:
        """Append a ``decision`` record for one gate evaluation.

        Parameters
        ----------
        event:
            The event that was evaluated.
        result:
            The resulting decision.
        workflow:
            Name of the workflow that decided, when one did.
        """
        entry: dict[str, object] = {
            "event": "decision",
            "decision": result.decision.value,
            "workflow": workflow,
            "tool": event.tool.name if event.tool is not None else None,
            "file": event.file.path if event.file is not None else None,
            "reason": result.reason,
        }
        if result.log_file:
            entry["log_file"] = result.log_file
        self.log(entry)

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def read_all(self) -> list[dict[str, object]]:
        """All records in write order; empty when the file does not exist."""
        return list(self._iter_records())

    def query(self, filters: dict[str, object]) -> list[dict[str, object]]:
        """Records whose top-level fields equal every value in ``filters``."""
        return [
            record
            for record in self._iter_records()
            if all(record.get(key) == value for key, value in filters.items())
        ]

    def count(self) -> int:
        return sum(1 for _ in self._iter_records())

    def last_n(self, n: int) -> list[dict[str, object]]:
        """The ``n`` most recent records."""
        if n <= 0:
            return []
        return self.read_all()[-n:]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _write(self, record: dict[str, object]) -> None:
        with self._lock:
            if self._rotator is not None:
                self._rotator.rotate_if_needed()
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, default=str) + "\n")

    def _iter_records(self) -> Iterator[dict[str, object]]:
        if not self._log_path.exists():
            return
        with self._lock:
            with self._log_path.open("r", encoding="utf-8") as fh:
                for number, line in enumerate(fh, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        yield json.loads(line)
                    except json.JSONDecodeError:
                        logger.warning("Skipping malformed audit line %d in %s", number, self._log_path)

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def session_id(self) -> str:
        return self._session_id
