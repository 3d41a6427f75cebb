"""Decision audit trail and date-stamped log retention."""
from __future__ import annotations

from hookgate.audit.logger import AuditLogger
from hookgate.audit.rotator import LogRotator

__all__ = ["AuditLogger", "LogRotator"]
