"""Permission decision produced by a workflow run."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class WorkflowResult:
    """The verdict for one event.

    Attributes
    ----------
    decision:
        ``allow`` or ``deny``.
    reason:
        Explanation shown to the agent; empty for a plain allow.
    log_file:
        Path of the detailed step log written for a deny, if any.
    """

    decision: Decision
    reason: str = ""
    log_file: str | None = None

    @classmethod
    def allow(cls, reason: str = "") -> WorkflowResult:
        return cls(Decision.ALLOW, reason)

    @classmethod
    def deny(cls, reason: str, log_file: str | None = None) -> WorkflowResult:
        return cls(Decision.DENY, reason, log_file)

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON shape agent hosts expect."""
        payload: dict[str, Any] = {
            "permissionDecision": self.decision.value,
            "permissionDecisionReason": self.reason,
        }
        if self.log_file:
            payload["logFile"] = self.log_file
        return payload
