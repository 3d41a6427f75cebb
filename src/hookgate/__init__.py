"""hookgate: workflow automation for coding agent hooks.

Workflows in ``.github/hooks/*.yml`` declare triggers over agent events
(tool calls, file edits, commits, pushes) and steps to run.  Blocking
workflows with failing steps deny the agent's action.

Example
-------
>>> import hookgate
>>> gate = hookgate.HookGate(Path("."))
>>> event = hookgate.Event.from_dict({"file": {"path": "src/index.js", "action": "edit"}})
>>> gate.evaluate(event).decision.value
'allow'
"""
from __future__ import annotations

__version__: str = "0.1.0"

from hookgate.audit.logger import AuditLogger
from hookgate.config import ConfigLoader, GateConfig
from hookgate.expression import EvaluationContext, ExpressionError
from hookgate.gate import HookGate
from hookgate.runner import ActionError, Runner, StepResult, SubprocessExecutor
from hookgate.schema import (
    Event,
    EventDetector,
    Workflow,
    WorkflowLoader,
    WorkflowLoadError,
    WorkflowResult,
)
from hookgate.triggers import TriggerMatcher, match_glob

__all__ = [
    "__version__",
    "ActionError",
    "AuditLogger",
    "ConfigLoader",
    "EvaluationContext",
    "Event",
    "EventDetector",
    "ExpressionError",
    "GateConfig",
    "HookGate",
    "Runner",
    "StepResult",
    "SubprocessExecutor",
    "TriggerMatcher",
    "Workflow",
    "WorkflowLoadError",
    "WorkflowLoader",
    "WorkflowResult",
    "match_glob",
]
