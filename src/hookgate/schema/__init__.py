"""Workflow declarations, event records, loading and discovery."""
from __future__ import annotations

from hookgate.schema.detector import EventDetector, GitProvider, SubprocessGitProvider
from hookgate.schema.discovery import WORKFLOW_DIR, WorkflowDiscovery, WorkflowFile
from hookgate.schema.event import (
    CommitEvent,
    Event,
    FileEvent,
    FileStatus,
    HookEvent,
    PushEvent,
    ToolEvent,
)
from hookgate.schema.loader import ValidationResult, WorkflowLoader, WorkflowLoadError
from hookgate.schema.result import Decision, WorkflowResult
from hookgate.schema.workflow import (
    CommitTrigger,
    FileTrigger,
    HooksTrigger,
    OnConfig,
    PushTrigger,
    Step,
    ToolTrigger,
    Workflow,
)

__all__ = [
    "WORKFLOW_DIR",
    "CommitEvent",
    "CommitTrigger",
    "Decision",
    "Event",
    "EventDetector",
    "FileEvent",
    "FileStatus",
    "FileTrigger",
    "GitProvider",
    "HookEvent",
    "HooksTrigger",
    "OnConfig",
    "PushEvent",
    "PushTrigger",
    "Step",
    "SubprocessGitProvider",
    "ToolEvent",
    "ToolTrigger",
    "ValidationResult",
    "Workflow",
    "WorkflowDiscovery",
    "WorkflowFile",
    "WorkflowLoadError",
    "WorkflowLoader",
    "WorkflowResult",
]
