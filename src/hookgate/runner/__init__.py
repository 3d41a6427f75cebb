"""Workflow step execution: orchestration, shell commands and actions."""
from __future__ import annotations

from hookgate.runner.actions import (
    ActionError,
    ActionMetadata,
    ActionReference,
    ActionResolver,
    load_action_metadata,
    parse_uses,
)
from hookgate.runner.executor import (
    CommandExecutor,
    CommandResult,
    SubprocessExecutor,
    default_shell,
    shell_argv,
)
from hookgate.runner.runner import (
    SKIPPED_CONDITION_NOT_MET,
    SKIPPED_PREVIOUS_FAILED,
    Runner,
    StepResult,
)

__all__ = [
    "SKIPPED_CONDITION_NOT_MET",
    "SKIPPED_PREVIOUS_FAILED",
    "ActionError",
    "ActionMetadata",
    "ActionReference",
    "ActionResolver",
    "CommandExecutor",
    "CommandResult",
    "Runner",
    "StepResult",
    "SubprocessExecutor",
    "default_shell",
    "shell_argv",
    "load_action_metadata",
    "parse_uses",
]
