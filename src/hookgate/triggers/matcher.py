"""Decide whether a workflow's ``on:`` triggers select an event.

Trigger kinds are OR'd: the workflow matches when any declared kind
matches.  Inside one kind every configured field must pass.  Matching
never raises; missing or malformed event fields simply fail to match.

File, commit and push triggers also carry a ``lifecycle`` (``pre`` by
default) that must equal the event's phase, so a workflow written for
the pre-tool hook does not fire again after the tool has run.
"""
from __future__ import annotations

import logging

from hookgate.expression import EvaluationContext, ExpressionError
from hookgate.schema.event import (
    CommitEvent,
    Event,
    FileEvent,
    HookEvent,
    PushEvent,
    ToolEvent,
)
from hookgate.schema.workflow import (
    CommitTrigger,
    FileTrigger,
    HooksTrigger,
    PushTrigger,
    ToolTrigger,
    Workflow,
)
from hookgate.triggers.glob import extract_branch, extract_tag, match_any, match_glob, match_patterns

logger = logging.getLogger(__name__)


class TriggerMatcher:
    """Matches events against one workflow's triggers.

    Parameters
    ----------
    workflow:
        The workflow whose ``on:`` block is evaluated.

    Example
    -------
    ::

        matcher = TriggerMatcher(workflow)
        if matcher.match(event):
            ...
    """

    def __init__(self, workflow: Workflow) -> None:
        self._workflow = workflow

    def match(self, event: Event) -> bool:
        """Return True when any configured trigger kind matches ``event``."""
        on = self._workflow.on
        if on.is_empty():
            return False

        phase = event.phase
        if event.tool is not None:
            tool_triggers = ([on.tool] if on.tool is not None else []) + list(on.tools)
            if any(match_tool(trigger, event.tool, event) for trigger in tool_triggers):
                return self._matched("tool")
        if on.hooks is not None and event.hook is not None and match_hooks(on.hooks, event.hook):
            return self._matched("hooks")
        if on.file is not None and event.file is not None and match_file(on.file, event.file, phase):
            return self._matched("file")
        if on.commit is not None and event.commit is not None and match_commit(on.commit, event.commit, phase):
            return self._matched("commit")
        if on.push is not None and event.push is not None and match_push(on.push, event.push, phase):
            return self._matched("push")
        return False

    def _matched(self, kind: str) -> bool:
        logger.debug("Workflow %r matched on %s trigger", self._workflow.name, kind)
        return True


def match_tool(trigger: ToolTrigger, tool: ToolEvent, event: Event | None = None) -> bool:
    if trigger.name != tool.name:
        return False
    for arg_name, pattern in trigger.args.items():
        if arg_name not in tool.args:
            return False
        value = tool.args[arg_name]
        if not match_glob(pattern, value if isinstance(value, str) else ""):
            return False
    if trigger.if_:
        return _condition_holds(trigger.if_, event)
    return True


def _condition_holds(condition: str, event: Event | None) -> bool:
    context = EvaluationContext(event=event.to_context() if event is not None else {})
    try:
        return context.evaluate_bool(condition)
    except ExpressionError as exc:
        logger.warning("Tool trigger condition %r failed to evaluate: %s", condition, exc)
        return False


def match_hooks(trigger: HooksTrigger, hook: HookEvent) -> bool:
    if trigger.types and hook.type not in trigger.types:
        return False
    if trigger.tools and hook.tool is not None and hook.tool.name not in trigger.tools:
        return False
    return True


def _path_selected(paths: list[str], ignore: list[str], path: str) -> bool:
    if paths and not match_patterns(paths, path):
        return False
    return not match_any(ignore, path)


def _branch_selected(branches: list[str], ignore: list[str], branch: str) -> bool:
    if branches and not match_patterns(branches, branch):
        return False
    return not match_any(ignore, branch)


def match_file(trigger: FileTrigger, file: FileEvent, phase: str = "pre") -> bool:
    if trigger.lifecycle != phase:
        return False
    if trigger.types and file.action not in trigger.types:
        return False
    return _path_selected(trigger.paths, trigger.paths_ignore, file.path)


def match_commit(trigger: CommitTrigger, commit: CommitEvent, phase: str = "pre") -> bool:
    if trigger.lifecycle != phase:
        return False
    # Branch filters apply only when the commit knows its branch.
    if commit.branch and not _branch_selected(trigger.branches, trigger.branches_ignore, commit.branch):
        return False
    if not trigger.paths and not trigger.paths_ignore:
        return True
    return any(
        _path_selected(trigger.paths, trigger.paths_ignore, changed.path)
        for changed in commit.files
    )


def match_push(trigger: PushTrigger, push: PushEvent, phase: str = "pre") -> bool:
    if trigger.lifecycle != phase:
        return False
    branch = extract_branch(push.ref)
    if branch and not _branch_selected(trigger.branches, trigger.branches_ignore, branch):
        return False
    tag = extract_tag(push.ref)
    if tag:
        if trigger.tags and not match_patterns(trigger.tags, tag):
            return False
        if match_any(trigger.tags_ignore, tag):
            return False
    return True
