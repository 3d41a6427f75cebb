"""Decide whether an agent action may proceed.

:class:`HookGate` is the entry point hosts call once per hook event:

1. file paths in the event are made relative to the project directory;
2. every workflow under the workflow directory is loaded and validated;
3. invalid workflows deny the event, unless the agent is editing a
   workflow file (self-repair);
4. matching workflows run one after another and the first ``deny`` wins.

No workflow directory, no workflow files, or no matching workflow means
``allow``.

Example
-------
>>> gate = HookGate(Path("/repo"))
>>> result = gate.evaluate(Event.from_dict({"file": {"path": "/repo/src/a.js", "action": "edit"}}))
>>> result.to_dict()["permissionDecision"]
'allow'
"""
from __future__ import annotations

import dataclasses
import logging
import os
import re
import threading
from pathlib import Path, PurePosixPath

from hookgate.audit.logger import AuditLogger
from hookgate.config import GateConfig
from hookgate.runner.actions import ActionResolver
from hookgate.runner.executor import CommandExecutor
from hookgate.runner.runner import Runner
from hookgate.schema.discovery import WorkflowDiscovery, WorkflowFile
from hookgate.schema.event import Event
from hookgate.schema.loader import WorkflowLoader, WorkflowLoadError
from hookgate.schema.result import WorkflowResult
from hookgate.schema.workflow import Workflow
from hookgate.triggers.matcher import TriggerMatcher

logger = logging.getLogger(__name__)

SELF_REPAIR_REASON = "Allowing hookgate self-repair (workflows have errors)"
_WORKFLOW_EXTENSIONS = (".yml", ".yaml")
_DRIVE = re.compile(r"^[A-Za-z]:/")


class HookGate:
    """Runs the workflows that match an event and folds their decisions.

    Parameters
    ----------
    project_dir:
        Project root.  Workflows are discovered below it and commands run
        in it.
    config:
        Gate configuration; defaults when omitted.
    executor:
        Command executor passed to every :class:`Runner`.
    audit:
        Decision audit trail.  Nothing is recorded when None.
    """

    def __init__(
        self,
        project_dir: Path,
        config: GateConfig | None = None,
        *,
        executor: CommandExecutor | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self._project_dir = project_dir
        self._config = config or GateConfig()
        self._discovery = WorkflowDiscovery(project_dir, self._config.workflows.directory)
        self._loader = WorkflowLoader()
        self._executor = executor
        self._resolver = ActionResolver(self._config.runner.action_cache_dir)
        self._audit = audit

    @classmethod
    def from_config(cls, project_dir: Path, config: GateConfig) -> HookGate:
        """Build a gate with the audit trail the configuration asks for."""
        audit = None
        if config.audit.enabled:
            log_path = config.audit.log_path
            if not log_path.is_absolute():
                log_path = project_dir / log_path
            audit = AuditLogger(log_path, retention_days=config.audit.retention_days)
        return cls(project_dir, config, audit=audit)

    @property
    def discovery(self) -> WorkflowDiscovery:
        return self._discovery

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def evaluate(self, event: Event, cancel: threading.Event | None = None) -> WorkflowResult:
        """Run every workflow matching ``event`` and return the decision.

        Parameters
        ----------
        event:
            The incoming event.
        cancel:
            Cancellation signal forwarded to each run.
        """
        event = self.normalize_event(event)
        decided_by: str | None = None

        files = self._discovery.discover()
        if not files:
            result = WorkflowResult.allow()
        else:
            workflows, errors = self._load_all(files)
            if errors:
                result = self._invalid_workflows(event, errors)
            else:
                result, decided_by = self._run_matching(workflows, event, cancel)

        if self._audit is not None:
            self._audit.record_decision(event, result, decided_by)
        return result

    def run_workflow(
        self,
        name: str,
        event: Event | None = None,
        cancel: threading.Event | None = None,
    ) -> WorkflowResult:
        """Run the workflow stored as ``<name>.yml``, ignoring its triggers.

        Raises
        ------
        WorkflowLoadError
            When no such workflow exists or it fails validation.
        """
        found = self._discovery.find(name)
        if found is None:
            raise WorkflowLoadError(None, f"workflow '{name}' not found")
        workflow = self._loader.load(found.path)
        result = self._runner(workflow, event).run_with_blocking(cancel)
        if self._audit is not None and event is not None:
            self._audit.record_decision(event, result, workflow.name)
        return result

    def matching_workflows(self, event: Event) -> list[Workflow]:
        """Valid workflows whose triggers match ``event``."""
        event = self.normalize_event(event)
        workflows, _ = self._load_all(self._discovery.discover())
        return [workflow for workflow in workflows if TriggerMatcher(workflow).match(event)]

    def normalize_event(self, event: Event) -> Event:
        """Return ``event`` with its file path relative to the project."""
        if event.file is None or not event.file.path:
            return event
        path = normalize_file_path(event.file.path, str(self._project_dir))
        if path != event.file.path:
            logger.debug("Normalised path %s -> %s", event.file.path, path)
        return dataclasses.replace(event, file=dataclasses.replace(event.file, path=path))

    def is_self_repair(self, event: Event) -> bool:
        """True when the event creates or edits a YAML file in the workflow directory."""
        if event.file is None or event.file.action not in ("edit", "create"):
            return False
        project = str(self._project_dir)
        path = PurePosixPath(normalize_file_path(event.file.path, project))
        hooks_dir = PurePosixPath(normalize_file_path(self._config.workflows.directory.as_posix(), project))
        if path.suffix.lower() not in _WORKFLOW_EXTENSIONS or not hooks_dir.parts:
            return False
        # Component-wise prefix: ".github/hooksfoo" is not under ".github/hooks".
        return path.parent.parts[: len(hooks_dir.parts)] == hooks_dir.parts

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_all(self, files: list[WorkflowFile]) -> tuple[list[Workflow], list[str]]:
        workflows: list[Workflow] = []
        errors: list[str] = []
        for workflow_file in files:
            try:
                workflows.append(self._loader.load(workflow_file.path))
            except WorkflowLoadError as exc:
                logger.warning("Workflow validation failed: %s: %s", workflow_file.rel_path, exc.describe())
                errors.append(f"{workflow_file.rel_path.as_posix()}: {exc.describe()}")
        return workflows, errors

    def _invalid_workflows(self, event: Event, errors: list[str]) -> WorkflowResult:
        if self.is_self_repair(event):
            logger.info("Allowing self-repair for invalid workflows")
            return WorkflowResult.allow(SELF_REPAIR_REASON)
        directory = self._config.workflows.directory.as_posix().rstrip("/")
        return WorkflowResult.deny(
            f"Invalid workflow(s): {'; '.join(errors)}. Fix workflows in {directory}/ first."
        )

    def _run_matching(
        self,
        workflows: list[Workflow],
        event: Event,
        cancel: threading.Event | None,
    ) -> tuple[WorkflowResult, str | None]:
        matching = []
        for workflow in workflows:
            if TriggerMatcher(workflow).match(event):
                logger.info("Workflow matched: %s", workflow.name)
                matching.append(workflow)
            else:
                logger.debug("Workflow did not match: %s", workflow.name)

        if not matching:
            logger.debug("No matching workflows, allowing")
            return WorkflowResult.allow(), None

        result = WorkflowResult.allow()
        for workflow in matching:
            result = self._runner(workflow, event).run_with_blocking(cancel)
            if not result.allowed:
                logger.warning("Workflow %s denied: %s", workflow.name, result.reason)
                return result, workflow.name
        return result, matching[-1].name

    def _runner(self, workflow: Workflow, event: Event | None) -> Runner:
        return Runner(
            workflow,
            event,
            self._project_dir,
            executor=self._executor,
            resolver=self._resolver,
            shell=self._config.runner.default_shell,
            log_dir=self._config.runner.denial_log_dir,
        )


def normalize_file_path(file_path: str, directory: str) -> str:
    """Make ``file_path`` relative to ``directory`` when it lies below it.

    Separators are normalised to ``/``.  The prefix comparison ignores case
    only on Windows or when either path carries a drive letter.
    """
    file_path = file_path.replace("\\", "/")
    directory = directory.replace("\\", "/")
    if not directory.endswith("/"):
        directory += "/"
    if file_path.startswith(directory):
        return file_path[len(directory):]
    fold = os.name == "nt" or bool(_DRIVE.match(file_path) or _DRIVE.match(directory))
    if fold and file_path.lower().startswith(directory.lower()):
        return file_path[len(directory):]
    return file_path
