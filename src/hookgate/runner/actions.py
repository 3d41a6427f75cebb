"""Resolve and prepare reusable actions referenced by ``uses:`` steps.

A ``uses:`` value is either a local directory (``./tools/lint``,
``../shared/check``, ``/opt/actions/scan``) or a remote reference of the
form ``owner/repo[/path]@version``.  Remote actions are shallow-cloned
into a cache directory once and reused afterwards.

An action directory holds ``action.yaml`` (or ``action.yml``)::

    name: check-format
    inputs:
      target:
        required: true
      strict:
        default: "false"
    runs:
      using: composite
      steps:
        - run: ./check.sh "$INPUT_TARGET"
          shell: bash
"""
from __future__ import annotations

import logging
import re
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

METADATA_FILES = ("action.yaml", "action.yml")
NODE_RUNTIMES = frozenset({"composite", "node12", "node16", "node20"})
SHELL_RUNTIMES = frozenset({"shell", "bash"})


class ActionError(Exception):
    """Raised when a ``uses:`` reference cannot be parsed, fetched or run."""


@dataclass(frozen=True)
class ActionReference:
    """A parsed ``uses:`` value."""

    source: str
    is_local: bool
    owner: str = ""
    repo: str = ""
    path: str = ""
    version: str = ""

    @property
    def clone_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}.git"


def parse_uses(uses: str) -> ActionReference:
    """Parse a ``uses:`` value.

    Raises
    ------
    ActionError
        When a remote reference lacks ``@version`` or ``owner/repo``.
    """
    uses = uses.strip()
    if uses.startswith(("./", "../", "/")):
        return ActionReference(source=uses, is_local=True)

    parts = uses.split("@")
    if len(parts) != 2:
        raise ActionError(
            f"invalid uses format: {uses} (expected owner/repo@version or owner/repo/path@version)"
        )
    location, version = parts
    if not version:
        raise ActionError("invalid uses format: missing version after @")
    segments = location.split("/")
    if len(segments) < 2 or not segments[0] or not segments[1]:
        raise ActionError(f"invalid uses format: {uses} (expected at least owner/repo)")
    return ActionReference(
        source=uses,
        is_local=False,
        owner=segments[0],
        repo=segments[1],
        path="/".join(segments[2:]),
        version=version,
    )


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


class ActionInput(BaseModel):
    model_config = ConfigDict(extra="allow")

    description: str = ""
    required: bool = False
    default: Any = None


class ActionStep(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    run: str = ""
    shell: str = ""


class ActionRuns(BaseModel):
    model_config = ConfigDict(extra="allow")

    using: str
    main: str = ""
    steps: list[ActionStep] = Field(default_factory=list)
    shell: str = ""
    run: str = ""


class ActionMetadata(BaseModel):
    """Contents of ``action.yaml``."""

    model_config = ConfigDict(extra="allow")

    name: str = ""
    description: str = ""
    inputs: dict[str, ActionInput] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)
    runs: ActionRuns


def load_action_metadata(action_dir: Path) -> ActionMetadata:
    """Load ``action.yaml``, falling back to ``action.yml``.

    Raises
    ------
    ActionError
        When neither file exists or the content is invalid.
    """
    for filename in METADATA_FILES:
        metadata_path = action_dir / filename
        if not metadata_path.is_file():
            continue
        try:
            raw = yaml.safe_load(metadata_path.read_text(encoding="utf-8"))
            return ActionMetadata.model_validate(raw or {})
        except (OSError, yaml.YAMLError, ValidationError) as exc:
            raise ActionError(f"failed to parse {filename}: {exc}") from exc
    raise ActionError(f"action.yaml or action.yml not found in {action_dir}")


def resolve_inputs(metadata: ActionMetadata, provided: dict[str, str]) -> dict[str, str]:
    """Combine ``with:`` values with the action's declared defaults.

    Raises
    ------
    ActionError
        When a required input has neither a value nor a default.
    """
    inputs = dict(provided)
    for name, declared in metadata.inputs.items():
        if name in inputs:
            continue
        if declared.default is not None:
            inputs[name] = _default_text(declared.default)
        elif declared.required:
            raise ActionError(f"missing required input '{name}'")
    return inputs


def input_environment(inputs: dict[str, str]) -> dict[str, str]:
    """Expose inputs as ``INPUT_<NAME>`` variables (``dry-run`` -> ``INPUT_DRY_RUN``)."""
    return {"INPUT_" + re.sub(r"[\s-]", "_", name).upper(): value for name, value in inputs.items()}


def action_commands(metadata: ActionMetadata, action_dir: Path, shell: str) -> list[tuple[str, str]]:
    """Return the ``(shell, command)`` pairs that run the action, in order.

    Parameters
    ----------
    metadata:
        Loaded action metadata.
    action_dir:
        Directory holding the metadata; ``main`` scripts are resolved
        against it.
    shell:
        Shell used when the action does not name one.

    Raises
    ------
    ActionError
        For docker and unknown runtimes, or when a runtime lacks the
        fields it needs.
    """
    runs = metadata.runs
    if runs.using == "docker":
        raise ActionError(f"docker-based actions not yet supported: {metadata.name}")
    if runs.using in NODE_RUNTIMES:
        if runs.steps:
            return [(step.shell or shell, step.run) for step in runs.steps if step.run]
        if runs.main:
            return [(shell, f"node {action_dir / runs.main}")]
        raise ActionError("composite/node action has no steps or main")
    if runs.using in SHELL_RUNTIMES:
        if not runs.run:
            raise ActionError("shell action has no run command")
        return [(runs.shell or shell, runs.run)]
    raise ActionError(f"unsupported action type: {runs.using}")


def _default_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class ActionResolver:
    """Maps action references to directories on disk.

    Parameters
    ----------
    cache_dir:
        Where remote actions are cloned.  Defaults to
        ``<tmp>/hookgate-actions``.
    """

    def __init__(self, cache_dir: Path | None = None) -> None:
        self._cache_dir = cache_dir or Path(tempfile.gettempdir()) / "hookgate-actions"

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def resolve(self, reference: ActionReference, working_dir: Path) -> Path:
        """Return the action directory for ``reference``.

        Raises
        ------
        ActionError
            When a local path does not exist or a clone fails.
        """
        if reference.is_local:
            action_dir = Path(reference.source)
            if not action_dir.is_absolute():
                action_dir = working_dir / action_dir
            if not action_dir.exists():
                raise ActionError(f"local action path not found: {action_dir}")
            return action_dir

        checkout = self._cache_dir / _cache_key(reference)
        if not checkout.exists():
            self._clone(reference, checkout)
        else:
            logger.debug("Using cached action %s at %s", reference.source, checkout)
        return checkout / reference.path if reference.path else checkout

    def _clone(self, reference: ActionReference, target: Path) -> None:
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ActionError(f"failed to create action cache directory: {exc}") from exc

        logger.info("Cloning action %s", reference.source)
        argv = [
            "git", "clone", "--depth", "1", "--branch", reference.version,
            reference.clone_url, str(target),
        ]
        try:
            completed = subprocess.run(argv, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise ActionError(f"failed to run git: {exc}") from exc
        if completed.returncode != 0:
            raise ActionError(
                f"failed to clone action repository {reference.clone_url}: "
                f"exit status {completed.returncode}\n{completed.stdout}{completed.stderr}"
            )


def _cache_key(reference: ActionReference) -> str:
    raw = f"{reference.owner}-{reference.repo}-{reference.version}"
    return re.sub(r"[^A-Za-z0-9._-]", "_", raw)
