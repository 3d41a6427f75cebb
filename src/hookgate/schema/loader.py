"""Workflow loader: YAML files into validated :class:`Workflow` objects.

Example
-------
>>> loader = WorkflowLoader()
>>> workflow = loader.load(Path(".github/hooks/lint.yml"))
>>> workflow.name
'lint'
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import ValidationError

from hookgate.schema.workflow import Workflow

logger = logging.getLogger(__name__)


class WorkflowLoadError(Exception):
    """Raised when a workflow file cannot be read, parsed or validated.

    Attributes
    ----------
    path:
        The offending file (``None`` for in-memory sources).
    message:
        One-line summary.
    details:
        Individual validation messages, one per problem.
    """

    def __init__(self, path: Path | None, message: str, details: list[str] | None = None) -> None:
        self.path = path
        self.message = message
        self.details = details or []
        prefix = f"{path}: " if path is not None else ""
        suffix = f" ({'; '.join(self.details)})" if self.details else ""
        super().__init__(f"{prefix}{message}{suffix}")

    def describe(self) -> str:
        """The message and details without the path prefix."""
        if not self.details:
            return self.message
        return f"{self.message} ({'; '.join(self.details)})"


@dataclass
class ValidationResult:
    """Outcome of validating one or more workflow files."""

    valid: bool = True
    errors: list[WorkflowLoadError] = field(default_factory=list)

    def add(self, error: WorkflowLoadError) -> None:
        self.valid = False
        self.errors.append(error)


class WorkflowLoader:
    """Parses and validates workflow YAML."""

    def load(self, path: str | Path) -> Workflow:
        """Load and validate a workflow file.

        Raises
        ------
        WorkflowLoadError
            When the file is missing, is not valid YAML, or fails validation.
        """
        path = Path(path)
        if not path.is_file():
            raise WorkflowLoadError(path, "file not found")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise WorkflowLoadError(path, f"failed to read file: {exc}") from exc
        return self._parse(text, path)

    def load_string(self, yaml_content: str) -> Workflow:
        """Load a workflow from YAML text (handy in tests)."""
        return self._parse(yaml_content, None)

    def validate(self, paths: list[Path]) -> ValidationResult:
        """Validate several files, collecting every error instead of stopping."""
        result = ValidationResult()
        for path in paths:
            try:
                self.load(path)
            except WorkflowLoadError as exc:
                logger.debug("Workflow %s failed validation: %s", path, exc)
                result.add(exc)
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _parse(self, text: str, path: Path | None) -> Workflow:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise WorkflowLoadError(path, f"invalid YAML syntax: {exc}") from exc

        if not isinstance(raw, dict):
            raise WorkflowLoadError(path, "workflow must be a YAML mapping")

        # YAML 1.1 reads a bare ``on`` key as boolean True.
        if True in raw and "on" not in raw:
            raw["on"] = raw.pop(True)

        try:
            return Workflow.model_validate(raw)
        except ValidationError as exc:
            details = [
                f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
                for error in exc.errors()
            ]
            raise WorkflowLoadError(path, "workflow validation failed", details) from exc
