"""Locate workflow files under a project's workflow directory."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

WORKFLOW_DIR = Path(".github") / "hooks"
_EXTENSIONS = (".yml", ".yaml")


@dataclass(frozen=True)
class WorkflowFile:
    """A discovered workflow file.

    Attributes
    ----------
    path:
        Absolute or root-joined path to the file.
    name:
        File stem, used to select a workflow by name.
    rel_path:
        Path relative to the project root.
    """

    path: Path
    name: str
    rel_path: Path


class WorkflowDiscovery:
    """Finds ``*.yml`` / ``*.yaml`` files below ``<root>/<workflow_dir>``.

    Parameters
    ----------
    root:
        Project root directory.
    workflow_dir:
        Directory, relative to ``root``, that holds workflows.
    """

    def __init__(self, root: Path, workflow_dir: Path = WORKFLOW_DIR) -> None:
        self._root = root
        self._workflow_dir = workflow_dir

    @property
    def directory(self) -> Path:
        return self._root / self._workflow_dir

    def discover(self) -> list[WorkflowFile]:
        """Return every workflow file, sorted by path; empty when the directory is absent."""
        directory = self.directory
        if not directory.is_dir():
            logger.debug("No workflow directory at %s", directory)
            return []
        files = [
            self._describe(path)
            for path in sorted(directory.rglob("*"))
            if path.is_file() and path.suffix.lower() in _EXTENSIONS
        ]
        logger.debug("Discovered %d workflow files in %s", len(files), directory)
        return files

    def find(self, name: str) -> WorkflowFile | None:
        """Return the workflow whose file stem is ``name``, if any."""
        for extension in _EXTENSIONS:
            candidate = self.directory / f"{name}{extension}"
            if candidate.is_file():
                return self._describe(candidate)
        return None

    def _describe(self, path: Path) -> WorkflowFile:
        try:
            rel_path = path.relative_to(self._root)
        except ValueError:
            rel_path = path
        return WorkflowFile(path=path, name=path.stem, rel_path=rel_path)
