"""Build :class:`Event` objects from raw agent hook payloads.

Agent hosts call a hook with a payload like::

    {"toolName": "bash", "toolArgs": "{\"command\": \"git commit -m 'wip'\"}", "cwd": "/repo"}

The detector always fills the ``hook`` and ``tool`` sub-records and then
recognises the payloads that mean something more specific:

- ``create`` / ``edit`` tools become ``file`` events;
- shell tools running ``git commit`` become ``commit`` events;
- shell tools running ``git push`` become ``push`` events.

When one command stages and commits (``git add src && git commit``) the
hook fires before anything is staged, so the files the ``git add`` would
pick up from ``git status`` are merged into the commit's file list.

Git repository state (current branch, author, staged and pending files)
comes from a :class:`GitProvider`, which tests replace with a stub.
"""
from __future__ import annotations

import fnmatch
import json
import posixpath
import logging
import re
import subprocess
from datetime import datetime, timezone
from typing import Any, Protocol

from hookgate.schema.event import (
    CommitEvent,
    Event,
    FileEvent,
    FileStatus,
    HookEvent,
    PushEvent,
    ToolEvent,
)

logger = logging.getLogger(__name__)

SHELL_TOOLS = frozenset({"powershell", "bash", "shell", "terminal"})

_GIT_COMMIT = re.compile(r"(?:^|&&|\|\||;)\s*git\b.*\bcommit\b")
_GIT_PUSH = re.compile(r"(?:^|&&|\|\||;)\s*git\b.*\bpush\b")
_COMMIT_MESSAGE = re.compile(r"""-m\s+["']([^"']+)["']|-m\s+(\S+)""")
_TAG_PUSH = re.compile(r"git\s+push\s+\S+\s+(v[\d.]+|refs/tags/\S+)")
# ``add`` must be the subcommand; a commit message containing "add" is not a git add.
_GIT_ADD = re.compile(r"(?:^|&&|\|\||;)\s*git\s+(?:-C\s+\S+\s+)?add\b")
_GIT_ADD_FILES = re.compile(r"git\s+(?:-C\s+\S+\s+)?add\s+(.+?)(?:&&|\|\||;|$)")
_ADD_EVERYTHING = frozenset({".", "-A", "--all"})

_STATUS_NAMES = {"A": "added", "M": "modified", "D": "deleted", "R": "renamed", "C": "copied"}


class GitProvider(Protocol):
    """Source of git repository context."""

    def branch(self, cwd: str) -> str: ...

    def author(self, cwd: str) -> str: ...

    def staged_files(self, cwd: str) -> list[FileStatus]: ...

    def working_tree_files(self, cwd: str) -> list[FileStatus]: ...


class SubprocessGitProvider:
    """Reads repository context by shelling out to ``git``.

    Every query degrades to an empty value when git is unavailable or the
    directory is not a repository.
    """

    def branch(self, cwd: str) -> str:
        return self._git(cwd, "rev-parse", "--abbrev-ref", "HEAD")

    def author(self, cwd: str) -> str:
        return self._git(cwd, "config", "user.email")

    def staged_files(self, cwd: str) -> list[FileStatus]:
        output = self._git(cwd, "diff", "--cached", "--name-status")
        files: list[FileStatus] = []
        for line in output.splitlines():
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            status = _STATUS_NAMES.get(parts[0][:1], parts[0])
            files.append(FileStatus(path=parts[-1], status=status))
        return files

    def working_tree_files(self, cwd: str) -> list[FileStatus]:
        """Modified and untracked files from ``git status --porcelain``."""
        return parse_porcelain_status(self._git(cwd, "status", "--porcelain", strip=False))

    def _git(self, cwd: str, *args: str, strip: bool = True) -> str:
        try:
            completed = subprocess.run(
                ["git", *args],
                cwd=cwd or None,
                capture_output=True,
                text=True,
                timeout=10,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("git %s failed: %s", " ".join(args), exc)
            return ""
        if completed.returncode != 0:
            return ""
        return completed.stdout.strip() if strip else completed.stdout


def parse_porcelain_status(output: str) -> list[FileStatus]:
    """Parse ``git status --porcelain`` lines (``XY path``).

    Leading spaces are significant, so ``output`` must not be stripped.
    Renames (``old -> new``) report the new path; untracked files count as
    added.
    """
    files: list[FileStatus] = []
    for line in output.rstrip("\r\n").splitlines():
        if len(line) < 4:
            continue
        index, work_tree, path = line[0], line[1], line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        if "?" in (index, work_tree) or index == "A":
            status = "added"
        elif "D" in (index, work_tree):
            status = "deleted"
        elif index == "R":
            status = "renamed"
        else:
            status = "modified"
        files.append(FileStatus(path=path, status=status))
    return files


def is_git_commit_command(command: str) -> bool:
    return _GIT_COMMIT.search(command.strip()) is not None


def is_git_push_command(command: str) -> bool:
    return _GIT_PUSH.search(command.strip()) is not None


def is_git_add_command(command: str) -> bool:
    return _GIT_ADD.search(command.strip()) is not None


def extract_git_add_files(command: str) -> list[str]:
    """Pathspecs given to ``git add``, flags dropped."""
    match = _GIT_ADD_FILES.search(command)
    if match is None:
        return []
    return [part for part in match.group(1).split() if not part.startswith("-")]


def matches_add_pathspec(path: str, pathspec: str) -> bool:
    """Loose check of whether ``git add <pathspec>`` would stage ``path``."""
    if pathspec in _ADD_EVERYTHING:
        return True
    base = posixpath.basename(path)
    if "*" in pathspec and (fnmatch.fnmatchcase(path, pathspec) or fnmatch.fnmatchcase(base, pathspec)):
        return True
    if pathspec.endswith("/") or "." not in pathspec:
        if path.startswith(pathspec.rstrip("/")):
            return True
    return path == pathspec or base == pathspec or pathspec in path


def select_pending_files(command: str, files: list[FileStatus]) -> list[FileStatus]:
    """Filter working-tree changes to those the command's ``git add`` stages.

    A bare ``git add`` with only flags selects everything.
    """
    pathspecs = extract_git_add_files(command)
    if not pathspecs:
        return list(files)
    return [f for f in files if any(matches_add_pathspec(f.path, spec) for spec in pathspecs)]


def merge_files(existing: list[FileStatus], extra: list[FileStatus]) -> list[FileStatus]:
    """Concatenate two file lists keeping the first entry for each path."""
    seen: set[str] = set()
    merged: list[FileStatus] = []
    for item in [*existing, *extra]:
        if item.path not in seen:
            seen.add(item.path)
            merged.append(item)
    return merged


def extract_commit_message(command: str) -> str:
    match = _COMMIT_MESSAGE.search(command)
    if match is None:
        return ""
    return match.group(1) or match.group(2) or ""


def extract_push_ref(command: str, current_branch: str) -> str:
    """Return the ref a ``git push`` command pushes.

    An explicit ``v1.2.3`` or ``refs/tags/...`` argument wins; otherwise the
    current branch (``main`` when unknown).
    """
    match = _TAG_PUSH.search(command)
    if match is not None:
        tag = match.group(1)
        return tag if tag.startswith("refs/") else f"refs/tags/{tag}"
    return f"refs/heads/{current_branch or 'main'}"


class EventDetector:
    """Turns raw hook payloads into events.

    Parameters
    ----------
    git:
        Git context provider; :class:`SubprocessGitProvider` by default.
    """

    def __init__(self, git: GitProvider | None = None) -> None:
        self._git = git or SubprocessGitProvider()

    def detect(self, payload: dict[str, Any], lifecycle: str = "pre") -> Event:
        """Build an event from a decoded payload.

        Parameters
        ----------
        payload:
            Mapping with ``toolName``, ``toolArgs`` (object or JSON text),
            ``cwd`` and optional ``timestamp``.
        lifecycle:
            ``"pre"`` or ``"post"``; selects ``preToolUse``/``postToolUse``.
        """
        tool_name = str(payload.get("toolName") or "")
        cwd = str(payload.get("cwd") or "")
        timestamp = str(payload.get("timestamp") or datetime.now(tz=timezone.utc).isoformat())
        args = _decode_args(payload.get("toolArgs"))
        hook_type = "postToolUse" if lifecycle == "post" else "preToolUse"

        tool = ToolEvent(name=tool_name, args=args, hook_type=hook_type)
        fields: dict[str, Any] = {
            "hook": HookEvent(type=hook_type, cwd=cwd, tool=tool),
            "tool": tool,
            "cwd": cwd,
            "timestamp": timestamp,
            "lifecycle": "post" if lifecycle == "post" else "pre",
        }

        if tool_name == "create":
            fields["file"] = FileEvent(
                path=str(args.get("path") or ""),
                action="create",
                content=str(args.get("file_text") or ""),
            )
        elif tool_name == "edit":
            fields["file"] = FileEvent(path=str(args.get("path") or ""), action="edit")
        elif tool_name in SHELL_TOOLS:
            command = str(args.get("command") or args.get("script") or args.get("code") or "")
            if is_git_commit_command(command):
                files = self._git.staged_files(cwd)
                if is_git_add_command(command):
                    pending = select_pending_files(command, self._git.working_tree_files(cwd))
                    files = merge_files(files, pending)
                fields["commit"] = CommitEvent(
                    sha="pending",
                    message=extract_commit_message(command),
                    author=self._git.author(cwd),
                    files=tuple(files),
                    branch=self._git.branch(cwd),
                )
            elif is_git_push_command(command):
                fields["push"] = PushEvent(ref=extract_push_ref(command, self._git.branch(cwd)))

        event = Event(**fields)
        logger.debug(
            "Detected event for tool %s: %s",
            tool_name,
            [k for k in ("file", "commit", "push") if getattr(event, k) is not None],
        )
        return event


def _decode_args(raw: object) -> dict[str, Any]:
    """Accept tool arguments as an object or as JSON-encoded text."""
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, str) and raw.strip():
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}
