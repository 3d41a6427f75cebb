"""Event records describing what an agent just did (or is about to do).

An :class:`Event` is a tagged union: any subset of the ``hook``, ``tool``,
``file``, ``commit`` and ``push`` sub-records may be populated.  Events
are immutable once built; the matcher and runner only read them.

Example
-------
>>> evt = Event.from_dict({"file": {"path": "src/index.js", "action": "edit"}})
>>> evt.file.action
'edit'
>>> evt.to_context()["file"]["path"]
'src/index.js'
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolEvent:
    """A tool invocation with its arguments."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    hook_type: str = ""

    def to_context(self) -> dict[str, Any]:
        return {"name": self.name, "args": dict(self.args), "hook_type": self.hook_type}


@dataclass(frozen=True)
class HookEvent:
    """An agent lifecycle hook (``preToolUse``, ``postToolUse``, ...)."""

    type: str
    cwd: str = ""
    tool: ToolEvent | None = None

    def to_context(self) -> dict[str, Any]:
        context: dict[str, Any] = {"type": self.type, "cwd": self.cwd}
        if self.tool is not None:
            context["tool"] = self.tool.to_context()
        return context


@dataclass(frozen=True)
class FileEvent:
    """A file create or edit."""

    path: str
    action: str
    content: str = ""

    def to_context(self) -> dict[str, Any]:
        return {"path": self.path, "action": self.action, "content": self.content}


@dataclass(frozen=True)
class FileStatus:
    """One changed file in a commit."""

    path: str
    status: str = ""


@dataclass(frozen=True)
class CommitEvent:
    """A git commit and the files it changes."""

    sha: str = ""
    message: str = ""
    author: str = ""
    files: tuple[FileStatus, ...] = ()
    branch: str = ""

    def to_context(self) -> dict[str, Any]:
        return {
            "sha": self.sha,
            "message": self.message,
            "author": self.author,
            "branch": self.branch,
            "files": [{"path": f.path, "status": f.status} for f in self.files],
        }


@dataclass(frozen=True)
class PushEvent:
    """A git push of one ref."""

    ref: str
    before: str = ""
    after: str = ""

    def to_context(self) -> dict[str, Any]:
        return {"ref": self.ref, "before": self.before, "after": self.after}


@dataclass(frozen=True)
class Event:
    """Everything the engine knows about one incoming event."""

    hook: HookEvent | None = None
    tool: ToolEvent | None = None
    file: FileEvent | None = None
    commit: CommitEvent | None = None
    push: PushEvent | None = None
    cwd: str = ""
    timestamp: str = ""
    lifecycle: str = ""

    @property
    def phase(self) -> str:
        """Effective lifecycle, ``"pre"`` or ``"post"``.

        An explicit ``lifecycle`` wins; otherwise a ``postToolUse`` hook
        means ``"post"`` and everything else ``"pre"``.
        """
        if self.lifecycle:
            return "post" if self.lifecycle in ("post", "postToolUse") else "pre"
        if self.hook is not None and self.hook.type == "postToolUse":
            return "post"
        return "pre"

    def to_context(self) -> dict[str, Any]:
        """Return the tree exposed to expressions as ``event``."""
        context: dict[str, Any] = {"cwd": self.cwd, "timestamp": self.timestamp}
        for key in ("hook", "tool", "file", "commit", "push"):
            record = getattr(self, key)
            if record is not None:
                context[key] = record.to_context()
        return context

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Build an event from decoded JSON, ignoring wrong-typed fields.

        Parameters
        ----------
        data:
            Mapping with optional ``hook``, ``tool``, ``file``, ``commit``,
            ``push``, ``cwd``, ``timestamp`` and ``lifecycle`` keys.
        """
        return cls(
            hook=_parse_hook(data.get("hook")),
            tool=_parse_tool(data.get("tool")),
            file=_parse_file(data.get("file")),
            commit=_parse_commit(data.get("commit")),
            push=_parse_push(data.get("push")),
            cwd=_str(data, "cwd"),
            timestamp=_str(data, "timestamp"),
            lifecycle=_str(data, "lifecycle"),
        )


# ---------------------------------------------------------------------------
# Permissive parsing helpers
# ---------------------------------------------------------------------------


def _str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _parse_tool(raw: object) -> ToolEvent | None:
    if not isinstance(raw, dict):
        return None
    args = raw.get("args")
    return ToolEvent(
        name=_str(raw, "name"),
        args=dict(args) if isinstance(args, dict) else {},
        hook_type=_str(raw, "hook_type") or _str(raw, "hookType"),
    )


def _parse_hook(raw: object) -> HookEvent | None:
    if not isinstance(raw, dict):
        return None
    return HookEvent(type=_str(raw, "type"), cwd=_str(raw, "cwd"), tool=_parse_tool(raw.get("tool")))


def _parse_file(raw: object) -> FileEvent | None:
    if not isinstance(raw, dict):
        return None
    return FileEvent(path=_str(raw, "path"), action=_str(raw, "action"), content=_str(raw, "content"))


def _parse_commit(raw: object) -> CommitEvent | None:
    if not isinstance(raw, dict):
        return None
    files = raw.get("files")
    statuses = tuple(
        FileStatus(path=_str(item, "path"), status=_str(item, "status"))
        for item in (files if isinstance(files, list) else [])
        if isinstance(item, dict)
    )
    return CommitEvent(
        sha=_str(raw, "sha"),
        message=_str(raw, "message"),
        author=_str(raw, "author"),
        files=statuses,
        branch=_str(raw, "branch"),
    )


def _parse_push(raw: object) -> PushEvent | None:
    if not isinstance(raw, dict):
        return None
    return PushEvent(ref=_str(raw, "ref"), before=_str(raw, "before"), after=_str(raw, "after"))
