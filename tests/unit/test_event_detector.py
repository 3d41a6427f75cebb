"""Tests for Event parsing and EventDetector."""
from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from hookgate.schema.detector import (
    EventDetector,
    extract_commit_message,
    extract_git_add_files,
    extract_push_ref,
    is_git_add_command,
    is_git_commit_command,
    is_git_push_command,
    matches_add_pathspec,
    merge_files,
    parse_porcelain_status,
    select_pending_files,
)
from hookgate.schema.event import Event, FileStatus
from hookgate.schema.workflow import Workflow
from hookgate.triggers.matcher import TriggerMatcher


@pytest.fixture()
def git() -> MagicMock:
    provider = MagicMock()
    provider.branch.return_value = "feature/x"
    provider.author.return_value = "dev@example.com"
    provider.staged_files.return_value = [FileStatus("src/a.py", "modified")]
    provider.working_tree_files.return_value = []
    return provider


@pytest.fixture()
def detector(git: MagicMock) -> EventDetector:
    return EventDetector(git)


# ---------------------------------------------------------------------------
# Event.from_dict
# ---------------------------------------------------------------------------


class TestEventFromDict:
    def test_full_event(self) -> None:
        event = Event.from_dict(
            {
                "hook": {"type": "preToolUse", "cwd": "/repo", "tool": {"name": "edit", "args": {"path": "a"}}},
                "tool": {"name": "edit", "args": {"path": "a"}, "hookType": "preToolUse"},
                "file": {"path": "a", "action": "edit"},
                "commit": {"sha": "1", "message": "m", "author": "x", "files": [{"path": "a", "status": "added"}]},
                "push": {"ref": "refs/heads/main"},
                "cwd": "/repo",
                "timestamp": "2024-01-01T00:00:00Z",
            }
        )
        assert event.hook is not None and event.hook.tool is not None
        assert event.tool is not None and event.tool.hook_type == "preToolUse"
        assert event.commit is not None and event.commit.files == (FileStatus("a", "added"),)
        assert event.push is not None and event.push.ref == "refs/heads/main"

    def test_wrong_types_are_ignored(self) -> None:
        event = Event.from_dict({"file": "not-a-map", "cwd": 7, "commit": {"files": "nope"}})
        assert event.file is None
        assert event.cwd == ""
        assert event.commit is not None and event.commit.files == ()

    @pytest.mark.parametrize(
        ("data", "phase"),
        [
            ({}, "pre"),
            ({"lifecycle": "post"}, "post"),
            ({"lifecycle": "postToolUse"}, "post"),
            ({"lifecycle": "sometime"}, "pre"),
            ({"hook": {"type": "postToolUse"}}, "post"),
            ({"hook": {"type": "postToolUse"}, "lifecycle": "pre"}, "pre"),
        ],
    )
    def test_phase(self, data: dict, phase: str) -> None:
        assert Event.from_dict(data).phase == phase

    def test_context_contains_only_present_records(self) -> None:
        context = Event.from_dict({"file": {"path": "a.js", "action": "edit"}, "cwd": "/r"}).to_context()
        assert context == {
            "cwd": "/r",
            "timestamp": "",
            "file": {"path": "a.js", "action": "edit", "content": ""},
        }


# ---------------------------------------------------------------------------
# Command helpers
# ---------------------------------------------------------------------------


class TestGitCommandDetection:
    @pytest.mark.parametrize(
        "command",
        ["git commit -m 'x'", "npm test && git commit -am wip", "cd app; git -C . commit", "  git commit"],
    )
    def test_commit_commands(self, command: str) -> None:
        assert is_git_commit_command(command) is True

    @pytest.mark.parametrize("command", ["echo commit", "gitk commit", "git status"])
    def test_not_commit_commands(self, command: str) -> None:
        assert is_git_commit_command(command) is False

    def test_push_commands(self) -> None:
        assert is_git_push_command("git push origin main") is True
        assert is_git_push_command("make && git push") is True
        assert is_git_push_command("git pull") is False

    @pytest.mark.parametrize(
        ("command", "message"),
        [
            ("git commit -m 'fix: bug'", "fix: bug"),
            ('git commit -m "add feature"', "add feature"),
            ("git commit -m wip", "wip"),
            ("git commit", ""),
        ],
    )
    def test_commit_message(self, command: str, message: str) -> None:
        assert extract_commit_message(command) == message

    def test_push_ref_for_tag(self) -> None:
        assert extract_push_ref("git push origin v1.2.3", "main") == "refs/tags/v1.2.3"
        assert extract_push_ref("git push origin refs/tags/rel", "main") == "refs/tags/rel"

    def test_push_ref_for_branch(self) -> None:
        assert extract_push_ref("git push", "dev") == "refs/heads/dev"
        assert extract_push_ref("git push", "") == "refs/heads/main"


# ---------------------------------------------------------------------------
# EventDetector
# ---------------------------------------------------------------------------


class TestDetector:
    def test_create_tool_becomes_file_event(self, detector: EventDetector) -> None:
        event = detector.detect(
            {"toolName": "create", "toolArgs": {"path": "src/new.js", "file_text": "x"}, "cwd": "/repo"}
        )
        assert event.file is not None
        assert (event.file.path, event.file.action, event.file.content) == ("src/new.js", "create", "x")
        assert event.tool is not None and event.tool.name == "create"
        assert event.hook is not None and event.hook.type == "preToolUse"

    def test_tool_args_as_json_text(self, detector: EventDetector) -> None:
        event = detector.detect({"toolName": "edit", "toolArgs": json.dumps({"path": "a.md"})})
        assert event.file is not None and event.file.path == "a.md"
        assert event.file.action == "edit"

    def test_post_lifecycle(self, detector: EventDetector) -> None:
        event = detector.detect({"toolName": "view", "toolArgs": {}}, lifecycle="post")
        assert event.hook is not None and event.hook.type == "postToolUse"
        assert event.tool is not None and event.tool.hook_type == "postToolUse"

    def test_git_commit(self, detector: EventDetector, git: MagicMock) -> None:
        event = detector.detect(
            {"toolName": "bash", "toolArgs": {"command": "git commit -m 'ship it'"}, "cwd": "/repo"}
        )
        assert event.commit is not None
        assert event.commit.sha == "pending"
        assert event.commit.message == "ship it"
        assert event.commit.author == "dev@example.com"
        assert event.commit.files == (FileStatus("src/a.py", "modified"),)
        git.staged_files.assert_called_once_with("/repo")

    def test_git_push_uses_current_branch(self, detector: EventDetector) -> None:
        event = detector.detect({"toolName": "powershell", "toolArgs": {"command": "git push"}})
        assert event.push is not None and event.push.ref == "refs/heads/feature/x"

    def test_plain_shell_command(self, detector: EventDetector, git: MagicMock) -> None:
        event = detector.detect({"toolName": "bash", "toolArgs": {"command": "ls -la"}})
        assert event.commit is None and event.push is None and event.file is None
        git.author.assert_not_called()

    def test_unparseable_args(self, detector: EventDetector) -> None:
        event = detector.detect({"toolName": "bash", "toolArgs": "{not json"})
        assert event.tool is not None and event.tool.args == {}

    def test_timestamp_defaults_to_now(self, detector: EventDetector) -> None:
        assert detector.detect({"toolName": "x"}).timestamp
        assert detector.detect({"toolName": "x", "timestamp": "T"}).timestamp == "T"

    def test_event_records_lifecycle(self, detector: EventDetector) -> None:
        assert detector.detect({"toolName": "view"}).lifecycle == "pre"
        post = detector.detect({"toolName": "view"}, lifecycle="post")
        assert post.lifecycle == "post"
        assert post.phase == "post"

    def test_commit_records_branch(self, detector: EventDetector) -> None:
        event = detector.detect({"toolName": "bash", "toolArgs": {"command": "git commit -m x"}})
        assert event.commit is not None and event.commit.branch == "feature/x"


# ---------------------------------------------------------------------------
# git add && git commit
# ---------------------------------------------------------------------------


class TestGitAddParsing:
    @pytest.mark.parametrize(
        "command",
        ["git add .", "git add src/app.js && git commit -m wip", "npm test; git add -A", "git -C repo add x"],
    )
    def test_add_commands(self, command: str) -> None:
        assert is_git_add_command(command) is True

    @pytest.mark.parametrize("command", ["git commit -m 'add feature'", "git status", "echo git add"])
    def test_not_add_commands(self, command: str) -> None:
        assert is_git_add_command(command) is False

    @pytest.mark.parametrize(
        ("command", "files"),
        [
            ("git add src/app.js && git commit -m wip", ["src/app.js"]),
            ("git add -v a.py b.py; git commit", ["a.py", "b.py"]),
            ("git add -A && git commit", []),
            ("git add .", ["."]),
            ("git commit -m x", []),
        ],
    )
    def test_extract_files(self, command: str, files: list[str]) -> None:
        assert extract_git_add_files(command) == files

    @pytest.mark.parametrize(
        ("path", "pathspec", "expected"),
        [
            ("src/app.js", ".", True),
            ("src/app.js", "src/app.js", True),
            ("src/app.js", "app.js", True),
            ("src/app.js", "*.js", True),
            ("src/app.js", "src", True),
            ("src/app.js", "src/", True),
            ("docs/readme.md", "src", False),
            ("docs/readme.md", "*.js", False),
        ],
    )
    def test_pathspec_matching(self, path: str, pathspec: str, expected: bool) -> None:
        assert matches_add_pathspec(path, pathspec) is expected

    def test_porcelain_status(self) -> None:
        output = " M src/app.js\nM  lib/b.py\n?? new.txt\nD  gone.c\nR  old.md -> new.md\nA  added.go\n"
        assert parse_porcelain_status(output) == [
            FileStatus("src/app.js", "modified"),
            FileStatus("lib/b.py", "modified"),
            FileStatus("new.txt", "added"),
            FileStatus("gone.c", "deleted"),
            FileStatus("new.md", "renamed"),
            FileStatus("added.go", "added"),
        ]

    def test_select_pending_files(self) -> None:
        files = [FileStatus("src/app.js", "modified"), FileStatus("README.md", "modified")]
        assert select_pending_files("git add src && git commit", files) == [files[0]]
        assert select_pending_files("git add -A && git commit", files) == files

    def test_merge_keeps_first_entry_per_path(self) -> None:
        merged = merge_files(
            [FileStatus("a", "added")],
            [FileStatus("a", "modified"), FileStatus("b", "deleted")],
        )
        assert merged == [FileStatus("a", "added"), FileStatus("b", "deleted")]


class TestAddThenCommit:
    def test_added_files_join_commit(self, git: MagicMock) -> None:
        git.staged_files.return_value = []
        git.working_tree_files.return_value = [
            FileStatus("src/app.js", "modified"),
            FileStatus("notes.txt", "added"),
        ]
        event = EventDetector(git).detect(
            {"toolName": "bash", "toolArgs": {"command": "git add src/app.js && git commit -m wip"}, "cwd": "/repo"}
        )
        assert event.commit is not None
        assert [f.path for f in event.commit.files] == ["src/app.js"]
        git.working_tree_files.assert_called_once_with("/repo")

        workflow = Workflow.model_validate(
            {"name": "src", "on": {"commit": {"paths": ["src/**"]}}, "steps": [{"run": "true"}]}
        )
        assert TriggerMatcher(workflow).match(event) is True

    def test_staged_entry_wins_over_pending(self, git: MagicMock) -> None:
        git.working_tree_files.return_value = [FileStatus("src/a.py", "added"), FileStatus("src/b.py", "added")]
        event = EventDetector(git).detect({"toolName": "bash", "toolArgs": {"command": "git add . && git commit"}})
        assert event.commit is not None
        assert event.commit.files == (FileStatus("src/a.py", "modified"), FileStatus("src/b.py", "added"))

    def test_plain_commit_ignores_working_tree(self, detector: EventDetector, git: MagicMock) -> None:
        detector.detect({"toolName": "bash", "toolArgs": {"command": "git commit -m 'add feature'"}})
        git.working_tree_files.assert_not_called()
