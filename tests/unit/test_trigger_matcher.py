"""Tests for TriggerMatcher."""
from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from hookgate.schema.event import (
    CommitEvent,
    Event,
    FileEvent,
    FileStatus,
    HookEvent,
    PushEvent,
    ToolEvent,
)
from hookgate.schema.workflow import Workflow
from hookgate.triggers.matcher import TriggerMatcher


def make_workflow(on: dict[str, Any]) -> Workflow:
    return Workflow.model_validate({"name": "wf", "on": on, "steps": [{"run": "echo 1"}]})


def matches(on: dict[str, Any], event: Event) -> bool:
    return TriggerMatcher(make_workflow(on)).match(event)


# ---------------------------------------------------------------------------
# General behaviour
# ---------------------------------------------------------------------------


class TestGeneral:
    def test_no_triggers_never_match(self) -> None:
        event = Event(file=FileEvent(path="a.js", action="edit"))
        assert matches({}, event) is False

    def test_kinds_are_ored(self) -> None:
        on = {"push": {"branches": ["main"]}, "file": {"paths": ["**/*.js"]}}
        assert matches(on, Event(file=FileEvent(path="src/a.js", action="edit"))) is True

    def test_kind_without_matching_sub_record(self) -> None:
        assert matches({"commit": {}}, Event(file=FileEvent(path="a.js", action="edit"))) is False


# ---------------------------------------------------------------------------
# hooks
# ---------------------------------------------------------------------------


class TestHooks:
    def test_type_filter(self) -> None:
        event = Event(hook=HookEvent(type="preToolUse"))
        assert matches({"hooks": {"types": ["preToolUse"]}}, event) is True
        assert matches({"hooks": {"types": ["postToolUse"]}}, event) is False

    def test_tools_filter(self) -> None:
        event = Event(hook=HookEvent(type="preToolUse", tool=ToolEvent(name="edit")))
        assert matches({"hooks": {"tools": ["edit", "create"]}}, event) is True
        assert matches({"hooks": {"tools": ["bash"]}}, event) is False

    def test_hook_without_tool_bypasses_tools_filter(self) -> None:
        event = Event(hook=HookEvent(type="sessionStart"))
        assert matches({"hooks": {"tools": ["bash"]}}, event) is True

    def test_empty_hooks_key_matches_any_hook(self) -> None:
        workflow = Workflow.model_validate({"name": "wf", "on": {"hooks": None}, "steps": [{"run": "x"}]})
        assert TriggerMatcher(workflow).match(Event(hook=HookEvent(type="x"))) is True


# ---------------------------------------------------------------------------
# tool / tools
# ---------------------------------------------------------------------------


class TestTool:
    def test_name_must_match(self) -> None:
        event = Event(tool=ToolEvent(name="bash", args={"command": "npm test"}))
        assert matches({"tool": {"name": "bash"}}, event) is True
        assert matches({"tool": {"name": "edit"}}, event) is False

    def test_argument_globs(self) -> None:
        event = Event(tool=ToolEvent(name="bash", args={"command": "npm test"}))
        assert matches({"tool": {"name": "bash", "args": {"command": "npm *"}}}, event) is True
        assert matches({"tool": {"name": "bash", "args": {"command": "git *"}}}, event) is False

    def test_missing_argument_fails(self) -> None:
        event = Event(tool=ToolEvent(name="edit", args={"path": "a.js"}))
        assert matches({"tool": {"name": "edit", "args": {"old_str": "*"}}}, event) is False

    def test_non_string_argument_is_treated_as_empty(self) -> None:
        event = Event(tool=ToolEvent(name="edit", args={"count": 3}))
        assert matches({"tool": {"name": "edit", "args": {"count": "*"}}}, event) is True
        assert matches({"tool": {"name": "edit", "args": {"count": "3"}}}, event) is False

    def test_tools_list_is_ored(self) -> None:
        event = Event(tool=ToolEvent(name="create"))
        on = {"tools": [{"name": "edit"}, {"name": "create"}]}
        assert matches(on, event) is True


# ---------------------------------------------------------------------------
# file
# ---------------------------------------------------------------------------


class TestFile:
    def test_end_to_end_shape(self) -> None:
        event = Event(file=FileEvent(path="src/index.js", action="edit"))
        assert matches({"file": {"types": ["edit"], "paths": ["**/*.js"]}}, event) is True

    def test_action_filter(self) -> None:
        event = Event(file=FileEvent(path="src/index.js", action="create"))
        assert matches({"file": {"types": ["edit"]}}, event) is False

    def test_empty_paths_match_everything(self) -> None:
        event = Event(file=FileEvent(path="anything/at/all.bin", action="edit"))
        assert matches({"file": {}}, event) is True

    def test_paths_ignore(self) -> None:
        event = Event(file=FileEvent(path="vendor/lib.js", action="edit"))
        on = {"file": {"paths": ["**/*.js"], "paths-ignore": ["vendor/**"]}}
        assert matches(on, event) is False

    def test_negated_path(self) -> None:
        event = Event(file=FileEvent(path="src/foo_test.go", action="edit"))
        assert matches({"file": {"paths": ["**/*.go", "!**/*_test.go"]}}, event) is False


# ---------------------------------------------------------------------------
# commit
# ---------------------------------------------------------------------------


def commit_event(*paths: str) -> Event:
    return Event(commit=CommitEvent(sha="abc", files=tuple(FileStatus(p, "modified") for p in paths)))


class TestCommit:
    def test_empty_trigger_matches_any_commit(self) -> None:
        assert matches({"commit": {}}, commit_event()) is True

    def test_any_changed_file_may_match(self) -> None:
        assert matches({"commit": {"paths": ["src/**"]}}, commit_event("README.md", "src/a.py")) is True

    def test_no_changed_file_matches(self) -> None:
        assert matches({"commit": {"paths": ["src/**"]}}, commit_event("README.md")) is False

    def test_ignored_files_do_not_count(self) -> None:
        on = {"commit": {"paths-ignore": ["docs/**"]}}
        assert matches(on, commit_event("docs/a.md", "docs/b.md")) is False
        assert matches(on, commit_event("docs/a.md", "src/b.py")) is True


# ---------------------------------------------------------------------------
# push
# ---------------------------------------------------------------------------


def push_event(ref: str) -> Event:
    return Event(push=PushEvent(ref=ref))


class TestPush:
    def test_branch_filter(self) -> None:
        assert matches({"push": {"branches": ["main"]}}, push_event("refs/heads/main")) is True
        assert matches({"push": {"branches": ["main"]}}, push_event("refs/heads/dev")) is False

    def test_branch_glob_with_negation(self) -> None:
        on = {"push": {"branches": ["release/*", "!release/old"]}}
        assert matches(on, push_event("refs/heads/release/2.0")) is True
        assert matches(on, push_event("refs/heads/release/old")) is False

    def test_branches_ignore(self) -> None:
        on = {"push": {"branches-ignore": ["wip/*"]}}
        assert matches(on, push_event("refs/heads/wip/x")) is False
        assert matches(on, push_event("refs/heads/main")) is True

    def test_tag_filter(self) -> None:
        on = {"push": {"tags": ["v*"]}}
        assert matches(on, push_event("refs/tags/v1.0.0")) is True
        assert matches(on, push_event("refs/tags/nightly")) is False

    def test_tags_ignore(self) -> None:
        assert matches({"push": {"tags-ignore": ["*-rc*"]}}, push_event("refs/tags/v2.0-rc1")) is False

    @pytest.mark.parametrize(
        ("on", "ref"),
        [
            ({"push": {"branches": ["main"]}}, "refs/tags/v1.0.0"),
            ({"push": {"tags": ["v*"]}}, "refs/heads/dev"),
            ({"push": {"branches": ["main"]}}, "HEAD"),
        ],
    )
    def test_filter_of_other_ref_kind_passes(self, on: dict[str, Any], ref: str) -> None:
        assert matches(on, push_event(ref)) is True


# ---------------------------------------------------------------------------
# lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_trigger_defaults_to_pre(self) -> None:
        workflow = make_workflow({"file": {}, "commit": {}, "push": {}})
        assert workflow.on.file.lifecycle == "pre"
        assert workflow.on.commit.lifecycle == "pre"
        assert workflow.on.push.lifecycle == "pre"

    def test_post_event_skips_trigger_without_lifecycle(self) -> None:
        event = Event(file=FileEvent(path="src/a.js", action="edit"), lifecycle="post")
        assert matches({"file": {"paths": ["**/*.js"]}}, event) is False

    def test_post_trigger_matches_post_event_only(self) -> None:
        on = {"file": {"lifecycle": "post"}}
        assert matches(on, Event(file=FileEvent(path="a.js", action="edit"), lifecycle="post")) is True
        assert matches(on, Event(file=FileEvent(path="a.js", action="edit"))) is False

    def test_phase_follows_post_tool_use_hook(self) -> None:
        event = Event(
            hook=HookEvent(type="postToolUse"),
            commit=CommitEvent(sha="abc"),
        )
        assert event.phase == "post"
        assert matches({"commit": {}}, event) is False
        assert matches({"commit": {"lifecycle": "post"}}, event) is True

    def test_push_lifecycle(self) -> None:
        event = Event(push=PushEvent(ref="refs/heads/main"), lifecycle="postToolUse")
        assert matches({"push": {"branches": ["main"]}}, event) is False
        assert matches({"push": {"branches": ["main"], "lifecycle": "post"}}, event) is True

    def test_hook_and_tool_triggers_ignore_lifecycle(self) -> None:
        tool = ToolEvent(name="edit")
        event = Event(hook=HookEvent(type="postToolUse", tool=tool), tool=tool, lifecycle="post")
        assert matches({"tool": {"name": "edit"}}, event) is True
        assert matches({"hooks": {}}, event) is True

    def test_unknown_lifecycle_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_workflow({"file": {"lifecycle": "during"}})


class TestTriggerExtras:
    def test_tool_condition_reads_event(self) -> None:
        event = Event(tool=ToolEvent(name="bash", args={"command": "rm -rf build"}))
        on = {"tool": {"name": "bash", "if": "contains(event.tool.args.command, 'rm')"}}
        assert matches(on, event) is True
        on = {"tool": {"name": "bash", "if": "${{ startsWith(event.tool.args.command, 'ls') }}"}}
        assert matches(on, event) is False

    def test_broken_tool_condition_does_not_match(self) -> None:
        event = Event(tool=ToolEvent(name="bash"))
        assert matches({"tool": {"name": "bash", "if": "nosuch()"}}, event) is False

    def test_commit_branch_filters(self) -> None:
        on = {"commit": {"branches": ["main"], "branches-ignore": ["wip/*"]}}
        assert matches(on, Event(commit=CommitEvent(branch="main"))) is True
        assert matches(on, Event(commit=CommitEvent(branch="dev"))) is False
        assert matches({"commit": {"branches-ignore": ["wip/*"]}}, Event(commit=CommitEvent(branch="wip/a"))) is False

    def test_commit_without_branch_skips_branch_filter(self) -> None:
        assert matches({"commit": {"branches": ["main"]}}, commit_event("a.py")) is True

    def test_push_paths_are_accepted(self) -> None:
        on = {"push": {"paths": ["src/**"], "paths-ignore": ["docs/**"]}}
        assert matches(on, push_event("refs/heads/main")) is True
