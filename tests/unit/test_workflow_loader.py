"""Tests for workflow models, WorkflowLoader, WorkflowDiscovery and WorkflowResult."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from hookgate.schema.discovery import WorkflowDiscovery
from hookgate.schema.loader import WorkflowLoader, WorkflowLoadError
from hookgate.schema.result import WorkflowResult

LINT_WORKFLOW = textwrap.dedent(
    """\
    name: lint-js
    description: Lint JavaScript on edit
    on:
      file:
        types: [edit, create]
        paths: ["**/*.js"]
        paths-ignore: ["vendor/**"]
    env:
      NODE_ENV: test
      RETRIES: 3
    steps:
      - name: lint
        run: npx eslint ${{ event.file.path }}
        timeout: 60
        continue-on-error: true
        working-directory: web
      - uses: ./actions/report
        with:
          verbose: true
    """
)


@pytest.fixture()
def loader() -> WorkflowLoader:
    return WorkflowLoader()


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestLoadString:
    def test_full_workflow(self, loader: WorkflowLoader) -> None:
        workflow = loader.load_string(LINT_WORKFLOW)
        assert workflow.name == "lint-js"
        assert workflow.blocking is True
        assert workflow.on.file is not None
        assert workflow.on.file.paths_ignore == ["vendor/**"]
        assert workflow.env == {"NODE_ENV": "test", "RETRIES": "3"}

    def test_step_aliases(self, loader: WorkflowLoader) -> None:
        first, second = loader.load_string(LINT_WORKFLOW).steps
        assert first.timeout == 60
        assert first.continue_on_error is True
        assert first.working_directory == "web"
        assert second.uses == "./actions/report"
        assert second.with_ == {"verbose": "true"}

    def test_unnamed_step_display_name(self, loader: WorkflowLoader) -> None:
        workflow = loader.load_string(LINT_WORKFLOW)
        assert workflow.step_name(0) == "lint"
        assert workflow.step_name(1) == "Step 2"

    def test_bare_on_key(self, loader: WorkflowLoader) -> None:
        workflow = loader.load_string("name: x\non:\n  commit:\nsteps:\n  - run: echo\n")
        assert workflow.on.commit is not None
        assert workflow.on.commit.paths == []

    def test_blocking_can_be_disabled(self, loader: WorkflowLoader) -> None:
        workflow = loader.load_string("name: x\nblocking: false\non: {hooks: {}}\nsteps:\n  - run: echo\n")
        assert workflow.blocking is False

    def test_boolean_condition_becomes_text(self, loader: WorkflowLoader) -> None:
        workflow = loader.load_string("name: x\non: {hooks: {}}\nsteps:\n  - run: echo\n    if: false\n")
        assert workflow.steps[0].if_ == "false"

    def test_unknown_workflow_keys_are_kept(self, loader: WorkflowLoader) -> None:
        workflow = loader.load_string("name: x\nowner: team-a\non: {hooks: {}}\nsteps:\n  - run: echo\n")
        assert workflow.model_extra == {"owner": "team-a"}


class TestValidationErrors:
    @pytest.mark.parametrize(
        ("content", "fragment"),
        [
            ("on: {hooks: {}}\nsteps:\n  - run: echo\n", "name"),
            ("name: x\nsteps:\n  - run: echo\n", "on"),
            ("name: x\non: {hooks: {}}\nsteps: []\n", "steps"),
            ("name: x\non: {hooks: {}}\nsteps:\n  - name: nothing\n", "exactly one of 'run' or 'uses'"),
            ("name: x\non: {hooks: {}}\nsteps:\n  - run: a\n    uses: ./b\n", "exactly one of 'run' or 'uses'"),
            ("name: x\non: {hooks: {}}\nsteps:\n  - run: a\n    timeout: 0\n", "timeout"),
            ("name: x\non: {tool: {args: {a: b}}}\nsteps:\n  - run: a\n", "name"),
            ("name: x\non: {hooks: {}}\nsteps:\n  - run: a\n    bogus: 1\n", "bogus"),
            ("name: x\non: {fiel: {}}\nsteps:\n  - run: a\n", "fiel"),
        ],
    )
    def test_invalid_workflows(self, loader: WorkflowLoader, content: str, fragment: str) -> None:
        with pytest.raises(WorkflowLoadError) as info:
            loader.load_string(content)
        assert info.value.message == "workflow validation failed"
        assert fragment in str(info.value)

    def test_invalid_yaml(self, loader: WorkflowLoader) -> None:
        with pytest.raises(WorkflowLoadError, match="invalid YAML syntax"):
            loader.load_string("name: [unclosed\n")

    def test_non_mapping(self, loader: WorkflowLoader) -> None:
        with pytest.raises(WorkflowLoadError, match="must be a YAML mapping"):
            loader.load_string("- just\n- a list\n")


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class TestLoadFile:
    def test_load_from_disk(self, loader: WorkflowLoader, tmp_path: Path) -> None:
        path = write(tmp_path / "lint.yml", LINT_WORKFLOW)
        assert loader.load(path).name == "lint-js"

    def test_missing_file(self, loader: WorkflowLoader, tmp_path: Path) -> None:
        with pytest.raises(WorkflowLoadError, match="file not found") as info:
            loader.load(tmp_path / "nope.yml")
        assert info.value.path == tmp_path / "nope.yml"

    def test_describe_omits_path(self, loader: WorkflowLoader, tmp_path: Path) -> None:
        path = write(tmp_path / "bad.yml", "name: x\non: {hooks: {}}\nsteps: []\n")
        with pytest.raises(WorkflowLoadError) as info:
            loader.load(path)
        assert str(tmp_path) in str(info.value)
        assert str(tmp_path) not in info.value.describe()

    def test_validate_collects_every_error(self, loader: WorkflowLoader, tmp_path: Path) -> None:
        good = write(tmp_path / "good.yml", LINT_WORKFLOW)
        bad = write(tmp_path / "bad.yml", "name: x\n")
        worse = write(tmp_path / "worse.yml", "name: [unclosed\n")
        result = loader.validate([good, bad, worse])
        assert result.valid is False
        assert [error.path for error in result.errors] == [bad, worse]

    def test_validate_all_good(self, loader: WorkflowLoader, tmp_path: Path) -> None:
        result = loader.validate([write(tmp_path / "a.yml", LINT_WORKFLOW)])
        assert result.valid is True
        assert result.errors == []


class TestDiscovery:
    def test_discovers_yaml_recursively_sorted(self, tmp_path: Path) -> None:
        hooks = tmp_path / ".github" / "hooks"
        write(hooks / "b.yaml", LINT_WORKFLOW)
        write(hooks / "a.yml", LINT_WORKFLOW)
        write(hooks / "nested" / "c.yml", LINT_WORKFLOW)
        write(hooks / "notes.txt", "ignore me")

        files = WorkflowDiscovery(tmp_path).discover()
        assert [f.rel_path.as_posix() for f in files] == [
            ".github/hooks/a.yml",
            ".github/hooks/b.yaml",
            ".github/hooks/nested/c.yml",
        ]
        assert [f.name for f in files] == ["a", "b", "c"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert WorkflowDiscovery(tmp_path).discover() == []

    def test_custom_directory(self, tmp_path: Path) -> None:
        write(tmp_path / "checks" / "x.yml", LINT_WORKFLOW)
        assert len(WorkflowDiscovery(tmp_path, Path("checks")).discover()) == 1

    def test_find_by_name(self, tmp_path: Path) -> None:
        write(tmp_path / ".github" / "hooks" / "lint.yaml", LINT_WORKFLOW)
        discovery = WorkflowDiscovery(tmp_path)
        found = discovery.find("lint")
        assert found is not None
        assert found.path.name == "lint.yaml"
        assert discovery.find("missing") is None


class TestWorkflowResult:
    def test_allow_payload(self) -> None:
        assert WorkflowResult.allow().to_dict() == {
            "permissionDecision": "allow",
            "permissionDecisionReason": "",
        }

    def test_deny_payload_with_log_file(self) -> None:
        result = WorkflowResult.deny("blocked", "/tmp/hookgate-x.log")
        assert result.allowed is False
        assert result.to_dict() == {
            "permissionDecision": "deny",
            "permissionDecisionReason": "blocked",
            "logFile": "/tmp/hookgate-x.log",
        }
