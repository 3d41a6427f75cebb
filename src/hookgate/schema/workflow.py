"""Workflow declaration models with Pydantic v2 validation.

A workflow file looks like::

    name: lint-js
    description: Lint JavaScript before the agent edits it
    blocking: true
    on:
      file:
        types: [edit, create]
        paths: ["**/*.js", "!**/vendor/**"]
    env:
      NODE_ENV: test
    steps:
      - name: lint
        run: npx eslint ${{ event.file.path }}
        timeout: 60

Keys use the kebab-case spelling of the declaration format
(``paths-ignore``, ``working-directory``, ``continue-on-error``); the
snake_case attribute names are accepted as well.
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _stringify_map(value: object) -> object:
    """Render scalar map values (``PORT: 8080``) as strings."""
    if not isinstance(value, dict):
        return value
    return {str(k): _scalar_text(v) for k, v in value.items()}


def _condition_text(value: object) -> object:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else value


def _scalar_text(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


Lifecycle = Literal["pre", "post"]


class _TriggerModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class _LifecycleTrigger(_TriggerModel):
    # Triggers without a lifecycle key fire before the tool runs.
    lifecycle: Lifecycle = Field(default="pre")


class HooksTrigger(_TriggerModel):
    """Matches agent hook events by hook type and attached tool name."""

    types: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)


class ToolTrigger(_TriggerModel):
    """Matches one tool by name, optionally globbing its string arguments.

    ``if`` is an expression over ``event`` that must also be true.
    """

    name: str = Field(min_length=1)
    args: dict[str, str] = Field(default_factory=dict)
    if_: str = Field(default="", alias="if")

    @field_validator("args", mode="before")
    @classmethod
    def stringify_args(cls, value: object) -> object:
        return _stringify_map(value)

    @field_validator("if_", mode="before")
    @classmethod
    def condition_as_text(cls, value: object) -> object:
        return _condition_text(value)


class FileTrigger(_LifecycleTrigger):
    """Matches file create/edit events by action and path globs."""

    types: list[str] = Field(default_factory=list)
    paths: list[str] = Field(default_factory=list)
    paths_ignore: list[str] = Field(default_factory=list, alias="paths-ignore")


class CommitTrigger(_LifecycleTrigger):
    """Matches commits touching at least one file selected by the globs.

    ``branches``/``branches-ignore`` additionally filter on the branch the
    commit lands on when the event carries one.
    """

    paths: list[str] = Field(default_factory=list)
    paths_ignore: list[str] = Field(default_factory=list, alias="paths-ignore")
    branches: list[str] = Field(default_factory=list)
    branches_ignore: list[str] = Field(default_factory=list, alias="branches-ignore")


class PushTrigger(_LifecycleTrigger):
    """Matches pushes by branch or tag name.

    ``paths``/``paths-ignore`` are accepted for symmetry with commit
    triggers; push events carry no file list, so they never filter.
    """

    paths: list[str] = Field(default_factory=list)
    paths_ignore: list[str] = Field(default_factory=list, alias="paths-ignore")

    branches: list[str] = Field(default_factory=list)
    branches_ignore: list[str] = Field(default_factory=list, alias="branches-ignore")
    tags: list[str] = Field(default_factory=list)
    tags_ignore: list[str] = Field(default_factory=list, alias="tags-ignore")


class OnConfig(_TriggerModel):
    """The set of triggers declared under ``on:``.

    A trigger key present without a body (``commit:``) is an empty trigger
    that matches every event of that kind.
    """

    hooks: HooksTrigger | None = None
    tool: ToolTrigger | None = None
    tools: list[ToolTrigger] = Field(default_factory=list)
    file: FileTrigger | None = None
    commit: CommitTrigger | None = None
    push: PushTrigger | None = None

    @model_validator(mode="before")
    @classmethod
    def empty_keys_are_empty_triggers(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for key in ("hooks", "file", "commit", "push"):
                if key in data and data[key] is None:
                    data[key] = {}
        return data

    def is_empty(self) -> bool:
        """True when no trigger kind is configured."""
        return (
            self.hooks is None
            and self.tool is None
            and not self.tools
            and self.file is None
            and self.commit is None
            and self.push is None
        )


class Step(BaseModel):
    """One unit of work: a condition plus a ``run`` command or a ``uses`` action."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(default="")
    if_: str = Field(default="", alias="if")
    run: str | None = Field(default=None)
    uses: str | None = Field(default=None)
    shell: str | None = Field(default=None)
    with_: dict[str, str] = Field(default_factory=dict, alias="with")
    env: dict[str, str] = Field(default_factory=dict)
    working_directory: str | None = Field(default=None, alias="working-directory")
    timeout: int | None = Field(default=None, ge=1)
    continue_on_error: bool = Field(default=False, alias="continue-on-error")

    @field_validator("with_", "env", mode="before")
    @classmethod
    def stringify_maps(cls, value: object) -> object:
        return _stringify_map(value)

    @field_validator("if_", mode="before")
    @classmethod
    def condition_as_text(cls, value: object) -> object:
        return _condition_text(value)

    @model_validator(mode="after")
    def run_xor_uses(self) -> Step:
        if bool(self.run) == bool(self.uses):
            raise ValueError("step must define exactly one of 'run' or 'uses'")
        return self


class Workflow(BaseModel):
    """A complete workflow declaration."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = Field(default="")
    blocking: bool = Field(default=True)
    on: OnConfig
    env: dict[str, str] = Field(default_factory=dict)
    steps: list[Step] = Field(min_length=1)

    @field_validator("env", mode="before")
    @classmethod
    def stringify_env(cls, value: object) -> object:
        return _stringify_map(value)

    def step_name(self, index: int) -> str:
        """Display name of the step at ``index`` (``Step N`` when unnamed)."""
        return self.steps[index].name or f"Step {index + 1}"
