"""CLI entry point for hookgate.

Invoked as::

    hookgate [OPTIONS] COMMAND [ARGS]...

Agent hook scripts typically call::

    hookgate run --raw --event-type pre < payload.json

Commands
--------
- version     Show version information
- discover    List workflow files in a project
- validate    Validate workflow files
- run         Run matching workflows for an event and print the decision
- test        Show which workflows a mock event would trigger
- init        Create the workflow directory and agent hook configuration
- triggers    List the available trigger types
- logs        Show the tail of today's process log
- audit show  Display recent decisions from the audit trail
"""
from __future__ import annotations

import dataclasses
import json
import sys
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from hookgate.config import GateConfig
    from hookgate.schema.event import Event

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("hookgate.yaml")

_TRIGGER_TYPES: list[tuple[str, str, str]] = [
    ("hooks", "Agent hook events (preToolUse, postToolUse)", "types, tools"),
    ("tool", "One tool, with glob filters on its arguments", "name, args, if"),
    ("tools", "A list of tool triggers, any of which may match", "[name, args, if]"),
    ("file", "File create/edit events", "types, paths, paths-ignore, lifecycle"),
    ("commit", "Git commit events", "paths, paths-ignore, branches, branches-ignore, lifecycle"),
    (
        "push",
        "Git push events",
        "branches, branches-ignore, tags, tags-ignore, paths, paths-ignore, lifecycle",
    ),
]


def _project_dir(directory: str | None) -> Path:
    return Path(directory).resolve() if directory else Path.cwd()


def _load_config(project_dir: Path, config_path: str | None) -> GateConfig:
    from hookgate.config import ConfigLoader

    path = Path(config_path) if config_path else project_dir / _DEFAULT_CONFIG
    try:
        return ConfigLoader().load(path)
    except ValueError as exc:
        err_console.print(f"[red]Invalid config[/red] {path}: {exc}")
        sys.exit(1)


_dir_option = click.option(
    "--dir",
    "-d",
    "directory",
    default=None,
    type=click.Path(file_okay=False),
    help="Project directory (default: current directory).",
)
_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to hookgate.yaml (default: <dir>/hookgate.yaml).",
)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="hookgate")
def cli() -> None:
    """hookgate: run workflow checks on coding agent hook events."""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from hookgate import __version__

    console.print(
        Panel(
            f"[bold]hookgate[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Workflow automation for coding agent hooks.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# discover / validate
# ---------------------------------------------------------------------------


@cli.command(name="discover")
@_dir_option
@_config_option
def discover_command(directory: str | None, config_path: str | None) -> None:
    """List workflow files in the project."""
    from hookgate.schema.discovery import WorkflowDiscovery

    project_dir = _project_dir(directory)
    config = _load_config(project_dir, config_path)
    files = WorkflowDiscovery(project_dir, config.workflows.directory).discover()

    console.print(f"Discovering workflows in: [bold]{project_dir}[/bold]")
    if not files:
        console.print("[yellow]No workflows found.[/yellow]")
        return

    table = Table(title=f"{len(files)} workflow(s)", box=box.SIMPLE)
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    for workflow_file in files:
        table.add_row(workflow_file.name, workflow_file.rel_path.as_posix())
    console.print(table)


@cli.command(name="validate")
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
@_dir_option
@_config_option
def validate_command(files: tuple[str, ...], directory: str | None, config_path: str | None) -> None:
    """Validate workflow files (all discovered workflows when FILES is empty)."""
    from hookgate.schema.discovery import WorkflowDiscovery
    from hookgate.schema.loader import WorkflowLoader

    project_dir = _project_dir(directory)
    if files:
        paths = [Path(f) for f in files]
    else:
        config = _load_config(project_dir, config_path)
        paths = [wf.path for wf in WorkflowDiscovery(project_dir, config.workflows.directory).discover()]
        if not paths:
            console.print("[yellow]No workflows found.[/yellow]")
            return

    result = WorkflowLoader().validate(paths)
    if result.valid:
        console.print(f"[green]✓[/green] {len(paths)} workflow(s) valid")
        return

    for error in result.errors:
        console.print(f"[red]✗[/red] {error.path}")
        console.print(f"  Error: {escape(error.message)}")
        for detail in error.details:
            console.print(f"    - {escape(detail)}")
    sys.exit(1)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command(name="run")
@click.option("--event", "-e", "event_json", default=None, help="Event JSON, or '-' to read stdin.")
@click.option("--raw", "-r", is_flag=True, default=False, help="Treat the input as a raw agent hook payload.")
@click.option(
    "--event-type",
    "-t",
    type=click.Choice(["pre", "post", "preToolUse", "postToolUse"]),
    default="pre",
    show_default=True,
    help="Hook lifecycle of the event (applied when a JSON event carries none).",
)
@click.option("--workflow", "-w", "workflow_name", default=None, help="Run one workflow by file name.")
@_dir_option
@_config_option
def run_command(
    event_json: str | None,
    raw: bool,
    event_type: str,
    workflow_name: str | None,
    directory: str | None,
    config_path: str | None,
) -> None:
    """Run matching workflows for an event and print the decision as JSON."""
    from hookgate.gate import HookGate
    from hookgate.logging_setup import configure_logging
    from hookgate.schema.detector import EventDetector
    from hookgate.schema.event import Event
    from hookgate.schema.loader import WorkflowLoadError
    from hookgate.schema.result import WorkflowResult

    project_dir = _project_dir(directory)
    config = _load_config(project_dir, config_path)
    configure_logging(config, project_dir)
    gate = HookGate.from_config(project_dir, config)

    if event_json is None or event_json == "-":
        text = "" if event_json is None and sys.stdin.isatty() else sys.stdin.read()
    else:
        text = event_json

    event = None
    if text.strip():
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            err_console.print(f"[red]Invalid JSON:[/red] {exc}")
            sys.exit(1)
        if not isinstance(payload, dict):
            err_console.print("[red]Invalid event:[/red] expected a JSON object")
            sys.exit(1)
        if raw:
            lifecycle = "post" if event_type in ("post", "postToolUse") else "pre"
            event = EventDetector().detect(payload, lifecycle)
        else:
            event = Event.from_dict(payload)
            if not event.lifecycle and event_type in ("post", "postToolUse"):
                event = dataclasses.replace(event, lifecycle="post")
        if not event.cwd:
            event = _with_cwd(event, str(project_dir))

    if workflow_name:
        try:
            result = gate.run_workflow(workflow_name, event)
        except WorkflowLoadError as exc:
            err_console.print(f"[red]Error:[/red] {exc}")
            sys.exit(1)
    elif event is None:
        result = WorkflowResult.allow()
    else:
        result = gate.evaluate(event)

    click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


def _with_cwd(event: Event, cwd: str) -> Event:
    return dataclasses.replace(event, cwd=cwd)


# ---------------------------------------------------------------------------
# test
# ---------------------------------------------------------------------------


_MOCK_EVENT_TYPES = ("commit", "push", "file", "hook", "tool")


def _mock_event(
    event_type: str,
    branch: str,
    path: str | None,
    action: str,
    message: str,
    lifecycle: str,
) -> Event:
    """Build the synthetic event ``hookgate test`` matches workflows against."""
    from hookgate.schema.event import (
        CommitEvent,
        Event,
        FileEvent,
        FileStatus,
        HookEvent,
        PushEvent,
        ToolEvent,
    )

    if event_type == "commit":
        commit = CommitEvent(
            sha="abc123",
            message=message,
            author="test@example.com",
            files=(FileStatus(path or "src/app.ts", "modified"),),
            branch=branch,
        )
        return Event(commit=commit, cwd=".", lifecycle=lifecycle)
    if event_type == "push":
        push = PushEvent(ref=f"refs/heads/{branch}", before="000000", after="abc123")
        return Event(push=push, cwd=".", lifecycle=lifecycle)
    if event_type == "file":
        return Event(file=FileEvent(path=path or "src/app.ts", action=action), cwd=".", lifecycle=lifecycle)

    hook_type = "postToolUse" if lifecycle == "post" else "preToolUse"
    tool = ToolEvent(name="edit", args={"path": path or "src/app.ts"}, hook_type=hook_type)
    return Event(hook=HookEvent(type=hook_type, cwd=".", tool=tool), tool=tool, cwd=".", lifecycle=lifecycle)


@cli.command(name="test")
@click.option(
    "--event",
    "-e",
    "event_type",
    required=True,
    type=click.Choice(_MOCK_EVENT_TYPES),
    help="Kind of mock event to simulate.",
)
@click.option("--workflow", "-w", "workflow_name", default=None, help="Test one workflow (name or file path).")
@click.option("--branch", default="main", show_default=True, help="Branch for commit and push events.")
@click.option("--path", "file_path", default=None, help="File path for file, commit and tool events.")
@click.option("--action", default="edit", show_default=True, type=click.Choice(["edit", "create"]), help="File action.")
@click.option("--message", default="test commit", show_default=True, help="Commit message for commit events.")
@click.option(
    "--lifecycle",
    default="pre",
    show_default=True,
    type=click.Choice(["pre", "post"]),
    help="Hook lifecycle of the mock event.",
)
@_dir_option
@_config_option
def test_command(
    event_type: str,
    workflow_name: str | None,
    branch: str,
    file_path: str | None,
    action: str,
    message: str,
    lifecycle: str,
    directory: str | None,
    config_path: str | None,
) -> None:
    """Show which workflows a mock event would trigger, without running steps."""
    from hookgate.schema.discovery import WorkflowDiscovery
    from hookgate.schema.loader import WorkflowLoader, WorkflowLoadError
    from hookgate.triggers.matcher import TriggerMatcher

    project_dir = _project_dir(directory)
    config = _load_config(project_dir, config_path)
    discovery = WorkflowDiscovery(project_dir, config.workflows.directory)

    event = _mock_event(event_type, branch, file_path, action, message, lifecycle)
    console.print(f"Testing with mock [bold]{event_type}[/bold] event:")
    click.echo(json.dumps(event.to_context(), indent=2))
    click.echo()

    if workflow_name:
        candidate = Path(workflow_name)
        if candidate.is_file():
            paths = [candidate]
        else:
            stem = candidate.stem if candidate.suffix.lower() in (".yml", ".yaml") else workflow_name
            found = discovery.find(stem)
            if found is None:
                err_console.print(f"[red]Error:[/red] workflow '{workflow_name}' not found")
                sys.exit(1)
            paths = [found.path]
    else:
        if not discovery.directory.is_dir():
            err_console.print(f"[red]Error:[/red] no workflows directory found at {discovery.directory}")
            sys.exit(1)
        paths = [wf.path for wf in discovery.discover()]

    if not paths:
        console.print("[yellow]No workflows found to test.[/yellow]")
        return

    console.print(f"Testing {len(paths)} workflow(s):\n")
    loader = WorkflowLoader()
    matched = 0
    for path in paths:
        try:
            workflow = loader.load(path)
        except WorkflowLoadError as exc:
            console.print(f"[red]✗[/red] {path.name}")
            console.print(f"  Error loading: {escape(exc.describe())}\n")
            continue

        try:
            shown = path.resolve().relative_to(project_dir.resolve()).as_posix()
        except ValueError:
            shown = str(path)
        if not TriggerMatcher(workflow).match(event):
            console.print(f"[dim]○[/dim] {workflow.name} ({shown})")
            console.print("  No trigger match for this event\n")
            continue

        matched += 1
        console.print(f"[green]✓[/green] {workflow.name} ({shown})")
        console.print(f"  Would execute {len(workflow.steps)} step(s):")
        for index in range(len(workflow.steps)):
            console.print(f"    {index + 1}. {workflow.step_name(index)}")
        if workflow.blocking:
            console.print("  Blocking: yes (would block if any step fails)\n")
        else:
            console.print("  Blocking: no (non-blocking)\n")

    console.print(f"Summary: {matched}/{len(paths)} workflow(s) would match")


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


_HOOKS_JSON = ".copilot/hooks.json"
_GITIGNORE = "# Temporary files\n*.tmp\n*.log\n"


def _hooks_config() -> dict[str, object]:
    def entry(event_type: str) -> dict[str, object]:
        return {
            "type": "command",
            "bash": f'hookgate run --raw --event-type {event_type} --dir "$PWD"',
            "powershell": f"hookgate run --raw --event-type {event_type} --dir (Get-Location)",
            "timeoutSec": 60,
        }

    return {"version": 1, "hooks": {"preToolUse": [entry("pre")], "postToolUse": [entry("post")]}}


@cli.command(name="init")
@click.option("--force", "-f", is_flag=True, default=False, help="Overwrite an existing hooks.json.")
@_dir_option
@_config_option
def init_command(force: bool, directory: str | None, config_path: str | None) -> None:
    """Set up the workflow directory and agent hook configuration."""
    project_dir = _project_dir(directory)
    config = _load_config(project_dir, config_path)

    hooks_dir = project_dir / config.workflows.directory
    hooks_dir.mkdir(parents=True, exist_ok=True)
    console.print(f"[green]✓[/green] Workflow directory: {hooks_dir}")

    hooks_json = project_dir / _HOOKS_JSON
    if hooks_json.exists() and not force:
        console.print(f"[yellow]○[/yellow] {_HOOKS_JSON} already exists (use --force to overwrite)")
    else:
        hooks_json.parent.mkdir(parents=True, exist_ok=True)
        hooks_json.write_text(json.dumps(_hooks_config(), indent=2) + "\n", encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote {_HOOKS_JSON}")

    gitignore = hooks_dir / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text(_GITIGNORE, encoding="utf-8")

    console.print(
        Panel(
            f"1. Add workflow files to {config.workflows.directory.as_posix()}/\n"
            "2. Check them with [cyan]hookgate validate[/cyan]\n"
            "3. Try them with [cyan]hookgate test --event file --path src/app.js[/cyan]",
            title="Next steps",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# triggers
# ---------------------------------------------------------------------------


@cli.command(name="triggers")
def triggers_command() -> None:
    """List available trigger types."""
    table = Table(title="Trigger types", box=box.SIMPLE)
    table.add_column("Trigger", style="cyan")
    table.add_column("Matches")
    table.add_column("Fields", style="magenta")
    for name, description, fields in _TRIGGER_TYPES:
        table.add_row(name, description, fields)
    console.print(table)


# ---------------------------------------------------------------------------
# logs
# ---------------------------------------------------------------------------


@cli.command(name="logs")
@click.option("--tail", "-n", default=50, show_default=True, type=int, help="Number of lines to show.")
@click.option("--path", "path_only", is_flag=True, default=False, help="Only print the log file path.")
@_dir_option
@_config_option
def logs_command(tail: int, path_only: bool, directory: str | None, config_path: str | None) -> None:
    """Show the tail of today's process log."""
    from hookgate.logging_setup import log_file_for

    project_dir = _project_dir(directory)
    config = _load_config(project_dir, config_path)
    log_dir = config.logging.directory
    if log_dir is None:
        err_console.print("[yellow]File logging is disabled (set logging.directory).[/yellow]")
        sys.exit(1)
    if not log_dir.is_absolute():
        log_dir = project_dir / log_dir

    log_file = log_file_for(log_dir)
    if path_only:
        click.echo(str(log_file))
        return
    if not log_file.exists():
        console.print(f"[yellow]No log file yet:[/yellow] {log_file}")
        return

    with log_file.open("r", encoding="utf-8", errors="replace") as fh:
        lines = deque(fh, maxlen=max(tail, 0))
    for line in lines:
        click.echo(line.rstrip("\n"))


# ---------------------------------------------------------------------------
# audit group
# ---------------------------------------------------------------------------


@cli.group(name="audit")
def audit_group() -> None:
    """Decision audit trail commands."""


@audit_group.command(name="show")
@click.option("--last", "-n", default=20, show_default=True, type=int, help="Number of recent entries to show.")
@_dir_option
@_config_option
def audit_show_command(last: int, directory: str | None, config_path: str | None) -> None:
    """Show recent decisions."""
    from hookgate.audit.logger import AuditLogger

    project_dir = _project_dir(directory)
    config = _load_config(project_dir, config_path)
    log_path = config.audit.log_path
    if not log_path.is_absolute():
        log_path = project_dir / log_path

    audit = AuditLogger(log_path=log_path)
    records = audit.last_n(last)
    if not records:
        console.print("[yellow]No audit entries found.[/yellow]")
        return

    table = Table(title=f"Last {last} Decisions", box=box.SIMPLE)
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column("Decision", style="cyan")
    table.add_column("Workflow", style="magenta")
    table.add_column("Tool")
    table.add_column("File")

    for record in records:
        ts = str(record.get("timestamp", ""))[:19].replace("T", " ")
        decision = str(record.get("decision", ""))
        style = "green" if decision == "allow" else "red"
        table.add_row(
            ts,
            f"[{style}]{decision}[/{style}]",
            str(record.get("workflow") or ""),
            str(record.get("tool") or ""),
            str(record.get("file") or ""),
        )

    console.print(table)
    console.print(f"  Total audit records: [cyan]{audit.count()}[/cyan]")


if __name__ == "__main__":
    cli()
