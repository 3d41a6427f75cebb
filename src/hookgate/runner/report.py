"""Denial reports for blocking workflows that had failing steps.

Two artefacts are produced: a detailed log file listing every step, and
a short reason string naming each failed step, its error, and the first
200 characters of its output.
"""
from __future__ import annotations

import logging
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hookgate.runner.runner import StepResult
    from hookgate.schema.workflow import Workflow

logger = logging.getLogger(__name__)

OUTPUT_SNIPPET_LIMIT = 200


def render_log(workflow: Workflow, results: list[StepResult], now: datetime | None = None) -> str:
    """Render the full step log."""
    timestamp = (now or datetime.now(tz=timezone.utc)).isoformat(timespec="seconds")
    lines = [
        f"Workflow: {workflow.name}",
        f"Description: {workflow.description}",
        f"Time: {timestamp}",
        "=" * 60,
        "",
    ]
    for result in results:
        lines.append(f"Step: {result.name}")
        lines.append(f"Status: {'✓ SUCCESS' if result.success else '✗ FAILED'}")
        if result.duration > 0:
            lines.append(f"Duration: {result.duration:.3f}s")
        if result.error:
            lines.append(f"Error: {result.error}")
        if result.output:
            lines.append("Output:")
            lines.extend("  " + line for line in result.output.strip().split("\n"))
        lines.append("-" * 40)
        lines.append("")
    return "\n".join(lines) + "\n"


def write_log(content: str, log_dir: Path | None = None) -> str | None:
    """Write ``content`` to a new ``hookgate-*.log`` file.

    Returns
    -------
    str | None
        The file path, or None when the file could not be written.
    """
    try:
        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            prefix="hookgate-",
            suffix=".log",
            dir=log_dir,
            delete=False,
        ) as handle:
            handle.write(content)
            return handle.name
    except OSError as exc:
        logger.warning("Could not write denial log: %s", exc)
        return None


def build_reason(workflow_name: str, results: list[StepResult], log_file: str | None) -> str:
    """Build the denial reason shown to the agent.

    Without a log file the reason collapses to a single line naming the
    failed steps.
    """
    failed = [result for result in results if not result.success]
    if log_file is None:
        names = ", ".join(result.name for result in failed)
        return f"workflow '{workflow_name}' blocked due to step failures: {names}"

    lines = [f"Workflow '{workflow_name}' blocked.", "", "Failed steps:"]
    for result in failed:
        lines.append(f"  • {result.name}: {result.error}" if result.error else f"  • {result.name}")
        if result.output:
            output = result.output.strip()
            if len(output) > OUTPUT_SNIPPET_LIMIT:
                output = output[:OUTPUT_SNIPPET_LIMIT] + "..."
            snippet = output.replace("\n", " ")
            lines.append(f"    Output: {snippet}")
    lines.append("")
    lines.append(f"Full logs: {log_file}")
    return "\n".join(lines)
