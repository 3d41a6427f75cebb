"""Step orchestration for one workflow run.

Steps run strictly in declared order.  For each step the runner:

1. records a ``pending`` outcome;
2. evaluates the ``if:`` condition, if any (an evaluation error fails
   the step, a false condition skips it as successful);
3. skips the step as failed when an earlier required step failed,
   unless the raw condition text contains ``always()``;
4. otherwise runs the ``run:`` command or ``uses:`` action;
5. records ``success``/``failure`` so later expressions can see it.

:meth:`Runner.run_with_blocking` folds the step results into an
allow/deny :class:`WorkflowResult`.
"""
from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from hookgate.expression import EvaluationContext, ExpressionError, FunctionTable, Outcome
from hookgate.runner.actions import (
    ActionError,
    ActionResolver,
    action_commands,
    input_environment,
    load_action_metadata,
    parse_uses,
    resolve_inputs,
)
from hookgate.runner.executor import CommandExecutor, CommandResult, SubprocessExecutor, default_shell
from hookgate.runner.report import build_reason, render_log, write_log
from hookgate.schema.event import Event
from hookgate.schema.result import WorkflowResult
from hookgate.schema.workflow import Step, Workflow

logger = logging.getLogger(__name__)

SKIPPED_CONDITION_NOT_MET = "Skipped (condition not met)"
SKIPPED_PREVIOUS_FAILED = "Skipped (previous step failed)"
ALWAYS_MARKER = "always()"


@dataclass
class StepResult:
    """What happened to one step."""

    name: str
    success: bool
    output: str = ""
    error: str = ""
    duration: float = 0.0
    outcome: Outcome = Outcome.SUCCESS


class Runner:
    """Executes the steps of one workflow against one event.

    Parameters
    ----------
    workflow:
        The workflow to run.
    event:
        Event exposed to expressions as ``event``; empty when None.
    working_dir:
        Directory commands run in and relative paths resolve against.
        The process working directory when None.
    executor:
        Command executor; :class:`SubprocessExecutor` by default.
    resolver:
        Action resolver for ``uses:`` steps.
    shell:
        Shell for steps that do not name one.
    log_dir:
        Directory for denial logs; the system temp directory when None.
    functions:
        Alternate expression function table.
    """

    def __init__(
        self,
        workflow: Workflow,
        event: Event | None = None,
        working_dir: str | Path | None = None,
        *,
        executor: CommandExecutor | None = None,
        resolver: ActionResolver | None = None,
        shell: str | None = None,
        log_dir: Path | None = None,
        functions: FunctionTable | None = None,
    ) -> None:
        self._workflow = workflow
        self._working_dir = Path(working_dir) if working_dir else Path.cwd()
        self._executor = executor or SubprocessExecutor()
        self._resolver = resolver or ActionResolver()
        self._shell = shell or default_shell()
        self._log_dir = log_dir
        self.context = EvaluationContext(
            event=event.to_context() if event is not None else {},
            env=dict(workflow.env),
            functions=functions,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, cancel: threading.Event | None = None) -> list[StepResult]:
        """Run every step and return their results in order.

        Parameters
        ----------
        cancel:
            When set, the running step is killed and every later step is
            recorded as cancelled without being started.
        """
        results: list[StepResult] = []
        previous_failed = False

        for index, step in enumerate(self._workflow.steps):
            name = self._workflow.step_name(index)
            self.context.set_step(name, Outcome.PENDING)
            result = self._visit(step, name, previous_failed, cancel)
            self.context.set_step(name, result.outcome)
            results.append(result)
            if not result.success and not step.continue_on_error:
                previous_failed = True

        return results

    def run_with_blocking(self, cancel: threading.Event | None = None) -> WorkflowResult:
        """Run the workflow and turn the step results into a decision.

        Returns
        -------
        WorkflowResult
            ``allow`` when every step succeeded or the workflow is not
            blocking; otherwise ``deny`` with a reason and a log file.
        """
        results = self.run(cancel)
        failed = [result for result in results if not result.success]
        if not failed:
            return WorkflowResult.allow()

        if self._workflow.blocking:
            log_file = write_log(render_log(self._workflow, results), self._log_dir)
            logger.info("Workflow %r denied: %d failed step(s)", self._workflow.name, len(failed))
            return WorkflowResult.deny(build_reason(self._workflow.name, results, log_file), log_file)

        for result in failed:
            logger.warning("Step '%s' failed (non-blocking): %s", result.name, result.error)
        return WorkflowResult.allow()

    # ------------------------------------------------------------------
    # Step state machine
    # ------------------------------------------------------------------

    def _visit(
        self,
        step: Step,
        name: str,
        previous_failed: bool,
        cancel: threading.Event | None,
    ) -> StepResult:
        if cancel is not None and cancel.is_set():
            return StepResult(name, False, error="step cancelled", outcome=Outcome.CANCELLED)

        if step.if_:
            try:
                should_run = self.context.evaluate_bool(step.if_)
            except ExpressionError as exc:
                return StepResult(
                    name, False, error=f"failed to evaluate if condition: {exc}", outcome=Outcome.FAILURE
                )
            if not should_run:
                return StepResult(name, True, output=SKIPPED_CONDITION_NOT_MET, outcome=Outcome.SKIPPED)

        # Textual check on the raw condition: `!always()` also bypasses.
        if previous_failed and ALWAYS_MARKER not in step.if_:
            return StepResult(name, False, output=SKIPPED_PREVIOUS_FAILED, outcome=Outcome.FAILURE)

        start = time.monotonic()
        if step.uses:
            result = self._run_action(step, name, cancel)
        else:
            result = self._run_command(step, name, cancel)
        result.duration = time.monotonic() - start
        return result

    def _run_command(self, step: Step, name: str, cancel: threading.Event | None) -> StepResult:
        try:
            command = self.context.evaluate_string(step.run or "")
        except ExpressionError as exc:
            return _failed(name, f"failed to evaluate command: {exc}")
        try:
            env = self._environment(step)
            cwd = self._step_directory(step)
        except ExpressionError as exc:
            return _failed(name, str(exc))

        logger.debug("Running step %r", name)
        outcome = self._executor.execute(
            step.shell or self._shell, command, cwd, env, timeout=step.timeout, cancel=cancel
        )
        return _from_command(name, step, outcome, outcome.output)

    def _run_action(self, step: Step, name: str, cancel: threading.Event | None) -> StepResult:
        try:
            reference = parse_uses(step.uses or "")
        except ActionError as exc:
            return _failed(name, f"failed to parse uses: {exc}")
        try:
            action_dir = self._resolver.resolve(reference, self._working_dir)
        except ActionError as exc:
            return _failed(name, f"failed to resolve action: {exc}")
        try:
            metadata = load_action_metadata(action_dir)
        except ActionError as exc:
            return _failed(name, f"failed to load action metadata: {exc}")
        try:
            provided = {key: self.context.evaluate_string(value) for key, value in step.with_.items()}
            inputs = resolve_inputs(metadata, provided)
        except (ExpressionError, ActionError) as exc:
            return _failed(name, f"failed to evaluate inputs: {exc}")
        try:
            commands = action_commands(metadata, action_dir, step.shell or self._shell)
            env = self._environment(step)
        except (ActionError, ExpressionError) as exc:
            return _failed(name, str(exc))
        env.update(input_environment(inputs))

        logger.debug("Running action %s for step %r", reference.source, name)
        deadline = time.monotonic() + step.timeout if step.timeout else None
        output = ""
        for shell, command in commands:
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return _from_command(name, step, CommandResult(timed_out=True), output)
            outcome = self._executor.execute(
                shell, command, str(action_dir), env, timeout=remaining, cancel=cancel
            )
            output += outcome.output
            if output and not output.endswith("\n"):
                output += "\n"
            if not outcome.success:
                return _from_command(name, step, outcome, output)
        return StepResult(name, True, output=output)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _environment(self, step: Step) -> dict[str, str]:
        """Process environment overlaid with workflow then step variables."""
        env = dict(os.environ)
        for scope, variables in (("workflow", self._workflow.env), ("step", step.env)):
            for key, value in variables.items():
                try:
                    env[key] = self.context.evaluate_string(value)
                except ExpressionError as exc:
                    raise ExpressionError(f"failed to evaluate {scope} env {key}: {exc}") from exc
        return env

    def _step_directory(self, step: Step) -> str:
        if not step.working_directory:
            return str(self._working_dir)
        try:
            directory = Path(self.context.evaluate_string(step.working_directory))
        except ExpressionError as exc:
            raise ExpressionError(f"failed to evaluate working-directory: {exc}") from exc
        if not directory.is_absolute():
            directory = self._working_dir / directory
        return str(directory)


def _failed(name: str, error: str) -> StepResult:
    return StepResult(name, False, error=error, outcome=Outcome.FAILURE)


def _from_command(name: str, step: Step, outcome: CommandResult, output: str) -> StepResult:
    if outcome.timed_out:
        return StepResult(
            name,
            False,
            output=output,
            error=f"step timed out after {step.timeout} seconds",
            outcome=Outcome.FAILURE,
        )
    if outcome.cancelled:
        return StepResult(name, False, output=output, error="step cancelled", outcome=Outcome.CANCELLED)
    if not outcome.success:
        return StepResult(name, False, output=output, error=outcome.error, outcome=Outcome.FAILURE)
    return StepResult(name, True, output=output)
