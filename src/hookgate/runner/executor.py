"""Run step commands in a child shell process.

The runner talks to a :class:`CommandExecutor`; :class:`SubprocessExecutor`
is the default implementation.  Tests substitute a stub that records the
calls instead of spawning processes.

Shell names map to argument vectors as follows:

=====================  ==========================================
``pwsh``/``powershell``  ``pwsh -NoProfile -NonInteractive -Command``
``bash``               ``bash -c``
``sh``                 ``sh -c``
``cmd``                ``cmd /c``
anything else          ``<shell> -c``
=====================  ==========================================
"""
from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


def default_shell() -> str:
    """``pwsh`` on Windows, ``bash`` everywhere else."""
    return "pwsh" if os.name == "nt" else "bash"


def shell_argv(shell: str, command: str) -> list[str]:
    """Build the argument vector that runs ``command`` under ``shell``."""
    if shell in ("pwsh", "powershell"):
        return ["pwsh", "-NoProfile", "-NonInteractive", "-Command", command]
    if shell == "cmd":
        return ["cmd", "/c", command]
    return [shell, "-c", command]


@dataclass
class CommandResult:
    """Outcome of one command execution.

    ``output`` is stdout followed by a newline and stderr when stderr is
    not empty.  It is preserved on failure, timeout and cancellation.
    """

    output: str = ""
    success: bool = False
    error: str = ""
    timed_out: bool = False
    cancelled: bool = False


class CommandExecutor(Protocol):
    """Capability that runs one shell command to completion."""

    def execute(
        self,
        shell: str,
        command: str,
        cwd: str | None,
        env: dict[str, str],
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> CommandResult: ...


class SubprocessExecutor:
    """Runs commands with :mod:`subprocess`.

    Parameters
    ----------
    poll_interval:
        Seconds between checks of the cancel signal while the child runs.
    """

    def __init__(self, poll_interval: float = 0.1) -> None:
        self._poll_interval = poll_interval

    def execute(
        self,
        shell: str,
        command: str,
        cwd: str | None,
        env: dict[str, str],
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> CommandResult:
        """Run ``command`` and wait for it, a timeout, or cancellation.

        Parameters
        ----------
        shell:
            Shell name, see the module table.
        command:
            Command text passed to the shell.
        cwd:
            Working directory; the current directory when None.
        env:
            Complete child environment.
        timeout:
            Seconds before the child is killed.  No limit when None.
        cancel:
            Event that, once set, kills the child.

        Returns
        -------
        CommandResult
        """
        argv = shell_argv(shell, command)
        logger.debug("Executing %s in %s", argv[0], cwd or os.getcwd())
        try:
            process = subprocess.Popen(
                argv,
                cwd=cwd or None,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                start_new_session=os.name != "nt",
            )
        except OSError as exc:
            return CommandResult(error=f"failed to start {argv[0]}: {exc}")

        deadline = time.monotonic() + timeout if timeout else None
        timed_out = cancelled = False
        while True:
            wait = self._poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    timed_out = True
                    break
                wait = min(wait, remaining)
            try:
                stdout, stderr = process.communicate(timeout=wait)
            except subprocess.TimeoutExpired:
                if cancel is not None and cancel.is_set():
                    cancelled = True
                    break
                continue
            return self._finish(process.returncode, stdout, stderr)

        _kill(process)
        stdout, stderr = process.communicate()
        output = _combine(stdout, stderr)
        if timed_out:
            logger.warning("Command timed out after %s seconds", timeout)
            return CommandResult(output=output, error=f"timed out after {timeout} seconds", timed_out=True)
        logger.info("Command cancelled")
        return CommandResult(output=output, error="cancelled", cancelled=True)

    @staticmethod
    def _finish(returncode: int, stdout: str, stderr: str) -> CommandResult:
        output = _combine(stdout, stderr)
        if returncode != 0:
            return CommandResult(output=output, error=f"exit status {returncode}")
        return CommandResult(output=output, success=True)


def _combine(stdout: str | None, stderr: str | None) -> str:
    output = stdout or ""
    if stderr:
        output += "\n" + stderr
    return output


def _kill(process: subprocess.Popen[str]) -> None:
    """Kill the child and, on POSIX, every process in its session."""
    try:
        if os.name != "nt":
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except (ProcessLookupError, PermissionError) as exc:
        logger.debug("Could not kill process %d: %s", process.pid, exc)
