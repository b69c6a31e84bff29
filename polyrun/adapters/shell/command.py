"""
Shell command adapter — spawn a platform shell for one command string.

This is the only place that touches the operating system's process
table.  It builds the argv for the platform shell, prepares the child
environment, streams output straight through to the caller, and kills
the child hard on cancellation or timeout.

    POSIX     sh -c <command>
    Windows   %SYSTEMROOT%\\System32\\WindowsPowerShell\\v1.0\\powershell.exe
              -NoProfile -NonInteractive -Command <command>

PowerShell is invoked by full path so that shim directories on PATH
(mise and friends) cannot intercept the shell itself.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Mapping

from polyrun.core.engine.cancellation import CancelToken

logger = logging.getLogger(__name__)

# Environment variables that let version-manager shims re-enter
# themselves from inside the child shell.
_SHIM_PREFIXES = ("__MISE_",)
_SHIM_NAMES = frozenset({"MISE_SHELL"})

# Exported to the child when the caller asked for an isolated run;
# interpreting it is up to the command.
DOCKER_ENV_VAR = "POLYRUN_DOCKER"

DEFAULT_POLL_INTERVAL = 0.05


def is_windows() -> bool:
    return os.name == "nt"


def powershell_path() -> str:
    system_root = os.environ.get("SYSTEMROOT") or r"C:\Windows"
    return str(
        Path(system_root) / "System32" / "WindowsPowerShell" / "v1.0" / "powershell.exe"
    )


def shell_argv(command: str, windows: bool | None = None) -> list[str]:
    """Build the argv that runs ``command`` through the platform shell."""
    if windows is None:
        windows = is_windows()
    if windows:
        return [powershell_path(), "-NoProfile", "-NonInteractive", "-Command", command]
    return ["sh", "-c", command]


def filter_shim_env(environ: Mapping[str, str]) -> dict[str, str]:
    """Copy ``environ`` without variables that cause shim interception."""
    return {
        k: v
        for k, v in environ.items()
        if not k.startswith(_SHIM_PREFIXES) and k not in _SHIM_NAMES
    }


def build_env(
    *layers: Mapping[str, str] | None,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Process environment (shim-filtered) overlaid by each layer in order.

    Later layers win on key collision.
    """
    env = filter_shim_env(os.environ if base is None else base)
    for layer in layers:
        if layer:
            env.update(layer)
    return env


@dataclass
class ShellResult:
    """Outcome of one shell invocation."""

    exit_code: int
    duration_ms: int = 0
    canceled: bool = False
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.canceled and not self.timed_out


class ShellCommand:
    """Run command strings through the platform shell.

    Args:
        stdout: Stream for the child's stdout (default: inherit).
        stderr: Stream for the child's stderr (default: inherit).
        poll_interval: Seconds between cancellation checks while waiting.
    """

    def __init__(
        self,
        stdout: IO | None = None,
        stderr: IO | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self._stdout = stdout
        self._stderr = stderr
        self._poll_interval = poll_interval

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        if is_windows():
            return Path(powershell_path()).is_file()
        return shutil.which("sh") is not None

    def run(
        self,
        command: str,
        cwd: Path | str,
        env: Mapping[str, str] | None = None,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
        docker: bool = False,
    ) -> ShellResult:
        """Run ``command`` and wait for it to finish.

        Args:
            command: Fully interpolated command string.
            cwd: Working directory for the child.
            env: Complete child environment (see ``build_env``).
            cancel: Token polled while waiting; triggers a hard kill.
            timeout: Seconds before the child is killed.
            docker: Export DOCKER_ENV_VAR=1 to the child.

        Returns:
            ShellResult with the exit code.

        Raises:
            OSError: The shell could not be spawned.
        """
        child_env = dict(env) if env is not None else build_env()
        if docker:
            child_env[DOCKER_ENV_VAR] = "1"

        argv = shell_argv(command)
        logger.debug("Executing: %s (cwd=%s)", command, cwd)
        start = time.monotonic()

        if cancel is not None and cancel.canceled:
            return ShellResult(exit_code=-1, canceled=True)

        proc = subprocess.Popen(
            argv,
            cwd=str(cwd),
            env=child_env,
            stdout=self._stdout,
            stderr=self._stderr,
        )

        deadline = start + timeout if timeout else None
        canceled = timed_out = False

        while True:
            try:
                exit_code = proc.wait(timeout=self._poll_interval)
                break
            except subprocess.TimeoutExpired:
                pass

            if cancel is not None and cancel.canceled:
                canceled = True
            elif deadline is not None and time.monotonic() >= deadline:
                timed_out = True

            if canceled or timed_out:
                # Hard kill, no grace period
                proc.kill()
                exit_code = proc.wait()
                logger.debug(
                    "Killed pid %d (%s)", proc.pid, "canceled" if canceled else "timeout"
                )
                break

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return ShellResult(
            exit_code=exit_code,
            duration_ms=elapsed_ms,
            canceled=canceled,
            timed_out=timed_out,
        )
