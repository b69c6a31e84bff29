"""
Run use case — execute one command across the project's targets.

The full vertical slice from user intent to per-target receipts:
load workspace, select targets, execute, report.  ``run_ci`` does the
same for the whole CI pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from polyrun.core.engine.runner import CIReport, Runner, RunReport
from polyrun.core.engine.target import ExecOptions
from polyrun.core.use_cases.workspace import Workspace, open_workspace

logger = logging.getLogger(__name__)

# Exit codes, shared with the CLI
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_CANCELED = 130


@dataclass
class RunResult:
    """Result of running a command or the CI pipeline."""

    workspace: Workspace
    report: RunReport | CIReport

    @property
    def exit_code(self) -> int:
        status = self.report.status
        if status in ("failed", "partial"):
            return EXIT_FAILED
        if status == "canceled":
            return EXIT_CANCELED
        return EXIT_OK

    def to_dict(self) -> dict:
        return {
            "project": self.workspace.name,
            "project_root": str(self.workspace.root),
            "version": self.workspace.version,
            "report": self.report.to_dict(),
        }


def run_command(
    command: str,
    targets: list[str] | None = None,
    options: ExecOptions | None = None,
    config_path: Path | None = None,
    continue_on_error: bool = False,
    parallel: bool = False,
    workspace: Workspace | None = None,
) -> RunResult:
    """Run ``command`` on the selected targets (default: all).

    Raises:
        ConfigError: The project could not be loaded.
        UnknownTargetError: A requested target does not exist.
    """
    if workspace is None:
        workspace = open_workspace(config_path)

    logger.info("Running '%s' in %s", command, workspace.name)
    report = Runner(workspace.registry).run_all(
        command,
        options,
        targets=targets or None,
        continue_on_error=continue_on_error,
        parallel=parallel,
    )
    return RunResult(workspace=workspace, report=report)


def run_ci(
    targets: list[str] | None = None,
    options: ExecOptions | None = None,
    config_path: Path | None = None,
    release: bool = False,
    continue_on_error: bool = False,
    parallel: bool = False,
    workspace: Workspace | None = None,
) -> RunResult:
    """Run the CI pipeline on the selected targets (default: all).

    Raises:
        ConfigError: The project could not be loaded.
        UnknownTargetError: A requested target does not exist.
    """
    if workspace is None:
        workspace = open_workspace(config_path)

    logger.info("Running CI%s in %s", " (release)" if release else "", workspace.name)
    report = Runner(workspace.registry).run_ci(
        options,
        targets=targets or None,
        release=release,
        continue_on_error=continue_on_error,
        parallel=parallel,
    )
    return RunResult(workspace=workspace, report=report)
