"""
Runner — execute one command across many targets.

Takes a command name, selects the targets that define it, orders them by
dependency, executes them one by one (or on a thread pool), and collects
a receipt per target.

Flow:
    request → topological order → filter by command → execute → receipts

Skips become warnings, failures stop the run unless ``continue_on_error``,
cancellation always stops the run.

``run_ci`` chains the same machinery over the CI phases
(clean → restore → check → build → test), auxiliary targets first.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Iterable

from polyrun.core.engine.cancellation import CancelToken
from polyrun.core.engine.registry import TargetRegistry
from polyrun.core.engine.target import ExecOptions, Target
from polyrun.core.errors import (
    CommandFailedError,
    ExecutionError,
    SkipError,
    UnknownTargetError,
    is_canceled,
)
from polyrun.core.models.project import TargetKind
from polyrun.core.models.receipt import TargetReceipt, now_iso

logger = logging.getLogger(__name__)

# Upper bound for POLYRUN_PARALLEL
MAX_PARALLEL_WORKERS = 256


@dataclass
class RunReport:
    """Result of running a command across targets."""

    command: str = ""
    receipts: list[TargetReceipt] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.skipped)

    @property
    def canceled(self) -> int:
        return sum(1 for r in self.receipts if r.canceled)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0 and self.canceled == 0

    @property
    def status(self) -> str:
        if self.failed:
            return "partial" if self.succeeded else "failed"
        if self.canceled:
            return "canceled"
        return "ok"

    def get(self, target: str) -> TargetReceipt | None:
        for r in self.receipts:
            if r.target == target:
                return r
        return None

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "canceled": self.canceled,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def parallel_workers() -> int:
    """Worker count from POLYRUN_PARALLEL, else the CPU count, clamped."""
    raw = os.environ.get("POLYRUN_PARALLEL", "")
    try:
        n = int(raw) if raw else (os.cpu_count() or 1)
    except ValueError:
        logger.warning("Ignoring invalid POLYRUN_PARALLEL=%r", raw)
        n = os.cpu_count() or 1
    return max(1, min(n, MAX_PARALLEL_WORKERS))


# ── CI pipeline ─────────────────────────────────────────────────────

CI_PHASES: tuple[str, ...] = ("clean", "restore", "check", "build", "test")
CI_RELEASE_PHASES: tuple[str, ...] = ("clean", "restore", "check", "build:release", "test")


def ci_phases(release: bool = False) -> tuple[str, ...]:
    return CI_RELEASE_PHASES if release else CI_PHASES


@dataclass
class PhaseReport:
    """One CI phase run over one group of targets."""

    phase: str
    group: str
    report: RunReport

    @property
    def ok(self) -> bool:
        return self.report.all_ok

    def to_dict(self) -> dict:
        data = self.report.to_dict()
        data.pop("command")
        return {"phase": self.phase, "group": self.group, **data}


@dataclass
class CIReport:
    """Result of a CI pipeline run, phase by phase."""

    release: bool = False
    phases: list[PhaseReport] = field(default_factory=list)

    @property
    def command(self) -> str:
        return "ci:release" if self.release else "ci"

    @property
    def receipts(self) -> list[TargetReceipt]:
        return [r for p in self.phases for r in p.report.receipts]

    @property
    def failed_phases(self) -> list[str]:
        return [p.phase for p in self.phases if p.report.failed]

    @property
    def all_ok(self) -> bool:
        return all(p.ok for p in self.phases)

    @property
    def status(self) -> str:
        if self.failed_phases:
            return "failed"
        if any(p.report.canceled for p in self.phases):
            return "canceled"
        return "ok"

    def get(self, phase: str, group: str | None = None) -> PhaseReport | None:
        for p in self.phases:
            if p.phase == phase and (group is None or p.group == group):
                return p
        return None

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "release": self.release,
            "status": self.status,
            "failed_phases": self.failed_phases,
            "phases": [p.to_dict() for p in self.phases],
        }


# ── Runner ──────────────────────────────────────────────────────────


def _with_token(options: ExecOptions | None) -> tuple[ExecOptions, CancelToken]:
    """Options carrying a cancel token shared by every target of the run."""
    options = options or ExecOptions()
    token = options.cancel or CancelToken()
    return replace(options, cancel=token), token


class Runner:
    """Orchestrates command execution across registry targets."""

    def __init__(self, registry: TargetRegistry):
        self._registry = registry

    @property
    def registry(self) -> TargetRegistry:
        return self._registry

    def run(self, target: str, command: str, options: ExecOptions | None = None) -> None:
        """Execute a command on a single target (errors propagate)."""
        t = self._registry.get(target)
        if t is None:
            raise UnknownTargetError(target)
        t.execute(command, options)

    def _ordered(self, targets: Iterable[str] | None) -> list[Target]:
        if targets is None:
            return self._registry.topological_order()
        targets = list(targets)
        for name in targets:
            if name not in self._registry:
                raise UnknownTargetError(name)
        wanted = set(targets)
        return [t for t in self._registry.topological_order(targets) if t.name in wanted]

    def select(self, command: str, targets: Iterable[str] | None = None) -> list[Target]:
        """Targets defining ``command``, in dependency order.

        When ``targets`` is given only those are returned.  Their
        dependencies are used for ordering but are not selected.
        """
        return [t for t in self._ordered(targets) if t.has_command(command)]

    def run_all(
        self,
        command: str,
        options: ExecOptions | None = None,
        targets: Iterable[str] | None = None,
        continue_on_error: bool = False,
        parallel: bool = False,
    ) -> RunReport:
        """Execute ``command`` on every selected target.

        Args:
            command: Logical command name.
            options: Options forwarded to each target.
            targets: Restrict to these names (default: all).
            continue_on_error: Keep going after a failure.
            parallel: Run on a thread pool.  Does not honour depends_on.

        Returns:
            RunReport with one receipt per executed target.
        """
        options, token = _with_token(options)

        selected = self.select(command, targets)
        if not selected:
            logger.warning("no targets support command %r", command)
            return RunReport(command=command)

        report = self._execute(selected, command, options, token, continue_on_error, parallel)
        logger.info(
            "%s: %d ok, %d failed, %d skipped, %d canceled",
            command, report.succeeded, report.failed, report.skipped, report.canceled,
        )
        return report

    def run_ci(
        self,
        options: ExecOptions | None = None,
        targets: Iterable[str] | None = None,
        release: bool = False,
        continue_on_error: bool = False,
        parallel: bool = False,
    ) -> CIReport:
        """Run the CI pipeline.

        Every phase (clean, restore, check, build or build:release, test)
        runs over the auxiliary targets first, then every phase runs over
        the language targets.  Targets that do not define a phase sit it
        out, and a phase nobody defines is not recorded.  Auxiliary
        targets always run in dependency order; ``parallel`` applies to
        language targets only.

        A failed phase ends the pipeline unless ``continue_on_error``.
        Cancellation always ends it.
        """
        options, token = _with_token(options)
        ordered = self._ordered(targets)
        groups = (
            (TargetKind.AUXILIARY, [t for t in ordered if t.kind == TargetKind.AUXILIARY], False),
            (TargetKind.LANGUAGE, [t for t in ordered if t.kind == TargetKind.LANGUAGE], parallel),
        )

        ci = CIReport(release=release)
        for kind, members, use_pool in groups:
            for phase in ci_phases(release):
                if token.canceled:
                    return ci
                selected = [t for t in members if t.has_command(phase)]
                if not selected:
                    continue

                logger.info("ci: %s (%s, %d targets)", phase, kind.value, len(selected))
                report = self._execute(selected, phase, options, token, continue_on_error, use_pool)
                ci.phases.append(PhaseReport(phase=phase, group=kind.value, report=report))

                if report.canceled:
                    return ci
                if report.failed and not continue_on_error:
                    logger.error("ci: phase %s failed, stopping", phase)
                    return ci
        return ci

    def _execute(
        self,
        targets: list[Target],
        command: str,
        options: ExecOptions,
        cancel: CancelToken,
        continue_on_error: bool,
        parallel: bool,
    ) -> RunReport:
        report = RunReport(command=command)
        if parallel:
            self._run_parallel(targets, command, options, cancel, continue_on_error, report)
        else:
            self._run_sequential(targets, command, options, cancel, continue_on_error, report)
        return report

    def _run_sequential(
        self,
        targets: list[Target],
        command: str,
        options: ExecOptions,
        cancel: CancelToken,
        continue_on_error: bool,
        report: RunReport,
    ) -> None:
        for t in targets:
            if cancel.canceled:
                break
            receipt = execute_target(t, command, options)
            report.receipts.append(receipt)
            if receipt.canceled:
                break
            if receipt.failed and not continue_on_error:
                break

    def _run_parallel(
        self,
        targets: list[Target],
        command: str,
        options: ExecOptions,
        cancel: CancelToken,
        continue_on_error: bool,
        report: RunReport,
    ) -> None:
        if any(t.depends_on for t in targets):
            logger.warning(
                "parallel mode does not respect depends_on ordering; "
                "targets may execute before dependencies complete"
            )

        def _task(t: Target) -> TargetReceipt:
            receipt = execute_target(t, command, options)
            if receipt.failed and not continue_on_error:
                # Fail fast: kill in-flight siblings
                cancel.cancel(f"{t.name} failed")
            return receipt

        with ThreadPoolExecutor(max_workers=parallel_workers()) as pool:
            results = list(pool.map(_task, targets))

        report.receipts.extend(results)


def execute_target(target: Target, command: str, options: ExecOptions) -> TargetReceipt:
    """Execute a command on one target and capture the outcome as a receipt."""
    started = now_iso()
    start = time.monotonic()

    def _elapsed() -> int:
        return int((time.monotonic() - start) * 1000)

    try:
        target.execute(command, options)
    except SkipError as e:
        logger.warning("%s", e)
        return TargetReceipt.skip(
            target.name,
            command,
            reason=e.reason.value,
            detail=e.detail,
            started_at=started,
            duration_ms=_elapsed(),
        )
    except ExecutionError as e:
        if is_canceled(e):
            logger.warning("%s", e)
            return TargetReceipt.cancel(
                target.name, command, error=str(e), started_at=started, duration_ms=_elapsed()
            )
        # Internal errors carry the traceback
        logger.error("%s", e, exc_info=e.internal)
        return TargetReceipt.failure(
            target.name,
            command,
            error=str(e),
            exit_code=e.exit_code if isinstance(e, CommandFailedError) else None,
            started_at=started,
            duration_ms=_elapsed(),
        )

    logger.info("✓ %s:%s → ok", target.name, command)
    return TargetReceipt.success(
        target.name, command, started_at=started, duration_ms=_elapsed()
    )
