"""
Target — one configured unit of the project and its command executor.

A Target owns a resolved command table (toolchain + overrides) and knows
how to run a logical command name:

    execute(name, options)
        → verbosity variant lookup       (name:quiet / name:verbose)
        → definition lookup              (UndefinedCommandError)
        → classification
              Disabled   → SkipError(disabled)
              Sequence   → push steps, loop (cancellation checked per step)
              Shell      → interpolate → probe → append args → spawn

Success returns None.  Skips raise SkipError, everything else raises an
ExecutionError subclass.  Targets are immutable after construction.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Mapping

from polyrun.adapters.shell.command import ShellCommand, build_env
from polyrun.core.engine.cancellation import CancelToken
from polyrun.core.errors import (
    CommandCanceledError,
    CommandFailedError,
    CommandSpawnError,
    CommandTimeoutError,
    CompositeCycleError,
    InterpolationError,
    InvalidCommandDefinitionError,
    InvalidTargetTypeError,
    SkipError,
    SkipReason,
    UndefinedCommandError,
)
from polyrun.core.models.command import CommandDef, Disabled, Sequence, Shell
from polyrun.core.models.project import TargetConfig, TargetKind
from polyrun.core.services.manifest_cache import ManifestCache, is_script_available
from polyrun.core.services.toolchain_resolver import ToolchainResolver

logger = logging.getLogger(__name__)


class Verbosity(StrEnum):
    DEFAULT = "default"
    QUIET = "quiet"
    VERBOSE = "verbose"


@dataclass(frozen=True)
class ExecOptions:
    """Per-call execution options.

    Composite steps inherit these unchanged.
    """

    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    verbosity: Verbosity = Verbosity.DEFAULT
    docker: bool = False
    cancel: CancelToken | None = None
    timeout: float | None = None


# ── Interpolation ───────────────────────────────────────────────────

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

# Stands in for an escaped "$${" during substitution.  Precondition:
# it never occurs in a template or a variable value.  It contains NUL,
# which cannot appear in a process argument or environment value, so no
# runnable command can contain it.
ESCAPE_SENTINEL = "\x00ESCAPED\x00"


def interpolate(template: str, variables: Mapping[str, str]) -> str:
    """Replace ``${name}`` with values from ``variables``.

    Unknown names are left verbatim.  ``$${`` is an escaped literal
    ``${`` and is never substituted.

    Raises:
        ValueError: If the template or a value contains ESCAPE_SENTINEL.
    """
    if ESCAPE_SENTINEL in template or any(ESCAPE_SENTINEL in v for v in variables.values()):
        raise ValueError("interpolation input contains the reserved escape sentinel")

    result = template.replace("$${", ESCAPE_SENTINEL)

    def _sub(match: re.Match[str]) -> str:
        return variables.get(match.group(1), match.group(0))

    result = _VAR_PATTERN.sub(_sub, result)
    return result.replace(ESCAPE_SENTINEL, "${")


# ── Availability probing ────────────────────────────────────────────

# Builtins that exist only inside the shell, never as files on PATH.
SHELL_BUILTINS = frozenset({
    "exit", "test", "[", "echo", "cd", "pwd", "export", "unset", "set",
    "true", "false", "read", "eval", "exec", "source", ".", "return",
    "break", "continue", "shift", "trap", "wait", "kill", "type", "alias",
    "unalias", "command", "builtin", "local", "declare", "typeset",
    "readonly", "getopts", "hash", "times", "umask", "ulimit", "printf",
    ":", "if", "for", "while", "until", "case", "{", "(",
})


def extract_command_name(command: str) -> str:
    """First whitespace-delimited token of a command.

    Returns "" for empty commands and for commands starting with a quote
    (inline shell expressions that need no lookup).
    """
    trimmed = command.strip()
    if not trimmed or trimmed[0] in "\"'":
        return ""
    return trimmed.split()[0]


def is_command_available(
    name: str,
    path: str | None = None,
    cwd: Path | None = None,
) -> bool:
    """Whether ``name`` can be run: a shell builtin or found on PATH.

    Names containing a path separator are checked relative to ``cwd``.
    """
    if name in SHELL_BUILTINS:
        return True
    if "/" in name or os.sep in name:
        candidate = Path(name)
        if not candidate.is_absolute() and cwd is not None:
            candidate = cwd / candidate
        return candidate.is_file()
    return shutil.which(name, path=path) is not None


# ── Target ──────────────────────────────────────────────────────────


class Target:
    """A language or auxiliary target with its command executor.

    Args:
        name: Short target name (also the default directory).
        title: Display name.
        kind: ``language`` or ``auxiliary``.
        root_dir: Absolute project root.
        commands: Resolved command table.
        directory: Target directory relative to root (default: name).
        cwd: Working directory relative to root (default: directory).
        vars: Custom interpolation variables.
        env: Environment overrides for every command.
        depends_on: Names of targets that must run first.
        demo_path: Demo file used by documentation generators.
        toolchain: Name of the toolchain the commands came from, if any.
        version: Project version for ``${version}``.
        manifest_cache: package.json cache (default: process-wide).
        shell: Shell adapter (default: inherit stdout/stderr).
    """

    def __init__(
        self,
        name: str,
        title: str,
        kind: TargetKind | str,
        root_dir: Path | str,
        commands: Mapping[str, CommandDef] | None = None,
        directory: str = "",
        cwd: str = "",
        vars: Mapping[str, str] | None = None,
        env: Mapping[str, str] | None = None,
        depends_on: list[str] | tuple[str, ...] = (),
        demo_path: str = "",
        version: str = "",
        toolchain: str = "",
        manifest_cache: ManifestCache | None = None,
        shell: ShellCommand | None = None,
    ):
        try:
            self._kind = TargetKind(kind)
        except ValueError:
            raise InvalidTargetTypeError(name, str(kind)) from None

        self._name = name
        self._title = title
        self._directory = directory or name
        self._cwd = cwd or self._directory
        self._root_dir = Path(root_dir).absolute()
        self._commands: dict[str, CommandDef] = dict(commands or {})
        self._vars = dict(vars or {})
        self._env = dict(env or {})
        self._depends_on = tuple(dict.fromkeys(depends_on))
        self._demo_path = demo_path
        self._version = version or ""
        self._toolchain = toolchain or ""
        self._manifest_cache = manifest_cache
        self._shell = shell or ShellCommand()

    @classmethod
    def from_config(
        cls,
        name: str,
        config: TargetConfig,
        root_dir: Path | str,
        resolver: ToolchainResolver,
        version: str = "",
        toolchain: str | None = None,
        manifest_cache: ManifestCache | None = None,
        shell: ShellCommand | None = None,
    ) -> Target:
        """Create a target from its configuration.

        ``toolchain`` replaces the configured reference (auto-detection).
        """
        return cls(
            name=name,
            title=config.title,
            kind=config.type,
            root_dir=root_dir,
            commands=resolver.resolved_commands(config, toolchain=toolchain),
            directory=config.directory,
            cwd=config.cwd,
            vars=config.vars,
            env=config.env,
            depends_on=config.depends_on,
            demo_path=config.demo_path,
            version=version,
            toolchain=toolchain or config.toolchain,
            manifest_cache=manifest_cache,
            shell=shell,
        )

    # ── Identity ─────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def title(self) -> str:
        return self._title

    @property
    def kind(self) -> TargetKind:
        return self._kind

    @property
    def directory(self) -> str:
        return self._directory

    @property
    def cwd(self) -> str:
        return self._cwd

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    @property
    def work_dir(self) -> Path:
        """Absolute working directory for commands."""
        return self._root_dir / self._cwd

    @property
    def depends_on(self) -> list[str]:
        return list(self._depends_on)

    @property
    def demo_path(self) -> str:
        return self._demo_path

    @property
    def version(self) -> str:
        return self._version

    @property
    def toolchain(self) -> str:
        return self._toolchain

    @property
    def env(self) -> dict[str, str]:
        return dict(self._env)

    @property
    def vars(self) -> dict[str, str]:
        return dict(self._vars)

    # ── Commands ─────────────────────────────────────────────────

    def commands(self) -> list[str]:
        """All defined command names, variants included, sorted."""
        return sorted(self._commands)

    def get_command(self, name: str) -> CommandDef | None:
        return self._commands.get(name)

    def has_command(self, name: str) -> bool:
        return name in self._commands

    def resolve_variant(self, name: str, verbosity: Verbosity = Verbosity.DEFAULT) -> str:
        """Pick ``name:quiet`` / ``name:verbose`` when defined, else ``name``."""
        verbosity = Verbosity(verbosity)
        if verbosity == Verbosity.DEFAULT:
            return name
        variant = f"{name}:{verbosity.value}"
        return variant if variant in self._commands else name

    def variables(self) -> dict[str, str]:
        """Interpolation table: builtins overlaid by custom vars."""
        table = {
            "target": self._name,
            "target_dir": self._directory,
            "root": str(self._root_dir),
            "version": self._version,
        }
        table.update(self._vars)
        return table

    def interpolate(self, template: str) -> str:
        return interpolate(template, self.variables())

    # ── Execution ────────────────────────────────────────────────

    def execute(self, command: str, options: ExecOptions | None = None) -> None:
        """Run a logical command on this target.

        Composite commands are expanded onto an explicit work stack and
        run in list order; the first error (a skip included) is raised
        unchanged and the remaining steps are dropped.

        Raises:
            SkipError: Disabled command, missing executable or script.
            ExecutionError: Undefined command, bad definition, composite
                cycle, non-zero exit, spawn failure, cancel, timeout.
        """
        options = options or ExecOptions()

        # (command name, composite ancestors)
        pending: list[tuple[str, tuple[str, ...]]] = [(command, ())]

        while pending:
            name, ancestors = pending.pop()

            if options.cancel is not None and options.cancel.canceled:
                raise CommandCanceledError(self._name, name)

            resolved = self.resolve_variant(name, options.verbosity)
            if resolved not in self._commands:
                raise UndefinedCommandError(self._name, name)
            if resolved in ancestors:
                raise CompositeCycleError(self._name, command, [*ancestors, resolved])

            definition = self._commands[resolved]

            if isinstance(definition, Disabled):
                logger.info("[%s] %s is disabled", self._name, name)
                raise SkipError(self._name, name, SkipReason.DISABLED)

            if isinstance(definition, Sequence):
                chain = (*ancestors, resolved)
                for step in reversed(definition.names):
                    pending.append((step, chain))
                continue

            if isinstance(definition, Shell):
                self._run_shell(name, definition.template, options)
                continue

            raise InvalidCommandDefinitionError(self._name, name, definition)

    def _run_shell(self, name: str, template: str, options: ExecOptions) -> None:
        try:
            cmd = self.interpolate(template)
        except ValueError as e:
            raise InterpolationError(self._name, name, str(e)) from e
        env = build_env(self._env, options.env)
        work_dir = self.work_dir

        exe = extract_command_name(cmd)
        if exe and not is_command_available(exe, path=env.get("PATH"), cwd=work_dir):
            logger.info("[%s] %s: %s not found", self._name, name, exe)
            raise SkipError(self._name, name, SkipReason.COMMAND_NOT_FOUND, exe)

        available, script = is_script_available(cmd, work_dir, self._manifest_cache)
        if not available:
            logger.info("[%s] %s: script %s not in package.json", self._name, name, script)
            raise SkipError(self._name, name, SkipReason.SCRIPT_NOT_FOUND, script)

        if options.args:
            cmd = f"{cmd} {' '.join(options.args)}"

        logger.debug("[%s] %s: %s", self._name, name, cmd)

        try:
            result = self._shell.run(
                cmd,
                cwd=work_dir,
                env=env,
                cancel=options.cancel,
                timeout=options.timeout,
                docker=options.docker,
            )
        except OSError as e:
            raise CommandSpawnError(self._name, name, str(e)) from e

        if result.timed_out:
            raise CommandTimeoutError(self._name, name, options.timeout or 0)
        if result.canceled:
            raise CommandCanceledError(self._name, name)
        if result.exit_code != 0:
            raise CommandFailedError(self._name, name, result.exit_code)

    def __repr__(self) -> str:
        return f"<Target name={self._name!r} kind={self._kind.value}>"
