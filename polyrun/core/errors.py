"""
Error taxonomy — everything the engine can raise.

Three families, each with a distinct meaning for callers:

    ConfigError     construction-time problems (toolchains, targets,
                    dependency graph).  Fatal before any target runs.
    SkipError       a command was intentionally not executed.  NOT a
                    failure: callers usually warn and carry on.
    ExecutionError  a command was attempted and did not succeed
                    (undefined, bad shape, non-zero exit, spawn failure,
                    cancellation, timeout).

Use ``is_skip()`` / ``is_canceled()`` rather than isinstance checks when
the exception may have been re-raised with a cause chain.
"""

from __future__ import annotations

from enum import StrEnum


class PolyrunError(Exception):
    """Base class for all polyrun errors."""


# ── Configuration / construction ────────────────────────────────────


class ConfigError(PolyrunError):
    """Raised when project configuration is invalid or missing."""


class UnknownToolchainError(ConfigError):
    """A toolchain name resolves to neither a custom nor a built-in preset."""

    def __init__(self, name: str, target: str | None = None):
        self.name = name
        self.target = target
        if target:
            super().__init__(f"target {target!r} references unknown toolchain {name!r}")
        else:
            super().__init__(f"unknown toolchain: {name!r}")


class UnknownBaseToolchainError(ConfigError):
    """A custom toolchain ``extends`` a base that does not exist."""

    def __init__(self, toolchain: str, base: str):
        self.toolchain = toolchain
        self.base = base
        super().__init__(
            f"toolchain {toolchain!r}: extends {base!r}: base toolchain not found"
        )


class ToolchainCycleError(ConfigError):
    """A chain of ``extends`` references loops back on itself."""

    def __init__(self, chain: list[str]):
        self.chain = chain
        super().__init__(f"circular toolchain extension: {' -> '.join(chain)}")


class InvalidTargetTypeError(ConfigError):
    """Target type is neither ``language`` nor ``auxiliary``."""

    def __init__(self, target: str, value: str):
        self.target = target
        self.value = value
        super().__init__(f"target {target!r}: invalid target type: {value!r}")


class DependencyError(ConfigError):
    """Base class for dependency graph violations."""


class SelfDependencyError(DependencyError):
    def __init__(self, target: str):
        self.target = target
        super().__init__(f"{target!r} depends on itself")


class UnknownDependencyError(DependencyError):
    def __init__(self, target: str, dependency: str):
        self.target = target
        self.dependency = dependency
        super().__init__(f"{target!r} depends on undefined target {dependency!r}")


class CircularDependencyError(DependencyError):
    """Raised when the dependency graph contains a cycle.

    ``target`` is the node found on the DFS stack; ``cycle`` is the path
    from that node back to itself.
    """

    def __init__(self, target: str, cycle: list[str] | None = None):
        self.target = target
        self.cycle = cycle or [target]
        super().__init__(
            f"circular dependency detected involving {target!r} "
            f"({' -> '.join(self.cycle)})"
        )


class DuplicateTargetError(DependencyError):
    def __init__(self, target: str):
        self.target = target
        super().__init__(f"target {target!r} is defined more than once")


class UnknownTargetError(PolyrunError):
    """A target name was requested that the registry does not contain."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"target not found: {target!r}")


# ── Skip signals ────────────────────────────────────────────────────


class SkipReason(StrEnum):
    """Why a command was not executed."""

    DISABLED = "disabled"
    COMMAND_NOT_FOUND = "command_not_found"
    SCRIPT_NOT_FOUND = "script_not_found"


class SkipError(PolyrunError):
    """A command was skipped, not failed."""

    def __init__(
        self,
        target: str,
        command: str,
        reason: SkipReason,
        detail: str = "",
    ):
        self.target = target
        self.command = command
        self.reason = reason
        self.detail = detail
        super().__init__(self._message())

    def _message(self) -> str:
        prefix = f"[{self.target}] {self.command}"
        if self.reason == SkipReason.DISABLED:
            return f"{prefix}: disabled, skipping"
        if self.reason == SkipReason.COMMAND_NOT_FOUND:
            return f"{prefix}: {self.detail} not found, skipping"
        if self.reason == SkipReason.SCRIPT_NOT_FOUND:
            return f"{prefix}: script '{self.detail}' not found in package.json, skipping"
        return f"{prefix}: skipped ({self.reason})"


# ── Execution ───────────────────────────────────────────────────────


class ExecutionError(PolyrunError):
    """A command was attempted and did not succeed."""

    #: True for errors that indicate a programming/config bug that should
    #: have been caught by validation.
    internal = False

    def __init__(self, target: str, command: str, message: str):
        self.target = target
        self.command = command
        super().__init__(message)


class UndefinedCommandError(ExecutionError):
    internal = True

    def __init__(self, target: str, command: str):
        super().__init__(
            target, command, f"command {command!r} not defined for target {target!r}"
        )


class InvalidCommandDefinitionError(ExecutionError):
    internal = True

    def __init__(self, target: str, command: str, value: object):
        self.value = value
        super().__init__(
            target,
            command,
            f"[{target}] {command}: invalid command definition type: "
            f"{type(value).__name__}",
        )


class InterpolationError(ExecutionError):
    """A template or variable value cannot be interpolated."""

    internal = True

    def __init__(self, target: str, command: str, reason: str):
        self.reason = reason
        super().__init__(
            target, command, f"[{target}] {command}: cannot interpolate: {reason}"
        )


class CompositeCycleError(ExecutionError):
    """A composite command refers back to itself."""

    def __init__(self, target: str, command: str, chain: list[str]):
        self.chain = chain
        super().__init__(
            target,
            command,
            f"[{target}] composite command loops: {' -> '.join(chain)}",
        )


class CommandFailedError(ExecutionError):
    """The spawned shell exited with a non-zero status."""

    def __init__(self, target: str, command: str, exit_code: int):
        self.exit_code = exit_code
        super().__init__(
            target, command, f"[{target}] {command}: exited with code {exit_code}"
        )


class CommandSpawnError(ExecutionError):
    """The shell could not be started at all."""

    def __init__(self, target: str, command: str, reason: str):
        self.reason = reason
        super().__init__(
            target, command, f"[{target}] {command}: failed to start: {reason}"
        )


class CommandCanceledError(ExecutionError):
    """Execution was stopped by the caller."""

    def __init__(self, target: str, command: str, message: str = ""):
        super().__init__(target, command, message or f"[{target}] {command}: canceled")


class CommandTimeoutError(CommandCanceledError):
    def __init__(self, target: str, command: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            target, command, f"[{target}] {command}: timed out after {timeout:g}s"
        )


# ── Predicates ──────────────────────────────────────────────────────


def _walk(exc: BaseException | None):
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__


def is_skip(exc: BaseException | None) -> bool:
    """Whether ``exc`` is, or was caused by, a skip signal."""
    return any(isinstance(e, SkipError) for e in _walk(exc))


def is_canceled(exc: BaseException | None) -> bool:
    """Whether ``exc`` is, or was caused by, a cancellation or timeout."""
    return any(isinstance(e, CommandCanceledError) for e in _walk(exc))
