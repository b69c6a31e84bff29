"""
Command definitions — the three shapes a command may take.

Configuration files express commands loosely (``null``, a string, or a
list of names).  ``parse_command_def`` turns those raw values into a
closed set of immutable types exactly once, at the configuration
boundary.  Everything downstream works with:

    Disabled            explicit no-op, executing it yields a skip
    Shell(template)     a shell command template with ${var} placeholders
    Sequence(names)     run other commands of the same target in order
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict


class Disabled(BaseModel):
    """The command exists but is intentionally switched off."""

    model_config = ConfigDict(frozen=True)

    kind: str = "disabled"

    def to_raw(self) -> None:
        return None


class Shell(BaseModel):
    """A literal shell command template."""

    model_config = ConfigDict(frozen=True)

    template: str
    kind: str = "shell"

    def to_raw(self) -> str:
        return self.template


class Sequence(BaseModel):
    """A composite: other command names, executed in list order."""

    model_config = ConfigDict(frozen=True)

    names: tuple[str, ...]
    kind: str = "sequence"

    def to_raw(self) -> list[str]:
        return list(self.names)


CommandDef = Union[Disabled, Shell, Sequence]

DISABLED = Disabled()

COMMAND_DEF_TYPES = (Disabled, Shell, Sequence)


def parse_command_def(raw: Any) -> CommandDef:
    """Convert a raw configuration value into a CommandDef.

    Accepts ``None``, a string, a list/tuple of strings, or an already
    parsed CommandDef.

    Raises:
        ValueError: For any other shape (mappings, numbers, lists with
            non-string items).  Object-form commands are not supported.
    """
    if isinstance(raw, COMMAND_DEF_TYPES):
        return raw
    if raw is None:
        return DISABLED
    if isinstance(raw, str):
        if "\x00" in raw:
            raise ValueError("command contains a NUL character")
        return Shell(template=raw)
    if isinstance(raw, (list, tuple)):
        for i, item in enumerate(raw):
            if not isinstance(item, str):
                raise ValueError(
                    f"command list elements must be strings, "
                    f"got {type(item).__name__} at index {i}"
                )
        return Sequence(names=tuple(raw))
    if isinstance(raw, dict):
        raise ValueError(
            "object-form commands are not supported; use string or array syntax"
        )
    raise ValueError(
        f"invalid command type {type(raw).__name__}; must be string, null, or array"
    )


def parse_command_table(raw: dict[str, Any] | None) -> dict[str, CommandDef]:
    """Parse every value of a raw command mapping.

    Error messages are prefixed with the offending command name.
    """
    table: dict[str, CommandDef] = {}
    for name, value in (raw or {}).items():
        try:
            table[name] = parse_command_def(value)
        except ValueError as e:
            raise ValueError(f"{name}: {e}") from e
    return table
