"""
Toolchain model — reusable command presets for a build ecosystem.

A toolchain maps lifecycle command names (``build``, ``test``, ...) to
command definitions.  Built-in toolchains live in the catalog; custom
ones come from configuration and may ``extends`` another toolchain.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from polyrun.core.models.command import CommandDef, parse_command_table


class Toolchain(BaseModel):
    """A resolved, immutable toolchain.

    ``extends`` is kept for reference only; the command table is already
    flattened by the resolver.  ``commands`` is a read-only view, so a
    toolchain can be shared between threads and targets without copying.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    extends: str | None = None
    commands: Mapping[str, CommandDef] = Field(default_factory=dict, validate_default=True)

    @field_validator("commands", mode="before")
    @classmethod
    def _parse_commands(cls, value: Any) -> dict[str, CommandDef]:
        return parse_command_table(value)

    @field_validator("commands", mode="after")
    @classmethod
    def _freeze_commands(cls, value: Mapping[str, CommandDef]) -> Mapping[str, CommandDef]:
        return MappingProxyType(dict(value))

    @field_serializer("commands")
    def _dump_commands(self, value: Mapping[str, CommandDef]) -> dict[str, Any]:
        return {name: definition.to_raw() for name, definition in value.items()}

    def get_command(self, name: str) -> CommandDef | None:
        """Look up a command definition by name."""
        return self.commands.get(name)

    def has_command(self, name: str) -> bool:
        """Check if a command is defined (disabled counts as defined)."""
        return name in self.commands

    @property
    def command_names(self) -> list[str]:
        return sorted(self.commands)

    def command_table(self) -> dict[str, CommandDef]:
        """A copy of the command table, safe to mutate."""
        return dict(self.commands)


class ToolchainConfig(BaseModel):
    """A custom toolchain as declared in configuration."""

    extends: str | None = None
    commands: dict[str, CommandDef] = Field(default_factory=dict)

    @field_validator("commands", mode="before")
    @classmethod
    def _parse_commands(cls, value: Any) -> dict[str, CommandDef]:
        return parse_command_table(value)
