"""
Project model — the root identity of an orchestrated project.

Loaded from polyrun.yml, this is the canonical truth about which
targets exist, which toolchains they use, and how they depend on one
another.  Command values are parsed into CommandDef at load time.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from polyrun.core.models.command import CommandDef, parse_command_table
from polyrun.core.models.toolchain import ToolchainConfig

DEFAULT_VERSION_SOURCE = "VERSION"


class TargetKind(StrEnum):
    """What a target represents."""

    LANGUAGE = "language"
    AUXILIARY = "auxiliary"


class ProjectInfo(BaseModel):
    """Project metadata."""

    name: str
    description: str = ""
    homepage: str = ""
    repository: str = ""
    license: str = ""


class VersionConfig(BaseModel):
    """Where the project version string is read from."""

    source: str = DEFAULT_VERSION_SOURCE


class TargetConfig(BaseModel):
    """A target as declared in polyrun.yml.

    ``type`` stays a plain string here; it is checked by the config
    validator and again when the runtime Target is built.
    """

    type: str = TargetKind.LANGUAGE.value
    title: str = ""
    toolchain: str = ""
    directory: str = ""
    cwd: str = ""
    commands: dict[str, CommandDef] = Field(default_factory=dict)
    vars: dict[str, str] = Field(default_factory=dict)
    env: dict[str, str] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)
    demo_path: str = ""

    @field_validator("commands", mode="before")
    @classmethod
    def _parse_commands(cls, value: Any) -> dict[str, CommandDef]:
        return parse_command_table(value)

    @field_validator("vars", "env", mode="after")
    @classmethod
    def _reject_nul(cls, value: dict[str, str]) -> dict[str, str]:
        # NUL cannot reach a child process and is reserved by interpolation
        for key, item in value.items():
            if "\x00" in key or "\x00" in item:
                raise ValueError(f"{key!r}: NUL characters are not allowed")
        return value

    @field_validator("depends_on", mode="after")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        # Ordered set: keep first occurrence
        return list(dict.fromkeys(value))


class ProjectConfig(BaseModel):
    """Root project configuration."""

    project: ProjectInfo
    version: VersionConfig | None = None
    targets: dict[str, TargetConfig] = Field(default_factory=dict)
    toolchains: dict[str, ToolchainConfig] = Field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.project.name

    @property
    def version_source(self) -> str:
        return self.version.source if self.version else DEFAULT_VERSION_SOURCE

    def get_target(self, name: str) -> TargetConfig | None:
        """Look up a target declaration by name."""
        return self.targets.get(name)
