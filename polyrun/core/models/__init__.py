"""
Domain models — Pydantic types for the orchestrator.

All models are re-exported here for convenient access:

    from polyrun.core.models import Toolchain, TargetConfig, Shell, Sequence
"""

from polyrun.core.models.command import (
    DISABLED,
    CommandDef,
    Disabled,
    Sequence,
    Shell,
    parse_command_def,
    parse_command_table,
)
from polyrun.core.models.project import (
    ProjectConfig,
    ProjectInfo,
    TargetConfig,
    TargetKind,
    VersionConfig,
)
from polyrun.core.models.receipt import TargetReceipt
from polyrun.core.models.toolchain import Toolchain, ToolchainConfig

__all__ = [
    # command.py
    "CommandDef",
    "DISABLED",
    "Disabled",
    # project.py
    "ProjectConfig",
    "ProjectInfo",
    "Sequence",
    "Shell",
    "TargetConfig",
    "TargetKind",
    # receipt.py
    "TargetReceipt",
    # toolchain.py
    "Toolchain",
    "ToolchainConfig",
    "VersionConfig",
    "parse_command_def",
    "parse_command_table",
]
