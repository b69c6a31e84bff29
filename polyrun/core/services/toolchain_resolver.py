"""
Toolchain resolver — merge built-in presets with custom toolchains.

Custom toolchains come from the ``toolchains:`` section of polyrun.yml.
They shadow built-ins of the same name and may ``extends`` another
toolchain (custom or built-in).

Resolution:
    1. Build every custom toolchain eagerly, so unknown bases and
       extension cycles are reported before any target is created
    2. For ``extends: X``, resolve X first (custom before built-in),
       copy its command table, then apply the custom commands on top
    3. Each override replaces the base entry of the same key entirely

Consumers receive flat, immutable Toolchain objects.
"""

from __future__ import annotations

import logging
from typing import Mapping

from polyrun.core.data.toolchains import BUILTIN_TOOLCHAINS
from polyrun.core.errors import (
    ToolchainCycleError,
    UnknownBaseToolchainError,
    UnknownToolchainError,
)
from polyrun.core.models.command import CommandDef
from polyrun.core.models.project import TargetConfig
from polyrun.core.models.toolchain import Toolchain, ToolchainConfig

logger = logging.getLogger(__name__)


class ToolchainResolver:
    """Resolve toolchain names to flattened command tables.

    Args:
        custom: Custom toolchain declarations keyed by name.
        catalog: Built-in presets (injectable for tests).

    Raises:
        UnknownBaseToolchainError: A custom toolchain extends a missing base.
        ToolchainCycleError: ``extends`` references form a loop.
    """

    def __init__(
        self,
        custom: Mapping[str, ToolchainConfig] | None = None,
        catalog: Mapping[str, Toolchain] = BUILTIN_TOOLCHAINS,
    ):
        self._catalog = catalog
        self._declared: dict[str, ToolchainConfig] = dict(custom or {})
        self._custom: dict[str, Toolchain] = {}

        for name in sorted(self._declared):
            self._build(name, [])

        if self._custom:
            logger.debug("Resolved %d custom toolchains: %s", len(self._custom), sorted(self._custom))

    # ── Construction ─────────────────────────────────────────────

    def _build(self, name: str, chain: list[str]) -> Toolchain:
        """Build custom toolchain ``name``; ``chain`` is the extends path so far."""
        if name in self._custom:
            return self._custom[name]
        if name in chain:
            raise ToolchainCycleError(chain[chain.index(name):] + [name])

        cfg = self._declared[name]
        commands: dict[str, CommandDef] = {}

        if cfg.extends:
            base = self._resolve_base(name, cfg.extends, chain + [name])
            commands.update(base.commands)

        # Overrides replace whole entries, never deep-merge
        commands.update(cfg.commands)

        tc = Toolchain(name=name, extends=cfg.extends, commands=commands)
        self._custom[name] = tc
        return tc

    def _resolve_base(self, name: str, base: str, chain: list[str]) -> Toolchain:
        """Resolve a base for extension: custom first, then built-in.

        A custom toolchain that extends its own name refines the
        built-in of that name (``cargo: {extends: cargo}``).
        """
        if base == name and base in self._catalog:
            return self._catalog[base]
        if base in self._declared:
            return self._build(base, chain)
        if base in self._catalog:
            return self._catalog[base]
        raise UnknownBaseToolchainError(name, base)

    # ── Queries ──────────────────────────────────────────────────

    def resolve(self, name: str) -> Toolchain:
        """Get a toolchain by name, checking custom toolchains first.

        Raises:
            UnknownToolchainError: If no toolchain has that name.
        """
        if name in self._custom:
            return self._custom[name]
        if name in self._catalog:
            return self._catalog[name]
        raise UnknownToolchainError(name)

    def exists(self, name: str) -> bool:
        """Check if a toolchain exists (custom or built-in)."""
        return name in self._custom or name in self._catalog

    def is_custom(self, name: str) -> bool:
        return name in self._custom

    def names(self) -> list[str]:
        """All resolvable toolchain names, sorted."""
        return sorted(set(self._custom) | set(self._catalog))

    def custom_names(self) -> list[str]:
        return sorted(self._custom)

    def validate_target_toolchains(self, targets: Mapping[str, TargetConfig]) -> None:
        """Ensure every explicit toolchain reference resolves.

        Targets without a toolchain are skipped (auto-detect or
        commands-only targets).
        """
        for name in sorted(targets):
            ref = targets[name].toolchain
            if ref and not self.exists(ref):
                raise UnknownToolchainError(ref, target=name)

    def resolved_commands(
        self,
        target: TargetConfig,
        toolchain: str | None = None,
    ) -> dict[str, CommandDef]:
        """Compose the final command table for a target.

        Starts from the toolchain's table (empty if none), then applies
        the target-level overrides.  ``toolchain`` overrides the
        configured reference (used for auto-detected toolchains).
        """
        commands: dict[str, CommandDef] = {}

        ref = toolchain if toolchain is not None else target.toolchain
        if ref:
            commands.update(self.resolve(ref).commands)

        commands.update(target.commands)
        return commands
