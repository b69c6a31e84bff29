"""
Target registry — the validated set of targets for a project.

The registry is the single point of target lookup.  Construction either
yields a registry whose dependency graph is complete and acyclic, or
raises; it is never left half-built.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from polyrun.core.engine import graph
from polyrun.core.engine.target import Target
from polyrun.core.errors import DuplicateTargetError
from polyrun.core.models.project import ProjectConfig, TargetKind
from polyrun.core.services.detection import detect_toolchain
from polyrun.core.services.manifest_cache import ManifestCache
from polyrun.core.services.toolchain_resolver import ToolchainResolver

logger = logging.getLogger(__name__)


class TargetRegistry:
    """Validated collection of targets keyed by name.

    Raises:
        DuplicateTargetError, SelfDependencyError, UnknownDependencyError,
        CircularDependencyError
    """

    def __init__(self, targets: Iterable[Target]):
        by_name: dict[str, Target] = {}
        for t in targets:
            if t.name in by_name:
                raise DuplicateTargetError(t.name)
            by_name[t.name] = t

        graph.validate({name: t.depends_on for name, t in by_name.items()})

        self._targets = by_name
        logger.debug("Registry built with %d targets", len(by_name))

    @classmethod
    def from_config(
        cls,
        config: ProjectConfig,
        root_dir: Path | str,
        version: str = "",
        resolver: ToolchainResolver | None = None,
        manifest_cache: ManifestCache | None = None,
    ) -> TargetRegistry:
        """Build every target from configuration.

        Order of checks: custom toolchains (inside the resolver), target
        toolchain references, target creation, dependency graph.
        Targets without a toolchain get one auto-detected from their
        directory; if nothing is detected they keep only their own
        commands.
        """
        root = Path(root_dir).absolute()
        if resolver is None:
            resolver = ToolchainResolver(config.toolchains)
        resolver.validate_target_toolchains(config.targets)

        targets = []
        for name in sorted(config.targets):
            cfg = config.targets[name]
            detected = None
            if not cfg.toolchain:
                detected = detect_toolchain(root / (cfg.directory or name))
                if detected:
                    logger.debug("Target '%s': auto-detected toolchain %s", name, detected)
            targets.append(
                Target.from_config(
                    name,
                    cfg,
                    root,
                    resolver,
                    version=version,
                    toolchain=detected,
                    manifest_cache=manifest_cache,
                )
            )

        return cls(targets)

    # ── Lookup ───────────────────────────────────────────────────

    def get(self, name: str) -> Target | None:
        """Look up a target by name."""
        return self._targets.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def __len__(self) -> int:
        return len(self._targets)

    def names(self) -> list[str]:
        """All target names, sorted."""
        return sorted(self._targets)

    def all(self) -> list[Target]:
        """All targets, sorted by name."""
        return [self._targets[n] for n in self.names()]

    def by_kind(self, kind: TargetKind | str) -> list[Target]:
        """Targets of one kind, sorted by name."""
        kind = TargetKind(kind)
        return [t for t in self.all() if t.kind == kind]

    def languages(self) -> list[Target]:
        return self.by_kind(TargetKind.LANGUAGE)

    def auxiliary(self) -> list[Target]:
        return self.by_kind(TargetKind.AUXILIARY)

    # ── Ordering ─────────────────────────────────────────────────

    def dependency_graph(self) -> dict[str, list[str]]:
        return {name: t.depends_on for name, t in self._targets.items()}

    def topological_order(self, names: Iterable[str] | None = None) -> list[Target]:
        """Targets in dependency order (dependencies first).

        Args:
            names: Restrict to these targets plus their transitive
                dependencies.  Default: every target.

        Raises:
            UnknownTargetError: A requested name is not registered.
        """
        start = self.names() if names is None else sorted(set(names))
        ordered = graph.topological_sort(self.dependency_graph(), start)
        return [self._targets[n] for n in ordered]
