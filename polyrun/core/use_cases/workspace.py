"""
Workspace use case — load config and build the runtime registry.

Every CLI command that needs targets goes through ``open_workspace``.

Flow:
    find config → load + validate → read version → resolve toolchains
    → build targets → validate dependency graph
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from polyrun.core.config.loader import (
    find_project_file,
    load_project,
    project_root,
    read_version,
)
from polyrun.core.engine.registry import TargetRegistry
from polyrun.core.errors import ConfigError
from polyrun.core.models.project import ProjectConfig
from polyrun.core.services.manifest_cache import ManifestCache
from polyrun.core.services.toolchain_resolver import ToolchainResolver

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """A loaded project, ready to run commands."""

    config: ProjectConfig
    config_path: Path
    root: Path
    version: str
    resolver: ToolchainResolver
    registry: TargetRegistry

    @property
    def name(self) -> str:
        return self.config.name

    def to_dict(self) -> dict:
        return {
            "project": self.name,
            "root": str(self.root),
            "config_path": str(self.config_path),
            "version": self.version,
            "targets": self.registry.names(),
        }


def open_workspace(
    config_path: Path | None = None,
    manifest_cache: ManifestCache | None = None,
) -> Workspace:
    """Load a project and build its target registry.

    Args:
        config_path: Explicit path to polyrun.yml. If None, searches upward
            from the current directory.
        manifest_cache: Optional package.json cache (default: process-wide).

    Raises:
        ConfigError: Any configuration, toolchain or dependency problem.
    """
    if config_path is None:
        config_path = find_project_file()
    if config_path is None:
        raise ConfigError("No polyrun.yml found. Specify one with --config.")

    config_path = Path(config_path)
    config = load_project(config_path)
    root = project_root(config_path)
    version = read_version(root, config)

    resolver = ToolchainResolver(config.toolchains)
    registry = TargetRegistry.from_config(
        config,
        root,
        version=version,
        resolver=resolver,
        manifest_cache=manifest_cache,
    )

    logger.debug(
        "Workspace '%s' at %s: %d targets, version %r",
        config.name, root, len(registry), version,
    )
    return Workspace(
        config=config,
        config_path=config_path,
        root=root,
        version=version,
        resolver=resolver,
        registry=registry,
    )
