"""
Detection service — infer toolchains from marker files.

Looks at a directory's contents and decides which toolchain applies
when none is configured.  Also used to discover targets in projects
that declare none.

Pure logic — reads the filesystem, never writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerFile:
    """A filename or glob pattern and the toolchain it implies."""

    pattern: str
    toolchain: str

    @property
    def is_glob(self) -> bool:
        return any(ch in self.pattern for ch in "*?[")

    def matches(self, directory: Path) -> bool:
        if self.is_glob:
            return any(True for _ in directory.glob(self.pattern))
        return (directory / self.pattern).exists()


# Auto-detection order.  First match wins.
#
# This table is the single source of truth: lockfile-bearing variants
# must stay above the generic manifest they share (pnpm-lock.yaml above
# package.json, uv.lock above pyproject.toml, stack.yaml above *.cabal).
MARKER_FILES: tuple[MarkerFile, ...] = (
    # Rust
    MarkerFile("Cargo.toml", "cargo"),
    # Go
    MarkerFile("go.mod", "go"),
    # JavaScript / TypeScript: lock files first
    MarkerFile("deno.jsonc", "deno"),
    MarkerFile("deno.json", "deno"),
    MarkerFile("pnpm-lock.yaml", "pnpm"),
    MarkerFile("yarn.lock", "yarn"),
    MarkerFile("bun.lockb", "bun"),
    MarkerFile("package.json", "npm"),
    # Python: lock files first
    MarkerFile("uv.lock", "uv"),
    MarkerFile("poetry.lock", "poetry"),
    MarkerFile("pyproject.toml", "python"),
    MarkerFile("setup.py", "python"),
    # JVM
    MarkerFile("build.gradle.kts", "gradle"),
    MarkerFile("build.gradle", "gradle"),
    MarkerFile("pom.xml", "maven"),
    MarkerFile("build.sbt", "sbt"),
    # Apple
    MarkerFile("Package.swift", "swift"),
    # C / C++
    MarkerFile("CMakeLists.txt", "cmake"),
    # Generic
    MarkerFile("Makefile", "make"),
    # .NET: solution/props at the root, project files below
    MarkerFile("*.sln", "dotnet"),
    MarkerFile("Directory.Build.props", "dotnet"),
    MarkerFile("global.json", "dotnet"),
    MarkerFile("*.csproj", "dotnet"),
    MarkerFile("*.fsproj", "dotnet"),
    # Ruby
    MarkerFile("Gemfile", "bundler"),
    # PHP
    MarkerFile("composer.json", "composer"),
    # Elixir
    MarkerFile("mix.exs", "mix"),
    # Haskell: stack before cabal
    MarkerFile("stack.yaml", "stack"),
    MarkerFile("*.cabal", "cabal"),
    # OCaml
    MarkerFile("dune-project", "dune"),
    # Clojure
    MarkerFile("project.clj", "lein"),
    # Zig
    MarkerFile("build.zig", "zig"),
    # Erlang
    MarkerFile("rebar.config", "rebar3"),
    # R
    MarkerFile("DESCRIPTION", "r"),
)

# Directories never treated as targets during discovery:
# dependency caches, build output, and support content.
EXCLUDED_DIRS = frozenset({
    "node_modules",
    "vendor",
    "build",
    "dist",
    "out",
    "target",
    "artifacts",
    "tests",
    "templates",
    "docs",
    "scripts",
})


def detect_toolchain(directory: Path) -> str | None:
    """Detect the toolchain for a directory.

    Returns:
        Toolchain name of the first matching marker, or None.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return None

    for marker in MARKER_FILES:
        if marker.matches(directory):
            logger.debug("Detected %s in %s (marker %s)", marker.toolchain, directory, marker.pattern)
            return marker.toolchain

    return None


def is_excluded_dir(name: str) -> bool:
    """Whether a directory name is skipped during target discovery."""
    return name.startswith(".") or name in EXCLUDED_DIRS


def discover_targets(root: Path) -> dict[str, str]:
    """Find candidate targets among the immediate subdirectories of root.

    Returns:
        Mapping of directory name → detected toolchain, sorted by name.
    """
    root = Path(root)
    found: dict[str, str] = {}

    if not root.is_dir():
        return found

    for child in sorted(root.iterdir()):
        if not child.is_dir() or is_excluded_dir(child.name):
            continue
        toolchain = detect_toolchain(child)
        if toolchain:
            found[child.name] = toolchain

    logger.info("Discovered %d targets in %s", len(found), root)
    return found
