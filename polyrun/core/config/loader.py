"""
Configuration loader — reads polyrun.yml into domain models.

This is the primary entry point for loading project configuration.
It reads YAML (JSON is a subset and goes through the same parser),
validates against Pydantic schemas, applies the naming rules, and
returns a typed ProjectConfig.

Flow:
    find_project_file → safe_load → model_validate → validate_config
    → discover targets (only when none are declared)
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from polyrun.core.errors import ConfigError
from polyrun.core.models.project import ProjectConfig, TargetConfig, TargetKind
from polyrun.core.services.detection import discover_targets

logger = logging.getLogger(__name__)

# Searched in this order in each directory
PROJECT_CONFIG_FILES = ("polyrun.yml", "polyrun.yaml", "polyrun.json")

PROJECT_NAME_RE = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")
PROJECT_NAME_MAX_LEN = 128
TARGET_NAME_RE = re.compile(r"^[a-z][a-z0-9-]*$")


def find_project_file(start_dir: Path | None = None) -> Path | None:
    """Search for polyrun.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the config file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        for filename in PROJECT_CONFIG_FILES:
            candidate = current / filename
            if candidate.is_file():
                return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def project_root(config_path: Path) -> Path:
    """Get the project root directory from a config file path."""
    return config_path.parent.resolve()


def is_valid_project_name(name: str) -> bool:
    return len(name) <= PROJECT_NAME_MAX_LEN and bool(PROJECT_NAME_RE.match(name))


def is_valid_target_name(name: str) -> bool:
    return bool(TARGET_NAME_RE.match(name))


def validate_config(config: ProjectConfig) -> None:
    """Apply the naming and shape rules pydantic does not cover.

    Raises:
        ConfigError: Listing the first offending field.
    """
    if not is_valid_project_name(config.name):
        raise ConfigError(
            f"project.name {config.name!r}: must be lowercase letters, digits "
            f"and single hyphens, start with a letter, at most "
            f"{PROJECT_NAME_MAX_LEN} characters"
        )

    for name in sorted(config.targets):
        target = config.targets[name]
        if not is_valid_target_name(name):
            raise ConfigError(
                f"targets.{name}: name must match {TARGET_NAME_RE.pattern}"
            )
        if target.type not in {k.value for k in TargetKind}:
            raise ConfigError(
                f"targets.{name}.type: must be 'language' or 'auxiliary', "
                f"got {target.type!r}"
            )
        if not target.title.strip():
            raise ConfigError(f"targets.{name}.title: required")


def load_project(path: Path | None = None, discover: bool = True) -> ProjectConfig:
    """Load and validate project configuration.

    Args:
        path: Explicit path to polyrun.yml. If None, searches upward.
        discover: Populate targets from subdirectories when none are
            declared.

    Returns:
        Validated ProjectConfig.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_project_file()

    if path is None:
        raise ConfigError(
            f"No {PROJECT_CONFIG_FILES[0]} found. "
            "Create one at the project root, or specify --config."
        )

    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading project config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")

    try:
        config = ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid project configuration in {path}: {e}") from e

    try:
        validate_config(config)
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}") from e

    if discover and not config.targets:
        config.targets.update(discovered_targets(project_root(path)))

    logger.info("Loaded project '%s' with %d targets", config.name, len(config.targets))
    return config


def discovered_targets(root: Path) -> dict[str, TargetConfig]:
    """Target declarations for every detectable subdirectory of root.

    Directories whose names are not valid target names are ignored.
    """
    targets: dict[str, TargetConfig] = {}
    for name, toolchain in discover_targets(root).items():
        if not is_valid_target_name(name):
            logger.debug("Skipping discovered directory %r: not a valid target name", name)
            continue
        targets[name] = TargetConfig(
            type=TargetKind.LANGUAGE.value,
            title=name,
            toolchain=toolchain,
        )
    return targets


def read_version(root: Path, config: ProjectConfig) -> str:
    """Read the project version from the configured version file.

    Returns:
        The stripped file contents, or "" when the file does not exist.

    Raises:
        ConfigError: The file exists but cannot be read.
    """
    path = Path(root) / config.version_source
    if not path.exists():
        logger.debug("No version file at %s", path)
        return ""
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read version file {path}: {e}") from e
