"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from polyrun.core.services.manifest_cache import default_manifest_cache


@pytest.fixture(autouse=True)
def _clear_manifest_cache():
    """The process-wide package.json cache must not leak between tests."""
    default_manifest_cache.clear()
    yield
    default_manifest_cache.clear()


@pytest.fixture
def write_project(tmp_path: Path):
    """Write a polyrun.yml into tmp_path and return its path.

    Usage: ``write_project('''...yaml...''', dirs=["rs", "go"])``
    """

    def _write(content: str, dirs: list[str] | tuple[str, ...] = ()) -> Path:
        for d in dirs:
            (tmp_path / d).mkdir(parents=True, exist_ok=True)
        config = tmp_path / "polyrun.yml"
        config.write_text(textwrap.dedent(content))
        return config

    return _write
