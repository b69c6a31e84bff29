"""
Package manifest cache — decide whether a package-manager script exists.

Commands such as ``npm run lint`` or ``pnpm build`` only make sense when
the target's package.json declares that script.  The executor consults
this module to turn a missing script into a skip instead of a failure.

Thread safety:
    Reads take a shared lock.  On a miss the manifest is read and parsed
    outside any lock, then stored under the exclusive lock only if no
    other thread got there first (the earlier entry wins).  Two threads
    may read the same file concurrently; both see the same cached value
    afterwards.

Missing or unparseable manifests are cached as ``None`` exactly like a
valid parse and are not retried until ``clear()``.  There is no eviction:
the host process is a short-lived CLI.  A long-running embedding should
pass its own bounded cache to Target.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"

PACKAGE_MANAGERS = frozenset({"npm", "pnpm", "yarn", "bun"})

# Subcommands built into each package manager; they never need a script.
PACKAGE_MANAGER_BUILTINS: dict[str, frozenset[str]] = {
    "npm": frozenset({
        "install", "i", "ci", "uninstall", "update", "init", "publish",
        "pack", "link", "ls", "list", "outdated", "audit", "cache",
        "config", "help", "version",
    }),
    "pnpm": frozenset({
        "install", "i", "add", "remove", "update", "init", "publish",
        "pack", "link", "ls", "list", "outdated", "audit", "store",
        "config", "help", "dlx", "exec",
    }),
    "yarn": frozenset({
        "install", "add", "remove", "upgrade", "init", "publish", "pack",
        "link", "list", "info", "cache", "config", "help", "dlx",
    }),
    "bun": frozenset({
        "install", "i", "add", "remove", "update", "init", "publish",
        "link", "pm", "x", "repl", "upgrade", "completions",
    }),
}

# npm runs these lifecycle scripts without ``run``.
NPM_LIFECYCLE_SCRIPTS = frozenset({"test", "start", "stop", "restart"})


class PackageManifest(BaseModel):
    """The parts of package.json the executor cares about.

    ``scripts`` is None when the field is absent, which means the
    manifest declares no scripts at all.
    """

    scripts: dict[str, str] | None = None

    def has_script(self, name: str) -> bool:
        return bool(self.scripts) and name in self.scripts


class _ReadWriteLock:
    """Many concurrent readers or one writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


def load_manifest(directory: Path) -> PackageManifest | None:
    """Read and parse package.json from a directory.

    Returns None if the file is missing or malformed.  Errors are not
    surfaced: the package manager reports a broken manifest itself when
    it actually runs.
    """
    path = Path(directory) / MANIFEST_FILE
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return None

    try:
        data: Any = json.loads(raw)
        if not isinstance(data, dict):
            return None
        return PackageManifest.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.debug("Ignoring unparseable %s: %s", path, e)
        return None


class ManifestCache:
    """Process-wide cache of parsed package manifests keyed by directory."""

    def __init__(self) -> None:
        self._lock = _ReadWriteLock()
        self._data: dict[str, PackageManifest | None] = {}

    @staticmethod
    def _key(directory: Path | str) -> str:
        return str(Path(directory).absolute())

    def get(self, directory: Path | str) -> PackageManifest | None:
        """Return the cached manifest for ``directory``, loading it on a miss."""
        key = self._key(directory)

        with self._lock.read():
            if key in self._data:
                return self._data[key]

        # Load outside the lock
        loaded = load_manifest(Path(key))

        with self._lock.write():
            if key in self._data:
                return self._data[key]
            self._data[key] = loaded
            return loaded

    def clear(self) -> None:
        """Drop every cached entry, including tombstones."""
        with self._lock.write():
            self._data.clear()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._data)

    def __contains__(self, directory: object) -> bool:
        if not isinstance(directory, (str, Path)):
            return False
        key = self._key(directory)
        with self._lock.read():
            return key in self._data


default_manifest_cache = ManifestCache()


def package_script_name(command: str) -> tuple[str, str]:
    """Extract the package manager and script name from a command.

    Returns ``("", "")`` for non package-manager commands and
    ``(pm, "")`` for builtins, flags, or unrecognized subcommands.

    Examples::

        "npm run lint"   -> ("npm", "lint")
        "npm test"       -> ("npm", "test")
        "pnpm lint"      -> ("pnpm", "lint")
        "yarn build"     -> ("yarn", "build")
        "bun run dev"    -> ("bun", "dev")
        "npm install"    -> ("npm", "")
        "go test"        -> ("", "")
    """
    fields = command.split()
    if len(fields) < 2:
        return "", ""

    pm = fields[0]
    if pm not in PACKAGE_MANAGERS:
        return "", ""

    sub = fields[1]
    if sub in PACKAGE_MANAGER_BUILTINS.get(pm, ()):
        return pm, ""

    if sub == "run":
        if len(fields) < 3 or fields[2].startswith("-"):
            return pm, ""
        return pm, fields[2]

    if pm == "npm":
        if sub in NPM_LIFECYCLE_SCRIPTS:
            return pm, sub
        # npm -v, npm <unknown>: not a script invocation
        return pm, ""

    # pnpm / yarn / bun: the subcommand is the script name
    if sub.startswith("-"):
        return pm, ""
    return pm, sub


def is_script_available(
    command: str,
    directory: Path | str,
    cache: ManifestCache | None = None,
) -> tuple[bool, str]:
    """Check whether a package-manager script exists in package.json.

    Returns:
        (available, script_name).  Non package-manager commands,
        builtins, and directories without a readable manifest are
        available.  A manifest without a ``scripts`` field has none.
    """
    pm, script = package_script_name(command)
    if not pm or not script:
        return True, ""

    if cache is None:
        cache = default_manifest_cache
    manifest = cache.get(directory)
    if manifest is None:
        return True, ""

    return manifest.has_script(script), script
