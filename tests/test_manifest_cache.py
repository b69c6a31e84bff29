"""
Tests for package.json script probing and its cache.
"""

import json
import threading
from pathlib import Path

import pytest

from polyrun.core.services.manifest_cache import (
    ManifestCache,
    PackageManifest,
    default_manifest_cache,
    is_script_available,
    load_manifest,
    package_script_name,
)


def _write_manifest(directory: Path, scripts: dict | None = None, raw: str | None = None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    if raw is None:
        data: dict = {"name": "pkg"}
        if scripts is not None:
            data["scripts"] = scripts
        raw = json.dumps(data)
    (directory / "package.json").write_text(raw)
    return directory


# ── Script name extraction ───────────────────────────────────────────


class TestPackageScriptName:
    @pytest.mark.parametrize(
        "command,expected",
        [
            ("npm run lint", ("npm", "lint")),
            ("npm run lint -- --fix", ("npm", "lint")),
            ("npm test", ("npm", "test")),
            ("npm start", ("npm", "start")),
            ("pnpm lint", ("pnpm", "lint")),
            ("pnpm run build", ("pnpm", "build")),
            ("yarn build", ("yarn", "build")),
            ("bun run dev", ("bun", "dev")),
            ("npm install", ("npm", "")),
            ("npm ci", ("npm", "")),
            ("pnpm install --frozen-lockfile", ("pnpm", "")),
            ("yarn add left-pad", ("yarn", "")),
            ("bun x tsc", ("bun", "")),
            ("npm run", ("npm", "")),
            ("npm run --silent", ("npm", "")),
            ("npm -v", ("npm", "")),
            ("npm frobnicate", ("npm", "")),
            ("pnpm --version", ("pnpm", "")),
            ("npm", ("", "")),
            ("go test ./...", ("", "")),
            ("cargo build", ("", "")),
        ],
    )
    def test_extraction(self, command: str, expected: tuple[str, str]):
        assert package_script_name(command) == expected


# ── Manifest loading ─────────────────────────────────────────────────


class TestLoadManifest:
    def test_scripts(self, tmp_path: Path):
        _write_manifest(tmp_path, {"build": "tsc"})
        manifest = load_manifest(tmp_path)
        assert manifest == PackageManifest(scripts={"build": "tsc"})
        assert manifest.has_script("build")
        assert not manifest.has_script("lint")

    def test_no_scripts_field(self, tmp_path: Path):
        _write_manifest(tmp_path)
        manifest = load_manifest(tmp_path)
        assert manifest is not None
        assert manifest.scripts is None
        assert not manifest.has_script("test")

    def test_missing(self, tmp_path: Path):
        assert load_manifest(tmp_path) is None

    def test_malformed(self, tmp_path: Path):
        _write_manifest(tmp_path, raw="{not json")
        assert load_manifest(tmp_path) is None

    def test_not_an_object(self, tmp_path: Path):
        _write_manifest(tmp_path, raw="[1, 2]")
        assert load_manifest(tmp_path) is None


# ── Cache ────────────────────────────────────────────────────────────


class TestManifestCache:
    def test_caches_first_read(self, tmp_path: Path):
        _write_manifest(tmp_path, {"build": "tsc"})
        cache = ManifestCache()
        first = cache.get(tmp_path)
        _write_manifest(tmp_path, {"lint": "eslint"})
        assert cache.get(tmp_path) is first
        assert tmp_path in cache
        assert len(cache) == 1

    def test_clear_reloads(self, tmp_path: Path):
        _write_manifest(tmp_path, {"build": "tsc"})
        cache = ManifestCache()
        cache.get(tmp_path)
        _write_manifest(tmp_path, {"lint": "eslint"})
        cache.clear()
        assert len(cache) == 0
        assert cache.get(tmp_path).has_script("lint")

    def test_missing_is_cached(self, tmp_path: Path):
        cache = ManifestCache()
        assert cache.get(tmp_path) is None
        assert tmp_path in cache
        _write_manifest(tmp_path, {"build": "tsc"})
        assert cache.get(tmp_path) is None

    def test_relative_and_absolute_share_entry(self, tmp_path: Path, monkeypatch):
        _write_manifest(tmp_path / "web", {"build": "tsc"})
        monkeypatch.chdir(tmp_path)
        cache = ManifestCache()
        cache.get("web")
        assert (tmp_path / "web") in cache
        assert len(cache) == 1

    def test_concurrent_readers_see_one_value(self, tmp_path: Path):
        _write_manifest(tmp_path, {"build": "tsc"})
        cache = ManifestCache()
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(cache.get(tmp_path))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(r is results[0] for r in results)
        assert len(cache) == 1


class TestIsScriptAvailable:
    def test_present(self, tmp_path: Path):
        _write_manifest(tmp_path, {"lint": "eslint ."})
        assert is_script_available("npm run lint", tmp_path, ManifestCache()) == (True, "lint")

    def test_absent(self, tmp_path: Path):
        _write_manifest(tmp_path, {"build": "tsc"})
        assert is_script_available("npm run lint", tmp_path, ManifestCache()) == (False, "lint")

    def test_non_package_manager(self, tmp_path: Path):
        assert is_script_available("cargo build", tmp_path, ManifestCache()) == (True, "")

    def test_builtin(self, tmp_path: Path):
        _write_manifest(tmp_path, {})
        assert is_script_available("npm install", tmp_path, ManifestCache()) == (True, "")

    def test_no_manifest_assumes_available(self, tmp_path: Path):
        assert is_script_available("npm run lint", tmp_path, ManifestCache()) == (True, "")

    def test_empty_cache_instance_is_used(self, tmp_path: Path):
        _write_manifest(tmp_path, {"build": "tsc"})
        cache = ManifestCache()
        is_script_available("npm run build", tmp_path, cache)
        assert len(cache) == 1
        assert tmp_path not in default_manifest_cache

    def test_default_cache(self, tmp_path: Path):
        _write_manifest(tmp_path, {"build": "tsc"})
        assert is_script_available("yarn build", tmp_path) == (True, "build")
        assert tmp_path in default_manifest_cache
