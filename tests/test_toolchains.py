"""
Tests for the built-in catalog and toolchain resolution.
"""

import pytest

from polyrun.core.data.toolchains import (
    BUILTIN_TOOLCHAINS,
    STANDARD_COMMANDS,
    builtin_names,
    get_builtin,
    is_builtin,
)
from polyrun.core.errors import (
    ConfigError,
    ToolchainCycleError,
    UnknownBaseToolchainError,
    UnknownToolchainError,
)
from polyrun.core.models import DISABLED, Sequence, Shell, TargetConfig, ToolchainConfig
from polyrun.core.services.toolchain_resolver import ToolchainResolver

# ── Catalog ──────────────────────────────────────────────────────────


class TestCatalog:
    def test_common_ecosystems_present(self):
        for name in ("cargo", "go", "npm", "pnpm", "uv", "python", "dotnet", "gradle"):
            assert is_builtin(name), name

    def test_every_builtin_defines_standard_commands(self):
        for name, tc in BUILTIN_TOOLCHAINS.items():
            missing = [c for c in STANDARD_COMMANDS if not tc.has_command(c)]
            assert missing == [], f"{name} missing {missing}"

    def test_composites_reference_defined_commands(self):
        for name, tc in BUILTIN_TOOLCHAINS.items():
            for cmd_name, cmd in tc.commands.items():
                if isinstance(cmd, Sequence):
                    for step in cmd.names:
                        assert tc.has_command(step), f"{name}.{cmd_name} -> {step}"

    def test_cargo_presets(self):
        cargo = get_builtin("cargo")
        assert cargo.get_command("build") == Shell(template="cargo build")
        assert cargo.get_command("test:coverage") == DISABLED
        assert cargo.get_command("check") == Sequence(names=("lint", "format-check"))

    def test_go_check_includes_vet(self):
        assert get_builtin("go").get_command("check") == Sequence(
            names=("lint", "vet", "format-check")
        )

    def test_names_sorted(self):
        names = builtin_names()
        assert names == sorted(names)
        assert get_builtin("nope") is None

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            BUILTIN_TOOLCHAINS["custom"] = get_builtin("cargo")

    def test_builtin_command_table_is_read_only(self):
        with pytest.raises(TypeError):
            BUILTIN_TOOLCHAINS["cargo"].commands["build"] = Shell(template="rm -rf /tmp/x")
        with pytest.raises(TypeError):
            del BUILTIN_TOOLCHAINS["cargo"].commands["build"]
        assert get_builtin("cargo").get_command("build") == Shell(template="cargo build")

    def test_extending_sees_pristine_builtin(self):
        with pytest.raises(TypeError):
            BUILTIN_TOOLCHAINS["cargo"].commands["build"] = Shell(template="rm -rf /tmp/x")
        mine = _resolver(**{"my-cargo": {"extends": "cargo"}}).resolve("my-cargo")
        assert mine.get_command("build") == Shell(template="cargo build")


# ── Resolver ─────────────────────────────────────────────────────────


def _resolver(**custom) -> ToolchainResolver:
    return ToolchainResolver({k: ToolchainConfig.model_validate(v) for k, v in custom.items()})


class TestResolve:
    def test_builtin(self):
        r = ToolchainResolver()
        assert r.resolve("cargo") is get_builtin("cargo")

    def test_unknown(self):
        with pytest.raises(UnknownToolchainError):
            ToolchainResolver().resolve("nope")

    def test_unknown_is_config_error(self):
        with pytest.raises(ConfigError):
            ToolchainResolver().resolve("nope")

    def test_exists(self):
        r = _resolver(mine={"commands": {"build": "make"}})
        assert r.exists("mine")
        assert r.exists("cargo")
        assert not r.exists("nope")
        assert r.is_custom("mine")
        assert not r.is_custom("cargo")
        assert r.custom_names() == ["mine"]
        assert "mine" in r.names() and "cargo" in r.names()


class TestExtends:
    def test_inherits_every_base_command(self):
        r = _resolver(**{"my-cargo": {"extends": "cargo"}})
        mine = r.resolve("my-cargo")
        assert mine.commands == get_builtin("cargo").commands
        assert mine.extends == "cargo"

    def test_override_replaces_whole_entry(self):
        r = _resolver(**{
            "my-cargo": {
                "extends": "cargo",
                "commands": {"lint": "cargo clippy", "check": None, "extra": ["lint"]},
            }
        })
        mine = r.resolve("my-cargo")
        assert mine.get_command("lint") == Shell(template="cargo clippy")
        assert mine.get_command("check") == DISABLED
        assert mine.get_command("extra") == Sequence(names=("lint",))
        assert mine.get_command("build") == Shell(template="cargo build")

    def test_base_not_mutated(self):
        _resolver(**{"my-cargo": {"extends": "cargo", "commands": {"build": "x"}}})
        assert get_builtin("cargo").get_command("build") == Shell(template="cargo build")

    def test_chained_custom(self):
        r = _resolver(
            a={"extends": "cargo", "commands": {"lint": "a-lint"}},
            b={"extends": "a", "commands": {"test": "b-test"}},
        )
        b = r.resolve("b")
        assert b.get_command("lint") == Shell(template="a-lint")
        assert b.get_command("test") == Shell(template="b-test")
        assert b.get_command("build") == Shell(template="cargo build")

    def test_custom_shadows_builtin(self):
        r = _resolver(cargo={"commands": {"build": "my build"}})
        cargo = r.resolve("cargo")
        assert cargo.get_command("build") == Shell(template="my build")
        assert not cargo.has_command("test")

    def test_custom_base_preferred_over_builtin(self):
        r = _resolver(
            npm={"commands": {"build": "custom npm build"}},
            web={"extends": "npm"},
        )
        assert r.resolve("web").get_command("build") == Shell(template="custom npm build")

    def test_self_extension_refines_builtin(self):
        r = _resolver(cargo={"extends": "cargo", "commands": {"lint": "strict"}})
        cargo = r.resolve("cargo")
        assert cargo.get_command("lint") == Shell(template="strict")
        assert cargo.get_command("build") == Shell(template="cargo build")

    def test_unknown_base(self):
        with pytest.raises(UnknownBaseToolchainError) as exc:
            _resolver(mine={"extends": "nope"})
        assert exc.value.toolchain == "mine"
        assert exc.value.base == "nope"

    def test_cycle(self):
        with pytest.raises(ToolchainCycleError) as exc:
            _resolver(a={"extends": "b"}, b={"extends": "a"})
        assert exc.value.chain[0] == exc.value.chain[-1]

    def test_self_cycle_without_builtin(self):
        with pytest.raises(ToolchainCycleError):
            _resolver(mine={"extends": "mine"})


class TestTargetCommands:
    def test_validate_target_toolchains(self):
        r = ToolchainResolver()
        r.validate_target_toolchains({"rs": TargetConfig(title="Rust", toolchain="cargo")})
        with pytest.raises(UnknownToolchainError) as exc:
            r.validate_target_toolchains({"x": TargetConfig(title="X", toolchain="nope")})
        assert exc.value.target == "x"

    def test_target_overrides_toolchain(self):
        r = ToolchainResolver()
        cfg = TargetConfig(title="Rust", toolchain="cargo", commands={"test": "cargo nextest run"})
        commands = r.resolved_commands(cfg)
        assert commands["test"] == Shell(template="cargo nextest run")
        assert commands["build"] == Shell(template="cargo build")

    def test_no_toolchain_only_own_commands(self):
        cfg = TargetConfig(title="Gen", type="auxiliary", commands={"build": "python gen.py"})
        assert ToolchainResolver().resolved_commands(cfg) == {
            "build": Shell(template="python gen.py")
        }

    def test_explicit_toolchain_argument(self):
        cfg = TargetConfig(title="Go")
        commands = ToolchainResolver().resolved_commands(cfg, toolchain="go")
        assert commands["build"] == Shell(template="go build ./...")
