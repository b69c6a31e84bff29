"""
Tests for CLI commands — inspection, detection, run, and global options.
"""

import json
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from polyrun.main import cli

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")

PROJECT = """\
    project: {name: demo}
    targets:
      app:
        title: App
        depends_on: [lib]
        commands:
          build: "echo ${target} >> ${root}/order.log"
          test: "exit 1"
          lint: null
      lib:
        title: Library
        commands:
          build: "echo ${target} >> ${root}/order.log"
          test: "echo ${target} >> ${root}/order.log"
          lint: "echo ${target} >> ${root}/order.log"
      gen:
        type: auxiliary
        title: Codegen
        commands:
          gen: "true"
    """


def _order(tmp_path: Path) -> list[str]:
    log = tmp_path / "order.log"
    return log.read_text().split() if log.exists() else []


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "polyglot" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config_is_config_error(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "polyrun.yml"), "targets"])
        assert result.exit_code == 2
        assert "not found" in result.output


class TestTargetsCommand:
    def test_lists_targets(self, write_project, tmp_path: Path):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = CliRunner().invoke(cli, ["--config", str(config), "targets"])
        assert result.exit_code == 0
        assert "demo" in result.output
        assert "Languages: 2" in result.output
        assert "Auxiliary: 1" in result.output
        assert "app" in result.output

    def test_json(self, write_project):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = CliRunner().invoke(cli, ["--config", str(config), "targets", "--json"])
        assert result.exit_code == 0
        data = {t["name"]: t for t in json.loads(result.output)}
        assert data["app"]["depends_on"] == ["lib"]
        assert data["gen"]["type"] == "auxiliary"
        assert data["lib"]["commands"] == ["build", "lint", "test"]

    def test_invalid_config(self, write_project):
        config = write_project("""\
            project: {name: demo}
            targets:
              a: {title: A, depends_on: [b]}
              b: {title: B, depends_on: [a]}
            """)
        result = CliRunner().invoke(cli, ["--config", str(config), "targets"])
        assert result.exit_code == 2
        assert "circular dependency" in result.output


class TestOrderCommand:
    def test_order(self, write_project):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = CliRunner().invoke(cli, ["--config", str(config), "order", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == ["lib", "app", "gen"]

    def test_order_text(self, write_project):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = CliRunner().invoke(cli, ["--config", str(config), "order"])
        assert result.exit_code == 0
        assert result.output.index("lib") < result.output.index("app")


class TestToolchainsCommand:
    def test_builtins_without_project(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, ["toolchains", "--json"])
        assert result.exit_code == 0
        names = {t["name"] for t in json.loads(result.output)}
        assert {"cargo", "go", "npm", "uv"} <= names

    def test_custom_listed(self, write_project):
        config = write_project("""\
            project: {name: demo}
            toolchains:
              my-cargo: {extends: cargo}
            targets:
              rs: {title: Rust, toolchain: my-cargo}
            """, dirs=["rs"])
        result = CliRunner().invoke(cli, ["--config", str(config), "toolchains", "--json"])
        assert result.exit_code == 0
        data = {t["name"]: t for t in json.loads(result.output)}
        assert data["my-cargo"]["custom"] is True
        assert data["my-cargo"]["extends"] == "cargo"
        assert data["cargo"]["custom"] is False

    def test_text_groups_custom_first(self, write_project):
        config = write_project("""\
            project: {name: demo}
            toolchains:
              my-cargo: {extends: cargo}
            targets:
              rs: {title: Rust, toolchain: my-cargo}
            """, dirs=["rs"])
        result = CliRunner().invoke(cli, ["--config", str(config), "toolchains"])
        assert result.exit_code == 0
        assert "Custom: 1" in result.output
        assert "my-cargo (extends cargo)" in result.output
        assert result.output.index("my-cargo") < result.output.index("Built-in")


class TestDetectCommand:
    def test_detected(self, tmp_path: Path):
        (tmp_path / "go.mod").write_text("module x\n")
        result = CliRunner().invoke(cli, ["detect", str(tmp_path)])
        assert result.exit_code == 0
        assert result.output.strip() == "go"

    def test_nothing_detected(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["detect", str(tmp_path)])
        assert result.exit_code == 1


@posix_only
class TestRunCommand:
    def _invoke(self, config: Path, *args: str):
        return CliRunner().invoke(cli, ["--config", str(config), "run", *args])

    def test_runs_in_dependency_order(self, write_project, tmp_path: Path):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = self._invoke(config, "build")
        assert result.exit_code == 0, result.output
        assert _order(tmp_path) == ["lib", "app"]
        assert "2/2 succeeded" in result.output

    def test_selected_targets(self, write_project, tmp_path: Path):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = self._invoke(config, "build", "lib")
        assert result.exit_code == 0
        assert _order(tmp_path) == ["lib"]

    def test_skip_exits_zero(self, write_project, tmp_path: Path):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = self._invoke(config, "lint")
        assert result.exit_code == 0
        assert _order(tmp_path) == ["lib"]
        assert "disabled" in result.output

    def test_failure_exits_one(self, write_project, tmp_path: Path):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = self._invoke(config, "test")
        assert result.exit_code == 1
        assert _order(tmp_path) == ["lib"]

    def test_json_report(self, write_project):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = self._invoke(config, "test", "--json", "--continue")
        assert result.exit_code == 1
        # Failure logs go to stderr ahead of the report
        data = json.loads(result.output[result.output.index("{"):])
        assert data["report"]["status"] == "partial"
        statuses = {r["target"]: r["status"] for r in data["report"]["receipts"]}
        assert statuses == {"lib": "ok", "app": "failed"}

    def test_passthrough_args(self, write_project, tmp_path: Path):
        config = write_project("""\
            project: {name: demo}
            targets:
              a:
                title: A
                commands:
                  build: "echo >> ${root}/args.log"
            """, dirs=["a"])
        result = self._invoke(config, "build", "--", "--release", "-v")
        assert result.exit_code == 0, result.output
        assert (tmp_path / "args.log").read_text().split() == ["--release", "-v"]

    def test_env_option(self, write_project):
        config = write_project("""\
            project: {name: demo}
            targets:
              a:
                title: A
                commands:
                  build: 'test "$MODE" = release'
            """, dirs=["a"])
        assert self._invoke(config, "build").exit_code == 1
        assert self._invoke(config, "build", "-e", "MODE=release").exit_code == 0

    def test_bad_env_option(self, write_project):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = self._invoke(config, "build", "-e", "NOEQUALS")
        assert result.exit_code == 2

    def test_unknown_target(self, write_project):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = self._invoke(config, "build", "nope")
        assert result.exit_code == 2
        assert "nope" in result.output

    def test_no_target_defines_command(self, write_project):
        config = write_project(PROJECT, dirs=["app", "lib", "gen"])
        result = self._invoke(config, "deploy")
        assert result.exit_code == 0
        assert "No targets define" in result.output

    def test_timeout_exits_130(self, write_project):
        config = write_project("""\
            project: {name: demo}
            targets:
              a: {title: A, commands: {build: "sleep 5"}}
            """, dirs=["a"])
        result = self._invoke(config, "build", "--timeout", "0.2")
        assert result.exit_code == 130


CI_PROJECT = """\
    project: {name: demo}
    targets:
      app:
        title: App
        commands:
          clean: "echo app-clean >> ${root}/order.log"
          build: "echo app-build >> ${root}/order.log"
          build:release: "echo app-release >> ${root}/order.log"
          test: "echo app-test >> ${root}/order.log"
      gen:
        type: auxiliary
        title: Codegen
        commands:
          build: "echo gen-build >> ${root}/order.log"
    """


@posix_only
class TestCICommand:
    def _invoke(self, config: Path, *args: str):
        return CliRunner().invoke(cli, ["--config", str(config), "ci", *args])

    def test_pipeline(self, write_project, tmp_path: Path):
        config = write_project(CI_PROJECT, dirs=["app", "gen"])
        result = self._invoke(config)
        assert result.exit_code == 0, result.output
        assert _order(tmp_path) == ["gen-build", "app-clean", "app-build", "app-test"]
        assert "build (auxiliary)" in result.output
        assert "ci: 4 phases ok" in result.output

    def test_release(self, write_project, tmp_path: Path):
        config = write_project(CI_PROJECT, dirs=["app", "gen"])
        result = self._invoke(config, "--release", "app")
        assert result.exit_code == 0, result.output
        assert _order(tmp_path) == ["app-clean", "app-release", "app-test"]

    def test_failure_exits_one(self, write_project, tmp_path: Path):
        config = write_project("""\
            project: {name: demo}
            targets:
              a: {title: A, commands: {build: "exit 1", test: "echo a-test >> ${root}/order.log"}}
            """, dirs=["a"])
        result = self._invoke(config)
        assert result.exit_code == 1
        assert _order(tmp_path) == []
        assert "failed (build)" in result.output

    def test_json(self, write_project):
        config = write_project(CI_PROJECT, dirs=["app", "gen"])
        result = self._invoke(config, "--json")
        assert result.exit_code == 0
        data = json.loads(result.output[result.output.index("{"):])
        assert data["report"]["command"] == "ci"
        assert [p["phase"] for p in data["report"]["phases"]] == ["build", "clean", "build", "test"]

    def test_unknown_target(self, write_project):
        config = write_project(CI_PROJECT, dirs=["app", "gen"])
        assert self._invoke(config, "nope").exit_code == 2
