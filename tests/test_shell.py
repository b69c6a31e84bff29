"""
Tests for the shell adapter — argv, environment, process control.
"""

import sys
import time
from pathlib import Path

import pytest

from polyrun.adapters.shell.command import (
    DOCKER_ENV_VAR,
    ShellCommand,
    ShellResult,
    build_env,
    filter_shim_env,
    powershell_path,
    shell_argv,
)
from polyrun.core.engine.cancellation import CancelToken

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")


class TestShellArgv:
    def test_posix(self):
        assert shell_argv("make build", windows=False) == ["sh", "-c", "make build"]

    def test_windows_uses_full_powershell_path(self, monkeypatch):
        monkeypatch.setenv("SYSTEMROOT", r"D:\Win")
        argv = shell_argv("dotnet build", windows=True)
        assert argv[0] == powershell_path()
        assert argv[0].startswith(r"D:\Win")
        assert argv[0].endswith("powershell.exe")
        assert argv[1:] == ["-NoProfile", "-NonInteractive", "-Command", "dotnet build"]

    def test_powershell_default_root(self, monkeypatch):
        monkeypatch.delenv("SYSTEMROOT", raising=False)
        assert powershell_path().startswith(r"C:\Windows")


class TestEnvironment:
    def test_filter_shim_env(self):
        env = filter_shim_env({
            "PATH": "/bin",
            "__MISE_DIFF": "x",
            "__MISE_SESSION": "y",
            "MISE_SHELL": "zsh",
            "MISE_ENV": "keep",
        })
        assert env == {"PATH": "/bin", "MISE_ENV": "keep"}

    def test_build_env_layers(self):
        env = build_env(
            {"A": "1", "B": "1"},
            None,
            {"B": "2"},
            base={"PATH": "/bin", "A": "0", "MISE_SHELL": "zsh"},
        )
        assert env == {"PATH": "/bin", "A": "1", "B": "2"}

    def test_build_env_does_not_mutate_base(self):
        base = {"A": "0"}
        build_env({"A": "1"}, base=base)
        assert base == {"A": "0"}


class TestShellResult:
    def test_ok(self):
        assert ShellResult(exit_code=0).ok
        assert not ShellResult(exit_code=1).ok
        assert not ShellResult(exit_code=0, canceled=True).ok
        assert not ShellResult(exit_code=0, timed_out=True).ok


@posix_only
class TestShellCommandRun:
    def test_available(self):
        assert ShellCommand().is_available()

    def test_exit_code(self, tmp_path: Path):
        result = ShellCommand().run("exit 4", cwd=tmp_path)
        assert result.exit_code == 4
        assert not result.ok

    def test_cwd_and_env(self, tmp_path: Path):
        result = ShellCommand().run(
            'pwd > where.txt && test "$X" = y',
            cwd=tmp_path,
            env=build_env({"X": "y"}),
        )
        assert result.ok
        assert Path((tmp_path / "where.txt").read_text().strip()).resolve() == tmp_path.resolve()

    def test_docker_exports_variable(self, tmp_path: Path):
        cmd = f'test "${DOCKER_ENV_VAR}" = 1'
        assert not ShellCommand().run(cmd, cwd=tmp_path, env=build_env()).ok
        assert ShellCommand().run(cmd, cwd=tmp_path, env=build_env(), docker=True).ok

    def test_output_redirect(self, tmp_path: Path):
        out_file = tmp_path / "out.log"
        with out_file.open("w") as out:
            ShellCommand(stdout=out).run("echo hello", cwd=tmp_path)
        assert out_file.read_text().strip() == "hello"

    def test_pre_canceled_does_not_spawn(self, tmp_path: Path):
        token = CancelToken()
        token.cancel()
        result = ShellCommand().run("touch spawned", cwd=tmp_path, cancel=token)
        assert result.canceled
        assert not (tmp_path / "spawned").exists()

    def test_timeout(self, tmp_path: Path):
        start = time.monotonic()
        result = ShellCommand().run("sleep 5", cwd=tmp_path, timeout=0.2)
        assert result.timed_out
        assert not result.ok
        assert time.monotonic() - start < 4

    def test_spawn_failure_raises(self, tmp_path: Path):
        with pytest.raises(OSError):
            ShellCommand().run("true", cwd=tmp_path / "missing")

