"""
polyrun — CLI entrypoint.

Usage:
    polyrun --help
    polyrun targets
    polyrun run build
    polyrun run test rs go --continue -- --nocapture
"""

from __future__ import annotations

import json
import os
import signal
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, NoReturn

import click

from polyrun import __version__
from polyrun.core.errors import ConfigError, PolyrunError, UnknownTargetError
from polyrun.core.observability.logging_config import (
    LOG_FILE_ENV,
    LOG_FILE_LEVEL_ENV,
    resolve_level,
    setup_logging,
)
from polyrun.core.use_cases.run import EXIT_CANCELED, EXIT_CONFIG, EXIT_FAILED


class PassthroughCommand(click.Command):
    """Command that keeps everything after ``--`` out of click's parser.

    The tail is stored in ``ctx.meta["passthrough_args"]``.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if "--" in args:
            i = args.index("--")
            ctx.meta["passthrough_args"] = tuple(args[i + 1:])
            args = args[:i]
        else:
            ctx.meta["passthrough_args"] = ()
        return super().parse_args(ctx, args)


def _fail(message: str, code: int) -> NoReturn:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(code)


def _open_workspace(ctx: click.Context):
    from polyrun.core.use_cases.workspace import open_workspace

    try:
        return open_workspace(ctx.obj.get("config_path"))
    except PolyrunError as e:
        _fail(str(e), EXIT_CONFIG)


@contextmanager
def _interrupt_cancels(token) -> Iterator[None]:
    """Route SIGINT to the cancel token while running targets."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        token.cancel("interrupted")

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


@click.group()
@click.version_option(version=__version__, prog_name="polyrun")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to polyrun.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """polyrun — run build commands across a polyglot project."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(verbose=verbose, quiet=quiet, debug=debug),
        log_file=os.environ.get(LOG_FILE_ENV),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_ENV),
    )


# ── Inspection ──────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def targets(ctx: click.Context, as_json: bool) -> None:
    """List the project's targets."""
    ws = _open_workspace(ctx)

    if as_json:
        data = [
            {
                "name": t.name,
                "title": t.title,
                "type": t.kind.value,
                "toolchain": t.toolchain or None,
                "directory": t.directory,
                "commands": t.commands(),
                "depends_on": t.depends_on,
            }
            for t in ws.registry.all()
        ]
        click.echo(json.dumps(data, indent=2))
        return

    if not ctx.obj.get("quiet"):
        version = f" {ws.version}" if ws.version else ""
        click.secho(f"\n📋 {ws.name}{version}", fg="cyan", bold=True)
        click.echo()

    for label, group in (("Languages", ws.registry.languages()), ("Auxiliary", ws.registry.auxiliary())):
        if not group:
            continue
        click.secho(f"   {label}: {len(group)}", fg="white", bold=True)
        for t in group:
            toolchain = f" [{t.toolchain}]" if t.toolchain else ""
            deps = f"  ← {', '.join(t.depends_on)}" if t.depends_on else ""
            click.echo(f"     • {t.name}{toolchain} — {t.title}{deps}")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def order(ctx: click.Context, as_json: bool) -> None:
    """Show targets in dependency order."""
    ws = _open_workspace(ctx)
    names = [t.name for t in ws.registry.topological_order()]

    if as_json:
        click.echo(json.dumps(names, indent=2))
        return

    for i, name in enumerate(names, 1):
        click.echo(f"{i:3d}. {name}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def toolchains(ctx: click.Context, as_json: bool) -> None:
    """List built-in and custom toolchains."""
    from polyrun.core.config.loader import find_project_file
    from polyrun.core.services.toolchain_resolver import ToolchainResolver

    if ctx.obj.get("config_path") or find_project_file():
        resolver = _open_workspace(ctx).resolver
    else:
        resolver = ToolchainResolver()

    if as_json:
        data = []
        for name in resolver.names():
            tc = resolver.resolve(name)
            data.append({
                "name": name,
                "custom": resolver.is_custom(name),
                "extends": tc.extends,
                "commands": tc.command_names,
            })
        click.echo(json.dumps(data, indent=2))
        return

    custom = resolver.custom_names()
    if custom:
        click.secho(f"   Custom: {len(custom)}", fg="white", bold=True)
        for name in custom:
            tc = resolver.resolve(name)
            base = f" (extends {tc.extends})" if tc.extends else ""
            click.secho(f"     • {name}{base}", fg="cyan")

    builtin = [n for n in resolver.names() if not resolver.is_custom(n)]
    click.secho(f"   Built-in: {len(builtin)}", fg="white", bold=True)
    click.echo("     " + ", ".join(builtin))


@cli.command()
@click.argument("directory", type=click.Path(file_okay=False), default=".")
def detect(directory: str) -> None:
    """Detect the toolchain of DIRECTORY (default: current directory)."""
    from polyrun.core.services.detection import detect_toolchain

    toolchain = detect_toolchain(Path(directory))
    if not toolchain:
        click.secho(f"No toolchain detected in {directory}", fg="yellow", err=True)
        sys.exit(EXIT_FAILED)
    click.echo(toolchain)


# ── Execution ───────────────────────────────────────────────────────


def _parse_env(pairs: tuple[str, ...]) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env


def _exec_options(
    ctx: click.Context,
    token,
    timeout: float | None,
    docker: bool,
    env_pairs: tuple[str, ...],
    args: tuple[str, ...] = (),
):
    """ExecOptions from the global verbosity flags and per-command options."""
    from polyrun.core.engine.target import ExecOptions, Verbosity

    if ctx.obj.get("verbose"):
        verbosity = Verbosity.VERBOSE
    elif ctx.obj.get("quiet"):
        verbosity = Verbosity.QUIET
    else:
        verbosity = Verbosity.DEFAULT

    return ExecOptions(
        args=args,
        env=_parse_env(env_pairs),
        verbosity=verbosity,
        docker=docker,
        cancel=token,
        timeout=timeout,
    )


def _echo_receipts(receipts, indent: str = "   ") -> None:
    for receipt in receipts:
        timing = f" ({receipt.duration_ms}ms)" if receipt.duration_ms else ""
        if receipt.ok:
            click.secho(f"{indent}✓ {receipt.target}", fg="green", nl=False)
            click.echo(timing)
        elif receipt.skipped:
            click.secho(f"{indent}⊘ {receipt.target} ", fg="yellow", nl=False)
            click.echo(f"({receipt.skip_reason}{': ' + receipt.detail if receipt.detail else ''})")
        elif receipt.canceled:
            click.secho(f"{indent}⊗ {receipt.target}", fg="yellow", nl=False)
            click.echo(timing)
        else:
            click.secho(f"{indent}✗ {receipt.target}", fg="red", nl=False)
            click.echo(timing)
            if receipt.error:
                click.echo(f"{indent}  │ {receipt.error}")


_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red", "canceled": "yellow"}


@cli.command(cls=PassthroughCommand)
@click.argument("command")
@click.argument("target_names", metavar="[TARGET]...", nargs=-1)
@click.option("--continue", "continue_on_error", is_flag=True, help="Keep going after a failure.")
@click.option("--parallel", is_flag=True, help="Run targets concurrently (ignores depends_on).")
@click.option("--timeout", type=float, default=None, help="Per-command timeout in seconds.")
@click.option("--docker", is_flag=True, help="Signal commands to run in a container.")
@click.option("--env", "-e", "env_pairs", multiple=True, help="Extra environment, KEY=VALUE.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the report as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    command: str,
    target_names: tuple[str, ...],
    continue_on_error: bool,
    parallel: bool,
    timeout: float | None,
    docker: bool,
    env_pairs: tuple[str, ...],
    as_json: bool,
) -> None:
    """Run COMMAND on every target that defines it.

    Arguments after -- are appended to each shell command.

    Examples:

        polyrun run build

        polyrun run test rs go --continue

        polyrun run test -- -k smoke
    """
    from polyrun.core.engine.cancellation import CancelToken
    from polyrun.core.use_cases.run import run_command

    token = CancelToken()
    options = _exec_options(
        ctx, token, timeout, docker, env_pairs, args=ctx.meta.get("passthrough_args", ())
    )

    ws = _open_workspace(ctx)
    try:
        with _interrupt_cancels(token):
            result = run_command(
                command,
                targets=list(target_names),
                options=options,
                continue_on_error=continue_on_error,
                parallel=parallel,
                workspace=ws,
            )
    except (ConfigError, UnknownTargetError) as e:
        _fail(str(e), EXIT_CONFIG)

    report = result.report

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if not ctx.obj.get("quiet"):
        click.echo()
        _echo_receipts(report.receipts)

    if report.total == 0:
        click.secho(f"   No targets define '{command}'", fg="yellow")
    else:
        click.secho(
            f"   {command}: {report.succeeded}/{report.total} succeeded"
            + (f", {report.skipped} skipped" if report.skipped else ""),
            fg=_STATUS_COLORS.get(report.status, "white"),
            bold=True,
        )

    if result.exit_code == EXIT_CANCELED:
        click.secho("   Interrupted", fg="yellow", err=True)
    sys.exit(result.exit_code)


@cli.command()
@click.argument("target_names", metavar="[TARGET]...", nargs=-1)
@click.option("--release", is_flag=True, help="Build with build:release instead of build.")
@click.option("--continue", "continue_on_error", is_flag=True, help="Keep going after a failed phase.")
@click.option("--parallel", is_flag=True, help="Run language targets concurrently.")
@click.option("--timeout", type=float, default=None, help="Per-command timeout in seconds.")
@click.option("--docker", is_flag=True, help="Signal commands to run in a container.")
@click.option("--env", "-e", "env_pairs", multiple=True, help="Extra environment, KEY=VALUE.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the report as JSON.")
@click.pass_context
def ci(
    ctx: click.Context,
    target_names: tuple[str, ...],
    release: bool,
    continue_on_error: bool,
    parallel: bool,
    timeout: float | None,
    docker: bool,
    env_pairs: tuple[str, ...],
    as_json: bool,
) -> None:
    """Run the CI pipeline: clean, restore, check, build, test.

    Auxiliary targets go through every phase before language targets.

    Examples:

        polyrun ci

        polyrun ci --release --continue

        polyrun ci rs go --parallel
    """
    from polyrun.core.engine.cancellation import CancelToken
    from polyrun.core.use_cases.run import run_ci

    token = CancelToken()
    options = _exec_options(ctx, token, timeout, docker, env_pairs)

    ws = _open_workspace(ctx)
    try:
        with _interrupt_cancels(token):
            result = run_ci(
                targets=list(target_names),
                options=options,
                release=release,
                continue_on_error=continue_on_error,
                parallel=parallel,
                workspace=ws,
            )
    except (ConfigError, UnknownTargetError) as e:
        _fail(str(e), EXIT_CONFIG)

    report = result.report

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if not ctx.obj.get("quiet"):
        click.echo()
        for phase in report.phases:
            click.secho(
                f"   {phase.phase} ({phase.group})",
                fg=_STATUS_COLORS.get(phase.report.status, "white"),
                bold=True,
            )
            _echo_receipts(phase.report.receipts, indent="     ")

    if not report.phases:
        click.secho("   No targets define any CI phase", fg="yellow")
    elif report.failed_phases:
        click.secho(
            f"   {report.command}: failed ({', '.join(report.failed_phases)})",
            fg="red",
            bold=True,
        )
    else:
        click.secho(
            f"   {report.command}: {len(report.phases)} phases {report.status}",
            fg=_STATUS_COLORS.get(report.status, "white"),
            bold=True,
        )

    if result.exit_code == EXIT_CANCELED:
        click.secho("   Interrupted", fg="yellow", err=True)
    sys.exit(result.exit_code)


if __name__ == "__main__":
    cli()
