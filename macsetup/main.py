"""
macsetup — CLI entrypoint.

Usage:
    macsetup                  run every phase (batch mode)
    macsetup -i               pick phases from a menu, then run
    macsetup phases           list the phase catalog
    macsetup validate         check the machine without installing
    macsetup config check     validate setup.yml
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from macsetup import __version__
from macsetup.core.observability.logging_config import setup_logging


def _read_menu_line() -> str | None:
    """One line of menu input, or None at end of input."""
    click.echo("> ", nl=False)
    line = click.get_text_stream("stdin").readline()
    return line if line else None


def _confirm_keep_waiting(message: str) -> bool:
    return click.confirm(message, default=True)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="macsetup")
@click.option("--interactive", "-i", is_flag=True, help="Choose phases from a menu before running.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to setup.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    interactive: bool,
    verbose: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """macsetup — provision a macOS development workstation."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = os.environ.get("MACSETUP_LOG_LEVEL", "WARNING")

    setup_logging(level=level, log_file=os.environ.get("MACSETUP_DEBUG_LOG"))

    if ctx.invoked_subcommand is None:
        _run(ctx, interactive)


def _run(ctx: click.Context, interactive: bool) -> None:
    from macsetup.core.reliability.retry import NetworkGate
    from macsetup.core.use_cases.run import run_setup

    tty = sys.stdin.isatty()
    gate = NetworkGate(prompt=_confirm_keep_waiting if tty else None)

    result = run_setup(
        config_path=ctx.obj.get("config_path"),
        interactive=interactive,
        gate=gate,
        read_line=_read_menu_line,
    )

    if result.config is None:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(result.exit_code)

    sys.exit(result.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def phases(as_json: bool) -> None:
    """List the phase catalog in execution order."""
    from macsetup.core.catalog import build_default_registry

    registry = build_default_registry()

    if as_json:
        data = [
            {
                "id": p.id,
                "label": p.label,
                "required": p.required,
                "needs_sudo": p.needs_sudo,
                "steps": [s.name for s in p.steps],
                "units": [u.id for u in p.units()],
            }
            for p in registry
        ]
        click.echo(json.dumps(data, indent=2))
        return

    click.secho("\n📋 Phases", fg="cyan", bold=True)
    for p in registry:
        click.echo(f"   {p.id:>2}. {p.label}", nl=False)
        if p.required:
            click.secho("  (required)", fg="red", nl=False)
        if p.needs_sudo:
            click.secho("  [sudo]", fg="yellow", nl=False)
        click.echo(f"  — {len(p.units())} units")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def validate(as_json: bool) -> None:
    """Check the machine's end state without installing anything."""
    from macsetup.core.observability.transcript import Transcript
    from macsetup.core.use_cases.validate import validate_machine

    if as_json:
        outcome = validate_machine(transcript=Transcript(echo=lambda *a, **k: None))
        click.echo(json.dumps(outcome.to_dict(), indent=2))
    else:
        outcome = validate_machine()

    sys.exit(0 if outcome.fail_count == 0 else 1)


@cli.group()
def config() -> None:
    """Configuration management commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate setup.yml against the phase catalog."""
    from macsetup.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.valid:
        click.secho("✅ setup.yml is valid", fg="green", bold=True)
        click.echo(f"   File: {result.config_path or '(none, using defaults)'}")
        click.echo(f"   Phase toggles: {len(result.config.phases)}")
        click.echo(f"   Unit toggles: {len(result.config.toggles)}")
        _bullets("⚠️  Warnings:", result.warnings, "yellow")
    else:
        _bullets("❌ Configuration errors:", result.errors, "red")
        _bullets("⚠️  Warnings:", result.warnings, "yellow")

    sys.exit(0 if result.valid else 1)


def _bullets(title: str, items: list[str], color: str) -> None:
    if not items:
        return
    click.echo()
    click.secho(title, fg=color, bold=True)
    for item in items:
        click.echo(f"   • {item}")


if __name__ == "__main__":
    cli()
