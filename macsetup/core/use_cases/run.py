"""
Run use case — provision the workstation end to end.

This is the top-level orchestrator, the full vertical slice from the
user's intent to the final report:

    load config → resolve toggles → select phases
        → [sudo keep-alive] → execute phases → validate → follow-ups

A required-phase failure stops everything after it, including the
validator; the keep-alive thread and the transcript are released on
every exit path.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from macsetup.adapters.base import Runner
from macsetup.adapters.shell.filesystem import Filesystem
from macsetup.core.catalog import STANDING_MANUAL_STEPS, build_default_registry, default_checks
from macsetup.core.config.loader import ConfigError, load_config
from macsetup.core.config.toggles import EffectiveToggles, default_toggles, resolve
from macsetup.core.context import RunContext
from macsetup.core.engine.executor import ExecutionReport, execute_phases
from macsetup.core.engine.registry import PhaseRegistry
from macsetup.core.engine.selector import (
    PhaseSelection,
    batch_selection,
    interactive_selection,
)
from macsetup.core.engine.validator import (
    ValidationCheck,
    manual_follow_ups,
    print_follow_ups,
    run_validation,
)
from macsetup.core.errors import RequiredPhaseError
from macsetup.core.models.config import RunConfiguration
from macsetup.core.models.outcome import RunOutcome
from macsetup.core.observability.transcript import Transcript, default_log_path
from macsetup.core.reliability.privilege import SudoKeepAlive
from macsetup.core.reliability.retry import NetworkGate, Sleep

logger = logging.getLogger(__name__)

# Exit status for an unusable configuration file
EXIT_CONFIG_ERROR = 2


@dataclass
class RunResult:
    """Result of one provisioning run."""

    config: RunConfiguration | None = None
    toggles: EffectiveToggles | None = None
    selection: PhaseSelection | None = None
    report: ExecutionReport | None = None
    validation: RunOutcome | None = None
    follow_ups: list[str] = field(default_factory=list)
    exit_code: int = 0
    elapsed: float = 0.0
    error: str | None = None

    @property
    def aborted(self) -> bool:
        return self.report is not None and self.report.aborted

    def to_dict(self) -> dict:
        result: dict = {"exit_code": self.exit_code}
        if self.error:
            result["error"] = self.error
        if self.selection is not None:
            result["selected"] = self.selection.selected_ids
        if self.report is not None:
            result["report"] = self.report.to_dict()
        if self.validation is not None:
            result["validation"] = self.validation.to_dict()
        if self.toggles is not None and self.toggles.ignored:
            result["ignored_toggles"] = list(self.toggles.ignored)
        result["follow_ups"] = self.follow_ups
        result["elapsed_seconds"] = round(self.elapsed, 1)
        return result


def format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"


def resolve_toggles(registry: PhaseRegistry, config: RunConfiguration) -> EffectiveToggles:
    """Unit toggles: everything the registry declares, overridden by config."""
    return resolve(default_toggles(registry.toggle_keys()), config.toggles)


def run_setup(
    config_path: Path | None = None,
    interactive: bool = False,
    runner: Runner | None = None,
    registry: PhaseRegistry | None = None,
    checks: Iterable[ValidationCheck] | None = None,
    transcript: Transcript | None = None,
    fs: Filesystem | None = None,
    gate: NetworkGate | None = None,
    read_line: Callable[[], str | None] | None = None,
    write: Callable[[str], None] | None = None,
    sleep: Sleep = time.sleep,
    keepalive_interval: float = 60.0,
) -> RunResult:
    """Provision the workstation.

    Args:
        config_path: Optional explicit path to setup.yml.
        interactive: Show the phase menu before running.
        runner: Command runner (defaults to the real subprocess runner).
        registry: Phase catalog (defaults to the shipped nine phases).
        checks: Validator checks (defaults to the shipped list).
        transcript: Output sink (defaults to terminal + ~/mac-setup.log).
        fs: Filesystem adapter (defaults to the real home directory).
        gate: Network gate used between retries.
        read_line: Menu input source; required when ``interactive``.
        write: Menu output; defaults to the transcript.
        sleep: Injected for tests.
        keepalive_interval: Seconds between sudo refreshes.

    Returns:
        RunResult; ``exit_code`` is non-zero only for a configuration
        error or a failed required phase.
    """
    result = RunResult()
    started = time.monotonic()

    # ── Load config ──────────────────────────────────────────────
    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        result.exit_code = EXIT_CONFIG_ERROR
        return result
    result.config = config

    # ── Registry, toggles, selection ────────────────────────────
    if registry is None:
        registry = build_default_registry()
    if checks is None:
        checks = default_checks()

    toggles = resolve_toggles(registry, config)
    result.toggles = toggles

    owns_transcript = transcript is None
    if transcript is None:
        transcript = Transcript(default_log_path())

    try:
        selection = batch_selection(registry, config.phases)
        if interactive:
            if read_line is None:
                raise ValueError("interactive selection needs a read_line source")
            selection = interactive_selection(
                registry,
                read_line=read_line,
                write=write or transcript.line,
                initial=selection,
            )
        result.selection = selection

        if runner is None:
            from macsetup.adapters.shell.command import SubprocessRunner

            runner = SubprocessRunner()

        ctx = RunContext(
            runner=runner,
            transcript=transcript,
            fs=fs or Filesystem(),
            config=config,
            toggles=toggles,
            gate=gate,
            sleep=sleep,
        )

        transcript.banner("Mac Developer Environment Setup")
        if transcript.path is not None:
            transcript.line(f"Log: {transcript.path}")
        transcript.stamp("Setup started")
        for key in toggles.ignored:
            transcript.warning(f"Unknown toggle '{key}' in config — ignored")

        _provision(registry, selection, ctx, checks, result, keepalive_interval)

        result.elapsed = time.monotonic() - started
        if result.aborted:
            transcript.line("")
            transcript.failure(f"Setup aborted: {result.error}")
            if transcript.path is not None:
                transcript.line(f"=== Log saved to {transcript.path} ===")
        else:
            transcript.line("")
            transcript.stamp(f"Setup complete ({format_elapsed(result.elapsed)})")
            if transcript.path is not None:
                transcript.line(f"=== Log saved to {transcript.path} ===")
            print_follow_ups(ctx, result.follow_ups)
    finally:
        if owns_transcript:
            transcript.close()

    return result


def _provision(
    registry: PhaseRegistry,
    selection: PhaseSelection,
    ctx: RunContext,
    checks: Iterable[ValidationCheck],
    result: RunResult,
    keepalive_interval: float,
) -> None:
    """Execute and validate, holding the sudo keep-alive for the duration."""
    needs_sudo = any(
        phase.needs_sudo for phase in registry if selection.is_selected(phase.id)
    )
    keepalive: SudoKeepAlive | None = None

    try:
        if needs_sudo:
            keepalive = SudoKeepAlive(ctx.runner, interval=keepalive_interval)
            if not keepalive.start():
                ctx.transcript.warning("Could not acquire sudo — steps that need it will fail")

        try:
            result.report = execute_phases(registry, selection, ctx)
        except RequiredPhaseError as e:
            result.report = e.report
            result.error = str(e)
            result.exit_code = e.exit_code
            logger.debug("Run aborted", exc_info=True)
            return

        result.validation = run_validation(checks, ctx)
        result.follow_ups = manual_follow_ups(ctx, result.report, STANDING_MANUAL_STEPS)
    finally:
        if keepalive is not None:
            keepalive.stop()
