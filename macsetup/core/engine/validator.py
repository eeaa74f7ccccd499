"""
Validator / reporter — probe the end state and print the final tally.

Checks never look at what the executor did. Each one re-derives its
answer from the live system (PATH lookup, file or app bundle, env
var, probing command), so the report is equally valid after a full
run, a partial interactive run or a standalone ``macsetup validate``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from macsetup.core.context import RunContext
from macsetup.core.engine.executor import ExecutionReport
from macsetup.core.models.outcome import CheckResult, CheckStatus, RunOutcome

logger = logging.getLogger(__name__)

Probe = Callable[[RunContext], "str | None"]


@dataclass(frozen=True)
class ValidationCheck:
    """One expected piece of end state.

    ``probe`` returns a pass message, or None when the state is absent.
    ``severity`` decides whether absence is a hard failure or a warning
    (state that is legitimately absent sometimes, like a stopped
    container).
    """

    name: str
    probe: Probe
    missing: str
    severity: CheckStatus = "fail"

    def evaluate(self, ctx: RunContext) -> CheckResult:
        try:
            message = self.probe(ctx)
        except Exception as e:
            logger.debug("Check '%s' raised: %s", self.name, e)
            message = None
        if message is not None:
            return CheckResult(self.name, "pass", message)
        return CheckResult(self.name, self.severity, self.missing)


# ── Check factories ─────────────────────────────────────────────


def tool(name: str, *version_args: str, label: str | None = None) -> ValidationCheck:
    """Executable on PATH, optionally reporting its version line."""
    shown = label or name

    def _probe(ctx: RunContext) -> str | None:
        if ctx.which(name) is None:
            return None
        if not version_args:
            return shown
        version = ctx.run(name, *version_args).first_line
        return f"{shown} {version}".strip()

    return ValidationCheck(name=shown, probe=_probe, missing=f"{shown} missing")


def file(path: str, label: str) -> ValidationCheck:
    def _probe(ctx: RunContext) -> str | None:
        return f"{label} exists" if ctx.fs.exists(path) else None

    return ValidationCheck(name=label, probe=_probe, missing=f"{label} missing")


def directory(path: str, label: str) -> ValidationCheck:
    def _probe(ctx: RunContext) -> str | None:
        return label if ctx.fs.is_dir(path) else None

    return ValidationCheck(name=label, probe=_probe, missing=f"{label} missing")


def app(name: str) -> ValidationCheck:
    def _probe(ctx: RunContext) -> str | None:
        return name if ctx.fs.app_installed(name) else None

    return ValidationCheck(name=name, probe=_probe, missing=f"{name} not found")


def env_var(key: str) -> ValidationCheck:
    def _probe(ctx: RunContext) -> str | None:
        value = ctx.getenv(key)
        return f"{key}={value}" if value else None

    return ValidationCheck(name=key, probe=_probe, missing=f"{key} not set")


def command_output(
    label: str,
    command: tuple[str, ...],
    contains: str | None = None,
    missing: str | None = None,
    severity: CheckStatus = "warn",
) -> ValidationCheck:
    """Passes when ``command`` succeeds with non-empty output
    (containing ``contains`` when given)."""

    def _probe(ctx: RunContext) -> str | None:
        result = ctx.run(*command)
        if not result.ok:
            return None
        output = result.stdout.strip()
        if not output:
            return None
        if contains is not None and contains not in output.splitlines():
            return None
        return label

    return ValidationCheck(
        name=label,
        probe=_probe,
        missing=missing or f"{label} issue",
        severity=severity,
    )


# ── Running and reporting ───────────────────────────────────────


def run_validation(checks: Iterable[ValidationCheck], ctx: RunContext) -> RunOutcome:
    """Evaluate every check, printing each line as it is decided."""
    outcome = RunOutcome()
    ctx.transcript.line("")
    ctx.transcript.line("=== Validation ===", bold=True)

    for check in checks:
        result = check.evaluate(ctx)
        outcome.add(result)
        if result.status == "pass":
            ctx.transcript.success(result.message)
        elif result.status == "warn":
            ctx.transcript.warning(result.message)
        else:
            ctx.transcript.failure(result.message)

    ctx.transcript.line("")
    color = "green" if outcome.fail_count == 0 else "yellow"
    ctx.transcript.line(f"=== {outcome.summary} ===", fg=color, bold=True)
    return outcome


def manual_follow_ups(
    ctx: RunContext,
    report: ExecutionReport | None,
    standing_steps: Iterable[str] = (),
) -> list[str]:
    """Post-setup steps: unset config values, failed phases, standing items."""
    steps = list(ctx.config.manual_steps())
    if report is not None:
        for outcome in report.failed_phases:
            steps.append(f"Re-run Phase {outcome.phase_id} ({outcome.label}): macsetup -i")
    steps.extend(standing_steps)
    return steps


def print_follow_ups(ctx: RunContext, steps: Iterable[str]) -> None:
    steps = list(steps)
    if not steps:
        return
    ctx.transcript.line("")
    ctx.transcript.line("📋 Post-setup manual steps:", bold=True)
    for step in steps:
        ctx.transcript.line(f"   • {step}")
