"""
Phase executor — the central orchestration loop.

Runs the selected phases strictly in registry order:

    required phase   entry runs directly; an escaping error is fatal
    optional phase   entry runs under an isolating wrapper; the error is
                     recorded and the next phase runs
    unselected       never invoked, reported as skipped

Inside every phase, each step runs under its own isolating wrapper
(unless marked critical), so one broken package does not skip its
siblings. Inside a step every unit runs even when an earlier one
failed, unless the step is chained (each unit needs the one before it)
or critical; there the first failing unit ends the step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from macsetup.core.context import RunContext
from macsetup.core.engine.guard import is_satisfied
from macsetup.core.engine.registry import PhaseRegistry
from macsetup.core.engine.selector import PhaseSelection
from macsetup.core.errors import RequiredPhaseError, UnitFailed
from macsetup.core.models.phase import (
    Action,
    InstallableUnit,
    Phase,
    PhaseOutcome,
    Step,
    StepOutcome,
    UnitOutcome,
)

logger = logging.getLogger(__name__)


@dataclass
class ExecutionReport:
    """Per-phase outcome log of one run."""

    outcomes: list[PhaseOutcome] = field(default_factory=list)
    aborted: bool = False

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def failed_phases(self) -> list[PhaseOutcome]:
        return [o for o in self.outcomes if o.failed]

    def get(self, phase_id: int) -> PhaseOutcome | None:
        for outcome in self.outcomes:
            if outcome.phase_id == phase_id:
                return outcome
        return None

    def to_dict(self) -> dict:
        return {
            "aborted": self.aborted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "phases": [o.to_dict() for o in self.outcomes],
        }


# ── Units and steps ─────────────────────────────────────────────


def run_unit(ctx: RunContext, unit: InstallableUnit) -> UnitOutcome:
    """Run one unit unless it is disabled or already satisfied.

    Raises:
        UnitFailed: the unit's command exited non-zero.
    """
    if not ctx.toggles.enabled(unit.toggle_key):
        ctx.transcript.skip(f"{unit.display_name} disabled in config")
        return UnitOutcome(unit.id, "skipped", "disabled")

    if is_satisfied(unit, ctx):
        logger.info("%s already satisfied, skipping", unit.id)
        return UnitOutcome(unit.id, "skipped", "already satisfied")

    if unit.command:
        result = ctx.run(*unit.command, retry=unit.retryable)
        if not result.ok:
            raise UnitFailed(unit.id, result)

    if unit.action is not None:
        unit.action(ctx)

    return UnitOutcome(unit.id, "ok")


def _record(ctx: RunContext, outcome: StepOutcome) -> None:
    if ctx.current is not None:
        ctx.current.steps.append(outcome)


def _run_step_body(ctx: RunContext, step: Step, outcome: StepOutcome) -> None:
    stop_on_failure = step.chained or step.critical
    failures: list[tuple[str, Exception]] = []

    for unit in step.units:
        try:
            outcome.units.append(run_unit(ctx, unit))
        except Exception as e:
            outcome.units.append(UnitOutcome(unit.id, "failed", str(e)))
            if stop_on_failure:
                raise
            logger.debug("Unit '%s' failed in step '%s'", unit.id, step.name, exc_info=True)
            failures.append((unit.id, e))

    if len(failures) == 1:
        raise failures[0][1]
    if failures:
        ids = ", ".join(unit_id for unit_id, _ in failures)
        first = failures[0][1]
        raise UnitFailed(
            step.name,
            getattr(first, "result", None),
            message=f"{len(failures)} units failed ({ids}): {first}",
        )

    # The step action consumes what its units set up
    if step.action is not None:
        step.action(ctx)


def run_step(ctx: RunContext, step: Step) -> StepOutcome:
    """Run a step; failures propagate to the caller."""
    outcome = StepOutcome(step.name)
    _record(ctx, outcome)
    try:
        _run_step_body(ctx, step, outcome)
    except Exception as e:
        outcome.status = "failed"
        outcome.error = str(e)
        raise
    return outcome


def run_isolated(ctx: RunContext, step: Step) -> StepOutcome:
    """Run a step, recording instead of raising any failure."""
    outcome = StepOutcome(step.name)
    _record(ctx, outcome)
    try:
        _run_step_body(ctx, step, outcome)
    except Exception as e:
        outcome.status = "failed"
        outcome.error = str(e)
        logger.debug("Step '%s' failed", step.name, exc_info=True)
        ctx.transcript.warning(f"{step.name} had errors (continuing...): {e}")
    return outcome


def run_steps(*steps: Step) -> Action:
    """Entry action running ``steps`` in order with per-step isolation."""

    def entry(ctx: RunContext) -> None:
        for step in steps:
            if step.critical:
                run_step(ctx, step)
            else:
                run_isolated(ctx, step)

    return entry


def build_phase(
    phase_id: int,
    label: str,
    *steps: Step,
    required: bool = False,
    needs_sudo: bool = False,
) -> Phase:
    """Phase whose entry action runs ``steps`` via ``run_steps``."""
    return Phase(
        id=phase_id,
        label=label,
        entry=run_steps(*steps),
        required=required,
        needs_sudo=needs_sudo,
        steps=tuple(steps),
    )


# ── Phases ──────────────────────────────────────────────────────


def _finish(ctx: RunContext, phase: Phase, outcome: PhaseOutcome) -> None:
    if outcome.error or outcome.failed_steps:
        outcome.status = "failed"
        if outcome.error:
            ctx.transcript.failure(f"Failed: {phase.title} (continuing...): {outcome.error}")
        else:
            names = ", ".join(s.name for s in outcome.failed_steps)
            ctx.transcript.failure(f"Failed: {phase.title} (continuing...) — {names}")
    else:
        outcome.status = "ok"
        ctx.transcript.success(f"Completed: {phase.title}")


def execute_phases(
    registry: PhaseRegistry,
    selection: PhaseSelection,
    ctx: RunContext,
) -> ExecutionReport:
    """Run every selected phase in registry order.

    Raises:
        RequiredPhaseError: the required phase failed. The partially
            filled report is attached as ``error.report``.
    """
    report = ExecutionReport()

    for phase in registry:
        outcome = PhaseOutcome(phase_id=phase.id, label=phase.label)
        report.outcomes.append(outcome)

        if not selection.is_selected(phase.id):
            outcome.status = "skipped"
            ctx.transcript.skip(f"Skipped: {phase.title}")
            continue

        ctx.current = outcome
        ctx.transcript.line("")
        ctx.transcript.start(phase.title)

        try:
            phase.entry(ctx)
        except Exception as e:
            outcome.error = str(e) or e.__class__.__name__
            if phase.required:
                outcome.status = "failed"
                report.aborted = True
                ctx.transcript.failure(f"Failed: {phase.title} — aborting: {outcome.error}")
                raise RequiredPhaseError(phase.title, e, report=report) from e
            logger.debug("Phase %d raised", phase.id, exc_info=True)
        finally:
            ctx.current = None

        _finish(ctx, phase, outcome)

    return report
