"""
Phase model — installable units, steps and phases.

    InstallableUnit   smallest idempotent action (install one package,
                      write one file, run one setup command)
    Step              a named group of units run in order; its failure is
                      isolated unless the step is critical. Units of a
                      chained step stop at the first failure, others
                      all run
    Phase             ordered bundle of steps with an entry action

These carry callables, so they are frozen dataclasses rather than
pydantic models. They are built once when the registry is constructed
and never persisted.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from macsetup.core.context import RunContext

Check = Callable[["RunContext"], bool]
Action = Callable[["RunContext"], None]


@dataclass(frozen=True)
class InstallableUnit:
    """One discrete provisioning action.

    ``check`` is the idempotency predicate: when it reports True the
    action is skipped. Units without a check are unconditional and run
    every time (e.g. regenerating ~/.zshrc).
    """

    id: str
    command: tuple[str, ...] = ()
    action: Action | None = None
    check: Check | None = None
    retryable: bool = False
    toggle: str | None = None
    label: str = ""

    def __post_init__(self) -> None:
        if not self.command and self.action is None:
            raise ValueError(f"Unit '{self.id}' needs a command or an action")

    @property
    def toggle_key(self) -> str:
        return self.toggle or self.id

    @property
    def unconditional(self) -> bool:
        return self.check is None

    @property
    def display_name(self) -> str:
        return self.label or self.id


@dataclass(frozen=True)
class Step:
    """A named sub-action of a phase.

    ``chained`` marks units that depend on the one before them (install
    Homebrew, then its shellenv); an unchained step runs every unit.
    """

    name: str
    units: tuple[InstallableUnit, ...] = ()
    action: Action | None = None
    critical: bool = False
    chained: bool = False


@dataclass(frozen=True)
class Phase:
    """A named, ordered bundle of provisioning actions."""

    id: int
    label: str
    entry: Action
    required: bool = False
    needs_sudo: bool = False
    steps: tuple[Step, ...] = ()

    @property
    def title(self) -> str:
        return f"Phase {self.id}: {self.label}"

    def units(self) -> list[InstallableUnit]:
        return [unit for step in self.steps for unit in step.units]


# ── Execution log ───────────────────────────────────────────────


@dataclass
class UnitOutcome:
    unit_id: str
    status: str  # ok, skipped, failed
    reason: str = ""


@dataclass
class StepOutcome:
    name: str
    status: str = "ok"  # ok, failed
    error: str = ""
    units: list[UnitOutcome] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status == "failed"


@dataclass
class PhaseOutcome:
    """Per-phase record produced by the executor."""

    phase_id: int
    label: str
    status: str = "pending"  # pending, ok, failed, skipped
    error: str = ""
    steps: list[StepOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def failed_steps(self) -> list[StepOutcome]:
        return [s for s in self.steps if s.failed]

    def to_dict(self) -> dict:
        return {
            "phase": self.phase_id,
            "label": self.label,
            "status": self.status,
            "error": self.error,
            "failed_steps": [s.name for s in self.failed_steps],
        }
