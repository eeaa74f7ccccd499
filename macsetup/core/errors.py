"""
Error taxonomy for a provisioning run.

    Fatal      RequiredPhaseError — aborts the run, non-zero exit
    Isolated   UnitFailed (or any exception inside an optional phase or
               non-critical step) — recorded, run continues
    Transient  retried inside the command runner, then demoted to UnitFailed
    Advisory   validator warnings — not exceptions at all

ConfigError lives with the config loader; RegistryError is raised while
building the phase registry.
"""

from __future__ import annotations

from typing import Any

from macsetup.adapters.base import CommandResult


class RegistryError(Exception):
    """Raised when a phase registry violates its ordering invariants."""


class UnitFailed(Exception):
    """An installable unit's action did not reach its target state."""

    def __init__(self, unit_id: str, result: CommandResult | None = None, message: str = ""):
        self.unit_id = unit_id
        self.result = result
        if not message and result is not None:
            detail = result.first_line if result.stderr or result.stdout else ""
            message = f"`{result.display}` exited with {result.exit_code}"
            if detail:
                message += f": {detail}"
        super().__init__(f"{unit_id}: {message or 'failed'}")

    @property
    def exit_code(self) -> int:
        if self.result is not None and self.result.exit_code:
            return self.result.exit_code
        return 1


class RequiredPhaseError(Exception):
    """The required phase failed; nothing after it may run."""

    def __init__(self, phase_label: str, cause: BaseException, report: Any = None):
        self.phase_label = phase_label
        self.cause = cause
        self.report = report
        super().__init__(f"{phase_label} failed: {cause}")

    @property
    def exit_code(self) -> int:
        """The underlying failure's exit status, or 1 when unknown."""
        code = getattr(self.cause, "exit_code", None)
        if isinstance(code, int) and code > 0:
            return code
        return 1
