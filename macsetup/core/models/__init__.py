"""
Domain models for a provisioning run.

All models are re-exported here for convenient access:

    from macsetup.core.models import Phase, Step, InstallableUnit, RunConfiguration
"""

from macsetup.core.models.config import GitIdentity, RunConfiguration
from macsetup.core.models.outcome import CheckResult, RunOutcome
from macsetup.core.models.phase import (
    InstallableUnit,
    Phase,
    PhaseOutcome,
    Step,
    StepOutcome,
    UnitOutcome,
)

__all__ = [
    # outcome.py
    "CheckResult",
    # config.py
    "GitIdentity",
    # phase.py
    "InstallableUnit",
    "Phase",
    "PhaseOutcome",
    "RunConfiguration",
    "RunOutcome",
    "Step",
    "StepOutcome",
    "UnitOutcome",
]
