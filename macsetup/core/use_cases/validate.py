"""
Validate use case — probe the machine without installing anything.

Runs the same checks as the end of a full run, so a user can confirm
the state of a workstation provisioned earlier (or by hand).
"""

from __future__ import annotations

from collections.abc import Iterable

from macsetup.adapters.base import Runner
from macsetup.adapters.shell.filesystem import Filesystem
from macsetup.core.context import RunContext
from macsetup.core.engine.validator import ValidationCheck, run_validation
from macsetup.core.models.outcome import RunOutcome
from macsetup.core.observability.transcript import Transcript


def validate_machine(
    runner: Runner | None = None,
    checks: Iterable[ValidationCheck] | None = None,
    transcript: Transcript | None = None,
    fs: Filesystem | None = None,
) -> RunOutcome:
    """Evaluate every check against the live system and print the tally."""
    if runner is None:
        from macsetup.adapters.shell.command import SubprocessRunner

        runner = SubprocessRunner()
    if checks is None:
        from macsetup.core.catalog import default_checks

        checks = default_checks()

    ctx = RunContext(
        runner=runner,
        transcript=transcript or Transcript(),
        fs=fs or Filesystem(),
    )
    # Homebrew's bin dir is often missing from a non-login shell's PATH
    ctx.append_path(f"{ctx.brew_prefix}/bin")
    return run_validation(checks, ctx)
