"""
Validation outcome — the pass/warn/fail tally printed at the end of a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

CheckStatus = Literal["pass", "warn", "fail"]


@dataclass
class CheckResult:
    """One line of the validation report."""

    name: str
    status: CheckStatus
    message: str


@dataclass
class RunOutcome:
    """Accumulated validation result.

    Warnings count toward ``fail_count`` but stay distinguishable
    through ``warn_count`` and each result's status.
    """

    results: list[CheckResult] = field(default_factory=list)

    def add(self, result: CheckResult) -> None:
        self.results.append(result)

    @property
    def pass_count(self) -> int:
        return sum(1 for r in self.results if r.status == "pass")

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if r.status != "pass")

    @property
    def warn_count(self) -> int:
        return sum(1 for r in self.results if r.status == "warn")

    @property
    def summary(self) -> str:
        return f"Results: {self.pass_count} passed, {self.fail_count} failed"

    def to_dict(self) -> dict:
        return {
            "passed": self.pass_count,
            "failed": self.fail_count,
            "warnings": self.warn_count,
            "checks": [
                {"name": r.name, "status": r.status, "message": r.message}
                for r in self.results
            ],
        }
