"""
Run context — the single source of truth for one provisioning run.

Everything a phase needs travels on this object instead of living in
module globals: the transcript, the command runner, filesystem probes,
resolved toggles, the configuration, the network gate and the
environment accumulated across phases (e.g. Homebrew's PATH exported
in Phase 1 is visible to every later command).

Created once by the run use case and torn down in its ``finally``.
"""

from __future__ import annotations

import logging
import os
import platform
import time
from dataclasses import dataclass, field
from pathlib import Path

from macsetup.adapters.base import CommandResult, Runner
from macsetup.adapters.shell.filesystem import Filesystem
from macsetup.core.config.toggles import EffectiveToggles
from macsetup.core.errors import UnitFailed
from macsetup.core.models.config import RunConfiguration
from macsetup.core.models.phase import PhaseOutcome
from macsetup.core.observability.transcript import Transcript
from macsetup.core.reliability.retry import NetworkGate, Sleep, execute_with_retry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


def detect_brew_prefix() -> str:
    """Homebrew prefix: /opt/homebrew on Apple Silicon, /usr/local on Intel."""
    return "/opt/homebrew" if platform.machine() == "arm64" else "/usr/local"


@dataclass
class RunContext:
    """Process-scoped state shared by every component of a run."""

    runner: Runner
    transcript: Transcript
    fs: Filesystem = field(default_factory=Filesystem)
    config: RunConfiguration = field(default_factory=RunConfiguration)
    toggles: EffectiveToggles = field(default_factory=EffectiveToggles)
    gate: NetworkGate | None = None
    env: dict[str, str] = field(default_factory=dict)
    brew_prefix: str = field(default_factory=detect_brew_prefix)
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    sleep: Sleep = time.sleep
    current: PhaseOutcome | None = None

    @property
    def home(self) -> Path:
        return self.fs.home

    # ── Environment ─────────────────────────────────────────────

    def export(self, key: str, value: str) -> None:
        """Make ``key=value`` visible to every later command."""
        self.env[key] = value
        logger.debug("export %s=%s", key, value)

    def prepend_path(self, *dirs: str) -> None:
        current = self.env.get("PATH") or os.environ.get("PATH", "")
        parts = [d for d in dirs if d not in current.split(os.pathsep)]
        if parts:
            self.export("PATH", os.pathsep.join([*parts, current]) if current else os.pathsep.join(parts))

    def append_path(self, *dirs: str) -> None:
        current = self.env.get("PATH") or os.environ.get("PATH", "")
        parts = [d for d in dirs if d not in current.split(os.pathsep)]
        if parts:
            self.export("PATH", os.pathsep.join([current, *parts]) if current else os.pathsep.join(parts))

    def getenv(self, key: str) -> str | None:
        return self.env.get(key, os.environ.get(key))

    # ── Probes ──────────────────────────────────────────────────

    def which(self, name: str) -> str | None:
        """Locate an executable on the PATH as later commands will see it."""
        return self.fs.which(name, env=self.env)

    # ── Commands ────────────────────────────────────────────────

    def run(
        self,
        command: str,
        *args: str,
        retry: bool = False,
        input: str | None = None,
    ) -> CommandResult:
        """Run a command with the accumulated environment.

        With ``retry`` the command goes through the backoff loop and the
        network gate. Never raises.
        """
        if retry:
            outcome = execute_with_retry(
                self.runner,
                command,
                *args,
                max_attempts=self.max_attempts,
                gate=self.gate,
                env=self.env,
                input=input,
                sleep=self.sleep,
            )
            result = outcome.result
        else:
            result = self.runner.execute(command, *args, env=self.env, input=input)

        if not result.ok:
            logger.debug("`%s` exited %d: %s", result.display, result.exit_code, result.stderr[-500:])
        return result

    def run_checked(
        self,
        command: str,
        *args: str,
        retry: bool = False,
        input: str | None = None,
    ) -> CommandResult:
        """Like ``run`` but raise UnitFailed on a non-zero exit."""
        result = self.run(command, *args, retry=retry, input=input)
        if not result.ok:
            raise UnitFailed(command, result)
        return result
