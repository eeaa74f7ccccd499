"""
Subprocess runner — the SINGLE PLACE where external commands are executed.

Every package install, ``defaults write`` and editor CLI call in the
phase catalog ends up here. Logging, timing and error capture are
centralised so the rest of the code only sees CommandResults.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Mapping

from macsetup.adapters.base import (
    EXIT_NOT_FOUND,
    EXIT_TIMEOUT,
    CommandResult,
    ProcessHandle,
    Runner,
)

logger = logging.getLogger(__name__)

# Keep captured output bounded; Homebrew can be extremely chatty
_OUTPUT_TAIL = 4000


def _merged_env(env: Mapping[str, str] | None) -> dict[str, str]:
    merged = os.environ.copy()
    if env:
        for key, value in env.items():
            merged[key] = os.path.expandvars(value)
    return merged


class _PopenHandle(ProcessHandle):
    def __init__(self, proc: subprocess.Popen) -> None:
        self._proc = proc

    def terminate(self) -> None:
        if self._proc.poll() is not None:
            return
        self._proc.terminate()
        try:
            self._proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self._proc.kill()


class SubprocessRunner(Runner):
    """Execute commands with ``subprocess.run`` and capture their output."""

    def execute(
        self,
        command: str,
        *args: str,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        cmd = [command, *args]
        logger.debug("Executing: %s", cmd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                input=input,
                timeout=timeout,
                env=_merged_env(env),
            )
        except FileNotFoundError:
            return CommandResult.failure(
                cmd,
                exit_code=EXIT_NOT_FOUND,
                stderr=f"{command}: command not found",
            )
        except subprocess.TimeoutExpired:
            return CommandResult.failure(
                cmd,
                exit_code=EXIT_TIMEOUT,
                stderr=f"Command timed out after {timeout}s",
            )
        except OSError as e:
            logger.exception("Subprocess error: %s", cmd)
            return CommandResult.failure(cmd, stderr=str(e))

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return CommandResult(
            command=cmd,
            exit_code=result.returncode,
            stdout=result.stdout[-_OUTPUT_TAIL:] if result.stdout else "",
            stderr=result.stderr[-_OUTPUT_TAIL:] if result.stderr else "",
            duration_ms=elapsed_ms,
        )

    def spawn(
        self,
        command: str,
        *args: str,
        env: Mapping[str, str] | None = None,
    ) -> ProcessHandle:
        cmd = [command, *args]
        logger.debug("Spawning: %s", cmd)
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            env=_merged_env(env),
        )
        return _PopenHandle(proc)
