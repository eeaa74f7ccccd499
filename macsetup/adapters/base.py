"""
Runner base — the protocol contract between the engine and external tools.

The engine never talks to Homebrew, ``defaults``, ``mas`` or Docker
directly. Every external side effect goes through a Runner, which
executes a command and reports its exit status.

Runners NEVER raise for process failures — a missing executable,
a timeout or a non-zero exit are all captured in the CommandResult.
"""

from __future__ import annotations

import shlex
from abc import ABC, abstractmethod
from collections.abc import Mapping

from pydantic import BaseModel

# Conventional shell exit codes used when the process never ran to completion
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


class CommandResult(BaseModel):
    """Outcome of a single external command."""

    command: list[str]
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.exit_code == 0

    @property
    def display(self) -> str:
        """The command as a copy-pasteable shell string."""
        return shlex.join(self.command)

    @property
    def first_line(self) -> str:
        """First non-empty line of stdout (falls back to stderr)."""
        for text in (self.stdout, self.stderr):
            for line in text.splitlines():
                if line.strip():
                    return line.strip()
        return ""

    @classmethod
    def success(cls, command: list[str], stdout: str = "") -> CommandResult:
        return cls(command=command, exit_code=0, stdout=stdout)

    @classmethod
    def failure(
        cls,
        command: list[str],
        exit_code: int = 1,
        stderr: str = "",
    ) -> CommandResult:
        return cls(command=command, exit_code=exit_code, stderr=stderr)


class ProcessHandle(ABC):
    """A background process started by ``Runner.spawn``."""

    @abstractmethod
    def terminate(self) -> None:
        """Stop the process. Must be safe to call more than once."""


class Runner(ABC):
    """Abstract base class for command runners.

    To create a new runner:
        1. Subclass Runner
        2. Implement execute and spawn
        3. Pass it to the RunContext
    """

    @abstractmethod
    def execute(
        self,
        command: str,
        *args: str,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command to completion and return its result.

        MUST never raise for process failures. All failures are
        captured in the CommandResult with a non-zero exit code.
        """

    @abstractmethod
    def spawn(
        self,
        command: str,
        *args: str,
        env: Mapping[str, str] | None = None,
    ) -> ProcessHandle:
        """Start a long-running command in the background."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
