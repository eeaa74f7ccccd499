"""
Mock runner — universal test double for the command runner.

Records every command it receives and answers from a configurable
table instead of touching the machine. Responses are matched on the
command prefix, so ``set_failure("brew", "install")`` fails every
``brew install ...`` call.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from macsetup.adapters.base import CommandResult, ProcessHandle, Runner

Responder = Callable[[list[str]], CommandResult]


@dataclass
class MockCall:
    """One recorded invocation."""

    command: list[str]
    env: dict[str, str] = field(default_factory=dict)
    input: str | None = None


class MockProcess(ProcessHandle):
    def __init__(self, command: list[str]) -> None:
        self.command = command
        self.terminated = False

    def terminate(self) -> None:
        self.terminated = True


class MockRunner(Runner):
    """Command runner that records calls and returns canned results.

    By default every command succeeds with empty output.
    """

    def __init__(self, default_output: str = "") -> None:
        self._default_output = default_output
        self._responses: list[tuple[tuple[str, ...], Responder]] = []
        self._call_log: list[MockCall] = []
        self.spawned: list[MockProcess] = []

    @property
    def call_log(self) -> list[MockCall]:
        """All calls this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def commands(self) -> list[list[str]]:
        return [c.command for c in self._call_log]

    def calls_to(self, *prefix: str) -> list[MockCall]:
        """Recorded calls whose command starts with ``prefix``."""
        return [c for c in self._call_log if tuple(c.command[: len(prefix)]) == prefix]

    def set_responder(self, prefix: tuple[str, ...], responder: Responder) -> None:
        """Answer commands starting with ``prefix`` using ``responder``."""
        self._responses.insert(0, (prefix, responder))

    def set_failure(self, *prefix: str, exit_code: int = 1, stderr: str = "Mock failure") -> None:
        """Configure every command starting with ``prefix`` to fail."""
        self.set_responder(
            prefix,
            lambda cmd: CommandResult.failure(cmd, exit_code=exit_code, stderr=stderr),
        )

    def set_output(self, *prefix: str, stdout: str) -> None:
        """Configure every command starting with ``prefix`` to print ``stdout``."""
        self.set_responder(prefix, lambda cmd: CommandResult.success(cmd, stdout=stdout))

    def set_sequence(self, prefix: tuple[str, ...], exit_codes: list[int]) -> None:
        """Return the given exit codes in order; the last one repeats."""
        remaining = list(exit_codes)

        def _next(cmd: list[str]) -> CommandResult:
            code = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            if code == 0:
                return CommandResult.success(cmd)
            return CommandResult.failure(cmd, exit_code=code)

        self.set_responder(prefix, _next)

    def execute(
        self,
        command: str,
        *args: str,
        env: Mapping[str, str] | None = None,
        input: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        cmd = [command, *args]
        self._call_log.append(MockCall(command=cmd, env=dict(env or {}), input=input))

        for prefix, responder in self._responses:
            if tuple(cmd[: len(prefix)]) == prefix:
                return responder(cmd)

        return CommandResult.success(cmd, stdout=self._default_output)

    def spawn(
        self,
        command: str,
        *args: str,
        env: Mapping[str, str] | None = None,
    ) -> MockProcess:
        proc = MockProcess([command, *args])
        self.spawned.append(proc)
        return proc

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
        self.spawned.clear()
