"""Adapters — bindings to the machine: command execution and filesystem.

Public re-exports for convenient access.
"""

from macsetup.adapters.base import CommandResult, ProcessHandle, Runner
from macsetup.adapters.mock import MockRunner
from macsetup.adapters.shell.command import SubprocessRunner
from macsetup.adapters.shell.filesystem import Filesystem

__all__ = [
    "CommandResult",
    "Filesystem",
    "MockRunner",
    "ProcessHandle",
    "Runner",
    "SubprocessRunner",
]
