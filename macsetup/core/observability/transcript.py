"""
Transcript — the run's user-facing output, teed to the terminal and a log file.

Every phase banner, failure marker and validation line goes through
one Transcript so that ~/mac-setup.log holds the same story the user
saw. The file is opened in append mode; repeated runs accumulate.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import click

DEFAULT_LOG_NAME = "mac-setup.log"
LOG_FILE_ENV_VAR = "MACSETUP_LOG_FILE"

Echo = Callable[..., None]


def default_log_path(home: Path | None = None) -> Path:
    override = os.environ.get(LOG_FILE_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return (home or Path.home()) / DEFAULT_LOG_NAME


class Transcript:
    """Append-only log sink shared by every component of a run.

    Args:
        path: Log file to append to. None disables the file copy.
        echo: Terminal writer with ``click.secho``'s signature.
    """

    def __init__(self, path: Path | None = None, echo: Echo = click.secho) -> None:
        self.path = path
        self._echo = echo
        self._handler: logging.FileHandler | None = None

        # Written through the handler directly; no logger per instance
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._handler = logging.FileHandler(path, mode="a", encoding="utf-8")
            self._handler.setFormatter(logging.Formatter("%(message)s"))

    def line(self, message: str = "", fg: str | None = None, bold: bool = False, err: bool = False) -> None:
        self._echo(message, fg=fg, bold=bold, err=err)
        if self._handler is not None:
            record = logging.makeLogRecord({"name": __name__, "levelno": logging.INFO, "msg": message})
            self._handler.handle(record)

    # ── Marked lines ────────────────────────────────────────────

    def start(self, message: str) -> None:
        self.line(f"▶ Starting: {message}", fg="cyan", bold=True)

    def success(self, message: str) -> None:
        self.line(f"✅ {message}", fg="green")

    def failure(self, message: str) -> None:
        self.line(f"❌ {message}", fg="red", err=True)

    def warning(self, message: str) -> None:
        self.line(f"⚠️  {message}", fg="yellow", err=True)

    def skip(self, message: str) -> None:
        self.line(f"⊘ {message}", fg="yellow")

    def info(self, message: str) -> None:
        self.line(f"ℹ️  {message}")

    def banner(self, title: str) -> None:
        self.line("")
        self.line(f"━━━ {title} ━━━", fg="cyan", bold=True)

    def stamp(self, message: str) -> None:
        self.line(f"=== {message} at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} ===")

    def close(self) -> None:
        if self._handler is not None:
            self._handler.close()
            self._handler = None

    def __enter__(self) -> Transcript:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
