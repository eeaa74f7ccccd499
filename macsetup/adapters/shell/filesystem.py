"""
Filesystem adapter — read-only probes and small config-file edits.

Probes answer "does this already exist?" for the idempotency guard and
the validator: executables on PATH, files, directories, application
bundles and keys inside structured config files.

Writers only ever merge: a key is inserted into a JSON settings file, or
a line appended to a text config, without clobbering unrelated content.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

APPLICATIONS_DIR = Path("/Applications")


class Filesystem:
    """Probe and edit the local machine relative to a home directory.

    Paths starting with ``~`` are expanded against ``home`` rather than
    the real ``$HOME`` so tests can point the whole adapter at a
    temporary directory.
    """

    def __init__(
        self,
        home: Path | None = None,
        applications_dir: Path = APPLICATIONS_DIR,
    ) -> None:
        self.home = home or Path.home()
        self.applications_dir = applications_dir

    # ── Paths ───────────────────────────────────────────────────

    def resolve(self, path: str | Path) -> Path:
        raw = str(path)
        if raw == "~":
            return self.home
        if raw.startswith("~/"):
            return self.home / raw[2:]
        return Path(raw)

    def exists(self, path: str | Path) -> bool:
        return self.resolve(path).exists()

    def is_dir(self, path: str | Path) -> bool:
        return self.resolve(path).is_dir()

    def app_installed(self, name: str) -> bool:
        """Whether ``/Applications/<name>.app`` exists."""
        return (self.applications_dir / f"{name}.app").is_dir()

    def which(self, name: str, env: Mapping[str, str] | None = None) -> str | None:
        """Locate an executable, honouring a PATH from ``env`` when given."""
        search_path = None
        if env and "PATH" in env:
            search_path = os.path.expandvars(env["PATH"])
        return shutil.which(name, path=search_path)

    # ── Structured config probes ────────────────────────────────

    def config_has_key(self, path: str | Path, key: str) -> bool:
        """Whether a config file already contains ``key``.

        JSON files are checked for a top-level key; any other file is
        scanned for a non-comment line starting with ``key``.
        """
        target = self.resolve(path)
        if not target.is_file():
            return False

        try:
            content = target.read_text(encoding="utf-8")
        except OSError as e:
            logger.debug("Cannot read %s: %s", target, e)
            return False

        if target.suffix == ".json":
            try:
                data = json.loads(content or "{}")
            except json.JSONDecodeError:
                return False
            return isinstance(data, dict) and key in data

        for line in content.splitlines():
            stripped = line.strip()
            if stripped.startswith("#"):
                continue
            if stripped.startswith(key):
                return True
        return False

    # ── Writers ─────────────────────────────────────────────────

    def ensure_dir(self, path: str | Path, mode: int | None = None) -> Path:
        target = self.resolve(path)
        target.mkdir(parents=True, exist_ok=True)
        if mode is not None:
            target.chmod(mode)
        return target

    def write_file(self, path: str | Path, content: str, mode: int | None = None) -> Path:
        """Overwrite a file (used for always-regenerated artifacts)."""
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        if mode is not None:
            target.chmod(mode)
        logger.debug("Written %d bytes to %s", len(content), target)
        return target

    def merge_json_key(self, path: str | Path, key: str, value: Any) -> Path:
        """Insert or update one top-level key, preserving every other key."""
        target = self.resolve(path)
        data: dict[str, Any] = {}
        if target.is_file():
            raw = target.read_text(encoding="utf-8").strip()
            if raw:
                loaded = json.loads(raw)
                if not isinstance(loaded, dict):
                    raise ValueError(f"Expected a JSON object in {target}")
                data = loaded

        data[key] = value
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        return target

    def ensure_line(self, path: str | Path, line: str, key: str | None = None) -> bool:
        """Append ``line`` unless a line starting with ``key`` is present.

        Returns True when the file was modified.
        """
        marker = key or line
        if self.config_has_key(path, marker):
            return False

        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        existing = target.read_text(encoding="utf-8") if target.is_file() else ""
        if existing and not existing.endswith("\n"):
            existing += "\n"
        target.write_text(existing + line + "\n", encoding="utf-8")
        return True
