"""
Idempotency guard — decide whether a unit's target state already holds.

Predicates are built per resource kind and evaluated against the live
machine through the run context. The guard only informs the skip
decision; it never invokes a unit's action.
"""

from __future__ import annotations

import logging

from macsetup.core.context import RunContext
from macsetup.core.models.phase import Check, InstallableUnit

logger = logging.getLogger(__name__)


def on_path(name: str) -> Check:
    """Satisfied when ``name`` is an executable on the PATH."""

    def _check(ctx: RunContext) -> bool:
        return ctx.which(name) is not None

    _check.__name__ = f"on_path({name})"
    return _check


def path_exists(path: str) -> Check:
    """Satisfied when a file or directory exists (``~`` is the run's home)."""

    def _check(ctx: RunContext) -> bool:
        return ctx.fs.exists(path)

    _check.__name__ = f"path_exists({path})"
    return _check


def config_has_key(path: str, key: str) -> Check:
    """Satisfied when a structured config file already contains ``key``."""

    def _check(ctx: RunContext) -> bool:
        return ctx.fs.config_has_key(path, key)

    _check.__name__ = f"config_has_key({path}, {key})"
    return _check


def app_installed(name: str) -> Check:
    """Satisfied when ``/Applications/<name>.app`` exists."""

    def _check(ctx: RunContext) -> bool:
        return ctx.fs.app_installed(name)

    _check.__name__ = f"app_installed({name})"
    return _check


def command_succeeds(command: str, *args: str) -> Check:
    """Satisfied when a probing command exits 0 (e.g. ``xcode-select -p``)."""

    def _check(ctx: RunContext) -> bool:
        return ctx.run(command, *args).ok

    _check.__name__ = f"command_succeeds({command})"
    return _check


def is_satisfied(unit: InstallableUnit, ctx: RunContext) -> bool:
    """Whether ``unit`` can be skipped.

    Unconditional units (no check) are never satisfied. A check that
    raises is treated as "not satisfied" so the action gets a chance to
    run and report a real error.
    """
    if unit.unconditional:
        return False
    try:
        satisfied = bool(unit.check(ctx))
    except Exception as e:
        logger.debug("Check for '%s' raised: %s", unit.id, e)
        return False
    logger.debug("Check %s for '%s' → %s", getattr(unit.check, "__name__", "?"), unit.id, satisfied)
    return satisfied
