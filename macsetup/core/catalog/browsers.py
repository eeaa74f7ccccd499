"""Phase 8 — Browsers."""

from __future__ import annotations

from macsetup.core.catalog.units import cask, each
from macsetup.core.engine.executor import build_phase
from macsetup.core.models.phase import Phase


def phase() -> Phase:
    return build_phase(
        8,
        "Browsers",
        *each(
            cask("google-chrome", app="Google Chrome"),
            cask("firefox", app="Firefox"),
        ),
    )
