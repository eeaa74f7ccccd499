"""Phase 7 — Cloud CLI tools."""

from __future__ import annotations

from macsetup.core.catalog.units import brew, each, npm
from macsetup.core.engine.executor import build_phase
from macsetup.core.models.phase import Phase


def phase() -> Phase:
    return build_phase(
        7,
        "Cloud CLI Tools",
        *each(
            brew("awscli", binary="aws"),
            npm("wrangler"),
        ),
    )
