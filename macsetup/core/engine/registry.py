"""
Phase registry — the fixed, ordered catalog of phases.

Built once at startup and read-only afterwards. Construction enforces
the ordering invariants:

    - at least one phase
    - ids unique and strictly increasing
    - exactly one required phase, and it is the first entry
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from macsetup.core.errors import RegistryError
from macsetup.core.models.phase import Phase

logger = logging.getLogger(__name__)


class PhaseRegistry:
    """Immutable ordered collection of phases."""

    def __init__(self, phases: Iterable[Phase]):
        self._phases: tuple[Phase, ...] = tuple(phases)
        self._validate()
        self._by_id = {p.id: p for p in self._phases}
        logger.debug("Phase registry built with %d phases", len(self._phases))

    def _validate(self) -> None:
        if not self._phases:
            raise RegistryError("A phase registry needs at least one phase")

        ids = [p.id for p in self._phases]
        for prev, cur in zip(ids, ids[1:]):
            if cur <= prev:
                raise RegistryError(
                    f"Phase ids must be unique and strictly increasing: {prev} then {cur}"
                )

        required = [p for p in self._phases if p.required]
        if len(required) != 1:
            raise RegistryError(
                f"Exactly one phase must be required, found {len(required)}"
            )
        if not self._phases[0].required:
            raise RegistryError(
                f"The required phase ({required[0].title}) must be first"
            )

    # ── Access ──────────────────────────────────────────────────

    def __iter__(self) -> Iterator[Phase]:
        return iter(self._phases)

    def __len__(self) -> int:
        return len(self._phases)

    def __contains__(self, phase_id: object) -> bool:
        return phase_id in self._by_id

    @property
    def phases(self) -> tuple[Phase, ...]:
        return self._phases

    @property
    def ids(self) -> list[int]:
        return [p.id for p in self._phases]

    @property
    def required(self) -> Phase:
        return self._phases[0]

    @property
    def optional(self) -> list[Phase]:
        return list(self._phases[1:])

    def get(self, phase_id: int) -> Phase | None:
        return self._by_id.get(phase_id)

    def toggle_keys(self) -> list[str]:
        """Every unit toggle key declared by any phase, in registry order."""
        seen: dict[str, None] = {}
        for phase in self._phases:
            for unit in phase.units():
                seen.setdefault(unit.toggle_key, None)
        return list(seen)
