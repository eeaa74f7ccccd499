"""
Toggle resolver — merge user overrides with built-in defaults.

For every known key the override wins when present and well-formed;
otherwise the default applies (True: install everything). Unknown
override keys are ignored and recorded, never fatal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})


def parse_bool(value: Any) -> bool | None:
    """Interpret a toggle value, or return None if it is malformed."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    return None


@dataclass(frozen=True)
class EffectiveToggles(Mapping[str, bool]):
    """Resolved enable/disable value for every known key.

    Lookups of keys that were never declared return True, so a unit
    added to the catalog without a default still installs.
    """

    values: dict[str, bool] = field(default_factory=dict)
    ignored: tuple[str, ...] = ()
    malformed: tuple[str, ...] = ()

    def __getitem__(self, key: str) -> bool:
        return self.values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def enabled(self, key: str) -> bool:
        return self.values.get(key, True)

    @property
    def disabled_keys(self) -> list[str]:
        return sorted(k for k, v in self.values.items() if not v)


def resolve(defaults: Mapping[str, bool], overrides: Mapping[str, Any]) -> EffectiveToggles:
    """Merge overrides onto defaults (override wins, else default)."""
    values: dict[str, bool] = dict(defaults)
    ignored: list[str] = []
    malformed: list[str] = []

    for key, raw in overrides.items():
        if key not in defaults:
            logger.warning("Ignoring unknown toggle '%s'", key)
            ignored.append(key)
            continue

        parsed = parse_bool(raw)
        if parsed is None:
            logger.warning(
                "Toggle '%s' has malformed value %r — keeping default %s",
                key,
                raw,
                defaults[key],
            )
            malformed.append(key)
            continue

        values[key] = parsed

    return EffectiveToggles(values=values, ignored=tuple(ignored), malformed=tuple(malformed))


def default_toggles(keys: Iterable[str]) -> dict[str, bool]:
    """Every key enabled."""
    return {key: True for key in keys}
