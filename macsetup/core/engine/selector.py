"""
Phase selector — decide which phases run this session.

Batch mode selects everything (minus phases disabled in the config).
Interactive mode runs a small text menu:

    RENDERING ──▶ AWAITING_INPUT ──(command)──▶ RENDERING
                        │
                        └──(empty line / EOF)──▶ CONFIRMED

Rendering, parsing and mutation are separate functions so each can be
tested without a terminal. The required phase can never be deselected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from macsetup.core.config.toggles import resolve
from macsetup.core.engine.registry import PhaseRegistry

logger = logging.getLogger(__name__)

SELECT_ALL_TOKENS = frozenset({"a", "all"})
DESELECT_ALL_TOKENS = frozenset({"n", "none"})


class PhaseSelection:
    """Mapping of phase id → "will run this session"."""

    def __init__(self, registry: PhaseRegistry, selected: Mapping[int, bool] | None = None):
        self._required_id = registry.required.id
        self._order = registry.ids
        self._selected = {pid: True for pid in self._order}
        if selected:
            for pid, value in selected.items():
                if pid in self._selected:
                    self._selected[pid] = bool(value)
        self._selected[self._required_id] = True

    def is_selected(self, phase_id: int) -> bool:
        return self._selected.get(phase_id, False)

    def toggle(self, phase_id: int) -> None:
        if phase_id == self._required_id or phase_id not in self._selected:
            return
        self._selected[phase_id] = not self._selected[phase_id]

    def select_all(self) -> None:
        for pid in self._selected:
            self._selected[pid] = True

    def deselect_all(self) -> None:
        for pid in self._selected:
            self._selected[pid] = pid == self._required_id

    @property
    def selected_ids(self) -> list[int]:
        return [pid for pid in self._order if self._selected[pid]]

    def __repr__(self) -> str:
        return f"<PhaseSelection {self.selected_ids}>"


def batch_selection(
    registry: PhaseRegistry,
    phase_toggles: Mapping[str, Any] | None = None,
) -> PhaseSelection:
    """Every phase selected, then configured phase toggles applied."""
    if not phase_toggles:
        return PhaseSelection(registry)

    defaults = {str(pid): True for pid in registry.ids}
    resolved = resolve(defaults, phase_toggles)
    return PhaseSelection(registry, {int(k): v for k, v in resolved.items()})


# ── Interactive menu ────────────────────────────────────────────


class MenuState(str, Enum):
    RENDERING = "rendering"
    AWAITING_INPUT = "awaiting_input"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class MenuCommand:
    kind: str  # confirm, select_all, deselect_all, toggle
    ids: tuple[int, ...] = field(default_factory=tuple)


def render_menu(registry: PhaseRegistry, selection: PhaseSelection) -> str:
    """Menu text for the current selection."""
    lines = ["", "Select phases to run:", ""]
    for phase in registry:
        mark = "x" if selection.is_selected(phase.id) else " "
        suffix = "  (required)" if phase.required else ""
        lines.append(f"  [{mark}] {phase.id:>2}. {phase.label}{suffix}")
    lines.append("")
    lines.append("Toggle: phase numbers (e.g. '4 6')  |  a = all  |  n = none  |  Enter = start")
    return "\n".join(lines)


def parse_command(line: str, registry: PhaseRegistry) -> MenuCommand:
    """Interpret one line of menu input.

    Unknown, non-numeric and required ids are dropped silently.
    """
    text = line.strip().lower()
    if not text:
        return MenuCommand("confirm")
    if text in SELECT_ALL_TOKENS:
        return MenuCommand("select_all")
    if text in DESELECT_ALL_TOKENS:
        return MenuCommand("deselect_all")

    optional_ids = {p.id for p in registry.optional}
    ids: list[int] = []
    for token in text.replace(",", " ").split():
        try:
            pid = int(token)
        except ValueError:
            continue
        if pid in optional_ids:
            ids.append(pid)
    return MenuCommand("toggle", tuple(ids))


def apply_command(selection: PhaseSelection, command: MenuCommand) -> None:
    """Mutate ``selection`` according to ``command``."""
    if command.kind == "select_all":
        selection.select_all()
    elif command.kind == "deselect_all":
        selection.deselect_all()
    elif command.kind == "toggle":
        for pid in command.ids:
            selection.toggle(pid)


def interactive_selection(
    registry: PhaseRegistry,
    read_line: Callable[[], str | None],
    write: Callable[[str], None],
    initial: PhaseSelection | None = None,
) -> PhaseSelection:
    """Run the menu loop until the user confirms.

    Args:
        registry: The phases to choose from.
        read_line: Returns one line of input, or None at end of input.
        write: Prints menu text.
        initial: Starting selection (defaults to everything selected).
    """
    selection = initial or PhaseSelection(registry)
    state = MenuState.RENDERING

    while state is not MenuState.CONFIRMED:
        if state is MenuState.RENDERING:
            write(render_menu(registry, selection))
            state = MenuState.AWAITING_INPUT
            continue

        line = read_line()
        command = parse_command(line or "", registry)
        if command.kind == "confirm":
            state = MenuState.CONFIRMED
        else:
            apply_command(selection, command)
            state = MenuState.RENDERING

    logger.info("Phases selected: %s", selection.selected_ids)
    return selection
