"""
Phase catalog — the software this tool installs, expressed as data.

The engine knows nothing about Homebrew or Xcode; everything specific
to a workstation lives here and can be swapped for another catalog.
"""

from __future__ import annotations

from macsetup.core.catalog import (
    ai,
    apps,
    browsers,
    cloud,
    devtools,
    foundation,
    mobile,
    preferences,
    shell,
)
from macsetup.core.catalog.checks import default_checks
from macsetup.core.engine.registry import PhaseRegistry

# Always listed in the post-setup report
STANDING_MANUAL_STEPS = (
    "Add SSH key to GitHub: cat ~/.ssh/id_ed25519.pub",
    "Launch Android Studio → complete setup wizard",
    "Configure Continue.dev + Cline → Ollama in VS Code",
    "Authenticate Gemini CLI: gemini",
    "Create Open WebUI account: http://localhost:3000",
    "Launch Moonlock → grant permissions → activate license",
    "Sign into apps (Chrome, Office, 1Password, Spotify, etc.)",
)

_PHASE_MODULES = (
    foundation,
    shell,
    preferences,
    devtools,
    ai,
    mobile,
    cloud,
    browsers,
    apps,
)


def build_default_registry() -> PhaseRegistry:
    """The shipped nine-phase workstation catalog."""
    return PhaseRegistry(module.phase() for module in _PHASE_MODULES)


__all__ = ["STANDING_MANUAL_STEPS", "build_default_registry", "default_checks"]
