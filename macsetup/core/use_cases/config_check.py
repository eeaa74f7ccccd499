"""
Config check use case — validate setup.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from macsetup.core.config.loader import ConfigError, find_config_file, load_config
from macsetup.core.config.toggles import parse_bool
from macsetup.core.engine.registry import PhaseRegistry
from macsetup.core.models.config import RunConfiguration


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: RunConfiguration | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "phase_toggles": len(self.config.phases) if self.config else 0,
            "unit_toggles": len(self.config.toggles) if self.config else 0,
        }


def check_config(
    config_path: Path | None = None,
    registry: PhaseRegistry | None = None,
) -> ConfigCheckResult:
    """Validate the run configuration against the phase catalog.

    Args:
        config_path: Optional explicit path to setup.yml.
        registry: Catalog whose phase ids and toggle keys are valid
            (defaults to the shipped one).

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        result.warnings.append("No setup.yml found — every phase and package runs with defaults.")
        result.config = RunConfiguration()
        result.valid = True
        return result

    result.config_path = config_path

    try:
        config = load_config(config_path)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    if registry is None:
        from macsetup.core.catalog import build_default_registry

        registry = build_default_registry()

    # Phase toggles
    for key, value in config.phases.items():
        if not key.isdigit() or int(key) not in registry:
            result.warnings.append(f"Unknown phase '{key}' in phases — ignored")
        elif registry.required.id == int(key):
            result.warnings.append(f"Phase {key} is required and cannot be disabled")
        elif parse_bool(value) is None:
            result.errors.append(f"Phase {key} has a non-boolean value: {value!r}")

    # Unit toggles
    known = set(registry.toggle_keys())
    for key, value in config.toggles.items():
        if key not in known:
            result.warnings.append(f"Unknown toggle '{key}' — ignored")
        elif parse_bool(value) is None:
            result.errors.append(f"Toggle '{key}' has a non-boolean value: {value!r}")

    # Identity and secrets
    if config.gpg_signing and not config.git.complete:
        result.warnings.append("gpg_signing is on but git.user_name / git.user_email are not both set.")
    for step in config.manual_steps():
        result.warnings.append(f"Left for manual follow-up: {step}")

    result.valid = len(result.errors) == 0
    return result
