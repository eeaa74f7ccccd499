"""
Configuration loader — reads setup.yml into a RunConfiguration.

The file is optional. When nothing is found every field keeps its
default and the run installs everything, leaving identity and secrets
as manual post-setup steps.

Lookup order:
    --config PATH  >  $MACSETUP_CONFIG  >  ./setup.yml  >  ~/.config/macsetup/setup.yml

This is the only place that handles untyped YAML data.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from macsetup.core.models.config import RunConfiguration

logger = logging.getLogger(__name__)

CONFIG_FILE = "setup.yml"
CONFIG_ENV_VAR = "MACSETUP_CONFIG"


class ConfigError(Exception):
    """Raised when the configuration file exists but cannot be used."""


def default_config_locations(home: Path | None = None) -> list[Path]:
    """Candidate config paths, in precedence order (excluding --config)."""
    candidates: list[Path] = []
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser())
    candidates.append(Path.cwd() / CONFIG_FILE)
    candidates.append((home or Path.home()) / ".config" / "macsetup" / CONFIG_FILE)
    return candidates


def find_config_file(home: Path | None = None) -> Path | None:
    """Return the first existing config file, or None."""
    for candidate in default_config_locations(home):
        if candidate.is_file():
            return candidate
    return None


def _stringify_keys(mapping: Any, section: str, path: Path) -> dict[str, Any]:
    if mapping is None:
        return {}
    if not isinstance(mapping, dict):
        raise ConfigError(
            f"Expected a mapping for '{section}' in {path}, got {type(mapping).__name__}"
        )
    return {str(k): v for k, v in mapping.items()}


def load_config(path: Path | None = None) -> RunConfiguration:
    """Load and validate the run configuration.

    Args:
        path: Explicit config path. If None, the default locations are
            searched and a missing file means "all defaults".

    Returns:
        Validated RunConfiguration.

    Raises:
        ConfigError: If an explicit file is missing, or any file is
            unreadable or invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.info("No %s found — using defaults", CONFIG_FILE)
            return RunConfiguration()
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return RunConfiguration()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Phase ids are written as bare integers in YAML; toggle keys are
    # always compared as strings.
    data["phases"] = _stringify_keys(data.get("phases"), "phases", path)
    data["toggles"] = _stringify_keys(data.get("toggles"), "toggles", path)

    try:
        config = RunConfiguration.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info(
        "Loaded config from %s (%d phase toggles, %d unit toggles)",
        path,
        len(config.phases),
        len(config.toggles),
    )
    return config
