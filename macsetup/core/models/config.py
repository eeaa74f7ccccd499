"""
Run configuration — the user-editable input for a provisioning run.

Loaded from setup.yml by the config loader. Every field is optional:
an absent file yields ``RunConfiguration()`` and a full install with
the manual post-setup steps left for the user.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_OLLAMA_MODEL = "qwen2.5-coder:7b"


class GitIdentity(BaseModel):
    """Name and email written to the global git config."""

    model_config = ConfigDict(extra="forbid")

    user_name: str = ""
    user_email: str = ""

    @property
    def complete(self) -> bool:
        return bool(self.user_name and self.user_email)


class RunConfiguration(BaseModel):
    """Identity, secrets, feature flags and per-unit/per-phase toggles.

    Toggle maps stay loosely typed here: their keys are only known once
    the phase registry is built, and malformed values are resolved
    (with a warning) by the toggle resolver rather than rejected.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    git: GitIdentity = Field(default_factory=GitIdentity)
    github_token: str = ""
    gpg_signing: bool = False
    ollama_model: str = DEFAULT_OLLAMA_MODEL

    phases: dict[str, Any] = Field(default_factory=dict)
    toggles: dict[str, Any] = Field(default_factory=dict)

    def manual_steps(self) -> list[str]:
        """Follow-ups the user must do because a value was not configured."""
        steps: list[str] = []
        if not self.git.user_name or not self.git.user_email:
            steps.append("git config --global user.name / user.email")
        if not self.github_token:
            steps.append("gh auth login")
        if not self.gpg_signing:
            steps.append("Generate GPG key: gpg --full-generate-key")
        return steps
