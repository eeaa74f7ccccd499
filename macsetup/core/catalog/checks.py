"""
Default end-state checks for the validator.

Ordered the way the final report reads: foundation, shell, languages,
environment, React Native, cloud, AI, CLI utilities, applications.
"""

from __future__ import annotations

from macsetup.core.catalog.apps import APP_CASKS, APP_STORE_APPS, DMG_APPS
from macsetup.core.catalog.foundation import CLI_UTILITIES, SSH_CONFIG, SSH_KEY
from macsetup.core.catalog.shell import STARSHIP_CONFIG
from macsetup.core.engine.validator import (
    ValidationCheck,
    app,
    command_output,
    directory,
    env_var,
    file,
    tool,
)

# Bundles installed by earlier phases, in the order they are reported
PHASE_APPS = (
    "Google Chrome",
    "Firefox",
    "Visual Studio Code",
    "Cursor",
    "Zed",
    "Android Studio",
    "iTerm",
    "Ghostty",
    "Docker",
    "LM Studio",
    "Reactotron",
)


def default_checks() -> list[ValidationCheck]:
    checks = [
        # Foundation
        tool("brew", "--version"),
        tool("git", "--version"),
        tool("gpg"),
        tool("mas"),
        file(SSH_KEY, "SSH key"),
        file(SSH_CONFIG, "SSH config"),
        # Shell
        directory("~/.oh-my-zsh", "Oh My Zsh"),
        tool("starship"),
        file(STARSHIP_CONFIG, "Starship config"),
        # Languages
        tool("mise", "--version"),
        tool("node", "--version"),
        tool("python", "--version"),
        tool("java", "-version"),
        # Environment
        env_var("JAVA_HOME"),
        env_var("ANDROID_HOME"),
        # React Native
        tool("watchman"),
        tool("pod", label="cocoapods"),
        tool("adb"),
        command_output("AVD found", ("emulator", "-list-avds"), missing="no AVDs found"),
        command_output(
            "iOS simulator",
            ("xcrun", "simctl", "list", "devices"),
            missing="iOS simulator issue",
        ),
        # Cloud CLIs
        tool("aws", label="aws cli"),
        tool("wrangler"),
        # AI & LLM
        tool("ollama"),
        tool("gemini", label="Gemini CLI"),
        command_output(
            "Open WebUI (running)",
            ("docker", "ps", "--filter", "name=open-webui", "--format", "{{.Names}}"),
            contains="open-webui",
            missing="Open WebUI container not running",
        ),
    ]
    checks += [tool(name) for name in CLI_UTILITIES]
    checks += [app(name) for name in PHASE_APPS]
    checks += [app(name) for name in APP_CASKS.values()]
    checks += [app(name) for name in APP_STORE_APPS.values()]
    checks += [app(name) for name in DMG_APPS]
    return checks
