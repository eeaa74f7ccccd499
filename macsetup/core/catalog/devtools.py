"""
Phase 4 — Development tools.

Editors, VS Code settings and extensions, terminals, Docker Desktop and
the mise-managed language runtimes. The mise step exports ``JAVA_HOME``
and the shims directory into the run environment so the validator and
later phases (npm installs) see the runtimes without a new shell.
"""

from __future__ import annotations

from macsetup.core.catalog.units import brew, cask, each, step, tolerant
from macsetup.core.context import RunContext
from macsetup.core.engine.executor import build_phase
from macsetup.core.engine.guard import command_succeeds, config_has_key
from macsetup.core.models.phase import Check, InstallableUnit, Phase

NERD_FONT = "MesloLGS NF"

VSCODE_BIN = "/Applications/Visual Studio Code.app/Contents/Resources/app/bin"
VSCODE_SETTINGS = "~/Library/Application Support/Code/User/settings.json"
VSCODE_FONT_KEY = "terminal.integrated.fontFamily"
VSCODE_EXTENSIONS = (
    "saoudrizwan.claude-dev",
    "continue.dev.continue",
    "dbaeumer.vscode-eslint",
    "esbenp.prettier-vscode",
    "msjsdiag.vscode-react-native",
)

ITERM_PLIST = "~/Library/Preferences/com.googlecode.iterm2.plist"
GHOSTTY_CONFIG = "~/.config/ghostty/config"

MISE_CONFIG = "~/.config/mise/config.toml"
MISE_SHIMS = "~/.local/share/mise/shims"
MISE_RUNTIMES = ("python@latest", "node@lts", "java@zulu-17")
JAVA_INSTALL = "~/.local/share/mise/installs/java/zulu-17"
JAVA_VM_DIR = "/Library/Java/JavaVirtualMachines/zulu-17.jdk"


# ── VS Code ─────────────────────────────────────────────────────


def _vscode_font(ctx: RunContext) -> None:
    ctx.fs.merge_json_key(VSCODE_SETTINGS, VSCODE_FONT_KEY, NERD_FONT)


def _vscode_cli(ctx: RunContext) -> None:
    ctx.append_path(VSCODE_BIN)
    if ctx.which("code") is None:
        ctx.transcript.warning("VS Code CLI not found — install extensions manually after launching VS Code")


def _extension_installed(extension: str) -> Check:
    def _check(ctx: RunContext) -> bool:
        listing = ctx.run("code", "--list-extensions")
        installed = {line.strip().lower() for line in listing.stdout.splitlines()}
        return listing.ok and extension.lower() in installed

    _check.__name__ = f"extension_installed({extension})"
    return _check


def _extension(extension: str) -> InstallableUnit:
    return InstallableUnit(
        id=f"vscode.{extension}",
        command=("code", "--install-extension", extension),
        check=_extension_installed(extension),
        retryable=True,
    )


# ── Terminals ───────────────────────────────────────────────────


def _ghostty_font(ctx: RunContext) -> None:
    ctx.fs.ensure_line(GHOSTTY_CONFIG, f"font-family = {NERD_FONT}", key="font-family")


# ── mise ────────────────────────────────────────────────────────


def _activate_mise(ctx: RunContext) -> None:
    ctx.prepend_path(str(ctx.fs.resolve(MISE_SHIMS)))


def _runtime(tool: str) -> InstallableUnit:
    return InstallableUnit(
        id=f"mise.{tool.split('@', 1)[0]}",
        command=("mise", "use", "--global", tool),
        check=command_succeeds("mise", "where", tool),
        retryable=True,
        label=tool,
    )


def _mise_completions(ctx: RunContext) -> None:
    completion = ctx.run_checked("mise", "completion", "zsh").stdout
    ctx.fs.write_file("~/.oh-my-zsh/custom/plugins/mise/_mise", completion)


def _java_home_config(ctx: RunContext) -> None:
    ctx.fs.ensure_line(MISE_CONFIG, "[env]")
    ctx.fs.ensure_line(
        MISE_CONFIG,
        'JAVA_HOME = "{{env.HOME}}/.local/share/mise/installs/java/zulu-17"',
        key="JAVA_HOME",
    )


def _export_java_home(ctx: RunContext) -> None:
    java_home = ctx.fs.resolve(JAVA_INSTALL)
    ctx.export("JAVA_HOME", str(java_home))
    ctx.run_checked("sudo", "mkdir", "-p", JAVA_VM_DIR)
    ctx.run_checked("sudo", "ln", "-sf", str(java_home / "Contents"), f"{JAVA_VM_DIR}/Contents")


def phase() -> Phase:
    return build_phase(
        4,
        "Development Tools",
        step(
            "editors",
            cask("visual-studio-code", app="Visual Studio Code"),
            cask("cursor", app="Cursor"),
            cask("zed", app="Zed"),
            cask("android-studio", app="Android Studio"),
        ),
        step(
            "vscode",
            InstallableUnit(id="vscode-cli", action=_vscode_cli, toggle="cask.visual-studio-code"),
            InstallableUnit(
                id="vscode-font",
                action=_vscode_font,
                check=config_has_key(VSCODE_SETTINGS, VSCODE_FONT_KEY),
                toggle="cask.visual-studio-code",
            ),
            *(_extension(name) for name in VSCODE_EXTENSIONS),
        ),
        step(
            "terminals",
            cask("iterm2", app="iTerm"),
            cask("ghostty", app="Ghostty"),
            tolerant(
                "iterm2-font",
                "/usr/libexec/PlistBuddy", "-c", "Set ':New Bookmarks:0:Normal Font' MesloLGSNF-Regular 13",
                ITERM_PLIST,
                toggle="cask.iterm2",
            ),
            InstallableUnit(
                id="ghostty-font",
                action=_ghostty_font,
                check=config_has_key(GHOSTTY_CONFIG, "font-family"),
                toggle="cask.ghostty",
            ),
        ),
        step(
            "docker",
            cask("docker", app="Docker"),
            # launched now so the daemon is up by the time Open WebUI needs it
            tolerant("docker-launch", "open", "-a", "Docker", toggle="cask.docker"),
            chained=True,
        ),
        step(
            "mise",
            brew("mise"),
            InstallableUnit(id="mise-activate", action=_activate_mise, toggle="brew.mise"),
            chained=True,
        ),
        *each(*(_runtime(tool) for tool in MISE_RUNTIMES)),
        step(
            "mise-setup",
            InstallableUnit(id="mise-completions", action=_mise_completions, toggle="brew.mise"),
            InstallableUnit(
                id="java-home-config",
                action=_java_home_config,
                check=config_has_key(MISE_CONFIG, "JAVA_HOME"),
                toggle="mise.java",
            ),
            InstallableUnit(id="java-home", action=_export_java_home, toggle="mise.java"),
        ),
        needs_sudo=True,
    )
