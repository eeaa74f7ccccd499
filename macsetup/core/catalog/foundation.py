"""
Phase 1 — Foundation (required).

Homebrew is the only critical step: every later phase installs through
it, so its failure aborts the run. Everything else here is isolated.
"""

from __future__ import annotations

import re

from macsetup.core.catalog.units import brew, download, each, step, tolerant
from macsetup.core.context import RunContext
from macsetup.core.engine.executor import build_phase
from macsetup.core.engine.guard import (
    app_installed,
    command_succeeds,
    config_has_key,
    path_exists,
)
from macsetup.core.errors import UnitFailed
from macsetup.core.models.phase import InstallableUnit, Phase
from macsetup.core.reliability.retry import wait_until

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
XCODE_APP_ID = "497799835"
CLI_UTILITIES = ("jq", "tree", "gh", "eza", "zoxide", "bat", "htop", "wget", "tldr")

SSH_KEY = "~/.ssh/id_ed25519"
SSH_CONFIG = "~/.ssh/config"
SSH_CONFIG_CONTENT = """\
Host *
  AddKeysToAgent yes
  UseKeychain yes
  IdentityFile ~/.ssh/id_ed25519
"""
GPG_AGENT_CONF = "~/.gnupg/gpg-agent.conf"

_SSH_AGENT_VAR = re.compile(r"^(SSH_AUTH_SOCK|SSH_AGENT_PID)=([^;]+);")


# ── Homebrew ────────────────────────────────────────────────────


def _brew_present(ctx: RunContext) -> bool:
    return ctx.which("brew") is not None or ctx.fs.exists(f"{ctx.brew_prefix}/bin/brew")


def _install_homebrew(ctx: RunContext) -> None:
    script = download(ctx, HOMEBREW_INSTALL_URL, "homebrew-install.sh")
    ctx.export("NONINTERACTIVE", "1")
    result = ctx.run("/bin/bash", str(script))
    if not result.ok:
        raise UnitFailed("homebrew", result)


def _brew_shellenv(ctx: RunContext) -> None:
    prefix = ctx.brew_prefix
    ctx.export("HOMEBREW_PREFIX", prefix)
    ctx.prepend_path(f"{prefix}/bin", f"{prefix}/sbin")


# ── Shell ───────────────────────────────────────────────────────


def _login_shell_is_zsh(ctx: RunContext) -> bool:
    return ctx.getenv("SHELL") == "/bin/zsh"


# ── Git ─────────────────────────────────────────────────────────


def _configure_git(ctx: RunContext) -> None:
    settings = {
        "init.defaultBranch": "main",
        "pull.rebase": "true",
        "core.editor": "code --wait",
    }
    for key, value in settings.items():
        ctx.run_checked("git", "config", "--global", key, value)

    identity = ctx.config.git
    if identity.user_name:
        ctx.run_checked("git", "config", "--global", "user.name", identity.user_name)
        ctx.transcript.success(f"Git user.name set to: {identity.user_name}")
    if identity.user_email:
        ctx.run_checked("git", "config", "--global", "user.email", identity.user_email)
        ctx.transcript.success(f"Git user.email set to: {identity.user_email}")


# ── SSH ─────────────────────────────────────────────────────────


def _generate_ssh_key(ctx: RunContext) -> None:
    ctx.fs.ensure_dir("~/.ssh", mode=0o700)
    key_path = ctx.fs.resolve(SSH_KEY)
    comment = ctx.config.git.user_email or "mac-setup"
    ctx.run_checked("ssh-keygen", "-t", "ed25519", "-C", comment, "-f", str(key_path), "-N", "")
    key_path.chmod(0o600)
    key_path.with_suffix(".pub").chmod(0o644)


def _write_ssh_config(ctx: RunContext) -> None:
    ctx.fs.ensure_dir("~/.ssh", mode=0o700)
    ctx.fs.write_file(SSH_CONFIG, SSH_CONFIG_CONTENT, mode=0o600)


def _add_key_to_agent(ctx: RunContext) -> None:
    agent = ctx.run("ssh-agent", "-s")
    for line in agent.stdout.splitlines():
        match = _SSH_AGENT_VAR.match(line.strip())
        if match:
            ctx.export(match.group(1), match.group(2))

    key_path = str(ctx.fs.resolve(SSH_KEY))
    if not ctx.run("ssh-add", "--apple-use-keychain", key_path).ok:
        ctx.transcript.warning(
            f"Could not add SSH key to keychain — add manually: ssh-add --apple-use-keychain {SSH_KEY}"
        )


# ── GPG ─────────────────────────────────────────────────────────


def _write_gpg_agent_conf(ctx: RunContext) -> None:
    ctx.fs.ensure_dir("~/.gnupg", mode=0o700)
    ctx.fs.ensure_line(
        GPG_AGENT_CONF,
        f"pinentry-program {ctx.brew_prefix}/bin/pinentry-mac",
        key="pinentry-program",
    )


def _gpg_key_id(ctx: RunContext, email: str) -> str | None:
    listing = ctx.run("gpg", "--list-secret-keys", "--keyid-format=long", email)
    if not listing.ok:
        return None
    for line in listing.stdout.splitlines():
        parts = line.split()
        if parts and parts[0] == "sec" and len(parts) > 1 and "/" in parts[1]:
            return parts[1].split("/", 1)[1]
    return None


def _enable_commit_signing(ctx: RunContext) -> None:
    identity = ctx.config.git
    if not (ctx.config.gpg_signing and identity.complete):
        return

    email = identity.user_email
    if ctx.run("gpg", "--list-secret-keys", email).ok:
        ctx.transcript.success(f"GPG key already exists for {email}")
    else:
        batch = (
            "%no-protection\n"
            "Key-Type: RSA\n"
            "Key-Length: 4096\n"
            "Subkey-Type: RSA\n"
            "Subkey-Length: 4096\n"
            f"Name-Real: {identity.user_name}\n"
            f"Name-Email: {email}\n"
            "Expire-Date: 0\n"
        )
        ctx.run_checked("gpg", "--batch", "--gen-key", input=batch)
        ctx.transcript.success(f"GPG key generated for {email}")

    key_id = _gpg_key_id(ctx, email)
    if not key_id:
        raise UnitFailed("gpg-signing", message=f"no secret key found for {email}")

    ctx.run_checked("git", "config", "--global", "user.signingkey", key_id)
    ctx.run_checked("git", "config", "--global", "commit.gpgsign", "true")
    ctx.run_checked("git", "config", "--global", "gpg.program", ctx.which("gpg") or "gpg")
    ctx.transcript.success(f"Git commit signing enabled with key {key_id}")

    exported = ctx.run("gpg", "--armor", "--export", key_id)
    ctx.transcript.line("")
    ctx.transcript.line("📋 Add this GPG public key to GitHub (https://github.com/settings/keys):")
    ctx.transcript.line("---")
    ctx.transcript.line(exported.stdout.rstrip())
    ctx.transcript.line("---")


# ── Xcode ───────────────────────────────────────────────────────


def _install_command_line_tools(ctx: RunContext) -> None:
    ctx.run("xcode-select", "--install")
    ctx.transcript.line("⏳ Waiting for Command Line Tools installation...")
    ready = wait_until(
        lambda: ctx.run("xcode-select", "-p").ok,
        attempts=360,
        interval=5,
        sleep=ctx.sleep,
    )
    if not ready:
        raise UnitFailed("xcode-clt", message="Command Line Tools did not finish installing")


def _install_xcode(ctx: RunContext) -> None:
    if not ctx.run("mas", "list").ok:
        ctx.transcript.warning("Sign into the App Store before continuing")
    result = ctx.run("mas", "install", XCODE_APP_ID, retry=True)
    if not result.ok:
        raise UnitFailed("xcode", result, message="Xcode install failed — sign into App Store and re-run")


# ── GitHub CLI ──────────────────────────────────────────────────


def _authenticate_gh(ctx: RunContext) -> None:
    token = ctx.config.github_token
    if not token:
        return
    if ctx.run("gh", "auth", "login", "--with-token", input=token + "\n").ok:
        ctx.transcript.success("GitHub CLI authenticated")
    else:
        ctx.transcript.warning("GitHub CLI auth failed — run 'gh auth login' manually")


def phase() -> Phase:
    return build_phase(
        1,
        "Foundation",
        step(
            "rosetta",
            InstallableUnit(
                id="rosetta",
                command=("softwareupdate", "--install-rosetta", "--agree-to-license"),
                check=command_succeeds("/usr/bin/pgrep", "-q", "oahd"),
            ),
        ),
        step(
            "homebrew",
            InstallableUnit(id="homebrew", action=_install_homebrew, check=_brew_present),
            InstallableUnit(id="brew-shellenv", action=_brew_shellenv, toggle="homebrew"),
            critical=True,
        ),
        step(
            "zsh",
            InstallableUnit(
                id="login-shell",
                command=("chsh", "-s", "/bin/zsh"),
                check=_login_shell_is_zsh,
            ),
        ),
        step(
            "git",
            brew("git"),
            InstallableUnit(id="git-config", action=_configure_git, toggle="brew.git"),
            chained=True,
        ),
        step(
            "ssh",
            InstallableUnit(id="ssh-key", action=_generate_ssh_key, check=path_exists(SSH_KEY)),
            InstallableUnit(id="ssh-config", action=_write_ssh_config, check=path_exists(SSH_CONFIG)),
            action=_add_key_to_agent,
            chained=True,
        ),
        step(
            "gpg",
            brew("gnupg", binary="gpg"),
            brew("pinentry-mac"),
            InstallableUnit(
                id="gpg-agent-conf",
                action=_write_gpg_agent_conf,
                check=config_has_key(GPG_AGENT_CONF, "pinentry-program"),
                toggle="brew.gnupg",
            ),
            action=_enable_commit_signing,
            chained=True,
        ),
        step(
            "xcode",
            InstallableUnit(
                id="xcode-clt",
                action=_install_command_line_tools,
                check=command_succeeds("xcode-select", "-p"),
            ),
            brew("mas"),
            InstallableUnit(id="xcode", action=_install_xcode, check=app_installed("Xcode")),
            tolerant("xcode-license", "sudo", "xcodebuild", "-license", "accept", toggle="xcode"),
            tolerant(
                "xcode-select-switch",
                "sudo", "xcode-select", "-s", "/Applications/Xcode.app/Contents/Developer",
                toggle="xcode",
            ),
            chained=True,
        ),
        *each(*(brew(name) for name in CLI_UTILITIES)),
        step(
            "cli-utils-setup",
            tolerant("tldr-update", "tldr", "--update", toggle="brew.tldr"),
            action=_authenticate_gh,
        ),
        required=True,
        needs_sudo=True,
    )
