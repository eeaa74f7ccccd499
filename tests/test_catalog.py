"""
Tests for the shipped phase catalog, driven entirely through MockRunner.
"""

import json
from pathlib import Path

import pytest

from macsetup.adapters.base import CommandResult
from macsetup.adapters.mock import MockRunner
from macsetup.core.catalog import STANDING_MANUAL_STEPS, build_default_registry, default_checks
from macsetup.core.catalog import ai, apps, devtools, foundation, mobile, preferences, shell
from macsetup.core.catalog.units import brew, cask, defaults, dmg_app, mas, npm, tolerant
from macsetup.core.config.toggles import resolve
from macsetup.core.context import RunContext
from macsetup.core.engine.executor import execute_phases, run_unit
from macsetup.core.engine.selector import PhaseSelection
from macsetup.core.errors import RequiredPhaseError, UnitFailed
from macsetup.core.models.config import RunConfiguration
from macsetup.core.models.phase import Phase, PhaseOutcome


def fake_keygen(cmd: list[str]) -> CommandResult:
    key = Path(cmd[cmd.index("-f") + 1])
    key.write_text("private")
    key.with_suffix(".pub").write_text("public")
    return CommandResult.success(cmd)


def run_entry(ctx: RunContext, phase: Phase) -> PhaseOutcome:
    """Run a phase's entry action and return the per-step record it left."""
    outcome = PhaseOutcome(phase_id=phase.id, label=phase.label)
    ctx.current = outcome
    phase.entry(ctx)
    ctx.current = None
    return outcome


# ── Registry shape ───────────────────────────────────────────────────


class TestDefaultRegistry:
    def test_nine_phases_foundation_first(self):
        registry = build_default_registry()
        assert registry.ids == list(range(1, 10))
        assert registry.required.label == "Foundation"
        assert registry.required.needs_sudo

    def test_sudo_phases(self):
        registry = build_default_registry()
        assert [p.id for p in registry if p.needs_sudo] == [1, 3, 4]

    def test_unit_ids_unique(self):
        ids = [u.id for p in build_default_registry() for u in p.units()]
        assert len(ids) == len(set(ids))

    def test_toggle_keys(self):
        keys = build_default_registry().toggle_keys()
        for key in ("brew.jq", "cask.zoom", "prefs.dock", "npm.wrangler", "mas.vpn-unlimited"):
            assert key in keys

    def test_only_homebrew_is_critical(self):
        critical = [s.name for p in build_default_registry() for s in p.steps if s.critical]
        assert critical == ["homebrew"]

    def test_default_checks_cover_apps(self):
        names = [c.name for c in default_checks()]
        assert "SSH key" in names
        assert "cocoapods" in names
        assert "Open WebUI (running)" in names
        for app_name in apps.APP_CASKS.values():
            assert app_name in names

    def test_standing_steps(self):
        assert any("ssh" in s.lower() for s in STANDING_MANUAL_STEPS)


# ── Unit builders ────────────────────────────────────────────────────


class TestUnitBuilders:
    def test_brew(self, ctx: RunContext, fake_tool):
        unit = brew("gnupg", binary="gpg")
        assert unit.id == "brew.gnupg"
        assert unit.retryable
        assert not unit.check(ctx)
        fake_tool("gpg")
        assert unit.check(ctx)

    def test_cask_by_app_bundle(self, ctx: RunContext, fake_app):
        unit = cask("firefox", app="Firefox")
        assert unit.command == ("brew", "install", "--cask", "firefox")
        fake_app("Firefox")
        assert unit.check(ctx)

    def test_cask_without_app_asks_brew(self, ctx: RunContext, runner: MockRunner):
        unit = cask("font-meslo-lg-nerd-font")
        runner.set_failure("brew", "list")
        assert not unit.check(ctx)

    def test_npm_scoped_package(self):
        unit = npm("@google/gemini-cli", binary="gemini")
        assert unit.id == "npm.gemini-cli"
        assert unit.command == ("npm", "install", "-g", "@google/gemini-cli")

    def test_defaults_current_host_and_group(self):
        unit = defaults("NSGlobalDomain", "com.apple.mouse.tapBehavior", "int", "1", "trackpad", current_host=True)
        assert unit.command == (
            "defaults", "-currentHost", "write", "NSGlobalDomain", "com.apple.mouse.tapBehavior", "-int", "1",
        )
        assert unit.toggle_key == "prefs.trackpad"
        assert unit.unconditional

    def test_mas_failure_message(self, ctx: RunContext, runner: MockRunner):
        runner.set_failure("mas", "install")
        with pytest.raises(UnitFailed, match="sign into the App Store"):
            run_unit(ctx, mas(694633015, "VPN Unlimited"))

    def test_tolerant_never_raises(self, ctx: RunContext, runner: MockRunner, echo):
        runner.set_failure("killall", exit_code=1)
        run_unit(ctx, tolerant("restart-dock", "killall", "Dock"))
        assert "   (killall Dock exited 1, ignored)" in echo.lines


# ── Phase 1 ──────────────────────────────────────────────────────────


class TestFoundation:
    def test_homebrew_failure_aborts_run(self, ctx: RunContext, runner: MockRunner):
        runner.set_failure("curl", exit_code=22)
        registry = build_default_registry()
        with pytest.raises(RequiredPhaseError) as exc_info:
            execute_phases(registry, PhaseSelection(registry), ctx)
        assert exc_info.value.exit_code == 22
        assert not runner.calls_to("git", "clone")
        assert not runner.calls_to("defaults")

    def test_shellenv_exported(self, ctx: RunContext, runner: MockRunner):
        runner.set_responder(("ssh-keygen",), fake_keygen)
        foundation.phase().entry(ctx)
        assert ctx.env["HOMEBREW_PREFIX"] == "/opt/homebrew"
        assert ctx.env["PATH"].startswith("/opt/homebrew/bin")
        install = runner.calls_to("/bin/bash")[0]
        assert install.command[1].endswith("homebrew-install.sh")
        assert install.env["NONINTERACTIVE"] == "1"

    def test_ssh_files_written(self, ctx: RunContext, runner: MockRunner, home: Path):
        runner.set_responder(("ssh-keygen",), fake_keygen)
        foundation.phase().entry(ctx)
        assert (home / ".ssh" / "id_ed25519").exists()
        config = home / ".ssh" / "config"
        assert "AddKeysToAgent yes" in config.read_text()
        assert config.stat().st_mode & 0o777 == 0o600

    def test_ssh_agent_socket_exported(self, ctx: RunContext, runner: MockRunner):
        runner.set_responder(("ssh-keygen",), fake_keygen)
        runner.set_output(
            "ssh-agent",
            stdout="SSH_AUTH_SOCK=/tmp/agent.42; export SSH_AUTH_SOCK;\nSSH_AGENT_PID=42; export SSH_AGENT_PID;\n",
        )
        foundation.phase().entry(ctx)
        assert ctx.env["SSH_AUTH_SOCK"] == "/tmp/agent.42"

    def test_git_identity(self, ctx: RunContext, runner: MockRunner):
        ctx.config = RunConfiguration.model_validate({"git": {"user_name": "Jane", "user_email": "j@x.io"}})
        foundation.phase().entry(ctx)
        assert runner.calls_to("git", "config", "--global", "user.name", "Jane")
        assert runner.calls_to("git", "config", "--global", "user.email", "j@x.io")

    def test_gh_token_piped(self, ctx: RunContext, runner: MockRunner):
        ctx.config = RunConfiguration(github_token="ghp_secret")
        foundation.phase().entry(ctx)
        call = runner.calls_to("gh", "auth", "login")[0]
        assert call.input == "ghp_secret\n"
        assert "ghp_secret" not in call.command

    def test_no_token_no_gh_auth(self, ctx: RunContext, runner: MockRunner):
        foundation.phase().entry(ctx)
        assert not runner.calls_to("gh", "auth")

    def test_gpg_signing(self, ctx: RunContext, runner: MockRunner, home: Path):
        ctx.config = RunConfiguration.model_validate({
            "git": {"user_name": "Jane", "user_email": "j@x.io"},
            "gpg_signing": True,
        })
        runner.set_output(
            "gpg", "--list-secret-keys",
            stdout="sec   rsa4096/ABCDEF1234567890 2024-01-01 [SC]\nuid   Jane <j@x.io>\n",
        )
        foundation.phase().entry(ctx)
        assert runner.calls_to("git", "config", "--global", "user.signingkey", "ABCDEF1234567890")
        assert runner.calls_to("git", "config", "--global", "commit.gpgsign", "true")
        assert "pinentry-program" in (home / ".gnupg" / "gpg-agent.conf").read_text()

    def test_disabled_utility_not_installed(self, ctx: RunContext, runner: MockRunner):
        registry = build_default_registry()
        ctx.toggles = resolve({k: True for k in registry.toggle_keys()}, {"brew.htop": False})
        foundation.phase().entry(ctx)
        assert not runner.calls_to("brew", "install", "htop")
        assert runner.calls_to("brew", "install", "jq")


# ── Phases 2–5 ───────────────────────────────────────────────────────


class TestShell:
    def test_zshrc_rewritten_every_run(self, ctx: RunContext, home: Path):
        zshrc = home / ".zshrc"
        zshrc.write_text("stale")
        shell.phase().entry(ctx)
        content = zshrc.read_text()
        assert 'eval "$(/opt/homebrew/bin/brew shellenv)"' in content
        assert content.rstrip().endswith('eval "$(starship init zsh)"')

    def test_plugins_cloned_once(self, ctx: RunContext, runner: MockRunner, home: Path):
        (home / ".oh-my-zsh" / "custom" / "plugins" / "zsh-completions").mkdir(parents=True)
        shell.phase().entry(ctx)
        cloned = [c.command[2] for c in runner.calls_to("git", "clone")]
        assert "https://github.com/zsh-users/zsh-completions" not in cloned
        assert "https://github.com/zsh-users/zsh-autosuggestions" in cloned

    def test_oh_my_zsh_skipped_when_present(self, ctx: RunContext, runner: MockRunner, home: Path):
        (home / ".oh-my-zsh").mkdir()
        shell.phase().entry(ctx)
        assert not runner.calls_to("sh")


class TestPreferences:
    def test_group_toggle(self, ctx: RunContext, runner: MockRunner):
        ctx.toggles = resolve({"prefs.dock": True}, {"prefs.dock": False})
        preferences.phase().entry(ctx)
        assert not runner.calls_to("defaults", "write", "com.apple.dock", "autohide")
        assert runner.calls_to("defaults", "write", "com.apple.finder", "ShowPathbar")

    def test_screenshots_folder(self, ctx: RunContext, runner: MockRunner, home: Path):
        preferences.phase().entry(ctx)
        assert (home / "Screenshots").is_dir()
        assert runner.calls_to("defaults", "write", "com.apple.screencapture", "location", "-string", str(home / "Screenshots"))

    def test_services_restarted_last(self, ctx: RunContext, runner: MockRunner):
        preferences.phase().entry(ctx)
        assert runner.commands[-3:] == [["killall", "Finder"], ["killall", "Dock"], ["killall", "SystemUIServer"]]


class TestDevtools:
    def test_vscode_settings_merged(self, ctx: RunContext, home: Path):
        settings = home / "Library" / "Application Support" / "Code" / "User" / "settings.json"
        settings.parent.mkdir(parents=True)
        settings.write_text(json.dumps({"editor.fontSize": 14}))
        devtools.phase().entry(ctx)
        data = json.loads(settings.read_text())
        assert data == {"editor.fontSize": 14, "terminal.integrated.fontFamily": "MesloLGS NF"}

    def test_installed_extension_skipped(self, ctx: RunContext, runner: MockRunner):
        runner.set_output("code", "--list-extensions", stdout="esbenp.prettier-vscode\n")
        devtools.phase().entry(ctx)
        installed = [c.command[2] for c in runner.calls_to("code", "--install-extension")]
        assert "esbenp.prettier-vscode" not in installed
        assert "dbaeumer.vscode-eslint" in installed

    def test_java_home(self, ctx: RunContext, runner: MockRunner, home: Path):
        devtools.phase().entry(ctx)
        assert ctx.env["JAVA_HOME"] == str(home / ".local/share/mise/installs/java/zulu-17")
        assert "JAVA_HOME" in (home / ".config" / "mise" / "config.toml").read_text()
        assert runner.calls_to("sudo", "ln", "-sf")


class TestAI:
    def test_model_pulled_with_background_server(self, ctx: RunContext, runner: MockRunner):
        ai.phase().entry(ctx)
        assert runner.spawned[0].command == ["ollama", "serve"]
        assert runner.spawned[0].terminated
        assert runner.calls_to("ollama", "pull", "qwen2.5-coder:7b")

    def test_empty_model_skips_pull(self, ctx: RunContext, runner: MockRunner):
        ctx.config = RunConfiguration(ollama_model="")
        ai.phase().entry(ctx)
        assert runner.spawned == []
        assert not runner.calls_to("ollama", "pull")

    def test_server_stopped_when_pull_fails(self, ctx: RunContext, runner: MockRunner, echo):
        runner.set_failure("ollama", "pull")
        ai.phase().entry(ctx)
        assert runner.spawned[0].terminated
        assert any("ollama pull qwen2.5-coder:7b" in line for line in echo.errors)

    def test_docker_not_ready_skips_open_webui(self, ctx: RunContext, runner: MockRunner, echo):
        runner.set_failure("docker", "info")
        ai.phase().entry(ctx)
        assert len(runner.calls_to("docker", "info")) == ai.DOCKER_WAIT_ATTEMPTS
        assert not runner.calls_to("docker", "run")
        assert any("docker start open-webui" in line for line in echo.errors)

    def test_existing_container_started(self, ctx: RunContext, runner: MockRunner):
        runner.set_output("docker", "ps", stdout="postgres\nopen-webui\n")
        ai.phase().entry(ctx)
        assert runner.calls_to("docker", "start", "open-webui")
        assert not runner.calls_to("docker", "run")

    def test_new_container_created(self, ctx: RunContext, runner: MockRunner):
        ai.phase().entry(ctx)
        run = runner.calls_to("docker", "run")[0].command
        assert run[-1] == ai.OPEN_WEBUI_IMAGE
        assert "3000:8080" in run


# ── Sibling isolation ────────────────────────────────────────────────


class TestSiblingIsolation:
    """One package that fails to install never costs the ones grouped with it."""

    def test_failed_editor_cask_keeps_other_casks(self, ctx: RunContext, runner: MockRunner):
        runner.set_failure("brew", "install", "--cask", "cursor")
        outcome = run_entry(ctx, devtools.phase())
        attempted = {c.command[3] for c in runner.calls_to("brew", "install", "--cask")}
        for token in ("visual-studio-code", "zed", "android-studio", "iterm2", "ghostty", "docker"):
            assert token in attempted
        assert [s.name for s in outcome.failed_steps] == ["editors"]
        statuses = {u.unit_id: u.status for u in outcome.failed_steps[0].units}
        assert statuses == {
            "cask.visual-studio-code": "ok",
            "cask.cursor": "failed",
            "cask.zed": "ok",
            "cask.android-studio": "ok",
        }

    def test_failed_terminal_keeps_ghostty(self, ctx: RunContext, runner: MockRunner, home: Path):
        runner.set_failure("brew", "install", "--cask", "iterm2")
        run_entry(ctx, devtools.phase())
        assert runner.calls_to("brew", "install", "--cask", "ghostty")
        assert "font-family" in (home / ".config" / "ghostty" / "config").read_text()

    def test_failed_watchman_keeps_mobile_tools(self, ctx: RunContext, runner: MockRunner):
        runner.set_failure("brew", "install", "watchman")
        outcome = run_entry(ctx, mobile.phase())
        assert runner.calls_to("brew", "install", "cocoapods")
        assert runner.calls_to("npm", "install", "-g", "eas-cli")
        assert [s.name for s in outcome.failed_steps] == ["core"]

    def test_failed_default_keeps_its_group(self, ctx: RunContext, runner: MockRunner):
        runner.set_failure("defaults", "write", "com.apple.dock", "autohide")
        outcome = run_entry(ctx, preferences.phase())
        assert runner.calls_to("defaults", "write", "com.apple.dock", "tilesize")
        assert runner.calls_to("defaults", "write", "com.apple.dock", "mru-spaces")
        assert [s.name for s in outcome.failed_steps] == ["dock"]

    def test_ssh_chain_stops_after_failed_keygen(self, ctx: RunContext, runner: MockRunner, home: Path):
        runner.set_failure("ssh-keygen")
        outcome = run_entry(ctx, foundation.phase())
        assert not (home / ".ssh" / "config").exists()
        assert not runner.calls_to("ssh-add")
        assert "ssh" in [s.name for s in outcome.failed_steps]
        # later steps of the phase still ran
        assert runner.calls_to("brew", "install", "jq")

    def test_chains_are_declared(self):
        chained = {s.name for p in build_default_registry() for s in p.steps if s.chained}
        assert {"git", "ssh", "gpg", "xcode", "docker", "mise", "ollama", "android-sdk"} <= chained
        assert not chained & {"editors", "terminals", "core", "dock", "finder"}


# ── Phase 9 ──────────────────────────────────────────────────────────


def mounts(bundle: str):
    """hdiutil attach responder that puts ``bundle`` on the mount point."""

    def _attach(cmd: list[str]) -> CommandResult:
        mount = Path(cmd[cmd.index("-mountpoint") + 1])
        (mount / bundle).mkdir(parents=True)
        return CommandResult.success(cmd)

    return _attach


class TestDiskImageApps:
    URL = "https://downloads.example.com/DPN-2.0.dmg"

    def test_bundle_copied_then_detached(self, ctx: RunContext, runner: MockRunner, applications: Path):
        runner.set_responder(("hdiutil", "attach"), mounts("DPN.app"))
        outcome = run_unit(ctx, dmg_app("DPN", self.URL))
        assert outcome.status == "ok"
        assert [c[0] for c in runner.commands] == ["curl", "hdiutil", "cp", "hdiutil"]
        assert runner.calls_to("curl")[0].command[-1] == self.URL
        copy = runner.calls_to("cp", "-R")[0].command
        assert copy[2].endswith("dpn-volume/DPN.app")
        assert copy[3] == str(applications)
        assert runner.commands[-1][:2] == ["hdiutil", "detach"]

    def test_vendor_bundle_name_found_on_volume(self, ctx: RunContext, runner: MockRunner):
        runner.set_responder(("hdiutil", "attach"), mounts("Moonlock by MacPaw.app"))
        run_unit(ctx, dmg_app("Moonlock", self.URL))
        assert runner.calls_to("cp", "-R")[0].command[2].endswith("Moonlock by MacPaw.app")

    def test_detached_when_copy_fails(self, ctx: RunContext, runner: MockRunner):
        runner.set_failure("cp")
        with pytest.raises(UnitFailed):
            run_unit(ctx, dmg_app("DPN", self.URL))
        assert runner.calls_to("hdiutil", "detach")

    def test_image_deleted_after_install(self, ctx: RunContext, runner: MockRunner, home: Path):
        def fetch(cmd: list[str]) -> CommandResult:
            Path(cmd[cmd.index("-o") + 1]).write_bytes(b"dmg")
            return CommandResult.success(cmd)

        runner.set_responder(("curl",), fetch)
        run_unit(ctx, dmg_app("DPN", self.URL))
        assert not (home / ".cache" / "macsetup" / "dpn.dmg").exists()

    def test_download_failure_points_at_vendor(self, ctx: RunContext, runner: MockRunner):
        runner.set_failure("curl", exit_code=22)
        with pytest.raises(UnitFailed, match="install manually from https://deeper.network") as exc_info:
            run_unit(ctx, dmg_app("DPN", self.URL, homepage="https://deeper.network"))
        assert exc_info.value.exit_code == 22
        assert not runner.calls_to("hdiutil")

    def test_installed_app_skipped(self, ctx: RunContext, runner: MockRunner, fake_app):
        fake_app("Moonlock")
        assert run_unit(ctx, dmg_app("Moonlock", self.URL)).status == "skipped"
        assert runner.call_count == 0

    def test_installed_and_validated_by_default(self):
        ids = [u.id for u in apps.phase().units()]
        assert "dmg.dpn" in ids
        assert "dmg.moonlock" in ids
        names = [c.name for c in default_checks()]
        assert "DPN" in names
        assert "Moonlock" in names
        assert any(s.startswith("Launch Moonlock") for s in STANDING_MANUAL_STEPS)
