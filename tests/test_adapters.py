"""
Tests for adapters — subprocess runner, mock runner, filesystem.
"""

import json
import sys
from pathlib import Path

from macsetup.adapters.base import EXIT_NOT_FOUND, EXIT_TIMEOUT, CommandResult
from macsetup.adapters.mock import MockRunner
from macsetup.adapters.shell.command import SubprocessRunner
from macsetup.adapters.shell.filesystem import Filesystem

# ── CommandResult ────────────────────────────────────────────────────


class TestCommandResult:
    def test_ok(self):
        assert CommandResult(command=["true"]).ok
        assert not CommandResult(command=["false"], exit_code=1).ok

    def test_display_quotes_arguments(self):
        result = CommandResult(command=["git", "commit", "-m", "two words"])
        assert result.display == "git commit -m 'two words'"

    def test_first_line_falls_back_to_stderr(self):
        result = CommandResult.failure(["x"], stderr="\n  boom\nmore")
        assert result.first_line == "boom"


# ── SubprocessRunner ─────────────────────────────────────────────────


class TestSubprocessRunner:
    def test_success(self):
        result = SubprocessRunner().execute(sys.executable, "-c", "print('hi')")
        assert result.ok
        assert result.stdout.strip() == "hi"

    def test_non_zero_exit(self):
        result = SubprocessRunner().execute(sys.executable, "-c", "import sys; sys.exit(3)")
        assert result.exit_code == 3

    def test_missing_executable_never_raises(self):
        result = SubprocessRunner().execute("definitely-not-a-real-binary-xyz")
        assert result.exit_code == EXIT_NOT_FOUND

    def test_timeout(self):
        result = SubprocessRunner().execute(
            sys.executable, "-c", "import time; time.sleep(5)", timeout=0.2
        )
        assert result.exit_code == EXIT_TIMEOUT

    def test_input_is_piped(self):
        result = SubprocessRunner().execute(
            sys.executable, "-c", "import sys; print(sys.stdin.read().upper())", input="token"
        )
        assert "TOKEN" in result.stdout

    def test_env_is_merged(self):
        result = SubprocessRunner().execute(
            sys.executable, "-c", "import os; print(os.environ['MACSETUP_TEST_VAR'])",
            env={"MACSETUP_TEST_VAR": "42"},
        )
        assert result.stdout.strip() == "42"


# ── MockRunner ───────────────────────────────────────────────────────


class TestMockRunner:
    def test_default_success_and_log(self):
        runner = MockRunner()
        result = runner.execute("brew", "install", "jq", env={"PATH": "/x"})
        assert result.ok
        assert runner.call_count == 1
        assert runner.call_log[0].env == {"PATH": "/x"}

    def test_prefix_failure(self):
        runner = MockRunner()
        runner.set_failure("brew", "install", exit_code=7)
        assert runner.execute("brew", "install", "jq").exit_code == 7
        assert runner.execute("brew", "list").ok

    def test_newest_responder_wins(self):
        runner = MockRunner()
        runner.set_failure("brew")
        runner.set_output("brew", "--version", stdout="Homebrew 4.0")
        assert runner.execute("brew", "--version").stdout == "Homebrew 4.0"
        assert not runner.execute("brew", "install", "x").ok

    def test_sequence_last_code_repeats(self):
        runner = MockRunner()
        runner.set_sequence(("npm",), [1, 0])
        assert not runner.execute("npm", "i").ok
        assert runner.execute("npm", "i").ok
        assert runner.execute("npm", "i").ok

    def test_calls_to(self):
        runner = MockRunner()
        runner.execute("brew", "install", "a")
        runner.execute("npm", "install", "b")
        assert [c.command for c in runner.calls_to("npm")] == [["npm", "install", "b"]]

    def test_spawn_records_process(self):
        runner = MockRunner()
        proc = runner.spawn("ollama", "serve")
        proc.terminate()
        assert runner.spawned[0].terminated


# ── Filesystem ───────────────────────────────────────────────────────


class TestFilesystem:
    def test_tilde_resolves_against_home(self, fs: Filesystem, home: Path):
        assert fs.resolve("~/.zshrc") == home / ".zshrc"
        assert fs.resolve("~") == home
        assert fs.resolve("/etc/hosts") == Path("/etc/hosts")

    def test_app_installed(self, fs: Filesystem, fake_app):
        fake_app("Firefox")
        assert fs.app_installed("Firefox")
        assert not fs.app_installed("Zed")

    def test_which_uses_env_path(self, fs: Filesystem, fake_tool, bin_dir: Path):
        fake_tool("jq")
        assert fs.which("jq", env={"PATH": str(bin_dir)}) == str(bin_dir / "jq")
        assert fs.which("nope", env={"PATH": str(bin_dir)}) is None

    def test_merge_json_key_preserves_other_keys(self, fs: Filesystem, home: Path):
        settings = home / "settings.json"
        settings.write_text(json.dumps({"editor.tabSize": 2}))
        fs.merge_json_key("~/settings.json", "terminal.integrated.fontFamily", "MesloLGS NF")
        data = json.loads(settings.read_text())
        assert data == {"editor.tabSize": 2, "terminal.integrated.fontFamily": "MesloLGS NF"}

    def test_merge_json_key_creates_file(self, fs: Filesystem, home: Path):
        fs.merge_json_key("~/a/b/settings.json", "k", "v")
        assert json.loads((home / "a/b/settings.json").read_text()) == {"k": "v"}

    def test_config_has_key_json(self, fs: Filesystem, home: Path):
        (home / "s.json").write_text('{"a": 1}')
        assert fs.config_has_key("~/s.json", "a")
        assert not fs.config_has_key("~/s.json", "b")

    def test_config_has_key_text_ignores_comments(self, fs: Filesystem, home: Path):
        (home / "conf").write_text("# font-family = x\nother = 1\n")
        assert not fs.config_has_key("~/conf", "font-family")
        assert fs.config_has_key("~/conf", "other")

    def test_ensure_line_appends_once(self, fs: Filesystem, home: Path):
        (home / "conf").write_text("theme = dark")
        assert fs.ensure_line("~/conf", "font-family = MesloLGS NF", key="font-family")
        assert not fs.ensure_line("~/conf", "font-family = Other", key="font-family")
        assert (home / "conf").read_text() == "theme = dark\nfont-family = MesloLGS NF\n"

    def test_write_file_mode(self, fs: Filesystem, home: Path):
        path = fs.write_file("~/.ssh/config", "Host *\n", mode=0o600)
        assert path.read_text() == "Host *\n"
        assert path.stat().st_mode & 0o777 == 0o600
