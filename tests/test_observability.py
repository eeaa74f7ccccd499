"""
Tests for observability — the run transcript and logging setup.
"""

import logging
from pathlib import Path

from macsetup.core.observability.logging_config import _parse_level, setup_logging
from macsetup.core.observability.transcript import (
    LOG_FILE_ENV_VAR,
    Transcript,
    default_log_path,
)


class TestTranscript:
    def test_lines_echoed_and_appended(self, tmp_path: Path, echo):
        log = tmp_path / "mac-setup.log"
        with Transcript(path=log, echo=echo) as t:
            t.start("Phase 2: Shell Configuration")
            t.success("Completed: Phase 2: Shell Configuration")
        assert echo.lines == [
            "▶ Starting: Phase 2: Shell Configuration",
            "✅ Completed: Phase 2: Shell Configuration",
        ]
        assert log.read_text(encoding="utf-8").splitlines() == echo.lines

    def test_repeated_runs_accumulate(self, tmp_path: Path, echo):
        log = tmp_path / "mac-setup.log"
        with Transcript(path=log, echo=echo) as t:
            t.line("first run")
        with Transcript(path=log, echo=echo) as t:
            t.line("second run")
        assert log.read_text(encoding="utf-8").splitlines() == ["first run", "second run"]

    def test_failures_and_warnings_go_to_stderr(self, echo):
        t = Transcript(echo=echo)
        t.failure("boom")
        t.warning("careful")
        t.skip("Skipped: Phase 8: Browsers")
        assert echo.errors == ["❌ boom", "⚠️  careful"]
        assert "⊘ Skipped: Phase 8: Browsers" in echo.lines

    def test_no_path_means_terminal_only(self, echo):
        t = Transcript(echo=echo)
        t.info("hello")
        t.close()
        assert t.path is None
        assert echo.lines == ["ℹ️  hello"]

    def test_instances_do_not_share_handlers(self, tmp_path: Path, echo):
        a = Transcript(path=tmp_path / "a.log", echo=echo)
        b = Transcript(path=tmp_path / "b.log", echo=echo)
        a.line("only a")
        a.close()
        b.close()
        assert (tmp_path / "b.log").read_text() == ""

    def test_no_logger_registered_per_instance(self, tmp_path: Path, echo):
        before = set(logging.root.manager.loggerDict)
        for n in range(3):
            with Transcript(path=tmp_path / f"{n}.log", echo=echo) as t:
                t.line("run")
        assert set(logging.root.manager.loggerDict) == before

    def test_percent_signs_written_verbatim(self, tmp_path: Path, echo):
        log = tmp_path / "mac-setup.log"
        with Transcript(path=log, echo=echo) as t:
            t.line("disk 95% full (%s)")
        assert log.read_text(encoding="utf-8") == "disk 95% full (%s)\n"

    def test_lines_after_close_stay_on_terminal(self, tmp_path: Path, echo):
        log = tmp_path / "mac-setup.log"
        t = Transcript(path=log, echo=echo)
        t.close()
        t.line("late")
        assert echo.lines == ["late"]
        assert log.read_text(encoding="utf-8") == ""

    def test_default_log_path(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv(LOG_FILE_ENV_VAR, raising=False)
        assert default_log_path(tmp_path) == tmp_path / "mac-setup.log"
        monkeypatch.setenv(LOG_FILE_ENV_VAR, str(tmp_path / "custom.log"))
        assert default_log_path(tmp_path) == tmp_path / "custom.log"


class TestSetupLogging:
    def test_parse_level(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("nonsense") == logging.WARNING
        assert _parse_level(None) == logging.WARNING

    def test_console_level(self):
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_file_handler_forces_debug(self, tmp_path: Path):
        log_file = tmp_path / "debug.log"
        setup_logging(level="WARNING", log_file=str(log_file))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("macsetup.test").debug("diagnostic detail")
        for handler in root.handlers:
            handler.flush()
        assert "diagnostic detail" in log_file.read_text()
        setup_logging(level="WARNING")

    def test_library_loggers_follow_root(self):
        setup_logging(level="INFO")
        library = logging.getLogger("urllib3")
        assert library.level == logging.NOTSET
        assert library.getEffectiveLevel() == logging.INFO

    def test_repeated_setup_replaces_handlers(self):
        setup_logging(level="INFO")
        setup_logging(level="DEBUG")
        assert len(logging.getLogger().handlers) == 1
        setup_logging(level="WARNING")
