"""
Shared test fixtures and configuration.

Nothing here touches the real machine: commands go to a MockRunner,
``~`` resolves inside ``tmp_path`` and PATH lookups only see a private
bin directory populated with ``fake_tool``.
"""

from pathlib import Path

import pytest

from macsetup.adapters.mock import MockRunner
from macsetup.adapters.shell.filesystem import Filesystem
from macsetup.core.context import RunContext
from macsetup.core.observability.transcript import Transcript


class Echo:
    """Captures what a Transcript prints."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.errors: list[str] = []

    def __call__(self, message: str = "", fg=None, bold=False, err=False, **kwargs) -> None:
        self.lines.append(message)
        if err:
            self.errors.append(message)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def applications(tmp_path: Path) -> Path:
    path = tmp_path / "Applications"
    path.mkdir()
    return path


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def fake_tool(bin_dir: Path):
    """Create executables visible to ``ctx.which``."""

    def _make(*names: str) -> None:
        for name in names:
            tool = bin_dir / name
            tool.write_text("#!/bin/sh\nexit 0\n")
            tool.chmod(0o755)

    return _make


@pytest.fixture
def fake_app(applications: Path):
    def _make(*names: str) -> None:
        for name in names:
            (applications / f"{name}.app").mkdir()

    return _make


@pytest.fixture
def fs(home: Path, applications: Path) -> Filesystem:
    return Filesystem(home=home, applications_dir=applications)


@pytest.fixture
def runner() -> MockRunner:
    return MockRunner()


@pytest.fixture
def echo() -> Echo:
    return Echo()


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    return tmp_path / "mac-setup.log"


@pytest.fixture
def transcript(log_file: Path, echo: Echo):
    t = Transcript(path=log_file, echo=echo)
    yield t
    t.close()


@pytest.fixture
def ctx(runner: MockRunner, transcript: Transcript, fs: Filesystem, bin_dir: Path) -> RunContext:
    return RunContext(
        runner=runner,
        transcript=transcript,
        fs=fs,
        env={"PATH": str(bin_dir)},
        brew_prefix="/opt/homebrew",
        sleep=lambda _: None,
    )
