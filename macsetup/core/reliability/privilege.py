"""
Sudo keep-alive — refresh the sudo timestamp for the whole run.

Several phases call ``sudo`` minutes apart (firewall, Xcode license,
the JDK symlink). Asking once up front and refreshing the timestamp in
a background thread keeps the run unattended. The thread is a scoped
resource: ``stop()`` runs on every exit path via the context manager.
"""

from __future__ import annotations

import logging
import threading

from macsetup.adapters.base import Runner

logger = logging.getLogger(__name__)


class SudoKeepAlive:
    """Periodically run ``sudo -n true`` until stopped."""

    def __init__(self, runner: Runner, interval: float = 60.0) -> None:
        self._runner = runner
        self._interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.refreshes = 0

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Prompt for the password once and start refreshing.

        Returns False (and starts nothing) if sudo could not be acquired;
        individual sudo steps will then fail and be reported on their own.
        """
        result = self._runner.execute("sudo", "-v")
        if not result.ok:
            logger.warning("Could not acquire sudo (exit %d)", result.exit_code)
            return False

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="sudo-keepalive",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Sudo keep-alive started (every %.0fs)", self._interval)
        return True

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            result = self._runner.execute("sudo", "-n", "true")
            self.refreshes += 1
            if not result.ok:
                logger.debug("Sudo refresh failed (exit %d)", result.exit_code)

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval + 1)
            self._thread = None
            logger.debug("Sudo keep-alive stopped")

    def __enter__(self) -> SudoKeepAlive:
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()
