"""
Retry with backoff, gated on network reachability.

Network-dependent installs (Homebrew, npm, git clone, model pulls)
retry a bounded number of times. Between attempts the NetworkGate waits
for a known-reachable endpoint to answer, falling back to asking the
user once its automatic polling budget is spent.

Gate states:

    POLLING ──(probe ok)──────────────────────────▶ reachable
       │
       └─(auto_attempts failed probes)─▶ EXHAUSTED_AUTO_RETRY
                                            │
                                            ▼
                                    AWAITING_USER_CHOICE ──(yes)──▶ POLLING
                                            │
                                            └──(no / no terminal)──▶ unreachable
"""

from __future__ import annotations

import logging
import random
import time
import urllib.request
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from macsetup.adapters.base import CommandResult, Runner

logger = logging.getLogger(__name__)

REACHABILITY_URL = "https://captive.apple.com/hotspot-detect.html"

Sleep = Callable[[float], None]
Prompt = Callable[[str], bool]


def check_reachable(url: str = REACHABILITY_URL, timeout: float = 5) -> bool:
    """HEAD a well-known endpoint; any HTTP answer counts as online."""
    req = urllib.request.Request(
        url,
        method="HEAD",
        headers={"User-Agent": "macsetup/1.0"},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout):
            return True
    except Exception as exc:
        logger.debug("Reachability probe to %s failed: %s", url, exc)
        return False


class GateState(str, Enum):
    POLLING = "polling"
    EXHAUSTED_AUTO_RETRY = "exhausted_auto_retry"
    AWAITING_USER_CHOICE = "awaiting_user_choice"


@dataclass
class NetworkGate:
    """Bounded wait for network reachability with an interactive fallback.

    Args:
        probe: Returns True when the network is usable.
        prompt: Asks the user whether to keep waiting. None means no
            interactive terminal: the wait ends once auto-polling is spent.
        auto_attempts: Probes per polling round before asking the user.
        interval: Seconds between probes.
        sleep: Injected for tests.
    """

    probe: Callable[[], bool] = check_reachable
    prompt: Prompt | None = None
    auto_attempts: int = 10
    interval: float = 3.0
    sleep: Sleep = time.sleep
    state: GateState = field(default=GateState.POLLING, init=False)

    def wait(self) -> bool:
        """Block until reachable (True) or the user gives up (False)."""
        self.state = GateState.POLLING
        failures = 0

        while True:
            if self.state is GateState.POLLING:
                if self.probe():
                    return True
                failures += 1
                if failures >= self.auto_attempts:
                    self.state = GateState.EXHAUSTED_AUTO_RETRY
                else:
                    logger.info(
                        "Network unreachable, retrying in %.0fs (%d/%d)",
                        self.interval,
                        failures,
                        self.auto_attempts,
                    )
                    self.sleep(self.interval)

            elif self.state is GateState.EXHAUSTED_AUTO_RETRY:
                if self.prompt is None:
                    logger.warning(
                        "Network still unreachable after %d checks", self.auto_attempts
                    )
                    return False
                self.state = GateState.AWAITING_USER_CHOICE

            elif self.state is GateState.AWAITING_USER_CHOICE:
                if self.prompt("Network is unreachable. Keep waiting?"):
                    failures = 0
                    self.state = GateState.POLLING
                else:
                    return False


def backoff_delay(attempt: int, base_delay: float = 2.0, max_delay: float = 60.0) -> float:
    """Exponential backoff with up to 30% jitter for the given attempt (1-based)."""
    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
    return delay + random.uniform(0, delay * 0.3)


@dataclass
class RetryResult:
    """Final result of a retried command and how many times it ran."""

    result: CommandResult
    attempts: int

    @property
    def ok(self) -> bool:
        return self.result.ok


def execute_with_retry(
    runner: Runner,
    command: str,
    *args: str,
    max_attempts: int = 3,
    gate: NetworkGate | None = None,
    env: Mapping[str, str] | None = None,
    input: str | None = None,
    sleep: Sleep = time.sleep,
    base_delay: float = 2.0,
) -> RetryResult:
    """Run a command, retrying non-zero exits up to ``max_attempts`` times.

    Never raises: after the last attempt (or when the network gate gives
    up) the final failing result is returned.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 0
    while True:
        attempt += 1
        result = runner.execute(command, *args, env=env, input=input)
        if result.ok:
            if attempt > 1:
                logger.info("`%s` succeeded on attempt %d", result.display, attempt)
            return RetryResult(result=result, attempts=attempt)

        if attempt >= max_attempts:
            logger.warning(
                "`%s` failed after %d attempts (exit %d)",
                result.display,
                attempt,
                result.exit_code,
            )
            return RetryResult(result=result, attempts=attempt)

        logger.warning(
            "`%s` failed (exit %d), attempt %d/%d",
            result.display,
            result.exit_code,
            attempt,
            max_attempts,
        )
        if gate is not None and not gate.wait():
            logger.warning("Giving up on `%s`: network unavailable", result.display)
            return RetryResult(result=result, attempts=attempt)

        sleep(backoff_delay(attempt, base_delay=base_delay))


def wait_until(
    predicate: Callable[[], bool],
    attempts: int,
    interval: float,
    sleep: Sleep = time.sleep,
    on_wait: Callable[[int], None] | None = None,
) -> bool:
    """Poll ``predicate`` up to ``attempts`` times; True once it holds."""
    for i in range(1, attempts + 1):
        if predicate():
            return True
        if on_wait is not None:
            on_wait(i)
        if i < attempts:
            sleep(interval)
    return False
