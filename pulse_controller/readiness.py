"""Readiness gates: poll a predicate until it holds N consecutive times or time runs out."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Union

from pulse_common.errors import ReadinessTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe; ``detail`` keeps failure text for classification."""

    ok: bool
    detail: str = ""


Predicate = Callable[[], Union[ProbeResult, bool]]


@dataclass(frozen=True)
class ReadinessGate:
    """A named predicate with its polling budget.

    ``required_stable=1`` gates observe presence; larger values form a
    stability window where any failed probe resets the counter to zero.
    """

    name: str
    predicate: Predicate
    poll_interval: float
    max_wait: float
    required_stable: int = 1

    def __post_init__(self) -> None:
        if self.required_stable < 1:
            raise ValueError("required_stable must be >= 1")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if self.max_wait < 0:
            raise ValueError("max_wait must be >= 0")


@dataclass(frozen=True)
class GateResult:
    name: str
    ok: bool
    probes: int
    consecutive: int
    elapsed: float
    last_failure: str = ""


def _normalize(outcome: Union[ProbeResult, bool]) -> ProbeResult:
    if isinstance(outcome, ProbeResult):
        return outcome
    return ProbeResult(ok=bool(outcome))


class GateRunner:
    """Single-threaded cooperative poller: probe, sleep, repeat."""

    def __init__(
        self,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sleep = sleep
        self._clock = clock

    def wait(self, gate: ReadinessGate) -> GateResult:
        start = self._clock()
        consecutive = 0
        probes = 0
        last_failure = ""
        while True:
            outcome = _normalize(gate.predicate())
            probes += 1
            if outcome.ok:
                consecutive += 1
            else:
                consecutive = 0
                last_failure = outcome.detail
            elapsed = self._clock() - start
            self._log_probe(gate, outcome.ok, consecutive, elapsed)

            if consecutive >= gate.required_stable:
                logger.info("Gate %s passed after %d probe(s)", gate.name, probes)
                return GateResult(gate.name, True, probes, consecutive, elapsed, last_failure)
            if elapsed >= gate.max_wait:
                logger.warning(
                    "Gate %s timed out after %.0fs (%d/%d stable)",
                    gate.name,
                    elapsed,
                    consecutive,
                    gate.required_stable,
                )
                return GateResult(gate.name, False, probes, consecutive, elapsed, last_failure)
            self._sleep(gate.poll_interval)

    def wait_or_raise(self, gate: ReadinessGate) -> GateResult:
        result = self.wait(gate)
        if not result.ok:
            raise ReadinessTimeoutError(
                f"Timed out waiting for {gate.name} after {gate.max_wait:.0f}s",
                context={
                    "gate": gate.name,
                    "probes": result.probes,
                    "consecutive": result.consecutive,
                    "required": gate.required_stable,
                    "last_failure": result.last_failure[-2000:],
                },
            )
        return result

    def _log_probe(self, gate: ReadinessGate, ok: bool, consecutive: int, elapsed: float) -> None:
        if gate.required_stable > 1:
            if ok:
                logger.info("  - %s %d/%d", gate.name, consecutive, gate.required_stable)
            else:
                logger.info("  - %s not fully stable yet", gate.name)
        elif not ok:
            logger.info("  ... %s %.0fs", gate.name, elapsed)
