"""Two-phase process termination: TERM, bounded wait, KILL, verify."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List

from pulse_common.errors import ReaperError
from pulse_provisioner.processes import ProcessPattern, ProcessTable

logger = logging.getLogger(__name__)


class ReaperState(str, Enum):
    IDLE = "idle"
    TERMINATING = "terminating"
    KILLING = "killing"
    STOPPED = "stopped"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    ReaperState.IDLE: {ReaperState.TERMINATING},
    ReaperState.TERMINATING: {ReaperState.STOPPED, ReaperState.KILLING},
    ReaperState.KILLING: {ReaperState.STOPPED, ReaperState.FAILED},
    ReaperState.STOPPED: set(),
    ReaperState.FAILED: set(),
}


@dataclass
class ReapResult:
    state: ReaperState
    initial: List[str] = field(default_factory=list)
    survivors: List[str] = field(default_factory=list)
    escalated: bool = False

    @property
    def ok(self) -> bool:
        return self.state is ReaperState.STOPPED


def stack_patterns(colima_bin: str, user: str) -> List[ProcessPattern]:
    """Everything that belongs to a running Colima/Lima stack for ``user``."""
    return [
        ProcessPattern(f"{colima_bin} start"),
        ProcessPattern(f"{colima_bin} daemon start"),
        ProcessPattern("limactl"),
        ProcessPattern("qemu-system"),
        ProcessPattern("sshfs.*_lima"),
        ProcessPattern("ssh: .*_lima"),
        ProcessPattern("lima-colima"),
        ProcessPattern(f"/usr/bin/su - {user} -c", any_owner=True),
    ]


class ProcessReaper:
    """Escalating signal delivery with an explicit state machine."""

    def __init__(
        self,
        table: ProcessTable,
        *,
        sleep: Callable[[float], None] = time.sleep,
        final_poll: float = 1.0,
    ) -> None:
        self.table = table
        self._sleep = sleep
        self.final_poll = final_poll
        self.state = ReaperState.IDLE

    def _transition(self, new_state: ReaperState) -> None:
        allowed = _ALLOWED_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise ValueError(f"Invalid reaper transition {self.state} -> {new_state}")
        logger.debug("Reaper %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def kill(self, patterns: Iterable[ProcessPattern], grace_period: int) -> ReapResult:
        patterns = list(patterns)
        self.state = ReaperState.IDLE
        self._transition(ReaperState.TERMINATING)

        initial = self.table.matches(patterns)
        if initial:
            logger.info("Stopping %d stack process(es)", len(initial))
        self.table.signal_all(patterns, "TERM")

        remaining = self.table.matches(patterns)
        waited = 0
        while remaining and waited < grace_period:
            self._sleep(1)
            waited += 1
            remaining = self.table.matches(patterns)

        if not remaining:
            self._transition(ReaperState.STOPPED)
            return ReapResult(self.state, initial=initial)

        logger.warning("%d process(es) survived SIGTERM; sending SIGKILL", len(remaining))
        self._transition(ReaperState.KILLING)
        self.table.signal_all(patterns, "KILL")
        self._sleep(self.final_poll)
        survivors = self.table.matches(patterns)
        if survivors:
            self._transition(ReaperState.FAILED)
        else:
            self._transition(ReaperState.STOPPED)
        return ReapResult(self.state, initial=initial, survivors=survivors, escalated=True)

    def kill_or_raise(self, patterns: Iterable[ProcessPattern], grace_period: int) -> ReapResult:
        result = self.kill(patterns, grace_period)
        if not result.ok:
            raise ReaperError(
                "Stack processes survived SIGKILL. Reboot the host and re-run.",
                context={"survivors": result.survivors},
            )
        return result
