"""Escalating recovery pipeline for a flapping Docker runtime."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from pulse_common.errors import PulseError
from pulse_controller.diagnostics import DiagnosticBundle, DiagnosticsCollector
from pulse_controller.readiness import GateResult
from pulse_provisioner.colima import ColimaBackend
from pulse_provisioner.launchd import LaunchdSupervisor

logger = logging.getLogger(__name__)

IN_VM_RESTART_SCRIPTS = (
    "sudo systemctl restart containerd docker",
    "sudo service containerd restart; sudo service docker restart",
    "sudo rc-service containerd restart; sudo rc-service docker restart",
)


@dataclass
class BestEffortOutcome:
    """Result of attempting every variant of an action and ignoring individual failures."""

    attempted: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def any_succeeded(self) -> bool:
        return self.attempted > len(self.failures)


@dataclass(frozen=True)
class RecoveryStep:
    name: str
    action: Callable[[], Optional[BestEffortOutcome]]
    recheck_budget: float


@dataclass
class RecoveryResult:
    ok: bool
    reason: str
    steps_run: List[str] = field(default_factory=list)
    succeeded_step: Optional[str] = None
    diagnostics: Optional[DiagnosticBundle] = None


Recheck = Callable[[float], GateResult]


class RecoveryPipeline:
    """Walk the steps in order; stop at the first whose recheck passes."""

    def __init__(
        self,
        steps: Sequence[RecoveryStep],
        recheck: Recheck,
        diagnostics: DiagnosticsCollector,
    ) -> None:
        self.steps = tuple(steps)
        self.recheck = recheck
        self.diagnostics = diagnostics

    def recover(self, reason: str) -> RecoveryResult:
        logger.warning("Runtime unhealthy (%s); starting recovery", reason)
        result = RecoveryResult(ok=False, reason=reason)
        for index, step in enumerate(self.steps, start=1):
            logger.info("Recovery step %d/%d: %s", index, len(self.steps), step.name)
            result.steps_run.append(step.name)
            try:
                outcome = step.action()
            except PulseError as exc:
                logger.warning("Recovery step %s raised: %s", step.name, exc)
            else:
                if outcome is not None and outcome.failures:
                    logger.debug(
                        "Recovery step %s: %d/%d variants failed",
                        step.name,
                        len(outcome.failures),
                        outcome.attempted,
                    )
            if self.recheck(step.recheck_budget).ok:
                logger.info("Runtime recovered after step: %s", step.name)
                result.ok = True
                result.succeeded_step = step.name
                return result

        logger.error("Recovery exhausted after %d step(s)", len(self.steps))
        result.diagnostics = self.diagnostics.collect()
        return result


def restart_in_vm_services(backend: ColimaBackend) -> BestEffortOutcome:
    outcome = BestEffortOutcome()
    for script in IN_VM_RESTART_SCRIPTS:
        outcome.attempted += 1
        result = backend.ssh(script)
        if not result.ok:
            outcome.failures.append(f"{script}: rc={result.returncode}")
    return outcome


def default_steps(
    backend: ColimaBackend,
    supervisor: LaunchdSupervisor,
    budgets: Sequence[float] = (15.0, 45.0, 90.0),
) -> List[RecoveryStep]:
    short, medium, long = budgets

    def kickstart() -> BestEffortOutcome:
        result = supervisor.kickstart()
        return BestEffortOutcome(1, [] if result.ok else [result.tail()])

    def stop_then_kickstart() -> BestEffortOutcome:
        stopped = backend.stop()
        kicked = supervisor.kickstart()
        failures = [r.tail() for r in (stopped, kicked) if not r.ok]
        return BestEffortOutcome(2, failures)

    return [
        RecoveryStep("restart in-VM docker/containerd", lambda: restart_in_vm_services(backend), short),
        RecoveryStep("kickstart supervision", kickstart, medium),
        RecoveryStep("stop backend and kickstart", stop_then_kickstart, long),
    ]
