"""Readiness gates for the Docker runtime behind the Colima socket."""

from __future__ import annotations

from pulse_controller.config import TimingBudgets
from pulse_controller.readiness import ProbeResult, ReadinessGate
from pulse_provisioner.docker import DockerRuntime

SOCKET_GATE = "docker socket"
API_GATE = "docker api"
STABILITY_GATE = "docker stability"
RECHECK_GATE = "docker recheck"


def socket_gate(runtime: DockerRuntime, timing: TimingBudgets) -> ReadinessGate:
    def probe() -> ProbeResult:
        if runtime.socket_present():
            return ProbeResult(True)
        return ProbeResult(False, f"{runtime.socket_path}: no such file or directory")

    return ReadinessGate(SOCKET_GATE, probe, timing.poll_interval, timing.socket_wait)


def api_gate(runtime: DockerRuntime, timing: TimingBudgets) -> ReadinessGate:
    def probe() -> ProbeResult:
        result = runtime.version()
        return ProbeResult(result.ok, "" if result.ok else result.tail())

    return ReadinessGate(API_GATE, probe, timing.poll_interval, timing.api_wait)


def deep_health_probe(runtime: DockerRuntime) -> ProbeResult:
    result = runtime.deep_health()
    return ProbeResult(result.ok, "" if result.ok else result.tail())


def stability_gate(runtime: DockerRuntime, timing: TimingBudgets) -> ReadinessGate:
    return ReadinessGate(
        STABILITY_GATE,
        lambda: deep_health_probe(runtime),
        timing.stable_poll_interval,
        timing.stable_wait,
        required_stable=timing.stable_required,
    )


def recheck_gate(runtime: DockerRuntime, budget: float, poll_interval: float = 2.0) -> ReadinessGate:
    """Quick presence-speed variant of the deep-health gate used after recovery steps."""
    return ReadinessGate(
        RECHECK_GATE,
        lambda: deep_health_probe(runtime),
        poll_interval,
        budget,
    )
