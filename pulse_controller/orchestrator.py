"""Lifecycle orchestrator: sequences the bring-up phases for one run."""

from __future__ import annotations

import logging
import time
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from pulse_common.commands import CommandRunner
from pulse_common.errors import (
    BackendVerificationError,
    ConfigurationError,
    ForbiddenBackendError,
    GuardRefusalError,
    ProvisioningError,
    PulseError,
    ReadinessTimeoutError,
    SupervisionError,
)
from pulse_controller.classifier import ErrorClass, classify, match_marker
from pulse_controller.config import FORBIDDEN_BACKENDS, ChoiceMode, PruneMode, RunConfig
from pulse_controller.diagnostics import DiagnosticBundle, DiagnosticsCollector
from pulse_controller.gates import (
    STABILITY_GATE,
    api_gate,
    recheck_gate,
    socket_gate,
    stability_gate,
)
from pulse_controller.guard import GuardDecision, PreflightGuard
from pulse_controller.installer import ContainerInstaller, ContainerJob, scan_jobs
from pulse_controller.keepalive import PrivilegeKeepalive
from pulse_controller.lifecycle import Phase, PhaseTracker
from pulse_controller.readiness import GateRunner, ProbeResult, ReadinessGate
from pulse_controller.reaper import ProcessReaper, stack_patterns
from pulse_controller.recovery import RecoveryPipeline, default_steps
from pulse_controller.ui_interfaces import UIAdapter
from pulse_provisioner.backup import StateBackup
from pulse_provisioner.colima import BackendProbe, ColimaBackend, classify_backend_status
from pulse_provisioner.docker import DockerRuntime
from pulse_provisioner.host import HostContext, resolve_host
from pulse_provisioner.launchd import (
    LaunchdSupervisor,
    foreground_descriptor,
    operator_log_owner,
)
from pulse_provisioner.processes import ProcessTable

logger = logging.getLogger(__name__)

BACKEND_GATE = "backend type"
EXIT_OK = 0
EXIT_PHASE_FAILED = 1
EXIT_JOBS_FAILED = 2
EXIT_REFUSED = 3


@dataclass
class RunReport:
    """Everything an operator needs after a run, successful or not."""

    phase: Optional[Phase] = None
    last_completed: Optional[Phase] = None
    error: Optional[PulseError] = None
    failing_check: str = ""
    jobs: List[ContainerJob] = field(default_factory=list)
    diagnostics: Optional[DiagnosticBundle] = None
    reset_performed: bool = False
    backups: List[Path] = field(default_factory=list)
    running_containers: List[str] = field(default_factory=list)

    @property
    def reached_done(self) -> bool:
        return self.last_completed is Phase.DONE

    @property
    def failed_jobs(self) -> List[ContainerJob]:
        return [job for job in self.jobs if job.failed]

    @property
    def exit_code(self) -> int:
        if isinstance(self.error, (GuardRefusalError, ConfigurationError)):
            return EXIT_REFUSED
        if self.error is not None or not self.reached_done:
            return EXIT_PHASE_FAILED
        if self.failed_jobs:
            return EXIT_JOBS_FAILED
        return EXIT_OK


@dataclass
class OrchestratorDeps:
    """External collaborators, injectable for tests."""

    host: HostContext
    backend: ColimaBackend
    runtime: DockerRuntime
    supervisor: LaunchdSupervisor
    processes: ProcessTable
    backup: StateBackup
    ui: UIAdapter
    keepalive: Optional[PrivilegeKeepalive] = None
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic


class LifecycleOrchestrator:
    """Run the phases in order; any non-best-effort failure aborts the run."""

    def __init__(self, config: RunConfig, deps: OrchestratorDeps) -> None:
        self.config = config
        self.settings = config.settings
        self.deps = deps
        self.ui = deps.ui
        self.tracker = PhaseTracker()
        self.tracker.register_callback(self._on_phase)
        self.decision: Optional[GuardDecision] = None

        timing = self.settings.timing
        self.gates = GateRunner(sleep=deps.sleep, clock=deps.clock)
        self.reaper = ProcessReaper(deps.processes, sleep=deps.sleep)
        self.diagnostics = DiagnosticsCollector(deps.supervisor, deps.backend)
        self.recovery = RecoveryPipeline(
            default_steps(deps.backend, deps.supervisor, timing.recheck_budgets),
            recheck=lambda budget: self.gates.wait(
                recheck_gate(deps.runtime, budget, timing.poll_interval)
            ),
            diagnostics=self.diagnostics,
        )
        self.installer = ContainerInstaller(
            deps.runtime,
            self.recovery,
            self.diagnostics,
            self.settings.resolved_attempt_log_dir,
            backoff=self.settings.retries.job_backoff,
            script_timeout=self.settings.retries.job_timeout,
            sleep=deps.sleep,
            ui=deps.ui,
        )

    @classmethod
    def from_config(
        cls,
        config: RunConfig,
        ui: UIAdapter,
        *,
        runner: CommandRunner | None = None,
        host: HostContext | None = None,
    ) -> "LifecycleOrchestrator":
        """Wire the real CLI adapters for ``config``."""
        settings = config.settings
        runner = runner or CommandRunner()
        host = host or resolve_host(settings.user)
        deps = OrchestratorDeps(
            host=host,
            backend=ColimaBackend(runner, host, settings.profile),
            runtime=DockerRuntime(runner, host.docker_bin, config.socket_path(host.home)),
            supervisor=LaunchdSupervisor(
                runner,
                host,
                settings.label,
                settings.log_path,
                log_owner=operator_log_owner(),
            ),
            processes=ProcessTable(runner, host),
            backup=StateBackup(settings.backup_dir, settings.profile),
            ui=ui,
            keepalive=PrivilegeKeepalive(
                runner, interval=settings.retries.keepalive_interval, enabled=host.use_sudo
            ),
        )
        return cls(config, deps)

    def _on_phase(self, phase: Phase, completed: bool) -> None:
        if completed:
            logger.debug("Phase %s completed", phase.value)
        else:
            self.ui.show_rule(phase.title)

    def _keepalive(self) -> AbstractContextManager:
        return self.deps.keepalive if self.deps.keepalive is not None else nullcontext()

    def run(self) -> RunReport:
        report = RunReport()
        try:
            self._preflight_guard()
            with self._keepalive():
                self._kill_stack()
                self._provision(report)
                self._verify_backend()
                self._install_supervision()
                self._await_runtime(report)
                self._install_containers(report)
                self.tracker.begin(Phase.DONE)
                self.tracker.complete()
        except PulseError as exc:
            report.error = exc
            report.failing_check = exc.failing_check
            logger.error("Run failed during %s: %s", self._phase_name(), exc)
        except KeyboardInterrupt:
            report.error = PulseError("Interrupted by operator", context={"phase": self._phase_name()})
            report.failing_check = "interrupted"
            logger.error("Run interrupted during %s", self._phase_name())
        report.phase = self.tracker.current
        report.last_completed = self.tracker.last_completed
        return report

    def _phase_name(self) -> str:
        return self.tracker.current.value if self.tracker.current else "startup"

    def _preflight_guard(self) -> None:
        self.tracker.begin(Phase.PREFLIGHT_GUARD)
        self.decision = PreflightGuard(self.ui).evaluate(self.config)
        if self.decision.destructive:
            self.ui.show_warning(f"Reset confirmed ({self.decision.confirmed_by.value})")
        self.tracker.complete()

    def _clean_other_daemons(self) -> None:
        supervisor = self.deps.supervisor
        labels = supervisor.list_labels("colima")
        if not labels:
            return
        mode = self.settings.clean_other_daemons
        if mode is ChoiceMode.FALSE:
            logger.info("Leaving other colima services in place: %s", ", ".join(labels))
            return
        if mode is ChoiceMode.PROMPT and self.ui.is_interactive():
            if not self.ui.confirm(f"Remove other colima services ({', '.join(labels)})?", default=True):
                return
        for label in labels:
            logger.info("Removing launchd service %s", label)
            supervisor.remove_label(label)

    def _kill_stack(self) -> None:
        self.tracker.begin(Phase.STACK_KILLED)
        deps = self.deps
        self._clean_other_daemons()
        deps.supervisor.bootout_remove()
        deps.supervisor.delete_descriptor()
        deps.backend.stop()
        result = self.reaper.kill_or_raise(
            stack_patterns(deps.host.colima_bin, deps.host.user),
            self.settings.timing.reap_grace,
        )
        if not result.initial:
            logger.info("No stack processes were running")
        self.tracker.complete()

    def _backup_sources(self) -> list[tuple[str, Path]]:
        include = {
            "dotcolima": self.settings.backup_include_dot_colima,
            "configcolima": self.settings.backup_include_config_colima,
        }
        return [(tag, path) for tag, path in self.deps.backend.state_dirs() if include.get(tag, True)]

    def _provision(self, report: RunReport) -> None:
        self.tracker.begin(Phase.PROVISIONING)
        backend = self.deps.backend
        if self.decision is not None and self.decision.destructive:
            if self.decision.backup:
                report.backups = self.deps.backup.archive(self._backup_sources())
            backend.delete()
            backend.purge_state([path for _, path in backend.state_dirs()])
            report.reset_performed = True
        else:
            logger.info("Restart only; state directories preserved")

        settings = self.settings
        result = backend.start(
            runtime=settings.runtime.value,
            vm_type=settings.vm_type.value,
            cpus=settings.resources.cpus,
            memory=settings.resources.memory_gib,
            disk=settings.resources.disk_gib,
        )
        if not result.ok:
            raise ProvisioningError(
                "colima start failed",
                context={"check": "colima start", "returncode": result.returncode, "output": result.tail()},
            )
        self.tracker.complete()

    def _verify_backend(self) -> None:
        self.tracker.begin(Phase.BACKEND_VERIFIED)
        backend = self.deps.backend
        required = self.settings.vm_type.value
        forbidden = [item.value for item in FORBIDDEN_BACKENDS]

        def probe() -> ProbeResult:
            status = backend.status_verbose()
            verdict = classify_backend_status(status.output, required, forbidden)
            if verdict is BackendProbe.FORBIDDEN:
                raise ForbiddenBackendError(
                    f"Backend reports a forbidden VM type; {required} is required",
                    context={"check": BACKEND_GATE, "status": status.tail()},
                )
            return ProbeResult(verdict is BackendProbe.CONFIRMED, status.tail())

        timing = self.settings.timing
        result = self.gates.wait(
            ReadinessGate(BACKEND_GATE, probe, timing.verify_poll_interval, timing.verify_wait)
        )
        if not result.ok:
            raise BackendVerificationError(
                f"Could not confirm vmType={required} within {timing.verify_wait:.0f}s",
                context={"check": BACKEND_GATE, "status": result.last_failure},
            )
        self.ui.show_success(f"Backend verified: {required}")
        backend.stop()
        self.tracker.complete()

    def _install_supervision(self) -> None:
        self.tracker.begin(Phase.SUPERVISION_INSTALLED)
        deps = self.deps
        supervisor = deps.supervisor
        supervisor.bootout_remove()
        descriptor = foreground_descriptor(
            label=self.settings.label,
            user=deps.host.user,
            home=deps.host.home,
            command=deps.backend.foreground_command(
                runtime=self.settings.runtime.value, vm_type=self.settings.vm_type.value
            ),
            log_path=self.settings.log_path,
        )
        supervisor.install(descriptor)

        result = supervisor.bootstrap()
        if not result.ok:
            raise SupervisionError(
                "launchctl bootstrap failed",
                context={"check": "bootstrap", "output": result.tail(), "log_tail": supervisor.tail_log(60)},
            )
        supervisor.enable()
        result = supervisor.kickstart()
        if not result.ok:
            raise SupervisionError(
                "launchctl kickstart failed",
                context={
                    "check": "kickstart",
                    "output": result.tail(),
                    "service": supervisor.print_service().tail(),
                    "log_tail": supervisor.tail_log(60),
                },
            )
        self.tracker.complete()

    def _await_runtime(self, report: RunReport) -> None:
        self.tracker.begin(Phase.RUNTIME_STABLE)
        runtime = self.deps.runtime
        timing = self.settings.timing
        self.gates.wait_or_raise(socket_gate(runtime, timing))
        self.gates.wait_or_raise(api_gate(runtime, timing))

        result = self.gates.wait(stability_gate(runtime, timing))
        if not result.ok:
            if classify(result.last_failure) is not ErrorClass.TRANSIENT:
                raise ReadinessTimeoutError(
                    f"Docker did not stabilize within {timing.stable_wait:.0f}s",
                    context={"gate": STABILITY_GATE, "last_failure": result.last_failure[-2000:]},
                )
            recovered = self.recovery.recover(f"stability: {match_marker(result.last_failure)}")
            if not recovered.ok:
                report.diagnostics = recovered.diagnostics
                raise ReadinessTimeoutError(
                    "Docker did not stabilize and recovery was exhausted",
                    context={"gate": STABILITY_GATE, "steps": recovered.steps_run},
                )
            self.gates.wait_or_raise(stability_gate(runtime, timing))
        self.ui.show_success("Docker is stable")
        self._prune()
        self.tracker.complete()

    def _prune(self) -> None:
        mode = self.config.effective_prune_mode()
        runtime = self.deps.runtime
        if mode is PruneMode.NONE:
            return
        if mode is PruneMode.AGGRESSIVE:
            force_yes = self.config.destructive.force_yes
            if not self.ui.is_interactive() and not force_yes:
                self.ui.show_warning("Skipping aggressive prune: non-interactive run without --yes")
                return
            if self.ui.is_interactive() and not force_yes:
                if not self.ui.confirm("Run docker system prune -af --volumes?", default=False):
                    return
        logger.info("Pruning docker (%s)", mode.value)
        try:
            result = runtime.system_prune() if mode is PruneMode.AGGRESSIVE else runtime.image_prune()
        except PulseError as exc:
            self.ui.show_warning(f"Prune could not run: {exc}")
            return
        if not result.ok:
            self.ui.show_warning(f"Prune failed (rc={result.returncode}); continuing")

    def _install_containers(self, report: RunReport) -> None:
        self.tracker.begin(Phase.CONTAINERS_INSTALLED)
        jobs = scan_jobs(self.settings.containers_dir)
        if not jobs:
            self.ui.show_info(f"No container jobs in {self.settings.containers_dir}")
        report.jobs = self.installer.install_all(jobs, self.settings.retries.job_tries)
        report.running_containers = self.deps.runtime.container_names()
        self.tracker.complete()
