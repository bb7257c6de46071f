"""Operator-facing diagnostic bundle collected on unrecoverable failures."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from pulse_common.logging import raw_logger
from pulse_provisioner.colima import ColimaBackend
from pulse_provisioner.launchd import LaunchdSupervisor

logger = logging.getLogger(__name__)

VM_PROBE_SCRIPT = "ps aux | head -n 50; echo; df -h; echo; free -m 2>/dev/null || true"


@dataclass
class DiagnosticBundle:
    """Ordered sections of captured text keyed by title."""

    sections: Dict[str, str] = field(default_factory=dict)

    def add(self, title: str, text: str) -> None:
        self.sections[title] = text.rstrip() or "(no output)"

    def render(self) -> str:
        parts = []
        for title, text in self.sections.items():
            parts.append(f"===== {title} =====\n{text}")
        return "\n\n".join(parts)

    def __bool__(self) -> bool:
        return bool(self.sections)


class DiagnosticsCollector:
    """Gather supervisor status, backend status, log tail and an in-VM probe."""

    def __init__(
        self,
        supervisor: LaunchdSupervisor,
        backend: ColimaBackend,
        *,
        log_tail_lines: int = 200,
    ) -> None:
        self.supervisor = supervisor
        self.backend = backend
        self.log_tail_lines = log_tail_lines

    def collect(self, *, include_vm_probe: bool = True) -> DiagnosticBundle:
        bundle = DiagnosticBundle()
        bundle.add(f"launchctl print {self.supervisor.service_target}", self.supervisor.print_service().output)
        bundle.add("colima status --verbose", self.backend.status_verbose().output)
        bundle.add(
            f"tail -n {self.log_tail_lines} {self.supervisor.log_path}",
            self.supervisor.tail_log(self.log_tail_lines),
        )
        if include_vm_probe:
            bundle.add("in-VM ps/df/free", self.backend.ssh(VM_PROBE_SCRIPT).output)
        logger.warning("Collected diagnostics (%d sections)", len(bundle.sections))
        raw_logger().info("Diagnostics:\n%s", bundle.render())
        return bundle

    def snapshot(self) -> DiagnosticBundle:
        """Lighter bundle without the in-VM probe, for per-job failures."""
        return self.collect(include_vm_probe=False)
