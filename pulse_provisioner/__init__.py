"""Adapters for the external systems colima-pulse drives."""

from pulse_provisioner.backup import StateBackup
from pulse_provisioner.colima import BackendProbe, ColimaBackend, classify_backend_status
from pulse_provisioner.docker import DockerRuntime
from pulse_provisioner.host import HostContext, resolve_host
from pulse_provisioner.launchd import (
    LaunchdSupervisor,
    SupervisionDescriptor,
    foreground_descriptor,
)
from pulse_provisioner.processes import ProcessPattern, ProcessTable

__all__ = [
    "BackendProbe",
    "ColimaBackend",
    "DockerRuntime",
    "HostContext",
    "LaunchdSupervisor",
    "ProcessPattern",
    "ProcessTable",
    "StateBackup",
    "SupervisionDescriptor",
    "classify_backend_status",
    "foreground_descriptor",
    "resolve_host",
]
