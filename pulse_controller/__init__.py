"""Bring-up engine for a supervised Colima + Docker runtime."""

from pulse_controller.classifier import ErrorClass, classify
from pulse_controller.config import (
    DestructiveOptions,
    RunConfig,
    StableSettings,
    load_stable_settings,
)
from pulse_controller.identity import extract_identity
from pulse_controller.installer import ContainerInstaller, ContainerJob, JobOutcome, scan_jobs
from pulse_controller.lifecycle import Phase, PhaseTracker
from pulse_controller.orchestrator import LifecycleOrchestrator, OrchestratorDeps, RunReport
from pulse_controller.readiness import GateRunner, ProbeResult, ReadinessGate
from pulse_controller.reaper import ProcessReaper, ReaperState
from pulse_controller.recovery import RecoveryPipeline, RecoveryStep

__all__ = [
    "ContainerInstaller",
    "ContainerJob",
    "DestructiveOptions",
    "ErrorClass",
    "GateRunner",
    "JobOutcome",
    "LifecycleOrchestrator",
    "OrchestratorDeps",
    "Phase",
    "PhaseTracker",
    "ProbeResult",
    "ProcessReaper",
    "ReadinessGate",
    "ReaperState",
    "RecoveryPipeline",
    "RecoveryStep",
    "RunConfig",
    "RunReport",
    "StableSettings",
    "classify",
    "extract_identity",
    "load_stable_settings",
    "scan_jobs",
]
