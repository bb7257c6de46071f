"""Idempotent, retry-safe installation of declared container jobs."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from pulse_common.commands import CommandResult
from pulse_common.errors import ConfigurationError
from pulse_controller.classifier import ErrorClass, classify, match_marker
from pulse_controller.diagnostics import DiagnosticBundle, DiagnosticsCollector
from pulse_controller.identity import extract_identity, normalize_source, safe_identity
from pulse_controller.recovery import RecoveryPipeline
from pulse_controller.ui_interfaces import NoOpUIAdapter, UIAdapter
from pulse_provisioner.docker import DockerRuntime

logger = logging.getLogger(__name__)

DOC_SUFFIXES = {".md", ".txt", ".rst"}


class JobOutcome(str, Enum):
    SUCCESS = "success"
    TRANSIENT_EXHAUSTED = "transient_exhausted"
    FATAL = "fatal"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class AttemptRecord:
    number: int
    returncode: int
    output: str
    error_class: Optional[ErrorClass] = None
    log_path: Optional[Path] = None


@dataclass
class ContainerJob:
    """One declared installer script and everything learned while running it."""

    source: Path
    source_text: str
    identity: Optional[str]
    attempts: List[AttemptRecord] = field(default_factory=list)
    outcome: Optional[JobOutcome] = None
    skip_reason: str = ""
    read_error: str = ""
    diagnostics: Optional[DiagnosticBundle] = None

    @classmethod
    def from_path(cls, path: Path) -> "ContainerJob":
        try:
            raw = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Cannot read installer %s: %s", path, exc)
            return cls(source=path, source_text="", identity=None, read_error=str(exc))
        text = normalize_source(raw)
        return cls(source=path, source_text=text, identity=extract_identity(text))

    @property
    def name(self) -> str:
        return self.identity or self.source.name

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def failed(self) -> bool:
        return self.outcome in (JobOutcome.FATAL, JobOutcome.TRANSIENT_EXHAUSTED)


def is_candidate(path: Path) -> bool:
    """Regular, non-documentation, non-hidden file."""
    if not path.is_file() or path.name.startswith("."):
        return False
    if path.name.upper().startswith("README"):
        return False
    return path.suffix.lower() not in DOC_SUFFIXES


def scan_jobs(directory: Path) -> List[ContainerJob]:
    if not directory.is_dir():
        logger.info("Containers directory %s not found; no jobs", directory)
        return []
    try:
        entries = sorted(directory.iterdir())
    except OSError as exc:
        raise ConfigurationError(
            f"Cannot list containers directory {directory}: {exc}",
            context={"check": "containers dir", "path": directory},
            cause=exc,
        ) from exc
    return [ContainerJob.from_path(path) for path in entries if is_candidate(path)]


class ContainerInstaller:
    """Run jobs strictly in order; transient failures are routed through recovery."""

    def __init__(
        self,
        runtime: DockerRuntime,
        recovery: RecoveryPipeline,
        diagnostics: DiagnosticsCollector,
        attempt_log_dir: Path,
        *,
        backoff: float = 5.0,
        script_timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        ui: Optional[UIAdapter] = None,
    ) -> None:
        self.runtime = runtime
        self.recovery = recovery
        self.diagnostics = diagnostics
        self.attempt_log_dir = attempt_log_dir
        self.backoff = backoff
        self.script_timeout = script_timeout
        self._sleep = sleep
        self.ui = ui or NoOpUIAdapter()

    def _persist(self, job: ContainerJob, number: int, result: CommandResult) -> Optional[Path]:
        target = self.attempt_log_dir / safe_identity(job.name) / f"attempt-{number}.log"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.output, encoding="utf-8")
        except OSError as exc:
            logger.warning("Cannot persist attempt output to %s: %s", target, exc)
            return None
        return target

    def install(self, job: ContainerJob, tries: int) -> JobOutcome:
        if job.read_error:
            job.outcome = JobOutcome.FATAL
            self.ui.show_error(f"{job.source.name} unreadable: {job.read_error}")
            return job.outcome
        if not job.identity:
            job.outcome = JobOutcome.SKIPPED
            job.skip_reason = "no --name found"
            self.ui.show_warning(f"Skipping {job.source.name}: no --name found")
            return job.outcome

        for number in range(1, tries + 1):
            logger.info("Installing %s (attempt %d/%d)", job.identity, number, tries)
            self.runtime.remove_container(job.identity)
            result = self.runtime.run_script(job.source_text, timeout=self.script_timeout)
            log_path = self._persist(job, number, result)

            if result.ok:
                job.attempts.append(AttemptRecord(number, result.returncode, result.output, None, log_path))
                job.outcome = JobOutcome.SUCCESS
                self.ui.show_success(f"{job.identity} installed")
                return job.outcome

            error_class = classify(result.output)
            job.attempts.append(AttemptRecord(number, result.returncode, result.output, error_class, log_path))

            if error_class is ErrorClass.FATAL:
                self.ui.show_error(f"{job.identity} failed (non-transient, rc={result.returncode})")
                logger.error("%s failed:\n%s", job.identity, result.tail())
                job.outcome = JobOutcome.FATAL
                job.diagnostics = self.diagnostics.snapshot()
                return job.outcome

            marker = match_marker(result.output)
            self.ui.show_warning(f"{job.identity}: transient failure ({marker}); attempt {number}/{tries}")
            if number == tries:
                break
            recovered = self.recovery.recover(f"{job.identity}: {marker}")
            if not recovered.ok:
                job.outcome = JobOutcome.TRANSIENT_EXHAUSTED
                job.diagnostics = recovered.diagnostics
                self.ui.show_error(f"{job.identity}: runtime recovery exhausted")
                return job.outcome
            self._sleep(self.backoff)

        job.outcome = JobOutcome.TRANSIENT_EXHAUSTED
        job.diagnostics = self.diagnostics.snapshot()
        self.ui.show_error(f"{job.identity} failed after {tries} attempt(s)")
        return job.outcome

    def install_all(self, jobs: Sequence[ContainerJob], tries: int) -> List[ContainerJob]:
        for job in jobs:
            self.install(job, tries)
        return list(jobs)
