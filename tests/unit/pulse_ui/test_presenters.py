"""Tests for the run, job and doctor presenters."""

from pathlib import Path

import pytest

from pulse_common.errors import SupervisionError
from pulse_controller.diagnostics import DiagnosticBundle
from pulse_controller.installer import AttemptRecord, ContainerJob, JobOutcome
from pulse_controller.lifecycle import Phase
from pulse_controller.orchestrator import RunReport
from pulse_ui.doctor import DoctorCheckGroup, DoctorCheckItem, DoctorReport
from pulse_ui.headless import HeadlessUIAdapter
from pulse_ui.presenters import job_rows, render_doctor_report, render_run_report

pytestmark = pytest.mark.unit_ui


def _job(name, outcome, rc=0, output="") -> ContainerJob:
    job = ContainerJob(Path(f"{name}.sh"), "", name, outcome=outcome)
    job.attempts.append(AttemptRecord(1, rc, output))
    return job


def test_successful_run_lists_running_containers() -> None:
    ui = HeadlessUIAdapter()
    report = RunReport(
        last_completed=Phase.DONE,
        jobs=[_job("web", JobOutcome.SUCCESS)],
        running_containers=["web"],
    )
    render_run_report(ui, report)
    assert [table.title for table in ui.recorded_tables] == ["Container jobs", "Running containers"]
    assert ui.recorded_messages[-1] == "SUCCESS: Done."


def test_empty_runtime_is_reported() -> None:
    ui = HeadlessUIAdapter()
    render_run_report(ui, RunReport(last_completed=Phase.DONE))
    assert "INFO: No running containers." in ui.recorded_messages


def test_aborted_run_names_phase_and_check() -> None:
    ui = HeadlessUIAdapter()
    error = SupervisionError(
        "launchctl bootstrap failed",
        context={"check": "bootstrap", "output": "Bootstrap failed: 5", "log_tail": "boom"},
    )
    report = RunReport(
        phase=Phase.SUPERVISION_INSTALLED,
        last_completed=Phase.BACKEND_VERIFIED,
        error=error,
        failing_check="bootstrap",
        diagnostics=DiagnosticBundle({"colima status --verbose": "stopped"}),
    )
    render_run_report(ui, report)

    panel = next(msg for msg in ui.recorded_messages if msg.startswith("PANEL[SupervisionError]"))
    assert "Last completed phase: Backend Verified" in panel
    assert "Failed during: Supervision Installed" in panel
    assert "Failing check: bootstrap" in panel
    assert "Bootstrap failed: 5" in panel
    assert any(msg.startswith("PANEL[Diagnostics]") for msg in ui.recorded_messages)
    assert ui.recorded_messages[-1] == "ERROR: Run aborted."


def test_failed_jobs_show_their_output() -> None:
    ui = HeadlessUIAdapter()
    report = RunReport(
        last_completed=Phase.DONE,
        jobs=[_job("api", JobOutcome.FATAL, 125, "pull access denied")],
    )
    render_run_report(ui, report)
    assert "PANEL[api output]: pull access denied" in ui.recorded_messages
    assert ui.recorded_messages[-1] == "ERROR: Done with 1 failed job(s)."


def test_job_rows() -> None:
    skipped = ContainerJob(Path("plain.sh"), "", None, outcome=JobOutcome.SKIPPED, skip_reason="no --name found")
    rows = job_rows([_job("api", JobOutcome.FATAL, 125), skipped])
    assert rows == [
        ["api.sh", "api", "fatal", "1", "rc=125"],
        ["plain.sh", "-", "skipped", "0", "no --name found"],
    ]


def test_doctor_report_failure() -> None:
    ui = HeadlessUIAdapter()
    group = DoctorCheckGroup("Host Tools", [DoctorCheckItem("plutil", False, True)], 1)
    ok = render_doctor_report(ui, DoctorReport([group], ["Python: 3.12"], 1))
    assert ok is False
    assert ui.recorded_tables[0].rows == [["plutil", "✗"]]
