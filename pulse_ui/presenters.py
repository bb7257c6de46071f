"""Presenters turning controller results into UI calls."""

from __future__ import annotations

from typing import List, Sequence

from pulse_common.errors import error_to_payload
from pulse_controller.installer import ContainerJob
from pulse_controller.orchestrator import RunReport
from pulse_controller.ui_interfaces import UIAdapter
from pulse_ui.doctor import DoctorReport


def render_doctor_report(ui: UIAdapter, report: DoctorReport) -> bool:
    """
    Render a doctor report to the provided UI.

    Returns True when all required checks passed.
    """
    for group in report.groups:
        rows = [[item.label, "✓" if item.ok else "✗"] for item in group.items]
        ui.show_table(group.title, ["Item", "Status"], rows)

    for msg in report.info_messages:
        ui.show_info(msg)

    if report.total_failures > 0:
        ui.show_error(f"Found {report.total_failures} failures.")
        return False

    ui.show_success("All checks passed.")
    return True


def job_rows(jobs: Sequence[ContainerJob]) -> List[List[str]]:
    rows = []
    for job in jobs:
        outcome = job.outcome.value if job.outcome else "pending"
        detail = job.skip_reason or job.read_error
        if job.attempts and not detail:
            detail = f"rc={job.attempts[-1].returncode}"
        rows.append([job.source.name, job.identity or "-", outcome, str(job.attempt_count), detail])
    return rows


def render_jobs(ui: UIAdapter, jobs: Sequence[ContainerJob], title: str = "Container jobs") -> None:
    if not jobs:
        ui.show_info("No container jobs declared.")
        return
    ui.show_table(title, ["Source", "Identity", "Outcome", "Attempts", "Detail"], job_rows(jobs))


def _scan_label(job: ContainerJob) -> str:
    if job.identity:
        return job.identity
    if job.read_error:
        return f"unreadable ({job.read_error})"
    return "skip (no --name)"


def render_scan(ui: UIAdapter, jobs: Sequence[ContainerJob]) -> None:
    """Identity preview for ``jobs``: no runtime is touched."""
    if not jobs:
        ui.show_info("No candidate installer files found.")
        return
    rows = [[job.source.name, _scan_label(job)] for job in jobs]
    ui.show_table("Declared jobs", ["Source", "Identity"], rows)


def render_run_report(ui: UIAdapter, report: RunReport) -> None:
    if report.jobs:
        render_jobs(ui, report.jobs)
    if report.reached_done:
        if report.running_containers:
            ui.show_table("Running containers", ["Name"], [[name] for name in report.running_containers])
        else:
            ui.show_info("No running containers.")
    for path in report.backups:
        ui.show_info(f"Backup: {path}")

    if report.error is not None:
        payload = error_to_payload(report.error)
        last = report.last_completed.title if report.last_completed else "none"
        lines = [
            f"Last completed phase: {last}",
            f"Failed during: {report.phase.title if report.phase else 'startup'}",
            f"Failing check: {report.failing_check or payload['failing_check']}",
            f"Error: {payload['error']}",
        ]
        for key, value in payload["evidence"].items():
            lines.append(f"\n{key}:\n{value}")
        ui.show_panel("\n".join(lines), title=payload["error_type"], border_style="red")

    if report.diagnostics:
        ui.show_panel(report.diagnostics.render(), title="Diagnostics", border_style="yellow")
    for job in report.failed_jobs:
        if job.attempts:
            ui.show_panel(job.attempts[-1].output[-4000:] or "(no output)", title=f"{job.name} output", border_style="red")
        if job.diagnostics:
            ui.show_panel(job.diagnostics.render(), title=f"{job.name} diagnostics", border_style="yellow")

    if report.exit_code == 0:
        ui.show_success("Done.")
    elif report.reached_done:
        ui.show_error(f"Done with {len(report.failed_jobs)} failed job(s).")
    else:
        ui.show_error("Run aborted.")
