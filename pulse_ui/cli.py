"""
Command-line interface for colima-pulse.

Brings up the supervised Colima VM and Docker runtime, then installs the
declared containers. Destructive flags exist only here, never in the env.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from pulse_common.commands import CommandRunner
from pulse_common.config.env import parse_str_env
from pulse_common.errors import ConfigurationError
from pulse_common.logging import configure_logging
from pulse_controller.config import (
    ChoiceMode,
    DestructiveOptions,
    RunConfig,
    StableSettings,
    load_stable_settings,
)
from pulse_controller.installer import scan_jobs
from pulse_controller.orchestrator import EXIT_REFUSED, LifecycleOrchestrator
from pulse_controller.ui_interfaces import UIAdapter
from pulse_provisioner.launchd import operator_log_owner, prepare_log_file
from pulse_ui.console import ConsoleUIAdapter
from pulse_ui.doctor import DoctorService
from pulse_ui.presenters import render_doctor_report, render_run_report, render_scan

FALLBACK_LOG = Path("Library") / "Logs" / "colima-pulse.log"


@dataclass
class CLIContext:
    """Container for UI services and state, initialized lazily."""

    headless: bool = False

    _ui: Optional[UIAdapter] = None
    _doctor_service: Optional[DoctorService] = None

    @property
    def ui(self) -> UIAdapter:
        if self._ui is None:
            self._ui = ConsoleUIAdapter(interactive=False if self.headless else None)
        return self._ui

    @ui.setter
    def ui(self, value: UIAdapter):
        self._ui = value

    @property
    def doctor_service(self) -> DoctorService:
        if self._doctor_service is None:
            self._doctor_service = DoctorService()
        return self._doctor_service

    @doctor_service.setter
    def doctor_service(self, value: DoctorService):
        self._doctor_service = value


def _unified_log_path(log_file: Optional[Path], settings: StableSettings) -> str:
    if log_file is not None:
        return str(log_file)
    return os.environ.get("PULSE_LOG_FILE") or str(settings.log_path)


def _writable_log_path(path: str, ui: UIAdapter) -> str:
    """The unified log, or a per-user fallback when it cannot be made appendable."""
    if prepare_log_file(CommandRunner(), Path(path), operator_log_owner()):
        return path
    fallback = Path.home() / FALLBACK_LOG
    try:
        fallback.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        return path
    ui.show_warning(f"Cannot append to {path}; logging to {fallback}")
    return str(fallback)


def create_app(ctx: CLIContext) -> typer.Typer:
    """Build the Typer app, wired to the given context."""
    app = typer.Typer(
        help="Bring up a launchd-supervised Colima (qemu) + Docker runtime and install containers.",
        no_args_is_help=True,
    )

    @app.callback()
    def entry(
        headless: bool = typer.Option(
            False,
            "--headless",
            help="Never prompt; treat the session as non-interactive (useful in CI).",
        ),
    ) -> None:
        """Global entry point handling interactive vs headless modes."""
        ctx.headless = headless

    @app.command("run")
    def run(
        reset: bool = typer.Option(
            False, "--reset", help="Delete the VM and purge its state before starting."
        ),
        yes: bool = typer.Option(
            False, "--yes", "-y", help="Explicit override for destructive actions."
        ),
        no_confirm: bool = typer.Option(
            False,
            "--no-confirm",
            help="With --yes, skip the typed token even on a terminal.",
        ),
        backup: ChoiceMode = typer.Option(
            ChoiceMode.PROMPT,
            "--backup",
            case_sensitive=False,
            help="Back up state before a reset (prompt|true|false).",
        ),
        containers_dir: Optional[Path] = typer.Option(
            None, "--containers-dir", help="Directory of container installer scripts."
        ),
        log_file: Optional[Path] = typer.Option(
            None, "--log-file", help="Unified log file; defaults to LOG_PATH."
        ),
        debug: bool = typer.Option(False, "--debug", help="Verbose console logging."),
        json_logs: bool = typer.Option(False, "--json-logs", help="Render logs as JSON."),
    ) -> None:
        """Kill, provision, verify, supervise, stabilize and install containers."""
        ui = ctx.ui
        try:
            settings = load_stable_settings()
        except ConfigurationError as exc:
            ui.show_error(str(exc))
            raise typer.Exit(EXIT_REFUSED)

        configure_logging(
            debug=debug,
            json=True if json_logs else None,
            log_file=_writable_log_path(_unified_log_path(log_file, settings), ui),
            force=True,
        )
        if containers_dir is not None:
            settings = settings.model_copy(update={"containers_dir": containers_dir})

        options = DestructiveOptions(
            reset=reset,
            backup_mode=backup,
            require_confirm=not no_confirm,
            force_yes=yes,
        )
        config = RunConfig.build(settings, options)
        try:
            orchestrator = LifecycleOrchestrator.from_config(config, ui)
        except ConfigurationError as exc:
            ui.show_error(str(exc))
            raise typer.Exit(EXIT_REFUSED)

        report = orchestrator.run()
        render_run_report(ui, report)
        if report.exit_code:
            raise typer.Exit(report.exit_code)

    @app.command("doctor")
    def doctor() -> None:
        """Check host tools, the account and the locked settings."""
        report = ctx.doctor_service.check_all()
        ok = render_doctor_report(ctx.ui, report)
        if not ok:
            raise typer.Exit(1)

    @app.command("jobs")
    def jobs(
        directory: Optional[Path] = typer.Argument(
            None, help="Containers directory; defaults to CONTAINERS_DIR or ./containers."
        ),
    ) -> None:
        """Show the identity detected in each installer script."""
        target = directory or Path(parse_str_env(os.environ.get("CONTAINERS_DIR")) or "./containers")
        if not target.is_dir():
            ctx.ui.show_error(f"Containers directory not found: {target}")
            raise typer.Exit(1)
        try:
            jobs = scan_jobs(target)
        except ConfigurationError as exc:
            ctx.ui.show_error(str(exc))
            raise typer.Exit(1)
        render_scan(ctx.ui, jobs)

    return app


ctx_store = CLIContext()
app = create_app(ctx_store)


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
