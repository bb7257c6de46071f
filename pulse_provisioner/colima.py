"""Colima backend adapter and backend-type status parser."""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Sequence

from pulse_common.commands import CommandResult, CommandRunner
from pulse_provisioner.host import HostContext

logger = logging.getLogger(__name__)


class BackendProbe(str, Enum):
    """Verdict of one status probe."""

    CONFIRMED = "confirmed"
    FORBIDDEN = "forbidden"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class StatusRule:
    backend: str
    name: str
    regex: re.Pattern[str]


def _rules_for(backend: str) -> tuple[StatusRule, ...]:
    escaped = re.escape(backend)
    rules = [
        StatusRule(backend, "using", re.compile(rf"using\s+{escaped}\b", re.I)),
        StatusRule(
            backend, "driver", re.compile(rf'internal VM driver\s+"{escaped}"', re.I)
        ),
        StatusRule(backend, "vmType", re.compile(rf"vmType:\s*{escaped}\b", re.I)),
        StatusRule(backend, "vm-type", re.compile(rf"vm-type\s+{escaped}\b", re.I)),
    ]
    if backend.lower() == "vz":
        rules.append(
            StatusRule(backend, "framework", re.compile(r"virtualization[.\s]+framework", re.I))
        )
    return tuple(rules)


def classify_backend_status(text: str, required: str, forbidden: Sequence[str]) -> BackendProbe:
    """Classify ``colima status --verbose`` text.

    Forbidden rules are evaluated first: a status mentioning both backends is
    treated as forbidden, never as confirmed.
    """
    for backend in forbidden:
        for rule in _rules_for(backend):
            if rule.regex.search(text):
                logger.debug("Status matched forbidden rule %s/%s", backend, rule.name)
                return BackendProbe.FORBIDDEN
    for rule in _rules_for(required):
        if rule.regex.search(text):
            return BackendProbe.CONFIRMED
    return BackendProbe.INCONCLUSIVE


class ColimaBackend:
    """Drive the colima CLI as the target account."""

    def __init__(self, runner: CommandRunner, host: HostContext, profile: str):
        self.runner = runner
        self.host = host
        self.profile = profile

    def _colima(self, *args: str) -> list[str]:
        return self.host.as_user(self.host.colima_bin, *args, "--profile", self.profile)

    def start(
        self, *, runtime: str, vm_type: str, cpus: int, memory: int, disk: int
    ) -> CommandResult:
        logger.info("Starting colima profile %s (%s/%s)", self.profile, vm_type, runtime)
        return self.runner.run(
            self._colima(
                "start",
                "--runtime",
                runtime,
                "--vm-type",
                vm_type,
                "--cpus",
                str(cpus),
                "--memory",
                str(memory),
                "--disk",
                str(disk),
            )
        )

    def stop(self) -> CommandResult:
        return self.runner.run_best_effort(self._colima("stop"))

    def status_verbose(self) -> CommandResult:
        return self.runner.run_best_effort(self._colima("status", "--verbose"))

    def delete(self) -> CommandResult:
        return self.runner.run_best_effort(self._colima("delete", "-f"))

    def ssh(self, script: str) -> CommandResult:
        """Execute ``script`` inside the VM through ``colima ssh``."""
        argv = self.host.as_user(
            self.host.colima_bin, "ssh", "--profile", self.profile, "--", "sh", "-c", script
        )
        return self.runner.run_best_effort(argv, timeout=60)

    def state_dirs(self) -> list[tuple[str, Path]]:
        """State directories and their backup tags."""
        return [
            ("dotcolima", self.host.user_path(".colima")),
            ("configcolima", self.host.user_path(".config", "colima")),
        ]

    def purge_state(self, dirs: Iterable[Path]) -> None:
        """Remove state directories as the target account."""
        for path in dirs:
            logger.info("Purging state dir %s", path)
            self.runner.run_best_effort(
                ["sudo", "-u", self.host.user, "/bin/rm", "-rf", str(path)]
            )

    def foreground_command(self, *, runtime: str, vm_type: str) -> str:
        """Shell snippet run by the supervisor as the target account."""
        colima = shlex.quote(self.host.colima_bin)
        return (
            "unset XDG_CONFIG_HOME; "
            f"export HOME={shlex.quote(str(self.host.home))}; "
            f"exec {colima} start --profile {shlex.quote(self.profile)} "
            f"--runtime {shlex.quote(runtime)} --vm-type {shlex.quote(vm_type)} --foreground"
        )
