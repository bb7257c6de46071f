"""launchd supervision: descriptor rendering and launchctl operations."""

from __future__ import annotations

import logging
import os
import plistlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List

from pulse_common.commands import CommandResult, CommandRunner
from pulse_common.errors import SupervisionError
from pulse_provisioner.host import HostContext

logger = logging.getLogger(__name__)

LAUNCH_DAEMONS_DIR = Path("/Library/LaunchDaemons")
_SERVICE_LINE = re.compile(r'^\s*(?:\d+|-)\s+(?:-?\d+|-)\s+"?([\w.@\-]+)"?\s*$')


@dataclass(frozen=True)
class SupervisionDescriptor:
    """What launchd needs to keep the backend's foreground process alive."""

    label: str
    program_arguments: List[str]
    working_directory: Path
    log_path: Path
    run_at_load: bool = True
    keep_alive: bool = True

    def to_plist(self) -> bytes:
        payload = {
            "Label": self.label,
            "ProgramArguments": list(self.program_arguments),
            "RunAtLoad": self.run_at_load,
            "KeepAlive": self.keep_alive,
            "WorkingDirectory": str(self.working_directory),
            "StandardOutPath": str(self.log_path),
            "StandardErrorPath": str(self.log_path),
        }
        return plistlib.dumps(payload, fmt=plistlib.FMT_XML)


def operator_log_owner() -> str:
    """Owner spec that keeps the log appendable by whoever runs the orchestrator."""
    return f"{os.getuid()}:wheel"


def _appendable(path: Path) -> bool:
    if path.exists():
        return os.access(path, os.W_OK)
    return path.parent.is_dir() and os.access(path.parent, os.W_OK)


def prepare_log_file(runner: CommandRunner, path: Path, owner: str) -> bool:
    """Make ``path`` appendable by this process.

    Escalates with non-interactive sudo only, so an uncached password never
    prompts before the pre-flight guard has run.
    """
    if _appendable(path):
        return True
    for argv in (
        ["mkdir", "-p", str(path.parent)],
        ["touch", str(path)],
        ["chown", owner, str(path)],
        ["chmod", "0644", str(path)],
    ):
        result = runner.run_best_effort(["sudo", "-n", *argv])
        if not result.ok:
            logger.debug("Cannot prepare log %s: %s", path, result.tail(5))
            return False
    return _appendable(path)


def foreground_descriptor(
    *, label: str, user: str, home: Path, command: str, log_path: Path
) -> SupervisionDescriptor:
    """Descriptor running ``command`` through ``su - user -c`` from launchd."""
    return SupervisionDescriptor(
        label=label,
        program_arguments=["/usr/bin/su", "-", user, "-c", command],
        working_directory=home,
        log_path=log_path,
    )


class LaunchdSupervisor:
    """System-domain launchctl operations for one label."""

    def __init__(
        self,
        runner: CommandRunner,
        host: HostContext,
        label: str,
        log_path: Path,
        *,
        log_owner: str = "root:wheel",
    ):
        self.runner = runner
        self.host = host
        self.label = label
        self.log_path = log_path
        self.log_owner = log_owner

    @property
    def service_target(self) -> str:
        return f"system/{self.label}"

    def plist_path(self, label: str | None = None) -> Path:
        return LAUNCH_DAEMONS_DIR / f"{label or self.label}.plist"

    def bootout_remove(self, label: str | None = None) -> None:
        """Best-effort teardown of a registration; absence is fine."""
        target_label = label or self.label
        plist = self.plist_path(target_label)
        if plist.exists():
            self.runner.run_best_effort(self.host.root("launchctl", "bootout", "system", str(plist)))
        else:
            self.runner.run_best_effort(
                self.host.root("launchctl", "bootout", f"system/{target_label}")
            )
        self.runner.run_best_effort(self.host.root("launchctl", "remove", target_label))

    def delete_descriptor(self, label: str | None = None) -> None:
        self.runner.run_best_effort(self.host.root("rm", "-f", str(self.plist_path(label))))

    def remove_label(self, label: str) -> None:
        """Fully remove another label: bootout, remove, disable, delete plist."""
        self.bootout_remove(label)
        self.runner.run_best_effort(self.host.root("launchctl", "disable", f"system/{label}"))
        self.delete_descriptor(label)

    def list_labels(self, needle: str) -> list[str]:
        """Labels in the system domain containing ``needle``, excluding ours."""
        result = self.runner.run_best_effort(self.host.root("launchctl", "print", "system"))
        labels: list[str] = []
        for line in result.output.splitlines():
            match = _SERVICE_LINE.match(line)
            if not match:
                continue
            label = match.group(1)
            if needle.lower() in label.lower() and label != self.label and label not in labels:
                labels.append(label)
        return labels

    def _checked(self, argv: list[str], message: str, **kwargs) -> CommandResult:
        result = self.runner.run(argv, **kwargs)
        if not result.ok:
            raise SupervisionError(
                message,
                context={"argv": argv, "returncode": result.returncode, "output": result.tail()},
            )
        return result

    def install(self, descriptor: SupervisionDescriptor) -> Path:
        """Write the descriptor root-owned and lint it."""
        log = str(descriptor.log_path)
        self._checked(self.host.root("touch", log), f"Cannot create log file {log}")
        self._checked(self.host.root("chown", self.log_owner, log), f"Cannot chown {log}")
        self._checked(self.host.root("chmod", "0644", log), f"Cannot chmod {log}")

        plist = self.plist_path(descriptor.label)
        self._checked(
            self.host.root("tee", str(plist)),
            f"Cannot write supervision descriptor {plist}",
            input=descriptor.to_plist().decode("utf-8"),
        )
        self._checked(self.host.root("chown", "root:wheel", str(plist)), f"Cannot chown {plist}")
        self._checked(self.host.root("chmod", "0644", str(plist)), f"Cannot chmod {plist}")
        self._checked(
            self.host.root("/usr/bin/plutil", "-lint", str(plist)),
            "Installed descriptor failed plutil -lint",
        )
        logger.info("Installed supervision descriptor %s", plist)
        return plist

    def bootstrap(self) -> CommandResult:
        return self.runner.run(
            self.host.root("launchctl", "bootstrap", "system", str(self.plist_path()))
        )

    def enable(self) -> CommandResult:
        return self.runner.run_best_effort(self.host.root("launchctl", "enable", self.service_target))

    def kickstart(self) -> CommandResult:
        return self.runner.run(self.host.root("launchctl", "kickstart", "-k", self.service_target))

    def print_service(self) -> CommandResult:
        return self.runner.run_best_effort(self.host.root("launchctl", "print", self.service_target))

    def tail_log(self, lines: int = 120) -> str:
        result = self.runner.run_best_effort(
            self.host.root("tail", "-n", str(lines), str(self.log_path))
        )
        return result.output
