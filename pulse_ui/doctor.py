"""
Service for performing host prerequisite checks (doctor).
"""

import os
import platform
import shutil
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Tuple

from pulse_common.errors import ConfigurationError
from pulse_controller.config import LOCKED_BACKEND, LOCKED_RUNTIME, StableSettings, load_stable_settings
from pulse_provisioner.host import HostContext, resolve_host

HOST_TOOLS = ("launchctl", "plutil", "pgrep", "pkill", "sudo")


@dataclass
class DoctorCheckItem:
    label: str
    ok: bool
    required: bool


@dataclass
class DoctorCheckGroup:
    title: str
    items: List[DoctorCheckItem]
    failures: int


@dataclass
class DoctorReport:
    groups: List[DoctorCheckGroup]
    info_messages: List[str]
    total_failures: int


class DoctorService:
    """Read-only checks of the host, the account and the configured settings."""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        resolver: Callable[[str], HostContext] = resolve_host,
    ):
        self.environ = os.environ if environ is None else environ
        self.which = which
        self.resolver = resolver

    def _check_command(self, name: str) -> bool:
        return self.which(name) is not None

    def _build_check_group(
        self, title: str, items: List[Tuple[str, bool, bool]]
    ) -> DoctorCheckGroup:
        failures = 0
        check_items = []
        for label, ok, required in items:
            check_items.append(DoctorCheckItem(label, ok, required))
            failures += 0 if ok or not required else 1
        return DoctorCheckGroup(title, check_items, failures)

    def check_host_tools(self) -> DoctorCheckGroup:
        items = [(tool, self._check_command(tool), True) for tool in HOST_TOOLS]
        return self._build_check_group("Host Tools", items)

    def check_configuration(self) -> Tuple[DoctorCheckGroup, List[str]]:
        messages: List[str] = []
        settings: Optional[StableSettings] = None
        try:
            settings = load_stable_settings(self.environ)
        except ConfigurationError as exc:
            messages.append(f"Configuration: {exc}")

        items: List[Tuple[str, bool, bool]] = [("Settings load", settings is not None, True)]
        if settings is None:
            return self._build_check_group("Configuration", items), messages

        host: Optional[HostContext] = None
        try:
            host = self.resolver(settings.user)
        except ConfigurationError as exc:
            messages.append(f"Account: {exc}")
        items.extend(
            [
                (f"Account {settings.user} resolves (home, colima, docker)", host is not None, True),
                (f"vm-type locked to {LOCKED_BACKEND.value}", settings.vm_type is LOCKED_BACKEND, True),
                (f"runtime locked to {LOCKED_RUNTIME.value}", settings.runtime is LOCKED_RUNTIME, True),
                (f"Containers dir {settings.containers_dir}", settings.containers_dir.is_dir(), False),
            ]
        )
        if host is not None:
            messages.append(f"Homebrew prefix: {host.brew_prefix} ({host.arch})")
            messages.append(f"colima: {host.colima_bin}  docker: {host.docker_bin}")
        return self._build_check_group("Configuration", items), messages

    def check_all(self) -> DoctorReport:
        groups = [self.check_host_tools()]
        config_group, messages = self.check_configuration()
        groups.append(config_group)
        info = (
            f"Python: {platform.python_version()} ({platform.python_implementation()}) "
            f"on {platform.system()} {platform.release()}"
        )
        return DoctorReport(
            groups=groups,
            info_messages=[info, *messages],
            total_failures=sum(g.failures for g in groups),
        )
