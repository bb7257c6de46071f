"""Docker CLI adapter pinned to the Colima socket."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import List

from pulse_common.commands import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class DockerRuntime:
    """Docker CLI calls addressed through an explicit DOCKER_HOST.

    The default context is never consulted; every call carries the endpoint.
    """

    def __init__(
        self,
        runner: CommandRunner,
        docker_bin: str,
        socket_path: Path,
        *,
        command_timeout: float = 60.0,
    ):
        self.runner = runner
        self.docker_bin = docker_bin
        self.socket_path = socket_path
        self.command_timeout = command_timeout

    @property
    def host_uri(self) -> str:
        return f"unix://{self.socket_path}"

    def env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["DOCKER_HOST"] = self.host_uri
        env.pop("DOCKER_CONTEXT", None)
        bin_dir = str(Path(self.docker_bin).parent)
        env["PATH"] = f"{bin_dir}{os.pathsep}{env.get('PATH', '')}"
        return env

    def _docker(self, *args: str, timeout: float | None = None) -> CommandResult:
        return self.runner.run(
            [self.docker_bin, *args],
            env=self.env(),
            timeout=timeout or self.command_timeout,
        )

    def socket_present(self) -> bool:
        try:
            return stat.S_ISSOCK(self.socket_path.stat().st_mode)
        except OSError:
            return False

    def version(self) -> CommandResult:
        return self._docker("version")

    def info(self) -> CommandResult:
        return self._docker("info")

    def ps(self) -> CommandResult:
        return self._docker("ps")

    def system_info(self) -> CommandResult:
        return self._docker("system", "info")

    def deep_health(self) -> CommandResult:
        """info + ps + system info; returns the first failure or the last result."""
        result = self.info()
        for check in (self.ps, self.system_info):
            if not result.ok:
                return result
            result = check()
        return result

    def image_prune(self) -> CommandResult:
        return self._docker("image", "prune", "-af", timeout=600)

    def system_prune(self) -> CommandResult:
        return self._docker("system", "prune", "-af", "--volumes", timeout=600)

    def remove_container(self, name: str) -> CommandResult:
        """Force-remove ``name``; absence is not an error."""
        return self._docker("rm", "-f", name)

    def container_names(self) -> List[str]:
        result = self._docker("ps", "--format", "{{.Names}}")
        if not result.ok:
            return []
        return [line.strip() for line in result.output.splitlines() if line.strip()]

    def run_script(self, text: str, *, timeout: float | None = None) -> CommandResult:
        """Execute a normalized installer script as one unit."""
        shell = shutil.which("zsh") or shutil.which("bash") or "/bin/sh"
        return self.runner.run([shell, "-c", text], env=self.env(), timeout=timeout)
