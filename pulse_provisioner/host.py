"""Resolve the target account, Homebrew prefix and CLI binaries."""

from __future__ import annotations

import logging
import os
import platform
import pwd
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from pulse_common.errors import ConfigurationError

logger = logging.getLogger(__name__)

BREW_PREFIXES = {
    "arm64": Path("/opt/homebrew"),
    "x86_64": Path("/usr/local"),
}


@dataclass(frozen=True)
class HostContext:
    """Resolved facts about the machine and the account owning the backend."""

    user: str
    uid: int
    home: Path
    arch: str
    brew_prefix: Path
    colima_bin: str
    docker_bin: str
    use_sudo: bool = True

    def root(self, *args: str) -> list[str]:
        """Command prefix for privileged operations."""
        if self.use_sudo:
            return ["sudo", *args]
        return list(args)

    def as_user(self, *args: str) -> list[str]:
        """Run as the target account with a forced HOME and no XDG_CONFIG_HOME."""
        return [
            "sudo",
            "-u",
            self.user,
            "env",
            "-u",
            "XDG_CONFIG_HOME",
            f"HOME={self.home}",
            *args,
        ]

    def user_path(self, *parts: str) -> Path:
        return self.home.joinpath(*parts)


def _resolve_binary(
    name: str,
    brew_prefix: Path,
    which: Callable[[str], Optional[str]],
    is_executable: Callable[[Path], bool],
) -> str:
    candidate = brew_prefix / "bin" / name
    if is_executable(candidate):
        return str(candidate)
    found = which(name)
    if found:
        return found
    raise ConfigurationError(
        f"{name} not found. Install it via Homebrew for the target account.",
        context={"binary": name, "brew_prefix": brew_prefix},
    )


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def resolve_host(
    user: str,
    *,
    arch: str | None = None,
    which: Callable[[str], Optional[str]] = shutil.which,
    is_executable: Callable[[Path], bool] = _is_executable,
    getpwnam: Callable[[str], pwd.struct_passwd] = pwd.getpwnam,
) -> HostContext:
    """Resolve the account home/uid, the brew prefix and the colima/docker CLIs."""
    try:
        entry = getpwnam(user)
    except KeyError as exc:
        raise ConfigurationError(
            f"Failed to resolve account: {user}", context={"user": user}, cause=exc
        ) from exc

    home = Path(entry.pw_dir)
    if not home.is_dir():
        raise ConfigurationError(
            f"Resolved home does not exist: {home}", context={"user": user}
        )

    machine = arch or platform.machine()
    brew_prefix = BREW_PREFIXES.get(machine)
    if brew_prefix is None:
        raise ConfigurationError(
            f"Unsupported architecture: {machine}", context={"arch": machine}
        )

    colima_bin = _resolve_binary("colima", brew_prefix, which, is_executable)
    docker_bin = _resolve_binary("docker", brew_prefix, which, is_executable)
    logger.debug("Resolved host: user=%s home=%s arch=%s", user, home, machine)
    return HostContext(
        user=user,
        uid=entry.pw_uid,
        home=home,
        arch=machine,
        brew_prefix=brew_prefix,
        colima_bin=colima_bin,
        docker_bin=docker_bin,
        use_sudo=os.geteuid() != 0,
    )
