"""Thin subprocess wrapper shared by every external CLI adapter."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from pulse_common.errors import CommandError
from pulse_common.logging import raw_logger

logger = logging.getLogger(__name__)

TIMEOUT_RETURNCODE = 124


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command with stdout and stderr merged."""

    args: tuple[str, ...]
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def tail(self, lines: int = 40) -> str:
        """Return the last ``lines`` lines of output for error messages."""
        return "\n".join(self.output.splitlines()[-lines:])


class CommandRunner:
    """Run commands synchronously, capturing combined output.

    Every invocation is mirrored to the ``pulse.raw`` logger so the unified
    log keeps the unfiltered text whatever the console shows.
    """

    def __init__(self, default_timeout: float | None = None) -> None:
        self.default_timeout = default_timeout

    def run(
        self,
        args: Sequence[str],
        *,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = tuple(str(arg) for arg in args)
        raw = raw_logger()
        raw.debug("$ %s", " ".join(argv))
        try:
            completed = subprocess.run(
                argv,
                input=input,
                env=dict(env) if env is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout if timeout is not None else self.default_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            partial = exc.stdout or ""
            if isinstance(partial, bytes):
                partial = partial.decode(errors="replace")
            output = f"{partial}\ncommand timed out after {exc.timeout}s".lstrip()
            raw.debug("%s", output)
            return CommandResult(argv, TIMEOUT_RETURNCODE, output)
        except OSError as exc:
            raise CommandError(
                f"Failed to execute {argv[0]}: {exc}",
                context={"argv": list(argv)},
                cause=exc,
            ) from exc

        output = completed.stdout or ""
        if output:
            raw.debug("%s", output.rstrip("\n"))
        raw.debug("[exit %s] %s", completed.returncode, argv[0])
        return CommandResult(argv, completed.returncode, output)

    def run_best_effort(self, args: Sequence[str], **kwargs) -> CommandResult:
        """Run a command whose failure is tolerated; spawn errors become rc 127."""
        try:
            result = self.run(args, **kwargs)
        except CommandError as exc:
            logger.debug("Best-effort command could not start: %s", exc)
            return CommandResult(tuple(str(a) for a in args), 127, str(exc))
        if not result.ok:
            logger.debug("Best-effort command failed (rc=%s): %s", result.returncode, args[0])
        return result
