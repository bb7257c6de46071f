"""Pattern-based process enumeration and signalling via pgrep/pkill."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List

from pulse_common.commands import CommandRunner
from pulse_common.errors import CommandError
from pulse_provisioner.host import HostContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessPattern:
    """Extended regex matched against full command lines.

    ``any_owner`` lifts the account scoping for wrappers owned by root
    (e.g. the ``su - user -c`` launcher).
    """

    pattern: str
    any_owner: bool = False


class ProcessTable:
    """Enumerate and signal processes owned by the target account."""

    def __init__(self, runner: CommandRunner, host: HostContext):
        self.runner = runner
        self.host = host

    def _scope(self, pattern: ProcessPattern) -> list[str]:
        if pattern.any_owner:
            return []
        return ["-u", str(self.host.uid)]

    def signal(self, pattern: ProcessPattern, signal_name: str) -> None:
        """Deliver ``signal_name`` to every match; no match is not an error."""
        argv = self.host.root(
            "pkill", f"-{signal_name}", *self._scope(pattern), "-f", pattern.pattern
        )
        self.runner.run_best_effort(argv)

    def signal_all(self, patterns: Iterable[ProcessPattern], signal_name: str) -> None:
        for pattern in patterns:
            self.signal(pattern, signal_name)

    def matches(self, patterns: Iterable[ProcessPattern]) -> List[str]:
        """Return ``"<pid> <pattern>"`` entries for every live match."""
        found: list[str] = []
        for pattern in patterns:
            argv = ["pgrep", *self._scope(pattern), "-f", pattern.pattern]
            result = self.runner.run(argv)
            if result.returncode == 1:
                continue
            if not result.ok:
                raise CommandError(
                    f"pgrep failed for pattern {pattern.pattern!r}",
                    context={"returncode": result.returncode, "output": result.tail()},
                )
            for line in result.output.split():
                found.append(f"{line} {pattern.pattern}")
        return found
