"""Background sudo credential keepalive for the duration of a run."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from pulse_common.commands import CommandRunner
from pulse_common.errors import ConfigurationError

logger = logging.getLogger(__name__)


class PrivilegeKeepalive:
    """Refresh the sudo timestamp until stopped.

    Use as a context manager; the thread is stopped on every exit path.
    """

    def __init__(self, runner: CommandRunner, *, interval: float = 30.0, enabled: bool = True) -> None:
        self.runner = runner
        self.interval = interval
        self.enabled = enabled
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if not self.enabled or self._thread is not None:
            return
        result = self.runner.run(["sudo", "-v"])
        if not result.ok:
            raise ConfigurationError(
                "sudo authentication failed", context={"output": result.tail()}
            )
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="sudo-keepalive", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            result = self.runner.run_best_effort(["sudo", "-n", "true"])
            if not result.ok:
                logger.warning("sudo keepalive lost credentials; stopping refresh")
                return

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None

    def __enter__(self) -> "PrivilegeKeepalive":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
