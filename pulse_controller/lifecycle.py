"""Run lifecycle phases and their strict ordering."""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Optional


class Phase(str, Enum):
    """Bring-up phases, in execution order."""

    PREFLIGHT_GUARD = "preflight_guard"
    STACK_KILLED = "stack_killed"
    PROVISIONING = "provisioning"
    BACKEND_VERIFIED = "backend_verified"
    SUPERVISION_INSTALLED = "supervision_installed"
    RUNTIME_STABLE = "runtime_stable"
    CONTAINERS_INSTALLED = "containers_installed"
    DONE = "done"

    @property
    def title(self) -> str:
        return self.value.replace("_", " ").title()


PHASE_ORDER: tuple[Phase, ...] = tuple(Phase)


class PhaseTracker:
    """Tracks the phase in progress and the last one completed.

    Phases are entered strictly in :data:`PHASE_ORDER`; none is re-entered.
    """

    def __init__(self) -> None:
        self._current: Optional[Phase] = None
        self._last_completed: Optional[Phase] = None
        self._callbacks: List[Callable[[Phase, bool], None]] = []

    @property
    def current(self) -> Optional[Phase]:
        return self._current

    @property
    def last_completed(self) -> Optional[Phase]:
        return self._last_completed

    def register_callback(self, callback: Callable[[Phase, bool], None]) -> None:
        """Invoked with ``(phase, completed)`` on every begin/complete."""
        self._callbacks.append(callback)

    def _expected_next(self) -> Optional[Phase]:
        if self._last_completed is None:
            return PHASE_ORDER[0]
        index = PHASE_ORDER.index(self._last_completed)
        return PHASE_ORDER[index + 1] if index + 1 < len(PHASE_ORDER) else None

    def begin(self, phase: Phase) -> Phase:
        if self._current is not None and self._current is not self._last_completed:
            raise ValueError(f"Phase {self._current.value} still in progress")
        expected = self._expected_next()
        if phase is not expected:
            raise ValueError(
                f"Invalid phase transition {self._last_completed} -> {phase.value}"
            )
        self._current = phase
        self._notify(phase, False)
        return phase

    def complete(self) -> Phase:
        if self._current is None or self._current is self._last_completed:
            raise ValueError("No phase in progress")
        self._last_completed = self._current
        self._notify(self._current, True)
        return self._current

    def _notify(self, phase: Phase, completed: bool) -> None:
        for callback in list(self._callbacks):
            callback(phase, completed)
