"""Shared error taxonomy for colima-pulse."""

from __future__ import annotations

from typing import Any, Mapping

# Context keys carrying command output worth showing to the operator.
EVIDENCE_KEYS = ("output", "status", "service", "log_tail", "last_failure")


def _normalize_context_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_context_value(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def normalize_context(context: Mapping[str, Any]) -> dict[str, Any]:
    """Return a JSON-friendly copy of an error context mapping."""
    return {key: _normalize_context_value(val) for key, val in context.items()}


class PulseError(Exception):
    """Base error type for typed failure handling."""

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.context = normalize_context(context or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def error_type(self) -> str:
        return self.__class__.__name__

    @property
    def failing_check(self) -> str:
        """Explicit ``check`` from the context, else the gate name, else the error type."""
        return str(self.context.get("check") or self.context.get("gate") or self.error_type)


class ConfigurationError(PulseError):
    """Missing required setting or a locked value was violated."""


class GuardRefusalError(PulseError):
    """A destructive action was requested without confirmation or override."""


class ReadinessTimeoutError(PulseError):
    """A readiness gate exceeded its max wait."""


class BackendVerificationError(PulseError):
    """The backend type could not be confirmed before the verify budget ran out."""


class ForbiddenBackendError(BackendVerificationError):
    """The backend status positively confirms the forbidden backend type."""


class SupervisionError(PulseError):
    """Installing, registering or activating the supervision descriptor failed."""


class ProvisioningError(PulseError):
    """Starting, purging or backing up the backend failed."""


class ReaperError(PulseError):
    """Target processes survived the full signal escalation."""


class CommandError(PulseError):
    """An external command could not be spawned."""


def error_to_payload(error: PulseError) -> dict[str, Any]:
    """Flatten an error into the fields of the failure panel."""
    return {
        "error_type": error.error_type,
        "error": str(error),
        "failing_check": error.failing_check,
        "evidence": {key: error.context[key] for key in EVIDENCE_KEYS if error.context.get(key)},
    }
