"""Run configuration: stable settings from the environment, destructive flags from the CLI."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from pulse_common.config.env import (
    parse_bool_env,
    parse_choice_env,
    parse_float_env,
    parse_int_env,
    parse_str_env,
)
from pulse_common.errors import ConfigurationError

logger = logging.getLogger(__name__)


class BackendType(str, Enum):
    QEMU = "qemu"
    VZ = "vz"


class RuntimeType(str, Enum):
    DOCKER = "docker"
    CONTAINERD = "containerd"


class ChoiceMode(str, Enum):
    """Three-way switch used by prompts (prompt|true|false)."""

    PROMPT = "prompt"
    TRUE = "true"
    FALSE = "false"


class PruneMode(str, Enum):
    NONE = "none"
    IMAGES = "images"
    AGGRESSIVE = "aggressive"


LOCKED_BACKEND = BackendType.QEMU
LOCKED_RUNTIME = RuntimeType.DOCKER
FORBIDDEN_BACKENDS = (BackendType.VZ,)


class ResourceLimits(BaseModel):
    """VM sizing passed to ``colima start``."""

    model_config = ConfigDict(frozen=True)

    cpus: int = Field(default=2, gt=0, description="Virtual CPUs")
    memory_gib: int = Field(default=1, gt=0, description="Memory in GiB")
    disk_gib: int = Field(default=20, gt=0, description="Disk in GiB")


class TimingBudgets(BaseModel):
    """Max waits and poll intervals, in seconds."""

    model_config = ConfigDict(frozen=True)

    socket_wait: float = Field(default=180.0, ge=0)
    api_wait: float = Field(default=180.0, ge=0)
    stable_wait: float = Field(default=300.0, ge=0)
    stable_required: int = Field(default=5, gt=0, description="Consecutive deep-health passes")
    verify_wait: float = Field(default=12.0, ge=0, description="Backend-type verify budget")
    poll_interval: float = Field(default=2.0, gt=0)
    stable_poll_interval: float = Field(default=1.0, gt=0)
    verify_poll_interval: float = Field(default=1.0, gt=0)
    reap_grace: int = Field(default=8, ge=0, description="Seconds between TERM and KILL")
    recheck_budgets: tuple[float, float, float] = Field(default=(15.0, 45.0, 90.0))


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_tries: int = Field(default=3, gt=0)
    job_backoff: float = Field(default=5.0, ge=0)
    job_timeout: float = Field(default=900.0, gt=0)
    keepalive_interval: float = Field(default=30.0, gt=0)


class StableSettings(BaseModel):
    """Settings safe to source from persisted configuration."""

    model_config = ConfigDict(frozen=True)

    user: str = Field(description="Account owning the Colima VM")
    profile: str = Field(default="default")
    runtime: RuntimeType = Field(default=LOCKED_RUNTIME)
    vm_type: BackendType = Field(default=LOCKED_BACKEND)
    resources: ResourceLimits = Field(default_factory=ResourceLimits)
    label: str = Field(default="homebrew.mrcee.colima-pulse")
    log_path: Path = Field(default=Path("/var/log/colima.log"))
    confirm_token: str = Field(default="DESTROY", min_length=1)
    backup_dir: Path = Field(default=Path("./backups"))
    backup_include_dot_colima: bool = True
    backup_include_config_colima: bool = True
    clean_other_daemons: ChoiceMode = ChoiceMode.PROMPT
    prune_mode: PruneMode = PruneMode.NONE
    containers_dir: Path = Field(default=Path("./containers"))
    attempt_log_dir: Optional[Path] = None
    timing: TimingBudgets = Field(default_factory=TimingBudgets)
    retries: RetryPolicy = Field(default_factory=RetryPolicy)

    @model_validator(mode="after")
    def validate_locked_values(self) -> "StableSettings":
        if not self.user.strip():
            raise ValueError("user must be non-empty")
        if self.vm_type is not LOCKED_BACKEND:
            raise ValueError(f"vm_type must be '{LOCKED_BACKEND.value}' (got: {self.vm_type.value})")
        if self.runtime is not LOCKED_RUNTIME:
            raise ValueError(f"runtime must be '{LOCKED_RUNTIME.value}' (got: {self.runtime.value})")
        return self

    @property
    def socket_path(self) -> Path:
        """Relative to the account home; see :meth:`RunConfig.socket_path`."""
        return Path(".colima") / self.profile / "docker.sock"

    @property
    def resolved_attempt_log_dir(self) -> Path:
        return self.attempt_log_dir or (self.containers_dir.parent / "logs" / "containers")


class DestructiveOptions(BaseModel):
    """Flags that only the invocation itself may set."""

    model_config = ConfigDict(frozen=True)

    reset: bool = False
    backup_mode: ChoiceMode = ChoiceMode.PROMPT
    require_confirm: bool = True
    force_yes: bool = False


class RunConfig(BaseModel):
    """Immutable configuration for one run."""

    model_config = ConfigDict(frozen=True)

    settings: StableSettings
    destructive: DestructiveOptions = Field(default_factory=DestructiveOptions)

    @classmethod
    def build(cls, settings: StableSettings, options: DestructiveOptions | None = None) -> "RunConfig":
        return cls(settings=settings, destructive=options or DestructiveOptions())

    @property
    def reset_requested(self) -> bool:
        return self.destructive.reset

    def socket_path(self, home: Path) -> Path:
        return home / self.settings.socket_path

    def effective_prune_mode(self) -> PruneMode:
        """A reset with prune left at ``none`` still prunes images."""
        if self.destructive.reset and self.settings.prune_mode is PruneMode.NONE:
            return PruneMode.IMAGES
        return self.settings.prune_mode


_CHOICES = {mode.value for mode in ChoiceMode}
_PRUNE = {mode.value for mode in PruneMode}


def _put(target: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        target[key] = value


def _raw_enum(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = parse_str_env(environ.get(key))
    return value.lower() if value else None


def _choice(environ: Mapping[str, str], key: str, choices: set[str]) -> Optional[str]:
    raw = parse_str_env(environ.get(key))
    value = parse_choice_env(raw, choices)
    if raw is not None and value is None:
        logger.warning("Ignoring unknown %s=%s (expected one of: %s)", key, raw, ", ".join(sorted(choices)))
    return value


def _parse_nested(
    environ: Mapping[str, str], mapping: Mapping[str, tuple[str, Callable[[str | None], Any]]]
) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field_name, (env_key, parser) in mapping.items():
        _put(values, field_name, parser(environ.get(env_key)))
    return values


def load_stable_settings(environ: Mapping[str, str] | None = None) -> StableSettings:
    """Build :class:`StableSettings` from environment variables.

    ``FULL_RESET``/``FORCE_YES``/``RESET_*`` are intentionally ignored here.
    """
    env = os.environ if environ is None else environ
    user = parse_str_env(env.get("HOMEBREW_USER"))
    if not user:
        raise ConfigurationError("HOMEBREW_USER is required", context={"setting": "HOMEBREW_USER"})

    values: dict[str, Any] = {"user": user}
    _put(values, "profile", parse_str_env(env.get("COLIMA_PROFILE")))
    _put(values, "runtime", _raw_enum(env, "COLIMA_RUNTIME"))
    _put(values, "vm_type", _raw_enum(env, "COLIMA_VM_TYPE"))
    _put(values, "label", parse_str_env(env.get("LABEL")))
    _put(values, "log_path", parse_str_env(env.get("LOG_PATH")))
    _put(values, "confirm_token", parse_str_env(env.get("RESET_CONFIRM_TOKEN")))
    _put(values, "backup_dir", parse_str_env(env.get("BACKUP_DIR_BASE")))
    _put(values, "backup_include_dot_colima", parse_bool_env(env.get("BACKUP_INCLUDE_DOT_COLIMA")))
    _put(
        values,
        "backup_include_config_colima",
        parse_bool_env(env.get("BACKUP_INCLUDE_CONFIG_COLIMA")),
    )
    _put(values, "clean_other_daemons", _choice(env, "CLEAN_OTHER_COLIMA_DAEMONS", _CHOICES))
    _put(values, "prune_mode", _choice(env, "PRUNE_MODE", _PRUNE))
    _put(values, "containers_dir", parse_str_env(env.get("CONTAINERS_DIR")))
    _put(values, "attempt_log_dir", parse_str_env(env.get("PULSE_ATTEMPT_LOG_DIR")))

    resources = _parse_nested(
        env,
        {
            "cpus": ("COLIMA_CPUS", parse_int_env),
            "memory_gib": ("COLIMA_MEMORY", parse_int_env),
            "disk_gib": ("COLIMA_DISK", parse_int_env),
        },
    )
    timing = _parse_nested(
        env,
        {
            "socket_wait": ("PULSE_SOCKET_WAIT", parse_float_env),
            "api_wait": ("PULSE_API_WAIT", parse_float_env),
            "stable_wait": ("PULSE_STABLE_WAIT", parse_float_env),
            "stable_required": ("PULSE_STABLE_REQUIRED", parse_int_env),
            "verify_wait": ("PULSE_VERIFY_WAIT", parse_float_env),
        },
    )
    retries = _parse_nested(
        env,
        {
            "job_tries": ("PULSE_JOB_TRIES", parse_int_env),
            "job_backoff": ("PULSE_JOB_BACKOFF", parse_float_env),
        },
    )
    values["resources"] = resources
    values["timing"] = timing
    values["retries"] = retries

    try:
        return StableSettings(**values)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration: {exc.errors()[0].get('msg', exc)}",
            context={"errors": [str(err.get("msg")) for err in exc.errors()]},
            cause=exc,
        ) from exc
