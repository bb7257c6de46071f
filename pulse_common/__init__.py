"""Shared helpers for colima-pulse."""

from pulse_common.commands import CommandResult, CommandRunner
from pulse_common.errors import PulseError
from pulse_common.logging import configure_logging

__all__ = ["CommandResult", "CommandRunner", "PulseError", "configure_logging"]
