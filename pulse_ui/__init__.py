"""User interface layer for colima-pulse."""

from pulse_ui.console import ConsoleUIAdapter
from pulse_ui.headless import HeadlessUIAdapter

__all__ = ["ConsoleUIAdapter", "HeadlessUIAdapter"]
