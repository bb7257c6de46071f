"""Headless adapter that records output and answers prompts from a script."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from pulse_controller.ui_interfaces import UIAdapter


@dataclass
class RecordedTable:
    title: str
    columns: list[str]
    rows: list[list[str]]


@dataclass
class HeadlessUIAdapter(UIAdapter):
    recorded_messages: list[str] = field(default_factory=list)
    recorded_tables: list[RecordedTable] = field(default_factory=list)
    recorded_prompts: list[str] = field(default_factory=list)

    # Configuration for automated responses
    interactive: bool = False
    next_answers: list[str] = field(default_factory=list)
    next_confirm_response: bool = True

    def show_info(self, message: str) -> None:
        self.recorded_messages.append(f"INFO: {message}")

    def show_warning(self, message: str) -> None:
        self.recorded_messages.append(f"WARNING: {message}")

    def show_error(self, message: str) -> None:
        self.recorded_messages.append(f"ERROR: {message}")

    def show_success(self, message: str) -> None:
        self.recorded_messages.append(f"SUCCESS: {message}")

    def show_panel(self, message: str, title: str | None = None, border_style: str | None = None) -> None:
        self.recorded_messages.append(f"PANEL[{title or ''}]: {message}")

    def show_rule(self, title: str) -> None:
        self.recorded_messages.append(f"RULE: {title}")

    def show_table(self, title: str, columns: Sequence[str], rows: list[Sequence[str]]) -> None:
        self.recorded_tables.append(
            RecordedTable(title, list(columns), [[str(cell) for cell in row] for row in rows])
        )

    def ask(self, prompt: str, default: str | None = None) -> str:
        self.recorded_prompts.append(prompt)
        if self.next_answers:
            return self.next_answers.pop(0)
        return default or ""

    def confirm(self, prompt: str, default: bool = False) -> bool:
        self.recorded_prompts.append(prompt)
        return self.next_confirm_response

    def is_interactive(self) -> bool:
        return self.interactive
