"""Rich-based console adapter used for all TTY output."""

from __future__ import annotations

import sys
from typing import IO, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from pulse_controller.ui_interfaces import UIAdapter

THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "green",
        "accent": "#3ea6ff",
    }
)


class ConsoleUIAdapter(UIAdapter):
    """Operator-facing output for a terminal bring-up.

    Warnings and errors go to ``err_stream`` (stderr by default) so a
    redirected stdout keeps the phase log and report only. Messages are
    printed without markup: command output often contains ``[...]``.
    """

    def __init__(
        self,
        stream: IO[str] | None = None,
        *,
        err_stream: IO[str] | None = None,
        interactive: bool | None = None,
    ):
        self.console = Console(theme=THEME, file=stream or sys.stdout, highlight=False, soft_wrap=True)
        self.err_console = Console(
            theme=THEME,
            file=err_stream or stream or sys.stderr,
            highlight=False,
            soft_wrap=True,
        )
        self._interactive = interactive

    def show_info(self, message: str) -> None:
        self.console.print(Text(message, style="info"))

    def show_warning(self, message: str) -> None:
        self.err_console.print(Text(message, style="warning"))

    def show_error(self, message: str) -> None:
        self.err_console.print(Text(message, style="error"))

    def show_success(self, message: str) -> None:
        self.console.print(Text(message, style="success"))

    def show_panel(self, message: str, title: str | None = None, border_style: str | None = None) -> None:
        self.console.print(Panel(Text(message), title=title, border_style=border_style or "accent"))

    def show_rule(self, title: str) -> None:
        self.console.rule(Text(title, style="bold"), style="accent")

    def show_table(self, title: str, columns: Sequence[str], rows: list[Sequence[str]]) -> None:
        table = Table(title=title, border_style="accent", header_style="bold", row_styles=("", "dim"))
        # Job names stay on one line; details such as error tails fold.
        for index, column in enumerate(columns):
            table.add_column(column, no_wrap=index == 0, overflow="fold")
        for row in rows:
            table.add_row(*(Text(str(cell)) for cell in row))
        self.console.print(table)

    def ask(self, prompt: str, default: str | None = None) -> str:
        if default is None:
            return Prompt.ask(prompt, console=self.console)
        return Prompt.ask(prompt, console=self.console, default=default)

    def confirm(self, prompt: str, default: bool = False) -> bool:
        return Confirm.ask(prompt, console=self.console, default=default)

    def is_interactive(self) -> bool:
        if self._interactive is not None:
            return self._interactive
        return sys.stdin.isatty() and self.console.is_terminal
