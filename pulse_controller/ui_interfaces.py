"""Controller-level UI contracts and no-op implementations."""

from __future__ import annotations

from typing import Protocol, Sequence


class UIAdapter(Protocol):
    """Minimal interface for presentation and operator prompts."""

    def show_info(self, message: str) -> None:
        """Render an informational message."""

    def show_warning(self, message: str) -> None:
        """Render a warning message."""

    def show_error(self, message: str) -> None:
        """Render an error message."""

    def show_success(self, message: str) -> None:
        """Render a success message."""

    def show_panel(self, message: str, title: str | None = None, border_style: str | None = None) -> None:
        """Render a block/panel container."""

    def show_rule(self, title: str) -> None:
        """Render a horizontal rule with a title."""

    def show_table(self, title: str, columns: Sequence[str], rows: list[Sequence[str]]) -> None:
        """Render a simple table."""

    def ask(self, prompt: str, default: str | None = None) -> str:
        """Read a line of free text from the operator."""

    def confirm(self, prompt: str, default: bool = False) -> bool:
        """Ask a yes/no question."""

    def is_interactive(self) -> bool:
        """True when a human can answer prompts."""


class NoOpUIAdapter(UIAdapter):
    """No-op UI adapter that discards all output and never prompts."""

    def show_info(self, message: str) -> None:  # pragma: no cover - trivial
        pass

    def show_warning(self, message: str) -> None:  # pragma: no cover - trivial
        pass

    def show_error(self, message: str) -> None:  # pragma: no cover - trivial
        pass

    def show_success(self, message: str) -> None:  # pragma: no cover - trivial
        pass

    def show_panel(self, message: str, title: str | None = None, border_style: str | None = None) -> None:  # pragma: no cover - trivial
        pass

    def show_rule(self, title: str) -> None:  # pragma: no cover - trivial
        pass

    def show_table(self, title: str, columns: Sequence[str], rows: list[Sequence[str]]) -> None:  # pragma: no cover - trivial
        pass

    def ask(self, prompt: str, default: str | None = None) -> str:
        return default or ""

    def confirm(self, prompt: str, default: bool = False) -> bool:
        return default

    def is_interactive(self) -> bool:
        return False
