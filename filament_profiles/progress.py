"""Progress reporting for install, uninstall and registry operations."""

from __future__ import annotations

from typing import Protocol


class ProgressReporter(Protocol):
    """Protocol for operation progress reporting."""

    def update_status(self, message: str) -> None: ...
    def step(self, step_name: str, current: int, total: int) -> None: ...
    def warning(self, message: str) -> None: ...


class RichProgressReporter:
    """Rich-based reporter with coloured status lines."""

    def __init__(self) -> None:
        from rich.console import Console
        from rich.markup import escape

        self.console = Console()
        self._escape = escape

    def update_status(self, message: str) -> None:
        self.console.print(f"[bold blue]>>>[/] {self._escape(message)}")

    def step(self, step_name: str, current: int, total: int) -> None:
        self.console.print(f"  [dim]\\[{current}/{total}][/] {self._escape(step_name)}")

    def warning(self, message: str) -> None:
        self.console.print(f"[bold yellow]![/] {self._escape(message)}")


class NullProgressReporter:
    """No-op reporter for --json mode or testing."""

    def update_status(self, message: str) -> None:
        pass

    def step(self, step_name: str, current: int, total: int) -> None:
        pass

    def warning(self, message: str) -> None:
        pass
