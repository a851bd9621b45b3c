"""Rich console helpers shared by the CLI commands."""

from rich.console import Console
from rich.panel import Panel

from codewith.config.messages import COLORS, PROGRESS_CHARS

console = Console()
error_console = Console(stderr=True)


def print_success(message: str) -> None:
    console.print(f"[{COLORS['success']}]{PROGRESS_CHARS['complete']}[/] {message}")


def print_error(message: str) -> None:
    error_console.print(f"[{COLORS['error']}]{PROGRESS_CHARS['error']} {message}[/]")


def print_warning(message: str) -> None:
    console.print(f"[{COLORS['warning']}]![/] {message}")


def print_info(message: str) -> None:
    console.print(f"[{COLORS['info']}]i[/] {message}")


def print_header(title: str) -> None:
    console.print()
    console.print(f"[bold {COLORS['primary']}]{title}[/]")
    console.print()


def print_panel(content: str, title: str | None = None, style: str = COLORS["primary"]) -> None:
    console.print(Panel(content, title=title, border_style=style))
