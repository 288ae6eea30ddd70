"""Shared rich console used for all progress and failure messages."""

from __future__ import annotations

from rich.console import Console
from rich.theme import Theme

THEME = Theme(
    {
        "success": "green",
        "error": "bold red",
        "info": "cyan",
        "warning": "yellow",
    }
)

console = Console(theme=THEME)
