"""Renderer basado en Rich.

El keyring solo pide mostrar mensajes de info/error; aquí se dibujan como
paneles en la consola.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from core.interfaces.collaborators import Renderer


class RichRenderer(Renderer):
    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    async def show_info_message(self, text: str) -> None:
        self._console.print(Panel(Text(text), title="Custodian", border_style="cyan"))

    async def show_error_message(self, text: str) -> None:
        self._console.print(Panel(Text(text, style="red"), title="Error", border_style="red"))
