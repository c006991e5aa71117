"""Componentes de UI para CLI (Rich).

Tablas y paneles reutilizados por los comandos; los comandos no arman
estilos por su cuenta.
"""

from __future__ import annotations

from typing import Iterable

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.custodians import CustodianMetadata
from core.domain.models import CustodianAccount


def print_banner(console: Console) -> None:
    title = Text("custodial-keyring", style="bold cyan")
    subtitle = Text("Custodial accounts • JSON-RPC custodians • Token rotation", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_custodians_table(custodians: Iterable[CustodianMetadata]) -> Table:
    """Tabla de la allow-list de custodios."""

    table = Table(title="Custodians")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Display name", style="white")
    table.add_column("API", style="magenta")
    table.add_column("Version", style="green")
    table.add_column("Publishes tx", style="yellow")
    table.add_column("Production", style="dim")
    for custodian in custodians:
        table.add_row(
            custodian.name,
            custodian.display_name or "-",
            custodian.api_base_url,
            custodian.api_version.value,
            "yes" if custodian.custodian_publishes_transaction else "no",
            "yes" if custodian.production else "no",
        )
    return table


def build_accounts_table(accounts: Iterable[CustodianAccount], chains: dict[str, list[str]]) -> Table:
    table = Table(title="Custodian accounts")
    table.add_column("Name", style="cyan")
    table.add_column("Address", style="white", no_wrap=True)
    table.add_column("Chains", style="green")
    for account in accounts:
        table.add_row(account.name or "-", account.address, ", ".join(chains.get(account.address, [])) or "-")
    return table
