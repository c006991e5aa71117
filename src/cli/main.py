"""CLI principal (typer).

Comandos:
- `custodians`: allow-list de custodios soportados.
- `accounts`: conecta con un custodio y lista sus cuentas y cadenas.
- `doctor`: diagnóstico de configuración y endpoints.
- `config set-dev-mode`: persiste el modo en el .env del usuario.
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from adapters.custodians import build_custodian_client
from adapters.custodians.token_session import mask_token
from cli import doctor
from cli.logging_setup import configure_logging
from cli.ui_components import build_accounts_table, build_custodians_table, print_banner
from core.config import AppSettings
from core.domain.custodians import CUSTODIAN_METADATA, find_custodian_by_api_url, visible_custodians
from core.domain.errors import KeyringError
from core.domain.events import RefreshTokenRotated, TokenEvent
from core.domain.models import CustodianAccount, CustodianDetails, CustodianType

app = typer.Typer(no_args_is_help=True, help="Custodial signing keyring tools.")
app.command(name="doctor")(doctor.run)
app.add_typer(doctor.config_app, name="config")

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    banner: bool = typer.Option(True, "--banner/--no-banner", help="Show the welcome banner."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    if banner:
        print_banner(console)


@app.command()
def custodians(
    all_custodians: bool = typer.Option(False, "--all", help="Include custodians hidden from the UI."),
) -> None:
    """List the custodians this keyring accepts."""

    console.print(build_custodians_table(visible_custodians(CUSTODIAN_METADATA, include_hidden=all_custodians)))


def rotation_notice(event: RefreshTokenRotated) -> str:
    return f"[yellow]Refresh token rotated by the custodian. New token:[/yellow] {mask_token(event.new_refresh_token)}"


async def _list_accounts(details: CustodianDetails, settings: AppSettings) -> tuple[list[CustodianAccount], dict[str, list[str]]]:
    client = build_custodian_client(details, settings)

    def _on_token_event(event: TokenEvent) -> None:
        if isinstance(event, RefreshTokenRotated):
            details.token = event.new_refresh_token
            console.print(rotation_notice(event))

    subscription = client.events.subscribe(_on_token_event)
    try:
        accounts = await client.list_accounts()
        chains: dict[str, list[str]] = {}
        for account in accounts:
            chains[account.address] = await client.get_supported_chains(account.address)
    finally:
        subscription.unsubscribe()
    return accounts, chains


@app.command()
def accounts(
    token: str = typer.Option(..., "--token", "-t", prompt=True, hide_input=True, help="Custodian refresh token."),
    api_url: str = typer.Option(..., "--api-url", help="Custodian API base URL."),
    custodian_type: CustodianType = typer.Option(CustodianType.ECA3, "--type", help="Protocol generation."),
    refresh_url: str = typer.Option("", "--refresh-url", help="Refresh token URL (defaults to the allow-list entry)."),
) -> None:
    """Connect to a custodian and list its accounts and supported chains."""

    settings = AppSettings()
    custodian = find_custodian_by_api_url(api_url)
    if not refresh_url:
        if custodian is None or not custodian.refresh_token_url:
            raise typer.BadParameter("--refresh-url is required for custodians outside the allow-list")
        refresh_url = custodian.refresh_token_url

    details = CustodianDetails(
        token=token,
        custodian_api_url=api_url,
        custodian_type=custodian_type,
        refresh_token_url=refresh_url,
        custodian_environment=custodian.name if custodian else "custom",
        custodian_display_name=(custodian.display_name if custodian else None) or api_url,
    )

    try:
        found, chains = asyncio.run(_list_accounts(details, settings))
    except KeyringError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    console.print(build_accounts_table(found, chains))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
