"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import AppSettings, get_user_env_file, write_user_env_vars
from core.domain.custodians import CUSTODIAN_METADATA, CustodianMetadata, visible_custodians

config_app = typer.Typer(no_args_is_help=True, help="Persisted configuration (user .env).")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc) or type(exc).__name__


async def _check_custodians(
    custodians: list[CustodianMetadata], settings: AppSettings
) -> list[tuple[CustodianMetadata, bool, str]]:
    targets = [c for c in custodians if c.refresh_token_url]
    results = await asyncio.gather(*(_check_http(c.refresh_token_url or "", settings) for c in targets))
    return [(custodian, ok, detail) for custodian, (ok, detail) in zip(targets, results)]


def run(
    all_custodians: bool = typer.Option(False, "--all", help="Include custodians hidden from the UI."),
) -> None:
    """Run baseline diagnostics: settings and refresh endpoint reachability."""

    settings = AppSettings()

    table = Table(title="custodial-keyring Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("Mode", "DEV" if settings.dev_mode else "STRICT", "dev_mode=" + str(settings.dev_mode).lower())
    table.add_row("HTTP timeout", "OK", f"{settings.http_timeout_seconds:g}s")
    table.add_row("User config", "OK" if get_user_env_file().exists() else "MISSING", str(get_user_env_file()))

    custodians = visible_custodians(CUSTODIAN_METADATA, include_hidden=all_custodians)
    for custodian, ok, detail in asyncio.run(_check_custodians(custodians, settings)):
        table.add_row(f"Refresh {custodian.name}", "OK" if ok else "FAIL", detail)

    _console.print(table)


@config_app.command(name="set-dev-mode")
def set_dev_mode(
    enabled: bool = typer.Argument(..., help="true to trust custodian-supplied metadata and show raw errors."),
) -> None:
    """Store dev mode in the user config .env."""

    env_path = write_user_env_vars({"CUSTODIAL_KEYRING_DEV_MODE": "true" if enabled else "false"})
    _console.print(f"[green]Saved dev mode ({'on' if enabled else 'off'}) to:[/green] {env_path}")
