"""Onboarding: conecta un custodio e importa las cuentas elegidas.

Flujo:
1) validar la conexión (y el allow-list en modo estricto)
2) listar las cuentas Ethereum del custodio con un cliente transitorio
3) descartar las que ya existen y pedir al chooser cuáles importar
4) crear cada cuenta por separado; los fallos se juntan en un único mensaje
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from core.config import AppSettings
from core.domain.custodians import find_custodian_by_api_url
from core.domain.encoding import normalize_address
from core.domain.errors import UnknownCustodian
from core.domain.events import RefreshTokenRotated, TokenEvent
from core.domain.models import (
    ConnectionStatusRequest,
    CreateAccountOptions,
    CustodialAccount,
    CustodianAccount,
    CustodianDetails,
)
from core.interfaces.collaborators import Renderer
from core.services.custodian_registry import ClientFactory
from core.services.keyring import CustodialKeyring, validate_input

logger = logging.getLogger(__name__)

AccountChooser = Callable[[list[CustodianAccount]], Awaitable[list[CustodianAccount]]]


class OnboardingService:
    def __init__(
        self,
        keyring: CustodialKeyring,
        renderer: Renderer,
        client_factory: ClientFactory,
        settings: AppSettings | None = None,
    ) -> None:
        self._keyring = keyring
        self._renderer = renderer
        self._client_factory = client_factory
        self._settings = settings or AppSettings()

    async def fetch_accounts(self, details: CustodianDetails) -> list[CustodianAccount]:
        """Lista las cuentas del custodio que todavía no están en el keyring.

        El token de `details` se actualiza en el lugar si el custodio lo rota
        durante la consulta.
        """

        client = self._client_factory(details)

        def _on_token_event(event: TokenEvent) -> None:
            if isinstance(event, RefreshTokenRotated) and event.old_refresh_token == details.token:
                details.token = event.new_refresh_token

        subscription = client.events.subscribe(_on_token_event)
        try:
            accounts = await client.list_accounts()
        finally:
            subscription.unsubscribe()

        existing = {normalize_address(account.address) for account in await self._keyring.list_accounts()}
        return [account for account in accounts if normalize_address(account.address) not in existing]

    async def onboard(
        self,
        request: CustodianDetails | dict[str, Any],
        origin: str,
        choose_accounts: AccountChooser,
    ) -> list[CreateAccountOptions]:
        details = validate_input(CustodianDetails, request)
        if not self._settings.dev_mode and find_custodian_by_api_url(details.custodian_api_url) is None:
            raise UnknownCustodian(details.custodian_api_url)

        candidates = await self.fetch_accounts(details)
        if not candidates:
            logger.info("No new accounts to import from %s", details.custodian_api_url)
            return []

        selected = await choose_accounts(candidates)

        added: list[CreateAccountOptions] = []
        errors: list[str] = []
        for account in selected:
            options = CreateAccountOptions(
                address=account.address,
                name=account.name or None,
                details=details,
                origin=origin,
            )
            try:
                await self._keyring.create_account(options)
            except Exception as exc:
                logger.warning("Failed to add account %s: %s", account.address, exc)
                errors.append(f"Failed to add account {account.address}: {exc}")
                continue
            added.append(options)

        if errors:
            await self._renderer.show_error_message("\n".join(errors))
        return added

    async def connection_status(
        self,
        details: ConnectionStatusRequest | dict[str, Any],
        origin: str,
    ) -> list[CustodialAccount]:
        return await self._keyring.get_connected_accounts(details, origin)
