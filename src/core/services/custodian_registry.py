"""Registry de clientes de custodio por dirección.

Una entrada por dirección normalizada (checksum). La entrada se construye de
forma perezosa desde la `Wallet` persistida, se suscribe al evento de rotación
y se elimina (desuscribiéndose) cuando el token de esa wallet rota; el
siguiente acceso la reconstruye.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from core.domain.encoding import normalize_address
from core.domain.errors import ValidationError, WalletNotFound
from core.domain.events import RefreshTokenRotated, TokenEvent
from core.domain.models import CustodianDetails
from core.events import Subscription
from core.interfaces.collaborators import StateManager
from core.interfaces.custodian_api import CustodianApi

logger = logging.getLogger(__name__)

ClientFactory = Callable[[CustodianDetails], CustodianApi]
RotationHandler = Callable[[RefreshTokenRotated], None]


@dataclass
class RegistryEntry:
    client: CustodianApi
    details: CustodianDetails
    subscription: Subscription[TokenEvent]


class CustodianRegistry:
    """Cache `dirección -> CustodianApi` con invalidación explícita."""

    def __init__(
        self,
        state: StateManager,
        client_factory: ClientFactory,
        on_rotation: RotationHandler,
    ) -> None:
        self._state = state
        self._client_factory = client_factory
        self._on_rotation = on_rotation
        self._entries: dict[str, RegistryEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # (api_url, old_token) -> new_token, until the rotation is persisted.
        self._pending_rotations: dict[tuple[str, str], str] = {}

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, str):
            return False
        try:
            return normalize_address(address) in self._entries
        except ValidationError:
            return False

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, address: str) -> CustodianApi | None:
        entry = self._entries.get(normalize_address(address))
        return entry.client if entry else None

    async def get_or_create(self, address: str) -> CustodianApi:
        key = normalize_address(address)
        entry = self._entries.get(key)
        if entry is not None:
            return entry.client

        lock = self._locks.setdefault(key, asyncio.Lock())
        try:
            return await self._build_locked(lock, key, address)
        except WalletNotFound:
            self._drop_lock(key)
            raise

    async def _build_locked(self, lock: asyncio.Lock, key: str, address: str) -> CustodianApi:
        async with lock:
            entry = self._entries.get(key)
            if entry is not None:
                return entry.client

            wallet = await self._state.get_wallet_by_address(key)
            if wallet is None:
                logger.debug("Wallet does not exist. Address: %s, Checksum address: %s", address, key)
                raise WalletNotFound(address)

            details = self._apply_pending_rotations(wallet.details)
            client = self._client_factory(details)
            subscription = client.events.subscribe(self._dispatch)
            self._entries[key] = RegistryEntry(client=client, details=details, subscription=subscription)
            return client

    def _dispatch(self, event: TokenEvent) -> None:
        if isinstance(event, RefreshTokenRotated):
            self._on_rotation(event)
        else:
            logger.warning("Custodian refresh token expired for %s", event.url)

    def invalidate(self, address: str) -> bool:
        """Quita la entrada y su suscripción; devuelve si existía."""

        key = normalize_address(address)
        entry = self._entries.pop(key, None)
        self._drop_lock(key)
        if entry is None:
            return False
        entry.subscription.unsubscribe()
        return True

    def _drop_lock(self, key: str) -> None:
        # A held lock still guards a build in progress.
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def invalidate_session(self, api_url: str, refresh_token: str) -> list[str]:
        """Invalida toda entrada construida con el par `(refresh_token, api_url)`."""

        stale = [
            key
            for key, entry in self._entries.items()
            if entry.details.token == refresh_token and entry.details.custodian_api_url == api_url
        ]
        for key in stale:
            self.invalidate(key)
        return stale

    def note_rotation(self, event: RefreshTokenRotated) -> None:
        self._pending_rotations[(event.api_url, event.old_refresh_token)] = event.new_refresh_token

    def forget_rotation(self, event: RefreshTokenRotated) -> None:
        self._pending_rotations.pop((event.api_url, event.old_refresh_token), None)

    def _apply_pending_rotations(self, details: CustodianDetails) -> CustodianDetails:
        token = details.token
        seen: set[str] = set()
        while (details.custodian_api_url, token) in self._pending_rotations and token not in seen:
            seen.add(token)
            token = self._pending_rotations[(details.custodian_api_url, token)]
        if token == details.token:
            return details
        return details.model_copy(update={"token": token})

    def clear(self) -> None:
        for key in list(self._entries):
            self.invalidate(key)
        for key in list(self._locks):
            self._drop_lock(key)
