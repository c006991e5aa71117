"""Colaboradores en memoria (estado, requests y notificador de cuentas).

Implementaciones de referencia de `core.interfaces.collaborators` para la CLI
y los tests. No persisten nada entre procesos.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Awaitable, Callable, TypeVar

from core.domain.encoding import normalize_address
from core.domain.errors import AccountRejected
from core.domain.models import CustodialAccount, CustodianDetails, SigningRequestRecord, Wallet
from core.interfaces.collaborators import AccountEventNotifier, RequestRecorder, StateManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InMemoryStateManager(StateManager):
    def __init__(self, wallets: list[Wallet] | None = None) -> None:
        self._wallets: list[Wallet] = list(wallets or [])

    async def list_accounts(self) -> list[CustodialAccount]:
        return [wallet.account for wallet in self._wallets]

    async def get_account(self, account_id: str) -> CustodialAccount | None:
        for wallet in self._wallets:
            if wallet.account.id == account_id:
                return wallet.account
        return None

    async def list_wallets(self) -> list[Wallet]:
        return list(self._wallets)

    async def get_wallet_by_address(self, address: str) -> Wallet | None:
        target = normalize_address(address)
        for wallet in self._wallets:
            if normalize_address(wallet.account.address) == target:
                return wallet
        return None

    async def add_wallet(self, wallet: Wallet) -> None:
        self._wallets.append(wallet)

    async def remove_accounts(self, account_ids: list[str]) -> None:
        ids = set(account_ids)
        self._wallets = [wallet for wallet in self._wallets if wallet.account.id not in ids]

    async def update_wallet_details(self, account_id: str, details: CustodianDetails) -> None:
        for index, wallet in enumerate(self._wallets):
            if wallet.account.id == account_id:
                self._wallets[index] = wallet.model_copy(update={"details": details})
                return
        logger.debug("No wallet for account %s; details not updated", account_id)

    async def with_transaction(self, fn: Callable[[], Awaitable[T]]) -> T:
        snapshot = copy.deepcopy(self._wallets)
        try:
            return await fn()
        except Exception:
            self._wallets = snapshot
            raise


class InMemoryRequestStore(RequestRecorder):
    def __init__(self) -> None:
        self._records: dict[str, SigningRequestRecord] = {}

    async def upsert_request(self, record: SigningRequestRecord) -> None:
        self._records[record.keyring_request.id] = record

    async def list_requests(self) -> list[SigningRequestRecord]:
        return list(self._records.values())


class RecordingAccountEvents(AccountEventNotifier):
    """Guarda los eventos emitidos; con `veto` rechaza los de creación."""

    def __init__(self, *, veto: str | None = None) -> None:
        self.veto = veto
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def emit_account_event(self, kind: str, payload: dict[str, Any]) -> None:
        if self.veto is not None and kind.endswith("accountCreated"):
            raise AccountRejected(self.veto)
        self.events.append((kind, payload))
