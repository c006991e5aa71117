"""Colaboradores externos del keyring.

El almacenamiento, el registro de requests, el notificador de cuentas y la
capa de UI viven fuera del core; aquí solo se define la forma que el keyring
consume.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, TypeVar, runtime_checkable

from core.domain.models import CustodialAccount, CustodianDetails, SigningRequestRecord, Wallet

T = TypeVar("T")


@runtime_checkable
class StateManager(Protocol):
    async def list_accounts(self) -> list[CustodialAccount]: ...

    async def get_account(self, account_id: str) -> CustodialAccount | None: ...

    async def list_wallets(self) -> list[Wallet]: ...

    async def get_wallet_by_address(self, address: str) -> Wallet | None: ...

    async def add_wallet(self, wallet: Wallet) -> None: ...

    async def remove_accounts(self, account_ids: list[str]) -> None: ...

    async def update_wallet_details(self, account_id: str, details: CustodianDetails) -> None: ...

    async def with_transaction(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Ejecuta `fn` con semántica todo-o-nada para las escrituras internas."""

        ...


@runtime_checkable
class RequestRecorder(Protocol):
    async def upsert_request(self, record: SigningRequestRecord) -> None: ...

    async def list_requests(self) -> list[SigningRequestRecord]: ...


@runtime_checkable
class AccountEventNotifier(Protocol):
    async def emit_account_event(self, kind: str, payload: dict[str, Any]) -> None:
        """Pide al sistema externo registrar/eliminar la cuenta; puede rechazar (raise)."""

        ...


@runtime_checkable
class Renderer(Protocol):
    async def show_info_message(self, text: str) -> None: ...

    async def show_error_message(self, text: str) -> None: ...
