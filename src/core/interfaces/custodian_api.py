"""Contrato del cliente de custodio (superficie uniforme de capacidades).

Las dos generaciones del protocolo (ECA-1, ECA-3) implementan este Protocol;
el keyring las trata de forma polimórfica y las elige por `custodian_type`.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.events import TokenEvent
from core.domain.models import (
    CreateTransactionPayload,
    CustodianAccount,
    CustodianDeepLink,
    CustodianTransaction,
    CustomerProof,
    SignedMessageDetails,
    SignTypedDataVersion,
    TransactionMeta,
)
from core.events import EventChannel


@runtime_checkable
class CustodianApi(Protocol):
    """Contrato mínimo de un cliente de custodio.

    Reglas:
    - Cada capacidad obtiene un access token (a lo sumo un refresh) y hace una
      única llamada JSON-RPC `custodian_<operación>`.
    - Fallos de red/decodificación de la llamada se propagan como
      `CustodianCallFailed`; no hay reintentos aquí.
    """

    @property
    def events(self) -> EventChannel[TokenEvent]: ...

    @property
    def api_base_url(self) -> str: ...

    @property
    def refresh_token(self) -> str: ...

    def set_refresh_token(self, refresh_token: str) -> None: ...

    async def get_access_token(self) -> str: ...

    async def list_accounts(self) -> list[CustodianAccount]: ...

    async def create_transaction(
        self, payload: CreateTransactionPayload, meta: TransactionMeta
    ) -> CustodianTransaction: ...

    async def sign_personal_message(self, address: str, message: str) -> SignedMessageDetails: ...

    async def sign_typed_data(
        self, address: str, data: Any, version: SignTypedDataVersion
    ) -> SignedMessageDetails: ...

    async def get_transaction_by_id(self, transaction_id: str) -> CustodianTransaction | None: ...

    async def get_signed_message_by_id(
        self, address: str, message_id: str
    ) -> SignedMessageDetails | None: ...

    async def get_transaction_link(self, transaction_id: str) -> CustodianDeepLink | None: ...

    async def get_signed_message_link(self, message_id: str) -> CustodianDeepLink | None: ...

    async def get_supported_chains(self, address: str) -> list[str]: ...

    async def replace_transaction(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def get_customer_proof(self) -> CustomerProof: ...
