"""Cliente de custodio ECA-3 (tercera generación del protocolo).

- Endpoint `{api_base_url}/v3/json-rpc`.
- Refresh grant con body JSON.
- Parámetros JSON-RPC posicionales; `createTransaction` informa si el
  custodio publica la transacción o la devuelve firmada.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from adapters.custodians.json_rpc import JsonRpcCaller
from adapters.custodians.parsing import (
    extract_id,
    parse_accounts,
    parse_chain_ids,
    parse_customer_proof,
    parse_deep_link,
    parse_signed_message,
    parse_transaction,
)
from adapters.custodians.token_session import GrantEncoding, RefreshTokenSession
from core.config import AppSettings
from core.domain.errors import CustodianCallFailed
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
from core.interfaces.custodian_api import CustodianApi


class Eca3Client(CustodianApi):
    """Traduce la superficie uniforme al protocolo ECA-3."""

    api_version = "v3"

    def __init__(
        self,
        *,
        refresh_token: str,
        api_base_url: str,
        refresh_token_url: str,
        settings: AppSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._api_base_url = api_base_url
        self._events: EventChannel[TokenEvent] = EventChannel()
        self._session = RefreshTokenSession(
            api_base_url=api_base_url,
            refresh_token=refresh_token,
            refresh_token_url=refresh_token_url,
            encoding=GrantEncoding.JSON,
            events=self._events,
            settings=settings,
            clock=clock,
            label="ECA3",
        )
        self._rpc = JsonRpcCaller(f"{api_base_url.rstrip('/')}/v3/json-rpc", settings)

    @property
    def events(self) -> EventChannel[TokenEvent]:
        return self._events

    @property
    def api_base_url(self) -> str:
        return self._api_base_url

    @property
    def refresh_token(self) -> str:
        return self._session.refresh_token

    def set_refresh_token(self, refresh_token: str) -> None:
        self._session.set_refresh_token(refresh_token)

    async def get_access_token(self) -> str:
        return await self._session.get_access_token()

    async def _call(self, method: str, params: Any) -> Any:
        access_token = await self._session.get_access_token()
        return await self._rpc.call(method, params, access_token)

    async def list_accounts(self) -> list[CustodianAccount]:
        return parse_accounts(await self._call("custodian_listAccounts", []))

    async def create_transaction(
        self, payload: CreateTransactionPayload, meta: TransactionMeta
    ) -> CustodianTransaction:
        metadata: dict[str, Any] = {
            "chainId": meta.chain_id,
            "note": meta.note or "",
            "custodianPublishesTransaction": meta.custodian_publishes_transaction,
        }
        if meta.rpc_url:
            metadata["rpcUrl"] = meta.rpc_url
        params = [payload.model_dump(by_alias=True, exclude_none=True), metadata]
        result = await self._call("custodian_createTransaction", params)
        raw = payload.model_dump(by_alias=True)
        raw["id"] = extract_id("createTransaction", result, "transactionId", "id")
        return parse_transaction(
            "createTransaction",
            raw,
            chain_id=meta.chain_id,
            custodian_publishes_transaction=meta.custodian_publishes_transaction,
        )

    async def sign_personal_message(self, address: str, message: str) -> SignedMessageDetails:
        result = await self._call("custodian_sign", [address, message])
        return SignedMessageDetails(
            id=extract_id("sign", result, "signedMessageId", "id"),
            address=address,
            message=message,
        )

    async def sign_typed_data(
        self, address: str, data: Any, version: SignTypedDataVersion
    ) -> SignedMessageDetails:
        result = await self._call("custodian_signTypedData", [address, data, version.value.lower()])
        return SignedMessageDetails(
            id=extract_id("signTypedData", result, "signedMessageId", "id"),
            address=address,
            message=data,
        )

    async def get_transaction_by_id(self, transaction_id: str) -> CustodianTransaction | None:
        result = await self._call("custodian_getTransactionById", [transaction_id])
        if result is None:
            return None
        if not isinstance(result, dict) or not isinstance(result.get("transaction"), dict):
            raise CustodianCallFailed("getTransactionById", "expected a transaction object")
        metadata = result.get("metadata") if isinstance(result.get("metadata"), dict) else {}
        chain_id = metadata.get("chainId")
        return parse_transaction(
            "getTransactionById",
            result["transaction"],
            chain_id=str(chain_id) if chain_id is not None else None,
            custodian_publishes_transaction=bool(metadata.get("custodianPublishesTransaction", True)),
        )

    async def get_signed_message_by_id(
        self, address: str, message_id: str
    ) -> SignedMessageDetails | None:
        result = await self._call("custodian_getSignedMessageById", [message_id])
        return parse_signed_message("getSignedMessageById", result, address=address)

    async def get_transaction_link(self, transaction_id: str) -> CustodianDeepLink | None:
        result = await self._call("custodian_getTransactionLink", [transaction_id])
        return parse_deep_link("getTransactionLink", result, id_key="transactionId")

    async def get_signed_message_link(self, message_id: str) -> CustodianDeepLink | None:
        result = await self._call("custodian_getSignedMessageLink", [message_id])
        return parse_deep_link("getSignedMessageLink", result, id_key="signedMessageId")

    async def get_supported_chains(self, address: str) -> list[str]:
        result = await self._call("custodian_listAccountChainIds", [address])
        return parse_chain_ids("listAccountChainIds", result)

    async def replace_transaction(self, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self._call("custodian_replaceTransaction", [payload])
        if not isinstance(result, dict):
            raise CustodianCallFailed("replaceTransaction", "expected an object result")
        return result

    async def get_customer_proof(self) -> CustomerProof:
        return parse_customer_proof(await self._call("custodian_getCustomerProof", []))
