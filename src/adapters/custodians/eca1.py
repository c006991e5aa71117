"""Cliente de custodio ECA-1 (primera generación del protocolo).

- Endpoint `{api_base_url}/v1/json-rpc`.
- Refresh grant form-encoded.
- Parámetros JSON-RPC como objetos con nombre.
- No expone `custodian_getSignedMessageLink` ni `custodian_replaceTransaction`.
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
from core.domain.errors import CustodianCallFailed, MethodNotSupported
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


class Eca1Client(CustodianApi):
    """Traduce la superficie uniforme al protocolo ECA-1."""

    api_version = "v1"

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
            encoding=GrantEncoding.FORM,
            events=self._events,
            settings=settings,
            clock=clock,
            label="ECA1",
        )
        self._rpc = JsonRpcCaller(f"{api_base_url.rstrip('/')}/v1/json-rpc", settings)

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
        return parse_accounts(await self._call("custodian_listAccounts", {}))

    async def create_transaction(
        self, payload: CreateTransactionPayload, meta: TransactionMeta
    ) -> CustodianTransaction:
        params = {
            "transaction": payload.model_dump(by_alias=True, exclude_none=True),
            "metadata": {"chainId": meta.chain_id, "note": meta.note or ""},
        }
        result = await self._call("custodian_createTransaction", params)
        transaction_id = extract_id("createTransaction", result, "transactionId", "id")
        raw = payload.model_dump(by_alias=True)
        raw["id"] = transaction_id
        # ECA-1 custodians always broadcast the transactions they sign.
        return parse_transaction(
            "createTransaction",
            raw,
            chain_id=meta.chain_id,
            custodian_publishes_transaction=True,
        )

    async def sign_personal_message(self, address: str, message: str) -> SignedMessageDetails:
        result = await self._call("custodian_sign", {"address": address, "message": message})
        return SignedMessageDetails(
            id=extract_id("sign", result, "signedMessageId", "id"),
            address=address,
            message=message,
        )

    async def sign_typed_data(
        self, address: str, data: Any, version: SignTypedDataVersion
    ) -> SignedMessageDetails:
        params = {"address": address, "data": data, "version": version.value.lower()}
        result = await self._call("custodian_signTypedData", params)
        return SignedMessageDetails(
            id=extract_id("signTypedData", result, "signedMessageId", "id"),
            address=address,
            message=data,
        )

    async def get_transaction_by_id(self, transaction_id: str) -> CustodianTransaction | None:
        result = await self._call("custodian_getTransactionById", {"transactionId": transaction_id})
        if result is None:
            return None
        if not isinstance(result, dict):
            raise CustodianCallFailed("getTransactionById", "expected a transaction object")
        return parse_transaction("getTransactionById", result)

    async def get_signed_message_by_id(
        self, address: str, message_id: str
    ) -> SignedMessageDetails | None:
        result = await self._call(
            "custodian_getSignedMessageById",
            {"address": address, "signedMessageId": message_id},
        )
        return parse_signed_message("getSignedMessageById", result, address=address)

    async def get_transaction_link(self, transaction_id: str) -> CustodianDeepLink | None:
        result = await self._call("custodian_getTransactionLink", {"transactionId": transaction_id})
        return parse_deep_link("getTransactionLink", result, id_key="transactionId")

    async def get_signed_message_link(self, message_id: str) -> CustodianDeepLink | None:
        raise MethodNotSupported("custodian_getSignedMessageLink")

    async def get_supported_chains(self, address: str) -> list[str]:
        result = await self._call("custodian_listAccountChainIds", {"address": address})
        return parse_chain_ids("listAccountChainIds", result)

    async def replace_transaction(self, payload: dict[str, Any]) -> dict[str, Any]:
        raise MethodNotSupported("custodian_replaceTransaction")

    async def get_customer_proof(self) -> CustomerProof:
        return parse_customer_proof(await self._call("custodian_getCustomerProof", {}))
