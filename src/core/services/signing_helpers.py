"""Helpers que arman los payloads de firma antes de llamar al custodio."""

from __future__ import annotations

from typing import Any

from core.domain.encoding import normalize_address, to_caip2_chain_id, to_hex_quantity
from core.domain.errors import ValidationError
from core.domain.models import (
    CreateTransactionPayload,
    EthSignTransactionRequest,
    SignedMessageDetails,
    SignTypedDataVersion,
    TransactionMeta,
)
from core.interfaces.custodian_api import CustodianApi


class SignedMessageHelper:
    @staticmethod
    async def sign_personal_message(from_address: str, message: str, client: CustodianApi) -> SignedMessageDetails:
        if not isinstance(message, str):
            raise ValidationError("personal_sign message must be a string")
        return await client.sign_personal_message(normalize_address(from_address), message)

    @staticmethod
    async def sign_typed_data(
        from_address: str,
        data: Any,
        client: CustodianApi,
        version: SignTypedDataVersion,
    ) -> SignedMessageDetails:
        if not isinstance(data, (dict, str)):
            raise ValidationError("Typed data must be an object or a JSON string")
        return await client.sign_typed_data(normalize_address(from_address), data, version)


class TransactionHelper:
    @staticmethod
    def create_transaction_payload(tx: EthSignTransactionRequest) -> CreateTransactionPayload:
        """Payload del custodio: legacy (`gasPrice`) o EIP-1559 (`maxFeePerGas`)."""

        is_eip1559 = tx.max_fee_per_gas is not None or tx.max_priority_fee_per_gas is not None
        gas = tx.gas_limit if tx.gas_limit is not None else tx.gas

        payload: dict[str, Any] = {
            "from": normalize_address(tx.from_),
            "to": normalize_address(tx.to) if tx.to else None,
            "value": to_hex_quantity(tx.value) or "0x0",
            "data": tx.data,
            "gas": to_hex_quantity(gas),
        }
        if is_eip1559:
            payload["maxFeePerGas"] = to_hex_quantity(tx.max_fee_per_gas)
            payload["maxPriorityFeePerGas"] = to_hex_quantity(tx.max_priority_fee_per_gas)
            payload["type"] = "2"
        else:
            payload["gasPrice"] = to_hex_quantity(tx.gas_price)
            payload["type"] = "0"
        return CreateTransactionPayload.model_validate(payload)

    @staticmethod
    def transaction_meta(tx: EthSignTransactionRequest, *, custodian_publishes_transaction: bool) -> TransactionMeta:
        chain_id = to_caip2_chain_id(tx.chain_id).split(":", 1)[1]
        return TransactionMeta(
            chain_id=chain_id,
            custodian_publishes_transaction=custodian_publishes_transaction,
        )
