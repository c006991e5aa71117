"""Normalización de resultados JSON-RPC a modelos del dominio.

Funciones puras (sin I/O). Un resultado que no encaja en el modelo se reporta
como `CustodianCallFailed` de la operación que lo produjo.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.domain.encoding import to_caip2_chain_id
from core.domain.errors import CustodianCallFailed, ValidationError
from core.domain.models import (
    CustodianAccount,
    CustodianDeepLink,
    CustodianTransaction,
    CustomerProof,
    SignedMessageDetails,
    TransactionStatus,
)

M = TypeVar("M", bound=BaseModel)


def validate_result(operation: str, model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise CustodianCallFailed(operation, f"unexpected result shape: {exc.error_count()} error(s)") from exc


def extract_id(operation: str, result: Any, *keys: str) -> str:
    """El id puede venir como string plano o dentro de un objeto."""

    if isinstance(result, str) and result:
        return result
    if isinstance(result, dict):
        for key in keys or ("id",):
            value = result.get(key)
            if isinstance(value, str) and value:
                return value
    raise CustodianCallFailed(operation, "result did not include an id")


def parse_accounts(result: Any) -> list[CustodianAccount]:
    if not isinstance(result, list):
        raise CustodianCallFailed("listAccounts", "expected a list of accounts")
    return [validate_result("listAccounts", CustodianAccount, item) for item in result]


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return str(value)


def parse_status(operation: str, raw: Any) -> TransactionStatus:
    if isinstance(raw, dict):
        return validate_result(operation, TransactionStatus, raw)
    if isinstance(raw, str) and raw:
        return TransactionStatus(display_text=raw)
    return TransactionStatus()


def parse_transaction(
    operation: str,
    raw: dict[str, Any],
    *,
    chain_id: str | None = None,
    custodian_publishes_transaction: bool = True,
) -> CustodianTransaction:
    custodian_id = raw.get("id") or raw.get("custodianTransactionId")
    data = {
        "custodianTransactionId": custodian_id,
        "transactionStatus": parse_status(operation, raw.get("status")),
        "from": raw.get("from"),
        "to": raw.get("to"),
        "value": _as_text(raw.get("value")),
        "data": raw.get("data"),
        "gasLimit": _as_text(raw.get("gas") or raw.get("gasLimit")),
        "gasPrice": _as_text(raw.get("gasPrice")),
        "maxFeePerGas": _as_text(raw.get("maxFeePerGas")),
        "maxPriorityFeePerGas": _as_text(raw.get("maxPriorityFeePerGas")),
        "nonce": _as_text(raw.get("nonce")),
        "chainId": chain_id or _as_text(raw.get("chainId")),
        "transactionHash": raw.get("hash") or raw.get("transactionHash"),
        "signedRawTransaction": raw.get("signedRawTransaction"),
        "custodianPublishesTransaction": custodian_publishes_transaction,
    }
    return validate_result(operation, CustodianTransaction, data)


def parse_signed_message(operation: str, raw: Any, *, address: str) -> SignedMessageDetails | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise CustodianCallFailed(operation, "expected a signed message object")
    status = raw.get("status")
    data = {
        "id": raw.get("id"),
        "address": raw.get("address") or address,
        "message": raw.get("message"),
        "signature": raw.get("signature"),
        "status": status if isinstance(status, dict) else ({"displayText": status} if status else None),
    }
    return validate_result(operation, SignedMessageDetails, data)


def parse_deep_link(operation: str, raw: Any, *, id_key: str) -> CustodianDeepLink | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise CustodianCallFailed(operation, "expected a deep link object")
    data = {
        "id": raw.get(id_key) or raw.get("id"),
        "text": raw.get("text"),
        "url": raw.get("url") or "",
        "action": raw.get("action") or "view",
    }
    return validate_result(operation, CustodianDeepLink, data)


def parse_chain_ids(operation: str, raw: Any) -> list[str]:
    if not isinstance(raw, list):
        raise CustodianCallFailed(operation, "expected a list of chain ids")
    chains: list[str] = []
    for item in raw:
        try:
            chains.append(to_caip2_chain_id(item))
        except ValidationError as exc:
            raise CustodianCallFailed(operation, exc) from exc
    return chains


def parse_customer_proof(raw: Any) -> CustomerProof:
    return validate_result("getCustomerProof", CustomerProof, raw)
