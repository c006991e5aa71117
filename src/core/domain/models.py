"""Modelos del dominio (Pydantic v2).

Estos modelos describen *qué* maneja el keyring custodial (cuentas, conexiones
con custodios, requests de firma) y no *cómo* se persisten ni cómo viajan por
HTTP. Los nombres de campo son snake_case; en el borde (JSON-RPC, requests del
cliente) se serializan en camelCase vía alias.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

ACCOUNT_TYPE_EOA = "eip155:eoa"

_ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CustodianType(str, Enum):
    """Generación del protocolo JSON-RPC que habla el custodio."""

    ECA1 = "ECA1"
    ECA3 = "ECA3"


class EthMethod(str, Enum):
    """Métodos de firma que puede soportar una cuenta custodial."""

    PERSONAL_SIGN = "personal_sign"
    SIGN_TRANSACTION = "eth_signTransaction"
    SIGN_TYPED_DATA_V3 = "eth_signTypedData_v3"
    SIGN_TYPED_DATA_V4 = "eth_signTypedData_v4"


class KeyringEvent(str, Enum):
    """Eventos que el keyring pide aceptar al sistema externo."""

    ACCOUNT_CREATED = "notify:accountCreated"
    ACCOUNT_DELETED = "notify:accountDeleted"


class SignTypedDataVersion(str, Enum):
    V3 = "V3"
    V4 = "V4"


DEFAULT_ACCOUNT_METHODS: tuple[str, ...] = (
    EthMethod.SIGN_TRANSACTION.value,
    EthMethod.PERSONAL_SIGN.value,
    EthMethod.SIGN_TYPED_DATA_V3.value,
    EthMethod.SIGN_TYPED_DATA_V4.value,
)


class CustodianDetails(_CamelModel):
    """Datos de conexión con un custodio (una por cuenta).

    `token` es el refresh token vigente; se reemplaza cuando el custodio lo rota.
    """

    token: str = Field(..., min_length=1, description="Refresh token actual.")
    custodian_api_url: str = Field(..., min_length=1, description="Base URL JSON-RPC del custodio.")
    custodian_type: CustodianType = Field(..., description="Generación del protocolo.")
    refresh_token_url: str = Field(..., min_length=1, description="Endpoint del refresh grant.")
    custodian_environment: str = Field(..., min_length=1, description="Entorno declarado por el custodio.")
    custodian_display_name: str = Field(..., min_length=1, description="Nombre visible del custodio.")


class ConnectionStatusRequest(_CamelModel):
    """Consulta de un custodio: ¿sigue conectado este token?"""

    token: str = Field(..., min_length=1)
    custodian_api_url: str = Field(..., min_length=1)
    custodian_type: CustodianType
    custodian_environment: str = Field(..., min_length=1)


class CustodianOptions(_CamelModel):
    environment_name: str
    display_name: str
    defer_publication: bool = False
    import_origin: str


class AccountOptions(_CamelModel):
    custodian: CustodianOptions
    account_name: str | None = None


class CustodialAccount(_CamelModel):
    """Cuenta EOA cuya llave custodia un tercero."""

    id: str = Field(..., min_length=1, description="UUID de la cuenta.")
    address: str = Field(..., pattern=_ADDRESS_PATTERN)
    methods: list[str] = Field(default_factory=lambda: list(DEFAULT_ACCOUNT_METHODS))
    options: AccountOptions
    type: Literal["eip155:eoa"] = ACCOUNT_TYPE_EOA


class Wallet(_CamelModel):
    """Conexión de una cuenta con su custodio (`WalletConnection`)."""

    account: CustodialAccount
    details: CustodianDetails


class CreateAccountOptions(_CamelModel):
    """Entrada externa para crear una cuenta custodial."""

    address: str = Field(..., pattern=_ADDRESS_PATTERN)
    name: str | None = Field(default=None, max_length=256)
    details: CustodianDetails
    origin: str = Field(..., min_length=1)


class JsonRpcCall(_CamelModel):
    method: str = Field(..., min_length=1)
    params: list[Any] | dict[str, Any] | None = None


class KeyringRequest(_CamelModel):
    """Request original recibido del cliente (se guarda intacto en el registro)."""

    id: str = Field(..., min_length=1)
    scope: str = ""
    account: str = Field(..., min_length=1)
    request: JsonRpcCall


class SubmitRequestResponse(_CamelModel):
    pending: bool = True


class CustodianAccount(_CamelModel):
    """Cuenta listada por el custodio durante el onboarding."""

    name: str = ""
    address: str = Field(..., pattern=_ADDRESS_PATTERN)
    tags: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class SignedMessageDetails(_CamelModel):
    """Mensaje enviado a firmar; la firma llega luego vía polling."""

    id: str = Field(..., min_length=1, description="Id asignado por el custodio.")
    address: str
    message: Any = None
    signature: str | None = None
    status: dict[str, Any] | None = None


class TransactionStatus(_CamelModel):
    finished: bool = False
    submitted: bool = False
    signed: bool = False
    success: bool = False
    display_text: str = "Created"
    reason: str | None = None


class EthSignTransactionRequest(_CamelModel):
    """Transacción tal como llega en `eth_signTransaction`."""

    from_: str = Field(..., alias="from", pattern=_ADDRESS_PATTERN)
    to: str | None = None
    value: str | int | None = None
    data: str | None = None
    chain_id: str | int = Field(...)
    nonce: str | int | None = None
    gas_limit: str | int | None = None
    gas: str | int | None = None
    gas_price: str | int | None = None
    max_fee_per_gas: str | int | None = None
    max_priority_fee_per_gas: str | int | None = None
    type: str | int | None = None


class CreateTransactionPayload(_CamelModel):
    """Parámetros de transacción en el formato que esperan los custodios."""

    from_: str = Field(..., alias="from")
    to: str | None = None
    value: str | None = None
    data: str | None = None
    gas: str | None = None
    gas_price: str | None = None
    max_fee_per_gas: str | None = None
    max_priority_fee_per_gas: str | None = None
    type: str | None = None


class TransactionMeta(_CamelModel):
    chain_id: str
    custodian_publishes_transaction: bool = True
    note: str | None = None
    rpc_url: str | None = None


class CustodianTransaction(_CamelModel):
    """Transacción creada en el custodio (estado inicial o consultado)."""

    custodian_transaction_id: str = Field(..., min_length=1)
    transaction_status: TransactionStatus = Field(default_factory=TransactionStatus)
    from_: str = Field(..., alias="from")
    to: str | None = None
    value: str | None = None
    data: str | None = None
    gas_limit: str | None = None
    gas_price: str | None = None
    max_fee_per_gas: str | None = None
    max_priority_fee_per_gas: str | None = None
    nonce: str | None = None
    chain_id: str | None = None
    transaction_hash: str | None = None
    signed_raw_transaction: str | None = None
    custodian_publishes_transaction: bool = True


class CustodianDeepLink(_CamelModel):
    """Enlace/descripción donde el usuario aprueba el request pendiente."""

    text: str
    id: str
    url: str = ""
    action: str = "view"


class CustomerProof(_CamelModel):
    jwt: str


class SigningRequestRecord(_CamelModel):
    """Registro persistido de un request enviado al custodio.

    Se crea con `fulfilled=False, rejected=False`; el polling (fuera de este
    paquete) lo actualiza cuando el custodio lo resuelve.
    """

    keyring_request: KeyringRequest
    type: Literal["message", "transaction"]
    sub_type: Literal["personalSign", "v3", "v4"] | None = None
    fulfilled: bool = False
    rejected: bool = False
    message: SignedMessageDetails | None = None
    signature: str | None = None
    transaction: CustodianTransaction | None = None
    last_updated: int = Field(..., ge=0, description="Epoch en milisegundos.")
