"""Dobles de prueba compartidos: wallets de ejemplo y un cliente de custodio en memoria."""

from __future__ import annotations

from typing import Any

from core.domain.events import RefreshTokenRotated, TokenEvent
from core.domain.models import (
    AccountOptions,
    CreateTransactionPayload,
    CustodialAccount,
    CustodianAccount,
    CustodianDeepLink,
    CustodianDetails,
    CustodianOptions,
    CustodianTransaction,
    CustodianType,
    CustomerProof,
    SignedMessageDetails,
    SignTypedDataVersion,
    TransactionMeta,
    Wallet,
)
from core.events import EventChannel
from core.interfaces.custodian_api import CustodianApi

ADDRESS_A = "0x5B38Da6a701c568545dCfcB03FcB875f56beddC4"
ADDRESS_B = "0xAb8483F64d9C6d1EcF9b849Ae677dD3315835cb2"
ADDRESS_C = "0x4B20993Bc481177ec7E8f571ceCaE8A9e22C02db"

API_URL = "https://custodian.example/api"
REFRESH_URL = "https://custodian.example/oauth/token"


def make_details(token: str = "T", api_url: str = API_URL, **overrides: Any) -> CustodianDetails:
    data: dict[str, Any] = {
        "token": token,
        "custodian_api_url": api_url,
        "custodian_type": CustodianType.ECA3,
        "refresh_token_url": REFRESH_URL,
        "custodian_environment": "local-dev",
        "custodian_display_name": "Local Dev",
    }
    data.update(overrides)
    return CustodianDetails(**data)


def make_wallet(
    address: str,
    *,
    account_id: str | None = None,
    token: str = "T",
    api_url: str = API_URL,
    methods: list[str] | None = None,
    defer_publication: bool = False,
    origin: str = "https://custodian.example",
) -> Wallet:
    account = CustodialAccount(
        id=account_id or f"id-{address[-4:].lower()}",
        address=address,
        options=AccountOptions(
            custodian=CustodianOptions(
                environment_name="local-dev",
                display_name="Local Dev",
                defer_publication=defer_publication,
                import_origin=origin,
            )
        ),
        **({"methods": methods} if methods is not None else {}),
    )
    return Wallet(account=account, details=make_details(token=token, api_url=api_url))


class FakeCustodianClient(CustodianApi):
    """Cliente en memoria: registra llamadas y devuelve respuestas fijas."""

    def __init__(self, details: CustodianDetails) -> None:
        self.details = details
        self._events: EventChannel[TokenEvent] = EventChannel()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.accounts: list[CustodianAccount] = []
        self.chains: list[str] = ["eip155:1", "eip155:5"]
        self.link: CustodianDeepLink | None = None
        self.fail_with: dict[str, Exception] = {}

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.fail_with:
            raise self.fail_with[name]

    @property
    def events(self) -> EventChannel[TokenEvent]:
        return self._events

    @property
    def api_base_url(self) -> str:
        return self.details.custodian_api_url

    @property
    def refresh_token(self) -> str:
        return self.details.token

    def set_refresh_token(self, refresh_token: str) -> None:
        self.details = self.details.model_copy(update={"token": refresh_token})

    def rotate(self, new_token: str) -> None:
        old = self.details.token
        self.set_refresh_token(new_token)
        self._events.emit(RefreshTokenRotated(self.api_base_url, old, new_token))

    async def get_access_token(self) -> str:
        return "access"

    async def list_accounts(self) -> list[CustodianAccount]:
        self._record("list_accounts")
        return list(self.accounts)

    async def create_transaction(self, payload: CreateTransactionPayload, meta: TransactionMeta) -> CustodianTransaction:
        self._record("create_transaction", payload, meta)
        return CustodianTransaction(
            custodian_transaction_id="tx-1",
            from_=payload.from_,
            to=payload.to,
            value=payload.value,
            chain_id=meta.chain_id,
            custodian_publishes_transaction=meta.custodian_publishes_transaction,
        )

    async def sign_personal_message(self, address: str, message: str) -> SignedMessageDetails:
        self._record("sign_personal_message", address, message)
        return SignedMessageDetails(id="msg-1", address=address, message=message)

    async def sign_typed_data(self, address: str, data: Any, version: SignTypedDataVersion) -> SignedMessageDetails:
        self._record("sign_typed_data", address, data, version)
        return SignedMessageDetails(id="typed-1", address=address, message=data)

    async def get_transaction_by_id(self, transaction_id: str) -> CustodianTransaction | None:
        self._record("get_transaction_by_id", transaction_id)
        return None

    async def get_signed_message_by_id(self, address: str, message_id: str) -> SignedMessageDetails | None:
        self._record("get_signed_message_by_id", address, message_id)
        return None

    async def get_transaction_link(self, transaction_id: str) -> CustodianDeepLink | None:
        self._record("get_transaction_link", transaction_id)
        return self.link

    async def get_signed_message_link(self, message_id: str) -> CustodianDeepLink | None:
        self._record("get_signed_message_link", message_id)
        return self.link

    async def get_supported_chains(self, address: str) -> list[str]:
        self._record("get_supported_chains", address)
        return list(self.chains)

    async def replace_transaction(self, payload: dict[str, Any]) -> dict[str, Any]:
        self._record("replace_transaction", payload)
        return {}

    async def get_customer_proof(self) -> CustomerProof:
        self._record("get_customer_proof")
        return CustomerProof(jwt="jwt")


class FakeClientFactory:
    def __init__(self) -> None:
        self.built: list[FakeCustodianClient] = []

    def __call__(self, details: CustodianDetails) -> FakeCustodianClient:
        client = FakeCustodianClient(details)
        self.built.append(client)
        return client


class CapturingRenderer:
    def __init__(self) -> None:
        self.infos: list[str] = []
        self.errors: list[str] = []

    async def show_info_message(self, text: str) -> None:
        self.infos.append(text)

    async def show_error_message(self, text: str) -> None:
        self.errors.append(text)


