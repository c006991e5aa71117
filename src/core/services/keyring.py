"""Keyring custodial: punto de entrada único para callers externos.

El keyring nunca tiene llaves. Cada request de firma se valida, se envía al
custodio de la cuenta, se registra como pendiente y se resuelve fuera de banda
(el custodio aprueba y el polling consulta el estado). `submit_request`
siempre responde `{pending: true}`.

Las rotaciones de refresh token fluyen al revés: cliente -> evento ->
keyring -> actualización de todas las wallets que compartían la sesión ->
invalidación del registry.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from adapters.custodians import build_custodian_client
from core.config import AppSettings
from core.domain.custodians import CUSTODIAN_METADATA, CustodianMetadata, find_custodian_by_api_url
from core.domain.encoding import normalize_address, to_caip2_chain_id
from core.domain.errors import (
    AccountNotFound,
    AccountRejected,
    CustodianCallFailed,
    CustodianProtocolError,
    DuplicateAddress,
    KeyringError,
    MethodNotSupported,
    NotFoundError,
    NotImplementedOperation,
    RequestNotFound,
    UnknownCustodian,
    UnsupportedMethod,
    UnsupportedOperationError,
    ValidationError,
)
from core.domain.events import RefreshTokenRotated
from core.domain.models import (
    DEFAULT_ACCOUNT_METHODS,
    AccountOptions,
    ConnectionStatusRequest,
    CreateAccountOptions,
    CustodialAccount,
    CustodianOptions,
    EthMethod,
    EthSignTransactionRequest,
    KeyringEvent,
    KeyringRequest,
    SigningRequestRecord,
    SignTypedDataVersion,
    SubmitRequestResponse,
    Wallet,
)
from core.interfaces.collaborators import AccountEventNotifier, Renderer, RequestRecorder, StateManager
from core.interfaces.custodian_api import CustodianApi
from core.services.custodian_registry import ClientFactory, CustodianRegistry
from core.services.deep_link import DeepLinkResolver, RequestKind, fallback_deep_link
from core.services.signing_helpers import SignedMessageHelper, TransactionHelper

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M")

DEFAULT_ACCOUNT_NAME = "Custodial Account"

# Errors the caller can act on; never masked in strict mode.
_CALLER_FACING_ERRORS = (ValidationError, NotFoundError, UnsupportedOperationError)

_TYPED_DATA_VERSIONS = {
    EthMethod.SIGN_TYPED_DATA_V3.value: SignTypedDataVersion.V3,
    EthMethod.SIGN_TYPED_DATA_V4.value: SignTypedDataVersion.V4,
}


@dataclass(frozen=True)
class Accepted:
    account: CustodialAccount


@dataclass(frozen=True)
class Rejected:
    reason: str


AccountCreationResult = Union[Accepted, Rejected]


def validate_input(model: type[M], value: Any) -> M:
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)  # type: ignore[attr-defined]
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {exc}") from exc


def is_unique_address(address: str, wallets: Iterable[Wallet]) -> bool:
    target = normalize_address(address)
    return all(normalize_address(wallet.account.address) != target for wallet in wallets)


async def run_sensitive(fn: Callable[[], Awaitable[T]], message: str) -> T:
    """Ejecuta `fn` ocultando errores internos tras `message`.

    Validación, not-found y métodos no soportados pasan sin cambios; el resto
    se registra completo y se reemplaza por el mensaje genérico.
    """

    try:
        return await fn()
    except _CALLER_FACING_ERRORS:
        raise
    except Exception:
        logger.exception("Request submission failed")
        raise KeyringError(message) from None


def _now_ms() -> int:
    return int(time.time() * 1000)


class CustodialKeyring:
    def __init__(
        self,
        state: StateManager,
        requests: RequestRecorder,
        notifier: AccountEventNotifier,
        renderer: Renderer,
        *,
        settings: AppSettings | None = None,
        client_factory: ClientFactory | None = None,
        custodians: tuple[CustodianMetadata, ...] | list[CustodianMetadata] = CUSTODIAN_METADATA,
        deep_links: DeepLinkResolver | None = None,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self._state = state
        self._requests = requests
        self._notifier = notifier
        self._renderer = renderer
        self._settings = settings or AppSettings()
        self._custodians = custodians
        self._deep_links = deep_links or DeepLinkResolver()
        self._clock_ms = clock_ms
        factory = client_factory or (lambda details: build_custodian_client(details, self._settings))
        self._registry = CustodianRegistry(state, factory, self.handle_refresh_token_rotated)
        self._token_updates: set[asyncio.Task[None]] = set()

    @property
    def registry(self) -> CustodianRegistry:
        return self._registry

    @property
    def dev_mode(self) -> bool:
        return self._settings.dev_mode

    # -----------------------------------------------------------------
    # Accounts
    # -----------------------------------------------------------------

    async def list_accounts(self) -> list[CustodialAccount]:
        return await self._state.list_accounts()

    async def get_account(self, account_id: str) -> CustodialAccount | None:
        return await self._state.get_account(account_id) or None

    async def create_account(self, options: CreateAccountOptions | dict[str, Any]) -> CustodialAccount:
        result = await self.propose_account(options)
        if isinstance(result, Rejected):
            raise AccountRejected(result.reason)
        return result.account

    async def propose_account(self, options: CreateAccountOptions | dict[str, Any]) -> AccountCreationResult:
        """Propone la cuenta al sistema externo y la persiste solo si la acepta.

        Errores de entrada o de política se lanzan; el veto externo es un
        resultado esperado y vuelve como `Rejected`.
        """

        opts = validate_input(CreateAccountOptions, options)
        details = opts.details
        custodian = find_custodian_by_api_url(details.custodian_api_url, self._custodians)

        if self._settings.dev_mode:
            environment_name = details.custodian_environment
        elif custodian is None:
            raise UnknownCustodian(details.custodian_api_url)
        else:
            environment_name = custodian.name
        display_name = details.custodian_display_name

        address = normalize_address(opts.address)
        wallets = await self._state.list_wallets()
        if not is_unique_address(address, wallets):
            raise DuplicateAddress(address)

        # Custodians that broadcast transactions themselves defer publication.
        defer_publication = bool(custodian and custodian.custodian_publishes_transaction)

        account = CustodialAccount(
            id=str(uuid.uuid4()),
            address=address,
            methods=list(DEFAULT_ACCOUNT_METHODS),
            options=AccountOptions(
                custodian=CustodianOptions(
                    environment_name=environment_name,
                    display_name=display_name,
                    defer_publication=defer_publication,
                    import_origin=opts.origin,
                ),
                account_name=opts.name,
            ),
        )

        try:
            await self._notifier.emit_account_event(
                KeyringEvent.ACCOUNT_CREATED.value,
                {
                    "account": account.model_dump(by_alias=True, mode="json"),
                    "accountNameSuggestion": opts.name or DEFAULT_ACCOUNT_NAME,
                    "displayConfirmation": False,
                    "displayAccountNameSuggestion": False,
                },
            )
        except Exception as exc:
            logger.info("Account %s was not accepted: %s", address, exc)
            return Rejected(reason=str(exc) or type(exc).__name__)

        await self._state.add_wallet(Wallet(account=account, details=details))
        logger.info("Custodial account %s created (%s)", address, environment_name)
        return Accepted(account=account)

    async def filter_account_chains(self, account_id: str, chains: list[str]) -> list[str]:
        account = await self.get_account(account_id)
        if account is None:
            raise AccountNotFound(account_id)

        client = await self.get_custodian_api_for_address(account.address)
        supported = set(await client.get_supported_chains(account.address))
        return [chain for chain in chains if to_caip2_chain_id(chain) in supported]

    async def update_account(self, account: CustodialAccount) -> None:
        raise MethodNotSupported("keyring_updateAccount")

    async def delete_account(self, account_id: str) -> None:
        account = await self.get_account(account_id)

        async def _remove() -> None:
            await self._state.remove_accounts([account_id])
            await self._notifier.emit_account_event(KeyringEvent.ACCOUNT_DELETED.value, {"id": account_id})

        try:
            await self._state.with_transaction(_remove)
        except KeyringError:
            logger.error("Failed to delete account %s", account_id, exc_info=True)
            raise
        except Exception as exc:
            logger.error("Failed to delete account %s", account_id, exc_info=True)
            raise KeyringError(str(exc)) from exc

        if account is not None:
            self._registry.invalidate(account.address)

    async def get_connected_accounts(
        self,
        details: ConnectionStatusRequest | dict[str, Any],
        origin: str,
    ) -> list[CustodialAccount]:
        """Cuentas cuya conexión coincide en todos los campos y en el origin importador."""

        query = validate_input(ConnectionStatusRequest, details)
        wallets = await self._state.list_wallets()
        return [
            wallet.account
            for wallet in wallets
            if wallet.details.token == query.token
            and wallet.details.custodian_api_url == query.custodian_api_url
            and wallet.details.custodian_type == query.custodian_type
            and wallet.details.custodian_environment == query.custodian_environment
            and wallet.account.options.custodian.import_origin == origin
        ]

    # -----------------------------------------------------------------
    # Requests
    # -----------------------------------------------------------------

    async def list_requests(self) -> list[KeyringRequest]:
        if not self._settings.dev_mode:
            return []
        records = await self._requests.list_requests()
        return [record.keyring_request for record in records]

    async def get_request(self, request_id: str) -> KeyringRequest:
        if not isinstance(request_id, str) or not request_id:
            raise ValidationError("Request id must be a non-empty string")
        if not self._settings.dev_mode:
            raise NotImplementedOperation("keyring_getRequest")
        for record in await self._requests.list_requests():
            if record.keyring_request.id == request_id:
                return record.keyring_request
        raise RequestNotFound(request_id)

    async def submit_request(self, request: KeyringRequest | dict[str, Any]) -> SubmitRequestResponse:
        keyring_request = validate_input(KeyringRequest, request)
        if self._settings.dev_mode:
            return await self._submit(keyring_request)
        return await run_sensitive(
            lambda: self._submit(keyring_request),
            self._settings.unexpected_error_message,
        )

    async def approve_request(self, request_id: str) -> None:
        raise NotImplementedOperation("keyring_approveRequest")

    async def reject_request(self, request_id: str) -> None:
        raise NotImplementedOperation("keyring_rejectRequest")

    async def _submit(self, request: KeyringRequest) -> SubmitRequestResponse:
        account = await self.get_account(request.account)
        if account is None:
            raise AccountNotFound(request.account)

        method = request.request.method
        if method not in account.methods:
            raise UnsupportedMethod(method, account.address)

        custodian_id, kind = await self._handle_signing_request(method, request, account)

        try:
            client = await self.get_custodian_api_for_address(account.address)
        except KeyringError as exc:
            logger.warning("Could not resolve custodian for deep link: %s", exc)
            link = fallback_deep_link(custodian_id)
        else:
            link = await self._deep_links.resolve(kind, client, custodian_id)

        try:
            await self._renderer.show_info_message(DeepLinkResolver.render_text(link))
        except Exception:
            logger.warning("Failed to render deep link message", exc_info=True)

        return SubmitRequestResponse(pending=True)

    async def _handle_signing_request(
        self,
        method: str,
        request: KeyringRequest,
        account: CustodialAccount,
    ) -> tuple[str, RequestKind]:
        params = request.request.params if request.request.params is not None else []

        if method == EthMethod.PERSONAL_SIGN.value:
            message, from_address = _positional(params, 2, method)
            self._check_sender(from_address, account)
            client = await self.get_custodian_api_for_address(from_address)
            details = await SignedMessageHelper.sign_personal_message(from_address, message, client)
            await self._requests.upsert_request(
                SigningRequestRecord(
                    keyring_request=request,
                    type="message",
                    sub_type="personalSign",
                    message=details,
                    last_updated=self._clock_ms(),
                )
            )
            return details.id, "message"

        if method in _TYPED_DATA_VERSIONS:
            version = _TYPED_DATA_VERSIONS[method]
            from_address, data = _positional(params, 2, method)
            self._check_sender(from_address, account)
            client = await self.get_custodian_api_for_address(from_address)
            details = await SignedMessageHelper.sign_typed_data(from_address, data, client, version)
            await self._requests.upsert_request(
                SigningRequestRecord(
                    keyring_request=request,
                    type="message",
                    sub_type="v3" if version is SignTypedDataVersion.V3 else "v4",
                    message=details,
                    last_updated=self._clock_ms(),
                )
            )
            return details.id, "message"

        if method == EthMethod.SIGN_TRANSACTION.value:
            (raw_tx,) = _positional(params, 1, method)
            tx = validate_input(EthSignTransactionRequest, raw_tx)
            self._check_sender(tx.from_, account)
            return await self._sign_transaction(tx, request), "transaction"

        raise UnsupportedMethod(method)

    async def _sign_transaction(self, tx: EthSignTransactionRequest, request: KeyringRequest) -> str:
        try:
            client = await self.get_custodian_api_for_address(tx.from_)
            payload = TransactionHelper.create_transaction_payload(tx)
            wallet = await self._state.get_wallet_by_address(normalize_address(tx.from_))
            if wallet is None:
                raise AccountNotFound(tx.from_)
            meta = TransactionHelper.transaction_meta(
                tx,
                custodian_publishes_transaction=wallet.account.options.custodian.defer_publication,
            )
            transaction = await client.create_transaction(payload, meta)
        except CustodianProtocolError as exc:
            logger.error("Transaction signing failed: %s", exc)
            raise CustodianCallFailed("createTransaction", exc, prefix="Failed to sign transaction") from exc

        await self._requests.upsert_request(
            SigningRequestRecord(
                keyring_request=request,
                type="transaction",
                transaction=transaction,
                last_updated=self._clock_ms(),
            )
        )
        return transaction.custodian_transaction_id

    @staticmethod
    def _check_sender(from_address: Any, account: CustodialAccount) -> None:
        if not isinstance(from_address, str):
            raise ValidationError("Signer address must be a string")
        if normalize_address(from_address) != normalize_address(account.address):
            raise ValidationError(
                f"Signer {from_address} does not match account '{account.id}' ({account.address})"
            )

    # -----------------------------------------------------------------
    # Custodian clients and token rotation
    # -----------------------------------------------------------------

    async def get_custodian_api_for_address(self, address: str) -> CustodianApi:
        return await self._registry.get_or_create(address)

    def handle_refresh_token_rotated(self, event: RefreshTokenRotated) -> None:
        """Invalida síncronamente y agenda la persistencia del nuevo token.

        La invalidación ocurre antes de cualquier `await`, así ninguna
        submission concurrente reutiliza un cliente viejo.
        """

        self._registry.note_rotation(event)
        self._registry.invalidate_session(event.api_url, event.old_refresh_token)
        task = asyncio.ensure_future(self._persist_rotation(event))
        self._token_updates.add(task)
        task.add_done_callback(self._on_token_update_done)

    async def _persist_rotation(self, event: RefreshTokenRotated) -> None:
        try:
            wallets = await self._state.list_wallets()
            matching = [
                wallet
                for wallet in wallets
                if wallet.details.token == event.old_refresh_token
                and wallet.details.custodian_api_url == event.api_url
            ]
            for wallet in matching:
                self._registry.invalidate(wallet.account.address)
                updated = wallet.details.model_copy(update={"token": event.new_refresh_token})
                await self._state.update_wallet_details(wallet.account.id, updated)
            logger.info("Refresh token rotated for %d wallet(s) on %s", len(matching), event.api_url)
        finally:
            self._registry.forget_rotation(event)

    def _on_token_update_done(self, task: asyncio.Task[None]) -> None:
        self._token_updates.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Failed to persist rotated refresh token: %s", exc, exc_info=exc)

    async def flush_token_updates(self) -> None:
        """Espera a que se persistan las rotaciones en curso."""

        while self._token_updates:
            await asyncio.gather(*list(self._token_updates), return_exceptions=True)


def _positional(params: Any, count: int, method: str) -> tuple[Any, ...]:
    if not isinstance(params, list) or len(params) < count:
        raise ValidationError(f"Method '{method}' expects {count} positional parameter(s)")
    return tuple(params[:count])
