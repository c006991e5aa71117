import pytest

from adapters.memory_state import InMemoryStateManager
from core.domain.errors import (
    AccountNotFound,
    AccountRejected,
    CustodianCallFailed,
    DuplicateAddress,
    KeyringError,
    MethodNotSupported,
    NotImplementedOperation,
    RequestNotFound,
    UnknownCustodian,
    UnsupportedMethod,
    ValidationError,
)
from core.domain.events import RefreshTokenRotated
from core.domain.models import CustodianDeepLink, KeyringEvent, SignTypedDataVersion
from core.services.keyring import Accepted, CustodialKeyring, Rejected
from tests.fakes import ADDRESS_A, ADDRESS_B, ADDRESS_C, API_URL, make_details, make_wallet

LOCAL_DEV_URL = "http://localhost:3330"
MPCVAULT_URL = "https://api.mpcvault.com/mmi"
ORIGIN = "https://custodian.example"


def _create_options(address: str = ADDRESS_A, api_url: str = LOCAL_DEV_URL, **details) -> dict:
    return {
        "address": address,
        "name": "Treasury",
        "details": make_details(api_url=api_url, **details).model_dump(by_alias=True, mode="json"),
        "origin": ORIGIN,
    }


def _request(method: str, params, account_id: str = "id-ddc4", request_id: str = "req-1") -> dict:
    return {
        "id": request_id,
        "scope": "eip155:1",
        "account": account_id,
        "request": {"method": method, "params": params},
    }


TX = {
    "from": ADDRESS_A,
    "to": ADDRESS_B,
    "value": "0x10",
    "gasLimit": "0x5208",
    "maxFeePerGas": "0x3b9aca00",
    "maxPriorityFeePerGas": "0x1",
    "chainId": "0x1",
    "nonce": "0x0",
}


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_account_returns_none_for_unknown_id(keyring, state):
    await state.add_wallet(make_wallet(ADDRESS_A))

    assert await keyring.get_account("missing") is None
    assert (await keyring.get_account("id-ddc4")).address == ADDRESS_A
    assert [a.id for a in await keyring.list_accounts()] == ["id-ddc4"]


@pytest.mark.asyncio
async def test_create_account_uses_allow_list_entry(keyring, state, notifier):
    account = await keyring.create_account(_create_options(address=ADDRESS_A.lower()))

    assert account.address == ADDRESS_A
    assert account.options.custodian.environment_name == "local-dev"
    assert account.options.custodian.display_name == "Local Dev"
    assert account.options.custodian.defer_publication is False
    assert account.options.custodian.import_origin == ORIGIN
    assert account.type == "eip155:eoa"

    kind, payload = notifier.events[0]
    assert kind == KeyringEvent.ACCOUNT_CREATED.value
    assert payload["accountNameSuggestion"] == "Treasury"
    assert payload["displayConfirmation"] is False
    assert payload["account"]["address"] == ADDRESS_A

    wallet = await state.get_wallet_by_address(ADDRESS_A)
    assert wallet is not None
    assert wallet.details.custodian_api_url == LOCAL_DEV_URL


@pytest.mark.asyncio
async def test_create_account_defers_publication_for_publishing_custodian(keyring):
    account = await keyring.create_account(_create_options(api_url=MPCVAULT_URL))

    assert account.options.custodian.environment_name == "mpcvault-prod"
    assert account.options.custodian.defer_publication is True


@pytest.mark.asyncio
async def test_strict_mode_rejects_unknown_custodian(keyring, notifier):
    with pytest.raises(UnknownCustodian):
        await keyring.create_account(_create_options(api_url=API_URL))

    assert notifier.events == []


@pytest.mark.asyncio
async def test_dev_mode_trusts_supplied_environment(dev_keyring):
    account = await dev_keyring.create_account(
        _create_options(api_url=API_URL, custodian_environment="my-env", custodian_display_name="Mine")
    )

    assert account.options.custodian.environment_name == "my-env"
    assert account.options.custodian.display_name == "Mine"
    assert account.options.custodian.defer_publication is False


@pytest.mark.asyncio
async def test_duplicate_address_fails_before_any_event(keyring, state, notifier):
    await state.add_wallet(make_wallet(ADDRESS_A))

    with pytest.raises(DuplicateAddress):
        await keyring.create_account(_create_options(address=ADDRESS_A.lower()))

    assert notifier.events == []
    assert len(await state.list_wallets()) == 1


@pytest.mark.asyncio
async def test_vetoed_account_is_not_persisted(keyring, state, notifier):
    notifier.veto = "User rejected"

    result = await keyring.propose_account(_create_options())
    assert result == Rejected(reason="User rejected")

    with pytest.raises(AccountRejected):
        await keyring.create_account(_create_options())
    assert await state.list_wallets() == []


@pytest.mark.asyncio
async def test_propose_account_accepts(keyring):
    result = await keyring.propose_account(_create_options())

    assert isinstance(result, Accepted)
    assert result.account.address == ADDRESS_A


@pytest.mark.asyncio
async def test_create_account_validates_input(keyring):
    options = _create_options()
    options["address"] = "0x1234"

    with pytest.raises(ValidationError):
        await keyring.create_account(options)


@pytest.mark.asyncio
async def test_filter_account_chains(keyring, state, factory):
    await state.add_wallet(make_wallet(ADDRESS_A))

    chains = await keyring.filter_account_chains("id-ddc4", ["eip155:1", "0x89", "eip155:5"])

    assert chains == ["eip155:1", "eip155:5"]
    assert factory.built[0].calls == [("get_supported_chains", (ADDRESS_A,))]


@pytest.mark.asyncio
async def test_filter_account_chains_unknown_account(keyring):
    with pytest.raises(AccountNotFound):
        await keyring.filter_account_chains("missing", ["eip155:1"])


@pytest.mark.asyncio
async def test_update_account_is_not_supported(keyring, state):
    wallet = make_wallet(ADDRESS_A)

    with pytest.raises(MethodNotSupported):
        await keyring.update_account(wallet.account)


@pytest.mark.asyncio
async def test_delete_account_removes_and_notifies(keyring, state, notifier):
    await state.add_wallet(make_wallet(ADDRESS_A))
    await keyring.get_custodian_api_for_address(ADDRESS_A)

    await keyring.delete_account("id-ddc4")

    assert await state.list_wallets() == []
    assert notifier.events == [(KeyringEvent.ACCOUNT_DELETED.value, {"id": "id-ddc4"})]
    assert ADDRESS_A not in keyring.registry


class FailingDeleteEvents:
    async def emit_account_event(self, kind, payload):
        raise RuntimeError("notifier offline")


@pytest.mark.asyncio
async def test_delete_account_rolls_back_on_notifier_failure(state, request_store, renderer, factory, settings):
    await state.add_wallet(make_wallet(ADDRESS_A))
    keyring = CustodialKeyring(
        state, request_store, FailingDeleteEvents(), renderer, settings=settings, client_factory=factory
    )

    with pytest.raises(KeyringError, match="notifier offline"):
        await keyring.delete_account("id-ddc4")

    assert [w.account.id for w in await state.list_wallets()] == ["id-ddc4"]


@pytest.mark.asyncio
async def test_connected_accounts_require_every_field(keyring, state):
    await state.add_wallet(make_wallet(ADDRESS_A))
    query = {
        "token": "T",
        "custodianApiUrl": API_URL,
        "custodianType": "ECA3",
        "custodianEnvironment": "local-dev",
    }

    found = await keyring.get_connected_accounts(query, ORIGIN)
    assert [a.address for a in found] == [ADDRESS_A]

    for field, other in [
        ("token", "X"),
        ("custodianApiUrl", "https://other.example"),
        ("custodianType", "ECA1"),
        ("custodianEnvironment", "prod"),
    ]:
        assert await keyring.get_connected_accounts({**query, field: other}, ORIGIN) == []
    assert await keyring.get_connected_accounts(query, "https://evil.example") == []


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_personal_sign_is_recorded_and_pending(keyring, state, request_store, renderer, factory):
    await state.add_wallet(make_wallet(ADDRESS_A))

    response = await keyring.submit_request(_request("personal_sign", ["0xdeadbeef", ADDRESS_A.lower()]))

    assert response.pending is True
    client = factory.built[0]
    assert client.calls[0] == ("sign_personal_message", (ADDRESS_A, "0xdeadbeef"))
    (record,) = await request_store.list_requests()
    assert record.type == "message"
    assert record.sub_type == "personalSign"
    assert record.fulfilled is False and record.rejected is False
    assert record.message.id == "msg-1"
    assert record.last_updated == 1_700_000_000_000
    assert renderer.infos == ["Complete in Custodian App Transaction ID: msg-1"]


@pytest.mark.asyncio
async def test_typed_data_v4_uses_from_and_data(keyring, state, request_store, factory):
    await state.add_wallet(make_wallet(ADDRESS_A))
    typed = {"types": {}, "primaryType": "Mail", "domain": {}, "message": {}}

    await keyring.submit_request(_request("eth_signTypedData_v4", [ADDRESS_A, typed]))

    assert factory.built[0].calls[0] == ("sign_typed_data", (ADDRESS_A, typed, SignTypedDataVersion.V4))
    (record,) = await request_store.list_requests()
    assert record.sub_type == "v4"


@pytest.mark.asyncio
async def test_sign_transaction_creates_custodian_transaction(keyring, state, request_store, renderer, factory):
    await state.add_wallet(make_wallet(ADDRESS_A, defer_publication=True))
    await keyring.get_custodian_api_for_address(ADDRESS_A)
    factory.built[0].link = CustodianDeepLink(text="Approve in app", id="tx-1", url="https://app/tx-1")

    await keyring.submit_request(_request("eth_signTransaction", [TX]))

    name, (payload, meta) = factory.built[0].calls[0]
    assert name == "create_transaction"
    assert payload.max_fee_per_gas == "0x3b9aca00"
    assert payload.gas == "0x5208"
    assert payload.type == "2"
    assert meta.chain_id == "1"
    assert meta.custodian_publishes_transaction is True
    (record,) = await request_store.list_requests()
    assert record.type == "transaction"
    assert record.transaction.custodian_transaction_id == "tx-1"
    assert renderer.infos == ["Approve in app Transaction ID: tx-1"]


@pytest.mark.asyncio
async def test_method_outside_account_set_never_reaches_custodian(keyring, state, factory):
    await state.add_wallet(make_wallet(ADDRESS_A, methods=["personal_sign"]))

    with pytest.raises(UnsupportedMethod, match="eth_signTransaction"):
        await keyring.submit_request(_request("eth_signTransaction", [TX]))

    assert factory.built == []


@pytest.mark.asyncio
async def test_unhandled_method_in_account_set(keyring, state, factory):
    await state.add_wallet(make_wallet(ADDRESS_A, methods=["eth_sign"]))

    with pytest.raises(UnsupportedMethod, match="EVM method 'eth_sign' not supported"):
        await keyring.submit_request(_request("eth_sign", [ADDRESS_A, "0x00"]))

    assert factory.built == []


@pytest.mark.asyncio
async def test_unknown_account_passes_through_strict_mode(keyring):
    with pytest.raises(AccountNotFound):
        await keyring.submit_request(_request("personal_sign", ["0x00", ADDRESS_A], account_id="nope"))


@pytest.mark.asyncio
async def test_signer_must_match_account(keyring, state):
    await state.add_wallet(make_wallet(ADDRESS_A))
    await state.add_wallet(make_wallet(ADDRESS_B))

    with pytest.raises(ValidationError):
        await keyring.submit_request(_request("personal_sign", ["0x00", ADDRESS_B]))


@pytest.mark.asyncio
async def test_strict_mode_masks_custodian_failures(keyring, state, factory, settings):
    await state.add_wallet(make_wallet(ADDRESS_A))
    client = await keyring.get_custodian_api_for_address(ADDRESS_A)
    client.fail_with["create_transaction"] = CustodianCallFailed("createTransaction", "HTTP 500")

    with pytest.raises(KeyringError) as excinfo:
        await keyring.submit_request(_request("eth_signTransaction", [TX]))

    assert str(excinfo.value) == settings.unexpected_error_message
    assert type(excinfo.value) is KeyringError


@pytest.mark.asyncio
async def test_dev_mode_surfaces_transaction_failure(dev_keyring, state):
    await state.add_wallet(make_wallet(ADDRESS_A))
    client = await dev_keyring.get_custodian_api_for_address(ADDRESS_A)
    client.fail_with["create_transaction"] = CustodianCallFailed("createTransaction", "HTTP 500")

    with pytest.raises(CustodianCallFailed) as excinfo:
        await dev_keyring.submit_request(_request("eth_signTransaction", [TX]))

    assert str(excinfo.value).startswith("Failed to sign transaction")
    assert excinfo.value.operation == "createTransaction"


@pytest.mark.asyncio
async def test_deep_link_failure_falls_back(keyring, state, renderer):
    await state.add_wallet(make_wallet(ADDRESS_A))
    client = await keyring.get_custodian_api_for_address(ADDRESS_A)
    client.fail_with["get_transaction_link"] = RuntimeError("not implemented by custodian")

    response = await keyring.submit_request(_request("eth_signTransaction", [TX]))

    assert response.pending is True
    assert renderer.infos == ["Complete in Custodian App Transaction ID: tx-1"]


@pytest.mark.asyncio
async def test_malformed_request_is_a_validation_error(keyring):
    with pytest.raises(ValidationError):
        await keyring.submit_request({"id": "req-1", "account": "id-ddc4"})


@pytest.mark.asyncio
async def test_dev_mode_lists_stored_requests(dev_keyring, state):
    await state.add_wallet(make_wallet(ADDRESS_A))
    await dev_keyring.submit_request(_request("personal_sign", ["0x00", ADDRESS_A]))

    assert [r.id for r in await dev_keyring.list_requests()] == ["req-1"]
    assert (await dev_keyring.get_request("req-1")).account == "id-ddc4"
    with pytest.raises(RequestNotFound):
        await dev_keyring.get_request("req-2")


@pytest.mark.asyncio
async def test_strict_mode_hides_requests(keyring, state):
    await state.add_wallet(make_wallet(ADDRESS_A))
    await keyring.submit_request(_request("personal_sign", ["0x00", ADDRESS_A]))

    assert await keyring.list_requests() == []
    with pytest.raises(NotImplementedOperation):
        await keyring.get_request("req-1")


@pytest.mark.asyncio
async def test_approve_and_reject_are_not_implemented(keyring):
    with pytest.raises(NotImplementedOperation):
        await keyring.approve_request("req-1")
    with pytest.raises(NotImplementedOperation):
        await keyring.reject_request("req-1")


# ---------------------------------------------------------------------------
# Token rotation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_rotation_updates_only_wallets_sharing_the_session(keyring, state):
    other_api = "https://other.example/api"
    await state.add_wallet(make_wallet(ADDRESS_A, token="T"))
    await state.add_wallet(make_wallet(ADDRESS_B, token="T"))
    await state.add_wallet(make_wallet(ADDRESS_C, token="T", api_url=other_api))
    for address in (ADDRESS_A, ADDRESS_B, ADDRESS_C):
        await keyring.get_custodian_api_for_address(address)

    keyring.handle_refresh_token_rotated(RefreshTokenRotated(API_URL, "T", "N"))

    assert ADDRESS_A not in keyring.registry
    assert ADDRESS_B not in keyring.registry
    assert ADDRESS_C in keyring.registry

    await keyring.flush_token_updates()

    tokens = {w.account.address: w.details.token for w in await state.list_wallets()}
    assert tokens == {ADDRESS_A: "N", ADDRESS_B: "N", ADDRESS_C: "T"}


@pytest.mark.asyncio
async def test_client_rotation_rebuilds_with_new_token(keyring, state, factory):
    await state.add_wallet(make_wallet(ADDRESS_A, token="T"))
    client = await keyring.get_custodian_api_for_address(ADDRESS_A)

    client.rotate("N")

    # Before persistence finishes, the rebuilt client already carries the new token.
    rebuilt = await keyring.get_custodian_api_for_address(ADDRESS_A)
    assert rebuilt is not client
    assert rebuilt.refresh_token == "N"
    assert client.events.subscriber_count == 0

    await keyring.flush_token_updates()
    wallet = await state.get_wallet_by_address(ADDRESS_A)
    assert wallet.details.token == "N"
    assert (await keyring.get_custodian_api_for_address(ADDRESS_A)).refresh_token == "N"


@pytest.mark.asyncio
async def test_rotation_without_matching_wallets_is_noop():
    state = InMemoryStateManager([make_wallet(ADDRESS_A, token="T")])

    class Quiet:
        async def emit_account_event(self, kind, payload):
            return None

        async def show_info_message(self, text):
            return None

        async def show_error_message(self, text):
            return None

    keyring = CustodialKeyring(state, None, Quiet(), Quiet())
    keyring.handle_refresh_token_rotated(RefreshTokenRotated(API_URL, "other", "N"))
    await keyring.flush_token_updates()

    assert (await state.list_wallets())[0].details.token == "T"
