"""Tests for DataUnisonBlockchain precondition checks and contract calls."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
from eth_utils import to_checksum_address

from conftest import (
    ENTITY,
    NEW_INTERACTION,
    OWNED,
    PROVIDED,
    REGISTRAR,
    RPC_URL,
    SIGNER,
    STRANGER,
    SUMMARY,
)
from dataunison import blockchain as blockchain_module
from dataunison.blockchain import BindingState, DataUnisonBlockchain, Interaction
from dataunison.chain.abi import Method, Role
from dataunison.chain.errors import BAD_DATA, CALL_REVERTED, EXECUTION_REVERTED
from dataunison.chain.rpc import JsonRpcProvider
from dataunison.errors import (
    AlreadyInStateError,
    ContractCallError,
    ErrorKind,
    InvalidArgumentError,
    NotAuthorizedError,
    NotFoundError,
)

pytestmark = pytest.mark.anyio

MERKLE_ROOT = "0x" + "ab" * 32


@pytest.fixture
async def bound(blockchain: DataUnisonBlockchain, chain) -> DataUnisonBlockchain:
    """Blockchain client with the "ref" summary bound and request log cleared."""
    await blockchain.connect_summary("ref")
    chain.requests.clear()
    chain.calls.clear()
    return blockchain


# ============ Construction / Registrar ============


class TestRegistrar:
    def test_invalid_registrar_rejected(self, wallet) -> None:
        with pytest.raises(InvalidArgumentError, match="Invalid registrar address"):
            DataUnisonBlockchain(1, "not-an-address", wallet)

    def test_initial_state(self, blockchain: DataUnisonBlockchain) -> None:
        assert blockchain.state is BindingState.REGISTRAR
        assert blockchain.registrar_address == REGISTRAR
        assert blockchain.summary_address is None
        assert blockchain.is_signer()

    async def test_resolve_summary(self, blockchain: DataUnisonBlockchain, chain) -> None:
        assert await blockchain.resolve_summary("ref") == SUMMARY
        assert chain.calls == [(REGISTRAR, Method.RESOLVE_SUMMARY.value, ["ref"])]

    async def test_resolve_summary_empty_reference(self, blockchain: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(InvalidArgumentError, match="Reference is empty"):
            await blockchain.resolve_summary("")
        assert chain.requests == []

    async def test_resolve_reference(self, blockchain: DataUnisonBlockchain) -> None:
        assert await blockchain.resolve_reference(SUMMARY) == "ref"

    async def test_resolve_reference_invalid_address(self, blockchain: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(InvalidArgumentError, match="Invalid summary address"):
            await blockchain.resolve_reference("0x1234")
        assert chain.requests == []

    async def test_connect_summary(self, blockchain: DataUnisonBlockchain) -> None:
        address = await blockchain.connect_summary("ref")
        assert address == SUMMARY
        assert blockchain.state is BindingState.SUMMARY
        assert blockchain.summary_address == SUMMARY
        assert blockchain.summary_role is None

    async def test_connect_summary_unknown_reference(self, blockchain: DataUnisonBlockchain) -> None:
        with pytest.raises(NotFoundError, match="Summary not found"):
            await blockchain.connect_summary("missing")
        assert blockchain.state is BindingState.REGISTRAR


# ============ Summary reads ============


class TestSummaryReads:
    async def test_reads_require_summary(self, blockchain: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(NotFoundError, match="Summary contract is not found"):
            await blockchain.custodian()
        with pytest.raises(NotFoundError):
            await blockchain.get_interactions_length()
        assert chain.requests == []

    async def test_custodian(self, bound: DataUnisonBlockchain) -> None:
        assert await bound.custodian() == SIGNER
        assert await bound.is_custodian() is True

    async def test_is_custodian_false_for_other_signer(self, bound: DataUnisonBlockchain, chain) -> None:
        chain.custodian = STRANGER
        assert await bound.is_custodian() is False

    async def test_is_custodian_requires_signer(self, provider, chain) -> None:
        reader = DataUnisonBlockchain(1, REGISTRAR, provider)
        await reader.connect_summary("ref")
        assert reader.is_signer() is False
        with pytest.raises(NotAuthorizedError, match="Signer not found"):
            await reader.is_custodian()

    async def test_get_interaction(self, bound: DataUnisonBlockchain) -> None:
        record = await bound.get_interaction(0)
        assert record == Interaction(OWNED, True, Role.OWNER)

    async def test_negative_interaction_id_makes_no_network_call(self, bound: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(InvalidArgumentError, match="The interactionId is negative"):
            await bound.get_interaction(-1)
        assert chain.requests == []

    async def test_non_integer_interaction_id(self, bound: DataUnisonBlockchain) -> None:
        with pytest.raises(InvalidArgumentError, match="must be an integer"):
            await bound.get_interaction("1")
        with pytest.raises(InvalidArgumentError, match="must be an integer"):
            await bound.get_interaction(True)

    async def test_interaction_id_out_of_range(self, bound: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(NotFoundError, match="The interactionId is not found") as excinfo:
            await bound.get_interaction(5)
        assert excinfo.value.kind is ErrorKind.NOT_FOUND
        assert [c[1] for c in chain.calls] == [Method.GET_INTERACTIONS_LENGTH.value]

    async def test_get_interactions(self, bound: DataUnisonBlockchain) -> None:
        records = await bound.get_interactions([1, 0])
        assert records == [
            Interaction(PROVIDED, False, Role.PROVIDER),
            Interaction(OWNED, True, Role.OWNER),
        ]

    async def test_get_interactions_empty(self, bound: DataUnisonBlockchain) -> None:
        with pytest.raises(InvalidArgumentError, match="interactionIds is empty"):
            await bound.get_interactions([])

    async def test_get_interactions_reports_bad_index(self, bound: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(InvalidArgumentError, match="interactionId at index 1 is negative"):
            await bound.get_interactions([0, -3])
        assert chain.requests == []

    async def test_get_interactions_out_of_range(self, bound: DataUnisonBlockchain) -> None:
        with pytest.raises(NotFoundError):
            await bound.get_interactions([0, 3])

    async def test_interaction_lookup_by_reference_and_address(self, bound: DataUnisonBlockchain, chain) -> None:
        assert await bound.is_interaction_exist("owned-ref") is True
        assert await bound.is_interaction_exist(NEW_INTERACTION) is False
        assert await bound.get_interaction_id(PROVIDED) == 1
        assert await bound.get_interaction_id("owned-ref") == 0
        assert await bound.get_interaction_id("dormant-ref") == 2
        assert [c[1] for c in chain.calls] == [
            Method.IS_INTERACTION_EXIST_BY_REFERENCE.value,
            Method.IS_INTERACTION_EXIST_BY_ADDRESS.value,
            Method.GET_INTERACTION_ID_BY_ADDRESS.value,
            Method.GET_INTERACTION_ID_BY_REFERENCE.value,
            Method.GET_INTERACTION_ID_BY_REFERENCE.value,
        ]

    async def test_role_interactions(self, bound: DataUnisonBlockchain, chain) -> None:
        assert await bound.is_owner_interaction(0) is True
        assert await bound.is_owner_interaction(1) is False
        assert await bound.is_provider_interaction(1) is True

        chain.holders[OWNED.lower()] = STRANGER
        assert await bound.is_owner_interaction(0) is False

    async def test_owner_check_calls_interaction_contract(self, bound: DataUnisonBlockchain, chain) -> None:
        await bound.is_owner_interaction(0)
        assert (OWNED, Method.OWNER.value, []) in chain.calls

    async def test_get_viewer(self, bound: DataUnisonBlockchain, chain) -> None:
        chain.viewers[(0, ENTITY.lower())] = 3
        assert await bound.get_viewer(0, ENTITY) == 3

    async def test_get_viewer_invalid_entity(self, bound: DataUnisonBlockchain) -> None:
        with pytest.raises(InvalidArgumentError, match="Invalid entity address"):
            await bound.get_viewer(0, "nobody")

    async def test_get_data_merkle_root(self, bound: DataUnisonBlockchain, chain) -> None:
        chain.roots[1] = bytes.fromhex("12" * 32)
        assert await bound.get_data_merkle_root(1) == "0x" + "12" * 32

    async def test_unknown_role_tag(self, bound: DataUnisonBlockchain, chain) -> None:
        chain.interactions[1][2] = 7
        with pytest.raises(ContractCallError) as excinfo:
            await bound.get_interaction(1)
        assert excinfo.value.code == BAD_DATA
        assert excinfo.value.kind is ErrorKind.REMOTE_FAILURE

    async def test_revert_reason_is_surfaced(self, bound: DataUnisonBlockchain, chain) -> None:
        chain.reverts[Method.GET_VIEWER.value] = "viewer lookup disabled"
        with pytest.raises(ContractCallError) as excinfo:
            await bound.get_viewer(0, ENTITY)
        assert excinfo.value.code == EXECUTION_REVERTED
        assert excinfo.value.context == "viewer lookup disabled"
        assert excinfo.value.kind is ErrorKind.REMOTE_FAILURE


# ============ Summary writes ============


class TestCustodianWrites:
    async def test_writes_require_signer(self, provider, chain) -> None:
        reader = DataUnisonBlockchain(1, REGISTRAR, provider)
        await reader.connect_summary("ref")
        with pytest.raises(NotAuthorizedError, match="Signer not found"):
            await reader.set_custodian(STRANGER)
        assert chain.transactions == []

    async def test_writes_require_summary(self, blockchain: DataUnisonBlockchain) -> None:
        with pytest.raises(NotFoundError, match="Summary contract is not found"):
            await blockchain.set_custodian(STRANGER)

    async def test_writes_require_custodian(self, bound: DataUnisonBlockchain, chain) -> None:
        chain.custodian = STRANGER
        with pytest.raises(NotAuthorizedError, match="not custodian"):
            await bound.disable_interaction(0)
        assert chain.transactions == []

    async def test_set_custodian(self, bound: DataUnisonBlockchain, chain) -> None:
        result = await bound.set_custodian(STRANGER.lower())
        assert result["tx_hash"].startswith("0x")
        assert result["status"] == 1
        assert chain.transactions == [(Method.SET_CUSTODIAN.value, [STRANGER])]
        assert len(chain.raw_transactions) == 1

    async def test_set_custodian_invalid_address(self, bound: DataUnisonBlockchain) -> None:
        with pytest.raises(InvalidArgumentError, match="Invalid custodian address"):
            await bound.set_custodian("0xnope")

    async def test_reverted_transaction(self, bound: DataUnisonBlockchain, chain) -> None:
        chain.receipt_status = "0x0"
        with pytest.raises(ContractCallError) as excinfo:
            await bound.set_custodian(STRANGER)
        assert excinfo.value.code == CALL_REVERTED

    async def test_add_interaction(self, bound: DataUnisonBlockchain, chain) -> None:
        await bound.add_interaction("new-ref", NEW_INTERACTION, Role.PROVIDER)
        assert chain.transactions == [
            (Method.ADD_INTERACTION.value, ["new-ref", NEW_INTERACTION, 1]),
        ]

    async def test_add_existing_interaction(self, bound: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(AlreadyInStateError, match="Interaction already exist"):
            await bound.add_interaction("new-ref", OWNED, Role.OWNER)
        with pytest.raises(AlreadyInStateError, match="Reference already exist"):
            await bound.add_interaction("owned-ref", NEW_INTERACTION, Role.OWNER)
        assert chain.transactions == []

    async def test_enable_already_enabled(self, bound: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(AlreadyInStateError, match="already enabled"):
            await bound.enable_interaction(0)
        assert chain.transactions == []
        assert chain.raw_transactions == []

    async def test_disable_interaction(self, bound: DataUnisonBlockchain, chain) -> None:
        await bound.disable_interaction(0)
        assert chain.transactions == [(Method.DISABLE_INTERACTION.value, [0])]

    async def test_enable_interaction(self, bound: DataUnisonBlockchain, chain) -> None:
        result = await bound.enable_interaction(2)
        assert result["status"] == 1
        assert chain.transactions == [(Method.ENABLE_INTERACTION.value, [2])]

    async def test_enable_requires_owned_interaction(self, bound: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(NotAuthorizedError, match="not owned by summary contract"):
            await bound.enable_interaction(1)
        assert chain.transactions == []

    async def test_assign_viewer(self, bound: DataUnisonBlockchain, chain) -> None:
        await bound.assign_viewer(0, ENTITY, 2)
        assert chain.transactions == [(Method.ASSIGN_VIEWER.value, [0, ENTITY, 2])]

    async def test_assign_viewer_negative_level(self, bound: DataUnisonBlockchain) -> None:
        with pytest.raises(InvalidArgumentError, match="can't be negative"):
            await bound.assign_viewer(0, ENTITY, -1)

    async def test_assign_viewer_hidden_for_provider_role(self, blockchain: DataUnisonBlockchain, chain) -> None:
        await blockchain.connect_summary("ref", role=Role.PROVIDER)
        with pytest.raises(NotAuthorizedError, match="not available for the provider role"):
            await blockchain.assign_viewer(0, ENTITY, 2)
        assert chain.transactions == []


class TestTemporaryViewer:
    @pytest.mark.parametrize(
        ("duration", "message"),
        [
            (-5, "The durationSeconds is invalid"),
            (0, "The durationSeconds is invalid"),
            ("60", "The durationSeconds is invalid"),
            (1.5, "The durationSeconds must not have a decimal"),
        ],
    )
    async def test_invalid_duration(self, bound: DataUnisonBlockchain, chain, duration, message) -> None:
        with pytest.raises(InvalidArgumentError, match=message):
            await bound.assign_temporary_viewer(0, ENTITY, 1, duration)
        assert chain.transactions == []

    async def test_deadline_is_now_plus_duration(
        self, bound: DataUnisonBlockchain, chain
    ) -> None:
        with patch.object(blockchain_module, "_now", return_value=1_700_000_000):
            await bound.assign_temporary_viewer(0, ENTITY, 1, 3600)
        assert chain.transactions == [
            (Method.ASSIGN_TEMPORARY_VIEWER.value, [0, ENTITY, 1, 1_700_003_600]),
        ]

    async def test_whole_float_duration_accepted(
        self, bound: DataUnisonBlockchain, chain, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(blockchain_module, "_now", lambda: 100)
        await bound.assign_temporary_viewer(0, ENTITY, 1, 60.0)
        assert chain.transactions[0][1][-1] == 160

    async def test_hidden_for_owner_role(self, blockchain: DataUnisonBlockchain, chain) -> None:
        await blockchain.connect_summary("ref", role=Role.OWNER)
        with pytest.raises(NotAuthorizedError, match="not available for the owner role"):
            await blockchain.assign_temporary_viewer(0, ENTITY, 1, 3600)
        assert chain.transactions == []


class TestMerkleRoot:
    async def test_set_data_merkle_root(self, bound: DataUnisonBlockchain, chain) -> None:
        await bound.set_data_merkle_root(1, MERKLE_ROOT)
        assert chain.transactions == [
            (Method.SET_DATA_MERKLE_ROOT.value, [1, bytes.fromhex("ab" * 32)]),
        ]

    async def test_invalid_merkle_root(self, bound: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(InvalidArgumentError, match="Invalid merkle root"):
            await bound.set_data_merkle_root(1, "0x1234")
        assert chain.transactions == []

    async def test_requires_provided_interaction(self, bound: DataUnisonBlockchain, chain) -> None:
        with pytest.raises(NotAuthorizedError, match="not provided by summary contract"):
            await bound.set_data_merkle_root(0, MERKLE_ROOT)
        assert chain.transactions == []


class TestRunnerRebinding:
    async def test_connect_runner_keeps_summary(self, provider, wallet, chain) -> None:
        client = DataUnisonBlockchain(1, REGISTRAR, provider)
        await client.connect_summary("ref")
        assert client.is_signer() is False

        client.connect_runner(wallet)
        assert client.is_signer() is True
        assert client.summary_address == SUMMARY
        await client.set_custodian(to_checksum_address(STRANGER))
        assert chain.transactions == [(Method.SET_CUSTODIAN.value, [STRANGER])]


class TestMalformedNodeResponses:
    @pytest.mark.parametrize("body", [b"<html>Bad gateway</html>", b"[1, 2, 3]", b'"ok"'])
    async def test_non_object_body_is_normalised(self, body: bytes) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body)

        provider = JsonRpcProvider(RPC_URL, 1, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        client = DataUnisonBlockchain(1, REGISTRAR, provider)
        with pytest.raises(ContractCallError) as excinfo:
            await client.resolve_summary("ref")
        assert excinfo.value.code == BAD_DATA
        assert "Invalid JSON-RPC response" in str(excinfo.value)
