"""Shared fixtures: an in-memory GraphQL backend and EVM node behind httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx
import pytest
from eth_abi import decode, encode
from eth_account import Account
from eth_utils import to_checksum_address

from dataunison.blockchain import DataUnisonBlockchain
from dataunison.chain.abi import (
    INTERACTION_ABI,
    REGISTRAR_ABI,
    SUMMARY_ABI,
    Role,
    canonical_type,
    function_selector,
    function_signature,
)
from dataunison.chain.errors import ERROR_SELECTOR
from dataunison.chain.rpc import JsonRpcProvider
from dataunison.chain.wallet import Wallet

GRAPHQL_URL = "https://graphql.test/graphql"
RPC_URL = "http://rpc.test"

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
SIGNER = Account.from_key(PRIVATE_KEY).address

ZERO_ADDRESS = "0x" + "0" * 40
REGISTRAR = to_checksum_address("0x" + "aa" * 20)
SUMMARY = to_checksum_address("0x" + "bb" * 20)
OWNED = to_checksum_address("0x" + "c1" * 20)
PROVIDED = to_checksum_address("0x" + "c2" * 20)
DORMANT = to_checksum_address("0x" + "c3" * 20)
ENTITY = to_checksum_address("0x" + "dd" * 20)
NEW_INTERACTION = to_checksum_address("0x" + "ee" * 20)
STRANGER = to_checksum_address("0x" + "ff" * 20)

TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ============ Fake EVM node ============


class FakeChain:
    """
    Minimal JSON-RPC node hosting one registrar, one summary and two
    interaction contracts.

    Interaction 0 is owned by the summary (role Owner, enabled);
    interaction 1 is provided to it (role Provider, disabled);
    interaction 2 is owned by the summary but disabled.
    Transactions are not executed: their decoded calldata is recorded
    in ``transactions`` when gas is estimated.
    """

    def __init__(self) -> None:
        self.custodian = SIGNER
        self.summaries = {"ref": SUMMARY}
        self.interactions: list[list[Any]] = [
            [OWNED, True, Role.OWNER, "owned-ref"],
            [PROVIDED, False, Role.PROVIDER, "provided-ref"],
            [DORMANT, False, Role.OWNER, "dormant-ref"],
        ]
        self.holders = {OWNED.lower(): SUMMARY, PROVIDED.lower(): SUMMARY, DORMANT.lower(): SUMMARY}
        self.viewers: dict[tuple[int, str], int] = {}
        self.roots: dict[int, bytes] = {}
        self.reverts: dict[str, str] = {}
        self.receipt_status = "0x1"

        self.requests: list[str] = []
        self.calls: list[tuple[str, str, list]] = []
        self.transactions: list[tuple[str, list]] = []
        self.raw_transactions: list[str] = []

        self.contracts = {
            REGISTRAR.lower(): REGISTRAR_ABI,
            SUMMARY.lower(): SUMMARY_ABI,
            OWNED.lower(): INTERACTION_ABI,
            PROVIDED.lower(): INTERACTION_ABI,
            DORMANT.lower(): INTERACTION_ABI,
        }

    def handle(self, body: dict[str, Any]) -> dict[str, Any]:
        method, params = body["method"], body.get("params", [])
        self.requests.append(method)
        try:
            result = self._dispatch(method, params)
        except _Revert as revert:
            return {"jsonrpc": "2.0", "id": body["id"], "error": revert.error}
        return {"jsonrpc": "2.0", "id": body["id"], "result": result}

    def _dispatch(self, method: str, params: list) -> Any:
        if method == "eth_call":
            to, data = params[0]["to"], params[0]["data"]
            entry, signature, args = self._decode(to, data)
            self.calls.append((to_checksum_address(to), signature, args))
            if signature in self.reverts:
                raise _Revert(self.reverts[signature])
            value = self._view(to, signature, args)
            types = [canonical_type(p) for p in entry["outputs"]]
            return "0x" + encode(types, [value]).hex()
        if method == "eth_estimateGas":
            _, signature, args = self._decode(params[0]["to"], params[0]["data"])
            self.transactions.append((signature, args))
            return "0x5208"
        if method == "eth_chainId":
            return "0x1"
        if method == "eth_getTransactionCount":
            return "0x0"
        if method == "eth_gasPrice":
            return "0x3b9aca00"
        if method == "eth_sendRawTransaction":
            self.raw_transactions.append(params[0])
            return TX_HASH
        if method == "eth_getTransactionReceipt":
            return {"transactionHash": params[0], "status": self.receipt_status}
        raise AssertionError(f"Unexpected RPC method {method}")

    def _decode(self, to: str, data: str) -> tuple[dict, str, list]:
        raw = bytes.fromhex(data[2:])
        for entry in self.contracts[to.lower()]:
            signature = function_signature(entry)
            if function_selector(signature) == raw[:4]:
                types = [canonical_type(p) for p in entry["inputs"]]
                values = decode(types, raw[4:])
                return entry, signature, [
                    to_checksum_address(v) if t == "address" else v for t, v in zip(types, values)
                ]
        raise AssertionError(f"Unknown selector {data[:10]} for {to}")

    def _record(self, index: int) -> tuple:
        address, enabled, role, _ = self.interactions[index]
        return (address, enabled, int(role))

    def _index_of(self, value: str) -> Optional[int]:
        for index, (address, _, _, reference) in enumerate(self.interactions):
            if value == reference or value.lower() == address.lower():
                return index
        return None

    def _view(self, to: str, signature: str, args: list) -> Any:
        if signature == "resolveSummary(string)":
            return self.summaries.get(args[0], ZERO_ADDRESS)
        if signature == "resolveReference(address)":
            for reference, address in self.summaries.items():
                if address.lower() == args[0].lower():
                    return reference
            return ""
        if signature == "custodian()":
            return self.custodian
        if signature == "getInteractionsLength()":
            return len(self.interactions)
        if signature == "getInteraction(uint256)":
            return self._record(args[0])
        if signature == "getInteractions(uint256[])":
            return [self._record(index) for index in args[0]]
        if signature == "getViewer(uint256,address)":
            return self.viewers.get((args[0], args[1].lower()), 0)
        if signature == "getDataMerkleRoot(uint256)":
            return self.roots.get(args[0], b"\x00" * 32)
        if signature.startswith("isInteractionExist("):
            return self._index_of(args[0]) is not None
        if signature.startswith("getInteractionId("):
            return self._index_of(args[0]) or 0
        if signature in ("owner()", "provider()"):
            return self.holders[to.lower()]
        raise AssertionError(f"Unhandled view {signature}")


class _Revert(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.error = {
            "code": 3,
            "message": "execution reverted",
            "data": ERROR_SELECTOR + encode(["string"], [reason]).hex(),
        }


# ============ Fake GraphQL backend ============


class FakeGraphQL:
    """Answers login, refreshToken and getProject; records every request."""

    def __init__(self) -> None:
        self.login: Optional[dict] = {"token": "access-1", "refresh": "refresh-1"}
        self.refresh: Any = {"success": True, "data": {"token": "access-2", "refresh": "refresh-2"}}
        self.project: dict = {
            "success": True,
            "contract": {"registrar": REGISTRAR},
            "network": {"rpc": RPC_URL, "chainId": 1},
        }
        self.requests: list[tuple[str, Optional[str]]] = []

    def handle(self, body: dict[str, Any], authorization: Optional[str]) -> dict[str, Any]:
        query = body["query"]
        self.requests.append((query, authorization))
        if "login(" in query:
            if self.login is None:
                return {"data": {"login": None}, "errors": [{"message": "Invalid API key"}]}
            return {"data": {"login": self.login}}
        if "refreshToken(" in query:
            return {"data": {"refreshToken": self.refresh}}
        if "getProject(" in query:
            return {"data": {"getProject": self.project}}
        return {"data": None, "errors": [{"message": "Unknown operation"}]}


# ============ Fixtures ============


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def graphql() -> FakeGraphQL:
    return FakeGraphQL()


@pytest.fixture
def http_client(chain: FakeChain, graphql: FakeGraphQL) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.host == "graphql.test":
            return httpx.Response(200, json=graphql.handle(body, request.headers.get("authorization")))
        return httpx.Response(200, json=chain.handle(body))

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def provider(http_client: httpx.AsyncClient) -> JsonRpcProvider:
    return JsonRpcProvider(RPC_URL, 1, client=http_client)


@pytest.fixture
def wallet(provider: JsonRpcProvider) -> Wallet:
    return Wallet(PRIVATE_KEY, provider)


@pytest.fixture
def blockchain(wallet: Wallet) -> DataUnisonBlockchain:
    return DataUnisonBlockchain(1, REGISTRAR, wallet)
