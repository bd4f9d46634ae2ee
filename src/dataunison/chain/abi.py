"""
ABI tables for the DataUnison contracts.

Single source of truth for the Registrar, Summary and Interaction
interfaces.  Functions are addressed by their canonical signature
(``name(type,...)``) so that overloads such as ``getInteractionId`` stay
unambiguous.

Role filtering is declarative: each Role lists the Methods it may not
use, and the role ABI is the full ABI minus those signatures.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any, Iterable

from eth_abi import decode, encode
from eth_hash.auto import keccak


class Role(IntEnum):
    """Role of an interaction contract relative to a summary contract."""

    OWNER = 0
    PROVIDER = 1


class ContractName(str, Enum):
    REGISTRAR = "Registrar"
    SUMMARY = "Summary"
    INTERACTION = "Interaction"


class Method(str, Enum):
    # Registrar
    RESOLVE_REFERENCE = "resolveReference(address)"
    RESOLVE_SUMMARY = "resolveSummary(string)"
    # Summary
    ADD_INTERACTION = "addInteraction(string,address,uint8)"
    ASSIGN_TEMPORARY_VIEWER = "assignTemporaryViewer(uint256,address,uint256,uint256)"
    ASSIGN_VIEWER = "assignViewer(uint256,address,uint256)"
    CUSTODIAN = "custodian()"
    DISABLE_INTERACTION = "disableInteraction(uint256)"
    ENABLE_INTERACTION = "enableInteraction(uint256)"
    GET_DATA_MERKLE_ROOT = "getDataMerkleRoot(uint256)"
    GET_INTERACTION = "getInteraction(uint256)"
    GET_INTERACTION_ID_BY_REFERENCE = "getInteractionId(string)"
    GET_INTERACTION_ID_BY_ADDRESS = "getInteractionId(address)"
    GET_INTERACTIONS = "getInteractions(uint256[])"
    GET_INTERACTIONS_LENGTH = "getInteractionsLength()"
    GET_VIEWER = "getViewer(uint256,address)"
    IS_INTERACTION_EXIST_BY_ADDRESS = "isInteractionExist(address)"
    IS_INTERACTION_EXIST_BY_REFERENCE = "isInteractionExist(string)"
    SET_CUSTODIAN = "setCustodian(address)"
    SET_DATA_MERKLE_ROOT = "setDataMerkleRoot(uint256,bytes32)"
    # Interaction
    OWNER = "owner()"
    PROVIDER = "provider()"


_INTERACTION_COMPONENTS: list[dict[str, Any]] = [
    {"name": "interaction", "type": "address"},
    {"name": "enable", "type": "bool"},
    {"name": "role", "type": "uint8"},
]

REGISTRAR_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "resolveReference",
        "inputs": [{"name": "_summary", "type": "address"}],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "resolveSummary",
        "inputs": [{"name": "_ref", "type": "string"}],
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
    },
]

SUMMARY_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "addInteraction",
        "inputs": [
            {"name": "_ref", "type": "string"},
            {"name": "_interaction", "type": "address"},
            {"name": "_role", "type": "uint8"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "assignTemporaryViewer",
        "inputs": [
            {"name": "_id", "type": "uint256"},
            {"name": "_entity", "type": "address"},
            {"name": "_level", "type": "uint256"},
            {"name": "_deadline", "type": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "assignViewer",
        "inputs": [
            {"name": "_id", "type": "uint256"},
            {"name": "_entity", "type": "address"},
            {"name": "_level", "type": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "custodian",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "disableInteraction",
        "inputs": [{"name": "_id", "type": "uint256"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "enableInteraction",
        "inputs": [{"name": "_id", "type": "uint256"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "getDataMerkleRoot",
        "inputs": [{"name": "_id", "type": "uint256"}],
        "outputs": [{"name": "", "type": "bytes32"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getInteraction",
        "inputs": [{"name": "_id", "type": "uint256"}],
        "outputs": [
            {"name": "interaction", "type": "tuple", "components": _INTERACTION_COMPONENTS},
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getInteractionId",
        "inputs": [{"name": "_ref", "type": "string"}],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getInteractionId",
        "inputs": [{"name": "_interaction", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getInteractions",
        "inputs": [{"name": "_ids", "type": "uint256[]"}],
        "outputs": [
            {"name": "interactions", "type": "tuple[]", "components": _INTERACTION_COMPONENTS},
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getInteractionsLength",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getViewer",
        "inputs": [
            {"name": "_id", "type": "uint256"},
            {"name": "_entity", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "isInteractionExist",
        "inputs": [{"name": "_interaction", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "isInteractionExist",
        "inputs": [{"name": "_ref", "type": "string"}],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "setCustodian",
        "inputs": [{"name": "_custodian_", "type": "address"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "setDataMerkleRoot",
        "inputs": [
            {"name": "_id", "type": "uint256"},
            {"name": "_merkleRoot", "type": "bytes32"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
]

INTERACTION_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "owner",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "provider",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
    },
]

ABI: dict[ContractName, list[dict[str, Any]]] = {
    ContractName.REGISTRAR: REGISTRAR_ABI,
    ContractName.SUMMARY: SUMMARY_ABI,
    ContractName.INTERACTION: INTERACTION_ABI,
}

# Methods reserved for the opposing role.
ROLE_EXCLUDED_METHODS: dict[Role, frozenset[Method]] = {
    Role.OWNER: frozenset({Method.ASSIGN_TEMPORARY_VIEWER}),
    Role.PROVIDER: frozenset({Method.ASSIGN_VIEWER}),
}


def canonical_type(param: dict[str, Any]) -> str:
    """Canonical ABI type of a parameter, expanding tuples to ``(t1,t2)``."""
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def function_signature(entry: dict[str, Any]) -> str:
    """Canonical signature, e.g. ``getViewer(uint256,address)``."""
    types = ",".join(canonical_type(p) for p in entry.get("inputs", []))
    return f"{entry['name']}({types})"


def function_selector(signature: str) -> bytes:
    """First 4 bytes of keccak256 of the canonical signature."""
    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    return keccak(signature.encode("utf-8"))[:4]


def filter_abi(abi: Iterable[dict[str, Any]], excluded: Iterable[str]) -> list[dict[str, Any]]:
    excluded = {str(getattr(m, "value", m)) for m in excluded}
    return [
        entry
        for entry in abi
        if entry.get("type") != "function" or function_signature(entry) not in excluded
    ]


ABI_ROLE: dict[Role, dict[ContractName, list[dict[str, Any]]]] = {
    role: {name: filter_abi(abi, ROLE_EXCLUDED_METHODS[role]) for name, abi in ABI.items()}
    for role in Role
}


def contract_functions(role: Role, contract: ContractName) -> list[str]:
    """Signatures of the functions available to ``role`` on ``contract``."""
    return [
        function_signature(entry)
        for entry in ABI_ROLE[Role(role)][ContractName(contract)]
        if entry.get("type") == "function"
    ]


def find_function(abi: Iterable[dict[str, Any]], selector: str) -> dict[str, Any]:
    """
    Look up a function entry.

    Args:
        abi: Contract ABI
        selector: Canonical signature, or a bare name if not overloaded

    Raises:
        ValueError: If the function is missing or the bare name is ambiguous
    """
    selector = str(getattr(selector, "value", selector))
    functions = [entry for entry in abi if entry.get("type") == "function"]

    if "(" in selector:
        for entry in functions:
            if function_signature(entry) == selector:
                return entry
        raise ValueError(f"Function {selector} not found in ABI")

    matches = [entry for entry in functions if entry.get("name") == selector]
    if not matches:
        raise ValueError(f"Function {selector} not found in ABI")
    if len(matches) > 1:
        overloads = ", ".join(function_signature(m) for m in matches)
        raise ValueError(f"Function {selector} is overloaded, use one of: {overloads}")
    return matches[0]


def encode_call(abi: Iterable[dict[str, Any]], selector: str, args: list) -> str:
    """
    ABI-encode a function call.

    Returns:
        0x-prefixed hex encoded calldata
    """
    func = find_function(abi, selector)
    input_types = [canonical_type(p) for p in func.get("inputs", [])]
    if len(args) != len(input_types):
        raise ValueError(
            f"{function_signature(func)} expects {len(input_types)} arguments, got {len(args)}"
        )

    encoded_args = encode(input_types, args) if args else b""
    return "0x" + function_selector(function_signature(func)).hex() + encoded_args.hex()


def decode_result(abi: Iterable[dict[str, Any]], selector: str, data: str) -> Any:
    """
    ABI-decode a function call result.

    Returns:
        Decoded result (single value or tuple), None for functions without outputs
    """
    func = find_function(abi, selector)
    output_types = [canonical_type(p) for p in func.get("outputs", [])]
    if not output_types:
        return None

    raw = bytes.fromhex(data[2:]) if data.startswith("0x") else bytes.fromhex(data)
    decoded = decode(output_types, raw)

    if len(decoded) == 1:
        return decoded[0]
    return decoded


def is_view(entry: dict[str, Any]) -> bool:
    return entry.get("stateMutability") in ("view", "pure")
