__all__ = [
    # Client
    "DataUnisonClient",
    "DataUnisonServer",
    "DataUnisonBlockchain",
    "ConnectionState",
    "BindingState",
    "Project",
    "Interaction",
    # Chain
    "JsonRpcProvider",
    "Wallet",
    "Contract",
    # ABI
    "ABI",
    "ABI_ROLE",
    "ContractName",
    "Method",
    "Role",
    "contract_functions",
    # Errors
    "ErrorKind",
    "DataUnisonError",
    "InvalidArgumentError",
    "NotAuthorizedError",
    "NotFoundError",
    "RemoteFailureError",
    "AlreadyInStateError",
    "NoTokenError",
    "UnauthorizedError",
    "InvalidPrivateKeyError",
    "ContractCallError",
    # Utils
    "is_address",
    "is_bytes",
    "is_bytes32",
    "seconds",
    "minutes",
    "hours",
    "days",
    "weeks",
    "months",
]

from .blockchain import BindingState, DataUnisonBlockchain, Interaction
from .chain.abi import ABI, ABI_ROLE, ContractName, Method, Role, contract_functions
from .chain.contract import Contract
from .chain.rpc import JsonRpcProvider
from .chain.wallet import Wallet
from .client import DataUnisonClient
from .errors import (
    AlreadyInStateError,
    ContractCallError,
    DataUnisonError,
    ErrorKind,
    InvalidArgumentError,
    InvalidPrivateKeyError,
    NoTokenError,
    NotAuthorizedError,
    NotFoundError,
    RemoteFailureError,
    UnauthorizedError,
)
from .server import ConnectionState, DataUnisonServer, Project
from .utils import days, hours, is_address, is_bytes, is_bytes32, minutes, months, seconds, weeks
