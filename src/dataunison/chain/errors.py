"""
Provider errors and their normalisation.

Low-level failures (JSON-RPC error objects, reverted receipts, transport
errors) are raised as ProviderError subclasses.  parse_provider_error()
reduces any of them to a stable ``{code, context}`` pair, where context
is the most useful human-readable detail (usually the revert reason).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx
from eth_abi import decode
from eth_abi.exceptions import DecodingError

# Error(string) and Panic(uint256) selectors
ERROR_SELECTOR = "0x08c379a0"
PANIC_SELECTOR = "0x4e487b71"

UNKNOWN_ERROR = "UNKNOWN_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
EXECUTION_REVERTED = "EXECUTION_REVERTED"
CALL_REVERTED = "CALL_REVERTED"
BAD_DATA = "BAD_DATA"

# Node messages (lowercased substrings) mapped to stable codes; first match wins.
_MESSAGE_CODES: tuple[tuple[str, str], ...] = (
    ("insufficient funds for gas", "INSUFFICIENT_FUNDS_FOR_GAS"),
    ("insufficient funds for transfer", "INSUFFICIENT_FUNDS_FOR_TRANSFER"),
    (
        "max priority fee per gas higher than max fee per gas",
        "MAX_PRIORITY_FEE_PER_GAS_HIGHER_THAN_MAX_FEE_PER_GAS",
    ),
    ("max fee per gas less than block base fee", "MAX_FEE_PER_GAS_LESS_THAN_BLOCK_BASE_FEE"),
    ("nonce too low", "NONCE_TOO_LOW"),
    ("transaction underpriced", "TRANSACTION_UNDERPRICED"),
    ("intrinsic gas too low", "TRANSACTION_RAN_OUT_OF_GAS"),
    ("out of gas", "TRANSACTION_RAN_OUT_OF_GAS"),
    ("rejected", "REJECTED_TRANSACTION"),
)


class ProviderError(RuntimeError):
    code: str = UNKNOWN_ERROR

    def __init__(self, message: str, *, code: Optional[str] = None, data: Any = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.data = data


class RpcError(ProviderError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, rpc_code: int, message: str, data: Any = None) -> None:
        super().__init__(message, data=data)
        self.rpc_code = rpc_code


class ReceiptTimeoutError(ProviderError, TimeoutError):
    code = "TIMEOUT"


class TransactionRevertedError(ProviderError):
    code = CALL_REVERTED

    def __init__(self, tx_hash: str, receipt: dict) -> None:
        super().__init__(f"Transaction {tx_hash} reverted")
        self.tx_hash = tx_hash
        self.receipt = receipt


@dataclass(frozen=True)
class ParsedProviderError:
    code: str
    context: Optional[str] = None


def decode_revert_reason(data: Any) -> Optional[str]:
    """Decode Error(string) / Panic(uint256) revert data, if present."""
    if isinstance(data, dict):
        data = data.get("data")
    if not isinstance(data, str) or not data.startswith("0x"):
        return None

    selector, payload = data[:10].lower(), data[10:]
    try:
        raw = bytes.fromhex(payload)
        if selector == ERROR_SELECTOR:
            (reason,) = decode(["string"], raw)
            return reason
        if selector == PANIC_SELECTOR:
            (panic_code,) = decode(["uint256"], raw)
            return f"Panic(0x{panic_code:02x})"
    except (ValueError, DecodingError):
        return None
    return None


def parse_provider_error(exc: BaseException) -> ParsedProviderError:
    """Reduce a provider-level exception to a ``{code, context}`` pair."""
    if isinstance(exc, httpx.HTTPError):
        return ParsedProviderError(NETWORK_ERROR, str(exc) or type(exc).__name__)

    if not isinstance(exc, ProviderError):
        return ParsedProviderError(UNKNOWN_ERROR, str(exc) or None)

    reason = decode_revert_reason(exc.data)
    if reason:
        return ParsedProviderError(EXECUTION_REVERTED, reason)

    message = str(exc)
    lowered = message.lower()

    marker = "execution reverted"
    if marker in lowered:
        tail = message[lowered.index(marker) + len(marker):].lstrip(": ").strip()
        return ParsedProviderError(EXECUTION_REVERTED, tail or None)

    for needle, code in _MESSAGE_CODES:
        if needle in lowered:
            return ParsedProviderError(code)

    if exc.code != UNKNOWN_ERROR:
        return ParsedProviderError(exc.code, message or None)

    return ParsedProviderError(UNKNOWN_ERROR, message or None)
