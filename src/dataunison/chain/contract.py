"""
Contract binding: an address, an ABI and a runner.

The runner is either a JsonRpcProvider (reads only) or a Wallet (reads
and transactions).
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Union

from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from .abi import decode_result, encode_call, find_function, is_view
from .errors import BAD_DATA, ProviderError, TransactionRevertedError
from .rpc import JsonRpcProvider, _to_int
from .wallet import Wallet

logger = logging.getLogger(__name__)

Runner = Union[JsonRpcProvider, Wallet]


class PendingTransaction:
    """A broadcast transaction that has not been confirmed yet."""

    def __init__(self, tx_hash: str, provider: JsonRpcProvider) -> None:
        self.hash = tx_hash
        self._provider = provider

    async def wait(self, timeout: float = 120, poll_interval: float = 2.0) -> dict:
        """
        Wait for the receipt.

        Raises:
            TransactionRevertedError: If the receipt reports status 0
        """
        receipt = await self._provider.wait_for_receipt(
            self.hash, timeout=timeout, poll_interval=poll_interval
        )
        if _to_int(receipt.get("status", "0x1")) == 0:
            raise TransactionRevertedError(self.hash, receipt)
        return receipt


class Contract:
    def __init__(self, address: str, abi: Iterable[dict[str, Any]], runner: Runner) -> None:
        self.address = to_checksum_address(address)
        self.abi = list(abi)
        self.runner = runner

    def __repr__(self) -> str:
        return f"Contract({self.address})"

    def has_function(self, selector: str) -> bool:
        try:
            find_function(self.abi, selector)
        except ValueError:
            return False
        return True

    def connect(self, runner: Runner) -> "Contract":
        """Return the same contract bound to another runner."""
        return Contract(self.address, self.abi, runner)

    async def call(self, selector: str, args: Optional[list] = None) -> Any:
        """
        Read from the contract (eth_call).

        Raises:
            ProviderError: On node errors or undecodable results
        """
        calldata = encode_call(self.abi, selector, list(args or []))
        result = await self.runner.call({"to": self.address, "data": calldata})

        if result is None or result == "0x":
            raise ProviderError("could not decode result data", code=BAD_DATA)

        try:
            return decode_result(self.abi, selector, result)
        except (DecodingError, ValueError) as exc:
            raise ProviderError(f"could not decode result data: {exc}", code=BAD_DATA) from exc

    async def transact(self, selector: str, args: Optional[list] = None) -> PendingTransaction:
        """
        Send a state-changing call.

        Returns:
            PendingTransaction; await ``wait()`` for the receipt
        """
        send = getattr(self.runner, "send_transaction", None)
        if not callable(send):
            raise ProviderError(
                "contract runner does not support sending transactions",
                code="UNSUPPORTED_OPERATION",
            )
        if is_view(find_function(self.abi, selector)):
            raise ValueError(f"{selector} is a view function, use call()")

        calldata = encode_call(self.abi, selector, list(args or []))
        tx_hash = await send({"to": self.address, "data": calldata})
        logger.debug("Transaction %s pending for %s", tx_hash, selector)
        return PendingTransaction(tx_hash, self.runner.provider)
