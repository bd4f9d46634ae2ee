"""
Async JSON-RPC provider.

Uses httpx for HTTP.  Supports read-only contract calls, chain id,
nonce and gas queries, raw transaction broadcast and receipt polling.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Optional

import httpx

from .errors import BAD_DATA, ProviderError, ReceiptTimeoutError, RpcError

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(value, 16)
    except (TypeError, ValueError) as exc:
        raise ProviderError(f"Expected a hex quantity, got {value!r}", code=BAD_DATA) from exc


class JsonRpcProvider:
    """Read-only connection to an EVM node."""

    def __init__(
        self,
        url: str,
        chain_id: Optional[int] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        if not url:
            raise ValueError("url must be provided")
        self.url = url
        self._chain_id = chain_id
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        """
        Make a JSON-RPC call.

        Returns:
            Result field from the RPC response

        Raises:
            RpcError: If the node answers with an error object
            ProviderError: If the response is not a JSON-RPC object (BAD_DATA)
            httpx.HTTPError: On transport or HTTP status failures
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        logger.debug("RPC %s -> %s", method, self.url)

        response = await self._client.post(self.url, json=payload, timeout=self._timeout)
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(f"Invalid JSON-RPC response to {method}", code=BAD_DATA) from exc
        if not isinstance(data, dict):
            raise ProviderError(f"Invalid JSON-RPC response to {method}", code=BAD_DATA)

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                code = error.get("code", -32000)
                raise RpcError(
                    code if isinstance(code, int) else -32000,
                    str(error.get("message", "RPC error")),
                    error.get("data"),
                )
            raise RpcError(-32000, str(error))

        return data.get("result")

    async def call(self, tx: dict[str, Any], block: str = "latest") -> str:
        return await self.request("eth_call", [tx, block])

    async def get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = _to_int(await self.request("eth_chainId"))
        return self._chain_id

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return _to_int(await self.request("eth_getTransactionCount", [address, block]))

    async def get_gas_price(self) -> int:
        return _to_int(await self.request("eth_gasPrice"))

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        return _to_int(await self.request("eth_estimateGas", [tx]))

    async def send_raw_transaction(self, raw_tx: str) -> str:
        return await self.request("eth_sendRawTransaction", [raw_tx])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        return await self.request("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = 120,
        poll_interval: float = 2.0,
    ) -> dict:
        """
        Wait for a transaction receipt.

        Raises:
            ReceiptTimeoutError: If receipt not found within timeout
        """
        start = time.monotonic()
        while time.monotonic() - start < timeout:
            receipt = await self.get_transaction_receipt(tx_hash)
            if isinstance(receipt, dict):
                return receipt
            if receipt is not None:
                raise ProviderError(f"Invalid receipt for {tx_hash}", code=BAD_DATA)
            await asyncio.sleep(poll_interval)

        raise ReceiptTimeoutError(f"Transaction {tx_hash} not confirmed within {timeout}s")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
