"""
ECDSA / secp256k1 signer bound to a JSON-RPC provider.

A Wallet is the "signer" runner of a contract: it can report its own
address and send transactions.  A bare JsonRpcProvider is the
read-only runner.

Dependencies: eth-account (lightweight, no full web3.py needed)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from ..errors import InvalidPrivateKeyError
from .rpc import JsonRpcProvider

logger = logging.getLogger(__name__)


class Wallet:
    """Private-key signer that sends transactions through ``provider``."""

    def __init__(self, private_key: str, provider: JsonRpcProvider) -> None:
        if not private_key or not isinstance(private_key, str):
            raise InvalidPrivateKeyError("No private key provided")
        try:
            self._account: LocalAccount = Account.from_key(private_key)
        except Exception as exc:
            raise InvalidPrivateKeyError("Invalid private key") from exc
        self._provider = provider

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def provider(self) -> JsonRpcProvider:
        return self._provider

    async def get_address(self) -> str:
        return self._account.address

    def connect(self, provider: JsonRpcProvider) -> "Wallet":
        """Return a wallet with the same key bound to another provider."""
        return Wallet("0x" + bytes(self._account.key).hex(), provider)

    async def call(self, tx: dict[str, Any], block: str = "latest") -> str:
        return await self._provider.call({"from": self.address, **tx}, block)

    async def populate_transaction(self, tx: dict[str, Any]) -> dict[str, Any]:
        """
        Fill nonce, gas price, gas limit and chain id.

        Args:
            tx: Dict with ``to`` and ``data`` (and optionally ``value``, ``gas``)

        Returns:
            Unsigned transaction dict accepted by eth-account
        """
        to = to_checksum_address(tx["to"])
        value = int(tx.get("value", 0))
        gas_limit: Optional[int] = tx.get("gas")

        if gas_limit is None:
            gas_limit = await self._provider.estimate_gas(
                {"from": self.address, "to": to, "data": tx["data"], "value": hex(value)}
            )

        return {
            "to": to,
            "data": tx["data"],
            "value": value,
            "nonce": await self._provider.get_transaction_count(self.address),
            "gas": gas_limit,
            "gasPrice": await self._provider.get_gas_price(),
            "chainId": await self._provider.get_chain_id(),
        }

    def sign_transaction(self, tx: dict[str, Any]) -> str:
        """Sign a populated transaction and return the raw 0x-prefixed bytes."""
        signed = self._account.sign_transaction(tx)
        return "0x" + bytes(signed.raw_transaction).hex()

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """
        Populate, sign and broadcast a transaction.

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        populated = await self.populate_transaction(tx)
        tx_hash = await self._provider.send_raw_transaction(self.sign_transaction(populated))
        logger.info("Sent transaction %s from %s to %s", tx_hash, self.address, populated["to"])
        return tx_hash


def address_of(private_key: str) -> str:
    """Checksummed address of a private key, without touching the network."""
    try:
        return Account.from_key(private_key).address
    except Exception as exc:
        raise InvalidPrivateKeyError("Invalid private key") from exc
