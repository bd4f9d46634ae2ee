"""
DataUnison client facade.

Owns one DataUnisonServer session and, once connected, at most one
DataUnisonBlockchain bound to the project's registrar.

Example:
    >>> async with DataUnisonClient(api_key) as client:
    ...     await client.connect(42, private_key="0x...")
    ...     chain = client.blockchain()
    ...     await chain.connect_summary("my-summary")
    ...     length = await chain.get_interactions_length()
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import httpx

from .blockchain import DataUnisonBlockchain
from .chain.contract import Runner
from .chain.rpc import JsonRpcProvider
from .chain.wallet import Wallet
from .errors import InvalidArgumentError, NotAuthorizedError, NotFoundError
from .server import DataUnisonServer, Project, parse_project_id

logger = logging.getLogger(__name__)


class DataUnisonClient:
    def __init__(
        self,
        api_key: str,
        *,
        url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise InvalidArgumentError("No API Key provided")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout
        self._server = DataUnisonServer(api_key, url=url, client=self._http, timeout=timeout)
        self._project: Optional[Project] = None
        self._provider: Optional[JsonRpcProvider] = None
        self._signer: Optional[Wallet] = None
        self._blockchain: Optional[DataUnisonBlockchain] = None

    @property
    def server(self) -> DataUnisonServer:
        return self._server

    @property
    def project(self) -> Optional[Project]:
        return self._project

    @property
    def provider(self) -> Optional[JsonRpcProvider]:
        return self._provider

    @property
    def signer(self) -> Optional[Wallet]:
        return self._signer

    @property
    def is_connected(self) -> bool:
        return self._server.is_connected and self._project is not None

    def set_api_key(self, api_key: str) -> None:
        self._server.set_api_key(api_key)

    async def connect(self, project_id: Union[int, str], private_key: Optional[str] = None) -> Project:
        """
        Log in, resolve the project and prepare the RPC provider.

        Args:
            project_id: Positive project id (numeric strings accepted)
            private_key: Optional signing key; without it the client is read-only

        Raises:
            InvalidPrivateKeyError: If ``private_key`` is malformed
        """
        project_id = parse_project_id(project_id)
        await self._server.connect(project_id)

        project = await self._server.get_project(project_id)
        provider = JsonRpcProvider(
            project.rpc, project.chain_id, client=self._http, timeout=self._timeout
        )
        signer = Wallet(private_key, provider) if private_key else None

        self._project = project
        self._provider = provider
        self._signer = signer
        self._blockchain = None
        logger.info(
            "Project %s resolved: chain %s, registrar %s",
            project.id,
            project.chain_id,
            project.registrar,
        )
        return project

    def set_private_key(self, private_key: str) -> None:
        """Swap the signing key; an existing blockchain client is rebound in place."""
        if not private_key:
            raise InvalidArgumentError("No private key provided")
        if self._provider is None:
            raise NotAuthorizedError("No provider provided")

        self._signer = Wallet(private_key, self._provider)
        if self._blockchain is not None:
            self._blockchain.connect_runner(self._signer)

    def _runner(self) -> Optional[Runner]:
        return self._signer or self._provider

    def blockchain(self) -> DataUnisonBlockchain:
        """Return the blockchain client, building it on first use."""
        if self._blockchain is None:
            self._blockchain = self._build_blockchain()
        return self._blockchain

    def _build_blockchain(self) -> DataUnisonBlockchain:
        if not self._server.is_connected or self._project is None:
            raise NotAuthorizedError("Not connected to server")
        if not self._project.registrar:
            raise NotFoundError("Registrar is undefined")

        runner = self._runner()
        if runner is None:
            raise NotFoundError("Signer or provider is undefined")

        return DataUnisonBlockchain(self._project.chain_id, self._project.registrar, runner)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "DataUnisonClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
