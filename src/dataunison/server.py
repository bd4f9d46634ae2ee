"""
GraphQL client for the DataUnison project registry.

Logs in with the project API key, keeps the bearer token pair issued by
the backend, and exposes authenticated ``query`` / ``mutate`` helpers.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

import httpx

from .config import get_graphql_url
from .errors import (
    InvalidArgumentError,
    NoTokenError,
    RemoteFailureError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class Session:
    token: str
    refresh: Optional[str] = None


@dataclass(frozen=True)
class Project:
    """Project registry entry resolved from the backend."""

    id: int
    contracts: Mapping[str, str]
    rpc: str
    chain_id: int

    @property
    def registrar(self) -> Optional[str]:
        return self.contracts.get("registrar")


def parse_project_id(project_id: Union[int, str]) -> int:
    """Normalise a project id; numeric strings are accepted."""
    if isinstance(project_id, bool):
        raise InvalidArgumentError("Invalid project ID")
    try:
        value = int(project_id)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError("Invalid project ID") from exc
    if value < 1 or (isinstance(project_id, float) and value != project_id):
        raise InvalidArgumentError("Invalid project ID")
    return value


def _first_error(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    errors = payload.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict) and first.get("message"):
            return str(first["message"])
        return str(first)
    if errors:
        return str(errors)
    return None


class DataUnisonServer:
    """Authenticated GraphQL session for one project."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        project_id: Optional[Union[int, str]] = None,
        *,
        url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._project_id = parse_project_id(project_id) if project_id is not None else None
        self._url = url or get_graphql_url()
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._session: Optional[Session] = None
        self._state = ConnectionState.DISCONNECTED

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def project_id(self) -> Optional[int]:
        return self._project_id

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    @property
    def refresh_token(self) -> Optional[str]:
        return self._session.refresh if self._session else None

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def set_api_key(self, api_key: str) -> None:
        """Replace the API key.  The current session is kept."""
        self._api_key = api_key

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def connect(self, project_id: Optional[Union[int, str]] = None) -> None:
        """
        Log in and store the token pair.  No-op if a session exists.

        Raises:
            InvalidArgumentError: If the API key or project id is missing
            UnauthorizedError: If the backend rejects the login
        """
        if project_id is not None:
            project_id = parse_project_id(project_id)
            if self._session is not None and project_id != self._project_id:
                raise InvalidArgumentError(
                    f"Already connected to project {self._project_id}"
                )
            self._project_id = project_id

        if self._session is not None:
            return

        if not self._api_key:
            raise InvalidArgumentError("No API Key provided")
        if self._project_id is None:
            raise InvalidArgumentError("No project ID provided")

        self._state = ConnectionState.CONNECTING
        try:
            payload = await self._post(
                "mutation",
                f"login(apiKey: {json.dumps(self._api_key)}, id: {self._project_id}) "
                "{ token refresh }",
            )
        except RemoteFailureError as exc:
            self._state = ConnectionState.DISCONNECTED
            raise UnauthorizedError(str(exc)) from exc
        except BaseException:
            self._state = ConnectionState.DISCONNECTED
            raise

        data = payload.get("data") if isinstance(payload, dict) else None
        login = data.get("login") if isinstance(data, dict) else None
        if not isinstance(login, dict) or not login.get("token"):
            self._state = ConnectionState.DISCONNECTED
            raise UnauthorizedError(_first_error(payload) or "Login failed")

        self._session = Session(token=login["token"], refresh=login.get("refresh"))
        self._state = ConnectionState.CONNECTED
        logger.info("Connected to %s as project %s", self._url, self._project_id)

    async def refresh(self) -> bool:
        """
        Refresh the access token.

        Failures are not raised: they are logged and reported by returning
        False, leaving the current session in place.
        """
        if self._session is None:
            return False

        try:
            data = await self.query(
                f"refreshToken(id: {self._project_id}) {{ success data {{ token refresh }} }}"
            )
        except (RemoteFailureError, NoTokenError) as exc:
            logger.warning("Token refresh failed: %s", exc)
            return False

        result = data.get("refreshToken") if isinstance(data, dict) else None
        tokens = result.get("data") if isinstance(result, dict) else None
        if not isinstance(tokens, dict) or not result.get("success") or not tokens.get("token"):
            logger.warning("Token refresh rejected by backend")
            return False

        self._session = Session(
            token=tokens["token"],
            refresh=tokens.get("refresh") or self._session.refresh,
        )
        logger.debug("Token refreshed for project %s", self._project_id)
        return True

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def query(self, query: str) -> Any:
        """Run an authenticated query and return its ``data`` payload."""
        return await self._authenticated("query", query)

    async def mutate(self, mutation: str) -> Any:
        """Run an authenticated mutation and return its ``data`` payload."""
        return await self._authenticated("mutation", mutation)

    async def get_project(self, project_id: Optional[Union[int, str]] = None) -> Project:
        """
        Look up the registrar address, RPC URL and chain id of a project.

        Raises:
            RemoteFailureError: If the backend reports failure
        """
        pid = parse_project_id(project_id) if project_id is not None else self._project_id
        if pid is None:
            raise InvalidArgumentError("No project ID provided")

        data = await self.query(
            f"getProject(id: {pid}) {{ success contract {{ registrar }} network {{ rpc chainId }} }}"
        )
        info = data.get("getProject") if isinstance(data, dict) else None
        if not isinstance(info, dict) or not info.get("success"):
            raise RemoteFailureError(_first_error(data) or "getProject failed")

        network = info.get("network")
        if not isinstance(network, dict) or not network.get("rpc") or network.get("chainId") is None:
            raise RemoteFailureError("getProject returned no network")

        return Project(
            id=pid,
            contracts=dict(info.get("contract") or {}),
            rpc=network["rpc"],
            chain_id=int(network["chainId"]),
        )

    async def _authenticated(self, operation: str, body: str) -> Any:
        if self._session is None:
            raise NoTokenError("No token provided")
        if not body or not body.strip():
            raise InvalidArgumentError(f"No {operation} provided")

        payload = await self._post(operation, body, token=self._session.token)
        data = payload.get("data") if isinstance(payload, dict) else None
        if data is None:
            raise RemoteFailureError(_first_error(payload) or f"{operation} returned no data")
        return data

    async def _post(self, operation: str, body: str, token: Optional[str] = None) -> Any:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        logger.debug("GraphQL %s -> %s", operation, self._url)
        try:
            response = await self._client.post(
                self._url,
                json={"query": f"{operation} {{ {body} }}"},
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _first_error(_safe_json(exc.response))
            raise RemoteFailureError(
                message or f"GraphQL server error: {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteFailureError(f"GraphQL request failed: {exc}") from exc
        return _safe_json(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "DataUnisonServer":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
