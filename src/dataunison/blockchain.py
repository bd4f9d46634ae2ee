"""
Validated access to the DataUnison contracts.

DataUnisonBlockchain wraps the registrar contract (always bound) and a
summary contract (bound by ``connect_summary``).  Every public method
runs an ordered list of precondition checks before touching the chain;
the first failing check raises its own error kind.  Provider failures
are normalised into ContractCallError.
"""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, NamedTuple, Optional, Sequence, Union

import httpx
from eth_utils import to_checksum_address

from .chain.abi import ABI, ABI_ROLE, ContractName, Method, Role
from .chain.contract import Contract, Runner
from .chain.errors import BAD_DATA, ProviderError, parse_provider_error
from .chain.rpc import _to_int
from .errors import (
    AlreadyInStateError,
    ContractCallError,
    DataUnisonError,
    InvalidArgumentError,
    NotAuthorizedError,
    NotFoundError,
)
from .utils import is_address, is_bytes32, to_bytes

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40


class BindingState(str, Enum):
    REGISTRAR = "registrar"
    SUMMARY = "summary"


@dataclass(frozen=True)
class Interaction:
    """Interaction record stored in a summary contract."""

    interaction: str
    enabled: bool
    role: Role

    @classmethod
    def from_abi(cls, value: Sequence[Any]) -> "Interaction":
        address, enabled, role = value
        try:
            role = Role(role)
        except ValueError as exc:
            raise ContractCallError(BAD_DATA, f"Unknown interaction role {role!r}") from exc
        return cls(to_checksum_address(address), bool(enabled), role)


class _Check(NamedTuple):
    predicate: Callable[[], Union[bool, Awaitable[bool]]]
    error: type[DataUnisonError]
    message: str


def _now() -> int:
    return int(time.time())


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same_address(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and str(a).lower() == str(b).lower()


class DataUnisonBlockchain:
    def __init__(self, chain_id: int, registrar_address: str, runner: Runner) -> None:
        if not is_address(registrar_address):
            raise InvalidArgumentError("Invalid registrar address")
        self._chain_id = int(chain_id)
        self._runner = runner
        self._registrar = Contract(registrar_address, ABI[ContractName.REGISTRAR], runner)
        self._summary: Optional[Contract] = None
        self._summary_role: Optional[Role] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def runner(self) -> Runner:
        return self._runner

    @property
    def registrar_address(self) -> str:
        return self._registrar.address

    @property
    def summary_address(self) -> Optional[str]:
        return self._summary.address if self._summary else None

    @property
    def summary_role(self) -> Optional[Role]:
        return self._summary_role

    @property
    def state(self) -> BindingState:
        return BindingState.SUMMARY if self._summary else BindingState.REGISTRAR

    def is_signer(self) -> bool:
        """True if the runner can report an address, i.e. can sign."""
        return callable(getattr(self._runner, "get_address", None))

    def connect_runner(self, runner: Runner) -> None:
        """Rebind every contract to another signer or provider in place."""
        self._runner = runner
        self._registrar = self._registrar.connect(runner)
        if self._summary is not None:
            self._summary = self._summary.connect(runner)

    # ------------------------------------------------------------------
    # Contract call wrappers
    # ------------------------------------------------------------------

    async def _read_contract(self, contract: Contract, selector: str, args: Optional[list] = None) -> Any:
        try:
            return await contract.call(selector, args)
        except (ProviderError, httpx.HTTPError) as exc:
            parsed = parse_provider_error(exc)
            logger.debug("Read %s on %s failed: %s", selector, contract.address, parsed)
            raise ContractCallError(parsed.code, parsed.context) from exc

    async def _write_contract(self, contract: Contract, selector: str, args: Optional[list] = None) -> dict:
        try:
            tx = await contract.transact(selector, args)
            receipt = await tx.wait()
        except (ProviderError, httpx.HTTPError) as exc:
            parsed = parse_provider_error(exc)
            logger.warning("Write %s on %s failed: %s", selector, contract.address, parsed)
            raise ContractCallError(parsed.code, parsed.context) from exc

        logger.info("Confirmed %s on %s in %s", selector, contract.address, tx.hash)
        return {
            "tx_hash": tx.hash,
            "receipt": receipt,
            "status": _to_int(receipt.get("status", "0x1")),
        }

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    async def _enforce(self, checks: Iterable[_Check]) -> None:
        for check in checks:
            passed = check.predicate()
            if inspect.isawaitable(passed):
                passed = await passed
            if not passed:
                raise check.error(check.message)

    def _require_summary(self) -> list[_Check]:
        return [_Check(lambda: self._summary is not None, NotFoundError, "Summary contract is not found")]

    def _require_custodian(self) -> list[_Check]:
        return [
            _Check(self.is_signer, NotAuthorizedError, "Signer not found"),
            *self._require_summary(),
            _Check(self.is_custodian, NotAuthorizedError, "You are not custodian of the summary contract"),
        ]

    def _require_method(self, method: Method) -> list[_Check]:
        role = self._summary_role.name.lower() if self._summary_role is not None else "any"
        return [
            _Check(
                lambda: self._summary.has_function(method),
                NotAuthorizedError,
                f"{method.value} is not available for the {role} role",
            )
        ]

    def _require_interaction_id(self, interaction_id: Any, label: str = "interactionId") -> list[_Check]:
        return [
            _Check(lambda: _is_int(interaction_id), InvalidArgumentError, f"The {label} must be an integer"),
            _Check(lambda: interaction_id >= 0, InvalidArgumentError, f"The {label} is negative"),
        ]

    def _require_existing(self, interaction_id: int) -> list[_Check]:
        async def in_range() -> bool:
            return interaction_id < await self.get_interactions_length()

        return [_Check(in_range, NotFoundError, "The interactionId is not found")]

    def _require_address(self, value: Any, label: str) -> list[_Check]:
        return [_Check(lambda: is_address(value), InvalidArgumentError, f"Invalid {label} address")]

    def _require_text(self, value: Any, message: str) -> list[_Check]:
        return [_Check(lambda: isinstance(value, str) and len(value) > 0, InvalidArgumentError, message)]

    def _require_permission_level(self, level: Any) -> list[_Check]:
        return [
            _Check(lambda: _is_int(level), InvalidArgumentError, "The permission level must be an integer"),
            _Check(lambda: level >= 0, InvalidArgumentError, "The permission level can't be negative value"),
        ]

    # ------------------------------------------------------------------
    # Registrar
    # ------------------------------------------------------------------

    async def resolve_reference(self, summary_address: str) -> str:
        await self._enforce(self._require_address(summary_address, "summary"))
        return await self._read_contract(self._registrar, Method.RESOLVE_REFERENCE, [summary_address])

    async def resolve_summary(self, reference: str) -> str:
        await self._enforce(self._require_text(reference, "Reference is empty"))
        summary = await self._read_contract(self._registrar, Method.RESOLVE_SUMMARY, [reference])
        return to_checksum_address(summary)

    async def connect_summary(self, reference: str, role: Optional[Role] = None) -> str:
        """
        Resolve ``reference`` through the registrar and bind its summary contract.

        Args:
            reference: Human-readable summary reference
            role: Bind with the ABI of this role only (default: full ABI)

        Returns:
            Checksummed summary contract address

        Raises:
            NotFoundError: If the registrar resolves to the zero address
        """
        summary = await self.resolve_summary(reference)
        if not summary or _same_address(summary, ZERO_ADDRESS):
            raise NotFoundError("Summary not found")

        if role is None:
            abi = ABI[ContractName.SUMMARY]
        else:
            role = Role(role)
            abi = ABI_ROLE[role][ContractName.SUMMARY]

        self._summary = Contract(summary, abi, self._runner)
        self._summary_role = role
        logger.info("Bound summary %s for reference %r", self._summary.address, reference)
        return self._summary.address

    # ------------------------------------------------------------------
    # Summary reads
    # ------------------------------------------------------------------

    async def custodian(self) -> str:
        await self._enforce(self._require_summary())
        return to_checksum_address(await self._read_contract(self._summary, Method.CUSTODIAN))

    async def is_custodian(self) -> bool:
        await self._enforce([
            _Check(self.is_signer, NotAuthorizedError, "Signer not found"),
            *self._require_summary(),
        ])
        custodian = await self.custodian()
        address = await self._runner.get_address()
        return _same_address(custodian, address)

    async def _is_role_interaction(self, interaction_id: int, role: Role, method: Method) -> bool:
        await self._enforce([*self._require_summary(), *self._require_interaction_id(interaction_id)])

        record = await self.get_interaction(interaction_id)
        if record.role is not role:
            return False

        interaction = Contract(record.interaction, ABI[ContractName.INTERACTION], self._runner)
        holder = await self._read_contract(interaction, method)
        return _same_address(holder, self._summary.address)

    async def is_owner_interaction(self, interaction_id: int) -> bool:
        """True if the interaction has the Owner role and its owner() is this summary."""
        return await self._is_role_interaction(interaction_id, Role.OWNER, Method.OWNER)

    async def is_provider_interaction(self, interaction_id: int) -> bool:
        """True if the interaction has the Provider role and its provider() is this summary."""
        return await self._is_role_interaction(interaction_id, Role.PROVIDER, Method.PROVIDER)

    async def is_interaction_exist(self, reference_or_address: str) -> bool:
        await self._enforce([
            *self._require_summary(),
            *self._require_text(reference_or_address, "Reference or interaction address is empty"),
        ])
        if is_address(reference_or_address):
            selector = Method.IS_INTERACTION_EXIST_BY_ADDRESS
        else:
            selector = Method.IS_INTERACTION_EXIST_BY_REFERENCE
        return await self._read_contract(self._summary, selector, [reference_or_address])

    async def get_interaction_id(self, reference_or_address: str) -> int:
        await self._enforce([
            *self._require_summary(),
            *self._require_text(reference_or_address, "Reference or interaction address is empty"),
        ])
        if is_address(reference_or_address):
            selector = Method.GET_INTERACTION_ID_BY_ADDRESS
        else:
            selector = Method.GET_INTERACTION_ID_BY_REFERENCE
        return await self._read_contract(self._summary, selector, [reference_or_address])

    async def get_interactions_length(self) -> int:
        await self._enforce(self._require_summary())
        return await self._read_contract(self._summary, Method.GET_INTERACTIONS_LENGTH)

    async def get_interaction(self, interaction_id: int) -> Interaction:
        await self._enforce([
            *self._require_summary(),
            *self._require_interaction_id(interaction_id),
            *self._require_existing(interaction_id),
        ])
        value = await self._read_contract(self._summary, Method.GET_INTERACTION, [interaction_id])
        return Interaction.from_abi(value)

    async def get_interactions(self, interaction_ids: Sequence[int]) -> list[Interaction]:
        ids = list(interaction_ids or [])
        checks = [
            *self._require_summary(),
            _Check(lambda: len(ids) > 0, InvalidArgumentError, "interactionIds is empty"),
        ]
        for index, interaction_id in enumerate(ids):
            checks.extend(self._require_interaction_id(interaction_id, f"interactionId at index {index}"))
        await self._enforce(checks)

        length = await self.get_interactions_length()
        if any(interaction_id >= length for interaction_id in ids):
            raise NotFoundError("The interactionId is not found")

        values = await self._read_contract(self._summary, Method.GET_INTERACTIONS, [ids])
        return [Interaction.from_abi(value) for value in values]

    async def get_viewer(self, interaction_id: int, entity_address: str) -> int:
        await self._enforce([
            *self._require_summary(),
            *self._require_interaction_id(interaction_id),
            *self._require_existing(interaction_id),
            *self._require_address(entity_address, "entity"),
        ])
        return await self._read_contract(
            self._summary, Method.GET_VIEWER, [interaction_id, entity_address]
        )

    async def get_data_merkle_root(self, interaction_id: int) -> str:
        await self._enforce([
            *self._require_summary(),
            *self._require_interaction_id(interaction_id),
            *self._require_existing(interaction_id),
        ])
        root = await self._read_contract(self._summary, Method.GET_DATA_MERKLE_ROOT, [interaction_id])
        return "0x" + bytes(root).hex()

    # ------------------------------------------------------------------
    # Summary writes (custodian only)
    # ------------------------------------------------------------------

    async def add_interaction(self, reference: str, interaction_address: str, role: Role) -> dict:
        async def address_is_new() -> bool:
            return not await self.is_interaction_exist(interaction_address)

        async def reference_is_new() -> bool:
            return not await self.is_interaction_exist(reference)

        await self._enforce([
            *self._require_custodian(),
            *self._require_text(reference, "Reference is empty"),
            *self._require_address(interaction_address, "interaction"),
            _Check(lambda: role in set(Role), InvalidArgumentError, "Invalid role"),
            _Check(address_is_new, AlreadyInStateError, "Interaction already exist"),
            _Check(reference_is_new, AlreadyInStateError, "Reference already exist"),
        ])
        return await self._write_contract(
            self._summary,
            Method.ADD_INTERACTION,
            [reference, to_checksum_address(interaction_address), int(role)],
        )

    async def _set_enabled(self, interaction_id: int, enabled: bool) -> dict:
        async def not_yet() -> bool:
            return (await self.get_interaction(interaction_id)).enabled is not enabled

        await self._enforce([
            *self._require_custodian(),
            *self._require_interaction_id(interaction_id),
            *self._require_existing(interaction_id),
            _Check(
                lambda: self.is_owner_interaction(interaction_id),
                NotAuthorizedError,
                "The interaction is not owned by summary contract",
            ),
            _Check(
                not_yet,
                AlreadyInStateError,
                "The interaction is already enabled" if enabled else "The interaction is already disabled",
            ),
        ])
        method = Method.ENABLE_INTERACTION if enabled else Method.DISABLE_INTERACTION
        return await self._write_contract(self._summary, method, [interaction_id])

    async def enable_interaction(self, interaction_id: int) -> dict:
        return await self._set_enabled(interaction_id, True)

    async def disable_interaction(self, interaction_id: int) -> dict:
        return await self._set_enabled(interaction_id, False)

    def _viewer_checks(self, method: Method, interaction_id: Any, entity_address: Any, level: Any) -> list[_Check]:
        return [
            *self._require_custodian(),
            *self._require_method(method),
            *self._require_interaction_id(interaction_id),
            *self._require_address(entity_address, "entity"),
            *self._require_permission_level(level),
        ]

    def _owned_checks(self, interaction_id: int) -> list[_Check]:
        return [
            *self._require_existing(interaction_id),
            _Check(
                lambda: self.is_owner_interaction(interaction_id),
                NotAuthorizedError,
                "The interaction is not owned by summary contract",
            ),
        ]

    async def assign_viewer(self, interaction_id: int, entity_address: str, permission_level: int) -> dict:
        await self._enforce([
            *self._viewer_checks(Method.ASSIGN_VIEWER, interaction_id, entity_address, permission_level),
            *self._owned_checks(interaction_id),
        ])
        return await self._write_contract(
            self._summary,
            Method.ASSIGN_VIEWER,
            [interaction_id, to_checksum_address(entity_address), permission_level],
        )

    async def assign_temporary_viewer(
        self,
        interaction_id: int,
        entity_address: str,
        permission_level: int,
        duration_seconds: Union[int, float],
    ) -> dict:
        """
        Grant ``permission_level`` until ``now + duration_seconds``.

        The duration must be a positive whole number of seconds.
        """
        await self._enforce([
            *self._viewer_checks(
                Method.ASSIGN_TEMPORARY_VIEWER, interaction_id, entity_address, permission_level
            ),
            _Check(
                lambda: _is_number(duration_seconds) and duration_seconds > 0,
                InvalidArgumentError,
                "The durationSeconds is invalid",
            ),
            _Check(
                lambda: float(duration_seconds).is_integer(),
                InvalidArgumentError,
                "The durationSeconds must not have a decimal",
            ),
            *self._owned_checks(interaction_id),
        ])

        deadline = _now() + int(duration_seconds)
        return await self._write_contract(
            self._summary,
            Method.ASSIGN_TEMPORARY_VIEWER,
            [interaction_id, to_checksum_address(entity_address), permission_level, deadline],
        )

    async def set_custodian(self, custodian_address: str) -> dict:
        await self._enforce([
            *self._require_custodian(),
            *self._require_address(custodian_address, "custodian"),
        ])
        return await self._write_contract(
            self._summary, Method.SET_CUSTODIAN, [to_checksum_address(custodian_address)]
        )

    async def set_data_merkle_root(self, interaction_id: int, merkle_root: Union[str, bytes]) -> dict:
        await self._enforce([
            *self._require_custodian(),
            *self._require_method(Method.SET_DATA_MERKLE_ROOT),
            *self._require_interaction_id(interaction_id),
            _Check(lambda: is_bytes32(merkle_root), InvalidArgumentError, "Invalid merkle root"),
            *self._require_existing(interaction_id),
            _Check(
                lambda: self.is_provider_interaction(interaction_id),
                NotAuthorizedError,
                "The interaction is not provided by summary contract",
            ),
        ])
        return await self._write_contract(
            self._summary, Method.SET_DATA_MERKLE_ROOT, [interaction_id, to_bytes(merkle_root)]
        )
