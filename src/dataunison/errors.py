"""
DataUnison error taxonomy.

Every failure raised by the SDK is a DataUnisonError carrying a message
and one of a closed set of kinds.  Callers can branch on ``exc.kind``
instead of matching message text.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_AUTHORIZED = "not_authorized"
    NOT_FOUND = "not_found"
    REMOTE_FAILURE = "remote_failure"
    ALREADY_IN_STATE = "already_in_state"


class DataUnisonError(RuntimeError):
    kind: ErrorKind = ErrorKind.REMOTE_FAILURE

    @property
    def message(self) -> str:
        return str(self)


class InvalidArgumentError(DataUnisonError):
    kind = ErrorKind.INVALID_ARGUMENT


class NotAuthorizedError(DataUnisonError):
    kind = ErrorKind.NOT_AUTHORIZED


class NotFoundError(DataUnisonError):
    kind = ErrorKind.NOT_FOUND


class RemoteFailureError(DataUnisonError):
    kind = ErrorKind.REMOTE_FAILURE


class AlreadyInStateError(DataUnisonError):
    kind = ErrorKind.ALREADY_IN_STATE


class NoTokenError(NotAuthorizedError):
    pass


class UnauthorizedError(NotAuthorizedError):
    pass


class InvalidPrivateKeyError(InvalidArgumentError):
    pass


class ContractCallError(RemoteFailureError):
    """A contract read or write rejected by the node or the contract."""

    def __init__(self, code: str, context: Optional[str] = None) -> None:
        super().__init__(context or code)
        self.code = code
        self.context = context


__all__ = [
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
]
