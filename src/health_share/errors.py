"""Error kinds raised by the control plane."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Categories of caller-facing failures."""
    
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    INVALID_STATE = "InvalidState"
    EXPIRED = "Expired"
    INVALID_ARGUMENT = "InvalidArgument"


class ControlPlaneError(Exception):
    """Base class for failures caused by caller input or entity state."""
    
    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT
    
    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail
    
    def __str__(self) -> str:
        return f"{self.kind.value}: {self.detail}"


class NotFoundError(ControlPlaneError):
    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(ControlPlaneError):
    kind = ErrorKind.UNAUTHORIZED


class InvalidStateError(ControlPlaneError):
    kind = ErrorKind.INVALID_STATE


class DuplicateIdError(InvalidStateError):
    """Identifier generation produced an id that is already in use."""


class ExpiredError(ControlPlaneError):
    kind = ErrorKind.EXPIRED


class InvalidArgumentError(ControlPlaneError):
    kind = ErrorKind.INVALID_ARGUMENT


class InconsistentStateError(AssertionError):
    """
    Internal maps disagree with each other.
    
    This is a programming error, not a caller error: it means a mutation was
    applied partially. It is never converted into a response envelope.
    """
