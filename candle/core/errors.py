"""
Error taxonomy for auction actions.

Every failure surfaced by the client falls in one of five kinds. All of
them are recoverable; none should terminate the process.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Classification of an action failure."""
    NOT_PERMITTED = "not_permitted"      # Rejected locally by the action gate
    REMOTE_REJECTED = "remote_rejected"  # Contract reverted or refused the call
    TRANSIENT = "transient"              # Network/timeout; safe to retry
    BUSY = "busy"                        # Another mutating action is in flight
    INVALID_INPUT = "invalid_input"      # Malformed amount or empty secret


class ActionError(Exception):
    """Base class for classified client errors."""

    kind: ErrorKind = ErrorKind.TRANSIENT
    retryable: bool = False

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message or self.kind.value


class NotPermittedError(ActionError):
    """Action not allowed in the current phase for this role."""
    kind = ErrorKind.NOT_PERMITTED


class RemoteRejectedError(ActionError):
    """
    The contract refused the submission.
    
    `reason` carries the revert reason verbatim when the node supplied one.
    """
    kind = ErrorKind.REMOTE_REJECTED

    def __init__(self, message: str = "", reason: Optional[str] = None):
        super().__init__(message or (reason or "transaction reverted"))
        self.reason = reason


class TransientError(ActionError):
    """Network-level failure; the same call may succeed later."""
    kind = ErrorKind.TRANSIENT
    retryable = True


class TransientReadFailure(TransientError):
    """A poll or reconciliation read failed."""


class BusyError(ActionError):
    """A mutating action is already in flight on this session."""
    kind = ErrorKind.BUSY
    retryable = True


class InvalidInputError(ActionError, ValueError):
    """Input rejected before any remote call."""
    kind = ErrorKind.INVALID_INPUT


class ConfigError(ValueError):
    """Missing or malformed client configuration."""
