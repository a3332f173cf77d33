"""Error taxonomy for the clone workflow.

Every failure the workflow can surface maps to one ErrorKind. Precondition
errors (UNAUTHENTICATED, NOT_FOUND, CONFLICT) abort before anything is
created; once a resource exists, failures surface as PARTIAL_FAILURE after
rollback.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of clone failures."""

    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PERMISSION_DENIED = "permission_denied"
    PROVIDER_FAILURE = "provider_failure"
    PARTIAL_FAILURE = "partial_failure"


class CloneError(Exception):
    """Base exception for all vmclone failures."""

    kind: ErrorKind = ErrorKind.PROVIDER_FAILURE

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class UnauthenticatedError(CloneError):
    """Raised when no active az CLI session exists."""

    kind = ErrorKind.UNAUTHENTICATED


class NotFoundError(CloneError):
    """Raised when a resource group, VM, disk, NIC, NSG or subnet is absent."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(CloneError):
    """Raised when the target VM name already exists."""

    kind = ErrorKind.CONFLICT


class PermissionDeniedError(CloneError):
    """Raised when the caller cannot read a required resource group."""

    kind = ErrorKind.PERMISSION_DENIED


class ProviderFailureError(CloneError):
    """Raised for any other cloud API failure."""

    kind = ErrorKind.PROVIDER_FAILURE


class PartialFailureError(CloneError):
    """Raised when the pipeline aborted after creating resources.

    Attributes:
        stage: Pipeline stage that failed
        cause: Original error that triggered the abort
        rollback: Report of the compensating deletions
    """

    kind = ErrorKind.PARTIAL_FAILURE

    def __init__(self, stage: str, cause: CloneError, rollback=None):
        super().__init__(f"Clone failed at stage '{stage}': {cause}")
        self.stage = stage
        self.cause = cause
        self.rollback = rollback


ERROR_CLASSES: dict[ErrorKind, type[CloneError]] = {
    ErrorKind.UNAUTHENTICATED: UnauthenticatedError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.PERMISSION_DENIED: PermissionDeniedError,
    ErrorKind.PROVIDER_FAILURE: ProviderFailureError,
}


def error_for(kind: ErrorKind, message: str) -> CloneError:
    """Build the exception class matching an ErrorKind."""
    error_class = ERROR_CLASSES.get(kind)
    if error_class is None:
        return CloneError(message, kind)
    return error_class(message)


__all__ = [
    "CloneError",
    "ConflictError",
    "ErrorKind",
    "NotFoundError",
    "PartialFailureError",
    "PermissionDeniedError",
    "ProviderFailureError",
    "UnauthenticatedError",
    "error_for",
]
