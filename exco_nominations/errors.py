"""Failure kinds shared by the store gateway, the workflows and the HTTP layer."""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    PARTIAL_COMMIT = "partial_commit"
    RESOLUTION_FAILED = "resolution_failed"


class NominationError(Exception):
    kind = ErrorKind.TRANSIENT

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(NominationError):
    """Rejected locally before anything is sent to the store."""
    kind = ErrorKind.VALIDATION

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class AccessDeniedError(NominationError):
    kind = ErrorKind.ACCESS_DENIED


class NotFoundError(NominationError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(NominationError):
    kind = ErrorKind.CONFLICT


class TransientError(NominationError):
    kind = ErrorKind.TRANSIENT


class ResolutionError(TransientError):
    kind = ErrorKind.RESOLUTION_FAILED


class PartialCommitError(NominationError):
    """The voter is marked as submitted but the ballot itself was not stored."""
    kind = ErrorKind.PARTIAL_COMMIT

    def __init__(self, message: str, voter_id: Optional[str] = None):
        super().__init__(message)
        self.voter_id = voter_id
