import logging
from typing import NoReturn

from fastapi import HTTPException, status

from familybank.core.errors import (
    DuplicateOperation,
    EntityNotFound,
    FamilyBankError,
    InsufficientFunds,
    InvalidAllocation,
    InvalidStateTransition,
    StorageFailure,
    ValidationFailed,
)

logger = logging.getLogger("familybank.http")

_STATUS_BY_ERROR: list[tuple[type[FamilyBankError], int]] = [
    (EntityNotFound, status.HTTP_404_NOT_FOUND),
    (InvalidStateTransition, status.HTTP_409_CONFLICT),
    (DuplicateOperation, status.HTTP_409_CONFLICT),
    (InsufficientFunds, status.HTTP_400_BAD_REQUEST),
    (InvalidAllocation, status.HTTP_400_BAD_REQUEST),
    (ValidationFailed, status.HTTP_400_BAD_REQUEST),
    (StorageFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def StatusForError(exc: FamilyBankError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def RaiseForDomainError(exc: FamilyBankError) -> NoReturn:
    status_code = StatusForError(exc)
    if status_code >= 500:
        logger.error("request failed error=%s message=%s", type(exc).__name__, exc)
    else:
        logger.info("request rejected error=%s message=%s", type(exc).__name__, exc)
    raise HTTPException(
        status_code=status_code,
        detail={
            "Error": type(exc).__name__,
            "Message": str(exc),
            "Retryable": exc.Retryable,
        },
    ) from exc
