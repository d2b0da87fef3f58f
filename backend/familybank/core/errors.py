"""Exception hierarchy for the FamilyBank core."""

from __future__ import annotations


class FamilyBankError(Exception):
    """Base class for all FamilyBank specific errors."""

    Retryable = False


class ValidationFailed(FamilyBankError):
    """Raised when an input value is rejected before anything is written."""


class InvalidAllocation(FamilyBankError):
    """Raised when jar percentages for an account do not sum to 100."""


class InsufficientFunds(FamilyBankError):
    """Raised when a debit would drive a jar balance below zero."""


class InvalidStateTransition(FamilyBankError):
    """Raised when a chore or wishlist item does not permit the requested action."""


class EntityNotFound(FamilyBankError):
    """Raised when a referenced id does not resolve."""


class AccountNotFound(EntityNotFound):
    """Raised when an account lookup fails or the account has no jars."""


class DuplicateOperation(FamilyBankError):
    """Raised when an idempotency key has already been used."""


class StorageFailure(FamilyBankError):
    """Raised when the store is unavailable or a unit of work cannot commit."""

    Retryable = True
