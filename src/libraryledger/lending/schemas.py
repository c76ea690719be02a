"""Result types for lending operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from ..ledger.errors import (
    AlreadyReturned,
    BookNotFound,
    LedgerError,
    LoanNotFound,
    MemberNotFound,
    NoCopiesAvailable,
    StorageFailure,
)

T = TypeVar("T")


class LendingErrorKind(str, Enum):
    """Why a lending operation did not succeed."""

    BOOK_NOT_FOUND = "book_not_found"
    MEMBER_NOT_FOUND = "member_not_found"
    LOAN_NOT_FOUND = "loan_not_found"
    NO_COPIES_AVAILABLE = "no_copies_available"
    ALREADY_RETURNED = "already_returned"
    STORAGE_FAILURE = "storage_failure"

    @classmethod
    def from_error(cls, error: LedgerError) -> "LendingErrorKind":
        """Map a ledger error to its kind."""
        for error_type, kind in _ERROR_KINDS:
            if isinstance(error, error_type):
                return kind
        raise TypeError(f"No lending error kind for {type(error).__name__}")


_ERROR_KINDS: tuple[tuple[type, LendingErrorKind], ...] = (
    (BookNotFound, LendingErrorKind.BOOK_NOT_FOUND),
    (MemberNotFound, LendingErrorKind.MEMBER_NOT_FOUND),
    (LoanNotFound, LendingErrorKind.LOAN_NOT_FOUND),
    (NoCopiesAvailable, LendingErrorKind.NO_COPIES_AVAILABLE),
    (AlreadyReturned, LendingErrorKind.ALREADY_RETURNED),
    (StorageFailure, LendingErrorKind.STORAGE_FAILURE),
)


@dataclass(frozen=True)
class LendingResult(Generic[T]):
    """Outcome of a lending operation.

    Either ``ok`` with a ``value``, or not ``ok`` with an ``error`` kind
    and a human-readable ``message``.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[LendingErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "LendingResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: LedgerError) -> "LendingResult[T]":
        return cls(ok=False, error=LendingErrorKind.from_error(error), message=str(error))

    def unwrap(self) -> T:
        """Return the value, raising if the operation failed."""
        if not self.ok:
            raise ValueError(f"Lending operation failed: {self.message}")
        return self.value
