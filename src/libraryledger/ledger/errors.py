"""Ledger-specific errors."""

from typing import Optional


class LedgerError(Exception):
    """Base class for all ledger errors."""

    pass


class NotFound(LedgerError):
    """A referenced book, member or loan does not exist."""

    entity = "record"

    def __init__(self, entity_id: int):
        self.entity_id = entity_id
        super().__init__(f"{self.entity.capitalize()} {entity_id} not found")


class BookNotFound(NotFound):
    entity = "book"


class MemberNotFound(NotFound):
    entity = "member"


class LoanNotFound(NotFound):
    entity = "loan"


class NoCopiesAvailable(LedgerError):
    """Issue attempted while no copy of the book is available."""

    def __init__(self, book_id: int):
        self.book_id = book_id
        super().__init__(f"No copies of book {book_id} available")


class AlreadyReturned(LedgerError):
    """Return attempted on a loan that is already closed."""

    def __init__(self, loan_id: int):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} is already returned")


class DuplicateMember(LedgerError):
    """A member with the same email or phone is already registered."""

    pass


class InvariantViolation(LedgerError):
    """Copy counters would leave the range 0..total_copies.

    Never expected in correct operation. The operation that triggered it is
    aborted and its transaction rolled back.
    """

    def __init__(self, book_id: int, available: int, total: int):
        self.book_id = book_id
        self.available = available
        self.total = total
        super().__init__(
            f"Book {book_id} would have {available} of {total} copies available"
        )


class StorageFailure(LedgerError):
    """Underlying storage fault during a ledger operation."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
