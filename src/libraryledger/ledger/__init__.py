"""Ledger store module.

Provides:
- Atomic reserve/release of book copies
- Loan creation and closing
- Per-book write serialization
- Counter integrity checks
"""

from .errors import (
    AlreadyReturned,
    BookNotFound,
    DuplicateMember,
    InvariantViolation,
    LedgerError,
    LoanNotFound,
    MemberNotFound,
    NoCopiesAvailable,
    NotFound,
    StorageFailure,
)
from .integrity import IntegrityChecker, IntegrityIssue, IntegrityReport, IssueSeverity
from .locks import BookLockRegistry
from .store import LedgerStore

__all__ = [
    "LedgerStore",
    "BookLockRegistry",
    "IntegrityChecker",
    "IntegrityIssue",
    "IntegrityReport",
    "IssueSeverity",
    "LedgerError",
    "NotFound",
    "BookNotFound",
    "MemberNotFound",
    "LoanNotFound",
    "NoCopiesAvailable",
    "AlreadyReturned",
    "DuplicateMember",
    "InvariantViolation",
    "StorageFailure",
]
