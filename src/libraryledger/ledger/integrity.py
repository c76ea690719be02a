"""Ledger integrity checking.

Recounts open loans and validates every book's copy counters against them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.models import Book, Loan
from ..db.schemas import LoanStatus


class IssueSeverity(str, Enum):
    """Severity level for integrity issues."""

    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class IntegrityIssue:
    """An integrity issue found during checking."""

    severity: IssueSeverity
    category: str
    message: str
    book_id: Optional[int] = None
    book_title: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"[{self.severity.value.upper()}]"
        book_info = f" (Book: {self.book_title})" if self.book_title else ""
        return f"{prefix} {self.category}: {self.message}{book_info}"


@dataclass
class IntegrityReport:
    """Report from integrity check."""

    checked_at: str
    book_count: int = 0
    open_loan_count: int = 0
    issues: list[IntegrityIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.issues

    @property
    def critical_count(self) -> int:
        """Count of critical issues."""
        return sum(1 for i in self.issues if i.severity == IssueSeverity.CRITICAL)

    def issues_for_book(self, book_id: int) -> list[IntegrityIssue]:
        return [i for i in self.issues if i.book_id == book_id]


class IntegrityChecker:
    """Checks copy counters against open loans."""

    def check(self, session: Session) -> IntegrityReport:
        """Run all checks in the given session.

        Args:
            session: Database session

        Returns:
            IntegrityReport listing every breach found
        """
        report = IntegrityReport(checked_at=datetime.now(timezone.utc).isoformat())

        open_counts = dict(
            session.execute(
                select(Loan.book_id, func.count(Loan.id))
                .where(Loan.status.in_(LoanStatus.open_values()))
                .group_by(Loan.book_id)
            ).all()
        )
        report.open_loan_count = sum(open_counts.values())

        books = session.execute(select(Book).order_by(Book.id)).scalars().all()
        report.book_count = len(books)

        for book in books:
            report.issues.extend(self._check_book(book, open_counts.get(book.id, 0)))

        return report

    def _check_book(self, book: Book, open_loans: int) -> list[IntegrityIssue]:
        issues = []

        if not 0 <= book.available_copies <= book.total_copies:
            issues.append(
                IntegrityIssue(
                    severity=IssueSeverity.CRITICAL,
                    category="Counter range",
                    message=(
                        f"{book.available_copies} available of "
                        f"{book.total_copies} total"
                    ),
                    book_id=book.id,
                    book_title=book.title,
                )
            )

        expected = book.total_copies - open_loans
        if book.available_copies != expected:
            issues.append(
                IntegrityIssue(
                    severity=IssueSeverity.WARNING,
                    category="Loan count mismatch",
                    message=(
                        f"{open_loans} open loans imply {expected} available, "
                        f"counter says {book.available_copies}"
                    ),
                    book_id=book.id,
                    book_title=book.title,
                )
            )

        return issues
