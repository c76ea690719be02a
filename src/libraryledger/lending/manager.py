"""Lending service for issue and return operations."""

import logging
import time
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_config
from ..db.sqlite import Database, get_db
from ..ledger.errors import (
    AlreadyReturned,
    InvariantViolation,
    LedgerError,
    LoanNotFound,
    MemberNotFound,
    StorageFailure,
)
from ..ledger.store import LedgerStore
from .fines import FinePolicy
from .schemas import LendingResult

logger = logging.getLogger(__name__)


class LendingService:
    """Runs issue and return as all-or-nothing units over the ledger store."""

    def __init__(
        self,
        db: Optional[Database] = None,
        store: Optional[LedgerStore] = None,
        fine_policy: Optional[FinePolicy] = None,
        loan_days: Optional[int] = None,
        release_retry_max: Optional[int] = None,
        release_retry_delay: Optional[float] = None,
    ):
        """Initialize lending service.

        Args:
            db: Database instance (uses the store's, or the global one)
            store: Ledger store (created over ``db`` if not provided)
            fine_policy: Fine policy (configured unit fine if not provided)
            loan_days: Loan period in days
            release_retry_max: Attempts at releasing a copy on return
            release_retry_delay: Initial backoff between release attempts
        """
        config = get_config()
        if store is not None:
            self.db = db or store.db
            self.store = store
        else:
            self.db = db or get_db()
            self.store = LedgerStore(self.db)
        self.locks = self.store.locks
        self.fine_policy = fine_policy or FinePolicy.from_config()
        self.loan_days = loan_days if loan_days is not None else config.loan_days
        self.release_retry_max = release_retry_max or config.release_retry_max
        self.release_retry_delay = (
            release_retry_delay
            if release_retry_delay is not None
            else config.release_retry_delay
        )

    # -------------------------------------------------------------------------
    # Issue
    # -------------------------------------------------------------------------

    def issue_book(
        self,
        member_id: int,
        book_id: int,
        issue_date: Optional[date] = None,
    ) -> LendingResult[int]:
        """Issue one copy of a book to a member.

        The reservation and the loan record are written in one transaction
        under the book's lock. If creating the loan fails, the rollback
        gives the reserved copy back, so no other caller ever sees a
        decremented counter without its loan.

        Args:
            member_id: Borrowing member
            book_id: Book to issue
            issue_date: Issue date (default: today)

        Returns:
            Result holding the new loan id, or the reason it failed
        """
        issued_on = issue_date or date.today()
        due_on = issued_on + timedelta(days=self.loan_days)

        try:
            with self.locks.hold(book_id):
                with self.db.get_session() as session:
                    if self.store.get_member(member_id, session=session) is None:
                        raise MemberNotFound(member_id)
                    self.store.reserve_copy(book_id, session=session)
                    loan = self.store.create_loan(
                        member_id, book_id, issued_on, due_on, session=session
                    )
                    loan_id = loan.id
        except InvariantViolation:
            raise
        except LedgerError as e:
            logger.info("Issue of book %s to member %s refused: %s", book_id, member_id, e)
            return LendingResult.failure(e)
        except SQLAlchemyError as e:
            logger.error("Issue of book %s rolled back: %s", book_id, e)
            return LendingResult.failure(StorageFailure(f"Storage fault: {e}", cause=e))

        logger.info("Issued book %s to member %s as loan %s", book_id, member_id, loan_id)
        return LendingResult.success(loan_id)

    # -------------------------------------------------------------------------
    # Return
    # -------------------------------------------------------------------------

    def return_book(
        self,
        loan_id: int,
        return_date: Optional[date] = None,
    ) -> LendingResult[Decimal]:
        """Return a loaned copy and settle its fine.

        Marking the loan returned and releasing the copy happen in one
        transaction. A failing release is retried; if it keeps failing the
        whole return rolls back and the loan stays open.

        Args:
            loan_id: Loan to close
            return_date: Date of return (default: today)

        Returns:
            Result holding the fine charged, or the reason it failed
        """
        returned_on = return_date or date.today()

        try:
            loan = self.store.get_loan(loan_id)
            if loan is None:
                raise LoanNotFound(loan_id)

            with self.locks.hold(loan.book_id):
                with self.db.get_session() as session:
                    current = self.store.get_loan(loan_id, session=session)
                    if current.is_returned:
                        raise AlreadyReturned(loan_id)
                    fine = self.fine_policy.fine(current.due, returned_on)
                    self.store.mark_returned(loan_id, returned_on, fine, session=session)
                    self._release_with_retry(current.book_id, session)
        except InvariantViolation:
            raise
        except LedgerError as e:
            logger.info("Return of loan %s refused: %s", loan_id, e)
            return LendingResult.failure(e)
        except SQLAlchemyError as e:
            logger.error("Return of loan %s rolled back: %s", loan_id, e)
            return LendingResult.failure(StorageFailure(f"Storage fault: {e}", cause=e))

        logger.info("Loan %s returned on %s with fine %s", loan_id, returned_on, fine)
        return LendingResult.success(fine)

    def _release_with_retry(self, book_id: int, session: Session) -> bool:
        """Release a copy with exponential backoff retry.

        Releasing is capped at total copies, so repeating it is safe.
        """
        backoff = self.release_retry_delay

        for attempt in range(self.release_retry_max):
            try:
                return self.store.release_copy(book_id, session=session)
            except StorageFailure as e:
                if attempt == self.release_retry_max - 1:
                    raise
                logger.warning(
                    "Release of book %s failed (attempt %s/%s), retrying in %ss: %s",
                    book_id,
                    attempt + 1,
                    self.release_retry_max,
                    backoff,
                    e,
                )
                time.sleep(backoff)
                backoff *= 2
        return False

    # -------------------------------------------------------------------------
    # Fines and Overdue Sweep
    # -------------------------------------------------------------------------

    def compute_outstanding_fine(
        self,
        loan_id: int,
        as_of: Optional[date] = None,
    ) -> LendingResult[Decimal]:
        """Fine a loan has accrued, without changing anything.

        Open loans are priced against ``as_of`` (default: today); returned
        loans report the fine recorded at return.
        """
        try:
            loan = self.store.get_loan(loan_id)
        except StorageFailure as e:
            return LendingResult.failure(e)
        if loan is None:
            return LendingResult.failure(LoanNotFound(loan_id))

        if loan.is_returned:
            return LendingResult.success(Decimal(loan.fine_amount))
        return LendingResult.success(self.fine_policy.fine(loan.due, as_of or date.today()))

    def mark_overdue_loans(self, as_of: Optional[date] = None) -> list[int]:
        """Move every Pending loan past its due date to Overdue.

        Counters and fines are untouched; fines are settled at return.

        Args:
            as_of: Reference date (default: today)

        Returns:
            IDs of loans marked overdue
        """
        as_of = as_of or date.today()
        marked = []

        for loan in self.store.pending_past_due(as_of):
            try:
                with self.locks.hold(loan.book_id):
                    with self.db.get_session() as session:
                        self.store.mark_overdue(loan.id, session=session)
            except (AlreadyReturned, LoanNotFound):
                # Closed between the scan and the update
                continue
            marked.append(loan.id)

        if marked:
            logger.info("Marked %s loans overdue as of %s", len(marked), as_of)
        return marked
