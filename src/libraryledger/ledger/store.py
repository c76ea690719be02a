"""Ledger store for books, members and loans.

The store is the only code that changes a book's ``available_copies`` or a
loan's status. Every method accepts an optional session so the lending
service can compose several steps into one storage transaction; without one
the method runs in a transaction of its own.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Callable, Optional, TypeVar

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_config
from ..db.models import Book, Loan, Member
from ..db.schemas import BookCreate, LoanStatus, MemberCreate
from ..db.sqlite import Database, get_db
from .errors import (
    AlreadyReturned,
    BookNotFound,
    DuplicateMember,
    InvariantViolation,
    LedgerError,
    LoanNotFound,
    MemberNotFound,
    NoCopiesAvailable,
    StorageFailure,
)
from .integrity import IntegrityChecker, IntegrityReport
from .locks import BookLockRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LedgerStore:
    """Consistent storage of book copy counters and loan state."""

    def __init__(
        self,
        db: Optional[Database] = None,
        locks: Optional[BookLockRegistry] = None,
    ):
        """Initialize the ledger store.

        Args:
            db: Database instance (uses global if not provided)
            locks: Lock registry shared with the lending service
        """
        self.db = db or get_db()
        self.locks = locks or BookLockRegistry(
            timeout=get_config().lock_timeout, single=self.db.is_memory
        )

    def _run(self, operation: Callable[[Session], T], session: Optional[Session]) -> T:
        """Run an operation in the given session or a new transaction.

        SQLAlchemy errors surface as StorageFailure; ledger errors pass
        through unchanged.
        """
        try:
            if session is not None:
                return operation(session)
            with self.db.get_session() as s:
                return operation(s)
        except LedgerError:
            raise
        except SQLAlchemyError as e:
            logger.error("Storage fault: %s", e)
            raise StorageFailure(f"Storage fault: {e}", cause=e) from e

    @staticmethod
    def _check_counters(book: Book) -> None:
        if not 0 <= book.available_copies <= book.total_copies:
            logger.error(
                "Invariant breach on book %s: %s/%s available",
                book.id,
                book.available_copies,
                book.total_copies,
            )
            raise InvariantViolation(book.id, book.available_copies, book.total_copies)

    # -------------------------------------------------------------------------
    # Catalog Load
    # -------------------------------------------------------------------------

    def add_book(self, data: BookCreate, session: Optional[Session] = None) -> Book:
        """Load a book into the catalog.

        Args:
            data: Book data
            session: Optional shared session

        Returns:
            Created book
        """

        def _add(s: Session) -> Book:
            book = Book(
                id=data.id,
                title=data.title,
                author=data.author,
                publisher=data.publisher,
                isbn=data.isbn,
                category=data.category,
                publication_year=data.publication_year,
                price=data.price,
                total_copies=data.total_copies,
                available_copies=data.available_copies,
            )
            self._check_counters(book)
            s.add(book)
            s.flush()
            logger.info("Loaded book %s (%s copies)", book.id, book.total_copies)
            return book

        return self._run(_add, session)

    def add_member(self, data: MemberCreate, session: Optional[Session] = None) -> Member:
        """Register a member.

        Args:
            data: Member data
            session: Optional shared session

        Returns:
            Created member

        Raises:
            DuplicateMember: If the email or phone is already registered
        """

        def _add(s: Session) -> Member:
            clauses = [Member.email == data.email]
            if data.phone:
                clauses.append(Member.phone == data.phone)
            existing = s.execute(select(Member.id).where(or_(*clauses))).first()
            if existing:
                raise DuplicateMember(
                    f"Member with email {data.email} or phone {data.phone} already exists"
                )

            member = Member(
                id=data.id,
                first_name=data.first_name,
                last_name=data.last_name,
                email=data.email,
                phone=data.phone,
                address=data.address,
                membership_type=data.membership_type.value,
                membership_date=(data.membership_date or date.today()).isoformat(),
            )
            s.add(member)
            s.flush()
            return member

        return self._run(_add, session)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_book(self, book_id: int, session: Optional[Session] = None) -> Optional[Book]:
        """Get a book by ID."""
        return self._run(lambda s: s.get(Book, book_id, populate_existing=True), session)

    def get_member(
        self, member_id: int, session: Optional[Session] = None
    ) -> Optional[Member]:
        """Get a member by ID."""
        return self._run(lambda s: s.get(Member, member_id), session)

    def get_loan(self, loan_id: int, session: Optional[Session] = None) -> Optional[Loan]:
        """Get a loan by ID."""
        return self._run(lambda s: s.get(Loan, loan_id, populate_existing=True), session)

    def pending_past_due(
        self, as_of: date, session: Optional[Session] = None
    ) -> list[Loan]:
        """Get Pending loans whose due date is before ``as_of``."""

        def _get(s: Session) -> list[Loan]:
            stmt = (
                select(Loan)
                .where(
                    Loan.status == LoanStatus.PENDING.value,
                    Loan.due_date < as_of.isoformat(),
                )
                .order_by(Loan.id)
            )
            return list(s.execute(stmt).scalars().all())

        return self._run(_get, session)

    # -------------------------------------------------------------------------
    # Copy Counters
    # -------------------------------------------------------------------------

    def reserve_copy(self, book_id: int, session: Optional[Session] = None) -> Book:
        """Take one available copy of a book.

        The decrement is a conditional UPDATE so it cannot take the last
        copy twice even across processes; the book lock serializes callers
        in this process.

        Raises:
            BookNotFound: If the book does not exist
            NoCopiesAvailable: If no copy is available
        """

        def _reserve(s: Session) -> Book:
            result = s.execute(
                update(Book)
                .where(Book.id == book_id, Book.available_copies > 0)
                .values(available_copies=Book.available_copies - 1)
                .execution_options(synchronize_session=False)
            )
            book = s.get(Book, book_id, populate_existing=True)
            if book is None:
                raise BookNotFound(book_id)
            if result.rowcount == 0:
                raise NoCopiesAvailable(book_id)
            self._check_counters(book)
            logger.info(
                "Reserved copy of book %s (%s/%s left)",
                book_id,
                book.available_copies,
                book.total_copies,
            )
            return book

        with self.locks.hold(book_id):
            return self._run(_reserve, session)

    def release_copy(self, book_id: int, session: Optional[Session] = None) -> bool:
        """Put one copy of a book back.

        Capped at ``total_copies``: releasing a book whose copies are all
        available changes nothing.

        Returns:
            True if a copy was released, False if the book was already at its cap

        Raises:
            BookNotFound: If the book does not exist
        """

        def _release(s: Session) -> bool:
            result = s.execute(
                update(Book)
                .where(Book.id == book_id, Book.available_copies < Book.total_copies)
                .values(available_copies=Book.available_copies + 1)
                .execution_options(synchronize_session=False)
            )
            book = s.get(Book, book_id, populate_existing=True)
            if book is None:
                raise BookNotFound(book_id)
            self._check_counters(book)
            if result.rowcount == 0:
                logger.warning(
                    "Release of book %s ignored: all %s copies already available",
                    book_id,
                    book.total_copies,
                )
                return False
            logger.info(
                "Released copy of book %s (%s/%s available)",
                book_id,
                book.available_copies,
                book.total_copies,
            )
            return True

        with self.locks.hold(book_id):
            return self._run(_release, session)

    # -------------------------------------------------------------------------
    # Loan State
    # -------------------------------------------------------------------------

    def create_loan(
        self,
        member_id: int,
        book_id: int,
        issue_date: date,
        due_date: date,
        session: Optional[Session] = None,
    ) -> Loan:
        """Append a new Pending loan.

        Raises:
            MemberNotFound: If the member does not exist
            BookNotFound: If the book does not exist
        """

        def _create(s: Session) -> Loan:
            if s.get(Member, member_id) is None:
                raise MemberNotFound(member_id)
            if s.get(Book, book_id) is None:
                raise BookNotFound(book_id)

            loan = Loan(
                member_id=member_id,
                book_id=book_id,
                issue_date=issue_date.isoformat(),
                due_date=due_date.isoformat(),
                return_date=None,
                fine_amount=Decimal("0.00"),
                status=LoanStatus.PENDING.value,
            )
            s.add(loan)
            s.flush()
            logger.info("Created loan %s: book %s to member %s", loan.id, book_id, member_id)
            return loan

        with self.locks.hold(book_id):
            return self._run(_create, session)

    def _loan_book_id(self, loan_id: int, session: Optional[Session]) -> int:
        """Book id of a loan, read before taking the book's lock.

        Raises:
            LoanNotFound: If the loan does not exist
        """

        def _get(s: Session) -> int:
            book_id = s.execute(select(Loan.book_id).where(Loan.id == loan_id)).scalar()
            if book_id is None:
                raise LoanNotFound(loan_id)
            return book_id

        return self._run(_get, session)

    def mark_returned(
        self,
        loan_id: int,
        return_date: date,
        fine_amount: Decimal,
        session: Optional[Session] = None,
    ) -> Loan:
        """Close a loan.

        The status change is a conditional UPDATE on open loans, run under
        the book's lock for the whole transaction, so a loan is closed at
        most once.

        Raises:
            LoanNotFound: If the loan does not exist
            AlreadyReturned: If the loan is already closed
        """
        if fine_amount < 0:
            raise ValueError("fine_amount must be non-negative")

        def _mark(s: Session) -> Loan:
            result = s.execute(
                update(Loan)
                .where(Loan.id == loan_id, Loan.status.in_(LoanStatus.open_values()))
                .values(
                    status=LoanStatus.RETURNED.value,
                    return_date=return_date.isoformat(),
                    fine_amount=fine_amount,
                )
                .execution_options(synchronize_session=False)
            )
            loan = s.get(Loan, loan_id, populate_existing=True)
            if loan is None:
                raise LoanNotFound(loan_id)
            if result.rowcount == 0:
                raise AlreadyReturned(loan_id)
            logger.info("Loan %s returned on %s, fine %s", loan_id, loan.return_date, fine_amount)
            return loan

        book_id = self._loan_book_id(loan_id, session)
        with self.locks.hold(book_id):
            return self._run(_mark, session)

    def mark_overdue(self, loan_id: int, session: Optional[Session] = None) -> Loan:
        """Move a Pending loan to Overdue. Overdue loans are left as they are.

        Raises:
            LoanNotFound: If the loan does not exist
            AlreadyReturned: If the loan is already closed
        """

        def _mark(s: Session) -> Loan:
            s.execute(
                update(Loan)
                .where(Loan.id == loan_id, Loan.status == LoanStatus.PENDING.value)
                .values(status=LoanStatus.OVERDUE.value)
                .execution_options(synchronize_session=False)
            )
            loan = s.get(Loan, loan_id, populate_existing=True)
            if loan is None:
                raise LoanNotFound(loan_id)
            if loan.is_returned:
                raise AlreadyReturned(loan_id)
            return loan

        book_id = self._loan_book_id(loan_id, session)
        with self.locks.hold(book_id):
            return self._run(_mark, session)

    # -------------------------------------------------------------------------
    # Integrity
    # -------------------------------------------------------------------------

    def check_integrity(self) -> IntegrityReport:
        """Recount open loans and compare against every book's counters."""
        return self._run(lambda s: IntegrityChecker().check(s), None)
