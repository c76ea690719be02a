"""Manager for read-only reporting projections."""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select

from ..db.models import Book, Loan, Member
from ..db.schemas import LoanResponse, LoanStatus, MembershipType
from ..db.sqlite import Database
from ..ledger.errors import MemberNotFound
from ..lending.fines import FinePolicy
from .access import AccessPolicy, Resource, Role
from .schemas import (
    BookAvailability,
    BorrowCount,
    FineTotals,
    LateReturner,
    MemberFineTotal,
    MemberHistory,
    MemberRanking,
    MonthlyFine,
    OverdueLoan,
)


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


def _full_name(first: str, last: Optional[str]) -> str:
    return f"{first} {last}" if last else first


class ReportManager:
    """Plain read paths over the ledger's current state."""

    def __init__(
        self,
        db: Database,
        role: Role = Role.LIBRARIAN,
        policy: Optional[AccessPolicy] = None,
        fine_policy: Optional[FinePolicy] = None,
    ):
        """Initialize the report manager.

        Args:
            db: Database instance
            role: Role of the caller; checked on every read
            policy: Access policy (default grants if not provided)
            fine_policy: Policy used to price outstanding fines
        """
        self.db = db
        self.role = role
        self.policy = policy or AccessPolicy()
        self.fine_policy = fine_policy or FinePolicy.from_config()

    def _authorize(self, *resources: Resource) -> None:
        self.policy.require(self.role, *resources)

    # ========================================================================
    # Books
    # ========================================================================

    def list_books(self, available_only: bool = False) -> list[BookAvailability]:
        """List catalog titles with availability."""
        self._authorize(Resource.BOOKS)
        with self.db.get_session() as session:
            stmt = select(Book).order_by(Book.title, Book.id)
            if available_only:
                stmt = stmt.where(Book.available_copies > 0)
            return [self._availability(b) for b in session.execute(stmt).scalars()]

    def books_on_loan(self) -> list[BookAvailability]:
        """Books with at least one copy currently issued."""
        self._authorize(Resource.BOOKS)
        with self.db.get_session() as session:
            stmt = (
                select(Book)
                .where(Book.available_copies < Book.total_copies)
                .order_by(Book.id)
            )
            return [self._availability(b) for b in session.execute(stmt).scalars()]

    def most_borrowed_books(
        self,
        limit: int = 5,
        include_unborrowed: bool = False,
    ) -> list[BorrowCount]:
        """Titles ordered by how often they have been issued.

        Args:
            limit: Maximum rows
            include_unborrowed: Also list titles never issued, with count 0
        """
        self._authorize(Resource.BOOKS)
        borrow_count = func.count(Loan.id).label("borrow_count")
        stmt = select(Book.id, Book.title, borrow_count)
        if include_unborrowed:
            stmt = stmt.outerjoin(Loan, Loan.book_id == Book.id)
        else:
            stmt = stmt.join(Loan, Loan.book_id == Book.id)
        stmt = (
            stmt.group_by(Book.id, Book.title)
            .order_by(borrow_count.desc(), Book.id)
            .limit(limit)
        )

        with self.db.get_session() as session:
            return [
                BorrowCount(book_id=row.id, title=row.title, borrow_count=row.borrow_count)
                for row in session.execute(stmt)
            ]

    @staticmethod
    def _availability(book: Book) -> BookAvailability:
        return BookAvailability(
            book_id=book.id,
            title=book.title,
            author=book.author,
            category=book.category,
            total_copies=book.total_copies,
            available_copies=book.available_copies,
        )

    # ========================================================================
    # Loans
    # ========================================================================

    def overdue_loans(self, as_of: Optional[date] = None) -> list[OverdueLoan]:
        """Open loans past their due date, most overdue first.

        Args:
            as_of: Reference date (default: today)
        """
        self._authorize(Resource.LOANS, Resource.MEMBERS, Resource.BOOKS)
        as_of = as_of or date.today()

        stmt = (
            select(Loan, Member.first_name, Member.last_name, Book.title)
            .join(Member, Loan.member_id == Member.id)
            .join(Book, Loan.book_id == Book.id)
            .where(
                Loan.status.in_(LoanStatus.open_values()),
                Loan.due_date < as_of.isoformat(),
            )
            .order_by(Loan.due_date, Loan.id)
        )

        with self.db.get_session() as session:
            overdue = []
            for loan, first_name, last_name, title in session.execute(stmt):
                overdue.append(
                    OverdueLoan(
                        loan_id=loan.id,
                        member_id=loan.member_id,
                        member_name=_full_name(first_name, last_name),
                        book_id=loan.book_id,
                        book_title=title,
                        issue_date=loan.issue_date,
                        due_date=loan.due_date,
                        days_overdue=self.fine_policy.overdue_days(loan.due, as_of),
                        outstanding_fine=self.fine_policy.fine(loan.due, as_of),
                    )
                )
            return overdue

    def member_history(self, member_id: int) -> MemberHistory:
        """Every loan of a member, newest first.

        Raises:
            MemberNotFound: If the member does not exist
        """
        self._authorize(Resource.MEMBERS, Resource.LOANS)
        with self.db.get_session() as session:
            member = session.get(Member, member_id)
            if member is None:
                raise MemberNotFound(member_id)

            loans = session.execute(
                select(Loan)
                .where(Loan.member_id == member_id)
                .order_by(Loan.issue_date.desc(), Loan.id.desc())
            ).scalars()

            return MemberHistory(
                member_id=member.id,
                member_name=member.full_name,
                membership_type=MembershipType(member.membership_type),
                loans=[LoanResponse.model_validate(loan) for loan in loans],
            )

    # ========================================================================
    # Fines
    # ========================================================================

    def fine_totals(self) -> FineTotals:
        """Recorded fines per member, highest first, with the grand total."""
        self._authorize(Resource.MEMBERS, Resource.LOANS)
        total_fine = func.sum(Loan.fine_amount).label("total_fine")
        stmt = (
            select(
                Member.id,
                Member.first_name,
                Member.last_name,
                Member.membership_type,
                total_fine,
                func.count(Loan.id).label("fined_loans"),
            )
            .join(Loan, Loan.member_id == Member.id)
            .where(Loan.fine_amount > 0)
            .group_by(Member.id)
            .order_by(total_fine.desc(), Member.id)
        )

        with self.db.get_session() as session:
            members = [
                MemberFineTotal(
                    member_id=row.id,
                    member_name=_full_name(row.first_name, row.last_name),
                    membership_type=MembershipType(row.membership_type),
                    total_fine=_money(row.total_fine),
                    fined_loans=row.fined_loans,
                )
                for row in session.execute(stmt)
            ]

        grand_total = sum((m.total_fine for m in members), Decimal("0.00"))
        return FineTotals(members=members, grand_total=grand_total)

    def monthly_fines(self) -> list[MonthlyFine]:
        """Fines by return month with a running total."""
        self._authorize(Resource.LOANS)
        month = func.substr(Loan.return_date, 1, 7).label("month")
        stmt = (
            select(month, func.sum(Loan.fine_amount).label("monthly_fine"))
            .where(Loan.fine_amount > 0, Loan.return_date.isnot(None))
            .group_by(month)
            .order_by(month)
        )

        with self.db.get_session() as session:
            rows = session.execute(stmt).all()

        months = []
        running = Decimal("0.00")
        for row in rows:
            amount = _money(row.monthly_fine)
            running += amount
            months.append(
                MonthlyFine(month=row.month, monthly_fine=amount, running_total=running)
            )
        return months

    # ========================================================================
    # Members
    # ========================================================================

    def late_returners(self) -> list[LateReturner]:
        """Members who returned at least one loan after its due date."""
        self._authorize(Resource.MEMBERS, Resource.LOANS)
        late_returns = func.count(Loan.id).label("late_returns")
        stmt = (
            select(Member.id, Member.first_name, Member.last_name, late_returns)
            .join(Loan, Loan.member_id == Member.id)
            .where(Loan.return_date.isnot(None), Loan.return_date > Loan.due_date)
            .group_by(Member.id)
            .order_by(late_returns.desc(), Member.id)
        )

        with self.db.get_session() as session:
            return [
                LateReturner(
                    member_id=row.id,
                    member_name=_full_name(row.first_name, row.last_name),
                    late_returns=row.late_returns,
                )
                for row in session.execute(stmt)
            ]

    def member_rankings(self) -> list[MemberRanking]:
        """Members ranked by borrow count within their membership type.

        Ties share a rank and the next rank is skipped.
        """
        self._authorize(Resource.MEMBERS, Resource.LOANS)
        borrow_count = func.count(Loan.id)
        stmt = (
            select(
                Member.id,
                Member.first_name,
                Member.last_name,
                Member.membership_type,
                borrow_count.label("borrow_count"),
                func.rank()
                .over(
                    partition_by=Member.membership_type,
                    order_by=borrow_count.desc(),
                )
                .label("rank_within_type"),
            )
            .outerjoin(Loan, Loan.member_id == Member.id)
            .group_by(Member.id)
            .order_by(Member.membership_type, "rank_within_type", Member.id)
        )

        with self.db.get_session() as session:
            return [
                MemberRanking(
                    member_id=row.id,
                    member_name=_full_name(row.first_name, row.last_name),
                    membership_type=MembershipType(row.membership_type),
                    borrow_count=row.borrow_count,
                    rank_within_type=row.rank_within_type,
                )
                for row in session.execute(stmt)
            ]
