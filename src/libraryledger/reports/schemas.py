"""Pydantic schemas for reporting projections."""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..db.schemas import LoanResponse, MembershipType


class BookAvailability(BaseModel):
    """A catalog title and its copy counters."""

    book_id: int
    title: str
    author: Optional[str] = None
    category: Optional[str] = None
    total_copies: int
    available_copies: int

    @property
    def on_loan(self) -> int:
        return self.total_copies - self.available_copies


class OverdueLoan(BaseModel):
    """An open loan past its due date."""

    loan_id: int
    member_id: int
    member_name: str
    book_id: int
    book_title: str
    issue_date: date
    due_date: date
    days_overdue: int = Field(ge=0)
    outstanding_fine: Decimal


class BorrowCount(BaseModel):
    """How many times a title has been issued."""

    book_id: int
    title: str
    borrow_count: int


class MemberHistory(BaseModel):
    """Every loan of one member."""

    member_id: int
    member_name: str
    membership_type: MembershipType
    loans: list[LoanResponse]

    @property
    def open_loans(self) -> int:
        return sum(1 for loan in self.loans if loan.return_date is None)


class MemberFineTotal(BaseModel):
    """Recorded fines of one member."""

    member_id: int
    member_name: str
    membership_type: MembershipType
    total_fine: Decimal
    fined_loans: int


class FineTotals(BaseModel):
    """Recorded fines across members."""

    members: list[MemberFineTotal]
    grand_total: Decimal


class MonthlyFine(BaseModel):
    """Fines recorded for returns in one month."""

    month: str  # YYYY-MM
    monthly_fine: Decimal
    running_total: Decimal


class LateReturner(BaseModel):
    """A member who returned at least one loan after its due date."""

    member_id: int
    member_name: str
    late_returns: int


class MemberRanking(BaseModel):
    """Borrowing activity rank within a membership type."""

    member_id: int
    member_name: str
    membership_type: MembershipType
    borrow_count: int
    rank_within_type: int
