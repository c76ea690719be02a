"""Pydantic schemas for data validation.

These schemas define the tabular records the ledger exposes for books,
members and loans, plus the input shapes used at catalog load.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class LoanStatus(str, Enum):
    """Lifecycle status of a loan."""

    PENDING = "Pending"
    OVERDUE = "Overdue"
    RETURNED = "Returned"

    @classmethod
    def open_values(cls) -> tuple[str, str]:
        """Status values of loans still holding a copy."""
        return (cls.PENDING.value, cls.OVERDUE.value)


class MembershipType(str, Enum):
    """Membership category. Carried for reporting only."""

    STUDENT = "Student"
    FACULTY = "Faculty"
    STAFF = "Staff"
    PUBLIC = "Public"


# ============================================================================
# Book Schemas
# ============================================================================


class BookBase(BaseModel):
    """Base book fields common to create/response."""

    title: str = Field(..., min_length=1, max_length=255, description="Book title")
    author: Optional[str] = Field(None, max_length=255)
    publisher: Optional[str] = Field(None, max_length=255)
    isbn: Optional[str] = Field(None, max_length=25)
    category: Optional[str] = Field(None, max_length=50)
    publication_year: Optional[int] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=6, decimal_places=2)
    total_copies: int = Field(..., ge=0)


class BookCreate(BookBase):
    """Schema for loading a book into the catalog.

    ``available_copies`` defaults to ``total_copies``.
    """

    id: Optional[int] = Field(None, ge=1, description="Catalog id; assigned if omitted")
    available_copies: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def available_within_total(self) -> "BookCreate":
        """Validate available copies never exceed total copies."""
        if self.available_copies is None:
            self.available_copies = self.total_copies
        elif self.available_copies > self.total_copies:
            raise ValueError("available_copies must not exceed total_copies")
        return self


class BookResponse(BookBase):
    """Schema for book responses."""

    id: int
    available_copies: int

    model_config = {"from_attributes": True}


# ============================================================================
# Member Schemas
# ============================================================================


class MemberBase(BaseModel):
    """Base member fields."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: str = Field(..., min_length=3, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    membership_type: MembershipType = MembershipType.STUDENT


class MemberCreate(MemberBase):
    """Schema for registering a member."""

    id: Optional[int] = Field(None, ge=1)
    membership_date: Optional[date] = None


class MemberResponse(MemberBase):
    """Schema for member responses."""

    id: int
    membership_date: date

    model_config = {"from_attributes": True}


# ============================================================================
# Loan Schemas
# ============================================================================


class LoanResponse(BaseModel):
    """Schema for loan responses."""

    id: int
    member_id: int
    book_id: int
    issue_date: date
    due_date: date
    return_date: Optional[date] = None
    fine_amount: Decimal = Decimal("0.00")
    status: LoanStatus

    model_config = {"from_attributes": True}
