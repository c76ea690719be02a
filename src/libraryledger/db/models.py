"""SQLAlchemy ORM models for the ledger database.

Tables:
- books: Catalog records with copy counters
- members: Library members (read-only for lending)
- loans: One row per copy issued to a member
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .schemas import LoanStatus, MembershipType


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now_iso() -> str:
    """Current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


class Book(Base):
    """Book model - a catalog title and its copy counters."""

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    author: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    publisher: Mapped[Optional[str]] = mapped_column(String(255))
    isbn: Mapped[Optional[str]] = mapped_column(String(25), unique=True)
    category: Mapped[Optional[str]] = mapped_column(String(50))
    publication_year: Mapped[Optional[int]] = mapped_column(Integer)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2))

    # Copy counters
    total_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)

    loans: Mapped[list["Loan"]] = relationship("Loan", back_populates="book")

    def __repr__(self) -> str:
        return (
            f"<Book(id={self.id}, title='{self.title}', "
            f"available={self.available_copies}/{self.total_copies})>"
        )

    @property
    def copies_on_loan(self) -> int:
        """Copies currently issued."""
        return self.total_copies - self.available_copies


class Member(Base):
    """Member model - people who borrow books."""

    __tablename__ = "members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), unique=True)
    address: Mapped[Optional[str]] = mapped_column(String(255))
    membership_date: Mapped[str] = mapped_column(
        String(10), default=lambda: date.today().isoformat()
    )  # ISO date
    membership_type: Mapped[str] = mapped_column(
        String(20), default=MembershipType.STUDENT.value, index=True
    )

    loans: Mapped[list["Loan"]] = relationship("Loan", back_populates="member")

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, name='{self.full_name}')>"

    @property
    def full_name(self) -> str:
        """First and last name joined."""
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Loan(Base):
    """Loan model - one copy of a book issued to a member."""

    __tablename__ = "loans"
    # AUTOINCREMENT keeps loan ids strictly increasing, never reused
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    member_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("members.id"), nullable=False, index=True
    )
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id"), nullable=False, index=True
    )

    # Dates
    issue_date: Mapped[str] = mapped_column(String(10), nullable=False)  # ISO date
    due_date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    return_date: Mapped[Optional[str]] = mapped_column(String(10))

    fine_amount: Mapped[Decimal] = mapped_column(
        Numeric(8, 2), nullable=False, default=Decimal("0.00")
    )
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=LoanStatus.PENDING.value, index=True
    )

    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_now_iso, onupdate=utc_now_iso
    )

    book: Mapped["Book"] = relationship("Book", back_populates="loans")
    member: Mapped["Member"] = relationship("Member", back_populates="loans")

    def __repr__(self) -> str:
        return f"<Loan(id={self.id}, book_id={self.book_id}, status={self.status})>"

    @property
    def is_open(self) -> bool:
        """Check if the loan still holds a copy."""
        return self.status in LoanStatus.open_values()

    @property
    def is_returned(self) -> bool:
        return self.status == LoanStatus.RETURNED.value

    @property
    def due(self) -> date:
        return date.fromisoformat(self.due_date)

    @property
    def returned_on(self) -> Optional[date]:
        return date.fromisoformat(self.return_date) if self.return_date else None
