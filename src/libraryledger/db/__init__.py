"""Database module for local SQLite storage."""

from .models import Base, Book, Loan, Member
from .schemas import (
    BookCreate,
    BookResponse,
    LoanResponse,
    LoanStatus,
    MemberCreate,
    MemberResponse,
    MembershipType,
)
from .sqlite import Database, get_db

__all__ = [
    "Base",
    "Book",
    "Loan",
    "Member",
    "BookCreate",
    "BookResponse",
    "LoanResponse",
    "LoanStatus",
    "MemberCreate",
    "MemberResponse",
    "MembershipType",
    "Database",
    "get_db",
]
