"""Tests for Pydantic schemas."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from libraryledger.db.schemas import (
    BookCreate,
    LoanResponse,
    LoanStatus,
    MemberCreate,
    MembershipType,
)


class TestBookCreate:
    """Tests for BookCreate schema."""

    def test_create_minimal_book(self):
        book = BookCreate(title="Dune", total_copies=2)

        assert book.id is None
        assert book.available_copies == 2

    def test_partial_availability(self):
        """Test a book may be loaded with copies already out."""
        book = BookCreate(title="Dune", total_copies=3, available_copies=1)

        assert book.available_copies == 1

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            BookCreate(title="", total_copies=1)

    def test_negative_available_rejected(self):
        with pytest.raises(ValidationError):
            BookCreate(title="Dune", total_copies=1, available_copies=-1)


class TestMemberCreate:
    """Tests for MemberCreate schema."""

    def test_defaults_to_student(self):
        member = MemberCreate(first_name="Rafi", email="rafi@example.com")

        assert member.membership_type == MembershipType.STUDENT
        assert member.last_name is None

    def test_membership_type_from_value(self):
        member = MemberCreate(first_name="N", email="n@example.com", membership_type="Faculty")

        assert member.membership_type == MembershipType.FACULTY

    def test_unknown_membership_type_rejected(self):
        with pytest.raises(ValidationError):
            MemberCreate(first_name="N", email="n@example.com", membership_type="Alumni")


class TestLoanResponse:
    """Tests for LoanResponse schema."""

    def test_parses_stored_values(self):
        loan = LoanResponse(
            id=1,
            member_id=2,
            book_id=3,
            issue_date="2025-03-01",
            due_date="2025-03-15",
            return_date="2025-03-18",
            fine_amount="15.00",
            status="Returned",
        )

        assert loan.due_date == date(2025, 3, 15)
        assert loan.fine_amount == Decimal("15.00")
        assert loan.status == LoanStatus.RETURNED


class TestLoanStatus:
    """Tests for LoanStatus enum."""

    def test_all_statuses_defined(self):
        assert {s.value for s in LoanStatus} == {"Pending", "Overdue", "Returned"}

    def test_open_values(self):
        assert LoanStatus.open_values() == ("Pending", "Overdue")
