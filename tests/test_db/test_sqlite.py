"""Tests for SQLite database operations."""

from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from libraryledger.db.models import Book, Loan, Member
from libraryledger.db.schemas import BookResponse, MemberResponse, MembershipType
from libraryledger.db.sqlite import Database, get_db, reset_db


class TestDatabaseCreation:
    """Tests for database initialization."""

    def test_database_creates_tables(self, db: Database):
        """Test that database creates all required tables."""
        with db.get_session() as session:
            # These queries should not raise
            session.execute(select(Book)).first()
            session.execute(select(Member)).first()
            session.execute(select(Loan)).first()

    def test_database_path_created(self, file_db: Database):
        """Test that database file is created."""
        assert file_db.db_path.exists()
        assert not file_db.is_memory

    def test_memory_database(self, db: Database):
        assert db.is_memory

    def test_global_database_uses_config(self, monkeypatch, tmp_path):
        """Test get_db opens the configured path once."""
        from libraryledger.config import reset_config

        monkeypatch.setenv("LEDGER_DB_PATH", str(tmp_path / "nested" / "ledger.db"))
        reset_config()
        reset_db()

        first = get_db()

        assert first is get_db()
        assert (tmp_path / "nested" / "ledger.db").exists()


class TestSessions:
    """Tests for session transaction handling."""

    def test_commit_on_success(self, db: Database):
        with db.get_session() as session:
            session.add(Book(title="Dune", total_copies=1, available_copies=1))

        with db.get_session() as session:
            assert session.execute(select(Book.title)).scalar_one() == "Dune"

    def test_rollback_on_error(self, db: Database):
        """Test nothing from a failed block is kept."""
        with pytest.raises(RuntimeError):
            with db.get_session() as session:
                session.add(Book(title="Dune", total_copies=1, available_copies=1))
                session.flush()
                raise RuntimeError("boom")

        with db.get_session() as session:
            assert session.execute(select(Book)).first() is None

    def test_foreign_keys_enforced(self, db: Database):
        """Test a loan must reference an existing book and member."""
        with pytest.raises(IntegrityError):
            with db.get_session() as session:
                session.add(
                    Loan(
                        member_id=42,
                        book_id=42,
                        issue_date="2025-03-01",
                        due_date="2025-03-15",
                    )
                )

    def test_member_email_unique(self, db: Database):
        with pytest.raises(IntegrityError):
            with db.get_session() as session:
                session.add(Member(first_name="A", email="same@example.com"))
                session.add(Member(first_name="B", email="same@example.com"))


class TestModels:
    """Tests for model helpers."""

    def test_loan_dates(self, db: Database):
        with db.get_session() as session:
            book = Book(title="Dune", total_copies=2, available_copies=1)
            member = Member(first_name="Rafi", last_name="Hasan", email="r@example.com")
            session.add_all([book, member])
            session.flush()
            loan = Loan(
                member_id=member.id,
                book_id=book.id,
                issue_date="2025-03-01",
                due_date="2025-03-15",
            )
            session.add(loan)
            session.flush()

            assert loan.status == "Pending"
            assert loan.is_open
            assert loan.due == date(2025, 3, 15)
            assert loan.returned_on is None
            assert book.copies_on_loan == 1
            assert member.full_name == "Rafi Hasan"

    def test_response_schemas_read_models(self, db: Database):
        """Test stored rows convert to response schemas."""
        with db.get_session() as session:
            book = Book(title="Dune", total_copies=2, available_copies=2)
            member = Member(first_name="Rafi", email="r@example.com", membership_date="2025-01-02")
            session.add_all([book, member])
            session.flush()

            book_out = BookResponse.model_validate(book)
            member_out = MemberResponse.model_validate(member)

        assert book_out.available_copies == 2
        assert member_out.membership_date == date(2025, 1, 2)
        assert member_out.membership_type == MembershipType.STUDENT

    def test_drop_tables(self, db: Database):
        db.drop_tables()
        db.create_tables()

        with db.get_session() as session:
            assert session.execute(select(Book)).first() is None
