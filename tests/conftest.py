"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the lending ledger, including
in-memory and file-backed databases and a small seeded catalog.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from libraryledger.config import reset_config
from libraryledger.db.models import Book, Member
from libraryledger.db.schemas import BookCreate, MemberCreate, MembershipType
from libraryledger.db.sqlite import Database, reset_db
from libraryledger.ledger.store import LedgerStore
from libraryledger.lending.fines import FinePolicy
from libraryledger.lending.manager import LendingService

LEDGER_ENV_VARS = (
    "LEDGER_DB_PATH",
    "LEDGER_DB_TIMEOUT",
    "LEDGER_LOAN_DAYS",
    "LEDGER_FINE_PER_DAY",
    "LEDGER_LOCK_TIMEOUT",
    "LEDGER_RELEASE_RETRY_MAX",
    "LEDGER_RELEASE_RETRY_DELAY",
    "LEDGER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Start every test from default configuration."""
    for var in LEDGER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reset_config()
    reset_db()
    yield
    reset_db()
    reset_config()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def file_db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a file-backed database, needed when threads open sessions."""
    database = Database(str(temp_db_path))
    database.create_tables()
    yield database
    database.dispose()


@pytest.fixture
def store(db: Database) -> LedgerStore:
    """Create a LedgerStore with test database."""
    return LedgerStore(db)


@pytest.fixture
def service(store: LedgerStore) -> LendingService:
    """Create a LendingService sharing the store's locks."""
    return LendingService(
        store=store,
        fine_policy=FinePolicy(),
        loan_days=14,
        release_retry_max=3,
        release_retry_delay=0,
    )


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_book(store: LedgerStore) -> Book:
    """A title with five copies, all available."""
    return store.add_book(
        BookCreate(
            title="The Silent Patient",
            author="Alex Michaelides",
            category="Mystery",
            isbn="9781250301697",
            total_copies=5,
        )
    )


@pytest.fixture
def single_copy_book(store: LedgerStore) -> Book:
    """A title with exactly one copy."""
    return store.add_book(BookCreate(title="Rare Folio", author="Anon", total_copies=1))


@pytest.fixture
def sample_member(store: LedgerStore) -> Member:
    """A student member."""
    return store.add_member(
        MemberCreate(
            first_name="Rafi",
            last_name="Hasan",
            email="rafi@example.com",
            phone="01234567906",
            membership_type=MembershipType.STUDENT,
        )
    )


@pytest.fixture
def other_member(store: LedgerStore) -> Member:
    """A faculty member."""
    return store.add_member(
        MemberCreate(
            first_name="Nadia",
            last_name="Karim",
            email="nadia@example.com",
            membership_type=MembershipType.FACULTY,
        )
    )


# ============================================================================
# CLI Testing Fixtures
# ============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
