"""Tests for the CLI interface."""

import pytest
from typer.testing import CliRunner

from libraryledger.cli import app
from libraryledger.config import reset_config
from libraryledger.db.sqlite import reset_db


@pytest.fixture(autouse=True)
def setup_test_db(temp_db_path, monkeypatch):
    """Point the CLI at a fresh database file for each test."""
    monkeypatch.setenv("LEDGER_DB_PATH", str(temp_db_path))
    reset_db()
    reset_config()
    yield
    reset_db()
    reset_config()


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def stocked(runner: CliRunner):
    """One two-copy book and one member."""
    runner.invoke(app, ["add-book", "--title", "Dune", "--copies", "2"])
    runner.invoke(
        app,
        ["add-member", "--first-name", "Rafi", "--last-name", "Hasan", "--email", "rafi@example.com"],
    )


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner: CliRunner):
        """Test that help command works."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "lending ledger" in result.stdout

    def test_version(self, runner: CliRunner):
        """Test version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.stdout


class TestCatalogCommands:
    """Tests for add-book and add-member."""

    def test_add_book(self, runner: CliRunner):
        result = runner.invoke(
            app, ["add-book", "--title", "Dune", "--copies", "3", "--author", "Frank Herbert"]
        )
        assert result.exit_code == 0
        assert "Added book 1" in result.stdout
        assert "3 copies" in result.stdout

    def test_add_book_with_price(self, runner: CliRunner):
        result = runner.invoke(
            app, ["add-book", "--title", "Dune", "--year", "1965", "--price", "12.50"]
        )
        assert result.exit_code == 0
        assert "Added book 1" in result.stdout

    def test_add_book_negative_copies(self, runner: CliRunner):
        result = runner.invoke(app, ["add-book", "--title", "Dune", "--copies=-1"])
        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_add_member(self, runner: CliRunner):
        result = runner.invoke(
            app, ["add-member", "--first-name", "Nadia", "--email", "nadia@example.com", "--type", "Faculty"]
        )
        assert result.exit_code == 0
        assert "Registered member 1: Nadia" in result.stdout

    def test_add_member_duplicate(self, runner: CliRunner, stocked):
        result = runner.invoke(
            app, ["add-member", "--first-name", "Other", "--email", "rafi@example.com"]
        )
        assert result.exit_code == 1
        assert "already exists" in result.stdout


class TestLendingCommands:
    """Tests for issue, return, fine and sweep."""

    def test_issue(self, runner: CliRunner, stocked):
        result = runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])
        assert result.exit_code == 0
        assert "Issued as loan 1" in result.stdout
        assert "2025-03-15" in result.stdout

    def test_issue_unknown_book(self, runner: CliRunner, stocked):
        result = runner.invoke(app, ["issue", "1", "99"])
        assert result.exit_code == 1
        assert "Book 99 not found" in result.stdout

    def test_issue_no_copies(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1"])
        runner.invoke(app, ["issue", "1", "1"])

        result = runner.invoke(app, ["issue", "1", "1"])
        assert result.exit_code == 1
        assert "No copies" in result.stdout

    def test_issue_bad_date(self, runner: CliRunner, stocked):
        result = runner.invoke(app, ["issue", "1", "1", "--date", "03/01/2025"])
        assert result.exit_code == 1
        assert "Invalid date" in result.stdout

    def test_return_late(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])

        result = runner.invoke(app, ["return", "1", "--date", "2025-03-18"])
        assert result.exit_code == 0
        assert "Loan 1 returned" in result.stdout
        assert "Fine due: 15.00" in result.stdout

    def test_return_on_time(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])

        result = runner.invoke(app, ["return", "1", "--date", "2025-03-10"])
        assert result.exit_code == 0
        assert "No fine" in result.stdout

    def test_return_twice(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])
        runner.invoke(app, ["return", "1", "--date", "2025-03-10"])

        result = runner.invoke(app, ["return", "1"])
        assert result.exit_code == 1
        assert "already returned" in result.stdout

    def test_fine(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])

        result = runner.invoke(app, ["fine", "1", "--as-of", "2025-03-19"])
        assert result.exit_code == 0
        assert "20.00" in result.stdout

    def test_sweep(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])

        result = runner.invoke(app, ["sweep", "--as-of", "2025-03-20"])
        assert result.exit_code == 0
        assert "Marked 1 loans overdue" in result.stdout

        result = runner.invoke(app, ["sweep", "--as-of", "2025-03-20"])
        assert "No loans became overdue" in result.stdout

    def test_check(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1"])

        result = runner.invoke(app, ["check"])
        assert result.exit_code == 0
        assert "consistent" in result.stdout


class TestReportCommands:
    """Tests for the report sub-commands."""

    def test_books(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1"])

        result = runner.invoke(app, ["report", "books"])
        assert result.exit_code == 0
        assert "Dune" in result.stdout
        assert "1/2" in result.stdout

    def test_books_as_student(self, runner: CliRunner, stocked):
        result = runner.invoke(app, ["report", "--role", "student", "books"])
        assert result.exit_code == 0
        assert "Dune" in result.stdout

    def test_overdue_as_student_denied(self, runner: CliRunner, stocked):
        result = runner.invoke(app, ["report", "--role", "student", "overdue"])
        assert result.exit_code == 1
        assert "may not read" in result.stdout

    def test_overdue(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])

        result = runner.invoke(app, ["report", "overdue", "--as-of", "2025-03-20"])
        assert result.exit_code == 0
        assert "Overdue Loans: 1" in result.stdout

    def test_no_overdue(self, runner: CliRunner, stocked):
        result = runner.invoke(app, ["report", "overdue"])
        assert result.exit_code == 0
        assert "No overdue loans" in result.stdout

    def test_history(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])

        result = runner.invoke(app, ["report", "history", "1"])
        assert result.exit_code == 0
        assert "Rafi Hasan" in result.stdout
        assert "1 open" in result.stdout

    def test_history_unknown_member(self, runner: CliRunner, stocked):
        result = runner.invoke(app, ["report", "history", "42"])
        assert result.exit_code == 1
        assert "Member 42 not found" in result.stdout

    def test_fines(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])
        runner.invoke(app, ["return", "1", "--date", "2025-03-18"])

        result = runner.invoke(app, ["report", "fines"])
        assert result.exit_code == 0
        assert "Grand total: 15.00" in result.stdout

    def test_monthly(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1", "--date", "2025-03-01"])
        runner.invoke(app, ["return", "1", "--date", "2025-03-18"])

        result = runner.invoke(app, ["report", "monthly"])
        assert result.exit_code == 0
        assert "2025-03" in result.stdout

    def test_top_and_rankings(self, runner: CliRunner, stocked):
        runner.invoke(app, ["issue", "1", "1"])

        result = runner.invoke(app, ["report", "top"])
        assert result.exit_code == 0
        assert "Dune" in result.stdout

        result = runner.invoke(app, ["report", "rankings"])
        assert result.exit_code == 0
        assert "Rafi Hasan" in result.stdout
