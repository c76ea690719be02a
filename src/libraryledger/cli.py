"""Command-line interface for libraryledger.

Built with Typer for commands and Rich for output.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .db import get_db
from .db.schemas import BookCreate, MemberCreate, MembershipType
from .ledger import DuplicateMember, LedgerStore, MemberNotFound, StorageFailure
from .lending import LendingService
from .reports import AccessDenied, ReportManager, Role

# Create the main app
app = typer.Typer(
    name="libraryledger",
    help="Issue and return library books with a consistent lending ledger.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
report_app = typer.Typer(help="Read-only reports over the ledger.", no_args_is_help=True)
app.add_typer(report_app, name="report")

# Rich console for pretty output
console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO date option, exiting on bad input."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        print_error(f"Invalid date: {value} (expected YYYY-MM-DD)")
        raise typer.Exit(1)


def setup_logging(verbose: bool) -> None:
    """Route library logging through Rich."""
    level = logging.DEBUG if verbose else get_config().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Issue and return library books with a consistent lending ledger."""
    setup_logging(verbose)


# ============================================================================
# Catalog Load Commands
# ============================================================================


@app.command("add-book")
def add_book(
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    copies: int = typer.Option(1, "--copies", "-c", help="Total copies"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author"),
    isbn: Optional[str] = typer.Option(None, "--isbn", "-i", help="ISBN"),
    category: Optional[str] = typer.Option(None, "--category", help="Category"),
    year: Optional[int] = typer.Option(None, "--year", help="Publication year"),
    price: Optional[float] = typer.Option(None, "--price", help="Price per copy"),
    book_id: Optional[int] = typer.Option(None, "--id", help="Catalog id"),
) -> None:
    """Load a book into the catalog."""
    store = LedgerStore(get_db())
    try:
        data = BookCreate(
            id=book_id,
            title=title,
            author=author,
            isbn=isbn,
            category=category,
            publication_year=year,
            price=Decimal(str(price)) if price is not None else None,
            total_copies=copies,
        )
        book = store.add_book(data)
    except (ValueError, StorageFailure) as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Added book {book.id}: {book.title} ({book.total_copies} copies)")


@app.command("add-member")
def add_member(
    first_name: str = typer.Option(..., "--first-name", "-f", help="First name"),
    email: str = typer.Option(..., "--email", "-e", help="Email address"),
    last_name: Optional[str] = typer.Option(None, "--last-name", "-l", help="Last name"),
    phone: Optional[str] = typer.Option(None, "--phone", "-p", help="Phone number"),
    membership: MembershipType = typer.Option(
        MembershipType.STUDENT, "--type", help="Membership type"
    ),
    member_id: Optional[int] = typer.Option(None, "--id", help="Member id"),
) -> None:
    """Register a member."""
    store = LedgerStore(get_db())
    try:
        member = store.add_member(
            MemberCreate(
                id=member_id,
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=phone,
                membership_type=membership,
            )
        )
    except (ValueError, DuplicateMember, StorageFailure) as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Registered member {member.id}: {member.full_name}")


# ============================================================================
# Lending Commands
# ============================================================================


@app.command("issue")
def issue(
    member_id: int = typer.Argument(..., help="Borrowing member id"),
    book_id: int = typer.Argument(..., help="Book id"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Issue date (YYYY-MM-DD)"),
) -> None:
    """Issue a copy of a book to a member."""
    service = LendingService(get_db())
    result = service.issue_book(member_id, book_id, issue_date=parse_date(on))

    if not result.ok:
        print_error(result.message)
        raise typer.Exit(1)

    loan = service.store.get_loan(result.value)
    print_success(f"Issued as loan {loan.id}")
    console.print(f"[dim]Due: {loan.due_date}[/dim]")


@app.command("return")
def return_loan(
    loan_id: int = typer.Argument(..., help="Loan id to return"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Return date (YYYY-MM-DD)"),
) -> None:
    """Return a loaned copy and settle its fine."""
    service = LendingService(get_db())
    result = service.return_book(loan_id, return_date=parse_date(on))

    if not result.ok:
        print_error(result.message)
        raise typer.Exit(1)

    print_success(f"Loan {loan_id} returned")
    if result.value > 0:
        print_warning(f"Fine due: {result.value}")
    else:
        console.print("[dim]No fine[/dim]")


@app.command("fine")
def fine(
    loan_id: int = typer.Argument(..., help="Loan id"),
    as_of: Optional[str] = typer.Option(None, "--as-of", help="Reference date (YYYY-MM-DD)"),
) -> None:
    """Show the fine a loan has accrued."""
    service = LendingService(get_db())
    result = service.compute_outstanding_fine(loan_id, as_of=parse_date(as_of))

    if not result.ok:
        print_error(result.message)
        raise typer.Exit(1)

    console.print(f"Loan {loan_id} fine: [bold]{result.value}[/bold]")


@app.command("sweep")
def sweep(
    as_of: Optional[str] = typer.Option(None, "--as-of", help="Reference date (YYYY-MM-DD)"),
) -> None:
    """Mark pending loans past their due date as overdue."""
    service = LendingService(get_db())
    marked = service.mark_overdue_loans(as_of=parse_date(as_of))

    if not marked:
        console.print("[dim]No loans became overdue[/dim]")
        return
    print_success(f"Marked {len(marked)} loans overdue: {', '.join(map(str, marked))}")


@app.command("check")
def check() -> None:
    """Check copy counters against open loans."""
    store = LedgerStore(get_db())
    report = store.check_integrity()

    if report.passed:
        print_success(
            f"{report.book_count} books and {report.open_loan_count} open loans consistent"
        )
        return

    for issue in report.issues:
        console.print(str(issue))
    raise typer.Exit(1)


# ============================================================================
# Report Commands
# ============================================================================


@report_app.callback()
def report_callback(
    ctx: typer.Context,
    role: Role = typer.Option(Role.LIBRARIAN, "--role", "-r", help="Caller role"),
) -> None:
    """Read-only reports over the ledger."""
    ctx.obj = role


def _reports(ctx: typer.Context) -> ReportManager:
    return ReportManager(get_db(), role=ctx.obj or Role.LIBRARIAN)


def _run_report(ctx: typer.Context, name: str, *args, **kwargs):
    try:
        return getattr(_reports(ctx), name)(*args, **kwargs)
    except AccessDenied as e:
        print_error(str(e))
        raise typer.Exit(1)


@report_app.command("books")
def report_books(
    ctx: typer.Context,
    available: bool = typer.Option(False, "--available", "-a", help="Only available titles"),
) -> None:
    """List the catalog with availability."""
    books = _run_report(ctx, "list_books", available_only=available)
    if not books:
        console.print("[dim]No books found[/dim]")
        return

    table = Table(title="Books", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Available", justify="right")

    for book in books:
        table.add_row(
            str(book.book_id),
            book.title,
            book.author or "-",
            f"{book.available_copies}/{book.total_copies}",
        )
    console.print(table)


@report_app.command("on-loan")
def report_on_loan(ctx: typer.Context) -> None:
    """List books with copies currently issued."""
    books = _run_report(ctx, "books_on_loan")
    if not books:
        console.print("[dim]No books on loan[/dim]")
        return

    table = Table(title="Books on Loan", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("On Loan", justify="right")
    table.add_column("Available", justify="right")

    for book in books:
        table.add_row(
            str(book.book_id),
            book.title,
            str(book.on_loan),
            f"{book.available_copies}/{book.total_copies}",
        )
    console.print(table)


@report_app.command("top")
def report_top(
    ctx: typer.Context,
    limit: int = typer.Option(5, "--limit", "-n", help="Number of titles"),
    all_books: bool = typer.Option(False, "--all", help="Include never-borrowed titles"),
) -> None:
    """Show the most borrowed titles."""
    rows = _run_report(ctx, "most_borrowed_books", limit=limit, include_unborrowed=all_books)
    if not rows:
        console.print("[dim]No loans recorded[/dim]")
        return

    table = Table(title="Most Borrowed", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Loans", justify="right")

    for row in rows:
        table.add_row(str(row.book_id), row.title, str(row.borrow_count))
    console.print(table)


@report_app.command("overdue")
def report_overdue(
    ctx: typer.Context,
    as_of: Optional[str] = typer.Option(None, "--as-of", help="Reference date (YYYY-MM-DD)"),
) -> None:
    """Show open loans past their due date."""
    loans = _run_report(ctx, "overdue_loans", as_of=parse_date(as_of))
    if not loans:
        print_success("No overdue loans!")
        return

    console.print(Panel(f"[bold red]Overdue Loans: {len(loans)}[/bold red]", style="red"))

    table = Table(show_header=True, header_style="bold red")
    table.add_column("Loan", style="dim")
    table.add_column("Member")
    table.add_column("Book", style="cyan")
    table.add_column("Due Date")
    table.add_column("Days Overdue", justify="right")
    table.add_column("Fine", justify="right")

    for loan in loans:
        table.add_row(
            str(loan.loan_id),
            loan.member_name,
            loan.book_title,
            loan.due_date.isoformat(),
            f"[bold red]{loan.days_overdue}[/bold red]",
            str(loan.outstanding_fine),
        )
    console.print(table)


@report_app.command("history")
def report_history(
    ctx: typer.Context,
    member_id: int = typer.Argument(..., help="Member id"),
) -> None:
    """Show a member's loan history."""
    try:
        history = _run_report(ctx, "member_history", member_id)
    except MemberNotFound as e:
        print_error(str(e))
        raise typer.Exit(1)

    console.print(
        f"[bold]{history.member_name}[/bold] "
        f"[dim]({history.membership_type.value}, {history.open_loans} open)[/dim]"
    )
    if not history.loans:
        console.print("[dim]No loans found[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Loan", style="dim")
    table.add_column("Book")
    table.add_column("Issued")
    table.add_column("Due")
    table.add_column("Returned")
    table.add_column("Fine", justify="right")
    table.add_column("Status")

    for loan in history.loans:
        table.add_row(
            str(loan.id),
            str(loan.book_id),
            loan.issue_date.isoformat(),
            loan.due_date.isoformat(),
            loan.return_date.isoformat() if loan.return_date else "-",
            str(loan.fine_amount),
            loan.status.value,
        )
    console.print(table)


@report_app.command("fines")
def report_fines(ctx: typer.Context) -> None:
    """Show recorded fines per member."""
    totals = _run_report(ctx, "fine_totals")
    if not totals.members:
        console.print("[dim]No fines recorded[/dim]")
        return

    table = Table(title="Fines", show_header=True, header_style="bold magenta")
    table.add_column("Member")
    table.add_column("Type")
    table.add_column("Fined Loans", justify="right")
    table.add_column("Total", justify="right")

    for member in totals.members:
        table.add_row(
            member.member_name,
            member.membership_type.value,
            str(member.fined_loans),
            str(member.total_fine),
        )
    console.print(table)
    console.print(f"[bold]Grand total: {totals.grand_total}[/bold]")


@report_app.command("monthly")
def report_monthly(ctx: typer.Context) -> None:
    """Show fines by return month with a running total."""
    months = _run_report(ctx, "monthly_fines")
    if not months:
        console.print("[dim]No fines recorded[/dim]")
        return

    table = Table(title="Monthly Fines", show_header=True, header_style="bold magenta")
    table.add_column("Month")
    table.add_column("Fines", justify="right")
    table.add_column("Running Total", justify="right")

    for month in months:
        table.add_row(month.month, str(month.monthly_fine), str(month.running_total))
    console.print(table)


@report_app.command("late")
def report_late(ctx: typer.Context) -> None:
    """Show members who returned a book late."""
    members = _run_report(ctx, "late_returners")
    if not members:
        print_success("Every return was on time!")
        return

    table = Table(title="Late Returners", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Member")
    table.add_column("Late Returns", justify="right")

    for member in members:
        table.add_row(str(member.member_id), member.member_name, str(member.late_returns))
    console.print(table)


@report_app.command("rankings")
def report_rankings(ctx: typer.Context) -> None:
    """Rank members by borrowing within each membership type."""
    rankings = _run_report(ctx, "member_rankings")
    if not rankings:
        console.print("[dim]No members found[/dim]")
        return

    table = Table(title="Member Rankings", show_header=True, header_style="bold magenta")
    table.add_column("Type")
    table.add_column("Rank", justify="right")
    table.add_column("Member")
    table.add_column("Loans", justify="right")

    for row in rankings:
        table.add_row(
            row.membership_type.value,
            str(row.rank_within_type),
            row.member_name,
            str(row.borrow_count),
        )
    console.print(table)


# ============================================================================
# Utility Commands
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"libraryledger version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
