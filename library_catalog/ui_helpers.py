import os
import json
from datetime import date
from typing import Any, Dict, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel

from library_catalog.book import Book
from library_catalog.loan import Loan, LoanStatus
from library_catalog.user import User

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

STAT_LABELS = [
    ("total_books", "Total Books"),
    ("available_books", "Available Books"),
    ("loaned_books", "Loaned Books"),
    ("total_users", "Total Users"),
    ("total_loans", "Total Loans"),
    ("active_loans", "Active Loans"),
    ("overdue_loans", "Overdue Loans"),
]

_STATUS_STYLES = {
    LoanStatus.ACTIVE: "green",
    LoanStatus.RETURNED: "dim",
    LoanStatus.OVERDUE: "bold red",
}


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_books(books: Sequence[Book], title: str = "Books", empty_message: str = "No books in library.") -> None:
    """Print a book list in the current output mode.
    - plain: 'ISBN - Title by Author [status]' lines
    - json: JSON array of book dicts
    - rich: Rich table
    """
    if not books:
        print(empty_message)
        return

    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title=f"📚 {title}", show_lines=True, header_style="bold cyan")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Available", justify="center")
        for b in books:
            table.add_row(escape(b.isbn), escape(b.title), escape(b.author),
                          "[green]yes[/]" if b.available else "[red]no[/]")
        _console.print(table)
    else:
        for b in books:
            status = "available" if b.available else "on loan"
            print(f"{b.isbn} - {b.title} by {b.author} [{status}]")


def print_users(users: Sequence[User], title: str = "Users", empty_message: str = "No users registered.") -> None:
    if not users:
        print(empty_message)
        return

    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([u.to_dict() for u in users], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title=f"👤 {title}", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Email", style="white")
        for u in users:
            table.add_row(escape(u.id), escape(u.name), escape(u.email))
        _console.print(table)
    else:
        for u in users:
            print(f"{u.id} - {u.name} <{u.email}>")


def print_loans(
    loans: Sequence[Loan],
    title: str = "Loans",
    empty_message: str = "No loans found.",
    today: Optional[date] = None,
) -> None:
    if not loans:
        print(empty_message)
        return

    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([loan.to_dict(today) for loan in loans], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title=f"🔖 {title}", show_lines=True, header_style="bold cyan")
        table.add_column("Loan", style="magenta", no_wrap=True)
        table.add_column("User", style="white")
        table.add_column("Book", style="white")
        table.add_column("Due", no_wrap=True)
        table.add_column("Status", justify="center")
        for loan in loans:
            status = loan.status(today)
            label = status.value
            if status is LoanStatus.OVERDUE:
                label = f"{label} ({loan.days_overdue(today)}d)"
            table.add_row(
                loan.loan_id,
                escape(f"{loan.user.name} ({loan.user.id})"),
                escape(f"{loan.book.title} ({loan.book.isbn})"),
                loan.due_date.isoformat(),
                f"[{_STATUS_STYLES[status]}]{label}[/]",
            )
        _console.print(table)
    else:
        for loan in loans:
            status = loan.status(today)
            extra = f", {loan.days_overdue(today)} day(s) overdue" if status is LoanStatus.OVERDUE else ""
            print(
                f"{loan.loan_id} - {loan.book.isbn} '{loan.book.title}' -> {loan.user.id} "
                f"(due {loan.due_date.isoformat()}, {status.value}{extra})"
            )


def format_stats(stats: Dict[str, Any]) -> str:
    return "\n".join(f"{label}: {stats.get(key, 0)}" for key, label in STAT_LABELS)


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics in the current output mode.
    - plain: one 'Label: value' line per metric
    - json: JSON object
    - rich: Panel with the main metrics
    """
    if not stats:
        print("No statistics available.")
        return

    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({key: stats.get(key, 0) for key, _ in STAT_LABELS}, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {stats.get(key, 0)}" for key, label in STAT_LABELS)
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        print(format_stats(stats))
