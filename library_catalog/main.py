import logging
from typing import Callable, Dict, List, Optional, Tuple

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from library_catalog import csv_io
from library_catalog.book import Book
from library_catalog.config import settings
from library_catalog.exceptions import LibraryError
from library_catalog.library import ImportSummary, Library
from library_catalog.sample_data import load_sample_data
from library_catalog.ui_helpers import (
    format_stats,
    print_books,
    print_loans,
    print_stats_result,
    print_users,
    set_output_mode,
)
from library_catalog.user import User

APP_NAME = settings.app_name

console = Console()
logger = logging.getLogger(__name__)

MenuEntry = Tuple[str, str, Callable[[], None]]


class LibraryMenu:
    """Interactive numbered menus driving one Library instance.

    Every handler reads its fields one line at a time. ``0`` always goes back
    to the parent menu; library errors are reported and control returns to the
    menu that was active.
    """

    def __init__(self, lib: Library, strict: Optional[bool] = None, out: Optional[Console] = None) -> None:
        self.lib = lib
        self.strict = strict
        self.console = out or console

    # ------------------------- Input helpers ------------------------- #
    def _ask(self, label: str) -> str:
        return Prompt.ask(label, console=self.console).strip()

    def _ask_optional(self, label: str) -> Optional[str]:
        value = self._ask(f"{label} (blank to keep)")
        return value or None

    def _error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/] {escape(message)}")

    def _success(self, message: str) -> None:
        self.console.print(f"[green]{escape(message)}[/]")

    def _read_option(self, title: str, entries: List[MenuEntry], back_label: str) -> Optional[int]:
        table = Table.grid(padding=(0, 2))
        table.add_column(justify="right", style="bold cyan", width=4)
        table.add_column(justify="left", style="white")
        for key, label, _ in entries:
            table.add_row(f"[reverse]{key}[/]", label)
        table.add_row("[reverse]0[/]", back_label)
        self.console.print(Panel(table, title=title, border_style="cyan", box=box.HEAVY, padding=(0, 2)))

        raw = self._ask("Select an option")
        if not raw:
            self.console.print("[yellow]Please enter an option.[/]")
            return None
        try:
            return int(raw)
        except ValueError:
            self.console.print(f"[yellow]Please enter a valid number (got '{escape(raw)}').[/]")
            return None

    def _run_menu(self, title: str, entries: List[MenuEntry], back_label: str = "Back") -> None:
        handlers: Dict[int, Callable[[], None]] = {int(key): handler for key, _, handler in entries}
        while True:
            option = self._read_option(title, entries, back_label)
            if option is None:
                continue
            if option == 0:
                return
            handler = handlers.get(option)
            if handler is None:
                self.console.print("[yellow]Invalid option. Please try again.[/]")
                continue
            self._dispatch(handler)

    def _dispatch(self, handler: Callable[[], None]) -> None:
        try:
            handler()
        except LibraryError as e:
            self._error(e.message)
        except EOFError:
            raise
        except Exception as e:
            logger.exception("Unexpected error in menu handler")
            self.console.print(f"[bold red]Unexpected error:[/] {escape(str(e))}")

    # ------------------------- Menus ------------------------- #
    def run(self) -> None:
        entries: List[MenuEntry] = [
            ("1", "📚 Book management", self.book_menu),
            ("2", "👤 User management", self.user_menu),
            ("3", "🔖 Loan management", self.loan_menu),
            ("4", "📊 Reports", self.reports_menu),
            ("5", "📁 File operations", self.file_menu),
        ]
        try:
            self._run_menu(APP_NAME, entries, back_label="🚪 Exit")
        except EOFError:
            pass
        self.console.print("[green]Goodbye![/]")

    def book_menu(self) -> None:
        self._run_menu("Book management", [
            ("1", "Add book", self.add_book),
            ("2", "Find book by ISBN", self.find_book),
            ("3", "Search books by title", self.search_by_title),
            ("4", "Search books by author", self.search_by_author),
            ("5", "List all books", self.list_books),
            ("6", "List available books", self.list_available_books),
            ("7", "Update book", self.update_book),
            ("8", "Remove book", self.remove_book),
        ])

    def user_menu(self) -> None:
        self._run_menu("User management", [
            ("1", "Add user", self.add_user),
            ("2", "Find user by ID", self.find_user),
            ("3", "Search users by name", self.search_users),
            ("4", "List all users", self.list_users),
            ("5", "Update user", self.update_user),
            ("6", "Remove user", self.remove_user),
        ])

    def loan_menu(self) -> None:
        self._run_menu("Loan management", [
            ("1", "Loan book", self.loan_book),
            ("2", "Return book", self.return_book),
            ("3", "View user loans", self.user_loans),
            ("4", "View user active loans", self.user_active_loans),
            ("5", "View active loans", self.active_loans),
            ("6", "View overdue loans", self.overdue_loans),
            ("7", "View all loans", self.all_loans),
        ])

    def reports_menu(self) -> None:
        self._run_menu("Reports", [
            ("1", "Show statistics", self.show_statistics),
            ("2", "Export statistics report", self.export_report),
        ])

    def file_menu(self) -> None:
        self._run_menu("File operations", [
            ("1", "Load books from CSV", self.load_books),
            ("2", "Load users from CSV", self.load_users),
            ("3", "Export books to CSV", self.export_books),
            ("4", "Export users to CSV", self.export_users),
            ("5", "Export loans to CSV", self.export_loans),
        ])

    # ------------------------- Books ------------------------- #
    def add_book(self) -> None:
        isbn = self._ask("ISBN")
        title = self._ask("Title")
        author = self._ask("Author")
        book = Book(isbn, title, author)
        self.lib.add_book(book)
        self._success(f"Book added: {book.title} by {book.author} (ISBN: {book.isbn})")

    def find_book(self) -> None:
        isbn = self._ask("ISBN")
        book = self.lib.find_book_by_isbn(isbn)
        if book is None:
            self.console.print(f"[yellow]Book with ISBN {escape(isbn)} not found.[/]")
            return
        borrower = self.lib.get_current_borrower(book.isbn)
        status = f"on loan to {borrower}" if borrower else "available"
        self.console.print(Panel.fit(
            f"[bold]Title:[/] {escape(book.title)}\n"
            f"[bold]Author:[/] {escape(book.author)}\n"
            f"[bold]ISBN:[/] {escape(book.isbn)}\n"
            f"[bold]Status:[/] {escape(status)}",
            title="Book found",
            border_style="green",
        ))

    def search_by_title(self) -> None:
        fragment = self._ask("Title (partial)")
        print_books(self.lib.search_books_by_title(fragment), title=f"Title contains '{fragment}'",
                    empty_message=f"No books with title containing '{fragment}'.")

    def search_by_author(self) -> None:
        fragment = self._ask("Author (partial)")
        print_books(self.lib.search_books_by_author(fragment), title=f"Author contains '{fragment}'",
                    empty_message=f"No books with author containing '{fragment}'.")

    def list_books(self) -> None:
        print_books(self.lib.get_all_books(), title="Catalog")

    def list_available_books(self) -> None:
        print_books(self.lib.get_available_books(), title="Available books",
                    empty_message="No books available.")

    def update_book(self) -> None:
        isbn = self._ask("ISBN")
        title = self._ask_optional("New title")
        author = self._ask_optional("New author")
        book = self.lib.update_book(isbn, title=title, author=author)
        if book is None:
            self.console.print(f"[yellow]Book with ISBN {escape(isbn)} not found.[/]")
            return
        self._success(f"Book updated: {book.title} by {book.author}")

    def remove_book(self) -> None:
        isbn = self._ask("ISBN of the book to remove")
        book = self.lib.find_book_by_isbn(isbn)
        if book is None:
            self.console.print(f"[yellow]Book with ISBN {escape(isbn)} not found.[/]")
            return
        if not Confirm.ask(f"Remove '{escape(book.title)}'?", default=False, console=self.console):
            self.console.print("[blue]Removal cancelled.[/]")
            return
        if self.lib.remove_book(isbn):
            self._success(f"Book with ISBN {book.isbn} has been removed.")

    # ------------------------- Users ------------------------- #
    def add_user(self) -> None:
        user_id = self._ask("User ID")
        name = self._ask("Name")
        email = self._ask("Email")
        user = User(user_id, name, email)
        self.lib.add_user(user)
        self._success(f"User added: {user.name} (ID: {user.id})")

    def find_user(self) -> None:
        user = self.lib.find_user_by_id(self._ask("User ID"))
        active = len(self.lib.get_user_active_loans(user.id))
        self.console.print(Panel.fit(
            f"[bold]ID:[/] {escape(user.id)}\n"
            f"[bold]Name:[/] {escape(user.name)}\n"
            f"[bold]Email:[/] {escape(user.email)}\n"
            f"[bold]Active loans:[/] {active}",
            title="User found",
            border_style="green",
        ))

    def search_users(self) -> None:
        fragment = self._ask("Name (partial)")
        print_users(self.lib.search_users_by_name(fragment),
                    empty_message=f"No users with name containing '{fragment}'.")

    def list_users(self) -> None:
        print_users(self.lib.get_all_users())

    def update_user(self) -> None:
        user_id = self._ask("User ID")
        name = self._ask_optional("New name")
        email = self._ask_optional("New email")
        user = self.lib.update_user(user_id, name=name, email=email)
        self._success(f"User updated: {user.name} <{user.email}>")

    def remove_user(self) -> None:
        user_id = self._ask("User ID of the user to remove")
        if not Confirm.ask(f"Remove user '{escape(user_id)}'?", default=False, console=self.console):
            self.console.print("[blue]Removal cancelled.[/]")
            return
        if self.lib.remove_user(user_id):
            self._success(f"User {user_id} has been removed.")
        else:
            self.console.print(f"[yellow]User with ID {escape(user_id)} not found.[/]")

    # ------------------------- Loans ------------------------- #
    def loan_book(self) -> None:
        user_id = self._ask("User ID")
        isbn = self._ask("Book ISBN")
        raw_days = self._ask(f"Loan days (blank for {settings.default_loan_days})")
        loan_days: Optional[int] = None
        if raw_days:
            try:
                loan_days = int(raw_days)
            except ValueError:
                self._error(f"Invalid loan days: '{raw_days}'.")
                return
        loan = self.lib.loan_book(user_id, isbn, loan_days)
        self._success(
            f"Loan {loan.loan_id} created: '{loan.book.title}' to {loan.user.name}, "
            f"due {loan.due_date.strftime(settings.date_format)}"
        )

    def return_book(self) -> None:
        loan = self.lib.return_book(self._ask("Loan ID"))
        self._success(f"Loan {loan.loan_id} returned: '{loan.book.title}' is available again.")

    def user_loans(self) -> None:
        user_id = self._ask("User ID")
        print_loans(self.lib.get_user_loans(user_id), title=f"Loans of {user_id}",
                    empty_message=f"No loans found for user {user_id}.", today=self.lib.today())

    def user_active_loans(self) -> None:
        user_id = self._ask("User ID")
        print_loans(self.lib.get_user_active_loans(user_id), title=f"Active loans of {user_id}",
                    empty_message=f"No active loans for user {user_id}.", today=self.lib.today())

    def active_loans(self) -> None:
        print_loans(self.lib.get_active_loans(), title="Active loans",
                    empty_message="No active loans.", today=self.lib.today())

    def overdue_loans(self) -> None:
        print_loans(self.lib.get_overdue_loans(), title="Overdue loans",
                    empty_message="No overdue loans.", today=self.lib.today())

    def all_loans(self) -> None:
        print_loans(self.lib.get_all_loans(), title="All loans", today=self.lib.today())

    # ------------------------- Reports ------------------------- #
    def show_statistics(self) -> None:
        print_stats_result(self.lib.get_system_statistics())

    def export_report(self) -> None:
        path = self._ask("Output file name")
        report = f"{APP_NAME} report ({self.lib.today().strftime(settings.date_format)})\n"
        report += format_stats(self.lib.get_system_statistics())
        csv_io.write_report(report, path)
        self._success(f"Report written to {path}")

    # ------------------------- Files ------------------------- #
    def load_books(self) -> None:
        path = self._ask("CSV file name")
        result = csv_io.read_books(path, strict=self.strict)
        summary = self.lib.import_books(result.records)
        self._report_import("book", path, summary, len(result.errors))

    def load_users(self) -> None:
        path = self._ask("CSV file name")
        result = csv_io.read_users(path, strict=self.strict)
        summary = self.lib.import_users(result.records)
        self._report_import("user", path, summary, len(result.errors))

    def export_books(self) -> None:
        path = self._ask("Output file name")
        count = csv_io.write_books(self.lib.get_all_books(), path)
        self._success(f"{count} book(s) exported to {path}")

    def export_users(self) -> None:
        path = self._ask("Output file name")
        count = csv_io.write_users(self.lib.get_all_users(), path)
        self._success(f"{count} user(s) exported to {path}")

    def export_loans(self) -> None:
        path = self._ask("Output file name")
        extended = Confirm.ask("Extended format (names, due date, status)?", default=False, console=self.console)
        count = csv_io.write_loans(self.lib.get_all_loans(), path, extended=extended, today=self.lib.today())
        self._success(f"{count} loan(s) exported to {path}")

    def _report_import(self, kind: str, path: str, summary: ImportSummary, malformed: int) -> None:
        self._success(f"{summary.imported} {kind}(s) imported from {path}")
        if summary.duplicates or summary.errors or malformed:
            self.console.print(
                f"[yellow]Skipped: {summary.duplicates} duplicate(s), {summary.errors} invalid, "
                f"{malformed} malformed line(s)[/]"
            )


def bootstrap(
    books_file: Optional[str] = None,
    users_file: Optional[str] = None,
    samples: bool = True,
    strict: Optional[bool] = None,
) -> Library:
    """Build the Library for one session: sample data first, then any CSV files."""
    lib = Library()
    if samples:
        load_sample_data(lib)
    for path, reader, importer in (
        (books_file, csv_io.read_books, lib.import_books),
        (users_file, csv_io.read_users, lib.import_users),
    ):
        if not path:
            continue
        try:
            result = reader(path, strict=strict)
        except LibraryError as e:
            console.print(f"[bold red]Could not load {escape(path)}:[/] {escape(e.message)}")
            continue
        summary = importer(result.records)
        console.print(
            f"[dim]Loaded {summary.imported} record(s) from {escape(path)} "
            f"({summary.duplicates} duplicate(s), {summary.errors + len(result.errors)} rejected)[/]"
        )
    return lib


# --- Typer CLI application ---
app = typer.Typer(help="Library catalog: books, users and loans in an interactive console.")


@app.command()
def run(
    books: Optional[str] = typer.Option(None, "--books", "-b", help="CSV file of books to load at start-up"),
    users: Optional[str] = typer.Option(None, "--users", "-u", help="CSV file of users to load at start-up"),
    no_samples: bool = typer.Option(False, "--no-samples", help="Start with an empty catalog"),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output format for listings: plain | json | rich (default: plain)"
    ),
    strict: Optional[bool] = typer.Option(
        None, "--strict/--lenient", help="Abort a CSV load on the first bad line, or skip bad lines"
    ),
):
    """Start the interactive library menu."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    if output:
        set_output_mode(output)

    console.print(f"[bold cyan]=== {escape(APP_NAME)} ===[/]")
    lib = bootstrap(books, users, samples=settings.load_samples and not no_samples, strict=strict)
    LibraryMenu(lib, strict=strict).run()


if __name__ == "__main__":
    app()
