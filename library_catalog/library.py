import itertools
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional

from library_catalog.book import Book
from library_catalog.config import settings
from library_catalog.exceptions import (
    BookAlreadyLoanedError,
    BookNotFoundError,
    BookOnLoanError,
    DuplicateBookError,
    DuplicateError,
    InvalidArgumentError,
    InvalidDataError,
    LoanAlreadyReturnedError,
    LoanNotFoundError,
    UserAlreadyExistsError,
    UserHasActiveLoansError,
    UserNotFoundError,
)
from library_catalog.loan import Loan
from library_catalog.user import User
from library_catalog.validators import EntityValidator, ISBNValidator, TextValidator

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    """Outcome of a bulk import: how many records went in and why others did not."""

    imported: int = 0
    duplicates: int = 0
    errors: int = 0
    skipped_keys: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.imported + self.duplicates + self.errors


class Library:
    """Owns the in-memory catalogs of books, users and loans.

    This is the only stateful component: every change to book availability,
    the active-loan index and the per-user loan histories goes through it, so
    the three stay consistent. A failing call leaves all of them untouched.
    """

    def __init__(self, today: Optional[Callable[[], date]] = None) -> None:
        self._books: Dict[str, Book] = {}
        self._users: Dict[str, User] = {}
        self._loans: List[Loan] = []
        self._active_loans_by_isbn: Dict[str, Loan] = {}
        self._loans_by_user: Dict[str, List[Loan]] = {}
        self._loan_ids = itertools.count(1)
        self._today = today or date.today

    def today(self) -> date:
        return self._today()

    # ------------------------- Books ------------------------- #
    def add_book(self, book: Book) -> None:
        """Add a pre-constructed Book. Prevent duplicates by ISBN."""
        if not EntityValidator.is_valid_book(book):
            raise InvalidDataError(
                f"Invalid book data (ISBN must have at least {settings.min_isbn_length} characters; "
                "title and author are required).",
                field="isbn",
            )
        # Only a Loan may take a catalogued book out
        if not book.available:
            raise InvalidDataError(f"Book {book.isbn} must be available when added.", field="available")
        if book.isbn in self._books:
            raise DuplicateBookError(book.isbn)
        self._books[book.isbn] = book
        logger.info("Book added: %s", book.isbn)

    def find_book_by_isbn(self, isbn: str) -> Optional[Book]:
        if not TextValidator.is_not_blank(isbn):
            raise InvalidArgumentError("ISBN cannot be empty.")
        return self._books.get(ISBNValidator.normalize_isbn(isbn))

    def search_books_by_title(self, fragment: str) -> List[Book]:
        """Case-insensitive substring search on titles, in catalog order."""
        if not TextValidator.is_not_blank(fragment):
            raise InvalidArgumentError("Title fragment cannot be empty.")
        term = fragment.strip().lower()
        return [b for b in self._books.values() if term in b.title.lower()]

    def search_books_by_author(self, fragment: str) -> List[Book]:
        """Case-insensitive substring search on authors, in catalog order."""
        if not TextValidator.is_not_blank(fragment):
            raise InvalidArgumentError("Author fragment cannot be empty.")
        term = fragment.strip().lower()
        return [b for b in self._books.values() if term in b.author.lower()]

    def get_all_books(self) -> List[Book]:
        return list(self._books.values())

    def get_available_books(self) -> List[Book]:
        return [b for b in self._books.values() if b.available]

    def update_book(self, isbn: str, *, title: Optional[str] = None, author: Optional[str] = None) -> Optional[Book]:
        """Update title and/or author of a book by ISBN. Returns updated book or None if not found."""
        if title is None and author is None:
            raise InvalidArgumentError("Nothing to update. Provide title and/or author.")
        book = self.find_book_by_isbn(isbn)
        if not book:
            return None
        # Validate both before assigning either
        new_title = title if title is not None else book.title
        new_author = author if author is not None else book.author
        if not TextValidator.is_not_blank(new_title) or not TextValidator.is_not_blank(new_author):
            raise InvalidDataError("Title and author cannot be empty.")
        book.title = new_title
        book.author = new_author
        logger.info("Book updated: %s", book.isbn)
        return book

    def remove_book(self, isbn: str) -> bool:
        """Remove a book. Books on loan can never be removed."""
        book = self.find_book_by_isbn(isbn)
        if not book:
            return False
        if not book.available:
            raise BookOnLoanError(book.isbn)
        del self._books[book.isbn]
        logger.info("Book removed: %s", book.isbn)
        return True

    # ------------------------- Users ------------------------- #
    def add_user(self, user: User) -> None:
        if not EntityValidator.is_valid_user(user):
            user_id = getattr(user, "id", None)
            raise InvalidDataError(
                f"Invalid user data for '{user_id}' (ID must have at least "
                f"{settings.min_user_id_length} characters; name and a valid email are required).",
                field="id",
            )
        if user.id in self._users:
            raise UserAlreadyExistsError(user.id)
        self._users[user.id] = user
        self._loans_by_user[user.id] = []
        logger.info("User added: %s", user.id)

    def find_user_by_id(self, user_id: str) -> User:
        if not TextValidator.is_valid_user_id(user_id):
            raise InvalidDataError(f"Invalid user ID: '{user_id}'.", field="id")
        user = self._users.get(user_id.strip())
        if user is None:
            raise UserNotFoundError(user_id.strip())
        return user

    def get_all_users(self) -> List[User]:
        return list(self._users.values())

    def search_users_by_name(self, fragment: str) -> List[User]:
        if not TextValidator.is_not_blank(fragment):
            return []
        term = fragment.strip().lower()
        return [u for u in self._users.values() if term in u.name.lower()]

    def update_user(self, user_id: str, *, name: Optional[str] = None, email: Optional[str] = None) -> User:
        if name is None and email is None:
            raise InvalidArgumentError("Nothing to update. Provide name and/or email.")
        user = self.find_user_by_id(user_id)
        if name is not None and not TextValidator.is_not_blank(name):
            raise InvalidDataError("Name cannot be empty.", field="name")
        if email is not None and not TextValidator.is_valid_email(email):
            raise InvalidDataError(f"Invalid email format: {email}", field="email")
        if name is not None:
            user.name = name
        if email is not None:
            user.email = email
        logger.info("User updated: %s", user.id)
        return user

    def remove_user(self, user_id: str) -> bool:
        """Remove a user. Users holding active loans can never be removed."""
        if not TextValidator.is_not_blank(user_id):
            return False
        user_id = user_id.strip()
        if user_id not in self._users:
            return False
        active = self.get_user_active_loans(user_id)
        if active:
            raise UserHasActiveLoansError(user_id, len(active))
        del self._users[user_id]
        self._loans_by_user.pop(user_id, None)
        logger.info("User removed: %s", user_id)
        return True

    # ------------------------- Loans ------------------------- #
    def loan_book(self, user_id: str, isbn: str, loan_days: Optional[int] = None) -> Loan:
        """Loan a book to a user.

        Raises ``InvalidArgumentError`` for a bad loan period, propagates
        ``InvalidDataError``/``UserNotFoundError`` from the user lookup, raises
        ``BookNotFoundError`` for an unknown ISBN and ``BookAlreadyLoanedError``
        when the book is out. Nothing is recorded unless every check passes.
        """
        if loan_days is not None and not EntityValidator.is_valid_loan_days(loan_days):
            raise InvalidArgumentError(
                f"Invalid loan days: {loan_days}. Must be between 1 and {settings.max_loan_days}."
            )

        user = self.find_user_by_id(user_id)
        book = self.find_book_by_isbn(isbn)
        if book is None:
            raise BookNotFoundError(isbn.strip())
        if not book.available:
            raise BookAlreadyLoanedError(book.isbn, self.get_current_borrower(book.isbn))

        loan = Loan(self._next_loan_id(), user, book, loan_days=loan_days, loan_date=self.today())
        self._loans.append(loan)
        self._active_loans_by_isbn[book.isbn] = loan
        self._loans_by_user.setdefault(user.id, []).append(loan)
        logger.info("Loan %s: %s -> %s (due %s)", loan.loan_id, book.isbn, user.id, loan.due_date)
        return loan

    def return_book(self, loan_id: str) -> Loan:
        if not TextValidator.is_not_blank(loan_id):
            raise InvalidArgumentError("Loan ID cannot be empty.")
        loan = self.find_loan_by_id(loan_id.strip())
        if loan is None:
            raise LoanNotFoundError(loan_id.strip())
        if not loan.active:
            raise LoanAlreadyReturnedError(loan.loan_id)

        loan.return_book(self.today())
        self._active_loans_by_isbn.pop(loan.book.isbn, None)
        logger.info("Loan %s returned: %s", loan.loan_id, loan.book.isbn)
        return loan

    def find_loan_by_id(self, loan_id: str) -> Optional[Loan]:
        for loan in self._loans:
            if loan.loan_id == loan_id:
                return loan
        return None

    def get_current_borrower(self, isbn: str) -> Optional[str]:
        loan = self._active_loans_by_isbn.get(isbn)
        return loan.user.id if loan else None

    def get_user_loans(self, user_id: str) -> List[Loan]:
        key = (user_id or "").strip()
        if key not in self._users:
            raise UserNotFoundError(key)
        return list(self._loans_by_user.get(key, []))

    def get_user_active_loans(self, user_id: str) -> List[Loan]:
        key = (user_id or "").strip()
        return [loan for loan in self._loans_by_user.get(key, []) if loan.active]

    def get_active_loans(self) -> List[Loan]:
        return [loan for loan in self._loans if loan.active]

    def get_overdue_loans(self) -> List[Loan]:
        today = self.today()
        return [loan for loan in self._loans if loan.is_overdue(today)]

    def get_all_loans(self) -> List[Loan]:
        return list(self._loans)

    # ------------------------- Bulk import ------------------------- #
    def import_books(self, books: Iterable[Book]) -> ImportSummary:
        """Add many books, skipping (and counting) duplicates and invalid records."""
        summary = ImportSummary()
        for book in books:
            try:
                self.add_book(book)
                summary.imported += 1
            except DuplicateError:
                logger.warning("Skipping duplicate book: %s", book.isbn)
                summary.duplicates += 1
                summary.skipped_keys.append(book.isbn)
            except InvalidDataError as e:
                logger.warning("Skipping invalid book %s: %s", book.isbn, e)
                summary.errors += 1
                summary.skipped_keys.append(book.isbn)
        return summary

    def import_users(self, users: Iterable[User]) -> ImportSummary:
        """Add many users, skipping (and counting) duplicates and invalid records."""
        summary = ImportSummary()
        for user in users:
            try:
                self.add_user(user)
                summary.imported += 1
            except DuplicateError:
                logger.warning("Skipping duplicate user: %s", user.id)
                summary.duplicates += 1
                summary.skipped_keys.append(user.id)
            except InvalidDataError as e:
                logger.warning("Skipping invalid user %s: %s", user.id, e)
                summary.errors += 1
                summary.skipped_keys.append(user.id)
        return summary

    # ------------------------- Statistics ------------------------- #
    def get_system_statistics(self) -> Dict[str, Any]:
        """Get library statistics."""
        available = len(self.get_available_books())
        return {
            "total_books": len(self._books),
            "available_books": available,
            "loaned_books": len(self._books) - available,
            "total_users": len(self._users),
            "total_loans": len(self._loans),
            "active_loans": len(self.get_active_loans()),
            "overdue_loans": len(self.get_overdue_loans()),
        }

    # ------------------------- Utilities ------------------------- #
    def _next_loan_id(self) -> str:
        return f"L{next(self._loan_ids):04d}"
