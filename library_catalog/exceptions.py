"""Error taxonomy for the library catalog.

Every error raised by the service, the entities and the CSV layer derives from
:class:`LibraryError`, so the console can catch one base class while callers
that care about the kind branch on the concrete class.
"""

from __future__ import annotations

from typing import Optional


class LibraryError(Exception):
    """Base exception for library catalog errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ------------------------- Input errors ------------------------- #
class InvalidArgumentError(LibraryError, ValueError):
    """Malformed or missing required input (empty ISBN, bad loan-day count...)."""


class InvalidDataError(LibraryError, ValueError):
    """An entity failed validation."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message)


# ------------------------- Duplicates ------------------------- #
class DuplicateError(LibraryError):
    """An entity with the same natural key is already in the catalog."""

    def __init__(self, key: str, message: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message or f"An entry with key '{key}' already exists.")


class DuplicateBookError(DuplicateError):
    def __init__(self, isbn: str) -> None:
        super().__init__(isbn, f"Book with ISBN {isbn} already exists.")


class UserAlreadyExistsError(DuplicateError):
    def __init__(self, user_id: str) -> None:
        super().__init__(user_id, f"User with ID {user_id} already exists.")


# ------------------------- Lookups ------------------------- #
class NotFoundError(LibraryError, LookupError):
    """Lookup by natural key failed."""

    def __init__(self, key: str, message: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message or f"No entry found for key '{key}'.")


class BookNotFoundError(NotFoundError):
    def __init__(self, isbn: str) -> None:
        super().__init__(isbn, f"Book with ISBN {isbn} not found.")


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(user_id, f"User with ID {user_id} not found.")


class LoanNotFoundError(InvalidArgumentError, NotFoundError):
    def __init__(self, loan_id: str) -> None:
        NotFoundError.__init__(self, loan_id, f"Loan with ID {loan_id} not found.")


# ------------------------- State conflicts ------------------------- #
class ConflictError(LibraryError):
    """The operation is denied by the current state of an entity."""


class BookAlreadyLoanedError(ConflictError):
    def __init__(self, isbn: str, current_borrower_id: Optional[str] = None) -> None:
        self.isbn = isbn
        self.current_borrower_id = current_borrower_id
        if current_borrower_id:
            message = f"Book with ISBN {isbn} is already loaned to user {current_borrower_id}."
        else:
            message = f"Book with ISBN {isbn} is already loaned."
        super().__init__(message)


class BookOnLoanError(ConflictError):
    def __init__(self, isbn: str) -> None:
        self.isbn = isbn
        super().__init__(f"Book with ISBN {isbn} is on loan and cannot be removed.")


class UserHasActiveLoansError(ConflictError):
    def __init__(self, user_id: str, active_loans: int) -> None:
        self.user_id = user_id
        self.active_loans = active_loans
        super().__init__(f"User {user_id} has {active_loans} active loan(s) and cannot be removed.")


class LoanAlreadyReturnedError(InvalidArgumentError, ConflictError):
    def __init__(self, loan_id: str) -> None:
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} has already been returned.")


# ------------------------- CSV / file errors ------------------------- #
class CsvFileError(LibraryError, OSError):
    """A CSV file could not be read or written."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class CsvFormatError(LibraryError, ValueError):
    """A CSV row has the wrong shape or fails entity validation."""

    def __init__(self, line_number: int, message: str, path: Optional[str] = None) -> None:
        self.line_number = line_number
        self.path = path
        where = f"{path}:{line_number}" if path else f"line {line_number}"
        super().__init__(f"Invalid CSV record at {where}: {message}")
