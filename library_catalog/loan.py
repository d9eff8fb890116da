from __future__ import annotations

from datetime import date, timedelta
from enum import Enum
from typing import Optional

from library_catalog.book import Book
from library_catalog.config import settings
from library_catalog.exceptions import InvalidArgumentError, LoanAlreadyReturnedError
from library_catalog.user import User
from library_catalog.validators import EntityValidator


class LoanStatus(Enum):
    ACTIVE = "active"
    RETURNED = "returned"
    OVERDUE = "overdue"


class Loan:
    """Join record between a User and a Book.

    Creating a loan marks the book as unavailable; returning it (exactly once)
    records the return date and makes the book available again. Overdue is a
    derived, read-only state of an active loan whose due date has passed.

    Dates are plain ``datetime.date`` values. Every date-dependent method takes
    an optional ``today`` so callers (and tests) can evaluate the loan at any
    point in time.
    """

    def __init__(
        self,
        loan_id: str,
        user: User,
        book: Book,
        loan_days: Optional[int] = None,
        loan_date: Optional[date] = None,
    ) -> None:
        if not loan_id or not loan_id.strip():
            raise InvalidArgumentError("Loan ID cannot be empty.")
        if loan_days is None:
            loan_days = settings.default_loan_days
        if not EntityValidator.is_valid_loan_days(loan_days):
            raise InvalidArgumentError(
                f"Invalid loan days: {loan_days}. Must be between 1 and {settings.max_loan_days}."
            )

        self.loan_id = loan_id.strip()
        self.user = user
        self.book = book
        self.loan_days = loan_days
        self.loan_date: date = loan_date or date.today()
        self.due_date: date = self.loan_date + timedelta(days=loan_days)
        self.return_date: Optional[date] = None
        self.active = True

        book.available = False

    def return_book(self, when: Optional[date] = None) -> None:
        if not self.active:
            raise LoanAlreadyReturnedError(self.loan_id)
        self.return_date = when or date.today()
        self.active = False
        self.book.available = True

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.active and today > self.due_date

    def days_overdue(self, today: Optional[date] = None) -> int:
        if not self.is_overdue(today):
            return 0
        today = today or date.today()
        return (today - self.due_date).days

    def status(self, today: Optional[date] = None) -> LoanStatus:
        if not self.active:
            return LoanStatus.RETURNED
        if self.is_overdue(today):
            return LoanStatus.OVERDUE
        return LoanStatus.ACTIVE

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Loan):
            return NotImplemented
        return self.loan_id == other.loan_id

    def __hash__(self) -> int:
        return hash(self.loan_id)

    def __repr__(self) -> str:
        return (
            f"Loan(loan_id={self.loan_id!r}, user={self.user.id!r}, book={self.book.isbn!r}, "
            f"due_date={self.due_date.isoformat()}, active={self.active})"
        )

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        fmt = settings.date_format
        base = (
            f"{self.loan_id}: '{self.book.title}' ({self.book.isbn}) -> {self.user.name} ({self.user.id}), "
            f"loaned {self.loan_date.strftime(fmt)}, due {self.due_date.strftime(fmt)}"
        )
        if self.return_date:
            return f"{base}, returned {self.return_date.strftime(fmt)}"
        return base

    def to_dict(self, today: Optional[date] = None) -> dict:
        return {
            "loan_id": self.loan_id,
            "user_id": self.user.id,
            "isbn": self.book.isbn,
            "loan_date": self.loan_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "return_date": self.return_date.isoformat() if self.return_date else None,
            "active": self.active,
            "status": self.status(today).value,
            "days_overdue": self.days_overdue(today),
        }
