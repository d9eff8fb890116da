"""Library Catalog - Core Application Package

This package contains the core application modules including:
- Library service: books, users and the loan lifecycle (library.py)
- Data models (book.py, user.py, loan.py)
- Validation helpers (validators.py)
- CSV import/export (csv_io.py)
- Console menu and CLI entry point (main.py)
"""

from library_catalog.book import Book
from library_catalog.library import ImportSummary, Library
from library_catalog.loan import Loan, LoanStatus
from library_catalog.user import User

__all__ = ["Book", "ImportSummary", "Library", "Loan", "LoanStatus", "User"]
