"""CSV import/export for books, users and loans.

Readers turn rows into validated ``Book``/``User`` objects; they never touch
the ``Library`` directly (bulk loading goes through ``Library.import_books`` /
``Library.import_users``). Writers serialize whatever list they are handed.

Both directions use the stdlib ``csv`` module with minimal quoting, so fields
holding the delimiter, a quote or a newline are quoted and embedded quotes are
doubled.
"""

import csv
import logging
import os
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar, Union

from library_catalog.book import Book
from library_catalog.config import settings
from library_catalog.exceptions import CsvFileError, CsvFormatError, InvalidDataError
from library_catalog.loan import Loan, LoanStatus
from library_catalog.user import User
from library_catalog.validators import FileValidator, TextValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")

BOOK_HEADERS = {
    "en": ["ISBN", "Title", "Author", "Available"],
    "es": ["ISBN", "Titulo", "Autor", "Disponible"],
}
USER_HEADERS = {
    "en": ["ID", "Name", "Email"],
    "es": ["ID", "Nombre", "Email"],
}
LOAN_HEADERS = {
    "en": ["LoanID", "UserID", "BookISBN", "LoanDate", "ReturnDate", "Returned"],
    "es": ["IDPrestamo", "IDUsuario", "ISBNLibro", "FechaPrestamo", "FechaDevolucion", "Devuelto"],
}
EXTENDED_LOAN_HEADERS = {
    "en": ["LoanID", "UserID", "UserName", "BookISBN", "BookTitle", "LoanDate", "DueDate", "ReturnDate", "Status"],
    "es": ["IDPrestamo", "IDUsuario", "NombreUsuario", "ISBNLibro", "TituloLibro",
           "FechaPrestamo", "FechaVencimiento", "FechaDevolucion", "Estado"],
}
BOOLEAN_TOKENS = {
    "en": ("true", "false"),
    "es": ("Si", "No"),
}
STATUS_TOKENS = {
    "en": {LoanStatus.ACTIVE: "ACTIVE", LoanStatus.RETURNED: "RETURNED", LoanStatus.OVERDUE: "OVERDUE"},
    "es": {LoanStatus.ACTIVE: "ACTIVO", LoanStatus.RETURNED: "DEVUELTO", LoanStatus.OVERDUE: "VENCIDO"},
}

# First-cell values that mark a header row on import
_BOOK_HEADER_TOKENS = {"isbn"}
_USER_HEADER_TOKENS = {"id", "userid", "user id"}

REQUIRED_COLUMNS = 3


@dataclass
class CsvReadResult(Generic[T]):
    """Records parsed from a file plus the rows rejected in lenient mode."""

    records: List[T] = field(default_factory=list)
    errors: List[CsvFormatError] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


# ------------------------- Reading ------------------------- #
def _check_readable(path: str) -> None:
    if not TextValidator.is_not_blank(path):
        raise CsvFileError(str(path), "File name cannot be empty.")
    if not os.path.exists(path):
        raise CsvFileError(path, f"File not found: {path}")
    if not os.path.isfile(path):
        raise CsvFileError(path, f"Not a regular file: {path}")
    if not os.access(path, os.R_OK):
        raise CsvFileError(path, f"Cannot read file: {path}")


def _iter_records(
    path: str, delimiter: str, header_tokens: set
) -> Iterator[Tuple[int, Union[List[str], CsvFormatError]]]:
    """Yield ``(line_number, cells)`` for every data row.

    Blank lines, ``#`` comments and a leading header row are skipped. A row
    the csv parser rejects is yielded as a ``CsvFormatError`` in place of its
    cells and reading goes on with the next line.
    """
    try:
        # utf-8-sig drops the BOM spreadsheet exports put before the header
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f, delimiter=delimiter, skipinitialspace=True)
            seen_data = False
            while True:
                try:
                    row = next(reader)
                except StopIteration:
                    return
                except csv.Error as e:
                    seen_data = True
                    yield reader.line_num, CsvFormatError(reader.line_num, str(e), path=path)
                    continue
                cells = [c.strip() for c in row]
                if not any(cells):
                    continue
                if cells[0].startswith("#"):
                    continue
                if not seen_data and cells[0].lower() in header_tokens:
                    seen_data = True
                    continue
                seen_data = True
                yield reader.line_num, cells
    except UnicodeDecodeError as e:
        raise CsvFileError(path, f"File {path} is not valid UTF-8 text.") from e
    except OSError as e:
        raise CsvFileError(path, f"Error reading file {path}: {e}") from e


def _read(
    path: str,
    header_tokens: set,
    build: Callable[[List[str]], T],
    strict: Optional[bool],
    delimiter: Optional[str],
) -> CsvReadResult:
    _check_readable(path)
    strict = settings.csv_strict if strict is None else strict
    delimiter = delimiter or settings.csv_delimiter

    result: CsvReadResult = CsvReadResult()
    for line_number, cells in _iter_records(path, delimiter, header_tokens):
        try:
            if isinstance(cells, CsvFormatError):
                raise cells
            if len(cells) < REQUIRED_COLUMNS:
                raise CsvFormatError(
                    line_number,
                    f"expected at least {REQUIRED_COLUMNS} columns, got {len(cells)}",
                    path=path,
                )
            try:
                result.records.append(build(cells))
            except InvalidDataError as e:
                raise CsvFormatError(line_number, e.message, path=path) from e
        except CsvFormatError as e:
            if strict:
                raise
            logger.warning("Skipping line: %s", e)
            result.errors.append(e)
    logger.info("Read %d record(s) from %s (%d rejected)", len(result.records), path, len(result.errors))
    return result


def read_books(path: str, strict: Optional[bool] = None, delimiter: Optional[str] = None) -> CsvReadResult:
    """Read books from ``ISBN,Title,Author[,Available]`` rows.

    The availability column is ignored: every imported book starts available.
    """
    return _read(path, _BOOK_HEADER_TOKENS, lambda c: Book(c[0], c[1], c[2]), strict, delimiter)


def read_users(path: str, strict: Optional[bool] = None, delimiter: Optional[str] = None) -> CsvReadResult:
    """Read users from ``ID,Name,Email[,...]`` rows."""
    return _read(path, _USER_HEADER_TOKENS, lambda c: User(c[0], c[1], c[2]), strict, delimiter)


# ------------------------- Writing ------------------------- #
def _language(language: Optional[str]) -> str:
    lang = (language or settings.csv_language or "en").lower()
    return lang if lang in BOOK_HEADERS else "en"


def _format_date(value: Optional[date]) -> str:
    return value.strftime(settings.date_format) if value else ""


def _write_rows(path: str, header: Sequence[str], rows: Sequence[Sequence[str]], delimiter: Optional[str]) -> int:
    if not FileValidator.is_valid_csv_file_name(path):
        raise CsvFileError(str(path), f"Invalid CSV file name: '{path}'.")
    try:
        with open(path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.writer(
                csvfile,
                delimiter=delimiter or settings.csv_delimiter,
                quoting=csv.QUOTE_MINIMAL,
                lineterminator="\n",
            )
            writer.writerow(header)
            writer.writerows(rows)
    except OSError as e:
        raise CsvFileError(path, f"Error writing to file {path}: {e}") from e
    logger.info("Wrote %d row(s) to %s", len(rows), path)
    return len(rows)


def write_books(books: Sequence[Book], path: str, language: Optional[str] = None,
                delimiter: Optional[str] = None) -> int:
    lang = _language(language)
    yes, no = BOOLEAN_TOKENS[lang]
    rows = [[b.isbn, b.title, b.author, yes if b.available else no] for b in books]
    return _write_rows(path, BOOK_HEADERS[lang], rows, delimiter)


def write_users(users: Sequence[User], path: str, language: Optional[str] = None,
                delimiter: Optional[str] = None) -> int:
    lang = _language(language)
    rows = [[u.id, u.name, u.email] for u in users]
    return _write_rows(path, USER_HEADERS[lang], rows, delimiter)


def write_loans(
    loans: Sequence[Loan],
    path: str,
    extended: bool = False,
    language: Optional[str] = None,
    today: Optional[date] = None,
    delimiter: Optional[str] = None,
) -> int:
    """Write loans in the simple form, or the extended form with names, due date and status."""
    lang = _language(language)
    if extended:
        statuses = STATUS_TOKENS[lang]
        rows = [
            [
                loan.loan_id,
                loan.user.id,
                loan.user.name,
                loan.book.isbn,
                loan.book.title,
                _format_date(loan.loan_date),
                _format_date(loan.due_date),
                _format_date(loan.return_date),
                statuses[loan.status(today)],
            ]
            for loan in loans
        ]
        return _write_rows(path, EXTENDED_LOAN_HEADERS[lang], rows, delimiter)

    yes, no = BOOLEAN_TOKENS[lang]
    rows = [
        [
            loan.loan_id,
            loan.user.id,
            loan.book.isbn,
            _format_date(loan.loan_date),
            _format_date(loan.return_date),
            no if loan.active else yes,
        ]
        for loan in loans
    ]
    return _write_rows(path, LOAN_HEADERS[lang], rows, delimiter)


def write_report(report: str, path: str) -> None:
    """Write a free-form text report (any file name, not only ``.csv``)."""
    if not TextValidator.is_not_blank(path):
        raise CsvFileError(str(path), "File name cannot be empty.")
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(report if report.endswith("\n") else report + "\n")
    except OSError as e:
        raise CsvFileError(path, f"Error writing to file {path}: {e}") from e
