import pytest
from typer.testing import CliRunner

from library_catalog import csv_io
from library_catalog.library import Library
from library_catalog.main import app
from library_catalog.sample_data import SAMPLE_BOOKS, SAMPLE_USERS, load_sample_data

# Mark this module as integration
pytestmark = pytest.mark.integration

runner = CliRunner()


def test_sample_catalog_lifecycle(clock):
    """Seed, loan, go overdue, return, and check the counters at each step."""
    lib = Library(today=clock)
    books, users = load_sample_data(lib)
    assert books.imported == len(SAMPLE_BOOKS)
    assert users.imported == len(SAMPLE_USERS)

    first = lib.loan_book("U001", "978-0134685991")
    lib.loan_book("U002", "978-0596009205", 3)
    clock.advance(5)

    stats = lib.get_system_statistics()
    assert stats["active_loans"] == 2
    assert stats["overdue_loans"] == 1
    assert stats["available_books"] == 1

    lib.return_book(first.loan_id)
    assert lib.find_book_by_isbn("978-0134685991").available is True
    assert lib.get_system_statistics()["active_loans"] == 1

    # Reloading the samples only produces duplicates
    again, _ = load_sample_data(lib)
    assert again.imported == 0
    assert again.duplicates == len(SAMPLE_BOOKS)


def test_cli_session_round_trips_through_csv(tmp_path):
    books_csv = tmp_path / "books.csv"
    users_csv = tmp_path / "users.csv"
    loans_csv = tmp_path / "loans.csv"
    report = tmp_path / "report.txt"

    session = "\n".join([
        "1", "1", "978-1111111", "Title, with comma", "Some Author", "0",
        "2", "1", "U300", "Ana Gomez", "Ana@Example.com", "0",
        "3", "1", "U300", "978-1111111", "", "0",
        "5", "3", str(books_csv), "4", str(users_csv), "5", str(loans_csv), "y", "0",
        "4", "2", str(report), "0",
        "0",
    ]) + "\n"
    result = runner.invoke(app, ["--no-samples"], input=session)
    assert result.exit_code == 0, result.output

    books = csv_io.read_books(str(books_csv), strict=True).records
    assert [(b.isbn, b.title) for b in books] == [("978-1111111", "Title, with comma")]
    users = csv_io.read_users(str(users_csv), strict=True).records
    assert users[0].email == "ana@example.com"

    loan_lines = loans_csv.read_text(encoding="utf-8").splitlines()
    assert loan_lines[0].startswith("LoanID,UserID,UserName")
    assert loan_lines[1].startswith("L0001,U300,Ana Gomez,978-1111111")
    assert loan_lines[1].endswith(",ACTIVE")

    text = report.read_text(encoding="utf-8")
    assert "Total Books: 1" in text
    assert "Active Loans: 1" in text

    # A new session picks the exported files up at start-up
    result = runner.invoke(
        app, ["--no-samples", "--books", str(books_csv), "--users", str(users_csv)], input="1\n5\n0\n0\n"
    )
    assert result.exit_code == 0
    assert "978-1111111 - Title, with comma by Some Author [available]" in result.output
