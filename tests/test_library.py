import pytest
from datetime import date, timedelta

from library_catalog.book import Book
from library_catalog.exceptions import (
    BookAlreadyLoanedError,
    BookNotFoundError,
    BookOnLoanError,
    ConflictError,
    DuplicateError,
    InvalidArgumentError,
    InvalidDataError,
    LoanAlreadyReturnedError,
    LoanNotFoundError,
    NotFoundError,
    UserAlreadyExistsError,
    UserHasActiveLoansError,
    UserNotFoundError,
)
from library_catalog.library import Library
from library_catalog.user import User


def assert_availability_consistent(lib):
    """A book is unavailable exactly when one active loan references it."""
    active_isbns = [loan.book.isbn for loan in lib.get_active_loans()]
    assert len(active_isbns) == len(set(active_isbns))
    for book in lib.get_all_books():
        assert (not book.available) == (book.isbn in active_isbns)
        assert lib.get_current_borrower(book.isbn) == next(
            (loan.user.id for loan in lib.get_active_loans() if loan.book.isbn == book.isbn), None
        )


# ------------------------- Books ------------------------- #
def test_add_list_and_find(lib):
    assert lib.get_all_books() == []

    book = Book("9780199535675", "Ulysses", "James Joyce")
    lib.add_book(book)

    assert lib.find_book_by_isbn(book.isbn) is book
    assert len(lib.get_all_books()) == 1
    assert lib.get_all_books()[0].title == "Ulysses"


def test_find_trims_isbn(lib):
    lib.add_book(Book("  978-0001 ", "Trimmed", "Author"))
    assert lib.find_book_by_isbn(" 978-0001") is not None


def test_find_unknown_isbn_returns_none(lib):
    assert lib.find_book_by_isbn("000-0000") is None


def test_find_empty_isbn_rejected(lib):
    with pytest.raises(InvalidArgumentError):
        lib.find_book_by_isbn("   ")


def test_add_duplicate_isbn(lib):
    lib.add_book(Book("1234567890", "Test Book", "Test Author"))

    with pytest.raises(DuplicateError, match="Book with ISBN 1234567890 already exists."):
        lib.add_book(Book("1234567890", "Other Book", "Other Author"))

    assert len(lib.get_all_books()) == 1
    assert lib.find_book_by_isbn("1234567890").title == "Test Book"


def test_add_book_with_short_isbn_rejected(lib):
    with pytest.raises(InvalidDataError):
        lib.add_book(Book("123", "Short", "Isbn"))
    assert lib.get_all_books() == []


def test_add_unavailable_book_rejected(stocked_lib):
    with pytest.raises(InvalidDataError) as excinfo:
        stocked_lib.add_book(Book("978-9", "Ghost", "Nobody", available=False))

    assert excinfo.value.field == "available"
    assert stocked_lib.find_book_by_isbn("978-9") is None
    assert stocked_lib.get_system_statistics()["loaned_books"] == 0
    assert_availability_consistent(stocked_lib)


def test_import_counts_unavailable_book_as_invalid(lib):
    summary = lib.import_books([Book.from_dict({"isbn": "978-9", "title": "Ghost", "author": "Nobody",
                                                "available": False})])

    assert (summary.imported, summary.errors) == (0, 1)
    assert lib.get_all_books() == []


def test_keys_cannot_be_renamed_under_the_catalog(stocked_lib):
    user = stocked_lib.find_user_by_id("U100")
    book = stocked_lib.find_book_by_isbn("978-1")

    with pytest.raises(AttributeError):
        user.id = "U777"
    with pytest.raises(AttributeError):
        book.isbn = "978-7"

    assert stocked_lib.find_user_by_id("U100").id == "U100"
    assert stocked_lib.find_book_by_isbn("978-1").isbn == "978-1"


def test_search_by_title_and_author_case_insensitive(stocked_lib):
    titles = [b.isbn for b in stocked_lib.search_books_by_title("TITLE")]
    assert titles == ["978-1", "978-2"]  # catalog order
    assert [b.isbn for b in stocked_lib.search_books_by_author("author b")] == ["978-2"]
    assert stocked_lib.search_books_by_title("missing") == []


@pytest.mark.parametrize("fragment", ["", "   ", None])
def test_search_requires_fragment(stocked_lib, fragment):
    with pytest.raises(InvalidArgumentError):
        stocked_lib.search_books_by_title(fragment)
    with pytest.raises(InvalidArgumentError):
        stocked_lib.search_books_by_author(fragment)


def test_available_books_snapshot(stocked_lib):
    stocked_lib.loan_book("U100", "978-1")
    available = stocked_lib.get_available_books()
    assert [b.isbn for b in available] == ["978-2"]

    available.clear()
    assert len(stocked_lib.get_available_books()) == 1


def test_remove(lib):
    lib.add_book(Book("12345", "Test", "Author"))
    assert lib.remove_book("12345") is True
    assert lib.remove_book("12345") is False


def test_remove_book_on_loan_is_refused(stocked_lib):
    stocked_lib.loan_book("U100", "978-1")

    with pytest.raises(BookOnLoanError) as excinfo:
        stocked_lib.remove_book("978-1")

    assert isinstance(excinfo.value, ConflictError)
    assert excinfo.value.isbn == "978-1"
    assert stocked_lib.find_book_by_isbn("978-1") is not None


def test_update_book(lib):
    lib.add_book(Book("1112223334", "Old Title", "Old Author"))

    updated = lib.update_book("1112223334", title="New Title", author="New Author")
    assert updated.title == "New Title"
    assert updated.author == "New Author"


def test_update_book_partial(lib):
    lib.add_book(Book("4445556667", "Original Title", "Original Author"))

    updated = lib.update_book("4445556667", title="Only Title Changed")
    assert updated.title == "Only Title Changed"
    assert updated.author == "Original Author"


def test_update_book_not_found(lib):
    assert lib.update_book("nonexistent", title="New Title") is None


def test_update_book_rejects_blank_values_without_partial_change(lib):
    lib.add_book(Book("4445556667", "Original Title", "Original Author"))
    with pytest.raises(InvalidDataError):
        lib.update_book("4445556667", title="Changed", author="  ")
    assert lib.find_book_by_isbn("4445556667").title == "Original Title"

    with pytest.raises(InvalidArgumentError):
        lib.update_book("4445556667")


# ------------------------- Users ------------------------- #
def test_add_and_find_user(lib):
    lib.add_user(User("U100", "Name", "A@B.com"))
    user = lib.find_user_by_id("U100")
    assert user.email == "a@b.com"
    assert lib.get_user_loans("U100") == []


def test_add_user_with_invalid_email_is_rejected(lib):
    with pytest.raises(InvalidDataError):
        lib.add_user(User("U1", "Name", "not-an-email"))
    assert lib.get_all_users() == []


def test_add_user_with_short_id_is_rejected(lib):
    with pytest.raises(InvalidDataError):
        lib.add_user(User("U1", "Name", "a@b.com"))
    assert lib.get_all_users() == []


def test_add_duplicate_user(lib):
    lib.add_user(User("U100", "Name", "a@b.com"))
    with pytest.raises(UserAlreadyExistsError) as excinfo:
        lib.add_user(User("U100", "Other", "other@b.com"))
    assert isinstance(excinfo.value, DuplicateError)
    assert excinfo.value.key == "U100"
    assert lib.find_user_by_id("U100").name == "Name"


def test_find_user_errors(lib):
    with pytest.raises(UserNotFoundError) as excinfo:
        lib.find_user_by_id("U999")
    assert isinstance(excinfo.value, NotFoundError)
    assert excinfo.value.key == "U999"

    with pytest.raises(InvalidDataError):
        lib.find_user_by_id("")
    with pytest.raises(InvalidDataError):
        lib.find_user_by_id("U1")


def test_search_users_by_name(stocked_lib):
    assert [u.id for u in stocked_lib.search_users_by_name("second")] == ["U200"]
    assert stocked_lib.search_users_by_name("") == []


def test_update_user(stocked_lib):
    user = stocked_lib.update_user("U100", email="NEW@Example.com")
    assert user.email == "new@example.com"
    assert user.name == "Name"

    with pytest.raises(InvalidDataError):
        stocked_lib.update_user("U100", name="Valid", email="broken")
    assert stocked_lib.find_user_by_id("U100").name == "Name"

    with pytest.raises(UserNotFoundError):
        stocked_lib.update_user("U999", name="Nobody")


def test_remove_user(stocked_lib):
    assert stocked_lib.remove_user("U200") is True
    assert stocked_lib.remove_user("U200") is False
    with pytest.raises(UserNotFoundError):
        stocked_lib.get_user_loans("U200")


def test_remove_user_with_active_loans_is_refused(stocked_lib):
    loan = stocked_lib.loan_book("U100", "978-1")

    with pytest.raises(UserHasActiveLoansError) as excinfo:
        stocked_lib.remove_user("U100")
    assert excinfo.value.active_loans == 1
    assert stocked_lib.find_user_by_id("U100") is not None

    stocked_lib.return_book(loan.loan_id)
    assert stocked_lib.remove_user("U100") is True


# ------------------------- Loans ------------------------- #
def test_loan_book_scenario(stocked_lib, clock):
    loan = stocked_lib.loan_book("U100", "978-1")

    assert loan.active is True
    assert loan.loan_date == clock()
    assert loan.due_date == loan.loan_date + timedelta(days=14)
    assert loan.return_date is None
    assert stocked_lib.find_book_by_isbn("978-1").available is False
    assert stocked_lib.get_current_borrower("978-1") == "U100"
    assert stocked_lib.get_user_loans("U100") == [loan]
    assert stocked_lib.find_loan_by_id(loan.loan_id) is loan
    assert_availability_consistent(stocked_lib)


def test_loan_book_with_custom_days(stocked_lib):
    loan = stocked_lib.loan_book("U100", "978-1", 30)
    assert (loan.due_date - loan.loan_date).days == 30


@pytest.mark.parametrize("days", [0, -1, 366, True])
def test_loan_book_rejects_invalid_days(stocked_lib, days):
    with pytest.raises(InvalidArgumentError):
        stocked_lib.loan_book("U100", "978-1", days)
    assert stocked_lib.get_all_loans() == []
    assert stocked_lib.find_book_by_isbn("978-1").available is True


def test_loan_ids_are_unique(stocked_lib):
    first = stocked_lib.loan_book("U100", "978-1")
    stocked_lib.return_book(first.loan_id)
    second = stocked_lib.loan_book("U100", "978-1")
    third = stocked_lib.loan_book("U200", "978-2")
    ids = [first.loan_id, second.loan_id, third.loan_id]
    assert len(set(ids)) == 3


def test_loan_for_unknown_user_changes_nothing(stocked_lib):
    with pytest.raises(UserNotFoundError):
        stocked_lib.loan_book("U999", "978-1")

    assert stocked_lib.get_all_loans() == []
    assert stocked_lib.find_book_by_isbn("978-1").available is True


def test_loan_for_unknown_book(stocked_lib):
    with pytest.raises(BookNotFoundError) as excinfo:
        stocked_lib.loan_book("U100", "000-0000")
    assert excinfo.value.key == "000-0000"
    assert stocked_lib.get_all_loans() == []


def test_double_loan_is_refused(stocked_lib):
    stocked_lib.loan_book("U100", "978-1")

    with pytest.raises(BookAlreadyLoanedError) as excinfo:
        stocked_lib.loan_book("U200", "978-1")

    assert excinfo.value.isbn == "978-1"
    assert excinfo.value.current_borrower_id == "U100"
    assert len(stocked_lib.get_active_loans()) == 1
    assert stocked_lib.get_user_loans("U200") == []
    assert_availability_consistent(stocked_lib)


def test_return_book(stocked_lib, clock):
    loan = stocked_lib.loan_book("U100", "978-1")
    clock.advance(3)

    returned = stocked_lib.return_book(loan.loan_id)

    assert returned is loan
    assert loan.active is False
    assert loan.return_date == clock()
    assert stocked_lib.find_book_by_isbn("978-1").available is True
    assert stocked_lib.get_current_borrower("978-1") is None
    assert stocked_lib.get_user_active_loans("U100") == []
    assert stocked_lib.get_user_loans("U100") == [loan]
    assert_availability_consistent(stocked_lib)


def test_return_twice_fails_and_leaves_state_unchanged(stocked_lib, clock):
    loan = stocked_lib.loan_book("U100", "978-1")
    stocked_lib.return_book(loan.loan_id)
    returned_on = loan.return_date
    clock.advance(5)

    with pytest.raises(LoanAlreadyReturnedError) as excinfo:
        stocked_lib.return_book(loan.loan_id)

    assert isinstance(excinfo.value, InvalidArgumentError)
    assert loan.return_date == returned_on
    assert stocked_lib.find_book_by_isbn("978-1").available is True
    assert_availability_consistent(stocked_lib)


def test_return_after_book_reloaned_does_not_touch_new_loan(stocked_lib):
    first = stocked_lib.loan_book("U100", "978-1")
    stocked_lib.return_book(first.loan_id)
    second = stocked_lib.loan_book("U200", "978-1")

    with pytest.raises(LoanAlreadyReturnedError):
        stocked_lib.return_book(first.loan_id)

    assert second.active is True
    assert stocked_lib.get_current_borrower("978-1") == "U200"
    assert stocked_lib.find_book_by_isbn("978-1").available is False


def test_return_unknown_or_empty_loan(stocked_lib):
    with pytest.raises(LoanNotFoundError) as excinfo:
        stocked_lib.return_book("L9999")
    assert isinstance(excinfo.value, InvalidArgumentError)

    with pytest.raises(InvalidArgumentError):
        stocked_lib.return_book("  ")


def test_user_loan_queries(stocked_lib):
    first = stocked_lib.loan_book("U100", "978-1")
    second = stocked_lib.loan_book("U100", "978-2")
    stocked_lib.return_book(first.loan_id)

    assert stocked_lib.get_user_loans("U100") == [first, second]
    assert stocked_lib.get_user_active_loans("U100") == [second]
    assert stocked_lib.get_user_active_loans("U999") == []
    with pytest.raises(UserNotFoundError):
        stocked_lib.get_user_loans("U999")


def test_active_overdue_and_all_loans(stocked_lib, clock):
    first = stocked_lib.loan_book("U100", "978-1", 7)
    second = stocked_lib.loan_book("U200", "978-2")

    assert stocked_lib.get_overdue_loans() == []
    clock.advance(8)
    assert stocked_lib.get_overdue_loans() == [first]

    stocked_lib.return_book(first.loan_id)
    assert stocked_lib.get_overdue_loans() == []
    assert stocked_lib.get_active_loans() == [second]
    assert stocked_lib.get_all_loans() == [first, second]


def test_system_statistics(stocked_lib, clock):
    stocked_lib.loan_book("U100", "978-1", 1)
    returned = stocked_lib.loan_book("U200", "978-2")
    stocked_lib.return_book(returned.loan_id)
    clock.advance(2)

    assert stocked_lib.get_system_statistics() == {
        "total_books": 2,
        "available_books": 1,
        "loaned_books": 1,
        "total_users": 2,
        "total_loans": 2,
        "active_loans": 1,
        "overdue_loans": 1,
    }


def test_default_clock_is_today():
    lib = Library()
    lib.add_book(Book("978-1", "Title A", "Author A"))
    lib.add_user(User("U100", "Name", "a@b.com"))
    loan = lib.loan_book("U100", "978-1")
    assert loan.loan_date == date.today()
    assert loan.is_overdue() is False


# ------------------------- Bulk import ------------------------- #
def test_import_books_counts_duplicates_and_errors(lib):
    summary = lib.import_books([
        Book("978-1", "Title A", "Author A"),
        Book("978-1", "Title A again", "Author A"),
        Book("12", "Too short", "Author"),
        Book("978-3", "Title C", "Author C"),
    ])

    assert (summary.imported, summary.duplicates, summary.errors) == (2, 1, 1)
    assert summary.total == 4
    assert summary.skipped_keys == ["978-1", "12"]
    assert [b.isbn for b in lib.get_all_books()] == ["978-1", "978-3"]


def test_import_users_counts_duplicates_and_errors(lib):
    summary = lib.import_users([
        User("U100", "Name", "a@b.com"),
        User("U100", "Again", "again@b.com"),
        User("U1", "Short id", "short@b.com"),
    ])
    assert (summary.imported, summary.duplicates, summary.errors) == (1, 1, 1)
    assert lib.get_user_loans("U100") == []
