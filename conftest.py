from datetime import date, timedelta

import pytest

from library_catalog.book import Book
from library_catalog.library import Library
from library_catalog.ui_helpers import OUTPUT_MODE_ENV
from library_catalog.user import User


class FakeClock:
    """Callable date source the tests can move forward."""

    def __init__(self, start: date) -> None:
        self.current = start

    def __call__(self) -> date:
        return self.current

    def advance(self, days: int) -> None:
        self.current += timedelta(days=days)


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # Output mode lives in the environment; keep every test on the default
    monkeypatch.delenv(OUTPUT_MODE_ENV, raising=False)


@pytest.fixture
def clock():
    return FakeClock(date(2024, 3, 1))


@pytest.fixture
def lib(clock):
    # Fresh, empty library per test
    return Library(today=clock)


@pytest.fixture
def stocked_lib(lib):
    lib.add_book(Book("978-1", "Title A", "Author A"))
    lib.add_book(Book("978-2", "Another Title", "Author B"))
    lib.add_user(User("U100", "Name", "a@b.com"))
    lib.add_user(User("U200", "Second User", "second@example.com"))
    return lib
