from __future__ import annotations

from library_catalog.exceptions import InvalidDataError


def _require_text(value: str | None, field: str, label: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidDataError(f"{label} cannot be empty.", field=field)
    return str(value).strip()


class Book:
    """A single title in the catalog, identified by its ISBN.

    The ISBN is the catalog key and is fixed at construction.
    """

    def __init__(self, isbn: str, title: str, author: str, available: bool = True) -> None:
        self._isbn = _require_text(isbn, "isbn", "ISBN")
        self.title = title
        self.author = author
        self.available = available

    @property
    def isbn(self) -> str:
        return self._isbn

    @property
    def title(self) -> str:
        return self._title

    @title.setter
    def title(self, value: str) -> None:
        self._title = _require_text(value, "title", "Title")

    @property
    def author(self) -> str:
        return self._author

    @author.setter
    def author(self, value: str) -> None:
        self._author = _require_text(value, "author", "Author")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.isbn == other.isbn

    def __hash__(self) -> int:
        return hash(self.isbn)

    def __repr__(self) -> str:
        return f"Book(isbn={self.isbn!r}, title={self.title!r}, author={self.author!r}, available={self.available})"

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        status = "available" if self.available else "on loan"
        return f"{self.title} by {self.author} (ISBN: {self.isbn}, {status})"

    def to_dict(self) -> dict:
        return {
            "isbn": self.isbn,
            "title": self.title,
            "author": self.author,
            "available": self.available,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            isbn=data["isbn"],
            title=data["title"],
            author=data["author"],
            available=bool(data.get("available", True)),
        )
