from library_catalog.book import Book
from library_catalog.library import ImportSummary, Library
from library_catalog.user import User

SAMPLE_BOOKS = [
    ("978-0134685991", "Effective Java", "Joshua Bloch"),
    ("978-0596009205", "Head First Design Patterns", "Eric Freeman"),
    ("978-0321356680", "Effective Unit Testing", "Lasse Koskela"),
]

SAMPLE_USERS = [
    ("U001", "Juan Perez", "juan.perez@email.com"),
    ("U002", "Maria Silva", "maria.silva@email.com"),
]


def load_sample_data(lib: Library) -> tuple[ImportSummary, ImportSummary]:
    """Seed a fresh library with the built-in demo catalog."""
    books = lib.import_books(Book(*row) for row in SAMPLE_BOOKS)
    users = lib.import_users(User(*row) for row in SAMPLE_USERS)
    return books, users
