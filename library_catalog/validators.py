import re
from typing import Any, Optional

from library_catalog.config import settings

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@([A-Za-z0-9.-]+\.[A-Za-z]{2,})$")
# Reserved on common filesystems, plus ASCII control characters
ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')


class TextValidator:
    """Basic text checks shared by the entities and the service."""

    @staticmethod
    def is_not_blank(text: Optional[str]) -> bool:
        return text is not None and bool(text.strip())

    @staticmethod
    def is_valid_email(email: Optional[str]) -> bool:
        if not TextValidator.is_not_blank(email):
            return False
        return EMAIL_PATTERN.match(email.strip()) is not None

    @staticmethod
    def is_valid_user_id(user_id: Optional[str], min_length: Optional[int] = None) -> bool:
        if not TextValidator.is_not_blank(user_id):
            return False
        min_length = settings.min_user_id_length if min_length is None else min_length
        return len(user_id.strip()) >= min_length


class ISBNValidator:
    """Length-based ISBN policy.

    Catalog ISBNs are free-form identifiers (hyphenated ISBN-13s, short local
    codes), so only a minimum trimmed length is enforced; no checksum.
    """

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return raw.strip()

    @staticmethod
    def is_valid_isbn(isbn: Optional[str], min_length: Optional[int] = None) -> bool:
        s = ISBNValidator.normalize_isbn(isbn)
        if not s:
            return False
        min_length = settings.min_isbn_length if min_length is None else min_length
        return len(s) >= min_length


class EntityValidator:
    """Aggregate checks over whole entities."""

    @staticmethod
    def is_valid_book(book: Any) -> bool:
        if book is None:
            return False
        return (
            ISBNValidator.is_valid_isbn(getattr(book, "isbn", None))
            and TextValidator.is_not_blank(getattr(book, "title", None))
            and TextValidator.is_not_blank(getattr(book, "author", None))
        )

    @staticmethod
    def is_valid_user(user: Any) -> bool:
        if user is None:
            return False
        return (
            TextValidator.is_valid_user_id(getattr(user, "id", None))
            and TextValidator.is_not_blank(getattr(user, "name", None))
            and TextValidator.is_valid_email(getattr(user, "email", None))
        )

    @staticmethod
    def is_valid_loan_days(days: Any, max_days: Optional[int] = None) -> bool:
        # bool is an int subclass; True is not a loan period
        if isinstance(days, bool) or not isinstance(days, int):
            return False
        max_days = settings.max_loan_days if max_days is None else max_days
        return 0 < days <= max_days


class FileValidator:
    @staticmethod
    def is_valid_csv_file_name(filename: Optional[str]) -> bool:
        if not TextValidator.is_not_blank(filename):
            return False
        name = filename.strip()
        # A Windows drive prefix is the one place ':' is legal
        if ILLEGAL_FILENAME_CHARS.search(re.sub(r"^[A-Za-z]:(?=[\\/])", "", name)):
            return False
        # Only the last path component needs a stem
        base = re.split(r"[\\/]", name)[-1]
        if not base.lower().endswith(".csv"):
            return False
        return len(base) > len(".csv")
