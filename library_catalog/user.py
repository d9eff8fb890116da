from __future__ import annotations

from library_catalog.exceptions import InvalidDataError
from library_catalog.validators import TextValidator


class User:
    """A registered library member. Email addresses are stored lowercase.

    The ID is the catalog key and is fixed at construction.
    """

    def __init__(self, id: str, name: str, email: str) -> None:
        if not TextValidator.is_not_blank(id):
            raise InvalidDataError("User ID cannot be empty.", field="id")
        self._id = id.strip()
        self.name = name
        self.email = email

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if not TextValidator.is_not_blank(value):
            raise InvalidDataError("Name cannot be empty.", field="name")
        self._name = value.strip()

    @property
    def email(self) -> str:
        return self._email

    @email.setter
    def email(self, value: str) -> None:
        if not TextValidator.is_not_blank(value):
            raise InvalidDataError("Email cannot be empty.", field="email")
        if not TextValidator.is_valid_email(value):
            raise InvalidDataError(f"Invalid email format: {value}", field="email")
        self._email = value.strip().lower()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, name={self.name!r}, email={self.email!r})"

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} <{self.email}> (ID: {self.id})"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}

    @staticmethod
    def from_dict(data: dict) -> "User":
        return User(id=data["id"], name=data["name"], email=data["email"])
