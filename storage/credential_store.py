"""Persistence of user credential records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError

from models import db
from models.user import User
from services.errors import DuplicateIdentity


class AbstractCredentialStore(ABC):
    """Single-record operations over users keyed by email or id."""

    @abstractmethod
    def find_by_email(self, email: str) -> User | None:
        """Return the user with exactly this email, if any."""

    @abstractmethod
    def find_by_id(self, user_id: int) -> User | None:
        """Return the user with this primary key, if any."""

    @abstractmethod
    def create(self, draft: Mapping[str, Any]) -> User:
        """Insert a new user or raise :class:`DuplicateIdentity`."""

    @abstractmethod
    def update_by_id(self, user_id: int, patch: Mapping[str, Any]) -> User | None:
        """Apply ``patch``; a ``None`` value clears the column."""

    @abstractmethod
    def delete_by_email(self, email: str) -> None:
        """Remove the user with this email if present."""

    @abstractmethod
    def delete_by_id(self, user_id: int) -> None:
        """Remove the user with this id if present."""


class SqlCredentialStore(AbstractCredentialStore):
    """Credential store backed by the Flask-SQLAlchemy session.

    Each call commits on its own; nothing spans more than one record.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def find_by_email(self, email: str) -> User | None:
        return self.session.execute(
            db.select(User).filter_by(email=email)
        ).scalar_one_or_none()

    def find_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def create(self, draft: Mapping[str, Any]) -> User:
        user = User(**dict(draft))
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateIdentity("Email already exists") from exc
        return user

    def update_by_id(self, user_id: int, patch: Mapping[str, Any]) -> User | None:
        user = self.find_by_id(user_id)
        if user is None:
            return None
        for key, value in patch.items():
            if not hasattr(User, key):
                raise AttributeError(f"User has no field {key!r}")
            setattr(user, key, value)
        self.session.commit()
        return user

    def delete_by_email(self, email: str) -> None:
        user = self.find_by_email(email)
        if user is not None:
            self.session.delete(user)
            self.session.commit()

    def delete_by_id(self, user_id: int) -> None:
        user = self.find_by_id(user_id)
        if user is not None:
            self.session.delete(user)
            self.session.commit()
