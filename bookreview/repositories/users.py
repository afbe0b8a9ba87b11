"""
User Repository

Registration, authentication and existence checks for users.

Security:
=========
- Passwords are hashed with bcrypt before storage
- Plain text passwords are never logged or stored
- An unknown username and a wrong password fail the same way, so login
  responses do not reveal which usernames exist
"""

import logging
from enum import Enum

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from bookreview.models import User
from bookreview.repositories.errors import (
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    NoRecordError,
    violates_unique,
)
from bookreview.services.security import dummy_verify, hash_password, verify_password

logger = logging.getLogger(__name__)


class LookupField(str, Enum):
    """Columns a user can be looked up by."""
    ID = "id"
    EMAIL = "email"
    USERNAME = "username"


# One pre-built statement per lookup field; the value is bound at execution.
_EXISTS_STATEMENTS = {
    LookupField.ID: lambda value: select(exists().where(User.id == value)),
    LookupField.EMAIL: lambda value: select(exists().where(User.email == value)),
    LookupField.USERNAME: lambda value: select(exists().where(User.username == value)),
}


class UserRepository:
    """Persistence operations for the users table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, username: str, email: str, password: str) -> int:
        """
        Register a new user and return its id.

        Raises:
            DuplicateUsernameError: username is already taken
            DuplicateEmailError: email is already registered
        """
        user = User(
            username=username,
            email=email,
            hashed_password=hash_password(password),
        )

        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if violates_unique(exc, "users", "username"):
                raise DuplicateUsernameError() from exc
            if violates_unique(exc, "users", "email"):
                raise DuplicateEmailError() from exc
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"New user registered: id={user.id}")
        return user.id

    def authenticate(self, username: str, password: str) -> int:
        """
        Verify a username/password pair and return the user's id.

        Raises:
            InvalidCredentialsError: unknown username or wrong password
        """
        stmt = select(User.id, User.hashed_password).where(User.username == username)
        row = self.db.execute(stmt).one_or_none()

        if row is None:
            dummy_verify()
            raise InvalidCredentialsError()

        if not verify_password(password, row.hashed_password):
            raise InvalidCredentialsError()

        return row.id

    def exists(self, field: LookupField, value) -> bool:
        """Check whether a user with the given id, email or username exists."""
        stmt = _EXISTS_STATEMENTS[field](value)
        return bool(self.db.execute(stmt).scalar())

    def retrieve(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NoRecordError()
        return user
