"""
Repositories Package

One repository per entity, each wrapping a SQLAlchemy Session:
- users.py: registration, authentication, existence checks
- books.py: books with ownership, pagination and search
- notes.py: per-user notes
- reviews.py: ratings and reviews
- errors.py: the domain errors they raise
"""

from bookreview.repositories.books import BookRepository, PaginatedBooks
from bookreview.repositories.errors import (
    DuplicateEmailError,
    DuplicateIsbnError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    ModelError,
    NoRecordError,
)
from bookreview.repositories.notes import NoteRepository
from bookreview.repositories.reviews import ReviewRepository
from bookreview.repositories.users import LookupField, UserRepository

__all__ = [
    "BookRepository",
    "PaginatedBooks",
    "NoteRepository",
    "ReviewRepository",
    "UserRepository",
    "LookupField",
    "ModelError",
    "NoRecordError",
    "InvalidCredentialsError",
    "DuplicateEmailError",
    "DuplicateUsernameError",
    "DuplicateIsbnError",
]
