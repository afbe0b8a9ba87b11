"""
SQLAlchemy Models Package

Model Relationships:
- User <-> Book: Many-to-Many through UserBook, which also stores the
                 reading status
- Book -> Note, Review: One-to-Many (removed with the book)
- User -> Note, Review: One-to-Many

Import all models here to:
1. Make them available as: from bookreview.models import Book, User
2. Ensure Base.metadata knows every table before create_all()
"""

from bookreview.models.user import User
from bookreview.models.book import READING_STATUSES, Book, ReadingStatus, UserBook
from bookreview.models.note import Note
from bookreview.models.review import Review

__all__ = [
    "User",
    "Book",
    "UserBook",
    "ReadingStatus",
    "READING_STATUSES",
    "Note",
    "Review",
]
