"""
Book Model

The central model of the application, plus the UserBook association that
records which user is tracking a book and at what reading status.

WHY a full association model?
=============================
A plain association Table can only store the two foreign keys. UserBook
also carries the reading status, so it is a mapped class with its own
columns and a unique (user_id, book_id) constraint.

A book row may exist without a UserBook row, but BookRepository.create
always writes the pair in one transaction.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookreview.database import Base
from bookreview.models.user import utcnow

if TYPE_CHECKING:
    from bookreview.models.note import Note
    from bookreview.models.review import Review
    from bookreview.models.user import User


class ReadingStatus(str, Enum):
    """Where a user is with a book."""
    WANT_TO_READ = "want_to_read"
    READING = "reading"
    FINISHED = "finished"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


READING_STATUSES = frozenset(status.value for status in ReadingStatus)


class Book(Base):
    """
    Book model representing a bibliographic record.

    Table: books

    Fields:
    - title, author: required text
    - isbn: unique across all books
    - publication_year: 0 when unknown
    - image_url: /uploads/<name> of the cover image, empty when none

    Relationships:
    - user_book: the tracking row created together with the book
    - notes, reviews: One-to-Many, removed by database cascade
    """

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(
        String(500),
        index=True,
        nullable=False,
        comment="Book title"
    )
    author: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Author name as entered"
    )
    isbn: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        comment="International Standard Book Number"
    )
    publication_year: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    image_url: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
        comment="Relative URL of the uploaded cover image"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    # passive_deletes leaves the cleanup to ON DELETE CASCADE
    user_book: Mapped["UserBook | None"] = relationship(
        "UserBook",
        back_populates="book",
        uselist=False,
        passive_deletes=True,
    )
    notes: Mapped[list["Note"]] = relationship(
        "Note",
        back_populates="book",
        passive_deletes=True,
    )
    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="book",
        passive_deletes=True,
    )

    @property
    def owner_id(self) -> int:
        """Id of the user tracking this book, 0 when unassigned."""
        return self.user_book.user_id if self.user_book else 0

    @property
    def status(self) -> str:
        return self.user_book.status if self.user_book else ""

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', isbn='{self.isbn}')"


class UserBook(Base):
    """
    Association between a user and a book they track.

    Table: user_books
    """

    __tablename__ = "user_books"

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=ReadingStatus.WANT_TO_READ.value,
        nullable=False,
        comment="want_to_read, reading or finished"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    book: Mapped["Book"] = relationship("Book", back_populates="user_book")
    user: Mapped["User"] = relationship("User", back_populates="user_books")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_user_books_user_book"),
    )

    def __repr__(self) -> str:
        return (
            f"UserBook(user_id={self.user_id}, book_id={self.book_id}, "
            f"status='{self.status}')"
        )
