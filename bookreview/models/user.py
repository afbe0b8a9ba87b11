"""
User Model

Represents a registered user of the book review application.

SQLAlchemy 2.0 Features Used:
- mapped_column(): New way to define columns with full type support
- Mapped[]: Type hint wrapper for SQLAlchemy columns
- relationship(): Define relationships between models
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookreview.database import Base

if TYPE_CHECKING:
    from bookreview.models.book import UserBook
    from bookreview.models.note import Note
    from bookreview.models.review import Review


def utcnow() -> datetime:
    """Timezone-aware timestamp with microsecond resolution."""
    return datetime.now(UTC)


class User(Base):
    """
    User model representing registered users in the system.

    Table: users

    Username and email are each globally unique. The unique constraints are
    what UserRepository.create inspects to tell a duplicate username from a
    duplicate email, so the column names matter.

    Relationships:
    - user_books: books this user is tracking, with a reading status
    - notes: One-to-Many with Note
    - reviews: One-to-Many with Review
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        comment="Unique login name"
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Unique email address"
    )

    # Never the plaintext password
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
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

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    user_books: Mapped[list["UserBook"]] = relationship(
        "UserBook",
        back_populates="user",
        passive_deletes=True,
    )
    notes: Mapped[list["Note"]] = relationship(
        "Note",
        back_populates="user",
        passive_deletes=True,
    )
    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="user",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, username='{self.username}')"
