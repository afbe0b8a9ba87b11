"""
Note Model

A user's annotation on a book, optionally tied to a page.

Business Rules:
- A note belongs to exactly the user who wrote it
- Reads, updates and deletes are always scoped by (user_id, note_id)
- page_number is free-form: no range check, negatives are stored as given
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookreview.database import Base
from bookreview.models.user import utcnow


class Note(Base):
    """
    Note model for per-user book annotations.

    Attributes:
        id: Primary key
        user_id: Author of the note
        book_id: Annotated book
        note_text: Note body
        page_number: Optional page reference
    """

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

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

    note_text: Mapped[str] = mapped_column(Text, nullable=False)
    page_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

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

    book = relationship("Book", back_populates="notes")
    user = relationship("User", back_populates="notes")

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, book_id={self.book_id}, user_id={self.user_id})>"
