"""
Note Repository

Notes are private to their author: every query is scoped by user_id, and a
note owned by someone else is reported as NoRecordError.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookreview.models import Note
from bookreview.repositories.errors import NoRecordError

logger = logging.getLogger(__name__)


class NoteRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        user_id: int,
        book_id: int,
        note_text: str,
        page_number: int | None = None,
    ) -> int:
        note = Note(
            user_id=user_id,
            book_id=book_id,
            note_text=note_text,
            page_number=page_number,
        )
        try:
            self.db.add(note)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Note created: id={note.id}, book_id={book_id}")
        return note.id

    def retrieve(self, user_id: int, note_id: int) -> Note:
        stmt = select(Note).where(Note.user_id == user_id, Note.id == note_id)
        note = self.db.execute(stmt).scalar_one_or_none()
        if note is None:
            raise NoRecordError()
        return note

    def update(
        self,
        user_id: int,
        note_id: int,
        note_text: str,
        page_number: int | None = None,
    ) -> None:
        stmt = (
            update(Note)
            .where(Note.user_id == user_id, Note.id == note_id)
            .values(note_text=note_text, page_number=page_number)
        )
        self._execute_one(stmt)

    def delete(self, user_id: int, note_id: int) -> None:
        stmt = delete(Note).where(Note.user_id == user_id, Note.id == note_id)
        self._execute_one(stmt)

    def list(self, book_id: int, user_id: int) -> Sequence[Note]:
        """The caller's notes on one book, oldest first."""
        stmt = (
            select(Note)
            .where(Note.book_id == book_id, Note.user_id == user_id)
            .order_by(Note.created_at, Note.id)
        )
        return self.db.execute(stmt).scalars().all()

    def count(self, user_id: int) -> int:
        stmt = select(func.count(Note.id)).where(Note.user_id == user_id)
        return self.db.execute(stmt).scalar_one()

    def _execute_one(self, stmt) -> None:
        """Run an UPDATE/DELETE that must touch exactly the caller's row."""
        try:
            if self.db.execute(stmt).rowcount == 0:
                raise NoRecordError()
            self.db.commit()
        except NoRecordError:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise
