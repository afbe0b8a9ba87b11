"""
Book Repository

CRUD, pagination, search and counts for books.

Every book is created together with the UserBook row that records its
owner and reading status. Create, update and delete each run as one
transaction: either every statement commits or none do.

Ownership is enforced through WHERE clauses on user_books, so a book that
belongs to someone else looks exactly like a missing one (NoRecordError).
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import delete, exists, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from bookreview.models import Book, Note, ReadingStatus, Review, UserBook
from bookreview.repositories.errors import (
    DuplicateIsbnError,
    NoRecordError,
    violates_unique,
)

logger = logging.getLogger(__name__)


@dataclass
class PaginatedBooks:
    """One page of books plus the metadata the pager needs."""

    books: list[Book] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0
    page: int = 1
    page_size: int = 8

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class BookRepository:
    """Persistence operations for books and their ownership rows."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # =========================================================================
    # Writes
    # =========================================================================

    def create(
        self,
        title: str,
        author: str,
        isbn: str,
        publication_year: int,
        status: str,
        image_url: str,
        user_id: int,
    ) -> int:
        """
        Insert a book and the UserBook row that assigns it to user_id.

        Both rows are written in one transaction; if either insert fails
        nothing is stored.

        Raises:
            DuplicateIsbnError: another book already has this ISBN
        """
        book = Book(
            title=title,
            author=author,
            isbn=isbn,
            publication_year=publication_year,
            image_url=image_url,
        )

        try:
            self.db.add(book)
            # flush assigns book.id for the association row
            self.db.flush()
            self.db.add(UserBook(user_id=user_id, book_id=book.id, status=status))
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if violates_unique(exc, "books", "isbn"):
                raise DuplicateIsbnError() from exc
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Book created: id={book.id}, user_id={user_id}")
        return book.id

    def update(
        self,
        book_id: int,
        user_id: int,
        title: str,
        author: str,
        isbn: str,
        publication_year: int,
        status: str,
        image_url: str,
    ) -> None:
        """
        Update a book and the caller's reading status in one transaction.

        Raises:
            NoRecordError: the book does not exist or user_id does not own it
            DuplicateIsbnError: the new ISBN belongs to another book
        """
        status_stmt = (
            update(UserBook)
            .where(UserBook.book_id == book_id, UserBook.user_id == user_id)
            .values(status=status)
        )
        book_stmt = (
            update(Book)
            .where(Book.id == book_id)
            .values(
                title=title,
                author=author,
                isbn=isbn,
                publication_year=publication_year,
                image_url=image_url,
            )
        )

        try:
            if self.db.execute(status_stmt).rowcount == 0:
                raise NoRecordError()
            if self.db.execute(book_stmt).rowcount == 0:
                raise NoRecordError()
            self.db.commit()
        except NoRecordError:
            self.db.rollback()
            raise
        except IntegrityError as exc:
            self.db.rollback()
            if violates_unique(exc, "books", "isbn"):
                raise DuplicateIsbnError() from exc
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Book updated: id={book_id}, user_id={user_id}")

    def delete(self, book_id: int, user_id: int) -> str:
        """
        Delete a book owned by user_id and return its image URL.

        user_books, notes and reviews rows go with it through ON DELETE
        CASCADE. The caller removes the image file.

        Raises:
            NoRecordError: the book does not exist or user_id does not own it
        """
        owned_stmt = select(
            exists().where(UserBook.book_id == book_id, UserBook.user_id == user_id)
        )

        try:
            if not self.db.execute(owned_stmt).scalar():
                raise NoRecordError()
            image_url = self.db.execute(
                select(Book.image_url).where(Book.id == book_id)
            ).scalar_one_or_none()
            result = self.db.execute(delete(Book).where(Book.id == book_id))
            if result.rowcount == 0:
                raise NoRecordError()
            self.db.commit()
        except NoRecordError:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Book deleted: id={book_id}, user_id={user_id}")
        return image_url or ""

    # =========================================================================
    # Reads
    # =========================================================================

    def retrieve(self, book_id: int) -> Book:
        """Return a book with its owner and status loaded."""
        stmt = (
            select(Book)
            .options(selectinload(Book.user_book))
            .where(Book.id == book_id)
        )
        book = self.db.execute(stmt).scalar_one_or_none()

        if book is None:
            raise NoRecordError()
        return book

    def list(self, page: int, page_size: int) -> PaginatedBooks:
        """
        Return one page of books, newest first.

        Out-of-range pages are clamped rather than rejected: a page past the
        end returns the last page, and page 1 is returned when there are no
        books at all.
        """
        total = self.count()
        total_pages = math.ceil(total / page_size) if total else 0

        page = min(page, total_pages) if total_pages else 1
        page = max(page, 1)
        offset = (page - 1) * page_size

        stmt = (
            select(Book)
            .options(selectinload(Book.user_book))
            .order_by(Book.created_at.desc(), Book.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        books = list(self.db.execute(stmt).scalars().all())

        return PaginatedBooks(
            books=books,
            total=total,
            total_pages=total_pages,
            page=page,
            page_size=page_size,
        )

    def filter(self, term: str) -> Sequence[Book]:
        """
        Find books whose title, notes or reviews contain term.

        Matching is a case-insensitive substring test. Note and review
        matches go through id subqueries, so each book appears once.
        """
        pattern = f"%{term.lower()}%"

        note_book_ids = (
            select(Note.book_id)
            .where(func.lower(Note.note_text).like(pattern))
        )
        review_book_ids = (
            select(Review.book_id)
            .where(func.lower(Review.review_text).like(pattern))
        )

        stmt = (
            select(Book)
            .options(selectinload(Book.user_book))
            .where(
                or_(
                    func.lower(Book.title).like(pattern),
                    Book.id.in_(note_book_ids),
                    Book.id.in_(review_book_ids),
                )
            )
            .order_by(Book.created_at.desc(), Book.id.desc())
        )
        return self.db.execute(stmt).scalars().all()

    def count(self) -> int:
        return self.db.execute(select(func.count(Book.id))).scalar_one()

    def recent(self, limit: int = 2) -> Sequence[Book]:
        stmt = (
            select(Book)
            .order_by(Book.created_at.desc(), Book.id.desc())
            .limit(limit)
        )
        return self.db.execute(stmt).scalars().all()

    def count_finished(self, user_id: int) -> int:
        """Number of books user_id has marked as finished."""
        stmt = select(func.count(UserBook.id)).where(
            UserBook.user_id == user_id,
            UserBook.status == ReadingStatus.FINISHED.value,
        )
        return self.db.execute(stmt).scalar_one()
