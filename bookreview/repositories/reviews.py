"""
Review Repository

Reviews are listed publicly per book, but retrieval, update and delete are
scoped by the reviewer's user_id. Another user's review is reported as
NoRecordError, the same as a missing one.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from bookreview.models import Review
from bookreview.repositories.errors import NoRecordError

logger = logging.getLogger(__name__)


class ReviewRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, user_id: int, book_id: int, rating: int, review_text: str) -> int:
        review = Review(
            user_id=user_id,
            book_id=book_id,
            rating=rating,
            review_text=review_text,
        )
        try:
            self.db.add(review)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Review created: id={review.id}, book_id={book_id}")
        return review.id

    def retrieve(self, user_id: int, review_id: int) -> Review:
        stmt = select(Review).where(Review.user_id == user_id, Review.id == review_id)
        review = self.db.execute(stmt).scalar_one_or_none()
        if review is None:
            raise NoRecordError()
        return review

    def update(self, user_id: int, review_id: int, rating: int, review_text: str) -> None:
        stmt = (
            update(Review)
            .where(Review.user_id == user_id, Review.id == review_id)
            .values(rating=rating, review_text=review_text)
        )
        self._execute_one(stmt)

    def delete(self, user_id: int, review_id: int) -> None:
        stmt = delete(Review).where(Review.user_id == user_id, Review.id == review_id)
        self._execute_one(stmt)

    def list(self, book_id: int) -> Sequence[Review]:
        """
        All reviews of a book, oldest first, with the reviewer loaded so
        templates can show review.username.
        """
        stmt = (
            select(Review)
            .options(joinedload(Review.user))
            .where(Review.book_id == book_id)
            .order_by(Review.created_at, Review.id)
        )
        return self.db.execute(stmt).scalars().all()

    def count(self, user_id: int) -> int:
        stmt = select(func.count(Review.id)).where(Review.user_id == user_id)
        return self.db.execute(stmt).scalar_one()

    def recent(self, limit: int = 2) -> Sequence[Review]:
        """Newest reviews across all books, with the book title loaded."""
        stmt = (
            select(Review)
            .options(joinedload(Review.book), joinedload(Review.user))
            .order_by(Review.created_at.desc(), Review.id.desc())
            .limit(limit)
        )
        return self.db.execute(stmt).scalars().all()

    def _execute_one(self, stmt) -> None:
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
