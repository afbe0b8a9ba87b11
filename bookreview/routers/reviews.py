"""
Reviews Router

Ratings and reviews of books.

Listing the reviews of a book is public; editing and deleting are limited
to the reviewer. Endpoint behavior:
- Create: 204 with "HX-Trigger: update-reviews"
- Update: HX-Location back to the book page
- Delete: 200 with an empty body
"""

import logging

from fastapi import APIRouter, Depends, Request
from starlette.responses import PlainTextResponse, Response

from bookreview.config import get_settings
from bookreview.dependencies import (
    CurrentContext,
    DbSession,
    ReviewFormData,
    Templates,
    require_user,
    verify_csrf,
)
from bookreview.forms import ReviewForm
from bookreview.repositories import BookRepository, ReviewRepository
from bookreview.utils.htmx import htmx_location, htmx_trigger

logger = logging.getLogger(__name__)
settings = get_settings()

REVIEWS_UPDATED = "update-reviews"

router = APIRouter(tags=["Reviews"], dependencies=[Depends(verify_csrf)])


# =============================================================================
# Listing
# =============================================================================

@router.get("/books/{book_id:int}/reviews", summary="List reviews of a book")
def list_reviews(
    request: Request,
    book_id: int,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Every user's review of a book.

    Errors:
        404: no such book
    """
    book = BookRepository(db).retrieve(book_id)
    reviews = ReviewRepository(db).list(book.id)
    return templates.render(
        request, "partials/reviews.html", ctx, book=book, reviews=reviews
    )


@router.get("/reviews/recent", summary="Most recent reviews")
def recent_reviews(
    request: Request,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        none
    """
    reviews = ReviewRepository(db).recent(settings.recent_limit)
    return templates.render(request, "partials/recent_reviews.html", ctx, reviews=reviews)


@router.get("/reviews/count", summary="Number of reviews the user has written")
def count_reviews(db: DbSession, ctx: CurrentContext) -> Response:
    """
    Plain-text count; 204 for anonymous users.

    Errors:
        none
    """
    if not ctx.is_authenticated:
        return Response(status_code=204)
    return PlainTextResponse(str(ReviewRepository(db).count(ctx.user_id)))


# =============================================================================
# Create
# =============================================================================

@router.get("/books/{book_id:int}/reviews/add", summary="New review form")
def add_review_form(
    request: Request,
    book_id: int,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        404: no such book
    """
    book = BookRepository(db).retrieve(book_id)
    form = ReviewForm(book_id=book.id)
    return templates.render(request, "partials/review_form.html", ctx, book=book, form=form)


@router.post("/books/{book_id:int}/reviews", summary="Create a review")
def create_review(
    request: Request,
    book_id: int,
    form: ReviewFormData,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        401: not logged in
        404: no such book
        422: rating above 5 or blank review text
    """
    form.book_id = book_id

    if not form.validate():
        return templates.render(request, "partials/review_form.html", ctx, 422, form=form)

    user_id = require_user(ctx)
    book = BookRepository(db).retrieve(book_id)

    ReviewRepository(db).create(
        user_id=user_id,
        book_id=book.id,
        rating=form.rating,
        review_text=form.review_text,
    )
    return htmx_trigger(REVIEWS_UPDATED)


# =============================================================================
# Update & Delete
# =============================================================================

@router.post("/books/{book_id:int}/reviews/delete", summary="Delete a review")
def delete_review(
    request: Request,
    book_id: int,
    form: ReviewFormData,
    db: DbSession,
    ctx: CurrentContext,
) -> Response:
    """
    Errors:
        400: review ID is not a number
        401: not logged in
        404: no such review, or someone else's
    """
    user_id = require_user(ctx)
    ReviewRepository(db).delete(user_id=user_id, review_id=form.id)
    return Response(status_code=200)


@router.get("/books/{book_id:int}/reviews/{review_id:int}/edit", summary="Edit review form")
def edit_review_form(
    request: Request,
    book_id: int,
    review_id: int,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        401: not logged in
        404: no such review, or someone else's
    """
    user_id = require_user(ctx)
    review = ReviewRepository(db).retrieve(user_id, review_id)
    book = BookRepository(db).retrieve(review.book_id)

    form = ReviewForm(
        id=review.id,
        book_id=review.book_id,
        rating=review.rating,
        review_text=review.review_text,
    )
    return templates.render(
        request, "partials/review_form.html", ctx, book=book, review=review, form=form
    )


@router.post("/books/{book_id:int}/reviews/{review_id:int}", summary="Update a review")
def update_review(
    request: Request,
    book_id: int,
    review_id: int,
    form: ReviewFormData,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        401: not logged in
        404: no such review, or someone else's
        422: rating above 5 or blank review text
    """
    form.id = review_id
    form.book_id = book_id

    if not form.validate():
        return templates.render(request, "partials/review_form.html", ctx, 422, form=form)

    user_id = require_user(ctx)
    repo = ReviewRepository(db)
    review = repo.retrieve(user_id, review_id)
    repo.update(
        user_id=user_id,
        review_id=review.id,
        rating=form.rating,
        review_text=form.review_text,
    )
    return htmx_location(request, f"/books/{review.book_id}")
