"""
Books Router

Pages and HTMX fragments for the book catalogue.

Each endpoint follows the same shape:
    decode form -> validate -> authorize -> repository -> response

- GET endpoints render a full page, or only the fragment when the request
  comes from HTMX (HX-Request: true)
- Create/update/delete answer with HX-Location (HTMX) or a 303 redirect
- Validation and duplicate ISBN errors re-render the form with 422
- A book owned by someone else is reported as 404, like a missing one

Static paths (/books/add, /books/search, ...) are declared before
/books/{book_id} so they are never read as an id.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import PlainTextResponse, Response

from bookreview.config import get_settings
from bookreview.dependencies import (
    BookFormData,
    CurrentContext,
    DbSession,
    Templates,
    require_user,
    verify_csrf,
)
from bookreview.forms import BookForm
from bookreview.models import Book, ReadingStatus
from bookreview.repositories import BookRepository, DuplicateIsbnError, NoRecordError
from bookreview.services.uploads import (
    InvalidFileTypeError,
    has_file,
    remove_image,
    save_image,
)
from bookreview.utils.htmx import htmx_location, is_htmx

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    dependencies=[Depends(verify_csrf)],
)


# =============================================================================
# Helper Functions
# =============================================================================

def parse_page(value: str | None) -> int:
    """Query-string page number; anything that is not a positive int is page 1."""
    if value and value.isdigit() and int(value) > 0:
        return int(value)
    return 1


def get_owned_book(db: DbSession, book_id: int, user_id: int) -> Book:
    """
    Get a book the user owns or raise NoRecordError (404).

    Someone else's book is indistinguishable from a missing one.
    """
    book = BookRepository(db).retrieve(book_id)
    if book.owner_id != user_id:
        raise NoRecordError()
    return book


def form_from_book(book: Book) -> BookForm:
    return BookForm(
        id=book.id,
        title=book.title,
        author=book.author,
        isbn=book.isbn,
        publication_year=book.publication_year,
        status=book.status or ReadingStatus.WANT_TO_READ.value,
        image_url=book.image_url,
        current_image_url=book.image_url,
    )


def store_cover(form: BookForm) -> bool:
    """
    Save the submitted cover image and record its URL on the form.

    Returns False (with a non-field error on the form) when the file is
    not a JPEG or PNG. No file at all is fine.
    """
    if not has_file(form.image_upload):
        return True

    try:
        form.image_url = save_image(
            form.image_upload,
            settings.upload_dir,
            settings.max_upload_size,
        )
    except InvalidFileTypeError as exc:
        logger.warning(f"Rejected upload: {exc}")
        form.validator.add_non_field_error("Invalid file type")
        return False

    return True


def status_choices() -> list[ReadingStatus]:
    return list(ReadingStatus)


# =============================================================================
# Listing & Search
# =============================================================================

@router.get("", summary="List books")
def list_books(
    request: Request,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
    page: str | None = None,
) -> Response:
    """
    Paginated catalogue, newest first.

    A page past the end shows the last page instead of an empty list.

    Errors:
        none; a page that is not a positive number is page 1
    """
    paginated = BookRepository(db).list(parse_page(page), settings.page_size)

    name = "partials/book_cards.html" if is_htmx(request) else "books.html"
    return templates.render(
        request,
        name,
        ctx,
        books=paginated.books,
        pagination=paginated,
    )


@router.get("/search", summary="Search books")
def search_books(
    request: Request,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
    search: str = "",
) -> Response:
    """
    Books whose title, notes or reviews contain the search term.

    Errors:
        none; an empty term matches every book
    """
    books = BookRepository(db).filter(search)
    return templates.render(request, "partials/book_cards.html", ctx, books=books)


@router.get("/count", summary="Total number of books")
def count_books(db: DbSession) -> Response:
    """
    Plain-text count of every book in the catalogue.

    Errors:
        none
    """
    return PlainTextResponse(str(BookRepository(db).count()))


@router.get("/finished-count", summary="Books the user has finished")
def count_finished_books(db: DbSession, ctx: CurrentContext) -> Response:
    """
    Plain-text count; 204 for anonymous users.

    Errors:
        none
    """
    if not ctx.is_authenticated:
        return Response(status_code=204)
    return PlainTextResponse(str(BookRepository(db).count_finished(ctx.user_id)))


@router.get("/recent", summary="Most recently added books")
def recent_books(
    request: Request,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        none
    """
    books = BookRepository(db).recent(settings.recent_limit)
    return templates.render(request, "partials/recent_books.html", ctx, books=books)


# =============================================================================
# Create
# =============================================================================

@router.get("/add", summary="New book form")
def add_book_page(request: Request, ctx: CurrentContext, templates: Templates) -> Response:
    """
    Errors:
        none; login is checked when the form is submitted
    """
    name = "partials/create_book.html" if is_htmx(request) else "books_add.html"
    return templates.render(
        request,
        name,
        ctx,
        form=BookForm(),
        statuses=status_choices(),
    )


@router.post("", summary="Create a book")
def create_book(
    request: Request,
    form: BookFormData,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Create a book owned by the current user, with an optional cover image.

    Errors:
        401: not logged in
        422: invalid fields, invalid file type or duplicate ISBN
    """
    name = "partials/book_form.html" if is_htmx(request) else "books_add.html"

    def invalid() -> Response:
        return templates.render(
            request, name, ctx, 422, form=form, statuses=status_choices()
        )

    if not form.validate():
        return invalid()

    user_id = require_user(ctx)

    if not store_cover(form):
        return invalid()

    try:
        book_id = BookRepository(db).create(
            title=form.title,
            author=form.author,
            isbn=form.isbn,
            publication_year=form.publication_year,
            status=form.status,
            image_url=form.image_url,
            user_id=user_id,
        )
    except DuplicateIsbnError:
        remove_image(form.image_url, settings.upload_dir)
        form.image_url = ""
        form.validator.add_field_error("isbn", "This ISBN is already registered.")
        return invalid()
    except SQLAlchemyError:
        remove_image(form.image_url, settings.upload_dir)
        raise

    return htmx_location(request, f"/books/{book_id}")


# =============================================================================
# Delete
# =============================================================================

@router.post("/delete", summary="Delete a book")
def delete_book(
    request: Request,
    form: BookFormData,
    db: DbSession,
    ctx: CurrentContext,
) -> Response:
    """
    Delete a book the current user owns, with its notes, reviews and cover.

    Errors:
        401: not logged in
        404: no such book, or owned by someone else
    """
    user_id = require_user(ctx)

    image_url = BookRepository(db).delete(form.id, user_id)
    remove_image(image_url, settings.upload_dir)

    return htmx_location(request, "/books")


# =============================================================================
# Detail & Update
# =============================================================================

@router.get("/{book_id:int}", summary="Book detail")
def book_detail(
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

    name = "partials/book_detail.html" if is_htmx(request) else "books_detail.html"
    return templates.render(request, name, ctx, book=book)


@router.get("/{book_id:int}/edit", summary="Edit book form")
def edit_book_page(
    request: Request,
    book_id: int,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        401: not logged in
        404: no such book, or someone else's
    """
    user_id = require_user(ctx)
    book = get_owned_book(db, book_id, user_id)

    name = "partials/book_update.html" if is_htmx(request) else "books_update.html"
    return templates.render(
        request,
        name,
        ctx,
        book=book,
        form=form_from_book(book),
        statuses=status_choices(),
    )


@router.post("/{book_id:int}", summary="Update a book")
def update_book(
    request: Request,
    book_id: int,
    form: BookFormData,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Update a book and its reading status.

    Without a new cover the stored image is kept. With one, the old file
    is removed once the database update has succeeded.

    Errors:
        401: not logged in
        404: no such book, or owned by someone else
        422: invalid fields, invalid file type or duplicate ISBN
    """
    form.id = book_id
    name = "partials/book_edit.html" if is_htmx(request) else "books_update.html"

    def invalid() -> Response:
        return templates.render(
            request, name, ctx, 422, form=form, statuses=status_choices()
        )

    if not form.validate():
        return invalid()

    user_id = require_user(ctx)
    book = get_owned_book(db, book_id, user_id)
    previous_image = book.image_url

    uploaded = has_file(form.image_upload)
    if not store_cover(form):
        return invalid()
    if not uploaded:
        form.image_url = previous_image

    try:
        BookRepository(db).update(
            book_id=book_id,
            user_id=user_id,
            title=form.title,
            author=form.author,
            isbn=form.isbn,
            publication_year=form.publication_year,
            status=form.status,
            image_url=form.image_url,
        )
    except DuplicateIsbnError:
        if uploaded:
            remove_image(form.image_url, settings.upload_dir)
            form.image_url = previous_image
        form.validator.add_field_error("isbn", "This ISBN is already registered.")
        return invalid()
    except (NoRecordError, SQLAlchemyError):
        if uploaded:
            remove_image(form.image_url, settings.upload_dir)
        raise

    if uploaded and previous_image and previous_image != form.image_url:
        remove_image(previous_image, settings.upload_dir)

    return htmx_location(request, f"/books/{book_id}")
