"""
Notes Router

HTMX fragments for the private notes a user keeps on a book.

- Creating or updating a note answers 204 with "HX-Trigger: update-notes";
  the notes list on the page listens for that event and reloads itself
- Deleting answers 200 with an empty body; HTMX removes the element
- Notes are scoped by user: someone else's note is a 404
"""

import logging

from fastapi import APIRouter, Depends, Request
from starlette.responses import PlainTextResponse, Response

from bookreview.dependencies import (
    CurrentContext,
    DbSession,
    NoteFormData,
    Templates,
    require_user,
    verify_csrf,
)
from bookreview.forms import NoteForm
from bookreview.repositories import BookRepository, NoteRepository
from bookreview.utils.htmx import htmx_trigger

logger = logging.getLogger(__name__)

NOTES_UPDATED = "update-notes"

router = APIRouter(tags=["Notes"], dependencies=[Depends(verify_csrf)])


@router.get("/books/{book_id:int}/notes", summary="List the user's notes on a book")
def list_notes(
    request: Request,
    book_id: int,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    The user's own notes on a book; anonymous users see none.

    Errors:
        404: no such book
    """
    book = BookRepository(db).retrieve(book_id)
    notes = NoteRepository(db).list(book.id, ctx.user_id)
    return templates.render(request, "partials/notes.html", ctx, book=book, notes=notes)


@router.get("/books/{book_id:int}/notes/add", summary="New note form")
def add_note_form(
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
    form = NoteForm(book_id=book.id)
    return templates.render(request, "partials/note_form.html", ctx, book=book, form=form)


@router.post("/books/{book_id:int}/notes", summary="Create a note")
def create_note(
    request: Request,
    book_id: int,
    form: NoteFormData,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        401: not logged in
        404: no such book
        422: blank note text
    """
    form.book_id = book_id

    if not form.validate():
        return templates.render(request, "partials/note_form.html", ctx, 422, form=form)

    user_id = require_user(ctx)
    book = BookRepository(db).retrieve(book_id)

    NoteRepository(db).create(
        user_id=user_id,
        book_id=book.id,
        note_text=form.note_text,
        page_number=form.page_number,
    )
    return htmx_trigger(NOTES_UPDATED)


@router.post("/books/{book_id:int}/notes/delete", summary="Delete a note")
def delete_note(
    request: Request,
    book_id: int,
    form: NoteFormData,
    db: DbSession,
    ctx: CurrentContext,
) -> Response:
    """
    Errors:
        400: note ID is not a number
        401: not logged in
        404: no such note, or someone else's
    """
    user_id = require_user(ctx)
    NoteRepository(db).delete(user_id=user_id, note_id=form.id)
    return Response(status_code=200)


@router.get("/books/{book_id:int}/notes/{note_id:int}/edit", summary="Edit note form")
def edit_note_form(
    request: Request,
    book_id: int,
    note_id: int,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        401: not logged in
        404: no such note, or someone else's
    """
    user_id = require_user(ctx)
    note = NoteRepository(db).retrieve(user_id, note_id)
    book = BookRepository(db).retrieve(note.book_id)

    form = NoteForm(
        id=note.id,
        book_id=note.book_id,
        note_text=note.note_text,
        page_number=note.page_number,
    )
    return templates.render(
        request, "partials/note_form.html", ctx, book=book, note=note, form=form
    )


@router.post("/books/{book_id:int}/notes/{note_id:int}", summary="Update a note")
def update_note(
    request: Request,
    book_id: int,
    note_id: int,
    form: NoteFormData,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Errors:
        401: not logged in
        404: no such note, or someone else's
        422: blank note text
    """
    form.id = note_id
    form.book_id = book_id

    if not form.validate():
        return templates.render(request, "partials/note_form.html", ctx, 422, form=form)

    user_id = require_user(ctx)
    NoteRepository(db).update(
        user_id=user_id,
        note_id=note_id,
        note_text=form.note_text,
        page_number=form.page_number,
    )
    return htmx_trigger(NOTES_UPDATED)


@router.get("/notes/count", summary="Number of notes the user has written")
def count_notes(db: DbSession, ctx: CurrentContext) -> Response:
    """
    Plain-text count; 204 for anonymous users.

    Errors:
        none
    """
    if not ctx.is_authenticated:
        return Response(status_code=204)
    return PlainTextResponse(str(NoteRepository(db).count(ctx.user_id)))
