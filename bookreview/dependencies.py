"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle.

Common Dependency Patterns used here:
- Database sessions (per-request)
- The request context (who is logged in)
- Decoded form objects
- CSRF verification
- The template renderer
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated, TypeVar

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from starlette.datastructures import FormData

from bookreview.config import get_settings
from bookreview.database import get_db
from bookreview.forms import (
    BookForm,
    FormModel,
    LoginForm,
    NoteForm,
    RegisterForm,
    ReviewForm,
)
from bookreview.repositories import LookupField, UserRepository
from bookreview.services.security import CSRF_FORM_FIELD, CSRF_HEADER, csrf_token_matches
from bookreview.services.uploads import RequestTooLargeError
from bookreview.templating import Renderer

settings = get_settings()

USER_ID_SESSION_KEY = "authenticated_user_id"
USERNAME_SESSION_KEY = "authenticated_username"

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
# Instead of writing:
#   def list_books(db: Session = Depends(get_db)):
#
# You can write:
#   def list_books(db: DbSession):

DbSession = Annotated[Session, Depends(get_db)]


# =============================================================================
# Request Context
# =============================================================================
@dataclass(frozen=True)
class RequestContext:
    """
    Who is making the request.

    user_id is 0 for anonymous requests. A session that still names a user
    who no longer exists is treated as anonymous.
    """

    user_id: int = 0
    username: str = ""
    is_authenticated: bool = False


ANONYMOUS = RequestContext()


def get_request_context(request: Request, db: DbSession) -> RequestContext:
    user_id = request.session.get(USER_ID_SESSION_KEY, 0)
    if not user_id:
        return ANONYMOUS

    if not UserRepository(db).exists(LookupField.ID, user_id):
        return ANONYMOUS

    return RequestContext(
        user_id=user_id,
        username=request.session.get(USERNAME_SESSION_KEY, ""),
        is_authenticated=True,
    )


CurrentContext = Annotated[RequestContext, Depends(get_request_context)]


def login_session(request: Request, user_id: int, username: str) -> None:
    """Start a fresh authenticated session; earlier session data is dropped."""
    request.session.clear()
    request.session[USER_ID_SESSION_KEY] = user_id
    request.session[USERNAME_SESSION_KEY] = username


def logout_session(request: Request) -> None:
    request.session.clear()


def require_user(ctx: RequestContext) -> int:
    """
    Return the authenticated user's id for a mutating request.

    Raises:
        HTTPException: 401 when nobody is logged in
    """
    if ctx.user_id == 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="user not authenticated",
        )
    return ctx.user_id


# =============================================================================
# Template Renderer
# =============================================================================
def get_renderer(request: Request) -> Renderer:
    return request.app.state.renderer


Templates = Annotated[Renderer, Depends(get_renderer)]


# =============================================================================
# Form Decoding
# =============================================================================
async def read_form(request: Request) -> FormData:
    """
    Parse the urlencoded or multipart body, bounded by max_upload_size.

    Starlette caches the parsed form on the request, so later calls are
    free.
    """
    content_length = request.headers.get("content-length", "")
    if content_length.isdigit() and int(content_length) > settings.max_upload_size:
        raise RequestTooLargeError(settings.max_upload_size)
    return await request.form()


F = TypeVar("F", bound=FormModel)


def form_dependency(form_cls: type[F]) -> Callable[[Request], Awaitable[F]]:
    """Build a dependency that decodes the request body into form_cls."""

    async def dependency(request: Request) -> F:
        data = await read_form(request)
        return form_cls.from_form(data)

    return dependency


LoginFormData = Annotated[LoginForm, Depends(form_dependency(LoginForm))]
RegisterFormData = Annotated[RegisterForm, Depends(form_dependency(RegisterForm))]
BookFormData = Annotated[BookForm, Depends(form_dependency(BookForm))]
NoteFormData = Annotated[NoteForm, Depends(form_dependency(NoteForm))]
ReviewFormData = Annotated[ReviewForm, Depends(form_dependency(ReviewForm))]


# =============================================================================
# CSRF Protection
# =============================================================================
async def verify_csrf(request: Request) -> None:
    """
    Reject POST requests without the session's CSRF token.

    The token is read from the csrf_token form field, or from the
    X-CSRF-Token header that HTMX requests carry.

    Raises:
        HTTPException: 400 when the token is missing or wrong
    """
    if not settings.csrf_enabled or request.method != "POST":
        return

    submitted = request.headers.get(CSRF_HEADER)
    if not submitted:
        data = await read_form(request)
        value = data.get(CSRF_FORM_FIELD)
        submitted = value if isinstance(value, str) else None

    if not csrf_token_matches(request, submitted):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="invalid CSRF token",
        )
