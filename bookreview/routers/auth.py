"""
Authentication Router

Session-based login, logout and registration.

Authentication Flow:
====================
1. Register with username, email and password (POST /register)
2. Log in with username and password (POST /login)
3. The signed session cookie carries the user id from then on
4. Log out (POST /logout) clears the session

Security Notes:
- Passwords are hashed with bcrypt
- Wrong password and unknown username give the same error message
- The session is cleared on login, so no earlier session data survives
- Login and registration submissions are rate limited per client IP
"""

import logging

from fastapi import APIRouter, Depends, Request
from starlette.responses import RedirectResponse, Response

from bookreview.config import get_settings
from bookreview.dependencies import (
    CurrentContext,
    DbSession,
    LoginFormData,
    RegisterFormData,
    Templates,
    login_session,
    logout_session,
    verify_csrf,
)
from bookreview.forms import LoginForm, RegisterForm
from bookreview.repositories import (
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    UserRepository,
)
from bookreview.services.rate_limiter import limiter
from bookreview.templating import set_flash

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    tags=["Authentication"],
    dependencies=[Depends(verify_csrf)],
)


# =============================================================================
# Login / Logout
# =============================================================================

@router.get("/login", summary="Login page")
def login_page(request: Request, ctx: CurrentContext, templates: Templates) -> Response:
    """
    Errors:
        none
    """
    return templates.render(request, "login.html", ctx, form=LoginForm())


@router.post("/login", summary="Log in")
@limiter.limit(settings.rate_limit_auth)
def login(
    request: Request,
    form: LoginFormData,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Check the credentials and start an authenticated session.

    Errors:
        422: missing fields, or invalid username/password
    """
    if not form.validate():
        return templates.render(request, "login.html", ctx, 422, form=form)

    try:
        user_id = UserRepository(db).authenticate(form.username, form.password)
    except InvalidCredentialsError:
        form.validator.add_non_field_error("Invalid username or password.")
        return templates.render(request, "login.html", ctx, 422, form=form)

    login_session(request, user_id, form.username)
    logger.info(f"User logged in: id={user_id}")
    return RedirectResponse("/", status_code=303)


@router.post("/logout", summary="Log out")
def logout(request: Request) -> Response:
    """
    Errors:
        none
    """
    logout_session(request)
    set_flash(request, "You've been logged out successfully!")
    return RedirectResponse("/", status_code=303)


# =============================================================================
# Registration
# =============================================================================

@router.get("/register", summary="Registration page")
def register_page(request: Request, ctx: CurrentContext, templates: Templates) -> Response:
    """
    Errors:
        none
    """
    return templates.render(request, "register.html", ctx, form=RegisterForm())


@router.post("/register", summary="Register a new user")
@limiter.limit(settings.rate_limit_auth)
def register(
    request: Request,
    form: RegisterFormData,
    db: DbSession,
    ctx: CurrentContext,
    templates: Templates,
) -> Response:
    """
    Create an account and send the user to the login page.

    Errors:
        422: invalid fields, or username/email already registered
    """
    if not form.validate():
        return templates.render(request, "register.html", ctx, 422, form=form)

    try:
        UserRepository(db).create(form.username, form.email, form.password)
    except DuplicateEmailError:
        form.validator.add_field_error("email", "This email address is already registered.")
        return templates.render(request, "register.html", ctx, 422, form=form)
    except DuplicateUsernameError:
        form.validator.add_field_error("username", "This username is already registered.")
        return templates.render(request, "register.html", ctx, 422, form=form)

    set_flash(request, "Your signup was successful. Please log in.")
    return RedirectResponse("/login", status_code=303)
