"""
Security Service

Handles password hashing and CSRF tokens.

Security Features:
==================
1. Password hashing with bcrypt (passlib), work factor from settings
2. Constant-time password verification
3. Per-session CSRF tokens compared in constant time

Usage:
    from bookreview.services.security import hash_password, verify_password

    hashed = hash_password("SecurePass123")
    is_valid = verify_password("SecurePass123", hashed)
"""

import logging
import secrets

from passlib.context import CryptContext
from starlette.requests import Request

from bookreview.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# -------------------------------------------------------------------------
# Password Hashing Configuration
# -------------------------------------------------------------------------
# bcrypt is deliberately slow; bcrypt__rounds is the work factor (each
# increment doubles the cost). Tests lower it through BCRYPT_ROUNDS.
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Example:
        >>> hashed = hash_password("SecurePass123")
        >>> hashed.startswith("$2b$")
        True
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Uses constant-time comparison to prevent timing attacks.
    """
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> None:
    """
    Spend the time of a real verification.

    Called when the username does not exist so that response time does not
    reveal whether an account is registered.
    """
    pwd_context.dummy_verify()


# -------------------------------------------------------------------------
# CSRF Tokens
# -------------------------------------------------------------------------
CSRF_SESSION_KEY = "csrf_token"
CSRF_FORM_FIELD = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"


def get_csrf_token(request: Request) -> str:
    """Return the session's CSRF token, issuing one on first use."""
    token = request.session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        request.session[CSRF_SESSION_KEY] = token
    return token


def csrf_token_matches(request: Request, submitted: str | None) -> bool:
    expected = request.session.get(CSRF_SESSION_KEY)
    if not expected or not submitted:
        return False
    return secrets.compare_digest(expected, submitted)
