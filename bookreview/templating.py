"""
Template Rendering

Server-rendered pages use Jinja2 through Starlette's Jinja2Templates.

Two kinds of templates live under bookreview/templates/:
- full pages (books.html, login.html, ...) that extend base.html
- fragments under partials/ that HTMX swaps into an existing page

Template Helpers
================
build_template_functions() builds the helper registry once, when the app
is created. The registry is a read-only mapping; the Renderer copies it
into the Jinja2 environment globals and nothing changes it afterwards.

    {{ human_date(book.created_at) }}      -> 05 Mar 2025 at 14:30
    {% for i in iterate(5) %}...           -> stars
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from fastapi.templating import Jinja2Templates
from starlette.requests import Request
from starlette.responses import Response

from bookreview.services.security import get_csrf_token

if TYPE_CHECKING:
    from bookreview.dependencies import RequestContext

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
FLASH_SESSION_KEY = "flash"


# =============================================================================
# Helper Functions
# =============================================================================

def human_date(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%d %b %Y at %H:%M")


def format_date(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")


def iterate(count: int) -> list[int]:
    return list(range(count))


def build_template_functions() -> Mapping[str, Callable[..., Any]]:
    """Return the immutable name -> function registry used by templates."""
    return MappingProxyType({
        "human_date": human_date,
        "format_date": format_date,
        "iterate": iterate,
        "add": lambda a, b: a + b,
        "sub": lambda a, b: a - b,
        "mul": lambda a, b: a * b,
        "min": lambda a, b: a if a < b else b,
    })


# =============================================================================
# Flash Messages
# =============================================================================

def set_flash(request: Request, message: str) -> None:
    """Store a one-time message shown on the next rendered page."""
    request.session[FLASH_SESSION_KEY] = message


def pop_flash(request: Request) -> str:
    return request.session.pop(FLASH_SESSION_KEY, "")


# =============================================================================
# Renderer
# =============================================================================

class Renderer:
    """
    Renders full pages and fragments with the common template data.

    Every template receives:
    - csrf_token: hidden field value for forms
    - flash: one-time message, removed from the session once shown
    - current_year: for the footer
    - is_authenticated, username, authenticated_user_id: from RequestContext
    """

    def __init__(
        self,
        functions: Mapping[str, Callable[..., Any]],
        directory: str | Path = TEMPLATES_DIR,
    ) -> None:
        self.templates = Jinja2Templates(directory=str(directory))
        self.templates.env.globals.update(functions)
        self.functions = functions

    def template_data(self, request: Request, ctx: "RequestContext") -> dict[str, Any]:
        return {
            "csrf_token": get_csrf_token(request),
            "flash": pop_flash(request),
            "current_year": datetime.now().year,
            "is_authenticated": ctx.is_authenticated,
            "username": ctx.username,
            "authenticated_user_id": ctx.user_id,
        }

    def render(
        self,
        request: Request,
        name: str,
        ctx: "RequestContext",
        status_code: int = 200,
        **data: Any,
    ) -> Response:
        """Render name with the common template data plus data."""
        context = self.template_data(request, ctx)
        context.update(data)
        return self.templates.TemplateResponse(
            request,
            name,
            context,
            status_code=status_code,
        )
