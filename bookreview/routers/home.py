"""
Home Router

The landing page. Counters and the recent books/reviews panels on it load
themselves through HTMX from the count and recent endpoints.
"""

from fastapi import APIRouter, Request
from starlette.responses import Response

from bookreview.dependencies import CurrentContext, Templates

router = APIRouter(tags=["Home"])


@router.get("/", summary="Home page")
def home_page(request: Request, ctx: CurrentContext, templates: Templates) -> Response:
    """
    Errors:
        none
    """
    return templates.render(request, "index.html", ctx)
