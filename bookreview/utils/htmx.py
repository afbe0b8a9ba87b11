"""
HTMX Response Helpers

HTMX sends "HX-Request: true" on requests it issues. Handlers use that to
choose between a full page and a fragment, and answer mutations with
headers HTMX understands:

- HX-Trigger: fire a client-side event (e.g. "update-notes") so the
  affected list reloads itself
- HX-Location: client-side navigation, a JSON object
  {"path": "/books/3", "target": "#books-content", "swap": "innerHTML"}

Plain browser requests get an ordinary 303 redirect instead of
HX-Location.
"""

import json

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

BOOKS_CONTENT_TARGET = "#books-content"


def is_htmx(request: Request) -> bool:
    return request.headers.get("HX-Request") == "true"


def htmx_location(
    request: Request,
    path: str,
    target: str = BOOKS_CONTENT_TARGET,
    swap: str = "innerHTML",
) -> Response:
    """Navigate the client to path, swapping the result into target."""
    if not is_htmx(request):
        return RedirectResponse(path, status_code=303)

    location = json.dumps({"path": path, "target": target, "swap": swap})
    return Response(status_code=200, headers={"HX-Location": location})


def htmx_trigger(event: str) -> Response:
    """No content, plus an event the page listens for."""
    return Response(status_code=204, headers={"HX-Trigger": event})
