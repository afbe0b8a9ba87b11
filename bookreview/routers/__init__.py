"""
Routers Package

FastAPI routers grouped by area:
- home.py: / landing page
- auth.py: /login, /logout, /register
- books.py: /books/* pages, fragments and counters
- notes.py: /books/{id}/notes/* and /notes/count
- reviews.py: /books/{id}/reviews/*, /reviews/count, /reviews/recent

Each router is imported and registered in main.py.
"""

from bookreview.routers.auth import router as auth_router
from bookreview.routers.books import router as books_router
from bookreview.routers.home import router as home_router
from bookreview.routers.notes import router as notes_router
from bookreview.routers.reviews import router as reviews_router

__all__ = [
    "auth_router",
    "books_router",
    "home_router",
    "notes_router",
    "reviews_router",
]
