"""
Book Review Application Package

A server-rendered site for tracking books, keeping reading notes and
writing reviews, built on FastAPI, SQLAlchemy, Jinja2 and HTMX.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy engine, session factory and table creation
- main.py: FastAPI application factory and configuration
- dependencies.py: Request context, form decoding and CSRF dependencies
- templating.py: Jinja2 renderer and template helpers
- models/: SQLAlchemy ORM models
- forms/: Form decoding and validation
- repositories/: Persistence operations and domain errors
- routers/: Page and fragment handlers
- services/: Password hashing, uploads, rate limiting
- utils/: HTMX helpers
- templates/: Jinja2 pages and partials
"""

__version__ = "0.1.0"
