"""
Test Suite for the Book Review application

Test Organization:
- conftest.py: Shared fixtures (per-test database, client, sample data)
- test_validation.py, test_forms.py: Form decoding and validation rules
- test_*_repository.py: Persistence, ownership scoping, pagination, search
- test_uploads.py: Cover image storage
- test_*_routes.py: Pages, HTMX fragments, sessions and CSRF

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_books_routes.py

    # Run with verbose output
    pytest -v
"""
