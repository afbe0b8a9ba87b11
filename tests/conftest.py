"""
pytest Fixtures for Book Review Tests

This file contains shared fixtures used across all test files.

FIXTURE SCOPES:
- function (default): New instance per test function

Every test gets its own in-memory SQLite database. Repositories commit
their own transactions, so an outer rollback cannot undo fixture data;
a fresh engine per test keeps tests isolated instead.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
# This disables rate limiting and CSRF, lowers the bcrypt cost and keeps
# the database and uploads out of the working directory.
import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="bookreview-tests-")

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CSRF_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'app.sqlite')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bookreview.config import get_settings
from bookreview.database import create_tables, drop_tables, enable_sqlite_foreign_keys, get_db
from bookreview.main import app
from bookreview.models import Book, Note, Review, User
from bookreview.repositories import (
    BookRepository,
    NoteRepository,
    ReviewRepository,
    UserRepository,
)
from bookreview.services.uploads import clear_upload_dir

PASSWORD = "SecurePass123"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def engine():
    """
    SQLite in-memory engine with foreign keys enforced.

    StaticPool keeps the single connection alive; without it the in-memory
    database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    create_tables(bind=engine)

    yield engine

    drop_tables(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    """Session bound to the per-test engine."""
    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )
    session = TestSessionLocal()

    yield session

    session.close()


@pytest.fixture
def upload_dir() -> Generator[str, None, None]:
    """The configured upload directory, emptied after each test."""
    directory = get_settings().upload_dir
    clear_upload_dir(directory)

    yield directory

    clear_upload_dir(directory)


@pytest.fixture
def client(db_session: Session, upload_dir: str) -> Generator[TestClient, None, None]:
    """
    Test client using the test database.

    We override the get_db dependency to use our test session.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client: TestClient, sample_user: User) -> TestClient:
    """Client whose session is logged in as sample_user."""
    response = client.post(
        "/login",
        data={"username": sample_user.username, "password": PASSWORD},
        follow_redirects=False,
    )
    assert response.status_code == 303
    return client


def login(client: TestClient, username: str, password: str = PASSWORD) -> None:
    response = client.post(
        "/login",
        data={"username": username, "password": password},
        follow_redirects=False,
    )
    assert response.status_code == 303


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def sample_user(db_session: Session) -> User:
    user_id = UserRepository(db_session).create("testuser", "testuser@example.com", PASSWORD)
    return db_session.get(User, user_id)


@pytest.fixture
def second_user(db_session: Session) -> User:
    """A second user for ownership scenarios."""
    user_id = UserRepository(db_session).create("seconduser", "second@example.com", PASSWORD)
    return db_session.get(User, user_id)


@pytest.fixture
def sample_book(db_session: Session, sample_user: User) -> Book:
    book_id = BookRepository(db_session).create(
        title="Nineteen Eighty-Four",
        author="George Orwell",
        isbn="9780451524935",
        publication_year=1949,
        status="reading",
        image_url="",
        user_id=sample_user.id,
    )
    return BookRepository(db_session).retrieve(book_id)


@pytest.fixture
def sample_note(db_session: Session, sample_book: Book, sample_user: User) -> Note:
    repo = NoteRepository(db_session)
    note_id = repo.create(
        user_id=sample_user.id,
        book_id=sample_book.id,
        note_text="Big Brother is watching.",
        page_number=3,
    )
    return repo.retrieve(sample_user.id, note_id)


@pytest.fixture
def sample_review(db_session: Session, sample_book: Book, sample_user: User) -> Review:
    repo = ReviewRepository(db_session)
    review_id = repo.create(
        user_id=sample_user.id,
        book_id=sample_book.id,
        rating=5,
        review_text="Chilling and timeless.",
    )
    return repo.retrieve(sample_user.id, review_id)
