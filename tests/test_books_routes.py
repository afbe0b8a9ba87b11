"""
Tests for the /books pages, fragments and counters.
"""

import json
import logging
from pathlib import Path

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from bookreview.dependencies import settings
from bookreview.models import Book, User
from bookreview.repositories import BookRepository
from tests.conftest import login

HTMX = {"HX-Request": "true"}

BOOK_DATA = {
    "title": "Brave New World",
    "author": "Aldous Huxley",
    "isbn": "9780060850524",
    "publication_year": "1932",
    "status": "want_to_read",
}


def stored_files(upload_dir: str) -> list[Path]:
    return sorted(Path(upload_dir).iterdir())


class TestListBooks:
    """Tests for GET /books."""

    def test_full_page(self, client: TestClient, sample_book: Book):
        """Test that a normal request gets the full page."""
        response = client.get("/books")

        assert response.status_code == status.HTTP_200_OK
        assert "<html" in response.text
        assert sample_book.title in response.text

    def test_fragment_for_htmx(self, client: TestClient, sample_book: Book):
        """Test that an HTMX request gets only the book cards."""
        response = client.get("/books", headers=HTMX)

        assert response.status_code == status.HTTP_200_OK
        assert "<html" not in response.text
        assert sample_book.title in response.text

    def test_invalid_page_falls_back_to_first(self, client: TestClient, sample_book: Book):
        """Test that a non-numeric page shows page 1."""
        response = client.get("/books?page=abc")

        assert response.status_code == status.HTTP_200_OK
        assert sample_book.title in response.text

    def test_page_past_the_end_shows_last_page(
        self, client: TestClient, db_session: Session, sample_user: User
    ):
        """Test that page 5 of 2 shows the last page."""
        repo = BookRepository(db_session)
        for i in range(10):
            repo.create(f"Volume {i}", "Author", f"isbn-{i}", 0, "reading", "", sample_user.id)

        response = client.get("/books?page=5", headers=HTMX)

        assert "Page 2 of 2" in response.text
        assert "Volume 1<" in response.text
        assert "Volume 0<" in response.text
        assert "Volume 9<" not in response.text


class TestSearchAndCounters:
    """Tests for search, counters and recent books."""

    def test_search(self, client: TestClient, sample_book: Book, sample_review):
        """Test that search matches review text."""
        response = client.get("/books/search", params={"search": "timeless"})

        assert response.status_code == status.HTTP_200_OK
        assert sample_book.title in response.text

    def test_search_no_results(self, client: TestClient, sample_book: Book):
        """Test the empty search result message."""
        response = client.get("/books/search", params={"search": "dragons"})
        assert "No books found." in response.text

    def test_count(self, client: TestClient, sample_book: Book):
        """Test that the book count is plain text."""
        response = client.get("/books/count")

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "1"

    def test_finished_count_anonymous_is_no_content(self, client: TestClient):
        """Test that anonymous users get 204 for the finished count."""
        assert client.get("/books/finished-count").status_code == status.HTTP_204_NO_CONTENT

    def test_finished_count(self, auth_client: TestClient, db_session: Session, sample_user: User):
        """Test counting the user's finished books."""
        BookRepository(db_session).create("Done", "A", "done-1", 0, "finished", "", sample_user.id)

        assert auth_client.get("/books/finished-count").text == "1"

    def test_recent(self, client: TestClient, sample_book: Book):
        """Test the recently added books panel."""
        response = client.get("/books/recent")

        assert response.status_code == status.HTTP_200_OK
        assert sample_book.title in response.text


class TestBookDetail:
    """Tests for GET /books/{id}."""

    def test_detail_page(self, client: TestClient, sample_book: Book):
        """Test getting a book by ID."""
        response = client.get(f"/books/{sample_book.id}")

        assert response.status_code == status.HTTP_200_OK
        assert sample_book.isbn in response.text

    def test_missing_book(self, client: TestClient):
        """Test getting a non-existent book returns 404."""
        assert client.get("/books/9999").status_code == status.HTTP_404_NOT_FOUND

    def test_non_numeric_id(self, client: TestClient):
        """Test that a non-numeric ID returns 404."""
        assert client.get("/books/not-a-number").status_code == status.HTTP_404_NOT_FOUND


class TestCreateBook:
    """Tests for GET /books/add and POST /books."""

    def test_add_page(self, client: TestClient):
        """Test the empty book form."""
        response = client.get("/books/add")

        assert response.status_code == status.HTTP_200_OK
        assert 'name="isbn"' in response.text

    def test_requires_login(self, client: TestClient):
        """Test that creating a book requires login."""
        response = client.post("/books", data=BOOK_DATA)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_validation_runs_before_authorization(self, client: TestClient):
        """Test that invalid fields are reported even when logged out."""
        response = client.post("/books", data={"title": ""}, headers=HTMX)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "Title is required" in response.text

    def test_create_htmx_location(self, auth_client: TestClient, db_session: Session):
        """Test that HTMX creates answer with HX-Location to the new book."""
        response = auth_client.post("/books", data=BOOK_DATA, headers=HTMX)

        assert response.status_code == status.HTTP_200_OK
        location = json.loads(response.headers["HX-Location"])
        book_id = int(location["path"].rsplit("/", 1)[1])
        assert location == {"path": f"/books/{book_id}", "target": "#books-content", "swap": "innerHTML"}
        assert BookRepository(db_session).retrieve(book_id).title == "Brave New World"

    def test_create_plain_form_redirects(self, auth_client: TestClient):
        """Test that a plain form post is redirected with 303."""
        response = auth_client.post("/books", data=BOOK_DATA, follow_redirects=False)

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"].startswith("/books/")

    def test_duplicate_isbn(self, auth_client: TestClient, sample_book: Book):
        """Test that a duplicate ISBN is shown as a field error."""
        response = auth_client.post(
            "/books", data={**BOOK_DATA, "isbn": sample_book.isbn}, headers=HTMX
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "This ISBN is already registered." in response.text

    def test_bad_year_is_bad_request(self, auth_client: TestClient):
        """Test that an undecodable year is a 400."""
        response = auth_client.post("/books", data={**BOOK_DATA, "publication_year": "soon"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_cover_upload(self, auth_client: TestClient, db_session: Session, upload_dir: str):
        """Test uploading a cover and serving it back."""
        response = auth_client.post(
            "/books",
            data=BOOK_DATA,
            files={"image_upload": ("cover.png", b"\x89PNG data", "image/png")},
            headers=HTMX,
        )

        assert response.status_code == status.HTTP_200_OK
        book_id = int(json.loads(response.headers["HX-Location"])["path"].rsplit("/", 1)[1])
        image_url = BookRepository(db_session).retrieve(book_id).image_url
        assert image_url.startswith("/uploads/") and image_url.endswith("-cover.png")

        served = auth_client.get(image_url)
        assert served.status_code == status.HTTP_200_OK
        assert served.content == b"\x89PNG data"

    def test_invalid_file_type(self, auth_client: TestClient, upload_dir: str):
        """Test that a GIF is rejected without writing a file."""
        response = auth_client.post(
            "/books",
            data=BOOK_DATA,
            files={"image_upload": ("cover.gif", b"GIF89a", "image/gif")},
            headers=HTMX,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "Invalid file type" in response.text
        assert stored_files(upload_dir) == []

    def test_duplicate_isbn_removes_new_upload(
        self, auth_client: TestClient, sample_book: Book, upload_dir: str
    ):
        """Test that a failed create removes the cover it just stored."""
        response = auth_client.post(
            "/books",
            data={**BOOK_DATA, "isbn": sample_book.isbn},
            files={"image_upload": ("cover.png", b"\x89PNG data", "image/png")},
            headers=HTMX,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert stored_files(upload_dir) == []


class TestUpdateBook:
    """Tests for GET /books/{id}/edit and POST /books/{id}."""

    def test_edit_page_requires_login(self, client: TestClient, sample_book: Book):
        """Test that the edit page requires login."""
        assert client.get(f"/books/{sample_book.id}/edit").status_code == status.HTTP_401_UNAUTHORIZED

    def test_edit_page_prefilled(self, auth_client: TestClient, sample_book: Book):
        """Test that the edit form shows the stored values."""
        response = auth_client.get(f"/books/{sample_book.id}/edit")

        assert response.status_code == status.HTTP_200_OK
        assert f'value="{sample_book.isbn}"' in response.text

    def test_update(self, auth_client: TestClient, db_session: Session, sample_book: Book):
        """Test updating a book and its reading status."""
        response = auth_client.post(
            f"/books/{sample_book.id}",
            data={**BOOK_DATA, "status": "finished"},
            headers=HTMX,
        )

        assert response.status_code == status.HTTP_200_OK
        assert json.loads(response.headers["HX-Location"])["path"] == f"/books/{sample_book.id}"

        db_session.expire_all()
        book = BookRepository(db_session).retrieve(sample_book.id)
        assert book.title == "Brave New World"
        assert book.status == "finished"

    def test_update_other_users_book_is_not_found(
        self, client: TestClient, sample_book: Book, second_user: User
    ):
        """Test that another user's book cannot be edited."""
        login(client, second_user.username)

        response = client.post(f"/books/{sample_book.id}", data=BOOK_DATA)
        assert response.status_code == status.HTTP_404_NOT_FOUND

        assert client.get(f"/books/{sample_book.id}/edit").status_code == status.HTTP_404_NOT_FOUND

    def test_update_without_file_keeps_image(
        self, auth_client: TestClient, db_session: Session, sample_book: Book
    ):
        """Test that an update without a file keeps the stored cover."""
        BookRepository(db_session).update(
            sample_book.id, sample_book.owner_id, sample_book.title, sample_book.author,
            sample_book.isbn, 1949, "reading", "/uploads/existing.png",
        )

        auth_client.post(f"/books/{sample_book.id}", data=BOOK_DATA, headers=HTMX)

        db_session.expire_all()
        assert BookRepository(db_session).retrieve(sample_book.id).image_url == "/uploads/existing.png"

    def test_replacing_cover_removes_old_file(
        self, auth_client: TestClient, db_session: Session, sample_book: Book, upload_dir: str
    ):
        """Test that a new cover replaces the old file on disk."""
        def upload(name: str) -> str:
            auth_client.post(
                f"/books/{sample_book.id}",
                data=BOOK_DATA,
                files={"image_upload": (name, b"\x89PNG", "image/png")},
                headers=HTMX,
            )
            db_session.expire_all()
            return BookRepository(db_session).retrieve(sample_book.id).image_url

        first = upload("first.png")
        second = upload("second.png")

        assert first != second
        assert [p.name for p in stored_files(upload_dir)] == [second.removeprefix("/uploads/")]

    def test_update_invalid(self, auth_client: TestClient, sample_book: Book):
        """Test that a blank author is rejected on update."""
        response = auth_client.post(
            f"/books/{sample_book.id}", data={**BOOK_DATA, "author": ""}, headers=HTMX
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "Author is required" in response.text


class TestDeleteBook:
    """Tests for POST /books/delete."""

    def test_delete(self, auth_client: TestClient, db_session: Session, sample_book: Book):
        """Test deleting a book."""
        response = auth_client.post("/books/delete", data={"id": str(sample_book.id)}, headers=HTMX)

        assert response.status_code == status.HTTP_200_OK
        assert json.loads(response.headers["HX-Location"])["path"] == "/books"
        assert BookRepository(db_session).count() == 0

    def test_delete_requires_login(self, client: TestClient, sample_book: Book):
        """Test that deleting requires login."""
        response = client.post("/books/delete", data={"id": str(sample_book.id)})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_delete_other_users_book(
        self, client: TestClient, db_session: Session, sample_book: Book, second_user: User
    ):
        """Test that another user's book cannot be deleted."""
        login(client, second_user.username)

        response = client.post("/books/delete", data={"id": str(sample_book.id)})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert BookRepository(db_session).count() == 1

    def test_delete_removes_cover(self, auth_client: TestClient, db_session: Session, upload_dir: str):
        """Test that deleting a book removes its cover file."""
        response = auth_client.post(
            "/books",
            data=BOOK_DATA,
            files={"image_upload": ("cover.png", b"\x89PNG", "image/png")},
            headers=HTMX,
        )
        book_id = json.loads(response.headers["HX-Location"])["path"].rsplit("/", 1)[1]
        assert len(stored_files(upload_dir)) == 1

        auth_client.post("/books/delete", data={"id": book_id}, headers=HTMX)

        assert stored_files(upload_dir) == []


class TestErrorResponses:
    """Tests for request-size limits and storage failures on /books."""

    def test_oversized_upload_is_bad_request(
        self, auth_client: TestClient, upload_dir: str, monkeypatch
    ):
        """Test that a body over max_upload_size is a 400 and nothing is stored."""
        monkeypatch.setattr(settings, "max_upload_size", 1024)

        response = auth_client.post(
            "/books",
            data=BOOK_DATA,
            files={"image_upload": ("big.png", b"x" * 1034, "image/png")},
            headers=HTMX,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.text == "Bad Request"
        assert stored_files(upload_dir) == []

    def test_storage_error_is_generic_500(self, client: TestClient, monkeypatch, caplog):
        """Test that database errors are logged with a traceback but not shown."""

        def broken_count(self):
            raise OperationalError("SELECT secret FROM books", {}, Exception("disk I/O error"))

        monkeypatch.setattr(BookRepository, "count", broken_count)

        with caplog.at_level(logging.ERROR, logger="bookreview.main"):
            response = client.get("/books/count")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.text == "Internal Server Error"
        assert "secret" not in response.text

        [record] = [r for r in caplog.records if r.name == "bookreview.main" and r.levelno == logging.ERROR]
        assert record.exc_info is not None
        assert "/books/count" in record.getMessage()
