"""
Form Objects

One pydantic model per submitted form. Each form:
- decodes raw form values with from_form() (raises FormDecodeError)
- runs its rules with validate(), collecting errors on form.validator
- reports valid() from the collected errors

Coercion (is this an integer at all?) belongs to pydantic; the business
rules (required fields, rating bound, e-mail format) are checked by
validate() so that every broken rule is reported back on the form.

Handlers call validate() before every validity check, then return right
after re-rendering an invalid form.
"""

from typing import Any, ClassVar

from pydantic import Field, field_validator
from starlette.datastructures import UploadFile

from bookreview.forms.base import FormModel, blank_to
from bookreview.forms.validation import (
    EMAIL_RX,
    matches,
    max_number,
    min_chars,
    not_blank,
    permitted_value,
)
from bookreview.models import READING_STATUSES, ReadingStatus

REQUIRED = "This field is required"
MIN_PASSWORD_LENGTH = 8
MAX_RATING = 5


# =============================================================================
# Authentication Forms
# =============================================================================

class LoginForm(FormModel):
    username: str = ""
    password: str = Field(default="", repr=False)

    def validate(self) -> bool:
        self.validator.check_field(not_blank(self.username), "username", REQUIRED)
        self.validator.check_field(not_blank(self.password), "password", REQUIRED)
        return self.valid()


class RegisterForm(FormModel):
    username: str = ""
    email: str = ""
    password: str = Field(default="", repr=False)

    def validate(self) -> bool:
        v = self.validator
        v.check_field(not_blank(self.username), "username", REQUIRED)
        v.check_field(not_blank(self.email), "email", REQUIRED)
        v.check_field(matches(self.email, EMAIL_RX), "email", "The email address is not valid.")
        v.check_field(not_blank(self.password), "password", REQUIRED)
        v.check_field(
            min_chars(self.password, MIN_PASSWORD_LENGTH),
            "password",
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
        )
        return self.valid()


# =============================================================================
# Book Form
# =============================================================================

class BookForm(FormModel):
    """
    Create/update form for a book.

    image_url is filled in by the upload service once a cover has been
    stored, so it is never taken from the request; current_image_url is
    the cover the book had before the edit.
    """

    SERVER_FIELDS: ClassVar[frozenset[str]] = frozenset({"validator", "image_url"})

    id: int = 0
    title: str = ""
    author: str = ""
    isbn: str = ""
    publication_year: int = Field(default=0, description="0 when unknown")
    status: str = ReadingStatus.WANT_TO_READ.value
    image_url: str = ""
    current_image_url: str = ""
    image_upload: UploadFile | None = Field(default=None, repr=False, exclude=True)

    @field_validator("id", "publication_year", mode="before")
    @classmethod
    def empty_number_is_zero(cls, v: Any) -> Any:
        return blank_to(v, 0)

    @field_validator("status", mode="before")
    @classmethod
    def missing_status_is_want_to_read(cls, v: Any) -> Any:
        return blank_to(v, ReadingStatus.WANT_TO_READ.value)

    @field_validator("image_upload", mode="before")
    @classmethod
    def only_files_are_uploads(cls, v: Any) -> UploadFile | None:
        """A plain string in the file field means no file was chosen."""
        return v if isinstance(v, UploadFile) else None

    def validate(self) -> bool:
        v = self.validator
        v.check_field(not_blank(self.title), "title", "Title is required")
        v.check_field(not_blank(self.author), "author", "Author is required")
        v.check_field(not_blank(self.isbn), "isbn", "ISBN is required")
        v.check_field(
            permitted_value(self.status, READING_STATUSES),
            "status",
            "Choose a valid reading status",
        )
        return self.valid()


# =============================================================================
# Note & Review Forms
# =============================================================================

class NoteForm(FormModel):
    id: int = 0
    book_id: int = 0
    note_text: str = ""
    page_number: int | None = Field(default=None, description="Optional, any integer")

    @field_validator("id", "book_id", mode="before")
    @classmethod
    def empty_number_is_zero(cls, v: Any) -> Any:
        return blank_to(v, 0)

    @field_validator("page_number", mode="before")
    @classmethod
    def empty_page_is_none(cls, v: Any) -> Any:
        return blank_to(v, None)

    def validate(self) -> bool:
        self.validator.check_field(not_blank(self.note_text), "note_text", "Note text is required")
        return self.valid()


class ReviewForm(FormModel):
    """
    Rating and text for a book review.

    Only the upper bound of the rating is checked: 0 and negative ratings
    are accepted as submitted.
    """

    id: int = 0
    book_id: int = 0
    rating: int = 0
    review_text: str = ""

    @field_validator("id", "book_id", "rating", mode="before")
    @classmethod
    def empty_number_is_zero(cls, v: Any) -> Any:
        return blank_to(v, 0)

    def validate(self) -> bool:
        v = self.validator
        v.check_field(
            max_number(self.rating, MAX_RATING),
            "rating",
            "Rating must be a number between 1 and 5",
        )
        v.check_field(not_blank(self.review_text), "review_text", "Review text is required")
        return self.valid()
