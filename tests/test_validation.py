"""
Tests for the validation predicates, the Validator accumulator and the
pydantic decoding shared by every form.
"""

import pytest

from bookreview.forms import FormDecodeError, NoteForm, ReviewForm, Validator
from bookreview.forms.base import blank_to
from bookreview.forms.validation import (
    EMAIL_RX,
    matches,
    max_chars,
    max_number,
    min_chars,
    not_blank,
    permitted_value,
)


class TestPredicates:
    """Tests for the stateless validation predicates."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("hello", True),
            ("  padded  ", True),
            ("", False),
            ("   ", False),
            ("\t\n", False),
        ],
    )
    def test_not_blank_ignores_surrounding_whitespace(self, value, expected):
        """Test that whitespace-only values count as blank."""
        assert not_blank(value) is expected

    def test_char_bounds_count_characters_not_bytes(self):
        """Test that length limits count characters, not encoded bytes."""
        assert min_chars("ééé", 3)
        assert not min_chars("éé", 3)
        assert max_chars("ééé", 3)
        assert not max_chars("éééé", 3)

    def test_matches_email_pattern(self):
        """Test the e-mail pattern against good and bad addresses."""
        assert matches("reader@example.com", EMAIL_RX)
        assert not matches("not-an-email", EMAIL_RX)
        assert not matches("", EMAIL_RX)

    def test_max_number_is_inclusive(self):
        """Test that the maximum itself is allowed."""
        assert max_number(5, 5)
        assert max_number(-3, 5)
        assert not max_number(6, 5)

    def test_permitted_value_empty_set_rejects_everything(self):
        """Test that an empty permitted set allows nothing, not even ''."""
        assert not permitted_value("", set())
        assert not permitted_value("reading", frozenset())

    def test_permitted_value_membership(self):
        """Test membership in a non-empty permitted set."""
        assert permitted_value("reading", {"reading", "finished"})
        assert not permitted_value("abandoned", {"reading", "finished"})


class TestValidator:
    """Tests for the Validator error accumulator."""

    def test_new_validator_is_valid(self):
        """Test that a validator without errors is valid."""
        assert Validator().valid()

    def test_first_field_error_wins(self):
        """Test that a second error for the same field is dropped."""
        v = Validator()
        v.add_field_error("title", "first")
        v.add_field_error("title", "second")

        assert v.field_errors == {"title": "first"}
        assert not v.valid()

    def test_non_field_errors_keep_every_message_in_order(self):
        """Test that non-field errors are all kept, duplicates included."""
        v = Validator()
        v.add_non_field_error("one")
        v.add_non_field_error("two")
        v.add_non_field_error("one")

        assert v.non_field_errors == ["one", "two", "one"]
        assert not v.valid()

    def test_check_field_only_records_failures(self):
        """Test that check_field records an error only when the check fails."""
        v = Validator()
        v.check_field(True, "title", "unused")
        assert v.valid()

        v.check_field(False, "title", "Title is required")
        assert v.field_errors["title"] == "Title is required"


class TestDecoding:
    """Tests for turning submitted strings into typed form fields."""

    def test_blank_to(self):
        """Test that blank strings are replaced and others are stripped."""
        assert blank_to("", 0) == 0
        assert blank_to("   ", None) is None
        assert blank_to(" 12 ", 0) == "12"
        assert blank_to(7, 0) == 7

    def test_empty_integer_decodes_to_zero(self):
        """Test that an empty or missing rating becomes 0."""
        assert ReviewForm.from_form({"rating": ""}).rating == 0
        assert ReviewForm.from_form({}).rating == 0

    def test_integer_is_coerced(self):
        """Test that surrounding whitespace and a minus sign are accepted."""
        assert NoteForm.from_form({"page_number": " -12 "}).page_number == -12
        assert ReviewForm.from_form({"rating": "3"}).rating == 3

    @pytest.mark.parametrize("value", ["five", "4.2", "12abc"])
    def test_non_integer_raises(self, value):
        """Test that a value pydantic cannot coerce names its field."""
        with pytest.raises(FormDecodeError) as exc_info:
            ReviewForm.from_form({"rating": value})

        assert exc_info.value.field_name == "rating"
        assert exc_info.value.value == value

    def test_optional_integer(self):
        """Test that an empty page is None while a 0 page is kept."""
        assert NoteForm.from_form({"page_number": ""}).page_number is None
        assert NoteForm.from_form({"page_number": "0"}).page_number == 0

    def test_validator_cannot_be_submitted(self):
        """Test that a form field named validator is ignored."""
        form = NoteForm.from_form({"note_text": "hi", "validator": "forged"})

        assert isinstance(form.validator, Validator)
        assert form.validate()
