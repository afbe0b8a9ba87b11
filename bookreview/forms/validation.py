"""
Validation Primitives

Stateless predicates shared by the form objects. Each returns a bool and
leaves the choice of error message to the caller:

    form.validator.check_field(not_blank(form.title), "title", "Title is required")
"""

import re
from collections.abc import Collection
from typing import Any

# RFC 5322 style address check (local part, @, dot-separated labels)
EMAIL_RX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def not_blank(value: str) -> bool:
    """True if the value contains something other than whitespace."""
    return value.strip() != ""


def min_chars(value: str, n: int) -> bool:
    """True if the value has at least n characters."""
    return len(value) >= n


def max_chars(value: str, n: int) -> bool:
    """True if the value has at most n characters."""
    return len(value) <= n


def matches(value: str, pattern: re.Pattern[str]) -> bool:
    return pattern.match(value) is not None


def max_number(value: int, maximum: int) -> bool:
    """True if value does not exceed maximum."""
    return value <= maximum


def permitted_value(value: Any, permitted: Collection[Any]) -> bool:
    """
    True if value is one of the permitted values.

    An empty collection permits nothing.
    """
    return value in permitted

