"""
Forms Package

- validation.py: stateless validation predicates
- base.py: Validator error accumulator and the pydantic FormModel base
- forms.py: login, register, book, note and review forms
"""

from bookreview.forms.base import FormDecodeError, FormModel, Validator
from bookreview.forms.forms import (
    BookForm,
    LoginForm,
    NoteForm,
    RegisterForm,
    ReviewForm,
)

__all__ = [
    "FormDecodeError",
    "FormModel",
    "Validator",
    "LoginForm",
    "RegisterForm",
    "BookForm",
    "NoteForm",
    "ReviewForm",
]
