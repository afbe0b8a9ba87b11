"""
Form Validation State

Every form object *has a* Validator that accumulates errors while its
validate() method runs. Templates read the collected errors back from
form.validator to show them next to the fields.

Two kinds of errors:
- field errors: keyed by field name, the first message for a key wins
- non-field errors: form-wide messages such as "Invalid file type",
  kept in the order they were added

Decoding is separate from validation: FormModel.from_form() coerces the
submitted strings with pydantic and raises FormDecodeError (400) when a
value cannot be coerced at all. Rule checks (422) happen afterwards in
validate().
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class FormDecodeError(ValueError):
    """Submitted form data could not be decoded into the form's types."""

    def __init__(self, field_name: str, value: Any) -> None:
        super().__init__(f"invalid value for field '{field_name}': {value!r}")
        self.field_name = field_name
        self.value = value

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "FormDecodeError":
        """Report the first field pydantic could not coerce."""
        error = exc.errors()[0]
        field_name = ".".join(str(part) for part in error["loc"]) or "form"
        return cls(field_name, error.get("input"))


@dataclass
class Validator:
    """Error accumulator shared by all form types."""

    field_errors: dict[str, str] = field(default_factory=dict)
    non_field_errors: list[str] = field(default_factory=list)

    def valid(self) -> bool:
        return not self.field_errors and not self.non_field_errors

    def add_field_error(self, key: str, message: str) -> None:
        # setdefault keeps the first message recorded for a field
        self.field_errors.setdefault(key, message)

    def add_non_field_error(self, message: str) -> None:
        self.non_field_errors.append(message)

    def check_field(self, ok: bool, key: str, message: str) -> None:
        if not ok:
            self.add_field_error(key, message)


# =============================================================================
# Decoding Helpers
# =============================================================================
# HTML forms submit every value as a string. An empty integer field decodes
# to its zero value; anything else that is not an integer is a bad request.

def blank_to(value: Any, empty: Any) -> Any:
    """Strip a submitted string, replacing an empty one with `empty`."""
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return empty
    return value


class FormModel(BaseModel):
    """
    Base for submitted forms.

    Fields listed in SERVER_FIELDS are never read from the request; the
    handlers fill them in (the validator, a stored cover URL).
    """

    SERVER_FIELDS: ClassVar[frozenset[str]] = frozenset({"validator"})

    model_config = ConfigDict(arbitrary_types_allowed=True)

    validator: Validator = Field(default_factory=Validator, exclude=True)

    @classmethod
    def from_form(cls, data: Mapping[str, Any]) -> Self:
        """
        Decode submitted form data into the form.

        Raises:
            FormDecodeError: a value could not be coerced to its field type
        """
        values = {
            name: data[name]
            for name in cls.model_fields
            if name in data and name not in cls.SERVER_FIELDS
        }
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise FormDecodeError.from_validation_error(exc) from exc

    def validate(self) -> bool:
        raise NotImplementedError

    def valid(self) -> bool:
        return self.validator.valid()
