"""Field rules for books and readers.

Each rule takes a raw value, returns the cleaned value or raises
``ValidationError`` for that one field. ``validate_book`` and
``validate_reader`` run the rules in a fixed order and report every
failing field at once.
"""
import enum
import re
from datetime import date
from typing import Any, Callable, Mapping, TypeVar

from libris.errors import ValidationError
from libris.models import BookStatus, IssueStatus

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)+$")
PHONE_RE = re.compile(r"^\+?[\d\s\-()]{7,}$", re.IGNORECASE)

E = TypeVar("E", bound=enum.Enum)


def non_empty_text(field: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError.single(field, "must be a string")
    text = value.strip()
    if not text:
        raise ValidationError.single(field, "must not be empty")
    return text


def year(field: str, value: Any) -> int:
    # bool is an int subclass; True is not a year.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError.single(field, "must be an integer")
    current = date.today().year
    if value < 0:
        raise ValidationError.single(field, "must be >= 0")
    if value > current:
        raise ValidationError.single(field, f"must be <= {current}")
    return value


def one_of(field: str, value: Any, enum_cls: type[E]) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = "|".join(m.value for m in enum_cls)
        raise ValidationError.single(field, f"must be one of {allowed}") from None


def book_status(value: Any, field: str = "status") -> BookStatus:
    return one_of(field, value, BookStatus)


def issue_status(value: Any, field: str = "status") -> IssueStatus:
    return one_of(field, value, IssueStatus)


def email(field: str, value: Any) -> str:
    text = non_empty_text(field, value)
    if not EMAIL_RE.match(text):
        raise ValidationError.single(field, "must be a valid email address")
    return text.lower()


def phone(field: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError.single(field, "must be a string")
    text = value.strip()
    if not PHONE_RE.match(text):
        raise ValidationError.single(field, "must be a phone number (digits, spaces, -, (), optional leading +, at least 7 characters)")
    return text


Rule = Callable[[str, Any], Any]

BOOK_RULES: tuple[tuple[str, Rule, bool], ...] = (
    # (field, rule, required on create)
    ("title", non_empty_text, True),
    ("author", non_empty_text, True),
    ("year", year, True),
    ("status", lambda f, v: book_status(v, f), False),
)

READER_RULES: tuple[tuple[str, Rule, bool], ...] = (
    ("name", non_empty_text, True),
    ("email", email, True),
    ("phone", phone, False),
)


def _validate(rules, fields: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    known = {name for name, _, _ in rules}
    errors = []
    cleaned: dict[str, Any] = {}
    for name, rule, required in rules:
        if name not in fields:
            if required and not partial:
                errors.append((name, "is required"))
            continue
        try:
            cleaned[name] = rule(name, fields[name])
        except ValidationError as e:
            errors.extend(e.errors)
    for name in fields:
        if name not in known:
            errors.append((name, "unknown field"))
    if errors:
        raise ValidationError(errors)
    return cleaned


def validate_book(fields: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
    return _validate(BOOK_RULES, fields, partial=partial)


def validate_reader(fields: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
    return _validate(READER_RULES, fields, partial=partial)
