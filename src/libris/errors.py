from typing import Iterable


class LibraryError(Exception):
    """Base for every error the core reports to its callers."""

    code = "LIBRARY_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(LibraryError):
    """One or more fields were rejected.

    ``errors`` keeps ``(field, constraint)`` pairs in the order the checks ran.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, errors: Iterable[tuple[str, str]], code: str | None = None):
        self.errors: list[tuple[str, str]] = list(errors)
        message = "; ".join(f"{field}: {constraint}" for field, constraint in self.errors)
        super().__init__(message or "invalid data", code)

    @classmethod
    def single(cls, field: str, constraint: str, code: str | None = None) -> "ValidationError":
        return cls([(field, constraint)], code)

    @property
    def fields(self) -> list[str]:
        return [field for field, _ in self.errors]


class NotFound(LibraryError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, message: str | None = None, code: str | None = None):
        self.entity = entity
        super().__init__(message or f"{entity} not found", code)


class InvalidTransition(LibraryError):
    code = "INVALID_TRANSITION"
