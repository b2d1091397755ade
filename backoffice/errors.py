"""Exception types raised by the back-office package."""

from __future__ import annotations


class BackofficeError(RuntimeError):
    """Base class for recoverable dashboard failures."""


class ValidationError(BackofficeError, ValueError):
    """A form value was rejected before any request was issued."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ApiError(BackofficeError):
    """A backend call failed, either in transport or with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None, detail: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class SessionExpiredError(ApiError):
    """The operator session is missing or past its expiry."""
