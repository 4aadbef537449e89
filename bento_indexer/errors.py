"""Errors raised by the API layer and the repository."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, ClassVar


class RepositoryError(Exception):
    """Base class for failures while reading or writing the database."""


class BlockNotFoundError(RepositoryError):
    def __init__(self, block_hash: str) -> None:
        super().__init__(f"Block not found: {block_hash}")
        self.block_hash = block_hash


class RepositoryDatabaseError(RepositoryError):
    def __init__(self, error: BaseException) -> None:
        super().__init__(f"Database error: {error}")
        self.error = error


class RepositoryOtherError(RepositoryError):
    def __init__(self, error: BaseException) -> None:
        super().__init__(f"Other error: {error}")
        self.error = error


class AppError(Exception):
    """An error to be reported to an API client with an HTTP status."""

    status: ClassVar[HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR
    label: ClassVar[str] = "Internal server error"
    response_label: ClassVar[str | None] = None

    def __init__(self, detail: Any) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.label}: {self.detail}"

    def to_response(self) -> tuple[int, dict[str, Any]]:
        """The HTTP status code and JSON body describing this error."""
        label = self.response_label or self.label
        body = {
            "success": False,
            "error": {"message": f"{label}: {self.detail}", "code": int(self.status)},
        }
        return int(self.status), body

    @classmethod
    def from_exception(cls, error: BaseException) -> AppError:
        """Classify an arbitrary exception as an API error."""
        if isinstance(error, AppError):
            return error
        if isinstance(error, BlockNotFoundError):
            return NotFoundError(f"Block not found: {error.block_hash}")
        if isinstance(error, RepositoryDatabaseError):
            return DatabaseError(error.error)
        if isinstance(error, RepositoryOtherError):
            return InternalError(error.error)

        message = str(error).lower()
        if "database" in message:
            return DatabaseError(error)
        if "validation" in message:
            return ValidationError(message)
        if "authentication" in message or "unauthorized" in message:
            return UnauthorizedError(message)
        if "not found" in message:
            return NotFoundError(message)
        return InternalError(error)


class InternalError(AppError):
    pass


class DatabaseError(AppError):
    label = "Database error"
    response_label = "Database error occurred"


class ValidationError(AppError):
    status = HTTPStatus.UNPROCESSABLE_ENTITY
    label = "Validation error"


class NotFoundError(AppError):
    status = HTTPStatus.NOT_FOUND
    label = "Not found"


class UnauthorizedError(AppError):
    status = HTTPStatus.UNAUTHORIZED
    label = "Unauthorized"


class ForbiddenError(AppError):
    status = HTTPStatus.FORBIDDEN
    label = "Forbidden"


class BadRequestError(AppError):
    status = HTTPStatus.BAD_REQUEST
    label = "Bad request"


__all__ = [
    "AppError",
    "InternalError",
    "DatabaseError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "BadRequestError",
    "RepositoryError",
    "BlockNotFoundError",
    "RepositoryDatabaseError",
    "RepositoryOtherError",
]