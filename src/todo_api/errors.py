from __future__ import annotations

from typing import Any, Dict, Optional


class ApiError(Exception):
    """
    Base class for errors reported to API clients.

    Rendered by the application handlers as:
        {"error": {"code": ..., "message": ..., "details": ...}}
    """

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return error_body(self.code, self.message, self.details)


class ValidationFailed(ApiError):
    """A required field is missing or a reference does not resolve."""

    status_code = 400


class NotFound(ApiError):
    """The addressed resource does not exist."""

    status_code = 404


def error_body(code: str, message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}


def todo_not_found(todo_id: str) -> NotFound:
    return NotFound(
        "TODO_NOT_FOUND",
        "Todo not found",
        f"No todo found with ID: {todo_id}",
    )


def missing_user_id(where: str = "the request") -> ValidationFailed:
    return ValidationFailed(
        "MISSING_USER_ID",
        "User ID is required",
        f"Please provide a valid user ID in {where}",
    )
