"""
Standardized response helpers for consistent API responses.

Every body the API produces is an ``APIResponse`` envelope. Error helpers
return an ``APIError`` for the caller to raise; the handlers registered in
``postdesk.main`` render its envelope as the top-level JSON body.
"""

from collections.abc import Iterable
from typing import Any

from fastapi import HTTPException, status
from pydantic import BaseModel, model_serializer

from postdesk.core.authorization import Decision, DenyReason

NON_FIELD_KEY = "non_field_errors"
_LOCATION_PARTS = {"body", "query", "path", "form", "header", "cookie"}


class APIResponse(BaseModel):
    """Standard API response model"""

    success: bool
    message: str | None = None
    data: Any | None = None
    error: str | None = None
    errors: dict[str, list[str]] | None = None

    @model_serializer(mode="wrap")
    def _omit_empty_fields(self, handler):
        # top level only; nulls inside ``data`` are part of the payload
        return {key: value for key, value in handler(self).items() if value is not None}


class APIError(HTTPException):
    """HTTPException whose detail is a ready-to-send envelope."""

    def __init__(self, status_code: int, envelope: APIResponse):
        super().__init__(
            status_code=status_code, detail=envelope.model_dump(exclude_none=True)
        )
        self.envelope = envelope


def success_response(
    message: str | None = None,
    data: Any = None,
) -> APIResponse:
    """Create a successful response"""
    return APIResponse(success=True, message=message, data=data)


def error_response(
    message: str = "An error occurred",
    errors: dict[str, list[str]] | None = None,
    error: str | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> APIError:
    """Create an error response"""
    envelope = APIResponse(success=False, message=message, errors=errors, error=error)
    return APIError(status_code=status_code, envelope=envelope)


def validation_error_response(
    errors: dict[str, list[str]], message: str = "Validation failed"
) -> APIError:
    """Create a validation error response"""
    return error_response(
        message=message, errors=errors, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
    )


def not_found_response(message: str = "Resource not found") -> APIError:
    """Create a not found error response"""
    return error_response(message=message, status_code=status.HTTP_404_NOT_FOUND)


def forbidden_response(message: str = "Access forbidden") -> APIError:
    """Create a forbidden error response"""
    return error_response(message=message, status_code=status.HTTP_403_FORBIDDEN)


def unauthorized_response(message: str = "Unauthenticated.") -> APIError:
    """Create an unauthorized error response"""
    return error_response(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


def conflict_response(message: str = "Resource conflict") -> APIError:
    """Create a conflict error response"""
    return error_response(message=message, status_code=status.HTTP_409_CONFLICT)


def unconfigured_response(message: str) -> APIError:
    """Create a response for a missing server-side setting"""
    return error_response(
        message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def no_client_response(
    message: str = "User is not associated with any client.",
) -> APIError:
    return error_response(
        message=message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
    )


def deny_response(decision: Decision, not_found_message: str) -> APIError:
    """Translate a denied ``Decision`` into the matching error response."""
    if decision.reason is DenyReason.NO_CLIENT_ASSOCIATION:
        return no_client_response()
    if decision.reason is DenyReason.NOT_FOUND:
        return not_found_response(not_found_message)
    return forbidden_response("This action is unauthorized.")


def format_validation_errors(errors: Iterable[dict]) -> dict[str, list[str]]:
    """Group pydantic/FastAPI error dicts into ``{field: [message, ...]}``."""
    grouped: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in _LOCATION_PARTS]
        field = loc[-1] if loc else NON_FIELD_KEY
        message = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        grouped.setdefault(field, []).append(message)
    return grouped
