"""
Request payload validation shared by the JSON and multipart endpoints.
"""

from typing import Annotated, Any, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel, StringConstraints, ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from postdesk.api.v1.helpers.responses import (
    format_validation_errors,
    validation_error_response,
)
from postdesk.models.iam import User

ModelT = TypeVar("ModelT", bound=BaseModel)

# Trimmed before the length checks, so "   " counts as missing.
RequiredString = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)
]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def parse_payload(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    """Validate ``data`` against ``model`` or raise a 422 envelope."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise validation_error_response(format_validation_errors(e.errors()))


async def record_exists(db: AsyncSession, model, record_id: int | None) -> bool:
    if record_id is None:
        return False
    result = await db.execute(select(model.id).where(model.id == record_id))
    return result.scalar_one_or_none() is not None


async def email_taken(db: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    """Case-insensitive uniqueness check for user emails."""
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    result = await db.execute(stmt)
    return result.first() is not None


class FieldErrors:
    """Collects ``{field: [message]}`` entries across several checks."""

    def __init__(self):
        self.errors: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self.errors.setdefault(field, []).append(message)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def raise_if_any(self) -> None:
        if self.errors:
            raise validation_error_response(self.errors)


def check_url(value: str | None) -> str | None:
    """``field_validator`` body for optional http(s) URL fields."""
    if value is None:
        return value
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("The value must be a valid URL.")
    return value


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    for char in (escape, "%", "_"):
        value = value.replace(char, escape + char)
    return value
