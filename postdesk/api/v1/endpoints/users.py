"""
User management (admin only).
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from postdesk.api.v1.deps import authorize, get_authorization_provider
from postdesk.api.v1.helpers.auth_interface import AuthorizationProvider
from postdesk.api.v1.helpers.authentication import (
    AuthenticatedUser,
    get_current_user,
    hash_password,
)
from postdesk.api.v1.helpers.pagination import Pagination, get_pagination, paginate
from postdesk.api.v1.helpers.responses import not_found_response, success_response
from postdesk.api.v1.helpers.validation import (
    FieldErrors,
    RequiredString,
    email_taken,
    escape_like,
    record_exists,
)
from postdesk.core.authorization import Action, ResourceType
from postdesk.db.session import get_db
from postdesk.models.iam import Client, User
from postdesk.models.pydantic_models.core_models import UserModel, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

USER_NOT_FOUND = "User not found"


# ── request schemas ───────────────────────────────────────────────────────


class CreateUserRequest(BaseModel):
    name: RequiredString
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8)
    password_confirmation: str | None = None
    admin: bool = False
    default_client_id: int | None = None


class UpdateUserRequest(BaseModel):
    name: RequiredString | None = None
    email: EmailStr | None = Field(None, max_length=255)
    password: str | None = Field(None, min_length=8)
    password_confirmation: str | None = None
    admin: bool | None = None
    default_client_id: int | None = None


# ── helpers ───────────────────────────────────────────────────────────────


def _authorize(provider, current_user, action: Action):
    return authorize(
        provider, current_user, action, ResourceType.USER, USER_NOT_FOUND
    )


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise not_found_response(USER_NOT_FOUND)
    return user


def _check_password(errors: FieldErrors, password: str | None, confirmation: str | None):
    if password is not None and confirmation is not None and password != confirmation:
        errors.add("password", "The password confirmation does not match.")


# ── endpoints ─────────────────────────────────────────────────────────────


@router.get("")
async def list_users(
    pagination: Pagination = Depends(get_pagination),
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    """List users, oldest first."""
    _authorize(provider, current_user, Action.LIST)
    page = await paginate(
        db, select(User).order_by(User.id), pagination, UserModel.model_validate
    )
    return success_response(data=page)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    request: CreateUserRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    _authorize(provider, current_user, Action.CREATE)

    errors = FieldErrors()
    if await email_taken(db, request.email):
        errors.add("email", "The email has already been taken.")
    _check_password(errors, request.password, request.password_confirmation)
    if request.default_client_id is not None and not await record_exists(
        db, Client, request.default_client_id
    ):
        errors.add("default_client_id", "The selected client does not exist.")
    errors.raise_if_any()

    user = User(
        name=request.name,
        email=request.email.lower(),
        hashed_password=hash_password(request.password),
        admin=request.admin,
        default_client_id=request.default_client_id,
    )
    db.add(user)
    await db.commit()

    logger.info("User %s created by admin %s", user.id, current_user.user_id)
    return success_response(
        message="User created successfully", data=UserModel.model_validate(user)
    )


@router.get("/search")
async def search_users(
    email: str = Query(..., min_length=1, description="Substring of the email"),
    limit: int = Query(10, ge=1, le=50),
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    """Find users whose email contains ``email`` (case-insensitive)."""
    _authorize(provider, current_user, Action.LIST)
    result = await db.execute(
        select(User)
        .where(User.email.ilike(f"%{escape_like(email)}%", escape="\\"))
        .order_by(User.id)
        .limit(limit)
    )
    users = result.scalars().all()
    return success_response(
        data=[
            {**UserSummary.model_validate(u).model_dump(), "admin": u.admin}
            for u in users
        ]
    )


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    _authorize(provider, current_user, Action.VIEW)
    user = await _get_user_or_404(db, user_id)
    return success_response(data=UserModel.model_validate(user))


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    request: UpdateUserRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    """Partial update. A new password is hashed before it is stored."""
    _authorize(provider, current_user, Action.UPDATE)
    user = await _get_user_or_404(db, user_id)

    changes = request.model_dump(exclude_unset=True)
    changes.pop("password_confirmation", None)

    errors = FieldErrors()
    if request.email is not None and await email_taken(
        db, request.email, exclude_id=user.id
    ):
        errors.add("email", "The email has already been taken.")
    _check_password(errors, request.password, request.password_confirmation)
    if request.default_client_id is not None and not await record_exists(
        db, Client, request.default_client_id
    ):
        errors.add("default_client_id", "The selected client does not exist.")
    for field in ("name", "email", "password", "admin"):
        if field in changes and changes[field] is None:
            errors.add(field, f"The {field} field may not be null.")
    errors.raise_if_any()

    if "password" in changes:
        user.hashed_password = hash_password(changes.pop("password"))
    if "email" in changes:
        changes["email"] = changes["email"].lower()
    for field, value in changes.items():
        setattr(user, field, value)
    await db.commit()

    return success_response(
        message="User updated successfully", data=UserModel.model_validate(user)
    )


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    _authorize(provider, current_user, Action.DELETE)
    user = await _get_user_or_404(db, user_id)
    await db.delete(user)
    await db.commit()

    logger.info("User %s deleted by admin %s", user_id, current_user.user_id)
    return success_response(message="User deleted successfully")
