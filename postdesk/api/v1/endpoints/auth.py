"""
Authentication endpoints: register, login, logout and the caller's profile.

Login answers unknown emails and wrong passwords with the same 422 body.
"""

import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from postdesk.api.v1.helpers.authentication import (
    AuthenticatedUser,
    get_current_user,
    hash_password,
    issue_token,
    verify_password,
)
from postdesk.api.v1.helpers.validation import FieldErrors, RequiredString, email_taken
from postdesk.api.v1.helpers.responses import (
    success_response,
    validation_error_response,
)
from postdesk.db.session import get_db
from postdesk.models.iam import AccessToken, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

INCORRECT_CREDENTIALS = "The provided credentials are incorrect."


# ── request schemas ───────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    name: RequiredString
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8)
    password_confirmation: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


def _user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "created_at": user.created_at,
    }


# ── endpoints ─────────────────────────────────────────────────────────────


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create an account and return it with a bearer token."""
    errors = FieldErrors()
    if await email_taken(db, request.email):
        errors.add("email", "The email has already been taken.")
    if request.password != request.password_confirmation:
        errors.add("password", "The password confirmation does not match.")
    errors.raise_if_any()

    user = User(
        name=request.name,
        email=request.email.lower(),
        hashed_password=hash_password(request.password),
        admin=False,
    )
    db.add(user)
    await db.flush()
    token = await issue_token(db, user)
    await db.commit()

    logger.info("Registered user %s", user.id)
    return success_response(
        message="User registered successfully",
        data={"user": _user_payload(user), "token": token},
    )


@router.post("/login")
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate with email + password and receive a bearer token."""
    result = await db.execute(
        select(User).where(func.lower(User.email) == request.email.lower())
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(request.password, user.hashed_password):
        raise validation_error_response(
            {"email": [INCORRECT_CREDENTIALS]}, message=INCORRECT_CREDENTIALS
        )

    token = await issue_token(db, user)
    await db.commit()

    return success_response(
        message="Login successful",
        data={"user": _user_payload(user), "token": token},
    )


@router.post("/logout")
async def logout(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Revoke the token used for this request. Other tokens stay valid."""
    token_record = await db.get(AccessToken, current_user.token_id)
    if token_record is not None:
        await db.delete(token_record)
        await db.commit()
    return success_response(message="Logged out successfully")


@router.get("/me")
async def get_me(
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Return the authenticated user's profile and client associations."""
    return success_response(
        data={
            **current_user.user.model_dump(),
            "client_ids": list(current_user.client_ids),
        }
    )
