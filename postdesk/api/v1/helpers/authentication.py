"""
Authentication helpers: password hashing, bearer token issuance and the
``get_current_user`` dependency.

Bearer tokens are JWTs whose ``jti`` names an ``AccessToken`` row. A token is
only accepted while that row exists, so logging out (deleting the row)
revokes exactly one token.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from postdesk.api.v1.helpers.responses import unauthorized_response
from postdesk.config import settings
from postdesk.db.session import get_db
from postdesk.models.iam import AccessToken, User, client_user_association
from postdesk.models.pydantic_models.core_models import UserModel
from postdesk.models.timestamps import utcnow
import logging

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode(
        "utf-8"
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


async def issue_token(db: AsyncSession, user: User, name: str = "auth-token") -> str:
    """Persist a new ``AccessToken`` for ``user`` and return the signed JWT.

    Only flushes; the caller owns the transaction.
    """
    expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    token_record = AccessToken(
        user_id=user.id,
        name=name,
        expires_at=utcnow() + expires_delta,
    )
    db.add(token_record)
    await db.flush()
    return create_access_token(
        data={"sub": str(user.id), "jti": token_record.token_id},
        expires_delta=expires_delta,
    )


async def load_client_ids(db: AsyncSession, user_id: int) -> list[int]:
    """Client ids of ``user_id`` in association (insertion) order."""
    result = await db.execute(
        select(client_user_association.c.client_id)
        .where(client_user_association.c.user_id == user_id)
        .order_by(client_user_association.c.id)
    )
    return list(result.scalars().all())


class AuthenticatedUser:
    """Request-scoped identity handed to every endpoint and to the policy."""

    def __init__(
        self,
        user: UserModel,
        client_ids: list[int],
        token_id: str | None = None,
    ):
        self.user = user
        self.user_id = user.id
        self.email = user.email
        self.is_admin = user.admin
        self.default_client_id = user.default_client_id
        self.client_ids = tuple(client_ids)
        self.token_id = token_id


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def validate_jwt_token(jwt_token: str, db: AsyncSession) -> AuthenticatedUser:
    try:
        payload = jwt.decode(jwt_token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise unauthorized_response()

    user_id = payload.get("sub")
    token_id = payload.get("jti")
    if not user_id or not token_id or not str(user_id).isdigit():
        raise unauthorized_response()

    result = await db.execute(
        select(AccessToken)
        .options(selectinload(AccessToken.user))
        .where(AccessToken.token_id == token_id, AccessToken.user_id == int(user_id))
    )
    token_record = result.scalar_one_or_none()
    if token_record is None or token_record.user is None:
        raise unauthorized_response()

    now = utcnow()
    if token_record.expires_at and _as_aware(token_record.expires_at) < now:
        logger.info(f"Rejected expired token for user {token_record.user_id}")
        raise unauthorized_response()

    token_record.last_used_at = now
    await db.commit()

    client_ids = await load_client_ids(db, token_record.user_id)
    return AuthenticatedUser(
        user=UserModel.model_validate(token_record.user),
        client_ids=client_ids,
        token_id=token_record.token_id,
    )


def _bearer_token(request: Any) -> str | None:
    auth_header: str | None = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return None


class BearerAuthenticationProvider:
    """Resolves the ``Authorization: Bearer`` header to an ``AuthenticatedUser``."""

    async def authenticate(self, request: Any, db: AsyncSession) -> AuthenticatedUser:
        jwt_token = _bearer_token(request)
        if not jwt_token:
            raise unauthorized_response()
        return await validate_jwt_token(jwt_token, db)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    _credentials=Depends(bearer_scheme),
) -> AuthenticatedUser:
    provider = getattr(request.app.state, "authentication_provider", None)
    if provider is None:
        provider = BearerAuthenticationProvider()
    return await provider.authenticate(request, db)
