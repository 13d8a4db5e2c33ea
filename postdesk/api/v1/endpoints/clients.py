"""
Client management and client/user associations (admin only).
"""

import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from postdesk.api.v1.deps import authorize, get_authorization_provider
from postdesk.api.v1.helpers.auth_interface import AuthorizationProvider
from postdesk.api.v1.helpers.authentication import AuthenticatedUser, get_current_user
from postdesk.api.v1.helpers.pagination import Pagination, get_pagination, paginate
from postdesk.api.v1.helpers.responses import (
    conflict_response,
    not_found_response,
    success_response,
)
from postdesk.api.v1.helpers.validation import RequiredString, check_url
from postdesk.core.authorization import Action, ResourceType
from postdesk.db.session import get_db
from postdesk.models.iam import Client, User, client_user_association
from postdesk.models.pydantic_models.core_models import (
    ClientModel,
    ClientSummary,
    UserModel,
    UserSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])

CLIENT_NOT_FOUND = "Client not found"


class ClientFields(BaseModel):
    email: EmailStr | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    website: str | None = Field(None, max_length=255)
    address: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)
    notes: str | None = None

    @field_validator("website")
    @classmethod
    def website_is_url(cls, v):
        return check_url(v)


class CreateClientRequest(ClientFields):
    name: RequiredString


class UpdateClientRequest(ClientFields):
    name: RequiredString | None = None


async def _get_client_or_404(db: AsyncSession, client_id: int) -> Client:
    client = await db.get(Client, client_id)
    if client is None:
        raise not_found_response(CLIENT_NOT_FOUND)
    return client


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise not_found_response("User not found")
    return user


async def _association_exists(db: AsyncSession, client_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(client_user_association.c.id).where(
            client_user_association.c.client_id == client_id,
            client_user_association.c.user_id == user_id,
        )
    )
    return result.first() is not None


def _association_payload(client: Client, user: User) -> dict:
    return {
        "client": ClientSummary.model_validate(client).model_dump(),
        "user": UserSummary.model_validate(user).model_dump(),
    }


# ── client CRUD ───────────────────────────────────────────────────────────


@router.get("")
async def list_clients(
    pagination: Pagination = Depends(get_pagination),
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    authorize(provider, current_user, Action.LIST, ResourceType.CLIENT, CLIENT_NOT_FOUND)
    page = await paginate(
        db, select(Client).order_by(Client.id), pagination, ClientModel.model_validate
    )
    return success_response(data=page)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(
    request: CreateClientRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    authorize(
        provider, current_user, Action.CREATE, ResourceType.CLIENT, CLIENT_NOT_FOUND
    )
    client = Client(**request.model_dump())
    db.add(client)
    await db.commit()

    logger.info("Client %s created by admin %s", client.id, current_user.user_id)
    return success_response(
        message="Client created successfully", data=ClientModel.model_validate(client)
    )


@router.get("/{client_id}")
async def get_client(
    client_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    authorize(provider, current_user, Action.VIEW, ResourceType.CLIENT, CLIENT_NOT_FOUND)
    client = await _get_client_or_404(db, client_id)
    return success_response(data=ClientModel.model_validate(client))


@router.put("/{client_id}")
async def update_client(
    client_id: int,
    request: UpdateClientRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    authorize(
        provider, current_user, Action.UPDATE, ResourceType.CLIENT, CLIENT_NOT_FOUND
    )
    client = await _get_client_or_404(db, client_id)

    changes = request.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is None:
        changes.pop("name")
    for field, value in changes.items():
        setattr(client, field, value)
    await db.commit()

    return success_response(
        message="Client updated successfully", data=ClientModel.model_validate(client)
    )


@router.delete("/{client_id}")
async def delete_client(
    client_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    """Delete a client. Its categories, posts and associations go with it."""
    authorize(
        provider, current_user, Action.DELETE, ResourceType.CLIENT, CLIENT_NOT_FOUND
    )
    client = await _get_client_or_404(db, client_id)
    await db.delete(client)
    await db.commit()

    logger.info("Client %s deleted by admin %s", client_id, current_user.user_id)
    return success_response(message="Client deleted successfully")


# ── associations ──────────────────────────────────────────────────────────


@router.get("/{client_id}/users")
async def list_client_users(
    client_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    """Users attached to a client, in the order they were attached."""
    authorize(
        provider, current_user, Action.LIST, ResourceType.CLIENT_USER, CLIENT_NOT_FOUND
    )
    await _get_client_or_404(db, client_id)
    result = await db.execute(
        select(User)
        .join(client_user_association, client_user_association.c.user_id == User.id)
        .where(client_user_association.c.client_id == client_id)
        .order_by(client_user_association.c.id)
    )
    users = result.scalars().all()
    return success_response(data=[UserModel.model_validate(u) for u in users])


@router.post("/{client_id}/users/{user_id}")
async def attach_user(
    client_id: int,
    user_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    authorize(
        provider,
        current_user,
        Action.ATTACH,
        ResourceType.CLIENT_USER,
        CLIENT_NOT_FOUND,
    )
    client = await _get_client_or_404(db, client_id)
    user = await _get_user_or_404(db, user_id)
    payload = _association_payload(client, user)

    if await _association_exists(db, client_id, user_id):
        raise conflict_response("User is already attached to this client.")

    try:
        await db.execute(
            insert(client_user_association).values(client_id=client_id, user_id=user_id)
        )
        await db.commit()
    except IntegrityError:
        # lost a race with a concurrent attach of the same pair
        await db.rollback()
        raise conflict_response("User is already attached to this client.")

    logger.info("Attached user %s to client %s", user_id, client_id)
    return success_response(message="User attached successfully", data=payload)


@router.delete("/{client_id}/users/{user_id}")
async def detach_user(
    client_id: int,
    user_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    """Detach a user. A matching ``default_client_id`` is cleared as well."""
    authorize(
        provider,
        current_user,
        Action.DETACH,
        ResourceType.CLIENT_USER,
        CLIENT_NOT_FOUND,
    )
    client = await _get_client_or_404(db, client_id)
    user = await _get_user_or_404(db, user_id)
    payload = _association_payload(client, user)

    if not await _association_exists(db, client_id, user_id):
        raise not_found_response("User is not attached to this client.")

    await db.execute(
        delete(client_user_association).where(
            client_user_association.c.client_id == client_id,
            client_user_association.c.user_id == user_id,
        )
    )
    await db.execute(
        update(User)
        .where(User.id == user_id, User.default_client_id == client_id)
        .values(default_client_id=None)
    )
    await db.commit()

    logger.info("Detached user %s from client %s", user_id, client_id)
    return success_response(message="User detached successfully", data=payload)
