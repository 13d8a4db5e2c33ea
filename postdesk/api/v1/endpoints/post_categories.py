"""
Post categories, scoped to a client.

Admins work across clients and may filter listings by ``client_id``. Other
users only ever see the categories of their scope client, and a category of
another client answers exactly like a missing one.
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from postdesk.api.v1.deps import authorize, get_authorization_provider
from postdesk.api.v1.helpers.auth_interface import AuthorizationProvider
from postdesk.api.v1.helpers.authentication import AuthenticatedUser, get_current_user
from postdesk.api.v1.helpers.pagination import Pagination, get_pagination, paginate
from postdesk.api.v1.helpers.responses import not_found_response, success_response
from postdesk.api.v1.helpers.validation import (
    FieldErrors,
    RequiredString,
    record_exists,
)
from postdesk.core.authorization import Action, ResourceType, apply_scope, load_in_scope
from postdesk.db.session import get_db
from postdesk.models import Client, PostCategory
from postdesk.models.pydantic_models.core_models import PostCategoryModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/post-categories", tags=["Post Categories"])

CATEGORY_NOT_FOUND = "Post category not found"


class CreatePostCategoryRequest(BaseModel):
    name: RequiredString
    client_id: int | None = None


class UpdatePostCategoryRequest(BaseModel):
    name: RequiredString


def _authorize(provider, current_user, action: Action):
    return authorize(
        provider, current_user, action, ResourceType.POST_CATEGORY, CATEGORY_NOT_FOUND
    )


async def _load_or_404(db: AsyncSession, category_id: int, decision) -> PostCategory:
    category = await load_in_scope(db, PostCategory, category_id, decision)
    if category is None:
        raise not_found_response(CATEGORY_NOT_FOUND)
    return category


@router.get("")
async def list_post_categories(
    client_id: int | None = Query(None, description="Admin only: filter by client"),
    pagination: Pagination = Depends(get_pagination),
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    decision = _authorize(provider, current_user, Action.LIST)

    stmt = apply_scope(select(PostCategory), PostCategory, decision)
    if not decision.is_scoped and client_id is not None:
        stmt = stmt.where(PostCategory.client_id == client_id)

    page = await paginate(
        db,
        stmt.order_by(PostCategory.id),
        pagination,
        PostCategoryModel.model_validate,
    )
    return success_response(data=page)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post_category(
    request: CreatePostCategoryRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    """Create a category. Non-admin callers always create in their scope client."""
    decision = _authorize(provider, current_user, Action.CREATE)

    if decision.is_scoped:
        client_id = decision.scope
    else:
        errors = FieldErrors()
        if request.client_id is None:
            errors.add("client_id", "The client id field is required.")
        elif not await record_exists(db, Client, request.client_id):
            errors.add("client_id", "The selected client id is invalid.")
        errors.raise_if_any()
        client_id = request.client_id

    category = PostCategory(name=request.name, client_id=client_id)
    db.add(category)
    await db.commit()

    logger.info(
        "Post category %s created for client %s by user %s",
        category.id,
        client_id,
        current_user.user_id,
    )
    return success_response(
        message="Post category created successfully",
        data=PostCategoryModel.model_validate(category),
    )


@router.get("/{category_id}")
async def get_post_category(
    category_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    decision = _authorize(provider, current_user, Action.VIEW)
    category = await _load_or_404(db, category_id, decision)
    return success_response(data=PostCategoryModel.model_validate(category))


@router.put("/{category_id}")
async def update_post_category(
    category_id: int,
    request: UpdatePostCategoryRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    decision = _authorize(provider, current_user, Action.UPDATE)
    category = await _load_or_404(db, category_id, decision)

    category.name = request.name
    await db.commit()

    return success_response(
        message="Post category updated successfully",
        data=PostCategoryModel.model_validate(category),
    )


@router.delete("/{category_id}")
async def delete_post_category(
    category_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    """Delete a category together with its posts."""
    decision = _authorize(provider, current_user, Action.DELETE)
    category = await _load_or_404(db, category_id, decision)
    await db.delete(category)
    await db.commit()

    logger.info("Post category %s deleted by user %s", category_id, current_user.user_id)
    return success_response(message="Post category deleted successfully")
