"""
Posts with optional image upload.

Create and update take multipart form data so an image can travel with the
post. The image is validated before anything is written to the blob store;
once stored, only its key and public URL are kept on the post. Replacing or
deleting an image removes the old blob after the database commit, and a
failure to do so is logged rather than surfaced.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from postdesk.api.v1.deps import authorize, get_authorization_provider, get_blob_store
from postdesk.api.v1.helpers.auth_interface import AuthorizationProvider
from postdesk.api.v1.helpers.authentication import AuthenticatedUser, get_current_user
from postdesk.api.v1.helpers.pagination import Pagination, get_pagination, paginate
from postdesk.api.v1.helpers.responses import (
    error_response,
    not_found_response,
    success_response,
    unconfigured_response,
)
from postdesk.api.v1.helpers.validation import (
    FieldErrors,
    RequiredString,
    RequiredText,
    check_url,
    parse_payload,
    record_exists,
)
from postdesk.core.authorization import (
    Action,
    Decision,
    ResourceType,
    apply_scope,
    load_in_scope,
)
from postdesk.core.storage import (
    ALLOWED_IMAGE_CONTENT_TYPES,
    ALLOWED_IMAGE_EXTENSIONS,
    MAX_IMAGE_BYTES,
    POSTS_PREFIX,
    BlobStore,
    StorageError,
    StorageNotConfiguredError,
    StoredBlob,
    discard_blob,
)
from postdesk.db.session import get_db
from postdesk.models import Client, Post, PostCategory, User
from postdesk.models.pydantic_models.core_models import PostModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])

POST_NOT_FOUND = "Post not found"

POST_LOAD_OPTIONS = (
    selectinload(Post.user),
    selectinload(Post.client),
    selectinload(Post.category),
)


# ── payloads ──────────────────────────────────────────────────────────────


class PostFields(BaseModel):
    user_id: int | None = None
    client_id: int | None = None
    image_url: str | None = Field(None, max_length=255)

    @field_validator("image_url")
    @classmethod
    def image_url_is_url(cls, v):
        return check_url(v)


class CreatePostPayload(PostFields):
    title: RequiredString
    content: RequiredText
    post_category_id: int


class UpdatePostPayload(PostFields):
    title: RequiredString | None = None
    content: RequiredText | None = None
    post_category_id: int | None = None


def _form_data(**fields) -> dict:
    """Drop form fields that were not sent at all."""
    return {name: value for name, value in fields.items() if value is not None}


class ImageUpload:
    """An uploaded image that passed validation but is not stored yet."""

    def __init__(self, content: bytes, extension: str, content_type: str | None):
        self.content = content
        self.extension = extension
        self.content_type = content_type


async def _read_image(image: UploadFile | None, errors: FieldErrors) -> ImageUpload | None:
    if image is None or not image.filename:
        return None

    extension = image.filename.rsplit(".", 1)[-1].lower() if "." in image.filename else ""
    content_type = (image.content_type or "").lower()
    allowed = ", ".join(sorted(ALLOWED_IMAGE_EXTENSIONS))
    if (
        extension not in ALLOWED_IMAGE_EXTENSIONS
        or content_type not in ALLOWED_IMAGE_CONTENT_TYPES
    ):
        errors.add("image", f"The image must be a file of type: {allowed}.")
        return None

    content = await image.read(MAX_IMAGE_BYTES + 1)
    if len(content) > MAX_IMAGE_BYTES:
        errors.add(
            "image",
            f"The image may not be greater than {MAX_IMAGE_BYTES // 1024} kilobytes.",
        )
        return None
    return ImageUpload(content, extension, content_type)


async def _store_image(store: BlobStore, upload: ImageUpload) -> StoredBlob:
    try:
        return await store.store(
            POSTS_PREFIX, upload.content, upload.extension, upload.content_type
        )
    except StorageNotConfiguredError as e:
        raise unconfigured_response(str(e))
    except StorageError as e:
        raise error_response(
            message="Failed to upload image",
            error=str(e),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


async def _check_category(
    db: AsyncSession, errors: FieldErrors, category_id: int, client_id: int | None
) -> None:
    category = await db.get(PostCategory, category_id)
    if category is None:
        errors.add("post_category_id", "The selected post category id is invalid.")
    elif client_id is not None and category.client_id != client_id:
        errors.add(
            "post_category_id", "The selected post category does not belong to the client."
        )


async def _check_owner_ids(
    db: AsyncSession, errors: FieldErrors, user_id: int | None, client_id: int | None
) -> None:
    if user_id is not None and not await record_exists(db, User, user_id):
        errors.add("user_id", "The selected user id is invalid.")
    if client_id is not None and not await record_exists(db, Client, client_id):
        errors.add("client_id", "The selected client id is invalid.")


async def _load_post(db: AsyncSession, post_id: int) -> Post:
    result = await db.execute(
        select(Post)
        .options(*POST_LOAD_OPTIONS)
        .where(Post.id == post_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _load_or_404(db: AsyncSession, post_id: int, decision: Decision) -> Post:
    post = await load_in_scope(db, Post, post_id, decision, options=POST_LOAD_OPTIONS)
    if post is None:
        raise not_found_response(POST_NOT_FOUND)
    return post


def _authorize(provider, current_user, action: Action) -> Decision:
    return authorize(provider, current_user, action, ResourceType.POST, POST_NOT_FOUND)


# ── endpoints ─────────────────────────────────────────────────────────────


@router.get("")
async def list_posts(
    client_id: int | None = Query(None),
    user_id: int | None = Query(None),
    pagination: Pagination = Depends(get_pagination),
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    """List posts, newest first."""
    decision = _authorize(provider, current_user, Action.LIST)

    stmt = apply_scope(select(Post), Post, decision)
    if client_id is not None and not decision.is_scoped:
        stmt = stmt.where(Post.client_id == client_id)
    if user_id is not None:
        stmt = stmt.where(Post.user_id == user_id)

    page = await paginate(
        db,
        stmt.order_by(Post.id.desc()),
        pagination,
        PostModel.model_validate,
        options=POST_LOAD_OPTIONS,
    )
    return success_response(data=page)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    title: str | None = Form(None),
    content: str | None = Form(None),
    post_category_id: str | None = Form(None),
    user_id: str | None = Form(None),
    client_id: str | None = Form(None),
    image_url: str | None = Form(None),
    image: UploadFile | None = File(None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    store: BlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    """Create a post.

    Non-admin callers always post as themselves; when posts are client-scoped
    they also post into their scope client. Admins must name both the author
    and the client.
    """
    decision = _authorize(provider, current_user, Action.CREATE)
    payload = parse_payload(
        CreatePostPayload,
        _form_data(
            title=title,
            content=content,
            post_category_id=post_category_id,
            user_id=user_id,
            client_id=client_id,
            image_url=image_url,
        ),
    )

    errors = FieldErrors()
    if current_user.is_admin:
        owner_id, owner_client_id = payload.user_id, payload.client_id
        if owner_id is None:
            errors.add("user_id", "The user id field is required.")
    else:
        owner_id = current_user.user_id
        owner_client_id = decision.scope if decision.is_scoped else payload.client_id
    if owner_client_id is None:
        errors.add("client_id", "The client id field is required.")
    elif not current_user.is_admin and owner_client_id not in current_user.client_ids:
        errors.add("client_id", "You are not associated with the selected client.")

    await _check_owner_ids(
        db,
        errors,
        owner_id if current_user.is_admin else None,
        None if decision.is_scoped else owner_client_id,
    )
    await _check_category(db, errors, payload.post_category_id, owner_client_id)
    upload = await _read_image(image, errors)
    errors.raise_if_any()

    blob = await _store_image(store, upload) if upload else None

    post = Post(
        user_id=owner_id,
        client_id=owner_client_id,
        post_category_id=payload.post_category_id,
        title=payload.title,
        content=payload.content,
        image_url=blob.url if blob else payload.image_url,
        image_key=blob.key if blob else None,
    )
    db.add(post)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        if blob:
            await discard_blob(store, blob.key)
        raise

    logger.info("Post %s created by user %s", post.id, current_user.user_id)
    post = await _load_post(db, post.id)
    return success_response(
        message="Post created successfully", data=PostModel.model_validate(post)
    )


@router.get("/{post_id}")
async def get_post(
    post_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    db: AsyncSession = Depends(get_db),
):
    decision = _authorize(provider, current_user, Action.VIEW)
    post = await _load_or_404(db, post_id, decision)
    return success_response(data=PostModel.model_validate(post))


@router.post("/{post_id}")
async def update_post(
    post_id: int,
    title: str | None = Form(None),
    content: str | None = Form(None),
    post_category_id: str | None = Form(None),
    user_id: str | None = Form(None),
    client_id: str | None = Form(None),
    image_url: str | None = Form(None),
    image: UploadFile | None = File(None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    store: BlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    """Partial multipart update.

    Only admins may move a post to another author or client. A new image (or
    a new ``image_url``) replaces the old one, whose blob is removed after
    the commit.
    """
    decision = _authorize(provider, current_user, Action.UPDATE)
    post = await _load_or_404(db, post_id, decision)
    payload = parse_payload(
        UpdatePostPayload,
        _form_data(
            title=title,
            content=content,
            post_category_id=post_category_id,
            user_id=user_id,
            client_id=client_id,
            image_url=image_url,
        ),
    )

    errors = FieldErrors()
    new_user_id = post.user_id
    new_client_id = post.client_id
    if current_user.is_admin:
        await _check_owner_ids(db, errors, payload.user_id, payload.client_id)
        new_user_id = payload.user_id or post.user_id
        new_client_id = payload.client_id or post.client_id

    new_category_id = payload.post_category_id or post.post_category_id
    if new_category_id != post.post_category_id or new_client_id != post.client_id:
        await _check_category(db, errors, new_category_id, new_client_id)
    upload = await _read_image(image, errors)
    errors.raise_if_any()

    blob = await _store_image(store, upload) if upload else None

    old_key = post.image_key
    if payload.title is not None:
        post.title = payload.title
    if payload.content is not None:
        post.content = payload.content
    post.user_id = new_user_id
    post.client_id = new_client_id
    post.post_category_id = new_category_id
    if blob:
        post.image_url, post.image_key = blob.url, blob.key
    elif payload.image_url is not None and payload.image_url != post.image_url:
        post.image_url, post.image_key = payload.image_url, None

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        if blob:
            await discard_blob(store, blob.key)
        raise

    if old_key and old_key != post.image_key:
        await discard_blob(store, old_key)

    post = await _load_post(db, post.id)
    return success_response(
        message="Post updated successfully", data=PostModel.model_validate(post)
    )


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    provider: AuthorizationProvider = Depends(get_authorization_provider),
    store: BlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    decision = _authorize(provider, current_user, Action.DELETE)
    post = await _load_or_404(db, post_id, decision)
    image_key = post.image_key

    await db.delete(post)
    await db.commit()
    await discard_blob(store, image_key)

    logger.info("Post %s deleted by user %s", post_id, current_user.user_id)
    return success_response(message="Post deleted successfully")
