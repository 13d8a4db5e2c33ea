"""
Pydantic models returned by the API.

``hashed_password`` and ``image_key`` are storage details and never leave the
service.
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class UserModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    admin: bool
    default_client_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class ClientModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str | None = None
    phone: str | None = None
    website: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ClientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    website: str | None = None


class PostCategoryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PostModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    client_id: int
    post_category_id: int
    title: str
    content: str
    image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    user: UserSummary | None = None
    client: ClientSummary | None = None
    category: PostCategoryModel | None = None


class PageModel(BaseModel, Generic[T]):
    """One page of a list endpoint."""

    items: list[T]
    total_count: int
    page: int
    per_page: int
    last_page: int
