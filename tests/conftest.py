"""
Shared test fixtures for postdesk.

Uses an in-memory SQLite database (foreign keys on) with per-test table
create/drop, and an in-memory blob store in place of S3/R2.
"""

import os
from uuid import uuid4

import pytest_asyncio
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-tests")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from postdesk.core.storage import StorageError, StoredBlob  # noqa: E402
from postdesk.db.base import Base  # noqa: E402
from postdesk.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite://"

fake = Faker()


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    """Fresh tables per test: create → yield session → drop."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Blob store mock
# ---------------------------------------------------------------------------


class InMemoryBlobStore:
    """Stands in for ``S3BlobStore``; keeps objects in a dict."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.writes: list[str] = []
        self.deletes: list[str] = []
        self.fail_deletes = False

    async def store(self, prefix, content, extension, content_type=None):
        key = f"{prefix.strip('/')}/{uuid4().hex}.{extension.lower()}"
        self.objects[key] = content
        self.writes.append(key)
        return StoredBlob(key=key, url=f"https://cdn.test/{key}")

    async def delete(self, key):
        self.deletes.append(key)
        if self.fail_deletes:
            raise StorageError(f"Failed to delete image: {key}")
        self.objects.pop(key, None)


@pytest_asyncio.fixture()
async def blob_store():
    return InMemoryBlobStore()


# ---------------------------------------------------------------------------
# Test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session, blob_store):
    from postdesk.db.session import get_db
    from postdesk.api.v1.helpers.authentication import BearerAuthenticationProvider
    from postdesk.core.authorization import ScopePolicy

    async def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    app.state.authentication_provider = BearerAuthenticationProvider()
    app.state.authorization_provider = ScopePolicy()
    app.state.blob_store = blob_store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def user_factory(db_session):
    from postdesk.api.v1.helpers.authentication import hash_password
    from postdesk.models.iam.users import User

    async def _create(
        email: str | None = None,
        name: str | None = None,
        password: str = "password123",
        admin: bool = False,
        default_client_id: int | None = None,
    ) -> User:
        user = User(
            email=email or f"user+{uuid4().hex[:6]}@example.com",
            name=name or fake.name(),
            hashed_password=hash_password(password),
            admin=admin,
            default_client_id=default_client_id,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _create


@pytest_asyncio.fixture(scope="function")
async def client_factory(db_session):
    from postdesk.models.iam import Client, client_user_association

    async def _create(name: str | None = None, users=(), **fields) -> Client:
        client = Client(name=name or fake.company(), **fields)
        db_session.add(client)
        await db_session.flush()
        for user in users:
            await db_session.execute(
                client_user_association.insert().values(
                    client_id=client.id, user_id=user.id
                )
            )
        await db_session.flush()
        return client

    return _create


@pytest_asyncio.fixture(scope="function")
async def category_factory(db_session):
    from postdesk.models import PostCategory

    async def _create(client, name: str | None = None) -> PostCategory:
        category = PostCategory(client_id=client.id, name=name or fake.word().title())
        db_session.add(category)
        await db_session.flush()
        return category

    return _create


@pytest_asyncio.fixture(scope="function")
async def post_factory(db_session):
    from postdesk.models import Post

    async def _create(
        user,
        category,
        title: str | None = None,
        image_url: str | None = None,
        image_key: str | None = None,
    ) -> Post:
        post = Post(
            user_id=user.id,
            client_id=category.client_id,
            post_category_id=category.id,
            title=title or fake.sentence(nb_words=4),
            content=fake.paragraph(),
            image_url=image_url,
            image_key=image_key,
        )
        db_session.add(post)
        await db_session.flush()
        return post

    return _create


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def headers_for(db_session):
    """Issue a bearer token for ``user`` and return request headers."""
    from postdesk.api.v1.helpers.authentication import issue_token

    async def _headers(user) -> dict[str, str]:
        token = await issue_token(db_session, user)
        await db_session.commit()
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture(scope="function")
async def admin_user(user_factory):
    return await user_factory(email="admin@example.com", name="Admin", admin=True)


@pytest_asyncio.fixture(scope="function")
async def admin_headers(admin_user, headers_for):
    return await headers_for(admin_user)
