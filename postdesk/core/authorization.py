"""
Resource authorization and client scoping.

``ScopePolicy.authorize`` answers two questions for a caller and a resource
type: may the caller touch this kind of resource at all, and if so, which
client's rows are visible to them. The answer is a ``Decision`` value; the
HTTP layer turns denials into responses.

Rules:

* users, clients and client/user associations are admin-only;
* post categories (and posts, unless ``scope_posts_to_client`` is off) are
  client-scoped: admins see every client, everyone else sees exactly one;
* a row outside the caller's scope is indistinguishable from a missing row.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class ResourceType(str, Enum):
    USER = "user"
    CLIENT = "client"
    CLIENT_USER = "client_user"
    POST_CATEGORY = "post_category"
    POST = "post"


class Action(str, Enum):
    LIST = "list"
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ATTACH = "attach"
    DETACH = "detach"


class DenyReason(str, Enum):
    FORBIDDEN = "forbidden"
    NO_CLIENT_ASSOCIATION = "no_client_association"
    NOT_FOUND = "not_found"


@runtime_checkable
class ScopedCaller(Protocol):
    """What the policy needs to know about the authenticated caller."""

    user_id: int
    is_admin: bool
    default_client_id: int | None
    client_ids: Sequence[int]


@dataclass(frozen=True)
class Decision:
    allowed: bool
    scope: int | None = None
    reason: DenyReason | None = None

    @classmethod
    def allow(cls, scope: int | None = None) -> "Decision":
        return cls(allowed=True, scope=scope)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)

    @property
    def is_scoped(self) -> bool:
        return self.allowed and self.scope is not None


ADMIN_ONLY_RESOURCES = frozenset(
    {ResourceType.USER, ResourceType.CLIENT, ResourceType.CLIENT_USER}
)


class ScopePolicy:
    """Single authorization policy applied to every resource type."""

    def __init__(
        self,
        scope_posts_to_client: bool = True,
        fallback_to_first_client: bool = True,
    ):
        self.scope_posts_to_client = scope_posts_to_client
        self.fallback_to_first_client = fallback_to_first_client

    @classmethod
    def from_settings(cls, settings: Any) -> "ScopePolicy":
        return cls(
            scope_posts_to_client=settings.scope_posts_to_client,
            fallback_to_first_client=settings.scope_fallback_to_first_client,
        )

    @property
    def client_scoped_resources(self) -> frozenset[ResourceType]:
        if self.scope_posts_to_client:
            return frozenset({ResourceType.POST_CATEGORY, ResourceType.POST})
        return frozenset({ResourceType.POST_CATEGORY})

    def resolve_scope(self, caller: ScopedCaller) -> int | None:
        """Return the client id a non-admin caller works in, if any.

        An explicit default client only counts while the user is still
        associated with it.
        """
        client_ids = list(caller.client_ids)
        if caller.default_client_id is not None and caller.default_client_id in client_ids:
            return caller.default_client_id
        if self.fallback_to_first_client and client_ids:
            return client_ids[0]
        return None

    def authorize(
        self,
        caller: ScopedCaller,
        action: Action,
        resource_type: ResourceType,
    ) -> Decision:
        if resource_type in ADMIN_ONLY_RESOURCES:
            if caller.is_admin:
                return Decision.allow()
            logger.debug(
                "Denied %s on %s for non-admin user %s",
                action.value,
                resource_type.value,
                caller.user_id,
            )
            return Decision.deny(DenyReason.FORBIDDEN)

        if resource_type not in self.client_scoped_resources or caller.is_admin:
            return Decision.allow()

        scope = self.resolve_scope(caller)
        if scope is None:
            return Decision.deny(DenyReason.NO_CLIENT_ASSOCIATION)
        return Decision.allow(scope)


def apply_scope(stmt, model, decision: Decision):
    """Restrict a select() to the decision's client, when it has one."""
    if decision.scope is not None:
        stmt = stmt.where(model.client_id == decision.scope)
    return stmt


async def load_in_scope(
    db: AsyncSession,
    model,
    record_id: int,
    decision: Decision,
    options: Sequence[Any] = (),
):
    """Fetch ``model`` by id inside the decision's scope, or ``None``."""
    stmt = select(model).where(model.id == record_id)
    if options:
        stmt = stmt.options(*options)
    result = await db.execute(apply_scope(stmt, model, decision))
    return result.scalar_one_or_none()
