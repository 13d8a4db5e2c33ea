"""
Auth/Authz interface protocols.

Both providers are registered on ``app.state`` at startup:

* ``app.state.authentication_provider``: ``AuthenticationProvider``
* ``app.state.authorization_provider``: ``AuthorizationProvider``

The default implementations are ``BearerAuthenticationProvider`` and
``postdesk.core.authorization.ScopePolicy``.
"""

from typing import Any, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from postdesk.core.authorization import Action, Decision, ResourceType, ScopedCaller


@runtime_checkable
class AuthenticationProvider(Protocol):
    """Authenticates an incoming request and returns the caller."""

    async def authenticate(self, request: Any, db: AsyncSession) -> Any:
        """Return a ``ScopedCaller``-compatible object or raise 401."""
        ...


@runtime_checkable
class AuthorizationProvider(Protocol):
    """Decides whether the caller may act on a resource type, and in which scope."""

    def authorize(
        self,
        caller: ScopedCaller,
        action: Action,
        resource_type: ResourceType,
    ) -> Decision: ...
