from fastapi import Request

from postdesk.api.v1.helpers.auth_interface import AuthorizationProvider
from postdesk.api.v1.helpers.responses import deny_response
from postdesk.config import settings
from postdesk.core.authorization import Action, Decision, ResourceType, ScopePolicy, ScopedCaller
from postdesk.core.storage import BlobStore, S3BlobStore


def get_authorization_provider(request: Request) -> AuthorizationProvider:
    provider = getattr(request.app.state, "authorization_provider", None)
    if provider is None:
        provider = ScopePolicy.from_settings(settings)
    return provider


def get_blob_store(request: Request) -> BlobStore:
    store = getattr(request.app.state, "blob_store", None)
    if store is None:
        store = S3BlobStore(settings)
        request.app.state.blob_store = store
    return store


def authorize(
    provider: AuthorizationProvider,
    caller: ScopedCaller,
    action: Action,
    resource_type: ResourceType,
    not_found_message: str = "Resource not found",
) -> Decision:
    """Ask the policy and raise the matching error response on denial."""
    decision = provider.authorize(caller, action, resource_type)
    if not decision.allowed:
        raise deny_response(decision, not_found_message)
    return decision
