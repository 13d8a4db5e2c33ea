"""Unit tests for the scope policy."""

from dataclasses import dataclass, field
from types import SimpleNamespace

import pytest

from postdesk.core.authorization import (
    Action,
    Decision,
    DenyReason,
    ResourceType,
    ScopePolicy,
    apply_scope,
)


@dataclass
class Caller:
    user_id: int = 1
    is_admin: bool = False
    default_client_id: int | None = None
    client_ids: tuple[int, ...] = field(default_factory=tuple)


@pytest.mark.parametrize(
    "resource", [ResourceType.USER, ResourceType.CLIENT, ResourceType.CLIENT_USER]
)
def test_admin_only_resources(resource):
    policy = ScopePolicy()
    assert policy.authorize(Caller(is_admin=True), Action.LIST, resource) == Decision.allow()

    denied = policy.authorize(Caller(client_ids=(3,)), Action.LIST, resource)
    assert not denied.allowed
    assert denied.reason is DenyReason.FORBIDDEN


def test_admin_is_unscoped_for_client_resources():
    decision = ScopePolicy().authorize(
        Caller(is_admin=True, client_ids=(4,)), Action.LIST, ResourceType.POST_CATEGORY
    )
    assert decision.allowed
    assert decision.scope is None
    assert not decision.is_scoped


@pytest.mark.parametrize("resource", [ResourceType.POST_CATEGORY, ResourceType.POST])
def test_no_client_association_is_denied(resource):
    decision = ScopePolicy().authorize(Caller(), Action.CREATE, resource)
    assert decision == Decision.deny(DenyReason.NO_CLIENT_ASSOCIATION)


def test_scope_falls_back_to_first_client():
    decision = ScopePolicy().authorize(
        Caller(client_ids=(7, 2)), Action.VIEW, ResourceType.POST_CATEGORY
    )
    assert decision.scope == 7


def test_default_client_wins_while_associated():
    policy = ScopePolicy()
    assert policy.resolve_scope(Caller(default_client_id=2, client_ids=(7, 2))) == 2
    # stale default (no longer attached) is ignored
    assert policy.resolve_scope(Caller(default_client_id=9, client_ids=(7, 2))) == 7


def test_fallback_can_be_disabled():
    policy = ScopePolicy(fallback_to_first_client=False)
    assert policy.resolve_scope(Caller(client_ids=(7,))) is None
    assert policy.resolve_scope(Caller(default_client_id=7, client_ids=(7,))) == 7

    decision = policy.authorize(Caller(client_ids=(7,)), Action.LIST, ResourceType.POST)
    assert decision.reason is DenyReason.NO_CLIENT_ASSOCIATION


def test_posts_can_be_unscoped():
    policy = ScopePolicy(scope_posts_to_client=False)
    assert policy.authorize(Caller(), Action.LIST, ResourceType.POST) == Decision.allow()
    assert (
        policy.authorize(Caller(), Action.LIST, ResourceType.POST_CATEGORY).reason
        is DenyReason.NO_CLIENT_ASSOCIATION
    )


def test_from_settings():
    policy = ScopePolicy.from_settings(
        SimpleNamespace(scope_posts_to_client=False, scope_fallback_to_first_client=False)
    )
    assert policy.scope_posts_to_client is False
    assert policy.fallback_to_first_client is False


def test_apply_scope_adds_client_filter():
    from sqlalchemy import select

    from postdesk.models import PostCategory

    unscoped = apply_scope(select(PostCategory), PostCategory, Decision.allow())
    scoped = apply_scope(select(PostCategory), PostCategory, Decision.allow(5))
    assert unscoped.whereclause is None
    assert "client_id" in str(scoped.whereclause)
