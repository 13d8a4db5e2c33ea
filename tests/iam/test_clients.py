"""Client CRUD and client/user association tests."""

import pytest
from sqlalchemy import func, select


async def _association_count(db_session) -> int:
    from postdesk.models.iam import client_user_association

    return await db_session.scalar(
        select(func.count()).select_from(client_user_association)
    )


@pytest.mark.asyncio
async def test_client_crud(test_client, admin_headers):
    resp = await test_client.post(
        "/api/clients",
        headers=admin_headers,
        json={"name": "Acme", "website": "https://acme.test", "city": "Lisbon"},
    )
    assert resp.status_code == 201
    client_id = resp.json()["data"]["id"]

    resp = await test_client.put(
        f"/api/clients/{client_id}", headers=admin_headers, json={"notes": "VIP"}
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["notes"] == "VIP"
    assert data["name"] == "Acme"

    resp = await test_client.get("/api/clients", headers=admin_headers)
    assert resp.json()["data"]["total_count"] == 1

    resp = await test_client.delete(f"/api/clients/{client_id}", headers=admin_headers)
    assert resp.status_code == 200
    resp = await test_client.get(f"/api/clients/{client_id}", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_client_website_must_be_url(test_client, admin_headers):
    resp = await test_client.post(
        "/api/clients", headers=admin_headers, json={"name": "Acme", "website": "acme"}
    )
    assert resp.status_code == 422
    assert "website" in resp.json()["errors"]


@pytest.mark.asyncio
async def test_clients_are_admin_only(test_client, user_factory, headers_for):
    user = await user_factory()
    resp = await test_client.post(
        "/api/clients", headers=await headers_for(user), json={"name": "Nope"}
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_attach_twice_conflicts(
    test_client, db_session, admin_headers, user_factory, client_factory
):
    user = await user_factory(name="Dana", email="dana@example.com")
    client = await client_factory(name="Acme", website="https://acme.test")
    url = f"/api/clients/{client.id}/users/{user.id}"

    first = await test_client.post(url, headers=admin_headers)
    assert first.status_code == 200
    assert first.json()["data"] == {
        "client": {"id": client.id, "name": "Acme", "website": "https://acme.test"},
        "user": {"id": user.id, "name": "Dana", "email": "dana@example.com"},
    }

    second = await test_client.post(url, headers=admin_headers)
    assert second.status_code == 409
    assert await _association_count(db_session) == 1


@pytest.mark.asyncio
async def test_detach_missing_pair_is_404(
    test_client, db_session, admin_headers, user_factory, client_factory
):
    user = await user_factory()
    other = await user_factory()
    client = await client_factory(users=[other])

    resp = await test_client.delete(
        f"/api/clients/{client.id}/users/{user.id}", headers=admin_headers
    )
    assert resp.status_code == 404
    assert await _association_count(db_session) == 1


@pytest.mark.asyncio
async def test_detach_clears_default_client(
    test_client, db_session, admin_headers, user_factory, client_factory
):
    user = await user_factory()
    client = await client_factory(users=[user])
    user.default_client_id = client.id
    await db_session.commit()

    resp = await test_client.delete(
        f"/api/clients/{client.id}/users/{user.id}", headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["id"] == user.id

    await db_session.refresh(user)
    assert user.default_client_id is None
    assert await _association_count(db_session) == 0


@pytest.mark.asyncio
async def test_list_client_users_in_attach_order(
    test_client, admin_headers, user_factory, client_factory
):
    late = await user_factory(name="Late")
    early = await user_factory(name="Early")
    client = await client_factory(users=[early, late])

    resp = await test_client.get(
        f"/api/clients/{client.id}/users", headers=admin_headers
    )
    assert resp.status_code == 200
    assert [u["id"] for u in resp.json()["data"]] == [early.id, late.id]


@pytest.mark.asyncio
async def test_attach_unknown_user_is_404(test_client, admin_headers, client_factory):
    client = await client_factory()
    resp = await test_client.post(
        f"/api/clients/{client.id}/users/999", headers=admin_headers
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_attach_race_on_unique_pair_conflicts(
    test_client, db_session, admin_headers, user_factory, client_factory, monkeypatch
):
    from postdesk.api.v1.endpoints import clients as clients_endpoint

    async def _never_attached(db, client_id, user_id):
        return False

    # both requests get past the existence check, as two concurrent ones would
    monkeypatch.setattr(clients_endpoint, "_association_exists", _never_attached)

    user = await user_factory()
    client = await client_factory()
    url = f"/api/clients/{client.id}/users/{user.id}"

    first = await test_client.post(url, headers=admin_headers)
    assert first.status_code == 200

    second = await test_client.post(url, headers=admin_headers)
    assert second.status_code == 409
    assert second.json() == {
        "success": False,
        "message": "User is already attached to this client.",
    }
    assert await _association_count(db_session) == 1
