import asyncio

from fastapi.testclient import TestClient

from classroom.main import app
from tests.conftest import AsyncSessionLocal
from tests.factories import bearer_for, create_organization, create_user, sign_in


async def _user_with_organizations(count: int):
    async with AsyncSessionLocal() as session:
        user = await create_user(session, scopes=["repo", "admin:org_hook"])
        organizations = [await create_organization(session, members=[user]) for _ in range(count)]
        await create_organization(session)  # not a member
        return user, organizations


def test_profile_lists_own_organizations_paginated(setup_database):
    user, organizations = asyncio.run(_user_with_organizations(27))

    with TestClient(app) as client:
        sign_in(client, user)
        first = client.get("/users/me")
        second = client.get("/users/me", params={"page": "2"})
        clamped = client.get("/users/me", params={"page": "-4"})
        far = client.get("/users/me", params={"page": str(10**20)})

    assert first.status_code == 200
    data = first.json()
    assert data["user"]["id"] == user.id
    assert "token" not in data["user"]
    assert data["user"]["token_scopes"] == ["repo", "admin:org_hook"]
    assert data["organizations"]["total_count"] == 27
    assert len(data["organizations"]["items"]) == 25

    own_ids = {organization.id for organization in organizations}
    listed = data["organizations"]["items"] + second.json()["organizations"]["items"]
    assert {organization["id"] for organization in listed} == own_ids
    assert second.json()["organizations"]["page"] == 2
    assert clamped.json()["organizations"]["page"] == 1
    assert far.status_code == 200
    assert far.json()["organizations"]["items"] == []
    assert far.json()["organizations"]["total_count"] == 27


def test_profile_requires_a_session(setup_database):
    with TestClient(app) as client:
        response = client.get("/users/me")
    assert response.status_code == 401


def test_sign_in_rejects_bad_tokens(setup_database):
    user, _ = asyncio.run(_user_with_organizations(0))

    with TestClient(app) as client:
        missing = client.post("/sessions", headers={"Authorization": "Token abc"})
        wrong_secret = client.post("/sessions", headers={"Authorization": bearer_for(user, secret="nope")})

    assert missing.status_code == 401
    assert wrong_secret.status_code == 401


def test_sign_out_clears_the_session(setup_database):
    user, _ = asyncio.run(_user_with_organizations(1))

    with TestClient(app) as client:
        sign_in(client, user)
        assert client.get("/users/me").status_code == 200
        assert client.delete("/sessions").status_code == 200
        assert client.get("/users/me").status_code == 401
