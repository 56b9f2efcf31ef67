import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import select

from classroom.dependencies import get_github_client_factory
from classroom.github_client import GitHubClient
from classroom.main import app
from classroom.models import Organization, OrganizationWebhook
from tests.conftest import AsyncSessionLocal
from tests.factories import create_organization, create_user, sign_in


class HookRecorder:
    def __init__(self, status_code=201):
        self.status_code = status_code
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.url.path, request.headers["Authorization"], json.loads(request.content)))
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"message": "Must have admin rights to Repository."})
        return httpx.Response(self.status_code, json={"id": 8675309})

    def factory(self, token: str) -> GitHubClient:
        return GitHubClient(token, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def hooks():
    recorder = HookRecorder()
    app.dependency_overrides[get_github_client_factory] = lambda: recorder.factory
    yield recorder
    app.dependency_overrides.pop(get_github_client_factory, None)


async def _organization(admin_scope: bool):
    async with AsyncSessionLocal() as session:
        instructor = await create_user(session, scopes=["repo"])
        admin = await create_user(session, scopes=["admin:org_hook"] if admin_scope else ["repo"])
        organization = await create_organization(session, members=[instructor, admin])
        return instructor, admin, organization


async def _webhook_for(organization: Organization):
    async with AsyncSessionLocal() as session:
        result = await session.exec(
            select(OrganizationWebhook).where(
                OrganizationWebhook.github_organization_id == organization.github_id
            )
        )
        webhook = result.first()
        refreshed = await session.get(Organization, organization.id)
        return webhook, refreshed


def test_activation_creates_hook_with_admin_token(setup_database, hooks):
    instructor, admin, organization = asyncio.run(_organization(admin_scope=True))

    with TestClient(app) as client:
        sign_in(client, instructor)
        response = client.post(f"/organizations/{organization.slug}/webhook")
        again = client.post(f"/organizations/{organization.slug}/webhook")

    assert response.status_code == 200
    assert response.json()["github_id"] == 8675309
    assert again.json()["id"] == response.json()["id"]
    assert len(hooks.requests) == 1

    path, authorization, payload = hooks.requests[0]
    assert path == f"/orgs/{organization.github_login}/hooks"
    assert authorization == f"Bearer {admin.token}"
    assert payload["name"] == "web"

    webhook, refreshed = asyncio.run(_webhook_for(organization))
    assert webhook.github_id == 8675309
    assert refreshed.webhook_id == webhook.id


def test_activation_without_admin_token_is_unprocessable(setup_database, hooks):
    instructor, _, organization = asyncio.run(_organization(admin_scope=False))

    with TestClient(app) as client:
        sign_in(client, instructor)
        response = client.post(f"/organizations/{organization.slug}/webhook")

    assert response.status_code == 422
    assert "No valid token" in response.json()["detail"]
    assert hooks.requests == []
    webhook, _ = asyncio.run(_webhook_for(organization))
    assert webhook is None


def test_activation_github_error_is_flashed(setup_database, hooks):
    hooks.status_code = 403
    instructor, _, organization = asyncio.run(_organization(admin_scope=True))

    with TestClient(app) as client:
        sign_in(client, instructor)
        response = client.post(f"/organizations/{organization.slug}/webhook", follow_redirects=False)
        profile = client.get("/users/me")

    assert response.status_code == 303
    assert response.headers["location"] == "/users/me"
    assert profile.json()["flash"] == {"error": "Must have admin rights to Repository."}
