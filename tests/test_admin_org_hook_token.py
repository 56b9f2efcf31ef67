import asyncio

import pytest

from classroom.models import UserOrganization
from classroom.services.webhook import (
    ADMIN_ORG_HOOK_SCOPE,
    NoValidTokenError,
    ScopedUserCache,
    admin_org_hook_scoped_github_client,
    first_selector,
    random_selector,
    selector_for_environment,
    users_with_scope,
)
from tests.conftest import AsyncSessionLocal
from tests.factories import create_organization, create_user, create_webhook


def test_raises_when_no_user_has_the_scope(setup_database):
    async def scenario():
        async with AsyncSessionLocal() as session:
            webhook = await create_webhook(session)
            members = [
                await create_user(session, scopes=["repo"]),
                await create_user(session, scopes=["read:org", "admin:org"]),
            ]
            await create_organization(session, webhook=webhook, members=members)

            with pytest.raises(NoValidTokenError, match="No valid token"):
                await admin_org_hook_scoped_github_client(session, webhook)

    asyncio.run(scenario())


def test_raises_for_webhook_without_organizations(setup_database):
    async def scenario():
        async with AsyncSessionLocal() as session:
            webhook = await create_webhook(session)
            with pytest.raises(NoValidTokenError):
                await admin_org_hook_scoped_github_client(session, webhook, selector=random_selector)

    asyncio.run(scenario())


def test_returns_client_for_a_user_with_the_scope(setup_database):
    async def scenario():
        async with AsyncSessionLocal() as session:
            webhook = await create_webhook(session)
            without_scope = await create_user(session, scopes=["repo"])
            admins = [
                await create_user(session, scopes=["repo", ADMIN_ORG_HOOK_SCOPE]),
                await create_user(session, scopes=[ADMIN_ORG_HOOK_SCOPE]),
            ]
            await create_organization(session, webhook=webhook, members=[without_scope, admins[0]])
            await create_organization(session, webhook=webhook, members=[admins[1]])

            admin_tokens = {user.token for user in admins}
            for _ in range(20):
                client = await admin_org_hook_scoped_github_client(session, webhook, selector=random_selector)
                assert client.token in admin_tokens

            client = await admin_org_hook_scoped_github_client(session, webhook, selector=first_selector)
            assert client.token == admins[0].token

    asyncio.run(scenario())


def test_organization_argument_narrows_the_search(setup_database):
    async def scenario():
        async with AsyncSessionLocal() as session:
            webhook = await create_webhook(session)
            outside_admin = await create_user(session, scopes=[ADMIN_ORG_HOOK_SCOPE])
            inside_member = await create_user(session, scopes=["repo"])
            await create_organization(session, webhook=webhook, members=[outside_admin])
            narrow = await create_organization(session, webhook=webhook, members=[inside_member])

            broad = await admin_org_hook_scoped_github_client(session, webhook)
            assert broad.token == outside_admin.token

            with pytest.raises(NoValidTokenError):
                await admin_org_hook_scoped_github_client(session, webhook, organization=narrow)

            inside_admin = await create_user(session, scopes=[ADMIN_ORG_HOOK_SCOPE])
            narrow_with_admin = await create_organization(
                session, webhook=webhook, members=[inside_member, inside_admin]
            )
            for _ in range(10):
                client = await admin_org_hook_scoped_github_client(
                    session, webhook, organization=narrow_with_admin, selector=random_selector
                )
                assert client.token == inside_admin.token

    asyncio.run(scenario())


def test_users_are_scanned_across_batches(setup_database):
    async def scenario():
        async with AsyncSessionLocal() as session:
            webhook = await create_webhook(session)
            members = [await create_user(session, scopes=["repo"]) for _ in range(130)]
            late_admin = await create_user(session, scopes=[ADMIN_ORG_HOOK_SCOPE])
            organization = await create_organization(session, webhook=webhook, members=members + [late_admin])

            users = await users_with_scope(session, webhook, organization)
            assert [user.id for user in users] == [late_admin.id]

    asyncio.run(scenario())


def test_scoped_user_cache_is_explicitly_invalidated(setup_database):
    async def scenario():
        async with AsyncSessionLocal() as session:
            webhook = await create_webhook(session)
            first_admin = await create_user(session, scopes=[ADMIN_ORG_HOOK_SCOPE])
            organization = await create_organization(session, webhook=webhook, members=[first_admin])

            cache = ScopedUserCache(session, webhook, organization)
            assert [user.id for user in await cache.get()] == [first_admin.id]

            second_admin = await create_user(session, scopes=[ADMIN_ORG_HOOK_SCOPE])
            await create_organization(session, webhook=webhook, members=[second_admin])
            organization_member = await create_user(session, scopes=[ADMIN_ORG_HOOK_SCOPE])
            session.add(UserOrganization(user_id=organization_member.id, organization_id=organization.id))
            await session.commit()

            # still the memoized answer
            assert [user.id for user in await cache.get()] == [first_admin.id]

            cache.invalidate()
            assert [user.id for user in await cache.get()] == [first_admin.id, organization_member.id]

            client = await admin_org_hook_scoped_github_client(
                session, webhook, cache=cache, selector=lambda users: users[-1]
            )
            assert client.token == organization_member.token

    asyncio.run(scenario())


def test_selector_depends_on_environment():
    assert selector_for_environment("test") is first_selector
    assert selector_for_environment("production") is random_selector
    assert selector_for_environment() is first_selector
