import random
from typing import AsyncIterator, Callable, List, Optional, Sequence

import structlog
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.config import settings
from classroom.github_client import GitHubClient
from classroom.models import Organization, OrganizationWebhook, User, UserOrganization

logger = structlog.get_logger()

ADMIN_ORG_HOOK_SCOPE = "admin:org_hook"
BATCH_SIZE = 100

Selector = Callable[[Sequence[User]], User]


class NoValidTokenError(Exception):
    pass


def random_selector(candidates: Sequence[User]) -> User:
    return random.choice(candidates)


def first_selector(candidates: Sequence[User]) -> User:
    return candidates[0]


def selector_for_environment(environment: Optional[str] = None) -> Selector:
    """Test runs always pick the first candidate so token choice is deterministic."""
    environment = environment or settings.CLASSROOM_ENV
    return first_selector if environment == "test" else random_selector


def _search_scope_statement(webhook: OrganizationWebhook, organization: Optional[Organization]):
    member_ids = select(UserOrganization.user_id)
    if organization is not None:
        member_ids = member_ids.where(UserOrganization.organization_id == organization.id)
    else:
        member_ids = member_ids.join(
            Organization, Organization.id == UserOrganization.organization_id
        ).where(Organization.webhook_id == webhook.id)
    return select(User).where(User.id.in_(member_ids))


async def iter_user_batches(
    session: AsyncSession,
    statement,
    batch_size: int = BATCH_SIZE,
) -> AsyncIterator[List[User]]:
    """Walk ``statement`` in id order, ``batch_size`` users at a time."""
    last_id = 0
    while True:
        result = await session.exec(
            statement.where(User.id > last_id).order_by(User.id).limit(batch_size)
        )
        batch = result.all()
        if not batch:
            return
        yield batch
        if len(batch) < batch_size:
            return
        last_id = batch[-1].id


async def users_with_scope(
    session: AsyncSession,
    webhook: OrganizationWebhook,
    organization: Optional[Organization] = None,
    scope: str = ADMIN_ORG_HOOK_SCOPE,
) -> List[User]:
    """Find the users of ``organization`` (or of every organization on ``webhook``)
    whose cached token scopes include ``scope``.

    Scopes are read from the locally cached list, GitHub is not asked again, so
    the answer can be stale. This scans every member and can take a long time
    for large organizations; pass ``organization`` to narrow the search.
    """
    matches: List[User] = []
    scanned = 0
    async for batch in iter_user_batches(session, _search_scope_statement(webhook, organization)):
        scanned += len(batch)
        matches.extend(user for user in batch if user.has_scope(scope))

    logger.info(
        "Scanned users for token scope",
        scope=scope,
        webhook_id=webhook.id,
        organization_id=organization.id if organization else None,
        scanned=scanned,
        matches=len(matches),
    )
    return matches


class ScopedUserCache:
    """Qualifying users for one search scope, computed on first use.

    The cached list is never refreshed on its own: call ``invalidate`` or
    ``recompute`` once memberships or token scopes have changed.
    """

    def __init__(
        self,
        session: AsyncSession,
        webhook: OrganizationWebhook,
        organization: Optional[Organization] = None,
        scope: str = ADMIN_ORG_HOOK_SCOPE,
    ):
        self.session = session
        self.webhook = webhook
        self.organization = organization
        self.scope = scope
        self._users: Optional[List[User]] = None

    async def get(self) -> List[User]:
        if self._users is None:
            await self.recompute()
        return self._users

    def invalidate(self):
        self._users = None

    async def recompute(self) -> List[User]:
        self._users = await users_with_scope(self.session, self.webhook, self.organization, self.scope)
        return self._users


async def admin_org_hook_scoped_github_client(
    session: AsyncSession,
    webhook: OrganizationWebhook,
    organization: Optional[Organization] = None,
    selector: Optional[Selector] = None,
    cache: Optional[ScopedUserCache] = None,
    client_factory: Callable[[str], GitHubClient] = GitHubClient,
) -> GitHubClient:
    """Build a GitHub client from the token of a user holding ``admin:org_hook``.

    Needed to create organization webhooks. When ``cache`` is given its search
    scope is used and ``organization`` is ignored.

    Raises ``NoValidTokenError`` if no user in the search scope has the scope.
    """
    cache = cache or ScopedUserCache(session, webhook, organization)
    candidates = await cache.get()
    if not candidates:
        raise NoValidTokenError(f"No valid token with the `{ADMIN_ORG_HOOK_SCOPE}` scope.")

    user = (selector or selector_for_environment())(candidates)
    logger.info("Selected admin:org_hook token", webhook_id=webhook.id, user_id=user.id)
    return client_factory(user.token)


async def find_or_create_webhook(session: AsyncSession, organization: Organization) -> OrganizationWebhook:
    result = await session.exec(
        select(OrganizationWebhook).where(
            OrganizationWebhook.github_organization_id == organization.github_id
        )
    )
    webhook = result.first()
    if webhook is None:
        webhook = OrganizationWebhook(github_organization_id=organization.github_id)
        session.add(webhook)
        await session.flush()
        await session.refresh(webhook)

    if organization.webhook_id != webhook.id:
        organization.webhook_id = webhook.id
        session.add(organization)
    return webhook


async def activate_organization_webhook(
    session: AsyncSession,
    organization: Organization,
    selector: Optional[Selector] = None,
    client_factory: Callable[[str], GitHubClient] = GitHubClient,
) -> OrganizationWebhook:
    """Make sure ``organization`` has a webhook record and a live hook on GitHub.

    Only users of this organization are considered for the admin token.
    """
    webhook = await find_or_create_webhook(session, organization)

    if webhook.github_id is None:
        client = await admin_org_hook_scoped_github_client(
            session,
            webhook,
            organization=organization,
            selector=selector,
            client_factory=client_factory,
        )
        hook = await client.create_org_hook(
            organization.github_login,
            url=settings.WEBHOOK_URL,
            secret=settings.WEBHOOK_SECRET,
        )
        webhook.github_id = hook["id"]
        session.add(webhook)
        logger.info("Created organization webhook", organization_id=organization.id, github_id=webhook.github_id)

    await session.commit()
    await session.refresh(webhook)
    return webhook
