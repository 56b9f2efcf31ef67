from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.auth.dependencies import get_authorized_organization
from classroom.db.database import get_session
from classroom.dependencies import get_github_client_factory, get_selector
from classroom.github_client import GitHubError
from classroom.models import Organization
from classroom.routes.responses import respond
from classroom.services.jobs import ClientFactory
from classroom.services.results import HandlerResult
from classroom.services.webhook import NoValidTokenError, Selector, activate_organization_webhook

router = APIRouter(
    prefix="/organizations/{org}",
    tags=["Organization"],
)


@router.post("/webhook")
async def activate_webhook(
    request: Request,
    organization: Organization = Depends(get_authorized_organization),
    session: AsyncSession = Depends(get_session),
    selector: Selector = Depends(get_selector),
    client_factory: ClientFactory = Depends(get_github_client_factory),
):
    try:
        webhook = await activate_organization_webhook(
            session, organization, selector=selector, client_factory=client_factory
        )
    except NoValidTokenError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except GitHubError as e:
        return respond(request, HandlerResult.from_github_error(e), on_success=lambda value: value)

    return {
        "id": webhook.id,
        "github_id": webhook.github_id,
        "github_organization_id": webhook.github_organization_id,
        "organization_id": organization.id,
    }
