from typing import Any, Dict, List, Mapping, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.auth.dependencies import get_authorized_organization, get_current_user
from classroom.db.database import get_session
from classroom.dependencies import get_github_client_factory, get_job_queue
from classroom.models import GroupAssignment, Organization, User
from classroom.routes.responses import flash, pop_flash, respond
from classroom.services.group_assignment import (
    GroupAssignmentParams,
    GroupingParams,
    create_group_assignment,
    find_group_assignment,
    group_assignment_repos_statement,
    list_groupings,
)
from classroom.services.jobs import ClientFactory, JobQueue
from classroom.services.pagination import paginate

router = APIRouter(
    prefix="/organizations/{org}/group_assignments",
    tags=["GroupAssignment"],
)

TRUE_VALUES = {"1", "true", "on", "yes"}


def parse_group_assignment_form(
    form: Mapping[str, Any],
) -> Tuple[GroupAssignmentParams, GroupingParams, Optional[str], Dict[str, List[str]]]:
    """Pick the permitted ``group_assignment[...]`` and ``grouping[...]`` fields out of a form body."""
    errors: Dict[str, List[str]] = {}

    grouping_id = None
    raw_grouping_id = (form.get("group_assignment[grouping_id]") or "").strip()
    if raw_grouping_id:
        try:
            grouping_id = int(raw_grouping_id)
        except ValueError:
            errors["grouping_id"] = ["is not a number"]

    public_repo = form.get("group_assignment[public_repo]")
    params = GroupAssignmentParams(
        title=form.get("group_assignment[title]") or "",
        public_repo=True if public_repo is None else public_repo.strip().lower() in TRUE_VALUES,
        grouping_id=grouping_id,
    )
    grouping_params = GroupingParams(title=form.get("grouping[title]") or "")
    return params, grouping_params, form.get("repo_name"), errors


def form_payload(
    params: GroupAssignmentParams,
    groupings: List[Tuple[str, int]],
    errors: Optional[Dict[str, List[str]]] = None,
    flash_messages: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    return {
        "group_assignment": params,
        "groupings": [[title, grouping_id] for title, grouping_id in groupings],
        "errors": errors or {},
        "flash": flash_messages or {},
    }


async def get_group_assignment_or_404(
    id: str,
    organization: Organization = Depends(get_authorized_organization),
    session: AsyncSession = Depends(get_session),
) -> GroupAssignment:
    group_assignment = await find_group_assignment(session, organization, id)
    if group_assignment is None:
        raise HTTPException(status_code=404, detail="Group assignment not found")
    return group_assignment


@router.get("/new")
async def new_group_assignment(
    request: Request,
    organization: Organization = Depends(get_authorized_organization),
    session: AsyncSession = Depends(get_session),
):
    groupings = await list_groupings(session, organization)
    return form_payload(GroupAssignmentParams(), groupings, flash_messages=pop_flash(request))


@router.post("")
async def create_group_assignment_route(
    request: Request,
    organization: Organization = Depends(get_authorized_organization),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    client_factory: ClientFactory = Depends(get_github_client_factory),
    queue: JobQueue = Depends(get_job_queue),
):
    groupings = await list_groupings(session, organization)
    form = await request.form()
    params, grouping_params, repo_name, form_errors = parse_group_assignment_form(form)

    def render_new(result):
        payload = form_payload(result.value or params, groupings, result.errors)
        return JSONResponse(jsonable_encoder(payload), status_code=200)

    if form_errors:
        return JSONResponse(jsonable_encoder(form_payload(params, groupings, form_errors)), status_code=200)

    result = await create_group_assignment(
        session,
        organization,
        user,
        params,
        grouping_params,
        repo_name,
        client_factory(user.token),
        queue,
    )

    def redirect_to_show(group_assignment: GroupAssignment):
        flash(request, "success", f'"{group_assignment.title}" has been created!')
        url = request.app.url_path_for(
            "show_group_assignment", org=organization.slug, id=group_assignment.slug
        )
        return RedirectResponse(str(url), status_code=303)

    return respond(request, result, on_success=redirect_to_show, on_invalid=render_new)


@router.get("/{id}", name="show_group_assignment")
async def show_group_assignment(
    request: Request,
    page: Optional[str] = None,
    group_assignment: GroupAssignment = Depends(get_group_assignment_or_404),
    session: AsyncSession = Depends(get_session),
):
    repos = await paginate(session, group_assignment_repos_statement(group_assignment), page)
    return {
        "group_assignment": group_assignment,
        "group_assignment_repos": repos,
        "flash": pop_flash(request),
    }
