import re
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.github_client import GitHubClient, GitHubError
from classroom.models import GroupAssignment, GroupAssignmentRepo, Grouping, Organization, User
from classroom.services.jobs import (
    CREATE_GROUP_ASSIGNMENT_INVITATION,
    CREATE_GROUP_ASSIGNMENT_REPOS,
    CREATE_GROUPING,
    JobQueue,
)
from classroom.services.results import HandlerResult
from classroom.services.slugs import unique_slug

logger = structlog.get_logger()


class GroupAssignmentParams(SQLModel):
    title: str = ""
    public_repo: bool = True
    grouping_id: Optional[int] = None


class GroupingParams(SQLModel):
    title: str = ""


def sanitize_repo_name(repo_name: str) -> str:
    return re.sub(r"\s+", "", repo_name)


async def starter_code_repository_id(client: GitHubClient, repo_name: Optional[str]) -> Optional[int]:
    if not repo_name or not repo_name.strip():
        return None
    repository = await client.repository(sanitize_repo_name(repo_name))
    return repository["id"]


async def list_groupings(session: AsyncSession, organization: Organization) -> List[Tuple[str, int]]:
    result = await session.exec(
        select(Grouping).where(Grouping.organization_id == organization.id).order_by(Grouping.title)
    )
    return [(grouping.title, grouping.id) for grouping in result.all()]


async def validate_group_assignment(
    session: AsyncSession,
    organization: Organization,
    params: GroupAssignmentParams,
    grouping_params: GroupingParams,
) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    title = params.title.strip()

    if not title:
        errors.setdefault("title", []).append("can't be blank")
    else:
        taken = await session.exec(
            select(GroupAssignment.id).where(
                GroupAssignment.organization_id == organization.id,
                GroupAssignment.title == title,
            )
        )
        if taken.first() is not None:
            errors.setdefault("title", []).append("has already been taken")

    if params.grouping_id is not None:
        grouping = await session.get(Grouping, params.grouping_id)
        if grouping is None or grouping.organization_id != organization.id:
            errors.setdefault("grouping_id", []).append("is not a grouping of this organization")
    elif not grouping_params.title.strip():
        errors.setdefault("grouping", []).append("choose an existing grouping or name a new one")

    return errors


async def create_group_assignment(
    session: AsyncSession,
    organization: Organization,
    creator: User,
    params: GroupAssignmentParams,
    grouping_params: GroupingParams,
    repo_name: Optional[str],
    client: GitHubClient,
    queue: JobQueue,
) -> HandlerResult[GroupAssignment]:
    try:
        starter_code_repo_id = await starter_code_repository_id(client, repo_name)
    except GitHubError as e:
        return HandlerResult.from_github_error(e)

    errors = await validate_group_assignment(session, organization, params, grouping_params)
    if errors:
        return HandlerResult.invalid(params, errors)

    title = params.title.strip()
    slugs = await session.exec(
        select(GroupAssignment.slug).where(GroupAssignment.organization_id == organization.id)
    )
    group_assignment = GroupAssignment(
        title=title,
        slug=unique_slug(title, slugs.all()),
        public_repo=params.public_repo,
        grouping_id=params.grouping_id,
        starter_code_repo_id=starter_code_repo_id,
        organization_id=organization.id,
        creator_id=creator.id,
    )
    session.add(group_assignment)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        return HandlerResult.invalid(params, {"title": ["has already been taken"]})
    await session.refresh(group_assignment)

    logger.info(
        "Group assignment created",
        group_assignment_id=group_assignment.id,
        organization_id=organization.id,
        starter_code_repo_id=starter_code_repo_id,
    )

    await queue.enqueue(CREATE_GROUPING, group_assignment_id=group_assignment.id, title=grouping_params.title)
    await queue.enqueue(CREATE_GROUP_ASSIGNMENT_INVITATION, group_assignment_id=group_assignment.id)
    await queue.enqueue(CREATE_GROUP_ASSIGNMENT_REPOS, group_assignment_id=group_assignment.id)

    return HandlerResult.success(group_assignment)


async def find_group_assignment(
    session: AsyncSession,
    organization: Organization,
    key: str,
) -> Optional[GroupAssignment]:
    """Look up an assignment by slug, or by id when ``key`` is numeric."""
    result = await session.exec(
        select(GroupAssignment).where(
            GroupAssignment.organization_id == organization.id,
            GroupAssignment.slug == key,
        )
    )
    group_assignment = result.first()
    if group_assignment is None and key.isdigit():
        group_assignment = await session.get(GroupAssignment, int(key))
        if group_assignment is not None and group_assignment.organization_id != organization.id:
            group_assignment = None
    return group_assignment


def group_assignment_repos_statement(group_assignment: GroupAssignment):
    return (
        select(GroupAssignmentRepo)
        .where(GroupAssignmentRepo.group_assignment_id == group_assignment.id)
        .order_by(GroupAssignmentRepo.id)
    )
