"""
Persisted job queue and the follow-up jobs enqueued when a group assignment is created.

Jobs are recorded as ``Job`` rows and performed later by ``classroom.worker``.
The three assignment jobs carry no ordering guarantee, so each one is
idempotent and safe to run again after a partial failure.
"""

import secrets
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

import structlog
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.config import settings
from classroom.github_client import GitHubClient
from classroom.models import (
    Group,
    GroupAssignment,
    GroupAssignmentInvitation,
    GroupAssignmentRepo,
    Grouping,
    Job,
    JobStatus,
    Organization,
    User,
)
from classroom.services.slugs import unique_slug

logger = structlog.get_logger()

CREATE_GROUPING = "create_grouping"
CREATE_GROUP_ASSIGNMENT_INVITATION = "create_group_assignment_invitation"
CREATE_GROUP_ASSIGNMENT_REPOS = "create_group_assignment_repos"

ClientFactory = Callable[[str], GitHubClient]
JobHandler = Callable[[AsyncSession, Dict[str, Any], ClientFactory], Awaitable[None]]


class JobNotReady(Exception):
    """Raised when a job depends on work another job has not finished yet."""


class JobQueue(Protocol):
    async def enqueue(self, job_type: str, **arguments: Any) -> Job: ...


class DatabaseJobQueue:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def enqueue(self, job_type: str, **arguments: Any) -> Job:
        if job_type not in JOB_HANDLERS:
            raise ValueError(f"Unknown job type: {job_type}")

        job = Job(job_type=job_type, arguments=arguments)
        self.session.add(job)
        await self.session.commit()
        await self.session.refresh(job)
        logger.info("Job enqueued", job_id=str(job.id), job_type=job_type, arguments=arguments)
        return job


async def create_grouping(session: AsyncSession, arguments: Dict[str, Any], client_factory: ClientFactory):
    group_assignment = await session.get(GroupAssignment, arguments["group_assignment_id"])
    if group_assignment is None or group_assignment.grouping_id is not None:
        return

    title = (arguments.get("title") or "").strip()
    if not title:
        return

    result = await session.exec(
        select(Grouping).where(
            Grouping.organization_id == group_assignment.organization_id,
            Grouping.title == title,
        )
    )
    grouping = result.first()
    if grouping is None:
        slugs = await session.exec(
            select(Grouping.slug).where(Grouping.organization_id == group_assignment.organization_id)
        )
        grouping = Grouping(
            title=title,
            slug=unique_slug(title, slugs.all()),
            organization_id=group_assignment.organization_id,
        )
        session.add(grouping)
        await session.flush()
        await session.refresh(grouping)

    group_assignment.grouping_id = grouping.id
    session.add(group_assignment)
    await session.commit()


async def create_group_assignment_invitation(
    session: AsyncSession, arguments: Dict[str, Any], client_factory: ClientFactory
):
    group_assignment_id = arguments["group_assignment_id"]
    if await session.get(GroupAssignment, group_assignment_id) is None:
        return

    result = await session.exec(
        select(GroupAssignmentInvitation).where(
            GroupAssignmentInvitation.group_assignment_id == group_assignment_id
        )
    )
    if result.first() is not None:
        return

    session.add(GroupAssignmentInvitation(key=secrets.token_hex(16), group_assignment_id=group_assignment_id))
    await session.commit()


def repo_name_for(group_assignment: GroupAssignment, group: Group) -> str:
    return f"{group_assignment.slug}-{group.slug}"


async def create_group_assignment_repos(
    session: AsyncSession, arguments: Dict[str, Any], client_factory: ClientFactory
):
    group_assignment = await session.get(GroupAssignment, arguments["group_assignment_id"])
    if group_assignment is None:
        return
    if group_assignment.grouping_id is None:
        raise JobNotReady(f"Group assignment {group_assignment.id} has no grouping yet")

    organization = await session.get(Organization, group_assignment.organization_id)
    creator = await session.get(User, group_assignment.creator_id)

    groups = await session.exec(
        select(Group).where(Group.grouping_id == group_assignment.grouping_id).order_by(Group.id)
    )
    existing = await session.exec(
        select(GroupAssignmentRepo.group_id).where(
            GroupAssignmentRepo.group_assignment_id == group_assignment.id
        )
    )
    done = set(existing.all())

    client = client_factory(creator.token)
    for group in groups.all():
        if group.id in done:
            continue
        repo = await client.create_repository(
            organization.github_login,
            repo_name_for(group_assignment, group),
            private=not group_assignment.public_repo,
            template_repo_id=group_assignment.starter_code_repo_id,
        )
        # commit per repo so a retry skips the ones already created
        session.add(
            GroupAssignmentRepo(
                github_repo_id=repo["id"],
                group_assignment_id=group_assignment.id,
                group_id=group.id,
            )
        )
        await session.commit()


JOB_HANDLERS: Dict[str, JobHandler] = {
    CREATE_GROUPING: create_grouping,
    CREATE_GROUP_ASSIGNMENT_INVITATION: create_group_assignment_invitation,
    CREATE_GROUP_ASSIGNMENT_REPOS: create_group_assignment_repos,
}


async def perform_job(session: AsyncSession, job: Job, client_factory: ClientFactory = GitHubClient) -> JobStatus:
    """Run one queued job and record the outcome on its row."""
    job_id = job.id
    job.status = JobStatus.RUNNING
    job.attempts += 1
    job.updated_at = datetime.now()
    session.add(job)
    await session.commit()

    handler = JOB_HANDLERS[job.job_type]
    try:
        await handler(session, dict(job.arguments or {}), client_factory)
    except Exception as e:
        await session.rollback()
        await session.refresh(job)
        job.mark_failed(str(e) or e.__class__.__name__, settings.MAX_JOB_ATTEMPTS)
        logger.error(
            "Job failed",
            job_id=str(job_id),
            job_type=job.job_type,
            attempts=job.attempts,
            status=job.status.value,
            error=str(e),
        )
    else:
        await session.refresh(job)
        job.mark_completed()
        logger.info("Job completed", job_id=str(job_id), job_type=job.job_type)

    session.add(job)
    await session.commit()
    return job.status


async def run_queued_jobs(
    session: AsyncSession,
    limit: Optional[int] = None,
    client_factory: ClientFactory = GitHubClient,
) -> Dict[str, int]:
    statement = select(Job).where(Job.status == JobStatus.QUEUED).order_by(Job.created_at)
    if limit is not None:
        statement = statement.limit(limit)
    jobs = (await session.exec(statement)).all()

    summary = {"completed": 0, "requeued": 0, "failed": 0}
    for job in jobs:
        status = await perform_job(session, job, client_factory)
        if status == JobStatus.COMPLETED:
            summary["completed"] += 1
        elif status == JobStatus.QUEUED:
            summary["requeued"] += 1
        else:
            summary["failed"] += 1
    return summary
