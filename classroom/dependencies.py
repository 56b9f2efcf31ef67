from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from classroom.db.database import get_session
from classroom.github_client import GitHubClient
from classroom.services.jobs import ClientFactory, DatabaseJobQueue, JobQueue
from classroom.services.webhook import Selector, selector_for_environment


def get_github_client_factory() -> ClientFactory:
    return GitHubClient


def get_job_queue(session: AsyncSession = Depends(get_session)) -> JobQueue:
    return DatabaseJobQueue(session)


def get_selector() -> Selector:
    return selector_for_environment()
