"""Convenience exports for the models package."""

from .group_assignment import GroupAssignment, GroupAssignmentInvitation, GroupAssignmentRepo
from .grouping import Group, Grouping
from .job import Job, JobStatus
from .organization import Organization
from .organization_webhook import OrganizationWebhook
from .user import User
from .user_organization import UserOrganization
