from sqlmodel import SQLModel, Field, UniqueConstraint
from datetime import datetime
from typing import Optional


class GroupAssignment(SQLModel, table=True):
    __tablename__ = "group_assignment"
    __table_args__ = (
        UniqueConstraint("organization_id", "title"),
        UniqueConstraint("organization_id", "slug"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(index=True)
    public_repo: bool = Field(default=True)
    starter_code_repo_id: Optional[int] = Field(default=None, nullable=True)
    organization_id: int = Field(foreign_key="organization.id", index=True)
    creator_id: int = Field(foreign_key="users.id")
    grouping_id: Optional[int] = Field(default=None, foreign_key="grouping.id", nullable=True)
    created_at: datetime = Field(default_factory=datetime.now)


class GroupAssignmentInvitation(SQLModel, table=True):
    __tablename__ = "group_assignment_invitation"

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(unique=True, index=True)
    group_assignment_id: int = Field(foreign_key="group_assignment.id", unique=True)


class GroupAssignmentRepo(SQLModel, table=True):
    __tablename__ = "group_assignment_repo"

    id: Optional[int] = Field(default=None, primary_key=True)
    github_repo_id: int = Field(unique=True)
    group_assignment_id: int = Field(foreign_key="group_assignment.id", index=True)
    group_id: int = Field(foreign_key="group.id")
    created_at: datetime = Field(default_factory=datetime.now)
