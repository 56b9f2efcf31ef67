from sqlmodel import SQLModel, Field, UniqueConstraint
from typing import Optional


class Grouping(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("organization_id", "slug"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str
    organization_id: int = Field(foreign_key="organization.id", index=True)


class Group(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str
    grouping_id: int = Field(foreign_key="grouping.id", index=True)
    github_team_id: Optional[int] = Field(default=None, nullable=True)
