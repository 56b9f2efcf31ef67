from sqlmodel import SQLModel, Field, UniqueConstraint
from datetime import datetime


class UserOrganization(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "organization_id"),)

    id: int = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    organization_id: int = Field(foreign_key="organization.id", index=True)
    joined: datetime = Field(default_factory=datetime.now)
