from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional


class OrganizationWebhook(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    # id of the hook on GitHub, set once the hook has been created there
    github_id: Optional[int] = Field(default=None, unique=True, nullable=True)
    github_organization_id: int = Field(unique=True, index=True, nullable=False)
    created_at: datetime = Field(default_factory=datetime.now)
