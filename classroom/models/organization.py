from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional

class Organization(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(unique=True, index=True)
    github_id: int = Field(unique=True, index=True)
    github_login: str
    webhook_id: Optional[int] = Field(default=None, foreign_key="organizationwebhook.id", nullable=True)
    created_at: datetime = Field(default_factory=datetime.now)
