from sqlmodel import SQLModel, Field, Column, JSON
from datetime import datetime
from typing import List, Optional


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    uid: int = Field(unique=True, index=True)  # GitHub user id
    token: str
    # OAuth scopes granted to ``token`` as last reported by GitHub
    token_scopes: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    site_admin: bool = Field(default=False)
    last_active_at: Optional[datetime] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def has_scope(self, scope: str) -> bool:
        return scope in (self.token_scopes or [])
