from sqlmodel import SQLModel, Field, Column, JSON
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4


class JobStatus(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Job(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    job_type: str = Field(index=True)
    arguments: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    status: JobStatus = Field(default=JobStatus.QUEUED, index=True)
    attempts: int = Field(default=0)
    last_error: Optional[str] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def mark_completed(self):
        self.status = JobStatus.COMPLETED
        self.last_error = None
        self.updated_at = datetime.now()

    def mark_failed(self, message: str, max_attempts: int):
        """Record a failed attempt, re-queueing until ``max_attempts`` is reached."""
        self.last_error = message
        self.status = JobStatus.FAILED if self.attempts >= max_attempts else JobStatus.QUEUED
        self.updated_at = datetime.now()
