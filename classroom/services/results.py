from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from classroom.github_client import GitHubError, GitHubForbidden, GitHubNotFound

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    PROVIDER = "provider"


@dataclass
class HandlerResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "HandlerResult[T]":
        return cls(value=value)

    @classmethod
    def invalid(cls, value: Any, errors: Dict[str, List[str]]) -> "HandlerResult":
        return cls(value=value, error=ErrorKind.VALIDATION, errors=errors)

    @classmethod
    def from_github_error(cls, error: GitHubError) -> "HandlerResult":
        if isinstance(error, GitHubNotFound):
            kind = ErrorKind.NOT_FOUND
        elif isinstance(error, GitHubForbidden):
            kind = ErrorKind.FORBIDDEN
        else:
            kind = ErrorKind.PROVIDER
        return cls(error=kind, message=error.message)
