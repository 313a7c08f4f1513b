"""Error taxonomy for room operations.

Every error carries the HTTP status and response payload it maps to.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import pydantic


@dataclass(frozen=True)
class FieldError:
    path: str
    message: str

    def to_dict(self) -> dict:
        return {"path": self.path, "message": self.message}


class RoomServiceError(Exception):
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.message
        super().__init__(self.detail)

    def payload(self, verbose: bool = False) -> dict:
        body = {"success": False, "message": self.message}
        if self.status_code >= 500:
            body["error"] = self.detail if verbose else "Something went wrong"
        return body


class ValidationError(RoomServiceError):
    status_code = 400
    message = "Validation error"

    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__("; ".join(f"{e.path}: {e.message}" for e in errors) or self.message)

    @classmethod
    def single(cls, path: str, message: str) -> "ValidationError":
        return cls([FieldError(path, message)])

    @classmethod
    def from_issues(cls, issues: Sequence[dict]) -> "ValidationError":
        """Build from pydantic-style issues ({"loc": ..., "msg": ...})."""
        return cls([FieldError(".".join(str(part) for part in issue["loc"]), issue["msg"]) for issue in issues])

    @classmethod
    def from_pydantic(cls, exc: pydantic.ValidationError) -> "ValidationError":
        return cls.from_issues(exc.errors())

    def payload(self, verbose: bool = False) -> dict:
        return {"success": False, "message": self.message, "errors": [e.to_dict() for e in self.errors]}


class NotFoundError(RoomServiceError):
    status_code = 404
    message = "Room not found"


class StorageError(RoomServiceError):
    status_code = 500
    message = "Internal server error"
