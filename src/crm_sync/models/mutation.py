"""Mutation intents and their outcomes."""

from enum import Enum
from typing import Any

from pydantic import BaseModel

from crm_sync.models.resources import Resource
from crm_sync.models.state import ErrorInfo


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MARK_READ = "mark_read"
    MARK_ALL_READ = "mark_all_read"
    TOGGLE_STATUS = "toggle_status"


class MutationIntent(BaseModel):
    """A create/update/delete/mark-read request emitted by the UI."""

    kind: MutationKind
    target_id: str | None = None
    payload: dict[str, Any] | None = None

    model_config = {"frozen": True}

    @property
    def exclusion_key(self) -> str | None:
        """Key under which at most one mutation may be pending."""
        if self.kind == MutationKind.MARK_ALL_READ:
            return "*"
        return self.target_id

    @classmethod
    def create(cls, payload: dict[str, Any]) -> "MutationIntent":
        return cls(kind=MutationKind.CREATE, payload=payload)

    @classmethod
    def update(cls, target_id: str, payload: dict[str, Any]) -> "MutationIntent":
        return cls(kind=MutationKind.UPDATE, target_id=target_id, payload=payload)

    @classmethod
    def delete(cls, target_id: str) -> "MutationIntent":
        return cls(kind=MutationKind.DELETE, target_id=target_id)

    @classmethod
    def mark_read(cls, target_id: str) -> "MutationIntent":
        return cls(kind=MutationKind.MARK_READ, target_id=target_id)

    @classmethod
    def mark_all_read(cls) -> "MutationIntent":
        return cls(kind=MutationKind.MARK_ALL_READ)

    @classmethod
    def toggle_status(cls, target_id: str) -> "MutationIntent":
        return cls(kind=MutationKind.TOGGLE_STATUS, target_id=target_id)


class MutationStatus(str, Enum):
    APPLIED = "applied"
    FAILED = "failed"
    BUSY = "busy"
    CANCELLED = "cancelled"


class MutationResult(BaseModel):
    """Outcome of dispatching a MutationIntent."""

    status: MutationStatus
    intent: MutationIntent | None = None
    item: Resource | None = None
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.status == MutationStatus.APPLIED


class DeleteStage(str, Enum):
    """Stages of the two-step delete confirmation."""

    IDLE = "idle"
    REQUESTED = "requested"
    PENDING = "pending"
