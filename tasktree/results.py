"""
Pydantic result objects returned by the task services.

Expected business outcomes (a reorder needing confirmation, a position out
of range, a rejected priority) are reported through these objects rather
than exceptions, so callers can map them to responses without try/except.
"""

from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from tasktree.models import TaskPriority, TaskStatus


class PriorityValidationResult(BaseModel):
    """Outcome of checking a candidate priority against the parent's priority."""

    valid: bool = Field(..., description="Whether the candidate priority is allowed")
    parent_priority: Optional[TaskPriority] = Field(default=None, description="Parent's current priority")
    attempted_priority: Optional[TaskPriority] = Field(default=None, description="Candidate priority")
    minimum_allowed_priority: Optional[TaskPriority] = Field(
        default=None, description="Lowest priority the task may have"
    )
    error: Optional[str] = Field(default=None, description="Human readable reason when invalid")


class PriorityUpdateResult(BaseModel):
    """Outcome of an explicit priority change."""

    success: bool
    task_id: UUID
    priority: TaskPriority = Field(..., description="Priority after the call")
    old_priority: Optional[TaskPriority] = None
    validation: Optional[PriorityValidationResult] = None
    error: Optional[str] = Field(default=None, description="Machine readable error code")
    message: str = ""


class StatusUpdateResult(BaseModel):
    """Outcome of a status change, including the ancestors whose derived status changed."""

    success: bool
    task_id: UUID
    status: TaskStatus = Field(..., description="Status after the call")
    updated_ancestor_ids: List[UUID] = Field(default_factory=list)
    error: Optional[str] = Field(default=None, description="Machine readable error code")
    message: str = ""


class ReorderConfirmation(BaseModel):
    """Describes the priority change a reorder would cause."""

    type: Literal["moving_to_higher_priority", "moving_to_lower_priority"]
    task_priority: TaskPriority
    neighbor_priorities: List[TaskPriority]
    suggested_priority: TaskPriority
    message: str = ""


class ReorderSuccess(BaseModel):
    """The task was moved (or already was at the requested position)."""

    success: Literal[True] = True
    requires_confirmation: Literal[False] = False
    task_id: UUID
    old_position: int
    new_position: int
    priority_changed: bool = False
    old_priority: Optional[TaskPriority] = None
    new_priority: Optional[TaskPriority] = None
    move_count: int
    message: str


class ReorderConfirmationRequired(BaseModel):
    """The move would change the task's priority; nothing was mutated."""

    success: Literal[False] = False
    requires_confirmation: Literal[True] = True
    task_id: UUID
    confirmation: ReorderConfirmation
    message: str

    @computed_field
    @property
    def type(self) -> str:
        """Kind of priority change, repeated at the top level for serialization."""
        return self.confirmation.type


class ReorderFailure(BaseModel):
    """The request was rejected without mutating anything."""

    success: Literal[False] = False
    requires_confirmation: Literal[False] = False
    task_id: UUID
    error: Literal["position_out_of_range", "outside_parent_context"]
    attempted_position: int
    min_position: Optional[int] = None
    max_position: Optional[int] = None
    message: str


ReorderResult = Union[ReorderSuccess, ReorderConfirmationRequired, ReorderFailure]
