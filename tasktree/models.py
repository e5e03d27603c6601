"""
Pydantic models for tasktree.

Defines the core data structures for projects and hierarchical tasks with
validation, computed properties, and proper typing.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, computed_field, model_validator

from tasktree.utils.datetime_utils import utcnow


class TaskStatus(str, Enum):
    """Lifecycle status of a task. Derived from children for non-leaf tasks."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Ordinal task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def level(self) -> int:
        """Ordinal value of the priority (low=1, medium=2, high=3)."""
        return PRIORITY_LEVELS[self]

    @classmethod
    def from_level(cls, level: int) -> "TaskPriority":
        """
        Look up a priority by its ordinal value.

        Raises:
            ValueError: If level is not 1, 2 or 3
        """
        for priority, value in PRIORITY_LEVELS.items():
            if value == level:
                return priority
        raise ValueError(f"Unknown priority level: {level}")


PRIORITY_LEVELS = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
}


class ReorderContext(str, Enum):
    """Which listing a reorder position refers to."""

    TOP_LEVEL = "top-level"
    SUBTASKS = "subtasks"
    ALL = "all"


class Project(BaseModel):
    """
    Represents a project owning a tree of tasks.

    Tasks never move across projects.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the project")
    name: str = Field(..., min_length=1, max_length=255, description="Project name")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")

    _task_count: int = PrivateAttr(default=0)
    _completed_count: int = PrivateAttr(default=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "name": "Website relaunch",
                "created_at": "2025-09-18T10:00:00",
            }
        }
    )

    @computed_field
    @property
    def task_count(self) -> int:
        """Total number of tasks in the project."""
        return self._task_count

    @computed_field
    @property
    def completion_percentage(self) -> float:
        """
        Percentage of completed tasks in the project.

        Returns:
            Percentage of completed tasks (0-100)
        """
        if self._task_count == 0:
            return 0.0
        return round((self._completed_count / self._task_count) * 100, 2)

    def update_counts(self, task_count: int, completed_count: int) -> None:
        """
        Update the task counts for computed properties.

        Args:
            task_count: Total number of tasks
            completed_count: Number of completed tasks
        """
        self._task_count = task_count
        self._completed_count = completed_count


class Task(BaseModel):
    """
    Represents a single task in a project's task tree.

    A task points to an optional parent in the same project. ``depth`` and
    ``path`` are materialized from the parent chain, ``sort_order`` orders a
    task among its siblings, and the ``*_order_index``/``move_count`` fields
    record how the task has been moved around.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for the task")
    project_id: UUID = Field(..., description="ID of the owning project")
    parent_id: Optional[UUID] = Field(default=None, description="Parent task ID, None for top-level")

    title: str = Field(..., min_length=1, max_length=255, description="Task title")
    description: Optional[str] = Field(default=None, description="Optional task description")

    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Task status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")

    # Hierarchy
    depth: int = Field(default=0, ge=0, description="0 for top-level tasks, parent depth + 1 otherwise")
    path: Optional[str] = Field(default=None, description="Slash-joined ancestor id chain ending in own id")
    sort_order: int = Field(default=0, ge=0, description="Order within siblings (1-based)")

    # Reorder bookkeeping
    initial_order_index: Optional[int] = Field(default=None, description="Sort order on first touch")
    current_order_index: Optional[int] = Field(default=None, description="Position after last move")
    move_count: int = Field(default=0, ge=0, description="Number of effective moves")
    last_moved_at: Optional[datetime] = Field(default=None, description="Timestamp of the last move")

    due_date: Optional[date] = Field(default=None, description="Optional due date")

    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utcnow, description="Last update timestamp")

    # Private attributes for computed properties
    _child_count: int = PrivateAttr(default=0)
    _leaf_count: int = PrivateAttr(default=0)
    _completed_leaf_count: int = PrivateAttr(default=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174001",
                "project_id": "123e4567-e89b-12d3-a456-426614174000",
                "parent_id": None,
                "title": "Design landing page",
                "status": "pending",
                "priority": "high",
                "depth": 0,
                "path": "123e4567-e89b-12d3-a456-426614174001",
                "sort_order": 1,
                "move_count": 0,
            }
        }
    )

    @model_validator(mode='after')
    def validate_parent_depth_consistency(self) -> 'Task':
        """
        Validate parent_id consistency with depth.

        Raises:
            ValueError: If parent_id and depth are inconsistent
        """
        if self.depth == 0 and self.parent_id is not None:
            raise ValueError("Depth 0 tasks cannot have a parent_id")

        if self.depth > 0 and self.parent_id is None:
            raise ValueError(f"Depth {self.depth} tasks must have a parent_id")

        if self.parent_id is not None and self.parent_id == self.id:
            raise ValueError("A task cannot be its own parent")

        return self

    @computed_field
    @property
    def priority_level(self) -> int:
        """Ordinal priority value (low=1, medium=2, high=3)."""
        return self.priority.level

    @computed_field
    @property
    def is_top_level(self) -> bool:
        """True if the task has no parent."""
        return self.parent_id is None

    @computed_field
    @property
    def is_leaf(self) -> bool:
        """True if the task has no children."""
        return self._child_count == 0

    @computed_field
    @property
    def child_count(self) -> int:
        """Number of direct children."""
        return self._child_count

    @computed_field
    @property
    def completion_percentage(self) -> float:
        """
        Completion of this task.

        A leaf is 0 or 100 depending on its status; a parent reports the
        share of completed leaves among all of its descendant leaves.

        Returns:
            Percentage rounded to 2 decimals
        """
        if self._child_count == 0:
            return 100.0 if self.status == TaskStatus.COMPLETED else 0.0
        if self._leaf_count == 0:
            return 0.0
        return round((self._completed_leaf_count / self._leaf_count) * 100, 2)

    def update_hierarchy_counts(
        self,
        child_count: int,
        leaf_count: int,
        completed_leaf_count: int
    ) -> None:
        """
        Update the hierarchy counts for computed properties.

        Args:
            child_count: Number of direct children
            leaf_count: Number of descendant leaves
            completed_leaf_count: Number of completed descendant leaves
        """
        self._child_count = child_count
        self._leaf_count = leaf_count
        self._completed_leaf_count = completed_leaf_count
